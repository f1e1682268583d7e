from __future__ import annotations

import unittest
from datetime import date

from event_radar.models import Event, SourceType
from event_radar.storage.discovery_cache import DiscoveryCache


def _event(event_id: str) -> Event:
    return Event(id=event_id, title="t", event_date=date(2026, 3, 1), source_type=SourceType.AI_DISCOVERED)


class DiscoveryCacheTests(unittest.TestCase):
    def test_keys_are_case_and_whitespace_insensitive(self) -> None:
        cache = DiscoveryCache()
        cache.set("Passau", [_event("a")])

        self.assertIn(" passau ", cache)
        self.assertEqual([e.id for e in cache.get("PASSAU")], ["a"])

    def test_missing_city_returns_none_but_empty_result_is_cached(self) -> None:
        cache = DiscoveryCache()
        self.assertIsNone(cache.get("Passau"))
        cache.set("Passau", [])
        self.assertEqual(cache.get("Passau"), [])

    def test_clear_single_city_or_all(self) -> None:
        cache = DiscoveryCache()
        cache.set("Passau", [_event("a")])
        cache.set("Straubing", [_event("b")])

        cache.clear("passau")
        self.assertIsNone(cache.get("Passau"))
        self.assertIsNotNone(cache.get("Straubing"))

        cache.clear()
        self.assertIsNone(cache.get("Straubing"))

    def test_last_writer_wins(self) -> None:
        cache = DiscoveryCache()
        cache.set("Passau", [_event("a")])
        cache.set("passau", [_event("b")])
        self.assertEqual([e.id for e in cache.get("Passau")], ["b"])


if __name__ == "__main__":
    unittest.main()
