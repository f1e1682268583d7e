from __future__ import annotations

import unittest
from datetime import date, datetime, time, timezone

from event_radar.models import EventCandidate, EventCategory, ScanRecord, Venue


class EventCandidateTests(unittest.TestCase):
    def test_from_raw_normalizes_fields(self) -> None:
        candidate = EventCandidate.from_raw(
            {
                "title": "  Open Mic ",
                "date": "2026-03-02",
                "time_start": "19:30 Uhr",
                "time_end": "spät",
                "venue_name": "Café Kowalski",
                "category": "poetry",
                "confidence": "1.7",
                "source_url": "",
                "description": None,
            }
        )

        self.assertIsNotNone(candidate)
        self.assertEqual(candidate.title, "Open Mic")
        self.assertEqual(candidate.event_date, date(2026, 3, 2))
        self.assertEqual(candidate.time_start, time(19, 30))
        self.assertIsNone(candidate.time_end)
        self.assertEqual(candidate.category, EventCategory.OTHER)
        self.assertEqual(candidate.confidence, 1.0)
        self.assertIsNone(candidate.source_url)
        self.assertEqual(candidate.description, "")

    def test_from_raw_rejects_missing_required_fields(self) -> None:
        self.assertIsNone(EventCandidate.from_raw({"title": "x", "date": "2026-03-02", "time_start": "20:00"}))
        self.assertIsNone(
            EventCandidate.from_raw({"title": "x", "date": "tomorrow", "time_start": "20:00", "venue_name": "v"})
        )
        self.assertIsNone(EventCandidate.from_raw(["not", "a", "dict"]))

    def test_bad_confidence_becomes_zero(self) -> None:
        candidate = EventCandidate.from_raw(
            {"title": "x", "date": "2026-03-02", "time_start": "20:00", "venue_name": "v", "confidence": "high"}
        )
        self.assertEqual(candidate.confidence, 0.0)

    def test_single_digit_hours_are_padded(self) -> None:
        candidate = EventCandidate.from_raw(
            {"title": "x", "date": "2026-03-02", "time_start": "8:00", "time_end": "9:30 Uhr", "venue_name": "v"}
        )

        self.assertIsNotNone(candidate)
        self.assertEqual(candidate.time_start, time(8, 0))
        self.assertEqual(candidate.time_end, time(9, 30))


class VenueTests(unittest.TestCase):
    def test_zero_coordinates_mean_unknown(self) -> None:
        self.assertFalse(Venue(id="v1", name="x").has_coordinates)
        self.assertTrue(Venue(id="v2", name="x", lat=48.5, lng=13.4).has_coordinates)


class ScanRecordTests(unittest.TestCase):
    def test_holds_only_city_and_timestamp(self) -> None:
        record = ScanRecord(city="passau", last_scanned=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))
        self.assertEqual(set(record.model_dump()), {"city", "last_scanned"})


if __name__ == "__main__":
    unittest.main()
