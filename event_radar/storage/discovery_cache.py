from __future__ import annotations

from typing import Dict, List, Optional

from event_radar.models import Event
from event_radar.utils.text import city_key


class DiscoveryCache:
    """Process-lifetime cache of AI discovery results, keyed by normalized city.

    There is no eviction: an entry lives until it is cleared explicitly.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, List[Event]] = {}

    def get(self, city: str) -> Optional[List[Event]]:
        cached = self._entries.get(city_key(city))
        return list(cached) if cached is not None else None

    def set(self, city: str, events: List[Event]) -> None:
        self._entries[city_key(city)] = list(events)

    def clear(self, city: Optional[str] = None) -> None:
        if city:
            self._entries.pop(city_key(city), None)
        else:
            self._entries.clear()

    def __contains__(self, city: str) -> bool:
        return city_key(city) in self._entries
