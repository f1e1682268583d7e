from __future__ import annotations

from typing import List

from event_radar.models import Event


class EventConnector:
    source_name: str = "unknown"

    async def fetch_events(self, city: str) -> List[Event]:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
