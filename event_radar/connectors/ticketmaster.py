from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

from event_radar.clients.http_client import HttpClient
from event_radar.connectors.base import EventConnector
from event_radar.engine.categories import map_ticketmaster_category
from event_radar.models import NO_PRICE_INFO, Event, SourceType, Venue
from event_radar.utils.text import truncate

logger = logging.getLogger(__name__)

_SKIPPED_STATUSES = {"cancelled", "canceled"}


class TicketmasterConnector(EventConnector):
    source_name = "ticketmaster"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://app.ticketmaster.com/discovery/v2",
        country_code: str = "DE",
        limit: int = 50,
        timeout: int = 15,
        http: Optional[HttpClient] = None,
    ):
        self.api_key = api_key.strip()
        self.events_url = f"{base_url.rstrip('/')}/events.json"
        self.country_code = country_code
        self.limit = limit
        self.http = http or HttpClient(timeout=timeout)

    async def fetch_events(self, city: str) -> List[Event]:
        params: Dict[str, Any] = {
            "apikey": self.api_key,
            "city": city.strip(),
            "countryCode": self.country_code,
            "size": min(200, self.limit),
            "sort": "date,asc",
            "startDateTime": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        }
        payload = await self.http.get_json(self.events_url, params=params)

        events: List[Event] = []
        seen_ids: set[str] = set()
        for row in _extract_event_rows(payload):
            event = _to_event(row)
            if event is None or event.id in seen_ids:
                continue
            seen_ids.add(event.id)
            events.append(event)
            if len(events) >= self.limit:
                break

        logger.info("Ticketmaster events fetched", extra={"city": city, "count": len(events)})
        return events

    async def aclose(self) -> None:
        await self.http.aclose()


def _extract_event_rows(payload: Any) -> List[Dict[str, Any]]:
    if not isinstance(payload, dict):
        return []
    embedded = payload.get("_embedded")
    rows = embedded.get("events") if isinstance(embedded, dict) else None
    if isinstance(rows, list):
        return [x for x in rows if isinstance(x, dict)]
    return []


def _to_event(row: Dict[str, Any]) -> Optional[Event]:
    external_id = str(row.get("id") or "").strip()
    title = str(row.get("name") or "").strip()
    start = (row.get("dates") or {}).get("start") or {}
    event_date = _parse_date(start.get("localDate"))
    if not external_id or not title or event_date is None:
        return None

    status = str(((row.get("dates") or {}).get("status") or {}).get("code") or "").lower()
    if status in _SKIPPED_STATUSES:
        return None

    segment, genre = _extract_classification(row)
    venue = _to_venue(row)
    description = str(row.get("info") or row.get("pleaseNote") or row.get("description") or "").strip()

    return Event(
        id=f"tm-{external_id}",
        title=title,
        description=truncate(description, 300),
        venue_id=venue.id if venue else None,
        venue=venue,
        event_date=event_date,
        time_start=_parse_time(start.get("localTime")),
        category=map_ticketmaster_category(segment, genre),
        price_info=_format_price(row.get("priceRanges")),
        source_type=SourceType.API_TICKETMASTER,
        source_url=str(row.get("url") or "").strip() or None,
        image_url=_pick_image(row.get("images")),
    )


def _extract_classification(row: Dict[str, Any]) -> tuple[Optional[str], Optional[str]]:
    classifications = row.get("classifications")
    if not isinstance(classifications, list) or not classifications:
        return None, None
    primary = next(
        (c for c in classifications if isinstance(c, dict) and c.get("primary")),
        classifications[0],
    )
    if not isinstance(primary, dict):
        return None, None
    segment = (primary.get("segment") or {}).get("name")
    genre = (primary.get("genre") or {}).get("name")
    return segment, genre


def _to_venue(row: Dict[str, Any]) -> Optional[Venue]:
    embedded = row.get("_embedded") or {}
    venues = embedded.get("venues") if isinstance(embedded, dict) else None
    if not isinstance(venues, list) or not venues or not isinstance(venues[0], dict):
        return None
    raw = venues[0]
    name = str(raw.get("name") or "").strip()
    if not name:
        return None

    venue_id = str(raw.get("id") or "").strip()
    location = raw.get("location") or {}
    return Venue(
        id=f"tm-venue-{venue_id}" if venue_id else f"tm-venue-{row.get('id')}",
        name=name,
        address=str((raw.get("address") or {}).get("line1") or "").strip(),
        city=str((raw.get("city") or {}).get("name") or "").strip(),
        lat=_to_float(location.get("latitude")),
        lng=_to_float(location.get("longitude")),
        ticketmaster_id=venue_id or None,
        website=str(raw.get("url") or "").strip() or None,
    )


def _format_price(ranges: Any) -> str:
    if not isinstance(ranges, list) or not ranges or not isinstance(ranges[0], dict):
        return NO_PRICE_INFO
    first = ranges[0]
    low = _to_float(first.get("min"))
    high = _to_float(first.get("max"))
    currency = str(first.get("currency") or "EUR").strip()
    if low <= 0 and high <= 0:
        return NO_PRICE_INFO
    if high <= low:
        return f"{low:g} {currency}"
    return f"{low:g}-{high:g} {currency}"


def _pick_image(images: Any) -> Optional[str]:
    if not isinstance(images, list):
        return None
    rows = [x for x in images if isinstance(x, dict) and x.get("url")]
    if not rows:
        return None
    widest = max(rows, key=lambda x: _to_float(x.get("width")))
    return str(widest["url"])


def _parse_date(raw: Any) -> Optional[date]:
    if isinstance(raw, str) and raw:
        try:
            return date.fromisoformat(raw[:10])
        except ValueError:
            return None
    return None


def _parse_time(raw: Any) -> Optional[time]:
    if isinstance(raw, str) and raw:
        try:
            return time.fromisoformat(raw)
        except ValueError:
            return None
    return None


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
