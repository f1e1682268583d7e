from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

from pydantic import ValidationError
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection

from event_radar.models import Event, ScanRecord
from event_radar.utils.text import city_key

logger = logging.getLogger(__name__)


class MongoStore:
    def __init__(self, uri: str, db_name: str, client: Optional[MongoClient] = None):
        # Ensure datetimes read from Mongo are timezone-aware (UTC).
        self.client = client or MongoClient(uri, tz_aware=True)
        self.db = self.client[db_name]
        self.scans_col: Collection = self.db["ai_scan_log"]
        self.events_col: Collection = self.db["events"]
        self._ensure_indexes()

    def _ensure_indexes(self) -> None:
        self.scans_col.create_index([("city", ASCENDING)], unique=True)
        self.events_col.create_index([("city", ASCENDING), ("event_date", ASCENDING)])

    def get_scan_record(self, city: str) -> Optional[ScanRecord]:
        doc = self.scans_col.find_one({"city": city_key(city)})
        if not doc:
            return None
        last_scanned = _as_utc(doc.get("last_scanned"))
        if last_scanned is None:
            return None
        return ScanRecord(city=doc["city"], last_scanned=last_scanned)

    def upsert_scan_record(self, record: ScanRecord) -> None:
        self.scans_col.update_one(
            {"city": city_key(record.city)},
            {"$set": {"city": city_key(record.city), "last_scanned": record.last_scanned}},
            upsert=True,
        )

    def get_local_events(self, city: str, start: date, days: int = 14) -> List[Event]:
        """Locally authored events for a city inside ``[start, start + days]``."""
        query: Dict = {
            "city": city_key(city),
            "status": "active",
            "event_date": {
                "$gte": _day_start(start),
                "$lte": _day_start(start + timedelta(days=days)),
            },
        }
        events: List[Event] = []
        for doc in self.events_col.find(query).sort("event_date", ASCENDING):
            doc.pop("_id", None)
            doc.pop("city", None)
            event_date = _as_utc(doc.get("event_date"))
            if event_date is not None:
                doc["event_date"] = event_date.date()
            try:
                events.append(Event(**doc))
            except ValidationError as exc:
                logger.warning("Skipping malformed local event", extra={"id": doc.get("id"), "error": str(exc)})
        return events


def _day_start(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def _as_utc(value: object) -> Optional[datetime]:
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
