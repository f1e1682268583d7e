from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

from event_radar.models import ScanRecord
from event_radar.utils.text import city_key

logger = logging.getLogger(__name__)


class ScanRecordStore(Protocol):
    def get_scan_record(self, city: str) -> Optional[ScanRecord]: ...

    def upsert_scan_record(self, record: ScanRecord) -> None: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScanCooldownGate:
    """Decides whether the AI discovery path may run for a city."""

    def __init__(
        self,
        store: ScanRecordStore,
        enabled: bool,
        cooldown: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.enabled = enabled
        self.cooldown = cooldown
        self.clock = clock

    def should_run(self, city: str) -> bool:
        if not self.enabled or not city_key(city):
            return False

        try:
            record = self.store.get_scan_record(city)
        except Exception as exc:
            # Fail open.
            logger.warning("Scan record lookup failed", extra={"city": city, "error": str(exc)})
            return True

        if record is None:
            return True
        last_scanned = record.last_scanned
        if last_scanned.tzinfo is None:
            last_scanned = last_scanned.replace(tzinfo=timezone.utc)
        return self.clock() - last_scanned > self.cooldown

    def mark_scanned(self, city: str) -> None:
        record = ScanRecord(city=city_key(city), last_scanned=self.clock())
        try:
            self.store.upsert_scan_record(record)
        except Exception as exc:
            logger.warning("Scan record update failed", extra={"city": city, "error": str(exc)})
