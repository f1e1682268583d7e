from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from event_radar.engine.cooldown import ScanCooldownGate
from event_radar.models import ScanRecord

NOW = datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc)


class FakeScanStore:
    def __init__(self, records: dict | None = None, fail_reads: bool = False, fail_writes: bool = False) -> None:
        self.records = dict(records or {})
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.lookups: list[str] = []

    def get_scan_record(self, city: str):
        self.lookups.append(city)
        if self.fail_reads:
            raise ConnectionError("backend down")
        last = self.records.get(city.strip().lower())
        return ScanRecord(city=city.strip().lower(), last_scanned=last) if last else None

    def upsert_scan_record(self, record: ScanRecord) -> None:
        if self.fail_writes:
            raise ConnectionError("backend down")
        self.records[record.city] = record.last_scanned


def _gate(store: FakeScanStore, enabled: bool = True) -> ScanCooldownGate:
    return ScanCooldownGate(store=store, enabled=enabled, cooldown=timedelta(hours=1), clock=lambda: NOW)


class ScanCooldownGateTests(unittest.TestCase):
    def test_never_scanned_runs(self) -> None:
        self.assertTrue(_gate(FakeScanStore()).should_run("Passau"))

    def test_recent_scan_blocks(self) -> None:
        store = FakeScanStore({"passau": NOW - timedelta(minutes=30)})
        self.assertFalse(_gate(store).should_run("Passau"))

    def test_stale_scan_runs(self) -> None:
        store = FakeScanStore({"passau": NOW - timedelta(minutes=61)})
        self.assertTrue(_gate(store).should_run("Passau"))

    def test_naive_timestamp_treated_as_utc(self) -> None:
        recent = FakeScanStore({"passau": (NOW - timedelta(minutes=30)).replace(tzinfo=None)})
        stale = FakeScanStore({"passau": (NOW - timedelta(minutes=61)).replace(tzinfo=None)})

        self.assertFalse(_gate(recent).should_run("Passau"))
        self.assertTrue(_gate(stale).should_run("Passau"))

    def test_disabled_without_ai_key(self) -> None:
        store = FakeScanStore()
        self.assertFalse(_gate(store, enabled=False).should_run("Passau"))
        self.assertEqual(store.lookups, [])

    def test_blank_city_never_runs(self) -> None:
        self.assertFalse(_gate(FakeScanStore()).should_run("   "))

    def test_lookup_failure_fails_open(self) -> None:
        self.assertTrue(_gate(FakeScanStore(fail_reads=True)).should_run("Passau"))

    def test_mark_scanned_writes_now(self) -> None:
        store = FakeScanStore()
        gate = _gate(store)

        gate.mark_scanned(" Passau ")

        self.assertEqual(store.records, {"passau": NOW})
        self.assertFalse(gate.should_run("passau"))

    def test_mark_scanned_swallows_write_failure(self) -> None:
        with self.assertLogs("event_radar.engine.cooldown", level="WARNING"):
            _gate(FakeScanStore(fail_writes=True)).mark_scanned("Passau")


if __name__ == "__main__":
    unittest.main()
