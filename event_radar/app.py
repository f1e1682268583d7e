from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timedelta
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

from event_radar.clients.gemini import GeminiGateway, RetryPolicy
from event_radar.config import Settings, get_settings
from event_radar.connectors.ai_discovery import AIDiscoveryConnector
from event_radar.connectors.base import EventConnector
from event_radar.connectors.ticketmaster import TicketmasterConnector
from event_radar.engine.cooldown import ScanCooldownGate
from event_radar.engine.dedup import merge_events
from event_radar.models import Event
from event_radar.storage.discovery_cache import DiscoveryCache
from event_radar.storage.mongo import MongoStore
from event_radar.utils.logging import configure_logging

logger = logging.getLogger(__name__)


class EventAggregator:
    def __init__(
        self,
        connectors: Iterable[EventConnector],
        discovery: Optional[AIDiscoveryConnector],
        cooldown: ScanCooldownGate,
    ):
        self.connectors = list(connectors)
        self.discovery = discovery
        self.cooldown = cooldown

    @classmethod
    def from_settings(cls, settings: Settings, store: MongoStore) -> "EventAggregator":
        connectors: List[EventConnector] = []
        if settings.ticketmaster_api_key:
            connectors.append(
                TicketmasterConnector(
                    api_key=settings.ticketmaster_api_key,
                    base_url=settings.ticketmaster_base_url,
                    country_code=settings.ticketmaster_country_code,
                    limit=settings.ticketmaster_limit,
                    timeout=settings.http_timeout_seconds,
                )
            )

        discovery = None
        if settings.gemini_api_key:
            discovery = build_discovery(settings)

        cooldown = ScanCooldownGate(
            store=store,
            enabled=bool(settings.gemini_api_key),
            cooldown=timedelta(minutes=settings.ai_scan_cooldown_minutes),
        )
        return cls(connectors=connectors, discovery=discovery, cooldown=cooldown)

    async def fetch_events(self, city: str, local_events: Iterable[Event] = ()) -> List[Event]:
        run_discovery = self.discovery is not None and await asyncio.to_thread(self.cooldown.should_run, city)

        external: List[Event] = []
        sources: List[EventConnector] = list(self.connectors)
        pending = [s.fetch_events(city) for s in sources]
        if run_discovery:
            sources.append(self.discovery)
            pending.append(self.discovery.refresh(city))
        elif self.discovery is not None:
            # Inside the cooldown the last scan's results stand in for a new one.
            external.extend(self.discovery.cached(city))

        results = await asyncio.gather(*pending, return_exceptions=True)

        for source, result in zip(sources, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Event source failed",
                    extra={"source": source.source_name, "city": city, "error": str(result)},
                )
                continue
            external.extend(result)
            if source is self.discovery and result:
                await asyncio.to_thread(self.cooldown.mark_scanned, city)

        merged = merge_events([*local_events, *external])
        logger.info(
            "Aggregated events",
            extra={"city": city, "external": len(external), "merged": len(merged), "ai_scan": run_discovery},
        )
        return merged

    async def aclose(self) -> None:
        closing = list(self.connectors)
        if self.discovery is not None:
            closing.append(self.discovery)
        await asyncio.gather(*(c.aclose() for c in closing), return_exceptions=True)


def build_discovery(settings: Settings) -> AIDiscoveryConnector:
    gateway = GeminiGateway(
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        timeout_seconds=settings.llm_timeout_seconds,
        retry_policy=RetryPolicy(
            max_retries=settings.llm_max_retries,
            base_delay=settings.llm_retry_base_seconds,
        ),
    )
    return AIDiscoveryConnector(
        api_key=settings.gemini_api_key,
        gateway=gateway,
        cache=DiscoveryCache(),
        window_days=settings.discovery_window_days,
        min_confidence=settings.ai_min_confidence,
        grounding_penalty=settings.grounding_penalty,
        timezone_name=settings.timezone,
    )


def _format_event(event: Event) -> str:
    source = event.source_url or "-"
    marker = " [Instagram]" if "instagram.com" in source else ""
    start = event.time_start.strftime("%H:%M") if event.time_start else "--:--"
    venue = event.venue.name if event.venue else "-"
    confidence = f"{event.ai_confidence:.2f}" if event.ai_confidence is not None else "n/a"
    return (
        f"- {event.title}\n"
        f"  Date: {event.event_date.isoformat()} {start} | {venue}\n"
        f"  Source: {source}{marker}\n"
        f"  Confidence: {confidence}\n"
    )


async def _run(city: str, aggregate: bool, settings: Settings) -> List[Event]:
    if aggregate:
        store = MongoStore(settings.mongodb_uri, settings.mongodb_db)
        aggregator = EventAggregator.from_settings(settings, store)
        today = datetime.now(ZoneInfo(settings.timezone)).date()
        try:
            local = store.get_local_events(city, start=today, days=settings.discovery_window_days)
            return await aggregator.fetch_events(city, local_events=local)
        finally:
            await aggregator.aclose()

    discovery = build_discovery(settings)
    try:
        return await discovery.discover(city)
    finally:
        await discovery.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run AI event discovery for one city and print the results")
    parser.add_argument("city", nargs="?", default=settings.default_city, help="City to scan")
    parser.add_argument("--aggregate", action="store_true", help="Run the full multi-source aggregation")
    args = parser.parse_args(argv)

    configure_logging(settings.log_level)
    mode = "aggregation" if args.aggregate else "AI discovery"
    print(f"\nTesting {mode} for: {args.city}\n")
    try:
        events = asyncio.run(_run(args.city, args.aggregate, settings))
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Found {len(events)} events.\n")
    for event in events:
        print(_format_event(event))
    if not events:
        print("(No events returned - try another city or check the API key.)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
