from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo

from event_radar.clients.gemini import GOOGLE_SEARCH_TOOL, GeminiGateway, GeminiRequest
from event_radar.connectors.base import EventConnector
from event_radar.engine.confidence import (
    DISCOVERY_WINDOW_DAYS,
    GROUNDING_PENALTY,
    MIN_CONFIDENCE,
    filter_discovered,
)
from event_radar.errors import ConfigurationError, UpstreamError
from event_radar.models import NO_PRICE_INFO, Event, EventCandidate, SourceType, Venue
from event_radar.storage.discovery_cache import DiscoveryCache
from event_radar.utils.json_array import parse_json_array
from event_radar.utils.text import city_key, to_title_case, truncate

logger = logging.getLogger(__name__)

SEARCH_QUERIES = [
    "{city} events diese woche restaurant bar",
    "{city} veranstaltungen lokal gastronomie",
    "{city} pub quiz karaoke comedy abend",
    "{city} food event themenabend restaurant",
    "{city} live musik kneipe bar club",
    "{city} flohmarkt markt straßenfest",
    "{city} workshop kurs kreativ abend",
    "{city} club bar Instagram events Termine",
    "{city} Instagram Location events Party Konzert",
    "site:instagram.com {city} club Party Event",
]

WEEKDAYS_DE = ["Montag", "Dienstag", "Mittwoch", "Donnerstag", "Freitag", "Samstag", "Sonntag"]


def build_system_instruction(city: str, today: date, end_date: date) -> str:
    weekday = WEEKDAYS_DE[today.weekday()]
    return (
        f"Du bist ein erfahrener Event-Scout für die Stadt {city} in Deutschland.\n"
        f"Deine Aufgabe: Finde ECHTE, AKTUELLE Events die zwischen {today.isoformat()} ({weekday}) "
        f"und {end_date.isoformat()} stattfinden.\n\n"
        "REGELN:\n"
        "- Erfinde NIEMALS Events. Nur Events die du tatsächlich über die Google-Suche findest.\n"
        "- Jedes Event MUSS eine echte, funktionierende source_url haben (Webseite ODER Instagram-Beitrag/Seite).\n"
        "- Suche auch gezielt auf Instagram: Clubs, Bars und Locations posten dort oft ihre Events. "
        "Instagram-URLs (instagram.com/...) sind als source_url erlaubt.\n"
        "- Gib NUR Events zurück bei denen du dir sicher bist (confidence >= 0.7).\n\n"
        "NICHT zurückgeben:\n"
        '- Regelmäßige Öffnungszeiten von Restaurants/Bars (z.B. "Happy Hour jeden Freitag")\n'
        "- Dauerausstellungen in Museen\n"
        f"- Events die bereits stattgefunden haben (vor {today.isoformat()})\n"
        "- Erfundene oder vermutete Events\n\n"
        "KATEGORIEN: nightlife, food_drink, concert, festival, sports, art, family, other"
    )


def build_user_prompt(city: str, today: date) -> str:
    queries = "\n".join(q.format(city=city) for q in SEARCH_QUERIES)
    example = (
        '[{"title":"Pub Quiz Night","description":"Wöchentliches Pub Quiz mit Preisen. Teams bis 6 Personen.",'
        f'"date":"{today.isoformat()}","time_start":"20:00","time_end":"22:30","venue_name":"Irish Pub Downtown",'
        f'"venue_address":"Hauptstraße 12, {city}","city":"{city}","category":"nightlife",'
        '"price_info":"5€ pro Person","source_url":"https://example.com/events/pub-quiz","confidence":0.85}]'
    )
    return (
        f"Suche nach Events in {city} mit folgenden Suchbegriffen:\n{queries}\n\n"
        "Suche nach:\n"
        "- Themenabende in Restaurants, Weinproben\n"
        "- Bar-Events (Pub Quiz, Karaoke, Open Mic, DJ-Abende)\n"
        "- Lokale Live-Musik in Kneipen/Bars, Club-Events\n"
        f"- Instagram-Posts und -Seiten von Clubs, Bars und Locations in {city}\n"
        "- Flohmärkte, Kunstmärkte, Straßenfeste\n"
        "- Comedy-Abende, Poetry Slams\n"
        "- Workshops, Kurse\n"
        "- Vereinsevents, lokale Feste\n"
        "- Sport-Events\n\n"
        "Antwort als JSON-Array. Jedes Event:\n"
        "{\n"
        '  "title": "Name des Events",\n'
        '  "description": "Kurze Beschreibung, max 200 Zeichen",\n'
        '  "date": "YYYY-MM-DD",\n'
        '  "time_start": "HH:MM",\n'
        '  "time_end": "HH:MM oder null",\n'
        '  "venue_name": "Name der Location",\n'
        '  "venue_address": "Vollständige Adresse",\n'
        f'  "city": "{city}",\n'
        '  "category": "nightlife|food_drink|concert|festival|sports|art|family|other",\n'
        '  "price_info": "z.B. 10€, Kostenlos, Ab 5€",\n'
        '  "source_url": "URL der Webseite oder des Instagram-Posts (PFLICHT)",\n'
        '  "confidence": 0.0-1.0\n'
        "}\n\n"
        f"BEISPIEL für ein korrektes Event:\n{example}\n\n"
        "Leeres Array [] wenn nichts gefunden."
    )


class AIDiscoveryConnector(EventConnector):
    source_name = "ai_discovery"

    def __init__(
        self,
        api_key: str,
        gateway: GeminiGateway,
        cache: Optional[DiscoveryCache] = None,
        window_days: int = DISCOVERY_WINDOW_DAYS,
        min_confidence: float = MIN_CONFIDENCE,
        grounding_penalty: float = GROUNDING_PENALTY,
        timezone_name: str = "Europe/Berlin",
        today: Optional[Callable[[], date]] = None,
    ):
        self.api_key = (api_key or "").strip()
        self.gateway = gateway
        self.cache = cache if cache is not None else DiscoveryCache()
        self.window_days = window_days
        self.min_confidence = min_confidence
        self.grounding_penalty = grounding_penalty
        self._tz = ZoneInfo(timezone_name)
        self._today = today or (lambda: datetime.now(self._tz).date())

    def enabled(self) -> bool:
        return bool(self.api_key)

    async def fetch_events(self, city: str) -> List[Event]:
        return await self.discover(city)

    async def discover(self, city: str) -> List[Event]:
        if not self.enabled():
            raise ConfigurationError("Gemini API key is missing. Set GEMINI_API_KEY in .env.")

        cached = self.cache.get(city)
        if cached is not None:
            return cached

        city = city.strip()
        today = self._today()
        end_date = today + timedelta(days=self.window_days)

        result = await self.gateway.generate(
            GeminiRequest(
                api_key=self.api_key,
                parts=[build_user_prompt(city, today)],
                system_instruction=build_system_instruction(city, today, end_date),
                tools=[GOOGLE_SEARCH_TOOL],
                temperature=0.2,
                max_output_tokens=8192,
            )
        )
        if not result.text.strip():
            raise UpstreamError("Gemini returned no answer")

        rows = parse_json_array(result.text)
        candidates = filter_discovered(
            rows,
            result.grounding_urls,
            today=today,
            window_days=self.window_days,
            min_confidence=self.min_confidence,
            grounding_penalty=self.grounding_penalty,
        )
        events = [_to_event(c, city) for c in candidates]

        logger.info(
            "AI discovery finished",
            extra={
                "city": city,
                "raw": len(rows),
                "kept": len(events),
                "grounding_urls": len(result.grounding_urls),
            },
        )
        self.cache.set(city, events)
        return events

    async def refresh(self, city: str) -> List[Event]:
        """Discard the cached result for ``city`` and scan again."""
        self.clear_cache(city)
        return await self.discover(city)

    def cached(self, city: str) -> List[Event]:
        return self.cache.get(city) or []

    def clear_cache(self, city: Optional[str] = None) -> None:
        self.cache.clear(city)

    async def aclose(self) -> None:
        await self.gateway.aclose()


def _to_event(candidate: EventCandidate, city: str) -> Event:
    slug = city_key(city).replace(" ", "-")
    venue = Venue(
        id=f"ai-venue-{slug}-{uuid.uuid4().hex[:12]}",
        name=candidate.venue_name,
        address=candidate.venue_address or candidate.city or city,
        city=to_title_case(candidate.city or city),
        lat=0.0,
        lng=0.0,
        verified=False,
    )
    return Event(
        id=f"ai-{slug}-{candidate.event_date.isoformat()}-{uuid.uuid4().hex[:12]}",
        title=candidate.title,
        description=truncate(candidate.description, 300),
        venue_id=venue.id,
        venue=venue,
        event_date=candidate.event_date,
        time_start=candidate.time_start,
        time_end=candidate.time_end,
        category=candidate.category,
        price_info=candidate.price_info or NO_PRICE_INFO,
        source_type=SourceType.AI_DISCOVERED,
        source_url=candidate.source_url,
        ai_confidence=candidate.confidence,
    )
