from __future__ import annotations

import logging
from typing import Any, List, Optional

from event_radar.clients.gemini import GOOGLE_SEARCH_TOOL, GeminiGateway, GeminiRequest
from event_radar.errors import ConfigurationError, ParseError
from event_radar.models import ExtractedEvent
from event_radar.utils.json_array import recover_json_array
from event_radar.utils.text import truncate

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 15000

EXTRACTION_PROMPT = """Du bist ein Event-Daten-Extraktor. Analysiere den folgenden Webseiten-Inhalt und extrahiere Event-Informationen.
Erfinde NIEMALS Daten. Gib nur zurück, was tatsächlich auf der Seite steht.

Gib ein JSON-Array zurück. Jedes Event hat folgende Felder:
- title (string): Name des Events
- description (string): Kurze Beschreibung, max 300 Zeichen
- date (string): Datum im Format YYYY-MM-DD
- time_start (string): Startzeit im Format HH:MM
- time_end (string | null): Endzeit im Format HH:MM oder null
- venue_name (string): Name der Location
- venue_address (string): Adresse
- city (string): Stadt
- category (string): Eine von: nightlife, food_drink, concert, festival, sports, art, family, other
- price_info (string): Preisinformation (z.B. "10€", "Kostenlos", "Ab 15€")
- confidence (number): Wie sicher du dir bist, 0.0 bis 1.0

Wenn keine Events gefunden werden, gib ein leeres Array zurück: []
Antworte NUR mit dem JSON-Array, kein anderer Text."""


class AIEventExtractor:
    """Extracts events from a single page or a pasted text blob.

    Confidence is returned as reported by the model; callers decide whether to filter on it.
    """

    def __init__(self, api_key: str, gateway: GeminiGateway):
        self.api_key = (api_key or "").strip()
        self.gateway = gateway

    async def extract_from_url(self, url: str) -> List[ExtractedEvent]:
        self._require_key()
        url = url.strip()
        # The search tool lets the model open the page itself.
        request = GeminiRequest(
            api_key=self.api_key,
            parts=[EXTRACTION_PROMPT, f"URL: {url}\n\nLies die Seite unter dieser URL und extrahiere alle Events."],
            tools=[GOOGLE_SEARCH_TOOL],
            temperature=0.1,
            max_output_tokens=4096,
        )
        return await self._extract(request, source=url)

    async def extract_from_text(self, text: str, source_url: Optional[str] = None) -> List[ExtractedEvent]:
        self._require_key()
        header = f"Quelle: {source_url}\n\n" if source_url else ""
        request = GeminiRequest(
            api_key=self.api_key,
            parts=[EXTRACTION_PROMPT, f"{header}Inhalt:\n{truncate(text, MAX_CONTENT_CHARS)}"],
            temperature=0.1,
            max_output_tokens=4096,
        )
        return await self._extract(request, source=source_url or "text")

    def _require_key(self) -> None:
        if not self.api_key:
            raise ConfigurationError("Gemini API key is not configured. Set GEMINI_API_KEY in .env.")

    async def _extract(self, request: GeminiRequest, source: str) -> List[ExtractedEvent]:
        result = await self.gateway.generate(request)
        rows = _parse_rows(result.text)
        events = [e for e in (ExtractedEvent.from_raw(row) for row in rows) if e is not None]
        logger.info("AI extraction finished", extra={"source": source, "raw": len(rows), "kept": len(events)})
        return events


def _parse_rows(text: str) -> List[Any]:
    if "[" not in (text or ""):
        return []
    rows = recover_json_array(text)
    if rows is None:
        raise ParseError("AI response could not be parsed as JSON.")
    return rows
