from __future__ import annotations

import logging
import re
from datetime import date, timedelta
from typing import Any, Iterable, List, Sequence
from urllib.parse import urlparse

from event_radar.models import EventCandidate

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.7
GROUNDING_PENALTY = 0.85
DISCOVERY_WINDOW_DAYS = 14

_SCHEME_RE = re.compile(r"^https?://(www\.)?", re.IGNORECASE)


def normalize_url(url: str) -> str:
    """Reduce a URL to host + path so citation and source URLs can be compared."""
    raw = (url or "").strip()
    try:
        parsed = urlparse(raw)
    except ValueError:
        parsed = None
    if parsed is not None and parsed.scheme and parsed.hostname:
        host = parsed.hostname
        if host.startswith("www."):
            host = host[4:]
        return host + parsed.path.rstrip("/")
    return _SCHEME_RE.sub("", raw).rstrip("/")


def is_grounded(source_url: str, grounding_urls: Iterable[str]) -> bool:
    source = normalize_url(source_url)
    if not source:
        return False
    for url in grounding_urls:
        grounded = normalize_url(url)
        if grounded and (grounded in source or source in grounded):
            return True
    return False


def filter_discovered(
    rows: Sequence[Any],
    grounding_urls: Sequence[str],
    today: date,
    window_days: int = DISCOVERY_WINDOW_DAYS,
    min_confidence: float = MIN_CONFIDENCE,
    grounding_penalty: float = GROUNDING_PENALTY,
) -> List[EventCandidate]:
    end_date = today + timedelta(days=window_days)
    grounded_set = [u for u in grounding_urls if u]

    out: List[EventCandidate] = []
    dropped = 0
    for row in rows:
        candidate = EventCandidate.from_raw(row)
        if candidate is None or not candidate.source_url:
            dropped += 1
            continue
        if candidate.confidence < min_confidence:
            dropped += 1
            continue
        if not (today <= candidate.event_date <= end_date):
            dropped += 1
            continue

        confidence = candidate.confidence
        if grounded_set and not is_grounded(candidate.source_url, grounded_set):
            confidence *= grounding_penalty
        if confidence < min_confidence:
            dropped += 1
            continue

        out.append(candidate.model_copy(update={"confidence": confidence}))

    if dropped:
        logger.info("Discarded AI candidates", extra={"dropped": dropped, "kept": len(out)})
    return out
