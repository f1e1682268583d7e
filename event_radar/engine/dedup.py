from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from event_radar.models import Event, SourceType, Venue

logger = logging.getLogger(__name__)

# Unlisted sources (platform, community, ...) rank 0, below AI discoveries.
SOURCE_PRIORITY: Dict[SourceType, int] = {
    SourceType.API_TICKETMASTER: 2,
    SourceType.AI_DISCOVERED: 1,
}

VENUE_SIMILARITY_THRESHOLD = 0.85
TITLE_SIMILARITY_THRESHOLD = 0.8
NEARBY_TITLE_SIMILARITY_THRESHOLD = 0.6
COORDINATE_TOLERANCE_DEG = 0.005  # roughly 500 m
START_TIME_WINDOW = timedelta(minutes=90)

_NON_WORD_RE = re.compile(r"[^a-z0-9äöüß]")


def normalize_for_comparison(text: str) -> str:
    return _NON_WORD_RE.sub("", (text or "").lower()).strip()


def levenshtein_distance(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def levenshtein_similarity(a: str, b: str) -> float:
    if a == b:
        return 1.0
    longest = max(len(a), len(b))
    return 1.0 - levenshtein_distance(a, b) / longest


def source_priority(source_type: SourceType) -> int:
    return SOURCE_PRIORITY.get(source_type, 0)


def coordinates_close(a: Optional[Venue], b: Optional[Venue]) -> bool:
    if a is None or b is None or not a.has_coordinates or not b.has_coordinates:
        return False
    return abs(a.lat - b.lat) <= COORDINATE_TOLERANCE_DEG and abs(a.lng - b.lng) <= COORDINATE_TOLERANCE_DEG


def same_location(a: Event, b: Event) -> bool:
    venue_a = normalize_for_comparison(a.venue.name if a.venue else "")
    venue_b = normalize_for_comparison(b.venue.name if b.venue else "")
    if venue_a and venue_b:
        if venue_a == venue_b or venue_a in venue_b or venue_b in venue_a:
            return True
        if levenshtein_similarity(venue_a, venue_b) > VENUE_SIMILARITY_THRESHOLD:
            return True
    return coordinates_close(a.venue, b.venue)


def start_times_overlap(a: Event, b: Event, window: timedelta = START_TIME_WINDOW) -> bool:
    if a.time_start is None or b.time_start is None:
        return False
    start_a = datetime.combine(a.event_date, a.time_start)
    start_b = datetime.combine(b.event_date, b.time_start)
    return abs(start_a - start_b) <= window


def are_similar_events(a: Event, b: Event) -> bool:
    if a.event_date != b.event_date:
        return False

    if same_location(a, b) and start_times_overlap(a, b):
        return True

    title_a = normalize_for_comparison(a.title)
    title_b = normalize_for_comparison(b.title)
    if title_a and title_b:
        if title_a == title_b or title_a in title_b or title_b in title_a:
            return True
    title_similarity = levenshtein_similarity(title_a, title_b)
    if title_similarity > TITLE_SIMILARITY_THRESHOLD:
        return True

    return coordinates_close(a.venue, b.venue) and title_similarity > NEARBY_TITLE_SIMILARITY_THRESHOLD


def _should_replace(existing: Event, candidate: Event) -> bool:
    existing_rank = source_priority(existing.source_type)
    candidate_rank = source_priority(candidate.source_type)
    if candidate_rank != existing_rank:
        return candidate_rank > existing_rank
    return bool(candidate.image_url) and not existing.image_url


def deduplicate_events(events: Iterable[Event]) -> List[Event]:
    accepted: List[Event] = []
    replaced = 0
    for event in events:
        for idx, existing in enumerate(accepted):
            if not are_similar_events(existing, event):
                continue
            if _should_replace(existing, event):
                accepted[idx] = event
                replaced += 1
            break
        else:
            accepted.append(event)

    logger.debug("Deduplicated events", extra={"kept": len(accepted), "replaced": replaced})
    return accepted


def merge_events(events: Iterable[Event]) -> List[Event]:
    """Deduplicate across sources and sort by event date (stable within a date)."""
    return sorted(deduplicate_events(events), key=lambda e: e.event_date)
