from __future__ import annotations

from typing import Any, Dict, Optional

from event_radar.models import EventCategory

TICKETMASTER_SEGMENT_MAP: Dict[str, EventCategory] = {
    "Music": EventCategory.CONCERT,
    "Sports": EventCategory.SPORTS,
    "Arts & Theatre": EventCategory.ART,
    "Film": EventCategory.ART,
    "Miscellaneous": EventCategory.OTHER,
    "Undefined": EventCategory.OTHER,
}

TICKETMASTER_GENRE_MAP: Dict[str, EventCategory] = {
    "Club": EventCategory.NIGHTLIFE,
    "Dance/Electronic": EventCategory.NIGHTLIFE,
    "DJ": EventCategory.NIGHTLIFE,
    "Rock": EventCategory.CONCERT,
    "Pop": EventCategory.CONCERT,
    "Hip-Hop/Rap": EventCategory.CONCERT,
    "R&B": EventCategory.CONCERT,
    "Jazz": EventCategory.CONCERT,
    "Classical": EventCategory.CONCERT,
    "Metal": EventCategory.CONCERT,
    "Alternative": EventCategory.CONCERT,
    "Folk": EventCategory.CONCERT,
    "Country": EventCategory.CONCERT,
    "Latin": EventCategory.CONCERT,
    "Reggae": EventCategory.CONCERT,
    "Blues": EventCategory.CONCERT,
    "World": EventCategory.CONCERT,
    "Comedy": EventCategory.ART,
    "Theatre": EventCategory.ART,
    "Opera": EventCategory.ART,
    "Dance": EventCategory.ART,
    "Circus & Specialty Acts": EventCategory.FAMILY,
    "Fairs & Festivals": EventCategory.FESTIVAL,
    "Festival": EventCategory.FESTIVAL,
    "Food & Drink": EventCategory.FOOD_DRINK,
    "Family": EventCategory.FAMILY,
    "Soccer": EventCategory.SPORTS,
    "Football": EventCategory.SPORTS,
    "Basketball": EventCategory.SPORTS,
    "Ice Hockey": EventCategory.SPORTS,
    "Tennis": EventCategory.SPORTS,
    "Boxing": EventCategory.SPORTS,
    "Motorsports/Racing": EventCategory.SPORTS,
}

_VALID_VALUES = {c.value for c in EventCategory}


def valid_category(value: Any) -> EventCategory:
    if isinstance(value, EventCategory):
        return value
    raw = str(value or "").strip().lower()
    if raw in _VALID_VALUES:
        return EventCategory(raw)
    return EventCategory.OTHER


def map_ticketmaster_category(segment_name: Optional[str], genre_name: Optional[str]) -> EventCategory:
    # Genre is more specific than segment, so it wins when both are mapped.
    if genre_name and genre_name in TICKETMASTER_GENRE_MAP:
        return TICKETMASTER_GENRE_MAP[genre_name]
    if segment_name and segment_name in TICKETMASTER_SEGMENT_MAP:
        return TICKETMASTER_SEGMENT_MAP[segment_name]
    return EventCategory.OTHER
