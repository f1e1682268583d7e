from __future__ import annotations

import math
import re
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


NO_PRICE_INFO = "Keine Angabe"

_SINGLE_DIGIT_HOUR_RE = re.compile(r"^(\d)(?=:)")


class EventCategory(str, Enum):
    NIGHTLIFE = "nightlife"
    FOOD_DRINK = "food_drink"
    CONCERT = "concert"
    FESTIVAL = "festival"
    SPORTS = "sports"
    ART = "art"
    FAMILY = "family"
    OTHER = "other"


class SourceType(str, Enum):
    API_TICKETMASTER = "api_ticketmaster"
    AI_DISCOVERED = "ai_discovered"
    AI_SCRAPED = "ai_scraped"
    PLATFORM = "platform"
    VERIFIED_ORGANIZER = "verified_organizer"
    VERIFIED_USER = "verified_user"
    COMMUNITY = "community"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _pad_hour(value: str) -> str:
    return _SINGLE_DIGIT_HOUR_RE.sub(r"0\1", value)


class Venue(BaseModel):
    id: str
    name: str
    address: str = ""
    city: str = ""
    lat: float = 0.0
    lng: float = 0.0
    google_place_id: Optional[str] = None
    ticketmaster_id: Optional[str] = None
    website: Optional[str] = None
    instagram: Optional[str] = None
    phone: Optional[str] = None
    verified: bool = False
    owner_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def has_coordinates(self) -> bool:
        # (0, 0) marks a venue that was never geocoded.
        return not (self.lat == 0.0 and self.lng == 0.0)


class Event(BaseModel):
    id: str
    title: str
    description: str = ""
    venue_id: Optional[str] = None
    venue: Optional[Venue] = None
    event_date: date
    time_start: Optional[time] = None
    time_end: Optional[time] = None
    category: EventCategory = EventCategory.OTHER
    price_info: str = ""
    source_type: SourceType
    source_url: Optional[str] = None
    ai_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    image_url: Optional[str] = None
    status: str = "active"
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    saves_count: int = Field(default=0, ge=0)
    going_count: int = Field(default=0, ge=0)
    confirmations_count: int = Field(default=0, ge=0)
    photos_count: int = Field(default=0, ge=0)

    @property
    def effective_confidence(self) -> float:
        return 1.0 if self.ai_confidence is None else self.ai_confidence


class EventCandidate(BaseModel):
    """One event record as returned by the language model, after validation."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: str = ""
    event_date: date = Field(alias="date")
    time_start: time
    time_end: Optional[time] = None
    venue_name: str
    venue_address: str = ""
    city: str = ""
    category: EventCategory = EventCategory.OTHER
    price_info: str = ""
    source_url: Optional[str] = None
    confidence: float = 0.0

    @field_validator("title", "venue_name", mode="before")
    @classmethod
    def _required_text(cls, value: Any) -> str:
        text = str(value).strip() if isinstance(value, (str, int, float)) else ""
        if not text:
            raise ValueError("must be a non-empty string")
        return text

    @field_validator("description", "venue_address", "city", "price_info", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("source_url", mode="before")
    @classmethod
    def _url(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value.strip():
            return None
        return value.strip()

    @field_validator("time_start", mode="before")
    @classmethod
    def _start(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _pad_hour(value.strip())[:5]
        return value

    @field_validator("time_end", mode="before")
    @classmethod
    def _end(cls, value: Any) -> Optional[time]:
        if isinstance(value, time):
            return value
        if not isinstance(value, str) or not value.strip():
            return None
        try:
            return time.fromisoformat(_pad_hour(value.strip())[:5])
        except ValueError:
            return None

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value: Any) -> EventCategory:
        from event_radar.engine.categories import valid_category

        return valid_category(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> float:
        try:
            score = float(value)
        except (TypeError, ValueError):
            return 0.0
        if not math.isfinite(score):
            return 0.0
        return max(0.0, min(1.0, score))

    @classmethod
    def from_raw(cls, row: Any) -> Optional["EventCandidate"]:
        if not isinstance(row, dict):
            return None
        try:
            return cls.model_validate(row)
        except ValidationError:
            return None


class ExtractedEvent(EventCandidate):
    pass


class ScanRecord(BaseModel):
    city: str
    last_scanned: datetime
