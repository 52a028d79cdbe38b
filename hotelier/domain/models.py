"""
Domain models for the HOTELIER server.

Accounts and venues (hotels) are pydantic models whose aliases match the keys
of the JSON record files, so the same classes validate records on load and
serialize them on write. Legacy record files are accepted too: Italian badge
level names and textual date formats are parsed on load.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

# Review dates in legacy record files, e.g. "Jun 11, 2024, 10:20:30 AM".
_LEGACY_REVIEW_DATE = "%b %d, %Y, %I:%M:%S %p"
# Badge dates carry a zone token in fifth position, e.g. "Tue Jun 11 10:20:30 CEST 2024".
_LEGACY_BADGE_DATE = "%a %b %d %H:%M:%S %Y"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_legacy_datetime(text: str) -> datetime | None:
    normalized = " ".join(text.replace("\u202f", " ").split())
    try:
        return datetime.strptime(normalized, _LEGACY_REVIEW_DATE)
    except ValueError:
        pass
    tokens = normalized.split(" ")
    if len(tokens) == 6:
        del tokens[4]
        try:
            return datetime.strptime(" ".join(tokens), _LEGACY_BADGE_DATE)
        except ValueError:
            pass
    return None


def _coerce_datetime(value: Any) -> Any:
    if isinstance(value, str):
        legacy = _parse_legacy_datetime(value)
        if legacy is not None:
            return legacy
    return value


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Level(IntEnum):
    """Badge levels, ordered; the ordinal is also the review-count threshold."""

    REVIEWER = 0
    EXPERT_REVIEWER = 1
    CONTRIBUTOR = 2
    EXPERT_CONTRIBUTOR = 3
    SUPER_CONTRIBUTOR = 4

    @property
    def label(self) -> str:
        return self.name.replace("_", " ")

    @classmethod
    def parse(cls, value: Any) -> "Level":
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            key = value.strip().upper().replace(" ", "_")
            if key in cls.__members__:
                return cls[key]
            if key in _LEGACY_LEVEL_NAMES:
                return _LEGACY_LEVEL_NAMES[key]
            if key.isdigit():
                return cls(int(key))
        raise ValueError(f"Unknown badge level {value!r}")


_LEGACY_LEVEL_NAMES = {
    "RECENSORE": Level.REVIEWER,
    "RECENSORE_ESPERTO": Level.EXPERT_REVIEWER,
    "CONTRIBUTORE": Level.CONTRIBUTOR,
    "CONTRIBUTORE_ESPERTO": Level.EXPERT_CONTRIBUTOR,
    "CONTRIBUTORE_SUPER": Level.SUPER_CONTRIBUTOR,
}


def level_for_review_count(review_count: int) -> Level:
    """Map a review count onto the badge thresholds {0, 1, 2, 3, 4}."""
    return Level(min(max(review_count, 0), int(Level.SUPER_CONTRIBUTOR)))


class Badge(BaseModel):
    """
    Badge level plus the time it was last redeemed.

    The level only ever moves up; `promote` is a no-op at the same or a lower
    level, which makes recomputation idempotent.
    """

    level: Level = Level.REVIEWER
    date: datetime = Field(default_factory=utcnow)

    @field_validator("level", mode="before")
    @classmethod
    def _parse_level(cls, value: Any) -> Level:
        return Level.parse(value)

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> Any:
        return _coerce_datetime(value)

    @field_validator("date")
    @classmethod
    def _utc_date(cls, value: datetime) -> datetime:
        return _ensure_utc(value)

    @field_serializer("level")
    def _serialize_level(self, level: Level) -> str:
        return level.name

    def promote(self, level: Level) -> bool:
        """Raise the badge to `level` if it is higher; return whether it changed."""
        if level <= self.level:
            return False
        self.level = level
        self.date = utcnow()
        return True


class Ratings(BaseModel):
    """The four sub-scores, each in [0, 5]."""

    cleaning: float = Field(0.0, ge=0, le=5)
    position: float = Field(0.0, ge=0, le=5)
    services: float = Field(0.0, ge=0, le=5)
    quality: float = Field(0.0, ge=0, le=5)


class Review(BaseModel):
    """A single submission; immutable once created."""

    model_config = ConfigDict(frozen=True)

    user: str
    rate: float = Field(..., ge=0, le=5)
    ratings: Ratings = Field(default_factory=Ratings)
    date: datetime = Field(default_factory=utcnow)

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> Any:
        return _coerce_datetime(value)

    @field_validator("date")
    @classmethod
    def _utc_date(cls, value: datetime) -> datetime:
        return _ensure_utc(value)


class Account(BaseModel):
    """
    A registered credential identity.

    `review_count` is persisted as `number_review` for compatibility with
    existing account files.
    """

    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., frozen=True)
    password: str
    badge: Badge = Field(default_factory=Badge)
    review_count: int = Field(0, alias="number_review", ge=0)

    @field_validator("badge", mode="before")
    @classmethod
    def _default_badge(cls, value: Any) -> Any:
        return Badge() if value is None else value

    def refresh_badge(self) -> bool:
        return self.badge.promote(level_for_review_count(self.review_count))

    def record_review(self) -> None:
        self.review_count += 1
        self.refresh_badge()


class Venue(BaseModel):
    """
    A reviewable catalog entry (hotel).

    `rate` and `ratings` are blended aggregates, `score` is derived by the
    ranking cycle. `review_count` is persisted as `Number_reviews`.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    description: str = ""
    city: str
    phone: str = ""
    services: list[str] = Field(default_factory=list)
    rate: float = 0.0
    ratings: Ratings = Field(default_factory=Ratings)
    reviews: list[Review] = Field(default_factory=list)
    review_count: int = Field(0, alias="Number_reviews", ge=0)
    score: float = 0.0

    def matches(self, name: str, city: str) -> bool:
        return self.name.casefold() == name.casefold() and self.in_city(city)

    def in_city(self, city: str) -> bool:
        return self.city.casefold() == city.casefold()


@dataclass(frozen=True)
class RankEntry:
    """Top venue of a city for one ranking cycle; equal when the venue id is."""

    venue_id: int
    city: str = field(compare=False)
    venue_name: str = field(compare=False)
    score: float = field(compare=False, default=0.0)

    @classmethod
    def from_venue(cls, venue: Venue) -> "RankEntry":
        return cls(venue_id=venue.id, city=venue.city, venue_name=venue.name, score=venue.score)


__all__ = [
    "Level",
    "level_for_review_count",
    "Badge",
    "Ratings",
    "Review",
    "Account",
    "Venue",
    "RankEntry",
    "utcnow",
]
