"""
Ranking engine: aggregate blending, venue scoring, and per-city leaders.

Everything here is a pure function of its arguments (plus the `now` passed in),
so the catalog reconcile cycle and the offline `rank` CLI command share it.

Score for a venue with reviews R at time T:

    quality   = mean(review.rate)                                 (0 if R empty)
    quantity  = |R|
    actuality = mean(1 - minutes_since(review.date) / 525600)     (0 if R empty)
    score     = 0.4 * quality + 0.3 * quantity + 0.3 * actuality

Actuality goes negative for reviews older than a year and is not clamped.
Quantity is unbounded, so venues with many reviews dominate.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Sequence

from hotelier.domain.models import RankEntry, Ratings, Review, Venue

WEIGHT_QUALITY = 0.4
WEIGHT_QUANTITY = 0.3
WEIGHT_ACTUALITY = 0.3
MINUTES_PER_YEAR = 365 * 24 * 60

Scorer = Callable[[Venue, datetime], float]


def blend(current: float, incoming: float) -> float:
    """Adopt `incoming` over a zero aggregate, otherwise halve the sum."""
    if current == 0:
        return incoming
    return (current + incoming) / 2


def blend_ratings(current: Ratings, incoming: Ratings) -> None:
    current.cleaning = blend(current.cleaning, incoming.cleaning)
    current.position = blend(current.position, incoming.position)
    current.services = blend(current.services, incoming.services)
    current.quality = blend(current.quality, incoming.quality)


def apply_review(venue: Venue, review: Review) -> None:
    """Fold a review into the venue's aggregates and review list."""
    venue.rate = blend(venue.rate, review.rate)
    blend_ratings(venue.ratings, review.ratings)
    venue.reviews.append(review)
    venue.review_count += 1


def _minutes_between(earlier: datetime, later: datetime) -> int:
    # Truncates toward zero, so a review dated slightly ahead counts as 0 minutes.
    return int((later - earlier).total_seconds() / 60)


def compute_score(venue: Venue, now: datetime) -> float:
    reviews = venue.reviews
    if not reviews:
        return 0.0

    quality = sum(review.rate for review in reviews) / len(reviews)
    quantity = float(len(reviews))
    actuality = sum(
        1.0 - _minutes_between(review.date, now) / MINUTES_PER_YEAR for review in reviews
    ) / len(reviews)

    return WEIGHT_QUALITY * quality + WEIGHT_QUANTITY * quantity + WEIGHT_ACTUALITY * actuality


def rescore(venues: Iterable[Venue], now: datetime, scorer: Scorer = compute_score) -> None:
    for venue in venues:
        venue.score = scorer(venue, now)


def select_leaders(venues: Sequence[Venue]) -> Dict[str, RankEntry]:
    """
    Pick the highest-scoring venue of each city.

    Ties keep the first maximum in `venues` order, i.e. the record store order.
    """
    leaders: Dict[str, Venue] = {}
    for venue in venues:
        best = leaders.get(venue.city)
        if best is None or venue.score > best.score:
            leaders[venue.city] = venue
    return {city: RankEntry.from_venue(venue) for city, venue in leaders.items()}


def change_lines(
    previous: Mapping[str, RankEntry], current: Mapping[str, RankEntry]
) -> List[str]:
    """One announcement line per city whose leader differs from the previous cycle."""
    lines: List[str] = []
    for city, entry in current.items():
        if previous.get(city) != entry:
            lines.append(f"\n1st ranked Hotel in {city} is now {entry.venue_name}")
    return lines


__all__ = [
    "WEIGHT_QUALITY",
    "WEIGHT_QUANTITY",
    "WEIGHT_ACTUALITY",
    "Scorer",
    "blend",
    "blend_ratings",
    "apply_review",
    "compute_score",
    "rescore",
    "select_leaders",
    "change_lines",
]
