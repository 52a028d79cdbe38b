from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from hotelier.domain.models import RankEntry, Ratings, Review, Venue
from hotelier.services.ranking import (
    MINUTES_PER_YEAR,
    _minutes_between,
    apply_review,
    blend,
    change_lines,
    compute_score,
    rescore,
    select_leaders,
)

NOW = datetime(2024, 6, 11, 12, 0, tzinfo=timezone.utc)


def _review(rate: float, age: timedelta = timedelta(0), **ratings: float) -> Review:
    return Review(user="mario", rate=rate, ratings=Ratings(**ratings), date=NOW - age)


def test_blend_adopts_incoming_over_zero_then_halves() -> None:
    assert blend(0, 4) == 4
    assert blend(4, 2) == 3
    assert blend(3, 0) == 1.5


def test_apply_review_blend_is_order_dependent() -> None:
    first = Venue(id=1, name="A", city="Roma")
    apply_review(first, _review(4))
    apply_review(first, _review(2))

    second = Venue(id=2, name="B", city="Roma")
    apply_review(second, _review(2))
    apply_review(second, _review(4))

    assert first.rate == 3
    assert second.rate == 3
    apply_review(first, _review(5))
    apply_review(second, _review(1))
    assert first.rate == 4
    assert second.rate == 2


def test_apply_review_blends_every_sub_rating_and_counts() -> None:
    venue = Venue(id=1, name="A", city="Roma", ratings=Ratings(cleaning=4, position=0))

    apply_review(venue, _review(3, cleaning=2, position=5, services=1, quality=3))

    assert venue.ratings == Ratings(cleaning=3, position=5, services=1, quality=3)
    assert venue.review_count == 1
    assert len(venue.reviews) == 1


def test_score_is_zero_without_reviews() -> None:
    assert compute_score(Venue(id=1, name="A", city="Roma"), NOW) == 0.0


def test_score_weights_quality_quantity_and_actuality() -> None:
    venue = Venue(id=1, name="A", city="Roma")
    venue.reviews = [_review(4), _review(2, age=timedelta(minutes=MINUTES_PER_YEAR // 2))]

    quality = 3.0
    quantity = 2.0
    actuality = (1.0 + 0.5) / 2
    assert compute_score(venue, NOW) == pytest.approx(0.4 * quality + 0.3 * quantity + 0.3 * actuality)


def test_actuality_uses_whole_minutes_and_is_not_clamped() -> None:
    fresh = Venue(id=1, name="A", city="Roma", reviews=[_review(0, age=timedelta(seconds=59))])
    ancient = Venue(id=2, name="B", city="Roma", reviews=[_review(0, age=timedelta(days=730))])

    assert compute_score(fresh, NOW) == pytest.approx(0.3 + 0.3)
    assert compute_score(ancient, NOW) < 0.3


def test_minutes_between_truncates_toward_zero_for_future_reviews() -> None:
    assert _minutes_between(NOW - timedelta(seconds=90), NOW) == 1
    assert _minutes_between(NOW + timedelta(seconds=30), NOW) == 0
    assert _minutes_between(NOW + timedelta(seconds=90), NOW) == -1


def test_select_leaders_keeps_first_maximum_in_store_order() -> None:
    venues = [
        Venue(id=1, name="A", city="Roma", score=2.0),
        Venue(id=2, name="B", city="Roma", score=2.0),
        Venue(id=3, name="C", city="Milano", score=1.0),
    ]

    leaders = select_leaders(venues)

    assert leaders["Roma"].venue_id == 1
    assert leaders["Milano"].venue_name == "C"


def test_rescore_uses_injected_scorer() -> None:
    venues = [Venue(id=1, name="A", city="Roma"), Venue(id=5, name="B", city="Roma")]

    rescore(venues, NOW, lambda venue, now: float(venue.id))

    assert [venue.score for venue in venues] == [1.0, 5.0]


def test_change_lines_only_for_cities_whose_leader_changed() -> None:
    previous = {
        "Roma": RankEntry(venue_id=1, city="Roma", venue_name="A"),
        "Milano": RankEntry(venue_id=3, city="Milano", venue_name="C"),
    }
    current = {
        "Roma": RankEntry(venue_id=2, city="Roma", venue_name="B"),
        "Milano": RankEntry(venue_id=3, city="Milano", venue_name="C", score=9.0),
        "Bari": RankEntry(venue_id=4, city="Bari", venue_name="D"),
    }

    assert change_lines(previous, current) == [
        "\n1st ranked Hotel in Roma is now B",
        "\n1st ranked Hotel in Bari is now D",
    ]
