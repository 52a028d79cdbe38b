from __future__ import annotations

from datetime import datetime
from typing import Dict, List

import pytest

from hotelier.domain.errors import NotAuthenticated, PersistenceError, VenueNotFound
from hotelier.domain.models import Account, Level, Review, Venue
from hotelier.infrastructure.record_store import RecordStore
from hotelier.services.catalog import CatalogStore


def _account() -> Account:
    return Account(username="mario", password="s3cret!pw")


class TableScorer:
    """Scores venues from a mutable id -> score table."""

    def __init__(self, scores: Dict[int, float]) -> None:
        self.scores = scores

    def __call__(self, venue: Venue, now: datetime) -> float:
        return self.scores.get(venue.id, 0.0)


def test_search_one_is_case_insensitive_and_promotes_into_cache(
    catalog: CatalogStore, seeded_venues: List[Venue]
) -> None:
    found = catalog.search_one("hotel roma 2", "ROMA")

    assert found is not None and found.id == 2
    assert catalog.pending_count() == 1
    assert catalog.search_one("Hotel Roma 2", "Roma") is found


def test_search_one_returns_none_when_absent(
    catalog: CatalogStore, seeded_venues: List[Venue]
) -> None:
    assert catalog.search_one("Hotel Roma 1", "Milano") is None
    assert catalog.pending_count() == 0


def test_search_all_by_city_matches_case_insensitively_in_store_order(
    catalog: CatalogStore, seeded_venues: List[Venue]
) -> None:
    assert [venue.id for venue in catalog.search_all_by_city("rOmA")] == [1, 2]
    assert catalog.search_all_by_city("Atlantis") == []
    assert catalog.pending_count() == 0


def test_submit_review_requires_account_and_venue(
    catalog: CatalogStore, seeded_venues: List[Venue]
) -> None:
    review = Review(user="mario", rate=4)

    with pytest.raises(NotAuthenticated) as excinfo:
        catalog.submit_review(None, seeded_venues[0], review)
    assert excinfo.value.message == "User must be logged in to post a review"
    with pytest.raises(VenueNotFound):
        catalog.submit_review(_account(), None, review)


def test_submit_review_updates_venue_and_account(
    catalog: CatalogStore, seeded_venues: List[Venue]
) -> None:
    account = _account()
    venue = catalog.search_one("Hotel Roma 1", "Roma")

    catalog.submit_review(account, venue, Review(user="mario", rate=4))
    catalog.submit_review(account, venue, Review(user="mario", rate=2))

    assert venue.rate == 3
    assert venue.review_count == 2
    assert account.review_count == 2
    assert account.badge.level is Level.CONTRIBUTOR


def test_submit_review_after_reconcile_does_not_lose_earlier_reviews(
    catalog: CatalogStore, seeded_venues: List[Venue], venue_store: RecordStore[Venue]
) -> None:
    account = _account()
    stale = catalog.search_one("Hotel Roma 1", "Roma")
    catalog.submit_review(account, stale, Review(user="mario", rate=4))
    catalog.reconcile_and_rank()

    catalog.submit_review(account, stale, Review(user="mario", rate=2))
    catalog.reconcile_and_rank()

    stored = venue_store.find(lambda venue: venue.id == 1)
    assert stored.review_count == 2
    assert stored.rate == 3


def test_reconcile_persists_scores_and_clears_cache(
    venue_store: RecordStore[Venue], seeded_venues: List[Venue], publisher
) -> None:
    catalog = CatalogStore(venue_store, publisher=publisher)
    venue = catalog.search_one("Hotel Milano 1", "Milano")
    catalog.submit_review(_account(), venue, Review(user="mario", rate=5))

    result = catalog.reconcile_and_rank()

    assert result.merged == 1
    assert result.venues == len(seeded_venues)
    assert catalog.pending_count() == 0
    stored = venue_store.find(lambda candidate: candidate.id == 3)
    assert stored.review_count == 1
    assert stored.score > 0
    assert set(catalog.ranking()) == {"Roma", "Milano"}


def test_leader_flip_publishes_exactly_one_line(
    venue_store: RecordStore[Venue], seeded_venues: List[Venue], publisher
) -> None:
    scorer = TableScorer({1: 2.0, 2: 1.0, 3: 1.0})
    catalog = CatalogStore(venue_store, publisher=publisher, scorer=scorer)

    first = catalog.reconcile_and_rank()
    assert first.notified is True
    publisher.messages.clear()

    unchanged = catalog.reconcile_and_rank()
    assert unchanged.changes == []
    assert publisher.messages == []

    scorer.scores[2] = 3.0
    flipped = catalog.reconcile_and_rank()

    assert flipped.changes == ["\n1st ranked Hotel in Roma is now Hotel Roma 2"]
    assert publisher.messages == ["\n1st ranked Hotel in Roma is now Hotel Roma 2"]
    assert catalog.ranking()["Roma"].venue_id == 2


def test_failed_write_keeps_cache_and_announces_change_once(
    venue_store: RecordStore[Venue],
    seeded_venues: List[Venue],
    publisher,
    monkeypatch,
) -> None:
    scorer = TableScorer({1: 2.0, 2: 1.0, 3: 1.0})
    catalog = CatalogStore(venue_store, publisher=publisher, scorer=scorer)
    catalog.reconcile_and_rank()
    publisher.messages.clear()

    catalog.search_one("Hotel Roma 2", "Roma")
    scorer.scores[2] = 3.0

    def failing_save(records) -> None:
        raise PersistenceError("disk full")

    monkeypatch.setattr(venue_store, "save_all", failing_save)
    with pytest.raises(PersistenceError):
        catalog.reconcile_and_rank()
    assert catalog.pending_count() == 1
    assert catalog.ranking()["Roma"].venue_id == 1
    assert publisher.messages == []

    monkeypatch.undo()
    retried = catalog.reconcile_and_rank()
    assert retried.changes == ["\n1st ranked Hotel in Roma is now Hotel Roma 2"]
    assert len(publisher.messages) == 1


def test_reconcile_without_publisher_still_ranks(
    venue_store: RecordStore[Venue], seeded_venues: List[Venue]
) -> None:
    catalog = CatalogStore(venue_store)

    result = catalog.reconcile_and_rank()

    assert result.notified is False
    assert len(result.changes) == 2
