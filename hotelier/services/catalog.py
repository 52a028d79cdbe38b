"""
Catalog store: venue lookups, review submission, and the reconcile+rank cycle.

One re-entrant lock guards the venue write-back cache, the per-city ranking
table and the venue record file together. The credential store has its own
lock, so the two flush jobs run concurrently and there is no cross-store
atomicity: a reviewed venue can be persisted before the reviewer's updated
review count is, or the other way round.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from hotelier.domain.errors import NotAuthenticated, VenueNotFound
from hotelier.domain.models import Account, RankEntry, Review, Venue, utcnow
from hotelier.infrastructure.record_store import RecordStore
from hotelier.services.notifier import NotificationPublisher
from hotelier.services.ranking import (
    Scorer,
    apply_review,
    change_lines,
    compute_score,
    rescore,
    select_leaders,
)
from hotelier.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of one reconcile+rank cycle."""

    merged: int = 0
    venues: int = 0
    changes: List[str] = field(default_factory=list)
    notified: bool = False

    @property
    def message(self) -> str:
        return "".join(self.changes)


class CatalogStore:
    def __init__(
        self,
        store: RecordStore[Venue],
        publisher: Optional[NotificationPublisher] = None,
        scorer: Scorer = compute_score,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._publisher = publisher
        self._scorer = scorer
        self._clock = clock
        self._lock = threading.RLock()
        self._cache: Dict[int, Venue] = {}
        self._ranking: Dict[str, RankEntry] = {}

    def search_one(self, name: str, city: str) -> Optional[Venue]:
        """
        Case-insensitive exact lookup on (name, city).

        The cache is consulted first; a hit in the record file is promoted into
        the cache so later lookups and reviews work on the same object.
        """
        with self._lock:
            for venue in self._cache.values():
                if venue.matches(name, city):
                    return venue

            found = self._store.find(lambda venue: venue.matches(name, city))
            if found is not None:
                self._cache[found.id] = found
            return found

    def search_all_by_city(self, city: str) -> List[Venue]:
        """Every venue of `city` (case-insensitive), in record file order."""
        with self._lock:
            return [venue for venue in self._store.load_all() if venue.in_city(city)]

    def submit_review(
        self, account: Optional[Account], venue: Optional[Venue], review: Review
    ) -> None:
        if account is None:
            raise NotAuthenticated()
        if venue is None:
            raise VenueNotFound()
        with self._lock:
            # The caller's copy may predate a reconcile that cleared the cache.
            current = self._cache.get(venue.id)
            if current is None:
                current = self._store.find(lambda candidate: candidate.id == venue.id) or venue
            apply_review(current, review)
            account.record_review()
            self._cache[current.id] = current
        log.info(
            "Review accepted",
            extra={"username": account.username, "venue_id": venue.id, "rate": review.rate},
        )

    def ranking(self) -> Dict[str, RankEntry]:
        with self._lock:
            return dict(self._ranking)

    def pending_count(self) -> int:
        with self._lock:
            return len(self._cache)

    def reconcile_and_rank(self) -> ReconcileResult:
        """
        Merge pending venues into the record file and recompute the ranking.

        The new ranking table and the cache clear are committed only after the
        record file is written; a PersistenceError leaves both untouched, so
        the next cycle retries the same writes and announces the same changes.
        """
        result = ReconcileResult()
        with self._lock:
            venues = self._store.load_all()
            index = {venue.id: i for i, venue in enumerate(venues)}
            for venue_id, venue in self._cache.items():
                position = index.get(venue_id)
                if position is None:
                    index[venue_id] = len(venues)
                    venues.append(venue)
                else:
                    venues[position] = venue

            rescore(venues, self._clock(), self._scorer)
            leaders = select_leaders(venues)
            result.changes = change_lines(self._ranking, leaders)

            self._store.save_all(venues)

            self._ranking = leaders
            result.merged = len(self._cache)
            result.venues = len(venues)
            self._cache.clear()

        log.info(
            "Catalog reconciled",
            extra={
                "merged": result.merged,
                "venues": result.venues,
                "cities": len(leaders),
                "leader_changes": len(result.changes),
            },
        )
        if result.changes and self._publisher is not None:
            result.notified = self._publisher.publish(result.message)
        return result


__all__ = ["CatalogStore", "ReconcileResult"]
