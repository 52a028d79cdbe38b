"""
Credential store: accounts, sessions, and the account write-back cache.

One re-entrant lock guards the pending-write cache, the open-session table and
the account record file together. Lookups, mutations and the periodic flush all
take it, so a flush never interleaves with a request on this store.

Only `flush` persists anything. A signup, or the badge and review-count changes
made while logged in, live in the cache until the next flush; a crash before
then loses them.
"""

from __future__ import annotations

import threading
from typing import Dict, Optional

from hotelier.domain.errors import (
    AccountNotFound,
    AlreadyExists,
    BadCredentials,
    NotLoggedIn,
    SessionConflict,
)
from hotelier.domain.models import Account, Badge
from hotelier.infrastructure.record_store import RecordStore
from hotelier.utils.logging import get_logger

log = get_logger(__name__)


class CredentialStore:
    def __init__(self, store: RecordStore[Account]) -> None:
        self._store = store
        self._lock = threading.RLock()
        self._cache: Dict[str, Account] = {}
        self._sessions: Dict[str, Account] = {}

    def _exists(self, username: str) -> bool:
        if username in self._cache:
            return True
        return self._store.find(lambda account: account.username == username) is not None

    def _resolve(self, username: str) -> Optional[Account]:
        cached = self._cache.get(username)
        if cached is not None:
            return cached
        return self._store.find(lambda account: account.username == username)

    def check_signup(self, username: str) -> None:
        with self._lock:
            if self._exists(username):
                raise AlreadyExists()

    def signup(self, username: str, password: str) -> Account:
        with self._lock:
            # Re-checked here so concurrent signups for one name collapse to one.
            if self._exists(username):
                raise AlreadyExists()
            account = Account(username=username, password=password)
            self._cache[username] = account
        log.info("Account registered", extra={"username": username})
        return account

    def check_already_logged_in(self, username: str) -> None:
        with self._lock:
            if username in self._sessions:
                raise SessionConflict()

    def check_login(self, username: str) -> None:
        with self._lock:
            if not self._exists(username):
                raise AccountNotFound()

    def login(self, username: str, password: str) -> Account:
        with self._lock:
            if username in self._sessions:
                raise SessionConflict()
            account = self._resolve(username)
            if account is None:
                raise AccountNotFound()
            if account.password != password:
                raise BadCredentials()
            self._sessions[username] = account
        log.info("Session opened", extra={"username": username})
        return account

    def logout(self, account: Optional[Account]) -> str:
        if account is None:
            raise NotLoggedIn()
        with self._lock:
            if self._sessions.get(account.username) is account:
                del self._sessions[account.username]
            self._cache[account.username] = account
        log.info("Session closed", extra={"username": account.username})
        return account.username

    def show_badge(self, account: Optional[Account]) -> Badge:
        if account is None:
            raise NotLoggedIn("User is not logged in this session")
        return account.badge

    def is_logged_in(self, username: str) -> bool:
        with self._lock:
            return username in self._sessions

    def stage_open_sessions(self) -> int:
        """Queue every logged-in account for the next flush without closing its session."""
        with self._lock:
            for username, account in self._sessions.items():
                self._cache[username] = account
            return len(self._sessions)

    def pending_count(self) -> int:
        with self._lock:
            return len(self._cache)

    def flush(self) -> int:
        """
        Merge the pending accounts into the record file.

        Returns the number of accounts merged, 0 when there was nothing to do.
        On PersistenceError the cache is left untouched for the next attempt.
        """
        with self._lock:
            if not self._cache:
                log.debug("Account flush skipped: no pending writes")
                return 0

            records = self._store.load_all()
            index = {account.username: i for i, account in enumerate(records)}
            for username, account in self._cache.items():
                position = index.get(username)
                if position is None:
                    index[username] = len(records)
                    records.append(account)
                else:
                    records[position] = account

            self._store.save_all(records)
            merged = len(self._cache)
            self._cache.clear()

        log.info("Accounts flushed", extra={"merged": merged, "total": len(records)})
        return merged


__all__ = ["CredentialStore"]
