"""
Per-connection request/response state machine.

Each cycle reads one line holding an action code 1-8 and runs the matching
dialogue. Every response segment is one or more non-empty lines followed by
exactly one empty line, which is what the client waits for before sending its
next line; client and server step in lockstep because nothing else delimits
the exchange.

States are Anonymous (`account is None`) and Authenticated. A malformed or
out-of-range action code raises ProtocolError and ends the connection.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Callable, Dict, Optional, TextIO

from hotelier.domain.errors import (
    AlreadyExists,
    AuthenticationError,
    ConnectionClosed,
    NetworkError,
    NotAuthenticated,
    NotLoggedIn,
    PersistenceError,
    ProtocolError,
    VenueNotFound,
)
from hotelier.domain.models import Account, Ratings, Review
from hotelier.protocol import messages as msg
from hotelier.services.catalog import CatalogStore
from hotelier.services.credentials import CredentialStore
from hotelier.utils.logging import get_logger

log = get_logger(__name__)


class Action(IntEnum):
    SIGNUP = 1
    LOGIN = 2
    SHOW_BADGE = 3
    SEARCH_HOTEL = 4
    SEARCH_ALL_HOTELS = 5
    INSERT_REVIEW = 6
    LOGOUT = 7
    EXIT = 8


class LineChannel:
    """Line-oriented text I/O over a reader/writer pair (socket files or StringIO)."""

    def __init__(self, reader: TextIO, writer: TextIO) -> None:
        self._reader = reader
        self._writer = writer

    def read_line(self) -> str:
        try:
            line = self._reader.readline()
        except OSError as exc:
            raise NetworkError(f"Read failed: {exc}") from exc
        if line == "":
            raise ConnectionClosed("Peer closed the connection")
        return line.rstrip("\r\n")

    def _write(self, text: str) -> None:
        try:
            self._writer.write(text)
            self._writer.flush()
        except OSError as exc:
            raise NetworkError(f"Write failed: {exc}") from exc

    def write_line(self, line: str) -> None:
        """Write one body line without closing the response segment."""
        self._write(line + "\n")

    def reply(self, *lines: str) -> None:
        """Write a full response segment: the body lines, then one empty line."""
        body = [part for line in lines for part in line.split("\n") if part.strip()]
        self._write("".join(f"{part}\n" for part in body) + "\n")


class SessionProtocol:
    def __init__(
        self,
        channel: LineChannel,
        credentials: CredentialStore,
        catalog: CatalogStore,
        peer: str = "-",
    ) -> None:
        self.channel = channel
        self.credentials = credentials
        self.catalog = catalog
        self.peer = peer
        self.account: Optional[Account] = None
        self._running = False
        self._handlers: Dict[Action, Callable[[], None]] = {
            Action.SIGNUP: self._signup,
            Action.LOGIN: self._login,
            Action.SHOW_BADGE: self._show_badge,
            Action.SEARCH_HOTEL: self._search_hotel,
            Action.SEARCH_ALL_HOTELS: self._search_all_hotels,
            Action.INSERT_REVIEW: self._insert_review,
            Action.LOGOUT: self._logout,
            Action.EXIT: self._exit,
        }

    @property
    def authenticated(self) -> bool:
        return self.account is not None

    def run(self) -> None:
        """
        Serve requests until the client exits.

        ProtocolError and NetworkError propagate to the caller. Whatever the
        reason the loop ends, an open session is released.
        """
        self._running = True
        try:
            while self._running:
                self.handle(self._read_action())
        finally:
            self._running = False
            self._release_session()

    def handle(self, action: Action) -> None:
        log.debug("Dispatching action", extra={"action": action.name, "peer": self.peer})
        try:
            self._handlers[action]()
        except PersistenceError:
            log.exception("Record store failure while serving request", extra={"peer": self.peer})
            self.channel.reply(msg.GENERIC_ERROR)

    def _read_action(self) -> Action:
        raw = self.channel.read_line()
        try:
            return Action(int(raw.strip()))
        except ValueError as exc:
            raise ProtocolError(f"Unexpected action {raw!r}") from exc

    def _release_session(self) -> None:
        if self.account is None:
            return
        username = self.credentials.logout(self.account)
        self.account = None
        log.info("Session released on disconnect", extra={"username": username, "peer": self.peer})

    def _prompt_score(self, prompt: str, out_of_range: str, not_numeric: str) -> float:
        while True:
            self.channel.reply(prompt)
            raw = self.channel.read_line()
            try:
                value = float(raw.strip())
            except ValueError:
                self.channel.reply(not_numeric)
                continue
            if 0 <= value <= 5:
                return value
            self.channel.reply(out_of_range)

    def _signup(self) -> None:
        if self.authenticated:
            self.channel.reply(msg.SIGNUP_WHILE_LOGGED_IN)
            return

        self.channel.reply(msg.ASK_NEW_USERNAME)
        username = self.channel.read_line()
        try:
            self.credentials.check_signup(username)
        except AlreadyExists as exc:
            self.channel.reply(exc.message)
            return

        while True:
            self.channel.reply(msg.ASK_NEW_PASSWORD)
            password = self.channel.read_line()
            if msg.is_strong_password(password):
                break
            self.channel.write_line(msg.WEAK_PASSWORD)

        try:
            self.credentials.signup(username, password)
        except AlreadyExists as exc:
            self.channel.reply(exc.message)
            return
        self.channel.reply(msg.SIGNUP_SUCCEEDED)

    def _login(self) -> None:
        if self.authenticated:
            self.channel.reply(msg.ALREADY_LOGGED_IN)
            return

        self.channel.reply(msg.ASK_USERNAME)
        username = self.channel.read_line()
        try:
            self.credentials.check_already_logged_in(username)
            self.credentials.check_login(username)
        except AuthenticationError as exc:
            self.channel.reply(exc.message)
            return

        self.channel.reply(msg.ASK_PASSWORD)
        password = self.channel.read_line()
        try:
            self.account = self.credentials.login(username, password)
        except AuthenticationError as exc:
            self.channel.reply(exc.message)
            return
        self.channel.reply(msg.ACCESS_SUCCEEDED)

    def _show_badge(self) -> None:
        try:
            badge = self.credentials.show_badge(self.account)
        except NotLoggedIn as exc:
            self.channel.reply(exc.message)
            return
        self.channel.reply(*msg.format_badge(badge))

    def _search_hotel(self) -> None:
        self.channel.reply(msg.ASK_HOTEL)
        name = self.channel.read_line()
        self.channel.reply(msg.ASK_CITY)
        city = self.channel.read_line()

        venue = self.catalog.search_one(name, city)
        if venue is None:
            self.channel.reply(msg.venue_not_found(name, city))
            return
        self.channel.reply(*msg.format_venue(venue))

    def _search_all_hotels(self) -> None:
        self.channel.reply(msg.ASK_CITY)
        city = self.channel.read_line()

        venues = self.catalog.search_all_by_city(city)
        if not venues:
            self.channel.reply(msg.city_not_found(city))
            return
        lines = [line for venue in venues for line in msg.format_venue(venue)]
        self.channel.reply(*lines)

    def _insert_review(self) -> None:
        if self.account is None:
            self.channel.reply(NotAuthenticated().message)
            return

        self.channel.reply(msg.ASK_HOTEL)
        name = self.channel.read_line()
        self.channel.reply(msg.ASK_CITY)
        city = self.channel.read_line()
        venue = self.catalog.search_one(name, city)
        if venue is None:
            self.channel.reply(str(VenueNotFound()))
            return

        rate = self._prompt_score(msg.ASK_RATE, msg.RATE_OUT_OF_RANGE, msg.RATE_NOT_NUMERIC)
        scores = {
            field: self._prompt_score(
                msg.ask_rating(label), msg.RATING_OUT_OF_RANGE, msg.RATING_NOT_NUMERIC
            )
            for field, label in msg.RATING_CATEGORIES
        }
        review = Review(user=self.account.username, rate=rate, ratings=Ratings(**scores))

        try:
            self.catalog.submit_review(self.account, venue, review)
        except (AuthenticationError, VenueNotFound) as exc:
            self.channel.reply(str(exc))
            return
        self.channel.reply(msg.REVIEW_POSTED)

    def _logout(self) -> None:
        try:
            username = self.credentials.logout(self.account)
        except NotLoggedIn as exc:
            self.channel.reply(exc.message)
            return
        self.account = None
        self.channel.reply(msg.logout_goodbye(username))

    def _exit(self) -> None:
        if self.account is not None:
            self.channel.reply(msg.exit_goodbye(self.account.username))
            self._logout()
        else:
            self.channel.reply(msg.GOODBYE_VISITOR)
        self._running = False


__all__ = ["Action", "LineChannel", "SessionProtocol"]
