"""
Error taxonomy for the HOTELIER server.

Authentication errors are recoverable at the connection level: their message
text is sent to the client verbatim, and the reference client tells error
categories apart by exact string match, so those texts must stay stable.
"""

from __future__ import annotations


class HotelierError(Exception):
    """Base class for every error raised by the server core."""


class AuthenticationError(HotelierError):
    """Account or session precondition failed; the message is the wire text."""

    default_message = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class AlreadyExists(AuthenticationError):
    default_message = "User already exist"


class SessionConflict(AuthenticationError):
    default_message = "User already logged in another session"


class AccountNotFound(AuthenticationError):
    default_message = "This username doesn't exist"


class BadCredentials(AuthenticationError):
    default_message = "Password not valid"


class NotLoggedIn(AuthenticationError):
    default_message = "User not logged in this session"


class NotAuthenticated(AuthenticationError):
    default_message = "User must be logged in to post a review"


class VenueNotFound(HotelierError):
    def __init__(self, message: str = "Hotel not found") -> None:
        super().__init__(message)


class ProtocolError(HotelierError):
    """Malformed or unsupported request; fatal for the connection."""


class PersistenceError(HotelierError):
    """A record store could not be read or written, or holds a malformed record."""


class NetworkError(HotelierError):
    """I/O failure on a single client connection."""


class ConnectionClosed(NetworkError):
    """The peer closed the stream."""


# Short name for the missing-account category.
NotFound = AccountNotFound


__all__ = [
    "HotelierError",
    "AuthenticationError",
    "AlreadyExists",
    "SessionConflict",
    "AccountNotFound",
    "NotFound",
    "BadCredentials",
    "NotLoggedIn",
    "NotAuthenticated",
    "VenueNotFound",
    "ProtocolError",
    "PersistenceError",
    "NetworkError",
    "ConnectionClosed",
]
