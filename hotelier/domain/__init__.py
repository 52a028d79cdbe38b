"""
Domain package for the HOTELIER server.

Exports the records the server persists and the error taxonomy shared by the
stores and the protocol. Keep this package focused on data definitions and
validation concerns.
"""

from hotelier.domain.errors import HotelierError
from hotelier.domain.models import Account, Badge, Level, RankEntry, Ratings, Review, Venue

__all__ = [
    "Account",
    "Badge",
    "HotelierError",
    "Level",
    "RankEntry",
    "Ratings",
    "Review",
    "Venue",
]
