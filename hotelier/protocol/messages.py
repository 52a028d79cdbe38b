"""
Wire texts of the line protocol, and the plain-text rendering of hotels and badges.

The reference client decides whether to retry a step by comparing response
lines with these strings, so they are a compatibility contract: change them and
existing clients stop working.
"""

from __future__ import annotations

from typing import List

from hotelier.domain.models import Badge, Ratings, Review, Venue

HAND = "\U0001F44B"
SOAP = "\U0001F9FC"
PIN = "\U0001F4CD"
SOFA = "\U0001F6CB"
HUNDRED = "\U0001F4AF"
STAR = "⭐"
TICK = "✅"
HOTEL = "\U0001F3E8"
CITY = "\U0001F3D9"
MEDAL = "\U0001F3C5"
PHONE = "☎️"
SPEECH = "\U0001F4AC"
GRAPH = "\U0001F4CA"
PERSON = "\U0001F464"
CLOCK = "\U0001F552"

SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{};':\",.<>?"
MIN_PASSWORD_LENGTH = 8

# Signup
SIGNUP_WHILE_LOGGED_IN = "Cannot create a new account in this session while you are logged in"
ASK_NEW_USERNAME = "Insert a username"
ASK_NEW_PASSWORD = "Insert a password: minimum 8 characters and at least one special character"
WEAK_PASSWORD = (
    "Password must be at least 8 characters and contain at least one special character. "
    "Please try again."
)
SIGNUP_SUCCEEDED = "Signup succeeded"

# Login / logout
ALREADY_LOGGED_IN = "User already logged in"
ASK_USERNAME = "Insert your username"
ASK_PASSWORD = "Insert your password"
ACCESS_SUCCEEDED = "Access succeeded"
GENERIC_ERROR = "An error occurred"

# Search
ASK_HOTEL = f"Insert Hotel {HOTEL}"
ASK_CITY = f"Insert City {CITY}"

# Reviews
ASK_RATE = f"Insert a synthetic review from 0 to 5 {STAR} for the hotel"
RATE_OUT_OF_RANGE = "Please enter a rate between 0 and 5"
RATE_NOT_NUMERIC = "Invalid input. Please enter a numeric value for the rate"
RATING_OUT_OF_RANGE = "Please enter ratings between 0 and 5"
RATING_NOT_NUMERIC = "Invalid input. Please enter numeric values for ratings"
RATING_CATEGORIES = (
    ("cleaning", f"{SOAP} Cleaning"),
    ("position", f"{PIN} Position"),
    ("services", f"{SOFA} Services"),
    ("quality", f"{HUNDRED} Quality"),
)
REVIEW_POSTED = f"Review posted {TICK}"

GOODBYE_VISITOR = f"Goodbye visitor {HAND}"


def ask_rating(category_label: str) -> str:
    return f"Enter rating between 0 and 5 for {category_label}"


def venue_not_found(name: str, city: str) -> str:
    return f'Hotel "{name}" in {city} not found'


def city_not_found(city: str) -> str:
    return f"{city} not found"


def logout_goodbye(username: str) -> str:
    return f"Logout. Goodbye {username}{HAND}"


def exit_goodbye(username: str) -> str:
    return f"Goodbye {username} {HAND}"


def is_strong_password(password: str) -> bool:
    return len(password) >= MIN_PASSWORD_LENGTH and any(
        char in SPECIAL_CHARACTERS for char in password
    )


def _format_number(value: float) -> str:
    return f"{value:g}"


def format_ratings(ratings: Ratings) -> List[str]:
    return [
        f"| {SOAP} Cleaning: {_format_number(ratings.cleaning)}",
        f"| {PIN} Position: {_format_number(ratings.position)}",
        f"| {SOFA} Services: {_format_number(ratings.services)}",
        f"| {HUNDRED} Quality: {_format_number(ratings.quality)}",
        "| -------------------------------",
    ]


def format_review(review: Review) -> List[str]:
    return [
        f"| {PERSON} User: {review.user}",
        f"| {CLOCK} Date: {review.date:%d/%m/%Y %H:%M:%S}",
        f"| {STAR} Overall Rating: {_format_number(review.rate)}",
        f"| {GRAPH} Ratings",
        *format_ratings(review.ratings),
    ]


def format_venue(venue: Venue) -> List[str]:
    """Render a hotel as response lines; none of them is empty."""
    separator = "| -----------------------------"
    lines = [
        f"{HOTEL} {venue.name}",
        f"| {venue.description}",
        separator,
        f"| {PIN} {venue.city}",
        separator,
        f"| {PHONE}  {venue.phone}",
        separator,
        f"| {TICK} Services",
    ]
    lines.extend(f"| {service}" for service in venue.services)
    lines.extend(
        [
            separator,
            f"| {STAR} Overall Rating {_format_number(venue.rate)}",
            separator,
            f"| {GRAPH} Ratings",
            *format_ratings(venue.ratings),
            f"| {SPEECH} Reviews",
        ]
    )
    if not venue.reviews:
        lines.append("| No reviews yet")
    for review in venue.reviews:
        lines.extend(format_review(review))
    return lines


def format_badge(badge: Badge) -> List[str]:
    medals = " ".join([MEDAL] * int(badge.level))
    return [
        "Your Badge is: ",
        f"{medals} {badge.level.label}".strip(),
        f"Date of redeem: {badge.date:%a %b %d %H:%M:%S %Z %Y}",
    ]
