"""
Pytest configuration for the HOTELIER server.

Provides fixtures for:
- Settings pointing every record file into a per-test temp directory
- Record stores and the two write-back stores built on them
- A fake multicast publisher that records what would have been sent
- A seeded hotel store
"""

from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from hotelier.config import Settings
from hotelier.domain.models import Account, Venue
from hotelier.infrastructure.record_store import RecordStore
from hotelier.services.catalog import CatalogStore
from hotelier.services.credentials import CredentialStore


class FakePublisher:
    """Stands in for NotificationPublisher; keeps every published message."""

    def __init__(self) -> None:
        self.messages: List[str] = []

    def publish(self, message: str) -> bool:
        if not message:
            return False
        self.messages.append(message)
        return True


def make_venue(venue_id: int, name: str, city: str, **fields) -> Venue:
    return Venue(
        id=venue_id,
        name=name,
        city=city,
        description=fields.pop("description", f"{name} description"),
        phone=fields.pop("phone", "000-0000000"),
        services=fields.pop("services", ["Wi-Fi gratuito"]),
        **fields,
    )


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """
    Settings with test-specific overrides: temp record files, loopback
    listener on an ephemeral port, short waits.
    """
    return Settings(
        host="127.0.0.1",
        port=0,
        accounts_path=tmp_path / "accounts.json",
        venues_path=tmp_path / "hotels.json",
        accept_poll_interval=0.05,
        shutdown_wait_seconds=2.0,
        idle_timeout_seconds=600.0,
        log_level="DEBUG",
    )


@pytest.fixture
def account_store(test_settings: Settings) -> RecordStore[Account]:
    return RecordStore(test_settings.accounts_path, Account)


@pytest.fixture
def venue_store(test_settings: Settings) -> RecordStore[Venue]:
    return RecordStore(test_settings.venues_path, Venue)


@pytest.fixture
def seeded_venues(venue_store: RecordStore[Venue]) -> List[Venue]:
    """
    Seed a small hotel store: two hotels in Rome, one in Milan.

    Returns the seeded venues in store order.
    """
    venues = [
        make_venue(1, "Hotel Roma 1", "Roma"),
        make_venue(2, "Hotel Roma 2", "Roma"),
        make_venue(3, "Hotel Milano 1", "Milano"),
    ]
    venue_store.save_all(venues)
    return venues


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def credentials(account_store: RecordStore[Account]) -> CredentialStore:
    return CredentialStore(account_store)


@pytest.fixture
def catalog(venue_store: RecordStore[Venue], publisher: FakePublisher) -> CatalogStore:
    return CatalogStore(venue_store, publisher=publisher)
