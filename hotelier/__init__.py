"""
HOTELIER - review-aggregation server for hotels.

Clients connect over a line-oriented TCP protocol to sign up, log in, search
hotels by name and city, and post reviews. Accepted reviews are blended into
each hotel's aggregates, every hotel is periodically rescored, and a UDP
multicast datagram announces each city whose top-ranked hotel changed.

Both record files (accounts and hotels) sit behind write-back caches that
periodic jobs flush; an idle watchdog stops the server when nobody connects.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from hotelier.config import Settings, get_settings
from hotelier.orchestrator import ScheduleOrchestrator, ServerContext
from hotelier.services.catalog import CatalogStore, ReconcileResult
from hotelier.services.credentials import CredentialStore
from hotelier.services.notifier import NotificationPublisher
from hotelier.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Server
    "ScheduleOrchestrator",
    "ServerContext",
    # Stores
    "CatalogStore",
    "CredentialStore",
    "ReconcileResult",
    "NotificationPublisher",
    # Logging
    "configure_logging",
    "get_logger",
]
