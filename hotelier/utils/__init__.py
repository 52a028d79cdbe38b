"""
Utilities package for the HOTELIER server.

Exports shared helpers for cross-cutting concerns. Keep this package
lightweight and free of domain-specific logic.
"""

from hotelier.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
