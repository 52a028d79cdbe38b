"""
Infrastructure package: persistence of record files.
"""

from hotelier.infrastructure.record_store import RecordStore

__all__ = ["RecordStore"]
