"""
Record store: a durable list-of-records JSON file per entity type.

The server core only needs three things from it: load every record, overwrite
every record, and treat a missing or blank file as an empty list on first boot.
Transient I/O failures are retried with tenacity; anything that still fails,
and any malformed record, surfaces as PersistenceError so the calling flush
cycle can abort and keep its pending writes for the next run.

Compatibility with legacy files is one-way. Textual review dates and Italian
badge level names are accepted on load, but every save writes ISO-8601 dates
and English level names, so a file this server has rewritten can no longer be
read by tooling that expects the legacy formats.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Callable, Generic, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from hotelier.domain.errors import PersistenceError
from hotelier.utils.logging import get_logger

log = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

_io_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
    retry=retry_if_exception_type((InterruptedError, BlockingIOError, TimeoutError)),
    reraise=True,
)


@_io_retry
def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


@_io_retry
def _write_text(path: Path, payload: str, atomic: bool) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if not atomic:
        path.write_text(payload, encoding="utf-8")
        return
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        f.write(payload)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)


class RecordStore(Generic[RecordT]):
    """
    JSON array file of `model` records.

    Parameters
    ----------
    path : Path | str
        Location of the record file. Parent directories are created on write.
    model : type[BaseModel]
        Record schema; aliases define the persisted keys.
    atomic : bool
        Write to a sibling temp file and rename over the target (default). When
        False the file is truncated and rewritten in place.
    """

    def __init__(self, path: Path | str, model: Type[RecordT], atomic: bool = True) -> None:
        self.path = Path(path)
        self.model = model
        self.atomic = atomic
        self._adapter: TypeAdapter[List[RecordT]] = TypeAdapter(List[model])  # type: ignore[valid-type]

    def load_all(self) -> List[RecordT]:
        try:
            content = _read_text(self.path)
        except OSError as exc:
            raise PersistenceError(f"Cannot read {self.path}: {exc}") from exc

        if content is None or not content.strip():
            return []
        try:
            return self._adapter.validate_json(content)
        except ValidationError as exc:
            raise PersistenceError(f"Malformed record in {self.path}: {exc}") from exc

    def save_all(self, records: Sequence[RecordT]) -> None:
        payload = json.dumps(
            [record.model_dump(mode="json", by_alias=True) for record in records],
            indent=2,
            ensure_ascii=False,
        )
        try:
            _write_text(self.path, payload, self.atomic)
        except OSError as exc:
            raise PersistenceError(f"Cannot write {self.path}: {exc}") from exc
        log.debug("Records written", extra={"path": str(self.path), "records": len(records)})

    def find(self, predicate: Callable[[RecordT], bool]) -> Optional[RecordT]:
        """Return the first record in file order that satisfies `predicate`."""
        for record in self.load_all():
            if predicate(record):
                return record
        return None


__all__ = ["RecordStore"]
