"""
JSON-file store for operator tracking notes.

The whole file is read, changed in memory and written back on every update.
File shape::

    {"records": [{"MRN": "...", "tracking_records": [{...newest...}, {...}]}]}

Writes are serialized per file with a lock and replace the file atomically, so
concurrent requests in one process no longer lose updates. Nothing coordinates
separate processes sharing the same file.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from customsops.config import TRACKING_FILE
from customsops.observability.logging import get_logger
from customsops.observability.telemetry import counter, log_event
from customsops.utils.dates import iso_timestamp

logger = get_logger(__name__)

_LOCKS: dict[str, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _LOCKS_GUARD:
        if key not in _LOCKS:
            _LOCKS[key] = threading.Lock()
        return _LOCKS[key]


class TrackingStoreError(Exception):
    """The tracking file exists but cannot be read or written."""

    pass


class TrackingStore:
    """Find-or-create MRN records in a flat JSON file and prepend entries."""

    def __init__(self, path: Path | str = TRACKING_FILE):
        self.path = Path(path)
        self._lock = _lock_for(self.path)

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def read(self) -> dict[str, Any]:
        """Load the file, returning an empty store when it does not exist yet."""
        if not self.path.exists():
            return {"records": []}

        try:
            with self.path.open(encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as e:
            logger.error("Tracking file %s is not valid JSON: %s", self.path, e)
            raise TrackingStoreError(f"Tracking file is corrupt: {e}") from e
        except OSError as e:
            logger.error("Could not read tracking file %s: %s", self.path, e)
            raise TrackingStoreError(f"Tracking file unreadable: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("records"), list):
            raise TrackingStoreError("Tracking file must contain a 'records' array")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as e:
            logger.error("Could not write tracking file %s: %s", self.path, e)
            Path(tmp_name).unlink(missing_ok=True)
            raise TrackingStoreError(f"Tracking file not writable: {e}") from e

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_records(self) -> list[dict[str, Any]]:
        return self.read()["records"]

    def get_entries(self, mrn: str) -> list[dict[str, Any]]:
        """Entries for an exact MRN, newest first; empty when unknown."""
        record = _find(self.read(), mrn)
        return record["tracking_records"] if record else []

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def add_entry(self, mrn: str, entry: dict[str, Any]) -> None:
        """Prepend one entry to the record for ``mrn``, creating it if needed."""
        with self._lock:
            data = self.read()
            _prepend(data, mrn, entry)
            self._write(data)

        counter("tracking.entries_added")
        log_event("tracking.recorded", mrn=mrn, action=entry.get("action"))

    def add_entries(self, pairs: Iterable[tuple[str, dict[str, Any]]]) -> int:
        """Prepend several entries in one read/write cycle. Returns how many were added."""
        with self._lock:
            data = self.read()
            update_count = 0
            for mrn, entry in pairs:
                _prepend(data, mrn, entry)
                update_count += 1
            self._write(data)

        counter("tracking.entries_added", update_count)
        log_event("tracking.bulk_recorded", count=update_count)
        return update_count


def _find(data: dict[str, Any], mrn: str) -> dict[str, Any] | None:
    for record in data["records"]:
        if record.get("MRN") == mrn:
            return record
    return None


def _prepend(data: dict[str, Any], mrn: str, entry: dict[str, Any]) -> None:
    record = _find(data, mrn)
    if record is None:
        record = {"MRN": mrn, "tracking_records": []}
        data["records"].append(record)

    stamped = dict(entry)
    if not stamped.get("timestamp"):
        stamped["timestamp"] = iso_timestamp()
    record.setdefault("tracking_records", []).insert(0, stamped)


# Singleton instance
_store: TrackingStore | None = None


def get_tracking_store() -> TrackingStore:
    """Get or create the store for the configured tracking file."""
    global _store
    if _store is None:
        _store = TrackingStore()
    return _store
