"""
furyfence/core/store.py: append-only JSON record files

Each submission kind is persisted as one pretty-printed JSON array. Records
are only ever appended; the one mutation is setting the ``note`` of a record
addressed by its position in the array.

Loading is lenient (missing or corrupt file reads as an empty list, so the
first submission bootstraps the file). Note updates are strict: they refuse
to touch a file they cannot parse, since rewriting it would drop whatever
was in there.

Every read-modify-write on a file holds a lock shared by all RecordStore
instances for that path, so concurrent requests in this process cannot lose
appends or hand out the same quote number twice.
"""

import os
import json
import logging
import threading

from furyfence.core.paths import store_path

log = logging.getLogger("furyfence.store")


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════

class StoreError(Exception):
    """Base class for record store failures."""


class StoreUnreadable(StoreError):
    """The record file is missing or does not hold a JSON array."""

    def __init__(self, path, reason=""):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}" + (f": {reason}" if reason else ""))


class IndexOutOfRange(StoreError):
    """A note update addressed a position outside [0, length)."""

    def __init__(self, index, length):
        self.index = index
        self.length = length
        super().__init__(f"Index {index} out of range for {length} records")


# ═══════════════════════════════════════════════════════════════════════════════
# Per-file locks
# ═══════════════════════════════════════════════════════════════════════════════

_file_locks: dict[str, threading.Lock] = {}
_registry_lock = threading.Lock()


def _lock_for(path: str) -> threading.Lock:
    key = os.path.realpath(path)
    with _registry_lock:
        lock = _file_locks.get(key)
        if lock is None:
            lock = _file_locks[key] = threading.Lock()
        return lock


# ═══════════════════════════════════════════════════════════════════════════════
# Record store
# ═══════════════════════════════════════════════════════════════════════════════

class RecordStore:
    """One JSON-array file of submission records."""

    def __init__(self, path: str):
        self.path = path
        self._lock = _lock_for(path)

    def __repr__(self):
        return f"RecordStore({self.path!r})"

    # ── Reads ─────────────────────────────────────────────────────────────────

    def _read(self, strict: bool = False) -> list:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            if strict:
                raise StoreUnreadable(self.path, "file not found")
            return []
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            if strict:
                raise StoreUnreadable(self.path, str(e))
            log.warning("Ignoring unreadable record file %s: %s", self.path, e)
            return []
        if not isinstance(data, list):
            if strict:
                raise StoreUnreadable(self.path, f"expected a JSON array, got {type(data).__name__}")
            log.warning("Ignoring record file %s: top level is %s, not a list",
                        self.path, type(data).__name__)
            return []
        return data

    def _write(self, records: list):
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2, ensure_ascii=False)
            f.write("\n")

    def load_all(self) -> list:
        """All records in insertion order. Missing/corrupt file -> []."""
        with self._lock:
            return self._read()

    def count(self) -> int:
        return len(self.load_all())

    # ── Writes ────────────────────────────────────────────────────────────────

    def append(self, record: dict) -> dict:
        """Append one record and rewrite the file. Returns the record."""
        return self.append_with(lambda records: record)

    def append_with(self, build) -> dict:
        """Append ``build(records)``, computed from the current records under the lock.

        Anything derived from the existing sequence (e.g. the next quote
        number) stays consistent with the append that stores it.
        """
        with self._lock:
            records = self._read()
            record = build(records)
            records.append(record)
            self._write(records)
        log.debug("Appended record #%d to %s", len(records), os.path.basename(self.path))
        return record

    def update_note(self, index: int, note) -> dict:
        """Set ``records[index]["note"]`` and rewrite the file.

        Raises:
            StoreUnreadable: file missing, not JSON, or not a JSON array.
            IndexOutOfRange: index < 0 or index >= len(records). Nothing is written.
        """
        with self._lock:
            records = self._read(strict=True)
            if index < 0 or index >= len(records):
                raise IndexOutOfRange(index, len(records))
            record = records[index]
            if not isinstance(record, dict):
                raise StoreUnreadable(self.path, f"record {index} is not an object")
            record["note"] = note or ""
            self._write(records)
        return record


def get_store(kind: str, data_dir: str = None) -> RecordStore:
    """Store for a submission kind ("contact" or "quote")."""
    return RecordStore(store_path(kind, data_dir))
