"""In-memory rate cache with optional atomic file persistence."""
import os
import json
import logging
import tempfile
import threading
from datetime import datetime
from typing import Optional

from app.constants import FAMILY_CURRENCY, FAMILY_METAL, RATE_FAMILIES
from app.services.snapshots import (
    CurrencyRateSnapshot,
    MetalRateSnapshot,
    fallback_currency_snapshot,
    fallback_metal_snapshot,
)
from app.services.time_provider import TimeProvider, get_now

logger = logging.getLogger('rate_cache')

_SNAPSHOT_TYPES = {
    FAMILY_METAL: MetalRateSnapshot,
    FAMILY_CURRENCY: CurrencyRateSnapshot,
}


class _Entry:
    """What the cache holds per family. Replaced wholesale, never mutated."""
    __slots__ = ('snapshot', 'stored_at', 'version')

    def __init__(self, snapshot, stored_at: datetime, version: int):
        self.snapshot = snapshot
        self.stored_at = stored_at
        self.version = version


class RateCache:
    """Latest snapshot per rate family.

    Writers swap a whole entry under a lock; readers take one reference to
    the current entry, so a reader sees either the old snapshot or the new
    one, never a mix. When nothing has been stored for a family the built-in
    fallback snapshot is served instead.
    """

    def __init__(self, persist_path: Optional[str] = None, time_provider: Optional[TimeProvider] = None):
        self._lock = threading.Lock()
        self._entries: dict[str, _Entry] = {}
        self._persist_path = persist_path
        self._time_provider = time_provider
        self._fallbacks = {
            FAMILY_METAL: fallback_metal_snapshot(self._now()),
            FAMILY_CURRENCY: fallback_currency_snapshot(self._now()),
        }
        if persist_path:
            self._load(persist_path)

    def _now(self) -> datetime:
        return get_now(self._time_provider)

    @staticmethod
    def _check_family(family: str) -> None:
        if family not in RATE_FAMILIES:
            raise ValueError(f"Unknown rate family: {family}")

    def get(self, family: str):
        """Return the last stored snapshot, or the fallback snapshot."""
        self._check_family(family)
        entry = self._entries.get(family)
        if entry is None:
            return self._fallbacks[family]
        return entry.snapshot

    def has_live(self, family: str) -> bool:
        """True once a fetched snapshot has been stored for `family`."""
        self._check_family(family)
        return family in self._entries

    def put(self, family: str, snapshot) -> bool:
        """Atomically replace the family's snapshot.

        Returns False (and keeps the current one) if `snapshot` is older
        than what is already stored.
        """
        self._check_family(family)
        expected = _SNAPSHOT_TYPES[family]
        if not isinstance(snapshot, expected):
            raise TypeError(f"{family} cache expects {expected.__name__}, got {type(snapshot).__name__}")
        if snapshot.is_fallback:
            raise ValueError("Fallback snapshots are built in and cannot be stored")

        with self._lock:
            current = self._entries.get(family)
            if current is not None and snapshot.timestamp < current.snapshot.timestamp:
                logger.warning(
                    f"Rejected out-of-order {family} snapshot "
                    f"({snapshot.timestamp.isoformat()} < {current.snapshot.timestamp.isoformat()})"
                )
                return False
            version = current.version + 1 if current is not None else 1
            self._entries[family] = _Entry(snapshot, self._now(), version)
            if self._persist_path:
                self._save(self._persist_path)
        return True

    def is_stale(self, family: str, max_age_seconds: float) -> bool:
        """Informational staleness check; fallback data is always stale."""
        self._check_family(family)
        entry = self._entries.get(family)
        if entry is None:
            return True
        age = (self._now() - entry.snapshot.timestamp).total_seconds()
        return age > max_age_seconds

    def age_seconds(self, family: str) -> Optional[float]:
        """Seconds since the stored snapshot's timestamp, None for fallback."""
        self._check_family(family)
        entry = self._entries.get(family)
        if entry is None:
            return None
        return (self._now() - entry.snapshot.timestamp).total_seconds()

    def stored_at(self, family: str) -> Optional[datetime]:
        entry = self._entries.get(family)
        return entry.stored_at if entry else None

    def version(self, family: str) -> int:
        """Number of snapshots accepted for `family` (0 while on fallback)."""
        entry = self._entries.get(family)
        return entry.version if entry else 0

    def status(self) -> dict:
        result = {}
        for family in RATE_FAMILIES:
            entry = self._entries.get(family)
            snapshot = entry.snapshot if entry else self._fallbacks[family]
            result[family] = {
                'fallback': entry is None,
                'source': snapshot.source,
                'timestamp': snapshot.timestamp.isoformat(),
                'stored_at': entry.stored_at.isoformat() if entry else None,
                'version': entry.version if entry else 0,
                'age_seconds': self.age_seconds(family),
            }
        return result

    def _save(self, path: str) -> None:
        """Persist the current entries. Caller holds the lock."""
        data = {family: entry.snapshot.to_record() for family, entry in self._entries.items()}
        try:
            write_cache_file(path, data)
        except OSError as e:
            logger.warning(f"Failed to persist rate cache to {path}: {e}")

    def _load(self, path: str) -> None:
        data = read_cache_file(path)
        if not data:
            return
        for family, record in data.items():
            if family not in _SNAPSHOT_TYPES:
                continue
            try:
                snapshot = _SNAPSHOT_TYPES[family].from_record(record)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Ignoring unreadable {family} snapshot in {path}: {e}")
                continue
            self._entries[family] = _Entry(snapshot, self._now(), 1)
            logger.info(f"Warm-started {family} rates from {path} ({snapshot.timestamp.isoformat()})")


def read_cache_file(path: str) -> dict | None:
    """Read persisted snapshots, return None if missing/invalid."""
    if not os.path.exists(path):
        return None
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError):
        return None
    return data if isinstance(data, dict) else None


def write_cache_file(path: str, data: dict) -> None:
    """Atomic write: temp file then rename."""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=directory, suffix='.tmp')
    try:
        with os.fdopen(fd, 'w') as f:
            json.dump(data, f, indent=2)
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise


def get_rate_cache():
    """Return the RateCache owned by the current Flask app."""
    from flask import current_app
    return current_app.extensions['rate_cache']
