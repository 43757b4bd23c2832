"""Baseline & history store.

Owns the persisted baseline scalar and the day-keyed history log on top
of a plain string key-value store.

- The baseline is committed once and never overwritten by normal capture.
- History holds at most one entry per day; a later pass replaces it.
- History is best effort. Baseline writes are not.
"""

from __future__ import annotations

import json
import logging
import math
import threading
import weakref
from concurrent.futures import Future
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Tuple

from sleepglow.config import BASELINE_KEY, HISTORY_KEY
from sleepglow.errors import AnalysisBusy, PersistenceReadCorrupt, PersistenceWriteFailed
from sleepglow.store import KeyValueStore
from sleepglow.types import HistoryEntry

logger = logging.getLogger(__name__)


def today_key(now: Optional[datetime] = None) -> str:
    """UTC calendar day as ``YYYY-MM-DD``."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.date().isoformat()


def parse_baseline(raw: Optional[str]) -> Optional[float]:
    """Parse a persisted baseline string.

    Returns:
        The baseline, or None if nothing is stored.

    Raises:
        PersistenceReadCorrupt: If the value is not a finite number.
    """
    if raw is None or raw.strip() == "":
        return None
    try:
        value = float(raw)
    except ValueError as e:
        raise PersistenceReadCorrupt(f"Baseline is not a number: {raw!r}") from e
    if not math.isfinite(value):
        raise PersistenceReadCorrupt(f"Baseline is not finite: {raw!r}")
    return value


def parse_history(raw: Optional[str]) -> List[HistoryEntry]:
    """Parse the persisted history log.

    Raises:
        PersistenceReadCorrupt: If the document or any record is malformed.
    """
    if raw is None or raw.strip() == "":
        return []
    try:
        data = json.loads(raw)
        if not isinstance(data, list):
            raise TypeError(f"History must be a list, got {type(data).__name__}")
        return [HistoryEntry.from_dict(item) for item in data]
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        raise PersistenceReadCorrupt(f"History log unreadable: {e}") from e


class _TransportLocks:
    """Locks shared by every BaselineStore over the same transport."""

    def __init__(self):
        self.baseline = threading.Lock()
        self.history = threading.Lock()
        self.pass_slot = threading.Lock()


_transport_locks: "weakref.WeakKeyDictionary[KeyValueStore, _TransportLocks]" = (
    weakref.WeakKeyDictionary()
)
_transport_locks_guard = threading.Lock()


def _locks_for(store: KeyValueStore) -> _TransportLocks:
    with _transport_locks_guard:
        try:
            locks = _transport_locks.get(store)
            if locks is None:
                locks = _TransportLocks()
                _transport_locks[store] = locks
        except TypeError:
            # Unhashable or not weak-referenceable: locks cover this wrapper only
            logger.debug("Cannot share locks for %s transport", type(store).__name__)
            locks = _TransportLocks()
    return locks


class PassSlot:
    """The single in-flight analysis slot, held by one pass.

    A pass that leaves work running in the background (a detector call
    that timed out or was cancelled) hands that work to :meth:`hold_until`;
    the slot is then freed only once it finishes.
    """

    def __init__(self, lock: threading.Lock):
        self._lock = lock
        self._pending: Optional[Future] = None

    @property
    def pending(self) -> Optional[Future]:
        return self._pending

    def hold_until(self, future: Future) -> None:
        self._pending = future

    def _release(self) -> None:
        if self._pending is None:
            self._lock.release()
            return
        if not self._pending.done():
            logger.debug("Pass slot held until the background detector call ends")
        self._pending.add_done_callback(lambda _f: self._lock.release())


class BaselineStore:
    """Baseline and history persistence for one user/device.

    Locks live with the transport: any number of ``BaselineStore`` objects
    over the same ``store`` object share one baseline guard and one
    in-flight slot. Separate transports over the same backing file do not.

    Args:
        store: String key-value transport.
        baseline_key: Key of the baseline scalar.
        history_key: Key of the serialized history log.

    Example:
        >>> store = BaselineStore(MemoryStore())
        >>> store.write_baseline_if_absent(120.5)
        120.5
        >>> store.upsert_history_entry("2024-05-01", 0.0, is_first=True)
        True
    """

    def __init__(
        self,
        store: KeyValueStore,
        baseline_key: str = BASELINE_KEY,
        history_key: str = HISTORY_KEY,
    ):
        self._store = store
        self.baseline_key = baseline_key
        self.history_key = history_key
        self._locks = _locks_for(store)

    # ── Baseline ──

    def read_baseline(self) -> Optional[float]:
        """Stored baseline, or None. Corrupt values read as absent."""
        try:
            return parse_baseline(self._store.get(self.baseline_key))
        except PersistenceReadCorrupt as e:
            logger.warning("Ignoring corrupt baseline: %s", e)
            return None

    def commit_baseline(self, score: float) -> Tuple[float, bool]:
        """Commit ``score`` as the baseline unless one already exists.

        Returns:
            ``(baseline, written)``: the committed baseline and whether this
            call wrote it.

        Raises:
            PersistenceWriteFailed: If the store rejects the write.
        """
        with self._locks.baseline:
            existing = self.read_baseline()
            if existing is not None:
                logger.debug("Baseline already set (%.3f), keeping it", existing)
                return existing, False
            try:
                self._store.set(self.baseline_key, repr(float(score)))
            except Exception as e:
                raise PersistenceWriteFailed(f"Baseline write failed: {e}") from e
            logger.info("Baseline committed: %.3f", score)
            return float(score), True

    def write_baseline_if_absent(self, score: float) -> float:
        """Like :meth:`commit_baseline`, returning only the committed value."""
        baseline, _ = self.commit_baseline(score)
        return baseline

    # ── History ──

    def read_history(self) -> List[HistoryEntry]:
        """History sorted by day. Malformed data reads as empty."""
        try:
            entries = parse_history(self._store.get(self.history_key))
        except PersistenceReadCorrupt as e:
            logger.warning("Ignoring corrupt history: %s", e)
            return []
        return sorted(entries, key=lambda entry: entry.date_key)

    def upsert_history_entry(self, date_key: str, delta_percent: float, is_first: bool) -> bool:
        """Record the day's delta, replacing any entry for the same day.

        Returns:
            True if persisted; False if the write failed and the entry was dropped.
        """
        entry = HistoryEntry(date_key=date_key, delta_percent=delta_percent, is_first=is_first)
        with self._locks.history:
            entries = [e for e in self.read_history() if e.date_key != date_key]
            entries.append(entry)
            try:
                payload = json.dumps([e.to_dict() for e in entries], allow_nan=False)
                self._store.set(self.history_key, payload)
            except Exception as e:
                logger.warning("History entry for %s dropped: %s", date_key, e)
                return False
        logger.debug("History entry for %s recorded (%d total)", date_key, len(entries))
        return True

    # ── Session guard ──

    @contextmanager
    def exclusive_pass(self) -> Iterator[PassSlot]:
        """Hold the single in-flight analysis slot for this transport.

        Raises:
            AnalysisBusy: If another pass already holds it.
        """
        if not self._locks.pass_slot.acquire(blocking=False):
            raise AnalysisBusy("An analysis pass is already in flight")
        slot = PassSlot(self._locks.pass_slot)
        try:
            yield slot
        finally:
            slot._release()


__all__ = ["today_key", "parse_baseline", "parse_history", "PassSlot", "BaselineStore"]
