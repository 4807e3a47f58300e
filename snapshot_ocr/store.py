"""
Record store

In-process store of screenshot records and series:
- Predicate fetches used by the pipeline passes
- One re-entrant lock per record; every write path runs inside it
- A readiness flag that first-run initialization waits on
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from .models import ProcessingState, ScreenshotRecord, Series

logger = logging.getLogger(__name__)


class RecordNotFound(KeyError):
    """No record with the given id"""


class RecordStore:
    """
    Thread-safe in-memory store

    Records are handed out as copies; changes become visible only through
    save(). Fetches return records in insertion order.
    """

    def __init__(self):
        self._records: Dict[str, ScreenshotRecord] = {}
        self._series: Dict[str, Series] = {}
        self._lock = threading.RLock()
        self._record_locks: Dict[str, threading.RLock] = {}
        self._ready = threading.Event()
        self.write_count = 0

    # --- readiness ---

    def mark_ready(self) -> None:
        """Signal that the store has finished loading"""
        self._ready.set()

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._ready.wait(timeout)

    # --- per-record exclusive section ---

    @contextmanager
    def locked(self, record_id: str) -> Iterator[None]:
        """Hold the write lock of one record"""
        with self._lock:
            lock = self._record_locks.setdefault(record_id, threading.RLock())
        with lock:
            yield

    # --- records ---

    def add(self, record: ScreenshotRecord) -> ScreenshotRecord:
        with self._lock:
            if record.id in self._records:
                raise ValueError(f"Record already exists: {record.id}")
            self._records[record.id] = record.copy()
            self.write_count += 1
        return record

    def get(self, record_id: str) -> ScreenshotRecord:
        with self._lock:
            try:
                return self._records[record_id].copy()
            except KeyError:
                raise RecordNotFound(record_id) from None

    def save(self, record: ScreenshotRecord) -> None:
        """Persist a record (callers hold the record's lock)"""
        with self._lock:
            if record.id not in self._records:
                raise RecordNotFound(record.id)
            self._records[record.id] = record.copy()
            self.write_count += 1

    def update(self, record_id: str,
               mutate: Callable[[ScreenshotRecord], None]) -> ScreenshotRecord:
        """Read, change and save one record inside its exclusive section"""
        with self.locked(record_id):
            record = self.get(record_id)
            mutate(record)
            self.save(record)
            return record

    def confirm(self, record_id: str, value: Optional[float] = None,
                series_id: Optional[str] = None) -> ScreenshotRecord:
        """Apply a manual edit; the record becomes human-confirmed"""
        return self.update(record_id, lambda r: r.confirm(value, series_id))

    def delete(self, record_id: str) -> None:
        with self._lock:
            self._records.pop(record_id, None)
            self._record_locks.pop(record_id, None)

    def all(self) -> List[ScreenshotRecord]:
        return self._select(lambda r: True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _select(self, predicate: Callable[[ScreenshotRecord], bool]) -> List[ScreenshotRecord]:
        with self._lock:
            return [r.copy() for r in self._records.values() if predicate(r)]

    # --- pipeline predicates ---

    def needing_fingerprint(self) -> List[ScreenshotRecord]:
        """Records with an image but no descriptor"""
        return self._select(needs_fingerprint)

    def needing_value(self) -> List[ScreenshotRecord]:
        """Records with an image, no value, not attempted, not confirmed"""
        return self._select(needs_value)

    def needing_series(self) -> List[ScreenshotRecord]:
        """Records with a descriptor but no series"""
        return self._select(needs_series)

    def fingerprinted(self) -> List[ScreenshotRecord]:
        """Every record with a descriptor, for comparisons"""
        return self._select(lambda r: r.has_fingerprint)

    # --- series ---

    def add_series(self, series: Series) -> Series:
        with self._lock:
            self._series[series.id] = series
        return series

    def add_series_if_empty(self, series: Series) -> Optional[Series]:
        """
        Add a series only when the store holds none

        Check and insert happen under the store lock, so concurrent callers
        seed at most one series.

        Returns:
            The added series, or None if series already existed
        """
        with self._lock:
            if self._series:
                return None
            self._series[series.id] = series
        return series

    def get_series(self, series_id: str) -> Optional[Series]:
        with self._lock:
            return self._series.get(series_id)

    def all_series(self) -> List[Series]:
        with self._lock:
            return sorted(self._series.values(), key=lambda s: s.sort_order)

    def delete_series(self, series_id: str) -> None:
        """Remove a series; records pointing at it lose their series"""
        with self._lock:
            self._series.pop(series_id, None)
            orphaned = [r.id for r in self._records.values() if r.series_id == series_id]
        for record_id in orphaned:
            self.update(record_id, _clear_series)
        if orphaned:
            logger.info("Deleted series %s, detached %d record(s)", series_id, len(orphaned))


def _clear_series(record: ScreenshotRecord) -> None:
    record.series_id = None
    if record.state == ProcessingState.FULL:
        record.state = ProcessingState.PARTIAL


# Selection predicates; human-confirmed records never qualify

def needs_fingerprint(record: ScreenshotRecord) -> bool:
    return record.has_image and not record.has_fingerprint and not record.human_confirmed


def needs_value(record: ScreenshotRecord) -> bool:
    return (record.has_image
            and record.value is None
            and not record.value_extraction_attempted
            and not record.human_confirmed)


def needs_series(record: ScreenshotRecord) -> bool:
    return (record.has_image
            and record.has_fingerprint
            and record.series_id is None
            and not record.human_confirmed)
