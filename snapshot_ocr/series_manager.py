"""
Series management

Explicitly constructed service around a RecordStore:
- First-run creation of the "Default" series behind a one-time barrier
- Series creation with a palette of predefined colours
- Last used series tracking
- Hex colour conversion
"""

import logging
import threading
from typing import List, Optional, Tuple

from .models import Series
from .store import RecordStore

logger = logging.getLogger(__name__)

PREDEFINED_COLORS = [
    "#FF3B30",  # red
    "#FF9500",  # orange
    "#FFCC00",  # yellow
    "#34C759",  # green
    "#007AFF",  # blue
    "#5856D6",  # purple
    "#AF52DE",  # pink
    "#00C7BE",  # teal
    "#A2845E",  # brown
    "#8E8E93",  # gray
]

DEFAULT_SERIES_NAME = "Default"
DEFAULT_SERIES_COLOR = PREDEFINED_COLORS[4]
MAX_SERIES_COUNT = 10


class SeriesLimitReached(ValueError):
    """No more series can be created"""


class SeriesManager:
    """Series lifecycle service bound to one store"""

    def __init__(self, store: RecordStore, max_series_count: int = MAX_SERIES_COUNT):
        self.store = store
        self.max_series_count = max_series_count
        self._init_lock = threading.Lock()
        self._initialized = False
        self._last_used_series_id: Optional[str] = None

    def initialize_default_series_if_needed(self, timeout: Optional[float] = None) -> Optional[Series]:
        """
        Create the "Default" series if the store holds none

        Waits until the store is marked ready, then runs at most once per
        manager. Managers sharing a store seed at most one series between
        them.

        Returns:
            The created series, or None if nothing was created
        """
        if not self.store.wait_until_ready(timeout):
            logger.warning("Store not ready after %ss, default series not created", timeout)
            return None

        with self._init_lock:
            if self._initialized:
                return None
            self._initialized = True

            series = self.store.add_series_if_empty(Series(
                name=DEFAULT_SERIES_NAME,
                color=DEFAULT_SERIES_COLOR,
                sort_order=0,
                is_default=True,
            ))
            if series is None:
                return None
            self._last_used_series_id = series.id
            logger.info("Created default series %s", series.id)
            return series

    def create_series(self, name: str, color: Optional[str] = None) -> Series:
        """
        Add a series at the end of the sort order

        Raises:
            SeriesLimitReached: the store already holds max_series_count series
        """
        existing = self.store.all_series()
        if len(existing) >= self.max_series_count:
            raise SeriesLimitReached(
                f"At most {self.max_series_count} series are allowed"
            )

        if color is None:
            color = PREDEFINED_COLORS[len(existing) % len(PREDEFINED_COLORS)]
        sort_order = max((s.sort_order for s in existing), default=-1) + 1

        return self.store.add_series(Series(name=name, color=color, sort_order=sort_order))

    def all_series(self) -> List[Series]:
        return self.store.all_series()

    def get_last_used_series(self) -> Optional[Series]:
        """Last used series, falling back to the first one"""
        all_series = self.store.all_series()
        if self._last_used_series_id is not None:
            for series in all_series:
                if series.id == self._last_used_series_id:
                    return series
        return all_series[0] if all_series else None

    def set_last_used_series(self, series: Series) -> None:
        self._last_used_series_id = series.id


def color_from_hex(hex_color: str) -> Tuple[float, float, float]:
    """
    "#RRGGBB" (with or without "#") to (r, g, b) floats in [0, 1]

    Unparseable input gives black.
    """
    digits = "".join(c for c in hex_color if c.isalnum())
    try:
        value = int(digits, 16) if digits else 0
    except ValueError:
        value = 0
    r = (value >> 16) & 0xFF
    g = (value >> 8) & 0xFF
    b = value & 0xFF
    return (r / 255, g / 255, b / 255)
