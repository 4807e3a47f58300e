"""
Series manager tests
"""

import threading
import time

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from snapshot_ocr.models import Series
from snapshot_ocr.series_manager import (
    DEFAULT_SERIES_COLOR,
    MAX_SERIES_COUNT,
    PREDEFINED_COLORS,
    SeriesLimitReached,
    SeriesManager,
    color_from_hex,
)
from snapshot_ocr.store import RecordStore


class TestDefaultSeries:
    """First-run seeding"""

    def test_created_once(self):
        store = RecordStore()
        store.mark_ready()
        manager = SeriesManager(store)

        series = manager.initialize_default_series_if_needed()
        assert series.name == "Default"
        assert series.is_default
        assert series.color == DEFAULT_SERIES_COLOR == "#007AFF"

        assert manager.initialize_default_series_if_needed() is None
        assert len(store.all_series()) == 1

    def test_waits_for_store(self):
        """Nothing is created before the store is ready"""
        store = RecordStore()
        manager = SeriesManager(store)

        assert manager.initialize_default_series_if_needed(timeout=0.01) is None
        assert store.all_series() == []

        store.mark_ready()
        assert manager.initialize_default_series_if_needed() is not None

    def test_existing_series_not_duplicated(self):
        """Series loaded before readiness suppress the default"""
        store = RecordStore()
        store.add_series(Series("Savings"))
        store.mark_ready()

        assert SeriesManager(store).initialize_default_series_if_needed() is None
        assert [s.name for s in store.all_series()] == ["Savings"]

    def test_concurrent_first_run(self):
        """Racing callers produce exactly one default series"""
        store = RecordStore()
        manager = SeriesManager(store)
        results = []

        def seed():
            results.append(manager.initialize_default_series_if_needed(timeout=2))

        threads = [threading.Thread(target=seed) for _ in range(8)]
        for thread in threads:
            thread.start()
        store.mark_ready()
        for thread in threads:
            thread.join(5)

        assert len([r for r in results if r is not None]) == 1
        assert len(store.all_series()) == 1

    def test_two_managers_one_store(self, monkeypatch):
        """Separate managers over one store still seed a single default"""
        store = RecordStore()
        list_series = store.all_series

        def slow_all_series():
            time.sleep(0.05)
            return list_series()

        monkeypatch.setattr(store, "all_series", slow_all_series)
        managers = [SeriesManager(store), SeriesManager(store)]
        results = []

        threads = [
            threading.Thread(target=lambda m=m: results.append(
                m.initialize_default_series_if_needed(timeout=2)))
            for m in managers
        ]
        for thread in threads:
            thread.start()
        store.mark_ready()
        for thread in threads:
            thread.join(5)

        assert len([r for r in results if r is not None]) == 1
        assert [s.name for s in list_series()] == ["Default"]


class TestSeriesCreation:
    """Creating series"""

    def test_colors_and_order(self):
        store = RecordStore()
        manager = SeriesManager(store)

        first = manager.create_series("Checking")
        second = manager.create_series("Savings", color="#123456")

        assert first.color == PREDEFINED_COLORS[0]
        assert second.color == "#123456"
        assert second.sort_order == first.sort_order + 1
        assert [s.name for s in manager.all_series()] == ["Checking", "Savings"]

    def test_limit(self):
        manager = SeriesManager(RecordStore())
        for i in range(MAX_SERIES_COUNT):
            manager.create_series(f"S{i}")
        with pytest.raises(SeriesLimitReached):
            manager.create_series("one too many")

    def test_last_used(self):
        manager = SeriesManager(RecordStore())
        assert manager.get_last_used_series() is None

        first = manager.create_series("A")
        second = manager.create_series("B")
        assert manager.get_last_used_series().id == first.id

        manager.set_last_used_series(second)
        assert manager.get_last_used_series().id == second.id

    def test_independent_managers(self):
        """Managers hold no shared state"""
        store_a, store_b = RecordStore(), RecordStore()
        SeriesManager(store_a).create_series("A")
        assert SeriesManager(store_b).all_series() == []


class TestColorFromHex:
    """Hex colour conversion"""

    def test_with_hash(self):
        assert color_from_hex("#FF0000") == (1.0, 0.0, 0.0)

    def test_without_hash(self):
        r, g, b = color_from_hex("007AFF")
        assert r == 0.0
        assert g == pytest.approx(0x7A / 255)
        assert b == 1.0

    def test_invalid(self):
        assert color_from_hex("not a colour") == (0.0, 0.0, 0.0)
