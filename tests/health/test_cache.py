#!/usr/bin/env python3
"""
Tests for the window cache

TTL expiry is driven by an injected clock, so no test sleeps.
"""

import threading
from datetime import UTC, date, datetime
from unittest.mock import MagicMock, patch

import pytest

from omnilens.health.cache import WindowCache
from omnilens.utils.datetime_utils import WindowError


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return WindowCache(ttl_seconds=300, clock=clock)


class TestGetOrCompute:
    """Tests for hit/miss behaviour"""

    def test_miss_computes_and_stores(self, cache):
        compute = MagicMock(return_value={"result": 1})

        assert cache.get_or_compute("octo/repo", "2026-03-01", "2026-03-30", compute) == {"result": 1}
        compute.assert_called_once()
        assert len(cache) == 1

    def test_hit_does_not_recompute(self, cache):
        compute = MagicMock(return_value="first")
        cache.get_or_compute("octo/repo", "2026-03-01", "2026-03-30", compute)

        second = MagicMock(return_value="second")
        assert cache.get_or_compute("octo/repo", "2026-03-01", "2026-03-30", second) == "first"
        second.assert_not_called()

    def test_entry_expires_after_ttl(self, cache, clock):
        cache.get_or_compute("octo/repo", "2026-03-01", "2026-03-30", lambda: "old")

        clock.advance(299)
        assert cache.get("octo/repo", "2026-03-01", "2026-03-30") == "old"

        clock.advance(1)
        assert cache.get("octo/repo", "2026-03-01", "2026-03-30") is None
        assert cache.get_or_compute("octo/repo", "2026-03-01", "2026-03-30", lambda: "new") == "new"

    def test_time_of_day_does_not_change_the_key(self, cache):
        """Boundaries are normalized to whole days"""
        cache.put("octo/repo", datetime(2026, 3, 1, 8, 15, tzinfo=UTC), "2026-03-30T23:00:00Z", "value")

        assert cache.get("octo/repo", date(2026, 3, 1), date(2026, 3, 30)) == "value"
        assert cache.get("octo/repo", "2026-03-01", "2026-03-29") is None

    def test_repository_and_kind_are_part_of_the_key(self, cache):
        cache.put("octo/a", "2026-03-01", "2026-03-01", "a")
        cache.put("octo/a", "2026-03-01", "2026-03-01", "a-graph", kind="graph")

        assert cache.get("octo/b", "2026-03-01", "2026-03-01") is None
        assert cache.get("octo/a", "2026-03-01", "2026-03-01") == "a"
        assert cache.get("octo/a", "2026-03-01", "2026-03-01", kind="graph") == "a-graph"

    def test_unwindowed_entries(self, cache):
        cache.get_or_compute("octo/repo", None, None, lambda: "graph", kind="trigger_graph")

        assert cache.get("octo/repo", kind="trigger_graph") == "graph"

    def test_failed_compute_stores_nothing(self, cache):
        def boom():
            raise RuntimeError("provider down")

        with pytest.raises(RuntimeError):
            cache.get_or_compute("octo/repo", "2026-03-01", "2026-03-01", boom)

        assert len(cache) == 0

    def test_half_open_window_raises(self, cache):
        with pytest.raises(WindowError):
            cache.get("octo/repo", "2026-03-01", None)

    def test_start_after_end_raises(self, cache):
        with pytest.raises(WindowError):
            cache.get_or_compute("octo/repo", "2026-03-05", "2026-03-01", lambda: 1)

    def test_logs_hits_and_misses_at_debug(self, cache):
        with patch("omnilens.health.cache.logger") as mock_logger:
            cache.get_or_compute("octo/repo", "2026-03-01", "2026-03-01", lambda: 1)
            cache.get_or_compute("octo/repo", "2026-03-01", "2026-03-01", lambda: 2)

        hits = [c[1]["extra"]["cache_hit"] for c in mock_logger.debug.call_args_list]
        assert hits == [False, True]


class TestAsyncGetOrCompute:
    """Tests for the coroutine variant"""

    @pytest.mark.asyncio
    async def test_async_compute_is_memoized(self, cache):
        calls = []

        async def compute():
            calls.append(1)
            return ["bucket"]

        first = await cache.aget_or_compute("octo/repo", "2026-03-01", "2026-03-01", compute)
        second = await cache.aget_or_compute("octo/repo", "2026-03-01", "2026-03-01", compute)

        assert first == second == ["bucket"]
        assert len(calls) == 1


class TestMaintenance:
    """Tests for invalidate/purge/clear"""

    def test_invalidate_drops_only_that_repository(self, cache):
        cache.put("octo/a", "2026-03-01", "2026-03-01", 1)
        cache.put("octo/a", None, None, 2, kind="graph")
        cache.put("octo/b", "2026-03-01", "2026-03-01", 3)

        assert cache.invalidate("octo/a") == 2
        assert len(cache) == 1

    def test_purge_expired(self, cache, clock):
        cache.put("octo/a", "2026-03-01", "2026-03-01", 1)
        clock.advance(200)
        cache.put("octo/b", "2026-03-01", "2026-03-01", 2)
        clock.advance(150)

        assert cache.purge_expired() == 1
        assert cache.get("octo/b", "2026-03-01", "2026-03-01") == 2

    def test_writes_sweep_expired_entries(self, clock):
        """Distinct windows do not accumulate once their TTL has passed"""
        cache = WindowCache(ttl_seconds=60, clock=clock)

        for offset in range(28):
            day = date(2026, 2, 1 + offset)
            cache.get_or_compute("octo/repo", day, day, lambda: ["bucket"])
            clock.advance(61)

        assert len(cache) == 1

    def test_oldest_write_is_evicted_at_max_size(self, clock):
        cache = WindowCache(ttl_seconds=300, max_size=2, clock=clock)
        cache.put("octo/a", None, None, 1)
        cache.put("octo/b", None, None, 2)
        cache.put("octo/a", None, None, 3)

        cache.put("octo/c", None, None, 4)

        assert len(cache) == 2
        assert cache.get("octo/b") is None
        assert cache.get("octo/a") == 3
        assert cache.get("octo/c") == 4

    def test_clear(self, cache):
        cache.put("octo/a", "2026-03-01", "2026-03-01", 1)
        cache.clear()

        assert len(cache) == 0

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValueError):
            WindowCache(ttl_seconds=0)

    def test_max_size_must_be_positive(self):
        with pytest.raises(ValueError):
            WindowCache(max_size=0)


def test_concurrent_writers_do_not_corrupt(cache):
    """Parallel get_or_compute calls on shared keys leave a consistent cache"""
    errors = []

    def worker(index: int):
        try:
            for i in range(50):
                repo = f"octo/repo-{i % 5}"
                value = cache.get_or_compute(repo, "2026-03-01", "2026-03-02", lambda: (repo, index))
                assert value[0] == repo
        except Exception as e:  # noqa: BLE001
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(cache) == 5
