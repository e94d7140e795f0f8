"""Tests for the WorkerPool — bounded concurrency, fail-fast, completeness."""

from __future__ import annotations

import threading
import time

import pytest

from assetforge.core.packer import Packer
from assetforge.core.worker_pool import WorkerPool, default_workers
from assetforge.errors import ConfigurationError


class TestConfiguration:
    @pytest.mark.parametrize("workers", [0, -1])
    def test_rejects_fewer_than_one_worker(self, workers: int):
        with pytest.raises(ConfigurationError):
            WorkerPool(workers)

    def test_default_is_cpus_plus_one(self):
        assert default_workers() >= 2
        assert WorkerPool().workers == default_workers()


class TestRun:
    def test_zero_items_is_noop(self):
        pool = WorkerPool(4)
        pool.run([], lambda item: pytest.fail("should not be called"))
        assert pool.started == 0

    def test_all_items_packed(self, packer: Packer):
        pool = WorkerPool(4)
        pool.run(range(50), lambda i: packer.pack(f"/items/{i}.txt", str(i).encode()))
        assert len(packer) == 50
        assert pool.completed == 50
        assert not pool.cancelled

    def test_concurrency_bounded(self):
        active = 0
        peak = 0
        lock = threading.Lock()

        def work(_):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.01)
            with lock:
                active -= 1

        WorkerPool(3).run(range(20), work)
        assert 1 <= peak <= 3

    def test_first_error_returned_unchanged(self):
        boom = RuntimeError("item 3 failed")

        def work(i):
            if i == 3:
                raise boom

        with pytest.raises(RuntimeError) as info:
            WorkerPool(1).run(range(10), work)
        assert info.value is boom

    def test_fail_fast_no_item_starts_after_cancel(self):
        """With one worker, nothing after the failing item may start."""
        seen: list[int] = []

        def work(i):
            seen.append(i)
            if i == 4:
                raise ValueError("bad item")

        pool = WorkerPool(1)
        with pytest.raises(ValueError):
            pool.run(range(10), work)
        assert seen == [0, 1, 2, 3, 4]
        assert pool.started == 5
        assert pool.completed == 4
        assert pool.cancelled

    def test_in_flight_items_finish_after_cancel(self):
        """Items already running when cancellation fires are not interrupted."""
        release = threading.Event()
        finished: list[int] = []

        def work(i):
            if i == 0:
                release.wait(timeout=5)
                finished.append(i)
            elif i == 1:
                release.set()
                raise RuntimeError("fail")

        pool = WorkerPool(2)
        with pytest.raises(RuntimeError):
            pool.run([0, 1, 2, 3, 4, 5], work)
        assert finished == [0]
        assert pool.started - pool.completed == 1
        assert pool.started <= 4

    def test_cancel_before_run(self):
        pool = WorkerPool(2)
        pool.cancel()
        pool.run(range(5), lambda i: pytest.fail("cancelled pool ran work"))
        assert pool.started == 0

    def test_pool_runs_only_once(self):
        pool = WorkerPool(2)
        pool.run(range(3), lambda i: None)
        with pytest.raises(RuntimeError, match="already ran"):
            pool.run(range(3), lambda i: None)

    def test_failed_pool_cannot_be_rerun(self):
        pool = WorkerPool(2)

        def work(i: int):
            raise ValueError("bad item")

        with pytest.raises(ValueError):
            pool.run([1], work)
        with pytest.raises(RuntimeError, match="already ran"):
            pool.run([2], lambda i: None)
