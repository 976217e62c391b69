import threading
import time

import pytest

from scripts.inventory.errors import ScanCancelled
from scripts.inventory.parallel import ParallelPool


class ConcurrencyTracker:
    """Task factory recording the peak number of tasks running at once."""

    def __init__(self, duration=0.02):
        self.duration = duration
        self.running = 0
        self.peak = 0
        self._lock = threading.Lock()

    def task(self, value):
        def run():
            with self._lock:
                self.running += 1
                self.peak = max(self.peak, self.running)
            time.sleep(self.duration)
            with self._lock:
                self.running -= 1
            return value
        return run


def test_rejects_empty_pool():
    with pytest.raises(ValueError):
        ParallelPool(0)


def test_collects_every_result():
    with ParallelPool(4) as pool:
        runner = pool.runner()
        for i in range(50):
            runner.run(lambda i=i: i * 2)
        assert sorted(runner.wait()) == [i * 2 for i in range(50)]


def test_none_results_are_dropped():
    with ParallelPool(2) as pool:
        runner = pool.runner()
        for value in (1, None, 2, None):
            runner.run(lambda v=value: v)
        assert sorted(runner.wait()) == [1, 2]


def test_empty_runner_returns_empty_list():
    with ParallelPool(2) as pool:
        assert pool.runner().wait() == []


def test_concurrency_never_exceeds_pool_size():
    tracker = ConcurrencyTracker()
    with ParallelPool(3) as pool:
        runner = pool.runner()
        for i in range(20):
            runner.run(tracker.task(i))
        assert len(runner.wait()) == 20
    assert 1 <= tracker.peak <= 3


def test_sub_runners_share_the_budget():
    tracker = ConcurrencyTracker()
    results = {}

    with ParallelPool(3) as pool:
        def supplier(name):
            runner = pool.runner()
            for i in range(10):
                runner.run(tracker.task(f"{name}-{i}"))
            results[name] = runner.wait()

        threads = [threading.Thread(target=supplier, args=(n,)) for n in ("a", "b", "c")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    assert tracker.peak <= 3
    for name in ("a", "b", "c"):
        assert sorted(results[name]) == sorted(f"{name}-{i}" for i in range(10))


def test_sub_runner_errors_are_isolated():
    def boom():
        raise RuntimeError("boom")

    with ParallelPool(2) as pool:
        failing = pool.runner()
        healthy = pool.runner()
        failing.run(boom)
        healthy.run(lambda: "ok")

        with pytest.raises(RuntimeError, match="boom"):
            failing.wait()
        assert healthy.wait() == ["ok"]


def test_first_error_wins():
    def fail(msg):
        def run():
            raise ValueError(msg)
        return run

    # one worker: tasks execute in submission order
    with ParallelPool(1) as pool:
        runner = pool.runner()
        runner.run(fail("first"))
        runner.run(fail("second"))
        with pytest.raises(ValueError, match="first"):
            runner.wait()


def test_no_dispatch_after_error():
    called = threading.Event()

    def boom():
        raise ValueError("boom")

    with ParallelPool(1) as pool:
        runner = pool.runner()
        runner.run(boom)
        time.sleep(0.2)
        runner.run(called.set)
        with pytest.raises(ValueError):
            runner.wait()
    assert not called.is_set()


def test_runner_is_single_use():
    with ParallelPool(1) as pool:
        runner = pool.runner()
        runner.run(lambda: 1)
        assert runner.wait() == [1]
        with pytest.raises(RuntimeError):
            runner.wait()
        with pytest.raises(RuntimeError):
            runner.run(lambda: 2)


def test_cancel_unblocks_submitters_and_waiters():
    gate = threading.Event()
    outcome = {}

    pool = ParallelPool(1)
    try:
        runner = pool.runner()
        runner.run(gate.wait)  # holds the only slot

        def submit():
            try:
                runner.run(lambda: "never")
            except ScanCancelled as exc:
                outcome["run"] = exc

        submitter = threading.Thread(target=submit)
        submitter.start()
        time.sleep(0.1)
        assert submitter.is_alive()

        pool.cancel()
        submitter.join(timeout=2)
        assert not submitter.is_alive()
        assert isinstance(outcome["run"], ScanCancelled)

        with pytest.raises(ScanCancelled):
            runner.wait()
        assert pool.cancelled
    finally:
        gate.set()
        pool.close()


def test_cancelled_pool_skips_queued_tasks():
    cancel = threading.Event()
    cancel.set()
    with ParallelPool(2, cancel) as pool:
        runner = pool.runner()
        with pytest.raises(ScanCancelled):
            runner.run(lambda: 1)


def test_failed_runner_does_not_wait_for_a_slot():
    gate = threading.Event()

    def boom():
        raise ValueError("boom")

    pool = ParallelPool(2)
    try:
        failing = pool.runner()
        failing.run(boom)
        deadline = time.monotonic() + 2
        while failing._error is None and time.monotonic() < deadline:
            time.sleep(0.01)

        busy = pool.runner()
        busy.run(gate.wait)
        busy.run(gate.wait)  # both slots are now held

        submitter = threading.Thread(target=failing.run, args=(lambda: "never",))
        submitter.start()
        submitter.join(timeout=1)
        assert not submitter.is_alive()

        with pytest.raises(ValueError, match="boom"):
            failing.wait()
    finally:
        gate.set()
        pool.close()
