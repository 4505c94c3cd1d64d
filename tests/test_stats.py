import threading

import pytest

from nearstand.stats import RunStatistics, StatsAccumulator


def test_update_and_skip_counts():
    acc = StatsAccumulator()
    acc.update(10_000, 2_500)
    acc.update(4_000, 5_000)
    acc.increment_skipped()
    acc.increment_failed()

    s = acc.summarize()
    assert s == RunStatistics(
        original_size_total=14_000,
        shrunk_size_total=7_500,
        files_processed=2,
        files_skipped=1,
        files_failed=1,
    )
    assert s.reduction_bytes == 6_500


def test_empty_run_has_zero_percent():
    s = StatsAccumulator().summarize()
    assert s.files_processed == 0
    assert s.reduction_percent == 0.0


def test_growth_gives_negative_reduction():
    acc = StatsAccumulator()
    acc.update(100, 150)
    s = acc.summarize()
    assert s.reduction_bytes == -50
    assert s.reduction_percent == pytest.approx(-50.0)


def test_no_updates_after_summarize():
    acc = StatsAccumulator()
    acc.summarize()
    with pytest.raises(RuntimeError):
        acc.update(1, 1)
    with pytest.raises(RuntimeError):
        acc.increment_skipped()


def test_negative_sizes_rejected():
    with pytest.raises(ValueError):
        StatsAccumulator().update(-1, 0)


def test_concurrent_updates_are_not_lost():
    acc = StatsAccumulator()
    n_threads, per_thread = 16, 500
    start = threading.Barrier(n_threads)

    def worker(i):
        start.wait()
        for _ in range(per_thread):
            acc.update(i + 1, 1)
            acc.increment_skipped()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    s = acc.summarize()
    assert s.files_processed == n_threads * per_thread
    assert s.files_skipped == n_threads * per_thread
    assert s.original_size_total == per_thread * sum(range(1, n_threads + 1))
    assert s.shrunk_size_total == n_threads * per_thread
