"""Tests for the worker pool used by the evaluators."""

import pytest

from transition_screen.utils.worker_pool import WorkerPool


def _square_or_fail(n):
    if n == 3:
        raise ValueError("three")
    return n * n


class TestWorkerPool:
    """Exception isolation and ordering."""

    def test_map_preserves_order_and_isolates_failures(self):
        """A failing item is reported in place; others still succeed."""
        results = WorkerPool(max_workers=3).map(_square_or_fail, [1, 2, 3, 4])

        assert [(ok, item) for ok, item, _ in results] == [(True, 1), (True, 2), (False, 3), (True, 4)]
        assert [r for ok, _, r in results if ok] == [1, 4, 16]
        assert isinstance(results[2][2], ValueError)

    def test_stats(self):
        """Submitted, successful and failed counts."""
        pool = WorkerPool(max_workers=2)
        pool.map(_square_or_fail, [1, 3])
        stats = pool.get_stats()

        assert stats["total_submitted"] == 2
        assert stats["total_successful"] == 1
        assert stats["total_failed"] == 1

    def test_submit(self):
        """Single tasks return futures; exceptions surface on result()."""
        with WorkerPool(max_workers=2) as pool:
            ok = pool.submit(_square_or_fail, 5)
            bad = pool.submit(_square_or_fail, 3)
            assert ok.result() == 25
            with pytest.raises(ValueError):
                bad.result()

        assert pool.executor is None
        assert pool.get_stats()["total_submitted"] == 2
