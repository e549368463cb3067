"""Worker pool with exception handling for parallel provider calls.

Wraps ThreadPoolExecutor so that one failed task (a provider timeout, an
unexpected parser bug) is reported as a result instead of aborting the batch.
Provider calls are I/O bound, so threads are sufficient.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Iterable, Optional


class WorkerPool:
    """ThreadPoolExecutor wrapper with exception handling for evaluator tasks."""

    def __init__(self, max_workers: int = 4, logger: Optional[logging.Logger] = None):
        """
        Args:
            max_workers: Maximum number of concurrent worker threads
            logger: Optional logger instance
        """
        self.max_workers = max_workers
        self.logger = logger or logging.getLogger(__name__)
        self.executor: Optional[ThreadPoolExecutor] = None
        self._stats_lock = threading.Lock()
        self.stats = {
            "max_workers": max_workers,
            "total_submitted": 0,
            "total_successful": 0,
            "total_failed": 0,
        }

    def _record(self, success: bool) -> None:
        with self._stats_lock:
            self.stats["total_successful" if success else "total_failed"] += 1

    def map(self, func: Callable[[Any], Any], items: Iterable[Any], desc: str = "Processing") -> list[tuple]:
        """
        Process items in parallel with exception handling.

        Returns:
            List of tuples (success, item, result_or_error), in input order
        """
        items = list(items)
        results = []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(func, item) for item in items]
            with self._stats_lock:
                self.stats["total_submitted"] += len(items)

            for item, future in zip(items, futures):
                try:
                    result = future.result()
                    self._record(True)
                    results.append((True, item, result))
                    self.logger.debug(f"{desc}: Success for item {item}")
                except Exception as e:
                    self._record(False)
                    results.append((False, item, e))
                    self.logger.error(f"{desc}: Failed for item {item}: {e}", exc_info=True)

        succeeded = sum(1 for ok, _, _ in results if ok)
        self.logger.debug(f"{desc} complete: {succeeded} successful, {len(results) - succeeded} failed")
        return results

    def submit(self, func: Callable[..., Any], *args, **kwargs) -> Future:
        """Submit a single task; the caller collects the Future's result."""
        if self.executor is None:
            self.executor = ThreadPoolExecutor(max_workers=self.max_workers)

        with self._stats_lock:
            self.stats["total_submitted"] += 1
        future = self.executor.submit(func, *args, **kwargs)

        def _track_completion(f: Future) -> None:
            self._record(f.exception() is None)

        future.add_done_callback(_track_completion)
        return future

    def shutdown(self, wait: bool = True) -> None:
        if self.executor is not None:
            self.executor.shutdown(wait=wait)
            self.executor = None

    def get_stats(self) -> dict:
        with self._stats_lock:
            return dict(self.stats)

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.shutdown(wait=True)
        return False
