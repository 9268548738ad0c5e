"""
Execution timing utilities.

Provides wall-clock timing for pipeline steps. A synchronisation hook
(typically the backend's synchronize()) can be supplied so that
asynchronous device work is finished before each measurement.
"""

import time
from contextlib import contextmanager
from typing import Callable, Iterator


class Timer:
    """
    Accumulating timer with an optional device synchronisation hook.

    Usage:
        timer = Timer(sync=backend.synchronize)
        timer.start()

        with timer.section('sum'):
            total = tree_reduce(ctx, values, 'add')

        with timer.section('histogram'):
            hist = build_histogram(ctx, values, lo, hi)

        timer.stop()
        result = timer.result()
        # {'total_seconds': 0.05, 'sum': 0.03, 'histogram': 0.02}
    """

    def __init__(self, sync: Callable[[], None] | None = None):
        """
        Initialize timer.

        Args:
            sync: Called before every measurement. Required for accurate
                  timing of asynchronous devices.
        """
        self._sync_hook = sync
        self._sections: dict[str, float] = {}
        self._start_time: float | None = None
        self._total: float | None = None

    def _sync(self) -> None:
        if self._sync_hook is not None:
            self._sync_hook()

    def start(self) -> None:
        """Start the overall timer."""
        self._sync()
        self._start_time = time.perf_counter()

    def stop(self) -> None:
        """Stop the overall timer."""
        self._sync()
        if self._start_time is None:
            raise RuntimeError("Timer.stop() called before start()")
        self._total = time.perf_counter() - self._start_time

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """
        Time a named section.

        Args:
            name: Section identifier (used as key in result dict)

        Note:
            Sections can overlap with each other and with the total time.
            The timer does not enforce mutual exclusion.
        """
        self._sync()
        start = time.perf_counter()
        try:
            yield
        finally:
            self._sync()
            self.add(name, time.perf_counter() - start)

    def add(self, name: str, seconds: float) -> None:
        """Accumulate an externally measured duration under `name`."""
        self._sections[name] = self._sections.get(name, 0.0) + seconds

    @property
    def elapsed(self) -> float | None:
        """Total seconds between start() and stop(), or None if not stopped."""
        return self._total

    def result(self) -> dict[str, float]:
        """
        Get timing results.

        Returns:
            Dictionary with 'total_seconds' and all section timings

        Raises:
            RuntimeError: If called before stop()
        """
        if self._total is None:
            raise RuntimeError("Timer.result() called before stop()")

        result = {'total_seconds': self._total}
        result.update(self._sections)
        return result


@contextmanager
def timed(sync: Callable[[], None] | None = None) -> Iterator[Timer]:
    """
    Context manager for simple timing.

    Usage:
        with timed() as timer:
            result = describe(values)
        print(f"Took {timer.result()['total_seconds']:.3f}s")
    """
    timer = Timer(sync=sync)
    timer.start()
    try:
        yield timer
    finally:
        timer.stop()
