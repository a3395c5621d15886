# src/tsfinder/engine/progress.py
"""Progress reporters shipped with the engine.

Console rendering lives in tsfinder.cli_formatters; these are the
presentation-free building blocks.
"""

import time
from collections.abc import Callable

from tsfinder.contracts import ProgressEvent, ProgressReporter, SearchCancelled


class NullProgressReporter:
    """Reporter that ignores every event.

    For library use without a console. Does not inherit from anything, so
    it cannot be mistaken for a reporter that records events.
    """

    def report(self, event: ProgressEvent) -> None:
        pass  # Intentional no-op


class RecordingProgressReporter:
    """Reporter that keeps every event, optionally cancelling after N of them."""

    def __init__(self, *, cancel_after: int | None = None) -> None:
        self.events: list[ProgressEvent] = []
        self._cancel_after = cancel_after

    def report(self, event: ProgressEvent) -> None:
        self.events.append(event)
        if self._cancel_after is not None and len(self.events) >= self._cancel_after:
            raise SearchCancelled(f"Search cancelled after {len(self.events)} probes")


class DeadlineProgressReporter:
    """Cancels the search once a wall-clock budget has elapsed.

    The deadline is checked after each classified probe, so a single hung
    probe is not interrupted; the search stops at the next report.

    Example:
        reporter = DeadlineProgressReporter(console_reporter, timeout_seconds=300)
    """

    def __init__(
        self,
        inner: ProgressReporter,
        *,
        timeout_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize reporter.

        Args:
            inner: Reporter that receives every event before the deadline check
            timeout_seconds: Elapsed time after which the search is cancelled
            clock: Monotonic time source (injectable for tests)
        """
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")
        self._inner = inner
        self._timeout_seconds = timeout_seconds
        self._clock = clock
        self._started = clock()

    def report(self, event: ProgressEvent) -> None:
        self._inner.report(event)
        elapsed = self._clock() - self._started
        if elapsed > self._timeout_seconds:
            raise SearchCancelled(
                f"Search cancelled after {elapsed:.1f}s (timeout {self._timeout_seconds:g}s, {event.iteration} probes)"
            )
