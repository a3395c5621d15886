# src/tsfinder/engine/bisection.py
"""Bisection over a time window towards the true -> false transition.

State is ``(window, remaining_iterations)``. Each step probes the midpoint
and moves to a new window:

    TRUE   -> report; success if end - midpoint < accuracy, else search later
    FALSE  -> report; success (returning start) if midpoint - start < accuracy,
              else search earlier
    ERROR  -> no report; search earlier (or raise, under ProbeErrorPolicy.ABORT)

and every step spends one iteration. The window start is always an instant
at which the condition is known to hold (validated, or probed TRUE), so
returning it is sound. Running out of window or budget ends the search with
SearchExhausted.

Invariant: at most ``budget`` probes are issued, whatever the database does.
"""

from tsfinder.contracts import (
    ExhaustionReason,
    ProbeError,
    ProbeErrorPolicy,
    ProgressEvent,
    ProgressReporter,
    SearchExhausted,
    SearchResult,
    SearchWindow,
)
from tsfinder.core.logging import get_logger
from tsfinder.core.timestamps import format_timestamp
from tsfinder.engine.executor import PointInTimeExecutor
from tsfinder.engine.progress import NullProgressReporter

logger = get_logger(__name__)


class BisectionEngine:
    """Narrows a validated window down to the requested accuracy.

    Sequential by construction: each midpoint depends on the previous
    outcome, and each probe is a blocking database round-trip.
    """

    def __init__(
        self,
        executor: PointInTimeExecutor,
        *,
        accuracy_ns: int,
        on_probe_error: ProbeErrorPolicy = ProbeErrorPolicy.NARROW_EARLIER,
        reporter: ProgressReporter | None = None,
    ) -> None:
        """Initialize engine.

        Args:
            executor: Probe for the diagnostic query
            accuracy_ns: Stop once the remaining window is narrower than this.
                Zero or negative never stops early; the search then ends by exhaustion.
            on_probe_error: Handling of hard backend errors mid-search
            reporter: Called after each classified probe; raising aborts the search
        """
        self._executor = executor
        self._accuracy_ns = accuracy_ns
        self._on_probe_error = on_probe_error
        self._reporter: ProgressReporter = reporter if reporter is not None else NullProgressReporter()

    def search(self, window: SearchWindow, budget: int) -> SearchResult:
        """Find the latest instant within accuracy of the transition.

        Args:
            window: Window whose start satisfies the condition and whose end doesn't
            budget: Maximum number of probes

        Returns:
            SearchResult with the resolved timestamp

        Raises:
            SearchExhausted: Window or budget ran out first
            ProbeError: Hard backend error under ProbeErrorPolicy.ABORT
            Exception: Anything the progress reporter raises, unchanged
        """
        remaining = budget
        probes = 0
        inconclusive = 0

        while True:
            if window.width_ns <= 0:
                raise SearchExhausted(
                    ExhaustionReason.WINDOW,
                    f"Accuracy limit reached without resolution at {window}",
                )
            if remaining == 0:
                raise SearchExhausted(
                    ExhaustionReason.BUDGET,
                    f"Iteration budget of {budget} exhausted without resolution; last window {window}",
                )

            midpoint_ns = window.midpoint_ns
            logger.debug(
                "Querying midpoint",
                start=format_timestamp(window.start_ns),
                midpoint=format_timestamp(midpoint_ns),
                end=format_timestamp(window.end_ns),
                remaining=remaining,
            )
            probes += 1
            remaining -= 1

            try:
                held = self._executor.probe(midpoint_ns)
            except ProbeError as e:
                if self._on_probe_error is ProbeErrorPolicy.ABORT:
                    raise
                # Inconclusive: spend the iteration, assume nothing, look earlier.
                inconclusive += 1
                logger.error("Query failed; searching earlier", midpoint=format_timestamp(midpoint_ns), error=str(e))
                window = window.earlier(midpoint_ns)
                continue

            self._reporter.report(
                ProgressEvent(
                    start_ns=window.start_ns,
                    end_ns=window.end_ns,
                    midpoint_ns=midpoint_ns,
                    outcome=held,
                    iteration=probes,
                    budget=budget,
                )
            )

            if held:
                if window.end_ns - midpoint_ns < self._accuracy_ns:
                    logger.debug("Query succeeded within accuracy", read_timestamp=format_timestamp(midpoint_ns))
                    return self._result(midpoint_ns, budget, probes, inconclusive)
                logger.debug("Query succeeded; searching later")
                window = window.later(midpoint_ns)
            else:
                if midpoint_ns - window.start_ns < self._accuracy_ns:
                    logger.debug("Query failed within accuracy of start", read_timestamp=format_timestamp(window.start_ns))
                    return self._result(window.start_ns, budget, probes, inconclusive)
                logger.debug("Query failed; searching earlier")
                window = window.earlier(midpoint_ns)

    def _result(self, timestamp_ns: int, budget: int, probes: int, inconclusive: int) -> SearchResult:
        if inconclusive:
            logger.warning(
                "Result reached after inconclusive probes; the transition may lie later than reported",
                read_timestamp=format_timestamp(timestamp_ns),
                inconclusive_probes=inconclusive,
            )
        return SearchResult(
            timestamp_ns=timestamp_ns,
            budget=budget,
            probes=probes,
            inconclusive_probes=inconclusive,
        )
