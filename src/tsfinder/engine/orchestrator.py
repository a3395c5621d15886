# src/tsfinder/engine/orchestrator.py
"""SearchOrchestrator: budget, validation and bisection for one search.

Nothing outlives a call to run(): the window, the budget and the counters
belong to that invocation.
"""

from tsfinder.contracts import (
    ProbeErrorPolicy,
    ProgressReporter,
    SearchResult,
    SearchWindow,
)
from tsfinder.contracts.database import SnapshotDatabase
from tsfinder.core.logging import get_logger
from tsfinder.core.timestamps import format_duration
from tsfinder.engine.bisection import BisectionEngine
from tsfinder.engine.bounds import validate_bounds
from tsfinder.engine.executor import PointInTimeExecutor

logger = get_logger(__name__)

# Extra iterations beyond floor(log2(width / accuracy)): one for the rounding
# of log2, one so a final probe on either side of the boundary can resolve.
BUDGET_SLACK = 2


def iteration_budget(width_ns: int, accuracy_ns: int) -> int:
    """Maximum number of bisection probes for a window.

    ``floor(log2(width / accuracy)) + 2``. A non-positive accuracy is treated
    as 1ns, the finest resolution a window can be bisected to. Windows no
    wider than the accuracy (or empty) get the bare slack.
    """
    resolution = accuracy_ns if accuracy_ns > 0 else 1
    ratio = width_ns // resolution
    if ratio < 1:
        return BUDGET_SLACK
    # int.bit_length() - 1 == floor(log2(n)) exactly, with no float rounding
    return ratio.bit_length() - 1 + BUDGET_SLACK


class SearchOrchestrator:
    """Runs timestamp searches against one database.

    Example:
        orchestrator = SearchOrchestrator(database, reporter=progress)
        result = orchestrator.run(window, "SELECT COUNT(*) > 0 FROM Orders", millis_to_nanos(10))
        print(result.rfc3339)
    """

    def __init__(
        self,
        database: SnapshotDatabase,
        *,
        on_probe_error: ProbeErrorPolicy = ProbeErrorPolicy.NARROW_EARLIER,
        reporter: ProgressReporter | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            database: Point-in-time readable database, shared by every probe
            on_probe_error: Handling of hard backend errors during bisection
            reporter: Progress observer; raising from it cancels the search
        """
        self._database = database
        self._on_probe_error = on_probe_error
        self._reporter = reporter

    def run(self, window: SearchWindow, query: str, accuracy_ns: int) -> SearchResult:
        """Find the latest instant at which ``query`` still returned true.

        Args:
            window: Search window; the query must be true at its start and false at its end
            query: Read-only SQL returning one BOOL column
            accuracy_ns: Required distance from the transition

        Returns:
            SearchResult with the resolved timestamp

        Raises:
            InvariantViolation: Precondition failed at the window bounds
            SearchExhausted: Window or iteration budget ran out
            ProbeError: Hard backend error during validation, or mid-search under ABORT
        """
        budget = iteration_budget(window.width_ns, accuracy_ns)
        executor = PointInTimeExecutor(self._database, query)

        validate_bounds(executor, window)

        logger.info(
            "Searching for closest recovery timestamp",
            window=str(window),
            accuracy=format_duration(max(accuracy_ns, 0)),
            budget=budget,
        )
        engine = BisectionEngine(
            executor,
            accuracy_ns=accuracy_ns,
            on_probe_error=self._on_probe_error,
            reporter=self._reporter,
        )
        result = engine.search(window, budget)

        logger.info(
            "Found closest recovery timestamp",
            recovery_timestamp=result.rfc3339,
            probes=result.probes,
            budget=result.budget,
        )
        return result
