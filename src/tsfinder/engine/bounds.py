"""Search precondition: the condition holds at the window start and not at its end."""

from tsfinder.contracts import InvariantViolation, SearchWindow
from tsfinder.core.logging import get_logger
from tsfinder.core.timestamps import format_timestamp
from tsfinder.engine.executor import PointInTimeExecutor

logger = get_logger(__name__)


def validate_bounds(executor: PointInTimeExecutor, window: SearchWindow) -> None:
    """Probe both ends of the window before any bisection.

    The end is probed first, matching the order an operator reasons in: is
    the damage visible now, and was the data intact back then?

    Raises:
        InvariantViolation: Condition still true at the end, or already false at the start.
        ProbeError: A hard backend error on either probe (not absorbed here).
    """
    logger.info(
        "Checking query at window bounds",
        start=format_timestamp(window.start_ns),
        end=format_timestamp(window.end_ns),
    )

    if executor.probe(window.end_ns):
        raise InvariantViolation(f"Condition still true at window end ({format_timestamp(window.end_ns)})")

    if not executor.probe(window.start_ns):
        raise InvariantViolation(f"Condition already false at window start ({format_timestamp(window.start_ns)})")
