"""Search engine: point-in-time probes, bound validation, bisection, orchestration."""

from tsfinder.engine.bisection import BisectionEngine
from tsfinder.engine.bounds import validate_bounds
from tsfinder.engine.executor import PointInTimeExecutor, classify_backend_error
from tsfinder.engine.orchestrator import SearchOrchestrator, iteration_budget
from tsfinder.engine.progress import (
    DeadlineProgressReporter,
    NullProgressReporter,
    RecordingProgressReporter,
)

__all__ = [
    "BisectionEngine",
    "DeadlineProgressReporter",
    "NullProgressReporter",
    "PointInTimeExecutor",
    "RecordingProgressReporter",
    "SearchOrchestrator",
    "classify_backend_error",
    "iteration_budget",
    "validate_bounds",
]
