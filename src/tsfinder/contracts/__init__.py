"""Shared contracts: value types, enums, protocols and the error hierarchy.

Leaf module for the engine and the CLI. Imports nothing from tsfinder.engine
or tsfinder.clients.
"""

from tsfinder.contracts.enums import (
    BackendErrorKind,
    ExhaustionReason,
    ProbeErrorPolicy,
    ProbeOutcome,
)
from tsfinder.contracts.errors import (
    InvariantViolation,
    MetadataError,
    ProbeError,
    SearchCancelled,
    SearchExhausted,
    TimestampFinderError,
)
from tsfinder.contracts.progress import ProgressReporter
from tsfinder.contracts.search import ProgressEvent, SearchResult, SearchWindow

__all__ = [
    "BackendErrorKind",
    "ExhaustionReason",
    "InvariantViolation",
    "MetadataError",
    "ProbeError",
    "ProbeErrorPolicy",
    "ProbeOutcome",
    "ProgressEvent",
    "ProgressReporter",
    "SearchCancelled",
    "SearchExhausted",
    "SearchResult",
    "SearchWindow",
    "TimestampFinderError",
]
