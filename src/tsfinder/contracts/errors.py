"""Exception hierarchy for timestamp searches.

Only InvariantViolation, SearchExhausted and ProbeError end a search on their
own. Soft backend errors never leave the probe; they come back as FALSE.
"""

from tsfinder.contracts.enums import BackendErrorKind, ExhaustionReason


class TimestampFinderError(Exception):
    """Base class for all tsfinder failures."""


class InvariantViolation(TimestampFinderError):
    """The diagnostic query does not hold at the start or fails at the end of the window.

    Raised before any bisection probe is issued.
    """


class SearchExhausted(TimestampFinderError):
    """The window or the iteration budget ran out before a timestamp was resolved.

    Attributes:
        reason: Which limit was hit
    """

    def __init__(self, reason: ExhaustionReason, message: str) -> None:
        self.reason = reason
        super().__init__(message)


class SearchCancelled(TimestampFinderError):
    """Raised by a progress reporter to stop a search in progress."""


class ProbeError(TimestampFinderError):
    """Hard backend failure while reading the database at a timestamp.

    The underlying client exception is chained as ``__cause__``.

    Attributes:
        timestamp_ns: Read timestamp of the failed probe
        kind: Classification of the failure (always hard when raised)
    """

    def __init__(
        self,
        timestamp_ns: int,
        message: str,
        *,
        kind: BackendErrorKind = BackendErrorKind.UNCLASSIFIED,
    ) -> None:
        self.timestamp_ns = timestamp_ns
        self.kind = kind
        super().__init__(message)


class MetadataError(TimestampFinderError):
    """Database metadata (earliest version time, server time) could not be read."""
