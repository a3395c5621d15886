"""Status codes and kinds shared across the search engine and its collaborators."""

from enum import StrEnum


class ProbeOutcome(StrEnum):
    """Classified result of a single point-in-time probe.

    ERROR is an inconclusive probe: the backend failed in a way that carries
    no meaning for the diagnostic query.
    """

    TRUE = "true"
    FALSE = "false"
    ERROR = "error"


class BackendErrorKind(StrEnum):
    """Classification of a backend failure raised during a snapshot read.

    OBJECT_NOT_FOUND and STALENESS_EXCEEDED are soft: the probe reads them
    as "condition false". UNCLASSIFIED is hard and propagates.
    """

    OBJECT_NOT_FOUND = "object_not_found"
    STALENESS_EXCEEDED = "staleness_exceeded"
    UNCLASSIFIED = "unclassified"

    @property
    def is_soft(self) -> bool:
        return self is not BackendErrorKind.UNCLASSIFIED


class ExhaustionReason(StrEnum):
    """Which limit ended a search without a result."""

    WINDOW = "window"
    BUDGET = "budget"


class ProbeErrorPolicy(StrEnum):
    """What the bisection does with a hard backend error mid-search.

    NARROW_EARLIER: log it, spend one iteration, and search the earlier half.
    ABORT: raise the ProbeError and end the search.
    """

    NARROW_EARLIER = "narrow_earlier"
    ABORT = "abort"
