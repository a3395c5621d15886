# src/tsfinder/contracts/search.py
"""Value types passed between the search orchestrator, engine and reporters.

All types are frozen. Each bisection step produces a new SearchWindow; no
step ever holds a reference to a window another step can change.
"""

from dataclasses import dataclass

from tsfinder.core.timestamps import format_timestamp, midpoint


@dataclass(frozen=True, slots=True)
class SearchWindow:
    """Half-open time interval being searched, in epoch nanoseconds.

    ``start_ns < end_ns`` is NOT enforced here: an empty or inverted window
    is a legitimate terminal state of the bisection (window exhausted).
    """

    start_ns: int
    end_ns: int

    @property
    def width_ns(self) -> int:
        return self.end_ns - self.start_ns

    @property
    def midpoint_ns(self) -> int:
        return midpoint(self.start_ns, self.end_ns)

    def earlier(self, midpoint_ns: int) -> "SearchWindow":
        """The half before ``midpoint_ns``."""
        return SearchWindow(self.start_ns, midpoint_ns)

    def later(self, midpoint_ns: int) -> "SearchWindow":
        """The half after ``midpoint_ns``."""
        return SearchWindow(midpoint_ns, self.end_ns)

    def __str__(self) -> str:
        return f"[{format_timestamp(self.start_ns)}, {format_timestamp(self.end_ns)})"


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Emitted once per classified bisection probe.

    Not emitted for inconclusive (hard error) probes.

    Attributes:
        start_ns: Window start at the time of the probe.
        end_ns: Window end at the time of the probe.
        midpoint_ns: Timestamp that was probed.
        outcome: Whether the diagnostic query held at the midpoint.
        iteration: 1-based count of bisection probes so far, including this one.
        budget: Total iteration budget of the search.
    """

    start_ns: int
    end_ns: int
    midpoint_ns: int
    outcome: bool
    iteration: int
    budget: int


@dataclass(frozen=True, slots=True)
class SearchResult:
    """A resolved recovery timestamp.

    Attributes:
        timestamp_ns: Latest probed instant at which the query held, within
            the requested accuracy of the transition.
        budget: Iteration budget the search was given.
        probes: Bisection probes issued (validation probes excluded).
        inconclusive_probes: Probes that hit a hard backend error and were
            treated as "search earlier".
    """

    timestamp_ns: int
    budget: int
    probes: int
    inconclusive_probes: int = 0

    @property
    def rfc3339(self) -> str:
        return format_timestamp(self.timestamp_ns)
