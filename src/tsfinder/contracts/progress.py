"""Progress reporting protocol for bisection searches.

Reporters are called synchronously after every classified probe. Any
exception a reporter raises ends the search and propagates to the caller
unchanged; this is the only way to cancel a search in progress.
"""

from typing import Protocol

from tsfinder.contracts.search import ProgressEvent


class ProgressReporter(Protocol):
    """Observer of bisection progress."""

    def report(self, event: ProgressEvent) -> None:
        """Receive one probe result.

        Raises:
            Exception: Any exception (typically SearchCancelled) aborts the search.
        """
        ...
