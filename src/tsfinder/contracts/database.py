"""Protocols for the point-in-time read capability the search needs.

The Cloud Spanner client satisfies these directly (``Database.snapshot`` and
``Snapshot.execute_sql``); tsfinder.clients.spanner adapts nanosecond
timestamps onto it, and tsfinder.testing.timeline implements it in memory.
"""

from collections.abc import Iterable, Sequence
from contextlib import AbstractContextManager
from typing import Any, Protocol


class SnapshotSession(Protocol):
    """A read-only view of the database fixed at one timestamp."""

    def execute_sql(self, sql: str) -> Iterable[Sequence[Any]]:
        """Run a read-only statement and return its rows."""
        ...


class SnapshotDatabase(Protocol):
    """A database that can be read as of an arbitrary past timestamp.

    Failures raise ``google.api_core.exceptions.GoogleAPIError`` subclasses
    (including ``RetryError`` when a client deadline runs out) or
    ``google.auth.exceptions.GoogleAuthError``, at any point between opening
    the snapshot and streaming the last row.
    """

    def snapshot(self, read_timestamp_ns: int) -> AbstractContextManager[SnapshotSession]:
        """Open a snapshot bound to exactly ``read_timestamp_ns``."""
        ...
