# src/tsfinder/clients/spanner.py
"""Cloud Spanner adapter for point-in-time reads and database metadata.

Wraps ``google.cloud.spanner_v1.database.Database`` so the search engine can
open snapshots by epoch nanoseconds, and so the CLI can find the default
search window: the earliest version time (start) and the server's current
time (end).
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from google.api_core.exceptions import (
    Aborted,
    DeadlineExceeded,
    GoogleAPIError,
    InternalServerError,
    ResourceExhausted,
    ServiceUnavailable,
)
from google.auth.exceptions import GoogleAuthError

from tsfinder.contracts import MetadataError
from tsfinder.core.logging import get_logger
from tsfinder.core.retry import MaxRetriesExceeded, RetryConfig, RetryManager
from tsfinder.core.timestamps import format_timestamp, from_datetime, to_datetime

if TYPE_CHECKING:
    from google.cloud import spanner
    from google.cloud.spanner_v1.database import Database

    from tsfinder.contracts.database import SnapshotSession
    from tsfinder.core.config import DatabaseSettings

logger = get_logger(__name__)

T = TypeVar("T")

_TRANSIENT_ERRORS: tuple[type[Exception], ...] = (
    Aborted,
    DeadlineExceeded,
    InternalServerError,
    ResourceExhausted,
    ServiceUnavailable,
)

SERVER_TIME_QUERY = "SELECT CURRENT_TIMESTAMP()"


def is_transient(error: BaseException) -> bool:
    """Whether a metadata lookup failure is worth retrying."""
    return isinstance(error, _TRANSIENT_ERRORS)


class SpannerDatabase:
    """A Cloud Spanner database readable at arbitrary past timestamps.

    One instance is shared by every probe of a search; each probe checks a
    session out of the client's pool for a single-use snapshot.
    """

    def __init__(
        self,
        database: Database,
        *,
        client: spanner.Client | None = None,
        retry: RetryConfig | None = None,
    ) -> None:
        """Initialize adapter.

        Args:
            database: Spanner database handle
            client: Owning client, closed by close() when given
            retry: Retry behavior for metadata lookups (default: 3 attempts)
        """
        self._database = database
        self._client = client
        self._retry = RetryManager(retry if retry is not None else RetryConfig())
        self._metadata_loaded = False

    @classmethod
    def connect(cls, settings: DatabaseSettings, *, retry: RetryConfig | None = None) -> SpannerDatabase:
        """Create a client with Application Default Credentials and open the database.

        No RPC is made until the first read or metadata lookup.
        """
        from google.cloud import spanner

        client = spanner.Client(project=settings.project)
        database = client.instance(settings.instance).database(settings.database)
        logger.info("Connecting to database", database=settings.path)
        return cls(database, client=client, retry=retry)

    @property
    def path(self) -> str:
        return str(self._database.name)

    @contextmanager
    def snapshot(self, read_timestamp_ns: int) -> Iterator[SnapshotSession]:
        """Single-use snapshot bound to an exact read timestamp."""
        with self._database.snapshot(read_timestamp=to_datetime(read_timestamp_ns)) as snapshot:
            yield snapshot

    def earliest_version_time(self) -> int:
        """Earliest instant the database can still be read at, in epoch nanoseconds."""
        self._load_metadata()
        earliest = self._database.earliest_version_time
        if earliest is None:
            raise MetadataError(f"Database {self.path} did not report an earliest version time")
        return from_datetime(earliest)

    def version_retention_period(self) -> str:
        """Configured retention period, e.g. ``"1h"`` or ``"7d"``."""
        self._load_metadata()
        return str(self._database.version_retention_period or "")

    def server_time(self) -> int:
        """Current time of the database server, in epoch nanoseconds."""

        def read_server_time() -> Any:
            with self._database.snapshot() as snapshot:
                for row in snapshot.execute_sql(SERVER_TIME_QUERY):
                    return row[0]
            return None

        value = self._with_retry("server time", read_server_time)
        if value is None:
            raise MetadataError(f"{SERVER_TIME_QUERY} returned no rows")
        timestamp_ns = from_datetime(value)
        logger.debug("Read database server time", server_time=format_timestamp(timestamp_ns))
        return timestamp_ns

    def close(self) -> None:
        """Release the client's gRPC channels."""
        if self._client is not None:
            self._client.close()

    def _load_metadata(self) -> None:
        if self._metadata_loaded:
            return
        self._with_retry("database metadata", self._database.reload)
        self._metadata_loaded = True

    def _with_retry(self, what: str, operation: Callable[[], T]) -> T:
        def on_retry(attempt: int, error: BaseException) -> None:
            logger.warning("Retrying metadata lookup", lookup=what, attempt=attempt, error=str(error))

        try:
            return self._retry.execute_with_retry(operation, is_retryable=is_transient, on_retry=on_retry)
        except MaxRetriesExceeded as e:
            raise MetadataError(f"Could not read {what} for {self.path}: {e.last_error}") from e
        except (GoogleAPIError, GoogleAuthError) as e:
            raise MetadataError(f"Could not read {what} for {self.path}: {e}") from e
