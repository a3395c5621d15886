# src/tsfinder/engine/executor.py
"""Point-in-time query execution and backend error classification.

A probe reads the database as of one exact timestamp and reduces the
diagnostic query's answer to a boolean:

- first column of the first row is BOOL -> that value
- zero rows -> False (the condition has not become true)
- the queried object does not exist at that timestamp -> False (soft error)
- the timestamp is outside the servable staleness window -> False (soft error)
- any other backend failure -> ProbeError (hard error)

Treating a missing table as False lets the same search recover from DDL
(CREATE/DROP TABLE) as well as DML changes.
"""

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError

from tsfinder.contracts import BackendErrorKind, ProbeError, ProbeOutcome
from tsfinder.contracts.database import SnapshotDatabase
from tsfinder.core.logging import get_logger
from tsfinder.core.timestamps import format_timestamp

logger = get_logger(__name__)

# GoogleAPIError covers RPC failures and client-side retry deadlines (RetryError);
# GoogleAuthError covers credential refresh and transport failures.
_BACKEND_ERRORS: tuple[type[Exception], ...] = (GoogleAPIError, GoogleAuthError)

# Substrings of Cloud Spanner error messages, matched case-sensitively.
_OBJECT_NOT_FOUND_MARKERS: tuple[str, ...] = (
    "Table not found",
    "Column not found",
)
_STALENESS_MARKERS: tuple[str, ...] = ("exceeded the maximum timestamp staleness",)


def _error_message(error: BaseException) -> str:
    # GoogleAPICallError and RetryError carry a .message; auth errors only have args
    message = getattr(error, "message", None)
    return message if isinstance(message, str) and message else str(error)


def classify_backend_error(error: BaseException) -> BackendErrorKind:
    """Classify a backend exception by its message.

    Spanner reports both conditions through generic gRPC status codes
    (INVALID_ARGUMENT, FAILED_PRECONDITION) shared with unrelated failures,
    so the status code alone cannot tell them apart.
    """
    message = _error_message(error)

    if any(marker in message for marker in _OBJECT_NOT_FOUND_MARKERS):
        return BackendErrorKind.OBJECT_NOT_FOUND
    if any(marker in message for marker in _STALENESS_MARKERS):
        return BackendErrorKind.STALENESS_EXCEEDED
    return BackendErrorKind.UNCLASSIFIED


class PointInTimeExecutor:
    """Runs one diagnostic query against snapshots of one database.

    The executor holds no per-probe state; probing the same timestamp twice
    against an unchanged database yields the same classification.

    Example:
        executor = PointInTimeExecutor(database, "SELECT COUNT(*) > 0 FROM Orders")
        if executor.probe(parse_timestamp("2024-03-01T12:00:00Z")):
            ...
    """

    def __init__(self, database: SnapshotDatabase, query: str) -> None:
        """Initialize executor.

        Args:
            database: Point-in-time readable database
            query: Read-only SQL returning one BOOL column, or no rows
        """
        self._database = database
        self._query = query

    @property
    def query(self) -> str:
        return self._query

    def probe(self, timestamp_ns: int) -> bool:
        """Evaluate the diagnostic query as of ``timestamp_ns``.

        Returns:
            Whether the condition held at that instant. Soft backend errors
            return False.

        Raises:
            ProbeError: On a hard backend error, or if the first column is not BOOL.
        """
        ts = format_timestamp(timestamp_ns)
        try:
            with self._database.snapshot(timestamp_ns) as snapshot:
                rows = iter(snapshot.execute_sql(self._query))
                first_row = next(rows, None)
        except _BACKEND_ERRORS as e:
            kind = classify_backend_error(e)
            if kind.is_soft:
                logger.warning(
                    "Probe hit soft backend error; treating as false",
                    read_timestamp=ts,
                    kind=kind.value,
                    error=_error_message(e),
                )
                return False
            raise ProbeError(timestamp_ns, f"Query failed at {ts}: {e}", kind=kind) from e

        if first_row is None:
            logger.debug("Probe returned no rows", read_timestamp=ts)
            return False

        if len(first_row) == 0:
            raise ProbeError(timestamp_ns, f"Query returned a row with no columns at {ts}")

        value = first_row[0]
        # bool is checked exactly: INT64 1 or a NULL must not read as true
        if not isinstance(value, bool):
            raise ProbeError(
                timestamp_ns,
                f"Query must return a BOOL in the first column, got {type(value).__name__} ({value!r}) at {ts}",
            )

        logger.debug("Probe complete", read_timestamp=ts, outcome=value)
        return value

    def classify(self, timestamp_ns: int) -> ProbeOutcome:
        """Like probe(), but reports hard errors as ProbeOutcome.ERROR instead of raising."""
        try:
            return ProbeOutcome.TRUE if self.probe(timestamp_ns) else ProbeOutcome.FALSE
        except ProbeError as e:
            logger.error("Probe inconclusive", read_timestamp=format_timestamp(timestamp_ns), error=str(e))
            return ProbeOutcome.ERROR
