"""CLI helper functions for database access, window resolution and follow-up commands."""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING, Protocol

from tsfinder.contracts import SearchWindow
from tsfinder.core.logging import get_logger
from tsfinder.core.timestamps import NANOS_PER_SECOND, format_timestamp

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

    from tsfinder.contracts.database import SnapshotSession
    from tsfinder.core.config import DatabaseSettings, TsFinderSettings

logger = get_logger(__name__)

BACKUP_EXPIRATION_NS = 7 * 24 * 3600 * NANOS_PER_SECOND


class SearchableDatabase(Protocol):
    """What the CLI needs from a database: snapshots plus window defaults."""

    path: str

    def snapshot(self, read_timestamp_ns: int) -> AbstractContextManager[SnapshotSession]: ...

    def earliest_version_time(self) -> int: ...

    def version_retention_period(self) -> str: ...

    def server_time(self) -> int: ...

    def close(self) -> None: ...


def open_database(settings: TsFinderSettings) -> SearchableDatabase:
    """Connect to the configured Cloud Spanner database.

    Tests replace this function to run the CLI against an in-memory timeline.
    """
    from tsfinder.clients.spanner import SpannerDatabase
    from tsfinder.core.retry import RetryConfig

    return SpannerDatabase.connect(settings.database, retry=RetryConfig.from_settings(settings.retry))


def resolve_window(
    database: SearchableDatabase,
    start_ns: int | None,
    end_ns: int | None,
) -> SearchWindow:
    """Fill in missing window bounds from database metadata.

    Start defaults to the earliest version time (the oldest recoverable
    instant); end defaults to the database server's current time. Metadata
    is only read for bounds the caller left open.

    Raises:
        MetadataError: If a required metadata lookup fails
        ValueError: If the resolved start is not before the resolved end
    """
    if start_ns is None:
        start_ns = database.earliest_version_time()
        logger.info(
            "Earliest recovery time",
            earliest_version_time=format_timestamp(start_ns),
            retention_period=database.version_retention_period(),
        )
    if end_ns is None:
        end_ns = database.server_time()
        logger.info("Database server time", server_time=format_timestamp(end_ns))

    if start_ns >= end_ns:
        raise ValueError(f"Window start {format_timestamp(start_ns)} is not before window end {format_timestamp(end_ns)}")
    return SearchWindow(start_ns, end_ns)


def backup_command(
    settings: DatabaseSettings,
    timestamp_ns: int,
    *,
    expiration_ns: int | None = None,
    backup_id: str | None = None,
) -> str:
    """``gcloud`` command that creates a backup as of ``timestamp_ns``.

    Args:
        settings: Database coordinates
        timestamp_ns: Version time of the backup
        expiration_ns: Backup expiry (default: seven days from now)
        backup_id: Backup name (default: ``backup-<random hex>``)
    """
    if expiration_ns is None:
        expiration_ns = time.time_ns() + BACKUP_EXPIRATION_NS
    if backup_id is None:
        backup_id = f"backup-{uuid.uuid4().hex}"
    return (
        f"gcloud spanner backups create {backup_id} "
        f"--project={settings.project} --instance={settings.instance} --database={settings.database} "
        f"--version-time={format_timestamp(timestamp_ns)} --expiration-date={format_timestamp(expiration_ns)} --async"
    )


def query_command(settings: DatabaseSettings, timestamp_ns: int, sql: str = "SELECT true") -> str:
    """``gcloud`` command that runs ``sql`` as of ``timestamp_ns``."""
    return (
        f"gcloud spanner databases execute-sql {settings.database} "
        f"--project={settings.project} --instance={settings.instance} "
        f"--sql='{sql}' --read-timestamp={format_timestamp(timestamp_ns)}"
    )
