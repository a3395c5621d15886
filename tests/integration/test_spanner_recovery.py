"""Searches against a live Cloud Spanner database.

Skipped unless SPANNER_PROJECT, SPANNER_INSTANCE and SPANNER_DATABASE name a
database the caller may create and drop tables in. Each test works in its
own uniquely named table and drops it afterwards.
"""

import os
import time
import uuid
from collections.abc import Iterator
from typing import Any

import pytest

from tsfinder.clients import SpannerDatabase
from tsfinder.contracts import SearchWindow
from tsfinder.core.config import DatabaseSettings
from tsfinder.core.timestamps import from_datetime, millis_to_nanos
from tsfinder.engine import PointInTimeExecutor, SearchOrchestrator

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not all(os.environ.get(name) for name in ("SPANNER_PROJECT", "SPANNER_INSTANCE", "SPANNER_DATABASE")),
        reason="SPANNER_PROJECT, SPANNER_INSTANCE and SPANNER_DATABASE not set",
    ),
]

ACCURACY = millis_to_nanos(1)


@pytest.fixture
def settings() -> DatabaseSettings:
    return DatabaseSettings(
        project=os.environ["SPANNER_PROJECT"],
        instance=os.environ["SPANNER_INSTANCE"],
        database=os.environ["SPANNER_DATABASE"],
    )


@pytest.fixture
def db(settings: DatabaseSettings) -> Iterator[SpannerDatabase]:
    database = SpannerDatabase.connect(settings)
    yield database
    database.close()


@pytest.fixture
def table(settings: DatabaseSettings) -> Iterator[str]:
    """A fresh table with an INT64 key; dropped at teardown if it still exists."""
    from google.api_core.exceptions import GoogleAPICallError

    name = f"TsFinder_{uuid.uuid4().hex[:12]}"
    database = _raw_database(settings)
    database.update_ddl([f"CREATE TABLE {name} (Id INT64 NOT NULL, Note STRING(MAX)) PRIMARY KEY (Id)"]).result(300)
    yield name
    try:
        database.update_ddl([f"DROP TABLE {name}"]).result(300)
    except GoogleAPICallError:
        pass  # Dropped by the test itself


def _raw_database(settings: DatabaseSettings) -> Any:
    from google.cloud import spanner

    return spanner.Client(project=settings.project).instance(settings.instance).database(settings.database)


class TestRecovery:
    def test_recovers_from_deleted_rows(self, settings: DatabaseSettings, db: SpannerDatabase, table: str) -> None:
        from google.cloud import spanner

        raw = _raw_database(settings)
        with raw.batch() as batch:
            batch.insert(table, columns=("Id", "Note"), values=[(1, "kept"), (2, "kept")])
        inserted_ns = from_datetime(batch.committed)

        time.sleep(1)
        with raw.batch() as batch:
            batch.delete(table, spanner.KeySet(all_=True))
        deleted_ns = from_datetime(batch.committed)

        result = SearchOrchestrator(db).run(
            SearchWindow(inserted_ns, deleted_ns),
            f"SELECT COUNT(*) > 0 FROM {table}",
            ACCURACY,
        )

        assert deleted_ns - ACCURACY < result.timestamp_ns < deleted_ns

    def test_recovers_from_dropped_table(self, settings: DatabaseSettings, db: SpannerDatabase, table: str) -> None:
        raw = _raw_database(settings)
        with raw.batch() as batch:
            batch.insert(table, columns=("Id", "Note"), values=[(1, "kept")])
        inserted_ns = from_datetime(batch.committed)

        raw.update_ddl([f"DROP TABLE {table}"]).result(300)
        dropped_by_ns = db.server_time()
        query = f"SELECT COUNT(*) > 0 FROM {table}"

        result = SearchOrchestrator(db).run(SearchWindow(inserted_ns, dropped_by_ns), query, ACCURACY)

        executor = PointInTimeExecutor(db, query)
        assert executor.probe(result.timestamp_ns) is True
        assert executor.probe(result.timestamp_ns + ACCURACY) is False

    def test_metadata(self, db: SpannerDatabase) -> None:
        earliest = db.earliest_version_time()
        now = db.server_time()

        assert earliest < now
        assert db.version_retention_period()
