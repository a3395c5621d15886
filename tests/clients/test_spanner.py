"""Tests for the Cloud Spanner adapter, with the client library mocked out."""

import json
from unittest.mock import MagicMock

import pytest
from google.api_core.datetime_helpers import DatetimeWithNanoseconds
from google.api_core.exceptions import PermissionDenied, ServiceUnavailable

from tsfinder.clients import SpannerDatabase
from tsfinder.clients.spanner import SERVER_TIME_QUERY, is_transient
from tsfinder.contracts import MetadataError
from tsfinder.core.logging import configure_logging
from tsfinder.core.retry import RetryConfig
from tsfinder.core.timestamps import from_datetime, parse_timestamp

PATH = "projects/p/instances/i/databases/d"
FAST_RETRY = RetryConfig(max_attempts=3, base_delay=0.01, max_delay=0.02, jitter=0.0)


def _database() -> MagicMock:
    database = MagicMock()
    database.name = PATH
    return database


def _snapshot_returning(database: MagicMock, rows: list[list[object]]) -> MagicMock:
    snapshot = MagicMock()
    snapshot.execute_sql.return_value = iter(rows)
    database.snapshot.return_value.__enter__.return_value = snapshot
    return snapshot


class TestSnapshot:
    def test_read_timestamp_keeps_nanoseconds(self) -> None:
        database = _database()
        _snapshot_returning(database, [[True]])
        ts = parse_timestamp("2024-03-01T12:00:00.123456789Z")

        with SpannerDatabase(database).snapshot(ts) as snapshot:
            rows = list(snapshot.execute_sql("SELECT true"))

        assert rows == [[True]]
        read_timestamp = database.snapshot.call_args.kwargs["read_timestamp"]
        assert isinstance(read_timestamp, DatetimeWithNanoseconds)
        assert from_datetime(read_timestamp) == ts

    def test_path(self) -> None:
        assert SpannerDatabase(_database()).path == PATH


class TestMetadata:
    def test_earliest_version_time(self) -> None:
        database = _database()
        database.earliest_version_time = DatetimeWithNanoseconds(2024, 3, 1, 11, 0, 0, nanosecond=5)
        database.version_retention_period = "1h"
        db = SpannerDatabase(database)

        assert db.earliest_version_time() == parse_timestamp("2024-03-01T11:00:00.000000005Z")
        assert db.version_retention_period() == "1h"
        database.reload.assert_called_once()

    def test_missing_earliest_version_time(self) -> None:
        database = _database()
        database.earliest_version_time = None

        with pytest.raises(MetadataError, match="did not report an earliest version time"):
            SpannerDatabase(database).earliest_version_time()

    def test_reload_retried_on_transient_error(self) -> None:
        database = _database()
        database.earliest_version_time = DatetimeWithNanoseconds(2024, 3, 1, 11, 0, 0)
        database.reload.side_effect = [ServiceUnavailable("try again"), None]

        SpannerDatabase(database, retry=FAST_RETRY).earliest_version_time()

        assert database.reload.call_count == 2

    def test_reload_gives_up(self) -> None:
        database = _database()
        database.reload.side_effect = ServiceUnavailable("down")

        with pytest.raises(MetadataError, match="Could not read database metadata"):
            SpannerDatabase(database, retry=FAST_RETRY).earliest_version_time()

        assert database.reload.call_count == 3

    def test_retry_warnings_only_before_actual_retries(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Three attempts means two retries, so two warnings; none after the last failure."""
        configure_logging(json_output=True)
        database = _database()
        database.reload.side_effect = ServiceUnavailable("down")

        with pytest.raises(MetadataError):
            SpannerDatabase(database, retry=FAST_RETRY).earliest_version_time()

        retry_lines = [json.loads(line) for line in capsys.readouterr().err.splitlines() if "Retrying metadata lookup" in line]
        assert [line["attempt"] for line in retry_lines] == [0, 1]

    def test_permanent_error_not_retried(self) -> None:
        database = _database()
        database.reload.side_effect = PermissionDenied("missing spanner.databases.get")

        with pytest.raises(MetadataError):
            SpannerDatabase(database, retry=FAST_RETRY).earliest_version_time()

        assert database.reload.call_count == 1

    def test_server_time(self) -> None:
        database = _database()
        snapshot = _snapshot_returning(database, [[DatetimeWithNanoseconds(2024, 3, 1, 12, 0, 0, nanosecond=42)]])

        assert SpannerDatabase(database).server_time() == parse_timestamp("2024-03-01T12:00:00.000000042Z")
        snapshot.execute_sql.assert_called_once_with(SERVER_TIME_QUERY)
        database.snapshot.assert_called_once_with()

    def test_server_time_without_rows(self) -> None:
        database = _database()
        _snapshot_returning(database, [])

        with pytest.raises(MetadataError, match="returned no rows"):
            SpannerDatabase(database).server_time()


class TestLifecycle:
    def test_close_closes_owned_client(self) -> None:
        client = MagicMock()

        SpannerDatabase(_database(), client=client).close()

        client.close.assert_called_once()

    def test_close_without_client(self) -> None:
        SpannerDatabase(_database()).close()


class TestIsTransient:
    def test_classification(self) -> None:
        assert is_transient(ServiceUnavailable("x"))
        assert not is_transient(PermissionDenied("x"))
        assert not is_transient(ValueError("x"))
