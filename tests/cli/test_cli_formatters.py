"""Tests for CLI output formatting."""

import json

import pytest

from tsfinder.cli_formatters import OutputFormat, RichProgressReporter, create_progress, echo_error, echo_result
from tsfinder.contracts import ProgressEvent, SearchExhausted, SearchResult
from tsfinder.contracts.enums import ExhaustionReason

RESULT = SearchResult(timestamp_ns=1_500_000_000, budget=14, probes=13, inconclusive_probes=0)
COMMANDS = {"backup": "gcloud spanner backups create b", "query": "gcloud spanner databases execute-sql d"}


class TestEchoResult:
    def test_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        echo_result(RESULT, database_path="projects/p/instances/i/databases/d", commands=COMMANDS, output_format=OutputFormat.JSON)

        data = json.loads(capsys.readouterr().out)
        assert data == {
            "database": "projects/p/instances/i/databases/d",
            "timestamp": "1970-01-01T00:00:01.5Z",
            "probes": 13,
            "budget": 14,
            "inconclusive_probes": 0,
            "commands": COMMANDS,
        }

    def test_console(self, capsys: pytest.CaptureFixture[str]) -> None:
        echo_result(RESULT, database_path="unused", commands=COMMANDS, output_format=OutputFormat.CONSOLE)

        out = capsys.readouterr().out
        assert out.splitlines() == [
            "Found closest recovery timestamp: 1970-01-01T00:00:01.5Z",
            "To back up the database at this point in time:",
            "  gcloud spanner backups create b",
            "To execute a query at this point in time:",
            "  gcloud spanner databases execute-sql d",
        ]


class TestEchoError:
    def test_json_on_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        error = SearchExhausted(ExhaustionReason.BUDGET, "Iteration budget of 11 exhausted")

        echo_error(error, output_format=OutputFormat.JSON, kind="search_exhausted:budget")

        captured = capsys.readouterr()
        assert json.loads(captured.out) == {"error": "Iteration budget of 11 exhausted", "kind": "search_exhausted:budget"}
        assert captured.err == ""

    def test_console_on_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        echo_error(ValueError("bad window"), output_format=OutputFormat.CONSOLE)

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Error: bad window" in captured.err


class TestRichProgressReporter:
    def test_advances_once_per_event(self) -> None:
        with create_progress(enabled=False) as progress:
            reporter = RichProgressReporter(progress)
            for iteration in (1, 2):
                event = ProgressEvent(
                    start_ns=0,
                    end_ns=2_000_000_000,
                    midpoint_ns=1_000_000_000,
                    outcome=iteration == 2,
                    iteration=iteration,
                    budget=14,
                )
                reporter.report(event)

            task = progress.tasks[0]
            assert task.completed == 2
            assert task.total == 14
            assert task.description == "1970-01-01T00:00:00Z - 1970-01-01T00:00:01Z - 1970-01-01T00:00:02Z (true)"
