# src/tsfinder/cli.py
"""tsfinder Command Line Interface.

Entry point for the tsfinder CLI tool.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from tsfinder import __version__, cli_helpers
from tsfinder.cli_formatters import (
    OutputFormat,
    RichProgressReporter,
    create_progress,
    echo_error,
    echo_result,
)
from tsfinder.contracts import (
    InvariantViolation,
    MetadataError,
    ProbeError,
    ProbeErrorPolicy,
    ProbeOutcome,
    ProgressReporter,
    SearchCancelled,
    SearchExhausted,
    TimestampFinderError,
)
from tsfinder.core.config import TsFinderSettings, load_settings
from tsfinder.core.timestamps import TimestampParseError, format_timestamp, parse_timestamp

if TYPE_CHECKING:
    from tsfinder.contracts import SearchResult, SearchWindow

__all__ = ["app"]

EXIT_SEARCH_FAILED = 1
EXIT_USAGE = 2

app = typer.Typer(
    name="tsfinder",
    help="Find the latest point-in-time recovery timestamp for a Cloud Spanner database.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"tsfinder version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables (e.g. GOOGLE_APPLICATION_CREDENTIALS) from a .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(EXIT_USAGE)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
        exists=False,  # Existence is checked in _load_dotenv for a clearer message
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging (logs every probe).",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """tsfinder: bisect a Cloud Spanner database's history with a diagnostic query."""
    from tsfinder.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho("Warning: --env-file ignored because --no-dotenv is set.", fg=typer.colors.YELLOW, err=True)


# Options shared by every command that talks to a database.
_PROJECT = typer.Option(None, "--project", "-p", help="Google Cloud project.")
_INSTANCE = typer.Option(None, "--instance", "-i", help="Cloud Spanner instance.")
_DATABASE = typer.Option(None, "--database", "-d", help="Cloud Spanner database.")
_SETTINGS = typer.Option(None, "--settings", help="Path to settings YAML file.")
_QUERY = typer.Option(..., "--query", "-q", help="Diagnostic query returning a single BOOL column.")


def _load_cli_settings(settings_path: Path | None, overrides: dict[str, Any]) -> TsFinderSettings:
    """Load settings, turning configuration problems into exit code 2."""
    try:
        return load_settings(settings_path, overrides)
    except (YamlParserError, YamlScannerError) as e:
        typer.echo(f"YAML syntax error in {settings_path}: {e}", err=True)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
    raise typer.Exit(EXIT_USAGE)


def _database_overrides(project: str | None, instance: str | None, database: str | None) -> dict[str, Any]:
    return {"database": {"project": project, "instance": instance, "database": database}}


def _failure_kind(error: BaseException) -> str:
    if isinstance(error, InvariantViolation):
        return "invariant_violation"
    if isinstance(error, SearchExhausted):
        return f"search_exhausted:{error.reason.value}"
    if isinstance(error, SearchCancelled):
        return "cancelled"
    if isinstance(error, ProbeError):
        return "probe_error"
    if isinstance(error, MetadataError):
        return "metadata_error"
    return "error"


@app.command()
def query(
    query_text: str = _QUERY,
    project: str | None = _PROJECT,
    instance: str | None = _INSTANCE,
    database: str | None = _DATABASE,
    start: str | None = typer.Option(
        None,
        "--start",
        "-s",
        help="Beginning of the search window, RFC 3339 (default: earliest version time).",
    ),
    end: str | None = typer.Option(
        None,
        "--end",
        "-e",
        help="End of the search window, RFC 3339 (default: database server time).",
    ),
    accuracy: int | None = typer.Option(
        None,
        "--accuracy",
        "-a",
        help="Accuracy in milliseconds [default: 10].",
    ),
    on_probe_error: ProbeErrorPolicy | None = typer.Option(
        None,
        "--on-probe-error",
        help="Hard backend errors mid-search: narrow_earlier (default) or abort.",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Cancel the search after this many seconds.",
    ),
    settings_path: Path | None = _SETTINGS,
    output_format: OutputFormat = typer.Option(
        OutputFormat.CONSOLE,
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
    ),
    no_progress: bool = typer.Option(
        False,
        "--no-progress",
        help="Don't render a progress bar.",
    ),
) -> None:
    """Find the latest timestamp at which the diagnostic query still returns true.

    The query must be true at the start of the window and false at its end.
    """
    overrides = _database_overrides(project, instance, database)
    overrides["search"] = {
        "start": start,
        "end": end,
        "accuracy_ms": accuracy,
        "on_probe_error": on_probe_error,
    }
    settings = _load_cli_settings(settings_path, overrides)

    if timeout is not None and timeout <= 0:
        typer.echo(f"Error: --timeout must be positive, got {timeout}", err=True)
        raise typer.Exit(EXIT_USAGE)

    db = cli_helpers.open_database(settings)
    try:
        try:
            window = cli_helpers.resolve_window(db, settings.search.start_ns, settings.search.end_ns)
        except ValueError as e:
            echo_error(e, output_format=output_format, kind="usage")
            raise typer.Exit(EXIT_USAGE) from None

        try:
            result = _run_search(
                db,
                window,
                query_text,
                settings,
                show_progress=not no_progress and output_format is OutputFormat.CONSOLE,
                timeout=timeout,
            )
        except KeyboardInterrupt:
            echo_error(SearchCancelled("Search interrupted"), output_format=output_format, kind="cancelled")
            raise typer.Exit(EXIT_SEARCH_FAILED) from None
        except TimestampFinderError as e:
            echo_error(e, output_format=output_format, kind=_failure_kind(e))
            raise typer.Exit(EXIT_SEARCH_FAILED) from None
    except MetadataError as e:
        echo_error(e, output_format=output_format, kind=_failure_kind(e))
        raise typer.Exit(EXIT_SEARCH_FAILED) from None
    finally:
        db.close()

    commands = {
        "backup": cli_helpers.backup_command(settings.database, result.timestamp_ns),
        "query": cli_helpers.query_command(settings.database, result.timestamp_ns),
    }
    echo_result(result, database_path=db.path, commands=commands, output_format=output_format)


def _run_search(
    db: cli_helpers.SearchableDatabase,
    window: SearchWindow,
    query_text: str,
    settings: TsFinderSettings,
    *,
    show_progress: bool,
    timeout: float | None,
) -> SearchResult:
    from tsfinder.engine import DeadlineProgressReporter, SearchOrchestrator

    with create_progress(enabled=show_progress) as progress:
        reporter: ProgressReporter = RichProgressReporter(progress)
        if timeout is not None:
            reporter = DeadlineProgressReporter(reporter, timeout_seconds=timeout)
        orchestrator = SearchOrchestrator(
            db,
            on_probe_error=settings.search.on_probe_error,
            reporter=reporter,
        )
        return orchestrator.run(window, query_text, settings.search.accuracy_ns)


@app.command()
def probe(
    query_text: str = _QUERY,
    at: str = typer.Option(..., "--at", "-t", help="Read timestamp, RFC 3339."),
    project: str | None = _PROJECT,
    instance: str | None = _INSTANCE,
    database: str | None = _DATABASE,
    settings_path: Path | None = _SETTINGS,
) -> None:
    """Evaluate the diagnostic query at a single timestamp.

    Prints true, false or error. Soft errors (table not found, timestamp too
    old) print false, exactly as the search would see them.
    """
    try:
        timestamp_ns = parse_timestamp(at)
    except TimestampParseError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_USAGE) from None

    settings = _load_cli_settings(settings_path, _database_overrides(project, instance, database))

    from tsfinder.engine import PointInTimeExecutor

    db = cli_helpers.open_database(settings)
    try:
        outcome = PointInTimeExecutor(db, query_text).classify(timestamp_ns)
    finally:
        db.close()

    typer.echo(f"{format_timestamp(timestamp_ns)}: {outcome.value}")
    if outcome is ProbeOutcome.ERROR:
        raise typer.Exit(EXIT_SEARCH_FAILED)


@app.command()
def info(
    project: str | None = _PROJECT,
    instance: str | None = _INSTANCE,
    database: str | None = _DATABASE,
    settings_path: Path | None = _SETTINGS,
) -> None:
    """Show the database's recoverable time range."""
    settings = _load_cli_settings(settings_path, _database_overrides(project, instance, database))

    db = cli_helpers.open_database(settings)
    try:
        earliest = db.earliest_version_time()
        retention = db.version_retention_period()
        now = db.server_time()
    except MetadataError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_SEARCH_FAILED) from None
    finally:
        db.close()

    typer.echo(f"Database:              {db.path}")
    typer.echo(f"Earliest version time: {format_timestamp(earliest)}")
    typer.echo(f"Retention period:      {retention}")
    typer.echo(f"Server time:           {format_timestamp(now)}")
