# src/tsfinder/cli_formatters.py
"""Console and JSON output for the tsfinder CLI.

Progress goes to stderr through rich so that stdout carries only results,
which keeps ``tsfinder query --format json`` pipeable.
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from tsfinder.contracts import ProgressEvent, SearchResult
from tsfinder.core.timestamps import format_timestamp


class OutputFormat(StrEnum):
    CONSOLE = "console"
    JSON = "json"


def create_progress(*, enabled: bool = True) -> Progress:
    """Progress bar on stderr; ``enabled=False`` renders nothing."""
    return Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=Console(stderr=True),
        disable=not enabled,
    )


class RichProgressReporter:
    """Advances a rich progress bar once per classified probe.

    The bar's total is the iteration budget, taken from the first event.
    The search usually finishes before the bar is full.
    """

    def __init__(self, progress: Progress) -> None:
        self._progress = progress
        self._task_id = progress.add_task("Searching for closest recovery timestamp", total=None)

    def report(self, event: ProgressEvent) -> None:
        self._progress.update(
            self._task_id,
            total=event.budget,
            advance=1,
            description=(
                f"{format_timestamp(event.start_ns)} - {format_timestamp(event.midpoint_ns)} - "
                f"{format_timestamp(event.end_ns)} ({str(event.outcome).lower()})"
            ),
        )


def echo_result(
    result: SearchResult,
    *,
    database_path: str,
    commands: dict[str, str],
    output_format: OutputFormat,
) -> None:
    """Print a resolved timestamp and the commands that act on it."""
    if output_format is OutputFormat.JSON:
        typer.echo(
            json.dumps(
                {
                    "database": database_path,
                    "timestamp": result.rfc3339,
                    "probes": result.probes,
                    "budget": result.budget,
                    "inconclusive_probes": result.inconclusive_probes,
                    "commands": commands,
                }
            )
        )
        return

    typer.secho(f"Found closest recovery timestamp: {result.rfc3339}", fg=typer.colors.GREEN)
    if result.inconclusive_probes:
        typer.secho(
            f"Warning: {result.inconclusive_probes} probe(s) failed during the search; "
            "the transition may be later than reported.",
            fg=typer.colors.YELLOW,
            err=True,
        )
    typer.echo("To back up the database at this point in time:")
    typer.echo(f"  {commands['backup']}")
    typer.echo("To execute a query at this point in time:")
    typer.echo(f"  {commands['query']}")


def echo_error(error: BaseException, *, output_format: OutputFormat, kind: str | None = None) -> None:
    """Print a failure: JSON object on stdout, or ``Error: ...`` on stderr."""
    if output_format is OutputFormat.JSON:
        payload: dict[str, Any] = {"error": str(error)}
        if kind is not None:
            payload["kind"] = kind
        typer.echo(json.dumps(payload))
    else:
        typer.secho(f"Error: {error}", fg=typer.colors.RED, err=True)
