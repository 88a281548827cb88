"""
Root Typer application for the glyphrun CLI.

``glyphrun run`` is the minimal bootstrap: it loads a document, runs each
requested language in order on one coordinator and optionally writes the
document back out with any diagnostics inserted.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from typer import Typer

from glyphrun.cli.utils import console, err_console, has_failures, output_reports
from glyphrun.core.errors import DocumentError
from glyphrun.core.logging import configure_logging
from glyphrun.core.settings import get_settings

app = Typer(
    name="glyphrun",
    help="glyphrun — run code fragments embedded in SVG documents.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("glyphrun")
        except PackageNotFoundError:
            from glyphrun import __version__ as v
        typer.echo(f"glyphrun {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """glyphrun CLI — execute embedded fragments and inspect strategies."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.json_logs)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("run")
def run(
    document: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="SVG, XML or HTML document"
    ),
    languages: list[str] | None = typer.Option(  # noqa: UP007
        None, "--lang", "-l", help="Language to run (repeatable); defaults to settings"
    ),
    output: Path | None = typer.Option(  # noqa: UP007
        None, "--output", "-o", help="Write the resulting document here"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print reports as JSON"),
    fail_on_error: bool = typer.Option(
        False, "--fail-on-error", help="Exit 1 if any fragment reported a failure"
    ),
) -> None:
    """Run every fragment of the requested languages in DOCUMENT.

    Example::

        glyphrun run chart.svg
        glyphrun run chart.svg -l wasm -o chart.out.svg --json
    """
    from glyphrun.document.model import Document
    from glyphrun.execution.coordinator import ExecutionCoordinator

    try:
        doc = Document.from_path(document)
    except DocumentError as exc:
        err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
        raise typer.Exit(code=1)

    coordinator = ExecutionCoordinator(doc)
    reports = asyncio.run(coordinator.run_all(languages or None))
    output_reports(reports, as_json=as_json)

    if output is not None:
        doc.write(output)
        if not as_json:
            console.print(f"[green]Wrote[/green] {output}")

    if fail_on_error and has_failures(reports):
        raise typer.Exit(code=1)


@app.command("languages")
def languages_command(
    as_json: bool = typer.Option(False, "--json", help="Print as JSON"),
) -> None:
    """List the languages with a registered strategy."""
    import json

    from rich.table import Table

    from glyphrun.execution.registry import get_default_registry

    entries = get_default_registry().list_with_metadata()
    if as_json:
        console.print_json(json.dumps(entries, default=str))
        return
    if not entries:
        console.print("[dim]No strategies registered.[/dim]")
        return

    table = Table(title="Strategies", pad_edge=False)
    for column in ("language", "family", "strategy", "description"):
        table.add_column(column, overflow="fold")
    for entry in entries:
        table.add_row(
            f"text/{entry['language']}",
            entry["family"],
            entry["strategy"],
            entry["description"] or "",
        )
    console.print(table)
