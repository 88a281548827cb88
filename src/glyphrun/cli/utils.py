"""
CLI utility helpers — output formatting for run reports.
"""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from glyphrun.execution.models import FragmentOutcome, FragmentState, RunReport

console = Console()
err_console = Console(stderr=True)

_STATE_STYLES = {
    FragmentState.SUCCEEDED: "green",
    FragmentState.SKIPPED: "dim",
    FragmentState.REPORTED: "red",
}


def _detail(outcome: FragmentOutcome) -> str:
    if outcome.state == FragmentState.SKIPPED and outcome.skip_reason is not None:
        return outcome.skip_reason.value
    if outcome.state == FragmentState.REPORTED and outcome.error is not None:
        return str(outcome.error)
    if outcome.state == FragmentState.SUCCEEDED:
        value = outcome.to_dict().get("value")
        return "" if value is None else str(value)
    return ""


def output_reports(reports: list[RunReport], *, as_json: bool = False) -> None:
    """Render run reports to the terminal."""
    if as_json:
        payload: list[dict[str, Any]] = [report.to_dict() for report in reports]
        console.print_json(json.dumps(payload, default=str))
        return

    for report in reports:
        if not report.outcomes:
            console.print(f"[dim]text/{report.language}: no fragments found.[/dim]")
            continue
        summary = report.summary()
        table = Table(
            title=f"text/{report.language}  "
            f"[dim]({summary['succeeded']} ok, {summary['reported']} failed, "
            f"{summary['skipped']} skipped)[/dim]",
            show_lines=False,
            pad_edge=False,
        )
        table.add_column("svg", justify="right")
        table.add_column("pos", justify="right")
        table.add_column("type")
        table.add_column("state")
        table.add_column("detail", overflow="fold")
        for outcome in report.outcomes:
            style = _STATE_STYLES.get(outcome.state, "")
            table.add_row(
                str(outcome.container_index),
                str(outcome.fragment_position),
                outcome.language_tag or "[dim]-[/dim]",
                f"[{style}]{outcome.state.value}[/{style}]" if style else outcome.state.value,
                escape(_detail(outcome)),
            )
        console.print(table)


def has_failures(reports: list[RunReport]) -> bool:
    return any(report.reported for report in reports)
