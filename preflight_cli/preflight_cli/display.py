"""Output formatting for the preflight CLI.

Two surfaces render the same :class:`AggregateResult`:

* :func:`display_requirements` draws a Rich table for interactive
  terminals, written to a console bound to *stderr*.
* :func:`format_requirements_text` returns undecorated text for logs, CI
  jobs and other non-interactive consumers.

:func:`result_to_json` provides the machine-readable form used by
``--format json``.
"""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from preflight_core.requirements.models import AggregateResult, NormalizedRequirement

# ---------------------------------------------------------------------------
# Status mapping
# ---------------------------------------------------------------------------

_STATUS_COLOURS: dict[str, str] = {
    "PASS": "green",
    "WARNING": "yellow",
    "ERROR": "red",
}


def requirement_status(requirement: NormalizedRequirement) -> str:
    """Return ``ERROR``, ``WARNING`` or ``PASS`` for *requirement*."""
    if requirement.error:
        return "ERROR"
    if requirement.warning:
        return "WARNING"
    return "PASS"


def _coloured_status(status: str) -> str:
    """Return a Rich markup string with the status colour-coded."""
    colour = _STATUS_COLOURS.get(status, "white")
    return f"[{colour}]{status}[/{colour}]"


def _overall_status(result: AggregateResult) -> str:
    if not result.passed:
        return "FAILED"
    if result.has_warnings:
        return "PASSED WITH WARNINGS"
    return "PASSED"


# ---------------------------------------------------------------------------
# Rich (interactive)
# ---------------------------------------------------------------------------


def display_requirements(
    console: Console,
    result: AggregateResult,
    context: dict[str, str] | None = None,
) -> None:
    """Render a requirements report with Rich formatting.

    Parameters
    ----------
    console:
        Rich console to write to (typically stderr).
    result:
        The cumulative requirements result.
    context:
        Optional host details (``server_info``, ``current_date`` ...)
        shown in the header panel.
    """
    summary = result.summary
    overall = _overall_status(result)
    colour = "red" if not result.passed else ("yellow" if result.has_warnings else "green")

    header_lines = [f"[bold]Status:[/bold]   [{colour}]{overall}[/{colour}]"]
    if context:
        if context.get("server_info"):
            header_lines.append(f"[bold]Host:[/bold]     {escape(context['server_info'])}")
        if context.get("python_version"):
            header_lines.append(f"[bold]Python:[/bold]   {escape(context['python_version'])}")
        if context.get("current_date"):
            header_lines.append(f"[bold]Date:[/bold]     {escape(context['current_date'])}")
    console.print(Panel("\n".join(header_lines), title="Requirements Check", border_style="blue"))

    if not result.requirements:
        console.print("[dim]No requirements were checked.[/dim]")
        return

    table = Table(show_lines=False, pad_edge=True, expand=False)
    table.add_column("#", style="dim", width=4, justify="right")
    table.add_column("Requirement", style="bold")
    table.add_column("Status")
    table.add_column("Memo")

    for idx, requirement in enumerate(result.requirements, start=1):
        memo = escape(requirement.memo)
        if not requirement.warning:
            memo = f"[dim]{memo}[/dim]"
        table.add_row(
            str(idx),
            escape(requirement.name),
            _coloured_status(requirement_status(requirement)),
            memo,
        )

    console.print(table)
    console.print(
        f"\n{summary.total} requirement(s): "
        f"[red]{summary.errors} error(s)[/red], "
        f"[yellow]{summary.warnings} warning(s)[/yellow]\n"
    )


# ---------------------------------------------------------------------------
# Plain text (non-interactive)
# ---------------------------------------------------------------------------


def format_requirements_text(result: AggregateResult, context: dict[str, str] | None = None) -> str:
    """Return the report as plain text, one requirement per block."""
    lines: list[str] = ["Requirements Check", ""]

    if context:
        for key, label in (("server_info", "Host"), ("python_version", "Python"), ("current_date", "Date")):
            if context.get(key):
                lines.append(f"{label}: {context[key]}")
        lines.append("")

    for idx, requirement in enumerate(result.requirements, start=1):
        status = requirement_status(requirement)
        lines.append(f"{idx}. {requirement.name}: {status}")
        if requirement.warning and requirement.memo:
            lines.append(f"   {requirement.memo}")

    summary = result.summary
    lines.append("")
    lines.append(
        f"{_overall_status(result)}: {summary.total} total, {summary.errors} error(s), {summary.warnings} warning(s)"
    )
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def result_to_json(result: AggregateResult, context: dict[str, str] | None = None) -> str:
    """Serialise *result* (and optional host context) as indented JSON."""
    payload: dict[str, Any] = {
        "passed": result.passed,
        "summary": result.summary.model_dump(),
        "requirements": [
            {**requirement.model_dump(), "status": requirement_status(requirement)}
            for requirement in result.requirements
        ],
    }
    if context:
        payload["context"] = context
    return json.dumps(payload, indent=2, sort_keys=True, default=str)
