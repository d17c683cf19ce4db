"""
Terminal rendering for plans, runs and the unit catalog.

Unit and run states share one set of styles so a unit line and the closing
status line of a run read the same way. NO_COLOR and FORCE_COLOR are honoured.
"""

from __future__ import annotations

import os

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

# Nord palette (https://www.nordtheme.com/), keyed by unit/run state
STATE_THEME = Theme(
    {
        "completed": "#A3BE8C",
        "planned": "#88C0D0",
        "failed": "#BF616A bold",
        "cancelled": "#EBCB8B",
        "pending": "#4C566A",
        "muted": "#D8DEE9",
    }
)

STATE_MARKS = {
    "completed": "✓",
    "planned": "•",
    "failed": "✗",
    "cancelled": "⚠",
    "pending": "-",
}

console = Console(
    theme=STATE_THEME,
    force_terminal=os.environ.get("FORCE_COLOR") is not None,
    no_color=os.environ.get("NO_COLOR") is not None,
)


def unit_line(state: str, unit: str, detail: str = "") -> None:
    """One indented line per unit: mark and name in the state's colour, then detail."""
    mark = STATE_MARKS[state]
    console.print(f"  [{state}]{mark} {unit:<12}[/{state}] {detail}".rstrip())


def run_status(state: str, message: str) -> None:
    """Closing line of a plan or run."""
    console.print(f"[{state}]{STATE_MARKS[state]} {escape(message)}[/{state}]")


def plan_header(prefix: str) -> None:
    console.print()
    console.print(Panel(f"[bold]Plan: {escape(prefix)}[/bold]", border_style="#88C0D0"))


def print_catalog(rows: list[list[str]]) -> None:
    """Unit catalog table; optional dependencies carry a trailing '?'."""
    table = Table(title="Units")
    table.add_column("Unit", style="planned")
    table.add_column("Depends on")
    table.add_column("Produces", style="muted")
    table.add_column("Description")

    for row in rows:
        table.add_row(*(escape(cell) for cell in row))

    console.print(table)
