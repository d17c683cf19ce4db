"""
CLI command for planning (dry-run) which units a configuration instantiates.
"""

from __future__ import annotations

from typing import Optional

from stackweave.app import create_orchestrator
from stackweave.cli.ux import console, plan_header, run_status, unit_line
from stackweave.config import load_config
from stackweave.core.errors import main_with_error_handling
from stackweave.orchestration import ExecutionPlan
from stackweave.output import render_plan


def print_plan_summary(plan: ExecutionPlan, project: str) -> None:
    """Print the execution plan as a numbered list."""
    plan_header(project)
    console.print()

    if not plan.units:
        run_status("cancelled", "No units enabled in configuration")
        console.print()
        return

    console.print("[bold]Units will be created in this order:[/bold]")
    console.print()
    for step, unit in enumerate(plan.units, 1):
        deps = plan.dependencies_of(unit)
        after = f"[muted](after {', '.join(deps)})[/muted]" if deps else ""
        unit_line("planned", f"{step}. {unit}", after)
    console.print()

    if plan.skipped:
        console.print(f"[muted]Disabled:[/muted] {', '.join(plan.skipped)}")
        console.print()

    console.print(f"[bold]Total:[/bold] {len(plan)} units")
    console.print("[muted]Destroy order:[/muted] " + " → ".join(plan.destroy_order()))
    console.print()


@main_with_error_handling()
def plan_command(config_path: Optional[str] = None, output_format: str = "text") -> int:
    """
    Show the execution plan for a configuration.

    Returns:
        Exit code (0 for success, non-zero from the error taxonomy otherwise)
    """
    config = load_config(config_path)
    plan = create_orchestrator(config).plan(config)

    if output_format == "text":
        print_plan_summary(plan, config.stack_prefix)
    else:
        print(render_plan(plan, output_format))
    return 0
