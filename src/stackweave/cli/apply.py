"""
CLI command for running the orchestrator with the manifest builders.
"""

from __future__ import annotations

from typing import Optional

from rich.markup import escape

from stackweave.app import create_orchestrator
from stackweave.cli.ux import console, run_status, unit_line
from stackweave.config import get_settings, load_config
from stackweave.core.errors import ExitCode, format_error_message, main_with_error_handling
from stackweave.orchestration import RunResult, RunStatus
from stackweave.output import encode_handle, render_result, write_output


def print_apply_summary(result: RunResult, verbose: bool = False) -> None:
    """Print a one-line-per-unit run summary."""
    console.print()

    for unit in result.completed:
        handles = result.handles.get(unit, {})
        duration = result.unit_durations.get(unit, 0.0)
        unit_line("completed", unit, f"{len(handles)} handles [muted]({duration:.3f}s)[/muted]")
        if verbose:
            for name, value in handles.items():
                console.print(f"     [muted]└[/muted] {name}: {escape(str(encode_handle(value)))}")

    if result.failure is not None:
        label = result.failure.unit or str(result.failure.stage)
        unit_line("failed", label, escape(format_error_message(result.failure.error)))

    for unit in result.remaining:
        if unit != result.failed_unit:
            unit_line("pending", unit, "[pending]not started[/pending]")

    console.print()
    run_status(str(result.status), run_status_message(result))
    if result.failure is not None and result.completed:
        console.print(f"[muted]Completed before failure:[/muted] {', '.join(result.completed)}")
    console.print()


def run_status_message(result: RunResult) -> str:
    if result.status == RunStatus.COMPLETED:
        return f"Instantiated {len(result.completed)} units in {result.duration_seconds:.2f}s"
    if result.status == RunStatus.CANCELLED:
        return f"Run cancelled after {len(result.completed)} units"
    return f"Run failed during {result.failure.stage if result.failure else 'execution'}"


@main_with_error_handling()
def apply_command(
    config_path: Optional[str] = None,
    output_format: str = "text",
    out_file: Optional[str] = None,
    workers: Optional[int] = None,
    verbose: bool = False,
) -> int:
    """
    Instantiate every enabled unit.

    Args:
        config_path: Path to config YAML file
        output_format: Output format (text, json, yaml)
        out_file: Also write the run result (json or yaml by extension) to this path
        workers: Parallel workers for independent units
        verbose: Show handles per unit

    Returns:
        Exit code (0 for success, the root cause's exit code otherwise)
    """
    config = load_config(config_path)
    max_workers = workers or get_settings().max_workers
    result = create_orchestrator(config, max_workers=max_workers).run(config)

    if output_format == "text":
        print_apply_summary(result, verbose=verbose)
    else:
        print(render_result(result, output_format))

    if out_file:
        fmt = "yaml" if out_file.endswith((".yaml", ".yml")) else "json"
        write_output(out_file, render_result(result, fmt))

    if result.success:
        return ExitCode.SUCCESS
    if result.failure is None:
        return ExitCode.CANCELLED
    return result.failure.error.exit_code
