"""
CLI commands for stackweave.
"""

from stackweave.cli.apply import apply_command
from stackweave.cli.plan import plan_command
from stackweave.cli.units import list_units_command, show_config_command

__all__ = [
    "apply_command",
    "plan_command",
    "list_units_command",
    "show_config_command",
]
