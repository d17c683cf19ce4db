"""
CLI commands for inspecting the unit catalog and the resolved configuration.
"""

from __future__ import annotations

from typing import Optional

from stackweave.cli.ux import print_catalog
from stackweave.config import load_config
from stackweave.core.errors import main_with_error_handling
from stackweave.orchestration import UnitCatalog
from stackweave.output import render_config
from stackweave.units import default_catalog


def catalog_rows(catalog: UnitCatalog) -> list[list[str]]:
    rows = []
    for desc in catalog:
        deps = list(desc.depends_on) + [f"{d}?" for d in desc.optional_depends_on]
        rows.append(
            [
                desc.name,
                ", ".join(deps) or "-",
                ", ".join(sorted(desc.produces)),
                desc.description,
            ]
        )
    return rows


@main_with_error_handling()
def list_units_command() -> int:
    """List the default unit catalog. Optional dependencies are marked with '?'."""
    print_catalog(catalog_rows(default_catalog()))
    return 0


@main_with_error_handling()
def show_config_command(config_path: Optional[str] = None, output_format: str = "yaml") -> int:
    """Print the fully-defaulted configuration."""
    config = load_config(config_path)
    print(render_config(config, output_format), end="")
    return 0
