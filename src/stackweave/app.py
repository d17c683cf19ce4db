"""
Application wiring.

Builds an Orchestrator over the default unit catalog with the manifest
builders registered for one configuration.
"""

from __future__ import annotations

import threading
from typing import Optional

from stackweave.config.models import InfrastructureConfig
from stackweave.orchestration import BuilderRegistry, Orchestrator, RunResult, UnitCatalog
from stackweave.units import BuildContext, default_catalog, register_default_builders


def create_orchestrator(
    config: InfrastructureConfig,
    max_workers: int = 1,
    catalog: Optional[UnitCatalog] = None,
) -> Orchestrator:
    """Create an orchestrator with the default builders for ``config``."""
    registry = BuilderRegistry()
    register_default_builders(registry, BuildContext.from_config(config))
    return Orchestrator(catalog or default_catalog(), registry, max_workers=max_workers)


def run_infrastructure(
    config: InfrastructureConfig,
    max_workers: int = 1,
    cancel: Optional[threading.Event] = None,
) -> RunResult:
    """Plan and instantiate every enabled unit for ``config``."""
    return create_orchestrator(config, max_workers=max_workers).run(config, cancel=cancel)
