"""Orchestration package: dependency-aware unit instantiation."""

from stackweave.orchestration.binder import ResourceBinder
from stackweave.orchestration.catalog import (
    InputSource,
    UnitCatalog,
    UnitDescriptor,
    category_enabled,
)
from stackweave.orchestration.engine import Orchestrator
from stackweave.orchestration.planner import DependencyPlanner, ExecutionPlan, OrderingHint
from stackweave.orchestration.registry import BuilderRegistry, FunctionBuilder, UnitBuilder
from stackweave.orchestration.results import (
    RunCollector,
    RunFailure,
    RunResult,
    RunStage,
    RunStatus,
)

__all__ = [
    "BuilderRegistry",
    "DependencyPlanner",
    "ExecutionPlan",
    "FunctionBuilder",
    "InputSource",
    "Orchestrator",
    "OrderingHint",
    "ResourceBinder",
    "RunCollector",
    "RunFailure",
    "RunResult",
    "RunStage",
    "RunStatus",
    "UnitBuilder",
    "UnitCatalog",
    "UnitDescriptor",
    "category_enabled",
]
