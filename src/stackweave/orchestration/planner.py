"""
Dependency planner.

Purpose
Turn the unit catalog plus one configuration into an ExecutionPlan: exactly
the enabled units, ordered so that every unit comes after the units it
depends on.

Rules
1. A unit is planned iff its enablement predicate is true.
2. An enabled unit whose hard dependency is disabled fails planning with
   DependencyUnsatisfied. Optional dependencies that are disabled are dropped.
3. Among units that are ready at the same time, declaration order wins, so
   identical inputs always produce the identical plan.

The planner has no side effects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping

import structlog

from stackweave.core.errors import DependencyUnsatisfied
from stackweave.orchestration.catalog import UnitCatalog
from stackweave.orchestration.graph import topological_sort

logger = structlog.get_logger()


@dataclass(frozen=True)
class OrderingHint:
    """``unit`` must be created after (and destroyed before) ``after``."""

    unit: str
    after: str

    def to_dict(self) -> dict[str, str]:
        return {"unit": self.unit, "after": self.after}


@dataclass(frozen=True)
class ExecutionPlan:
    """Ordered units for one run, plus the dependency edges in effect."""

    units: tuple[str, ...]
    skipped: tuple[str, ...] = ()
    # Excluded from the hash; edges follow from units.
    dependencies: Mapping[str, tuple[str, ...]] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "units", tuple(self.units))
        object.__setattr__(self, "skipped", tuple(self.skipped))
        edges = {unit: tuple(deps) for unit, deps in self.dependencies.items()}
        object.__setattr__(self, "dependencies", MappingProxyType(edges))

    def __iter__(self) -> Iterator[str]:
        return iter(self.units)

    def __len__(self) -> int:
        return len(self.units)

    def __contains__(self, name: object) -> bool:
        return name in self.units

    def index(self, name: str) -> int:
        return self.units.index(name)

    def dependencies_of(self, name: str) -> tuple[str, ...]:
        """Planned units that must complete before ``name`` starts."""
        return self.dependencies.get(name, ())

    def ordering(self) -> list[OrderingHint]:
        return [OrderingHint(unit=u, after=d) for u in self.units for d in self.dependencies_of(u)]

    def destroy_order(self) -> list[str]:
        return list(reversed(self.units))

    def to_dict(self) -> dict[str, Any]:
        return {
            "units": list(self.units),
            "skipped": list(self.skipped),
            "dependencies": {u: list(self.dependencies_of(u)) for u in self.units},
            "destroy_order": self.destroy_order(),
        }


class DependencyPlanner:
    """Builds execution plans from a validated unit catalog."""

    def __init__(self, catalog: UnitCatalog) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> UnitCatalog:
        return self._catalog

    def plan(self, config: Any) -> ExecutionPlan:
        """
        Compute the execution plan for a configuration.

        Raises:
            DependencyUnsatisfied: an enabled unit needs a unit that is not enabled
            CycleDetected: the enabled subgraph contains a cycle
            ConfigurationError: an enablement predicate could not read the configuration
        """
        enabled = [d.name for d in self._catalog if d.is_enabled(config)]
        enabled_set = set(enabled)
        skipped = tuple(name for name in self._catalog.names() if name not in enabled_set)

        dependencies: dict[str, tuple[str, ...]] = {}
        for name in enabled:
            desc = self._catalog.get(name)
            for dep in desc.depends_on:
                if dep not in enabled_set:
                    raise DependencyUnsatisfied(name, dep)
            optional = tuple(d for d in desc.optional_depends_on if d in enabled_set)
            dependencies[name] = desc.depends_on + optional

        order = topological_sort(enabled, dependencies)

        logger.debug("plan_built", units=order, skipped=list(skipped))
        return ExecutionPlan(units=tuple(order), skipped=skipped, dependencies=dependencies)
