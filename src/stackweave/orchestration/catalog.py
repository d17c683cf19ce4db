"""
Unit descriptor table.

A UnitDescriptor is static metadata about one unit: when it is enabled, which
units it depends on, and which named handles it consumes and publishes. The
UnitCatalog holds the descriptors in declaration order and refuses to exist
unless the table is consistent:

- unit names are unique
- every dependency names a unit in the table
- the dependency graph (hard and optional edges) is acyclic
- required inputs are published by hard dependencies
- optional inputs are published by optional dependencies
- each consumed handle name has exactly one publisher among the unit's dependencies
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Protocol

from stackweave.core.errors import CatalogError, ConfigurationError, CycleDetected, StackweaveError
from stackweave.orchestration.graph import ancestors, topological_sort


class CategorizedConfig(Protocol):
    """Anything that can hand out a configuration subtree by category name."""

    def category(self, name: str) -> Any: ...


EnablementPredicate = Callable[[Any], bool]


def category_enabled(category: str) -> EnablementPredicate:
    """Predicate that reads the ``enabled`` flag of a configuration category."""

    def predicate(config: CategorizedConfig) -> bool:
        return bool(config.category(category).enabled)

    predicate.__name__ = f"{category}_enabled"
    return predicate


@dataclass(frozen=True)
class InputSource:
    """Where a unit's input handle comes from."""

    unit: str
    handle: str
    optional: bool = False


@dataclass(frozen=True)
class UnitDescriptor:
    """Static description of one conditionally-created unit."""

    name: str
    enabled: EnablementPredicate
    depends_on: tuple[str, ...] = ()
    requires: frozenset[str] = frozenset()
    produces: frozenset[str] = frozenset()
    optional_depends_on: tuple[str, ...] = ()
    optional_inputs: frozenset[str] = frozenset()
    category: str | None = None
    description: str = ""

    def __post_init__(self) -> None:
        # Accept any iterable for the collection fields.
        object.__setattr__(self, "depends_on", tuple(self.depends_on))
        object.__setattr__(self, "optional_depends_on", tuple(self.optional_depends_on))
        object.__setattr__(self, "requires", frozenset(self.requires))
        object.__setattr__(self, "produces", frozenset(self.produces))
        object.__setattr__(self, "optional_inputs", frozenset(self.optional_inputs))

    @property
    def config_category(self) -> str:
        return self.category or self.name

    @property
    def all_dependencies(self) -> tuple[str, ...]:
        return self.depends_on + self.optional_depends_on

    def is_enabled(self, config: Any) -> bool:
        """
        Evaluate the enablement predicate.

        Raises:
            ConfigurationError: the predicate could not read the configuration
        """
        try:
            return bool(self.enabled(config))
        except StackweaveError:
            raise
        except Exception as e:
            raise self._config_error("enablement check", e) from e

    def config_for(self, config: CategorizedConfig) -> Any:
        """Configuration subtree handed to this unit's builder."""
        try:
            return config.category(self.config_category)
        except StackweaveError:
            raise
        except Exception as e:
            raise self._config_error(f"'{self.config_category}' section lookup", e) from e

    def _config_error(self, what: str, cause: Exception) -> ConfigurationError:
        return ConfigurationError(
            f"Unit '{self.name}' {what} failed: {cause}",
            {"unit": self.name, "category": self.config_category, "cause": type(cause).__name__},
        )


@dataclass
class UnitCatalog:
    """Validated, ordered table of unit descriptors."""

    descriptors: list[UnitDescriptor] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.descriptors = list(self.descriptors)
        self._by_name: dict[str, UnitDescriptor] = {}
        for desc in self.descriptors:
            if desc.name in self._by_name:
                raise CatalogError(f"Duplicate unit name: {desc.name}", {"unit": desc.name})
            self._by_name[desc.name] = desc

        self._validate_references()
        self._graph = {d.name: d.all_dependencies for d in self.descriptors}
        topological_sort(self.names(), self._graph)
        self._sources = {d.name: self._resolve_sources(d) for d in self.descriptors}

    @classmethod
    def from_descriptors(cls, descriptors: Iterable[UnitDescriptor]) -> UnitCatalog:
        return cls(descriptors=list(descriptors))

    def __iter__(self) -> Iterator[UnitDescriptor]:
        return iter(self.descriptors)

    def __len__(self) -> int:
        return len(self.descriptors)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def get(self, name: str) -> UnitDescriptor:
        try:
            return self._by_name[name]
        except KeyError:
            raise CatalogError(f"Unknown unit: {name}", {"unit": name}) from None

    def names(self) -> list[str]:
        return [d.name for d in self.descriptors]

    def input_sources(self, name: str) -> list[InputSource]:
        """Handles the unit consumes and which dependency publishes each."""
        return list(self._sources[self.get(name).name])

    def dependents(self, name: str) -> list[str]:
        """Units that declare ``name`` as a hard or optional dependency."""
        return [d.name for d in self.descriptors if name in d.all_dependencies]

    def ancestors(self, name: str) -> set[str]:
        """Transitive dependencies of a unit."""
        self.get(name)
        return ancestors(name, self._graph)

    def independent(self, first: str, second: str) -> bool:
        """True when neither unit is an ancestor of the other."""
        return (
            first != second
            and first not in self.ancestors(second)
            and second not in self.ancestors(first)
        )

    def _validate_references(self) -> None:
        for desc in self.descriptors:
            for dep in desc.all_dependencies:
                if dep == desc.name:
                    raise CycleDetected([desc.name])
                if dep not in self._by_name:
                    raise CatalogError(
                        f"Unit '{desc.name}' depends on unknown unit '{dep}'",
                        {"unit": desc.name, "dependency": dep},
                    )
            overlap = set(desc.depends_on) & set(desc.optional_depends_on)
            if overlap:
                raise CatalogError(
                    f"Unit '{desc.name}' lists {sorted(overlap)} as both required and optional",
                    {"unit": desc.name},
                )

    def _resolve_sources(self, desc: UnitDescriptor) -> list[InputSource]:
        sources: list[InputSource] = []
        wanted = [(h, False, desc.depends_on) for h in sorted(desc.requires)]
        wanted += [(h, True, desc.optional_depends_on) for h in sorted(desc.optional_inputs)]

        for handle, optional, candidates in wanted:
            publishers = [dep for dep in candidates if handle in self._by_name[dep].produces]
            kind = "optional input" if optional else "required input"
            if not publishers:
                raise CatalogError(
                    f"Unit '{desc.name}' {kind} '{handle}' is not published by any of "
                    f"{list(candidates)}",
                    {"unit": desc.name, "handle": handle},
                )
            if len(publishers) > 1:
                raise CatalogError(
                    f"Unit '{desc.name}' {kind} '{handle}' is ambiguous: published by {publishers}",
                    {"unit": desc.name, "handle": handle},
                )
            sources.append(InputSource(unit=publishers[0], handle=handle, optional=optional))

        if desc.requires & desc.optional_inputs:
            raise CatalogError(
                f"Unit '{desc.name}' lists handles as both required and optional",
                {"unit": desc.name},
            )
        return sources
