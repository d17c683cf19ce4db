"""Unit builder protocol and registry for orchestration."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, runtime_checkable

BuildFunction = Callable[[bool, Any, Mapping[str, Any]], Mapping[str, Any]]


@runtime_checkable
class UnitBuilder(Protocol):
    """Protocol for builders that instantiate one unit."""

    @property
    def name(self) -> str:
        """Unit name this builder instantiates (e.g. 'network')."""
        ...

    def build(self, enabled: bool, config: Any, inputs: Mapping[str, Any]) -> Mapping[str, Any]:
        """Create the unit and return its handles by name."""
        ...


class FunctionBuilder:
    """Adapts a plain build function to the UnitBuilder protocol."""

    def __init__(self, name: str, func: BuildFunction) -> None:
        self._name = name
        self._func = func

    @property
    def name(self) -> str:
        return self._name

    def build(self, enabled: bool, config: Any, inputs: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._func(enabled, config, inputs)

    def __repr__(self) -> str:
        return f"FunctionBuilder({self._name!r})"


class BuilderRegistry:
    """In-memory registry for unit builders."""

    def __init__(self) -> None:
        self._builders: Dict[str, UnitBuilder] = {}

    def register(self, builder: UnitBuilder) -> None:
        """Register a builder by its unit name."""
        self._builders[builder.name] = builder

    def register_function(self, name: str, func: BuildFunction) -> None:
        """Register a plain function as the builder for ``name``."""
        self.register(FunctionBuilder(name, func))

    def get(self, name: str) -> Optional[UnitBuilder]:
        """Get a builder by unit name."""
        return self._builders.get(name)

    def list(self) -> List[str]:
        """List all registered unit names."""
        return list(self._builders.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._builders
