"""Run-scoped, write-once store of the handles each unit publishes."""

from __future__ import annotations

import threading
import time
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from stackweave.core.errors import DuplicateUnit, MissingHandle


class ResourceBinder:
    """
    Maps unit name to the handles it published during one run.

    Each unit slot is written exactly once and never modified afterwards.
    Handle objects are stored and returned by reference.

    Safe to share between worker threads: writes and reads take the same
    condition, and ``wait_for`` blocks a reader until a slot is written.
    """

    def __init__(self) -> None:
        self._slots: dict[str, Mapping[str, Any]] = {}
        self._cond = threading.Condition()

    def record(self, unit: str, handles: Mapping[str, Any]) -> None:
        """Publish a unit's handles. Fails with DuplicateUnit on a second write."""
        with self._cond:
            if unit in self._slots:
                raise DuplicateUnit(unit)
            self._slots[unit] = MappingProxyType(dict(handles))
            self._cond.notify_all()

    def has(self, unit: str) -> bool:
        with self._cond:
            return unit in self._slots

    def wait_for(self, unit: str, timeout: float | None = None, handle: str | None = None) -> None:
        """
        Block until ``unit`` has been recorded.

        ``handle`` names the handle the caller is waiting for; it is reported
        in the MissingHandle raised on timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while unit not in self._slots:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    raise MissingHandle(unit, handle, reason=f"unit not recorded within {timeout}s")
                self._cond.wait(remaining)

    def resolve(self, unit: str, handles: Iterable[str]) -> dict[str, Any]:
        """
        Return the requested handles of a recorded unit.

        Raises:
            MissingHandle: the unit is not recorded yet, or did not publish a handle
        """
        names = list(handles)
        with self._cond:
            slot = self._slots.get(unit)
            if slot is None:
                if not names:
                    raise MissingHandle(unit, reason="unit not recorded")
                raise MissingHandle(unit, names[0], reason="unit not recorded")
            resolved: dict[str, Any] = {}
            for name in names:
                if name not in slot:
                    raise MissingHandle(unit, name)
                resolved[name] = slot[name]
            return resolved

    def resolve_optional(self, unit: str, handles: Iterable[str]) -> dict[str, Any]:
        """Like resolve, but returns only what is available and never raises."""
        with self._cond:
            slot = self._slots.get(unit, {})
            return {name: slot[name] for name in handles if name in slot}

    def recorded_units(self) -> list[str]:
        """Units in the order they were recorded."""
        with self._cond:
            return list(self._slots)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Copy of the unit -> handle name -> handle mapping (handles shared)."""
        with self._cond:
            return {unit: dict(slot) for unit, slot in self._slots.items()}

    def __len__(self) -> int:
        with self._cond:
            return len(self._slots)

    def __contains__(self, unit: object) -> bool:
        with self._cond:
            return unit in self._slots
