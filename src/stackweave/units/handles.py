"""Handle records published by the manifest builders."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True, eq=False)
class ResourceHandle:
    """
    Reference to one resource a unit created (or imported).

    Identity matters: dependents receive the very object the producing unit
    published, so equality is identity.
    """

    unit: str
    name: str
    kind: str
    logical_id: str
    physical_name: str
    imported: bool = False
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def ref(self) -> str:
        """Stable reference string, e.g. ``network/vpc``."""
        return f"{self.unit}/{self.name}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "ref": self.ref,
            "kind": self.kind,
            "logical_id": self.logical_id,
            "physical_name": self.physical_name,
        }
        if self.imported:
            data["imported"] = True
        if self.attributes:
            data["attributes"] = self.attributes
        return data
