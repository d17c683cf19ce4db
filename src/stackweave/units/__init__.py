"""Default units: descriptors for the seven resource categories and their manifest builders."""

from stackweave.units.builders import (
    AuthBuilder,
    BuildContext,
    ComputeBuilder,
    DatabaseBuilder,
    MonitoringBuilder,
    NetworkBuilder,
    ServerlessBuilder,
    StorageBuilder,
    register_default_builders,
)
from stackweave.units.catalog import DEFAULT_UNITS, default_catalog
from stackweave.units.handles import ResourceHandle

__all__ = [
    "AuthBuilder",
    "BuildContext",
    "ComputeBuilder",
    "DEFAULT_UNITS",
    "DatabaseBuilder",
    "MonitoringBuilder",
    "NetworkBuilder",
    "ResourceHandle",
    "ServerlessBuilder",
    "StorageBuilder",
    "default_catalog",
    "register_default_builders",
]
