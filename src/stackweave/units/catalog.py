"""
Default unit catalog.

Seven units, one per configuration category, declared in the order they are
preferred when the planner has a free choice. Whether a unit is on by default
is decided by its configuration category's ``enabled`` default, not here.

    network      -> vpc, database_security_group, application_security_group
    storage      -> bucket
    database     <- network                       -> database_instance, database_secret
    auth         <- storage (optional)            -> user_pool, identity_pool, ...
    compute      <- network                       -> instance_role, instances
    serverless   <- network                       -> execution_role, functions
    monitoring   <- compute, database, serverless (all optional) -> alarm_topic, alarms
"""

from __future__ import annotations

from stackweave.orchestration.catalog import UnitCatalog, UnitDescriptor, category_enabled

NETWORK = UnitDescriptor(
    name="network",
    enabled=category_enabled("network"),
    produces=frozenset({"vpc", "database_security_group", "application_security_group"}),
    description="VPC and security groups",
)

STORAGE = UnitDescriptor(
    name="storage",
    enabled=category_enabled("storage"),
    produces=frozenset({"bucket"}),
    description="Object storage bucket and optional CDN distribution",
)

DATABASE = UnitDescriptor(
    name="database",
    enabled=category_enabled("database"),
    depends_on=("network",),
    requires=frozenset({"vpc", "database_security_group"}),
    produces=frozenset({"database_instance", "database_secret"}),
    description="Relational database instance and credentials secret",
)

AUTH = UnitDescriptor(
    name="auth",
    enabled=category_enabled("auth"),
    optional_depends_on=("storage",),
    optional_inputs=frozenset({"bucket"}),
    produces=frozenset({"user_pool", "identity_pool", "authenticated_role", "unauthenticated_role"}),
    description="User pool, identity pool and identity roles",
)

COMPUTE = UnitDescriptor(
    name="compute",
    enabled=category_enabled("compute"),
    depends_on=("network",),
    requires=frozenset({"vpc", "application_security_group"}),
    produces=frozenset({"instance_role", "instances"}),
    description="Instance or auto-scaling group",
)

SERVERLESS = UnitDescriptor(
    name="serverless",
    enabled=category_enabled("serverless"),
    depends_on=("network",),
    requires=frozenset({"vpc"}),
    produces=frozenset({"execution_role", "functions"}),
    description="Functions and optional API gateway",
)

MONITORING = UnitDescriptor(
    name="monitoring",
    enabled=category_enabled("monitoring"),
    optional_depends_on=("compute", "database", "serverless"),
    optional_inputs=frozenset({"instances", "database_instance", "functions"}),
    produces=frozenset({"alarm_topic", "alarms"}),
    description="Alarm topic, alarms and dashboard",
)

DEFAULT_UNITS: tuple[UnitDescriptor, ...] = (
    NETWORK,
    STORAGE,
    DATABASE,
    AUTH,
    COMPUTE,
    SERVERLESS,
    MONITORING,
)


def default_catalog() -> UnitCatalog:
    """Build the validated catalog of default units."""
    return UnitCatalog.from_descriptors(DEFAULT_UNITS)
