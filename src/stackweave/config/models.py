"""
Infrastructure configuration model.

One immutable, fully-defaulted record describing, per resource category,
whether it is enabled and its category-specific parameters.

Defaults that depend on other fields (bucket name from the project prefix,
backup retention from the environment, database port from the engine) are
filled in before field validation, so nothing downstream ever sees None for
a field it branches on.
"""

from __future__ import annotations

import ipaddress
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_PROJECT_NAME = "my-project"
DEFAULT_ENVIRONMENT = "dev"
DEFAULT_REGION = "us-east-1"
PRODUCTION_ENVIRONMENTS = frozenset({"prod", "production"})

CATEGORIES: tuple[str, ...] = (
    "network",
    "storage",
    "database",
    "auth",
    "compute",
    "serverless",
    "monitoring",
)


class DatabaseEngine(StrEnum):
    """Supported relational engines."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    MARIADB = "mariadb"


DEFAULT_PORTS = {
    DatabaseEngine.POSTGRES: 5432,
    DatabaseEngine.MYSQL: 3306,
    DatabaseEngine.MARIADB: 3306,
}


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool


def _check_cidr(value: str) -> str:
    try:
        ipaddress.ip_network(value, strict=False)
    except ValueError as exc:
        raise ValueError(f"invalid CIDR block: {value}") from exc
    return value


class NetworkConfig(_Section):
    """Network boundary: VPC and security groups."""

    enabled: bool = True
    create_vpc: bool = True
    vpc_id: str | None = None
    vpc_cidr: str = "10.0.0.0/16"
    max_azs: int = Field(default=2, ge=1)
    nat_gateways: bool = True
    ip_whitelist: tuple[str, ...] = ()

    @field_validator("vpc_cidr")
    @classmethod
    def _validate_cidr(cls, value: str) -> str:
        return _check_cidr(value)

    @field_validator("ip_whitelist")
    @classmethod
    def _validate_whitelist(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(_check_cidr(v) for v in value)

    @model_validator(mode="after")
    def _require_vpc_id_when_importing(self) -> NetworkConfig:
        if self.enabled and not self.create_vpc and not self.vpc_id:
            raise ValueError("network.vpc_id is required when network.create_vpc is false")
        return self


class StorageConfig(_Section):
    """Object storage bucket and optional CDN distribution."""

    enabled: bool = True
    create_bucket: bool = True
    bucket_name: str
    create_distribution: bool = False
    enable_versioning: bool = False
    enable_cors: bool = True
    cors_allowed_origins: tuple[str, ...] = ("*",)
    cors_allowed_methods: tuple[str, ...] = ("GET", "PUT", "POST", "DELETE", "HEAD")
    enable_lifecycle: bool = False
    transition_to_ia_after_days: int = Field(default=30, ge=1)
    expire_after_days: int | None = Field(default=None, ge=1)


class DatabaseConfig(_Section):
    """Relational database instance."""

    enabled: bool = False
    engine: DatabaseEngine = DatabaseEngine.POSTGRES
    instance_type: str = "t3.micro"
    allocated_storage: int = Field(default=20, ge=5)
    publicly_accessible: bool = False
    deletion_protection: bool
    multi_az: bool
    enable_backups: bool = True
    backup_retention_days: int = Field(ge=0)
    database_name: str
    port: int = Field(gt=0, lt=65536)


class PasswordPolicy(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    min_length: int = Field(default=8, ge=6)
    require_lowercase: bool = True
    require_uppercase: bool = True
    require_digits: bool = True
    require_symbols: bool = True


class AuthConfig(_Section):
    """User and identity pools."""

    enabled: bool = False
    user_pool_name: str
    identity_pool_name: str
    self_sign_up_enabled: bool = False
    mfa_enabled: bool = False
    mfa_required: bool = False
    callback_urls: tuple[str, ...] = ()
    logout_urls: tuple[str, ...] = ()
    password_policy: PasswordPolicy = Field(default_factory=PasswordPolicy)

    @model_validator(mode="after")
    def _mfa_required_implies_enabled(self) -> AuthConfig:
        if self.mfa_required and not self.mfa_enabled:
            raise ValueError("auth.mfa_required needs auth.mfa_enabled")
        return self


class ComputeConfig(_Section):
    """Instances and an optional auto-scaling group."""

    enabled: bool = False
    instance_type: str = "t3.micro"
    ami_id: str | None = None
    key_name: str | None = None
    create_asg: bool = False
    min_capacity: int = Field(default=1, ge=0)
    max_capacity: int = Field(default=1, ge=1)
    desired_capacity: int = Field(default=1, ge=0)
    user_data: str | None = None

    @model_validator(mode="after")
    def _capacity_bounds(self) -> ComputeConfig:
        if not self.min_capacity <= self.desired_capacity <= self.max_capacity:
            raise ValueError(
                "compute capacity must satisfy min_capacity <= desired_capacity <= max_capacity"
            )
        return self


class FunctionConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    handler: str
    runtime: str
    memory_size: int = Field(default=128, ge=128, le=10240)
    timeout: int = Field(default=3, ge=1, le=900)
    environment: dict[str, str] = Field(default_factory=dict)


class ServerlessConfig(_Section):
    """Functions and an optional API gateway in front of them."""

    enabled: bool = False
    functions: tuple[FunctionConfig, ...] = ()
    create_api_gateway: bool = False
    api_stage_name: str = "api"

    @field_validator("functions")
    @classmethod
    def _unique_function_names(cls, value: tuple[FunctionConfig, ...]) -> tuple[FunctionConfig, ...]:
        seen: set[str] = set()
        for fn in value:
            if fn.name in seen:
                raise ValueError(f"duplicate function name: {fn.name}")
            seen.add(fn.name)
        return value


class MonitoringConfig(_Section):
    """Alarm topic, alarms and dashboard."""

    enabled: bool = True
    create_dashboard: bool = True
    create_alarms: bool = True
    alarm_email: str | None = None
    essential_alarms_only: bool = False


class InfrastructureConfig(BaseModel):
    """Complete, validated infrastructure configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    project_name: str = Field(default=DEFAULT_PROJECT_NAME, min_length=1, pattern=r"^[a-z0-9][a-z0-9-]*$")
    environment: str = Field(default=DEFAULT_ENVIRONMENT, min_length=1)
    account: str = ""
    region: str = DEFAULT_REGION
    profile: str | None = None
    tags: dict[str, str] = Field(default_factory=dict)

    network: NetworkConfig = Field(default_factory=NetworkConfig)
    storage: StorageConfig
    database: DatabaseConfig
    auth: AuthConfig
    compute: ComputeConfig = Field(default_factory=ComputeConfig)
    serverless: ServerlessConfig = Field(default_factory=ServerlessConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    @model_validator(mode="before")
    @classmethod
    def _resolve_derived_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        data = dict(data)
        project = str(data.get("project_name") or DEFAULT_PROJECT_NAME)
        environment = str(data.get("environment") or DEFAULT_ENVIRONMENT)
        prefix = f"{project}-{environment}"
        production = environment in PRODUCTION_ENVIRONMENTS

        storage = _section_dict(data.get("storage"))
        _default(storage, "bucket_name", f"{prefix}-bucket")
        data["storage"] = storage

        database = _section_dict(data.get("database"))
        _default(database, "deletion_protection", production)
        _default(database, "multi_az", production)
        _default(database, "backup_retention_days", 30 if production else 7)
        _default(database, "database_name", project.replace("-", "_"))
        engine = str(database.get("engine") or DatabaseEngine.POSTGRES)
        # Unknown engines are left for field validation to report.
        if engine in {e.value for e in DatabaseEngine}:
            _default(database, "port", DEFAULT_PORTS[DatabaseEngine(engine)])
        data["database"] = database

        auth = _section_dict(data.get("auth"))
        _default(auth, "user_pool_name", f"{prefix}-users")
        _default(auth, "identity_pool_name", f"{prefix}-identity")
        data["auth"] = auth

        return data

    @property
    def stack_prefix(self) -> str:
        """Name prefix shared by every unit in this project/environment."""
        return f"{self.project_name}-{self.environment}"

    @property
    def is_production(self) -> bool:
        return self.environment in PRODUCTION_ENVIRONMENTS

    def category(self, name: str) -> _Section:
        """Return the configuration subtree for a resource category."""
        if name not in CATEGORIES:
            raise KeyError(f"unknown configuration category: {name}")
        return getattr(self, name)

    def enabled_categories(self) -> list[str]:
        return [name for name in CATEGORIES if self.category(name).enabled]


def _section_dict(section: Any) -> dict[str, Any]:
    if section is None:
        return {}
    if isinstance(section, BaseModel):
        return section.model_dump()
    if isinstance(section, dict):
        return dict(section)
    # Leave anything else for field validation to reject.
    return section


def _default(section: Any, key: str, value: Any) -> None:
    if isinstance(section, dict) and section.get(key) is None:
        section[key] = value
