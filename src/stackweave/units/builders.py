"""
Manifest unit builders.

These builders do not talk to any cloud API. Each one returns handle records
describing what the provisioning backend would create for its unit: names,
logical ids and the handful of attributes downstream units or operators need.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

import structlog

from stackweave.config.models import (
    AuthConfig,
    ComputeConfig,
    DatabaseConfig,
    InfrastructureConfig,
    MonitoringConfig,
    NetworkConfig,
    ServerlessConfig,
    StorageConfig,
)
from stackweave.orchestration.registry import BuilderRegistry
from stackweave.units.handles import ResourceHandle

logger = structlog.get_logger()

SUBNET_TIERS = ("public", "private", "isolated")


@dataclass(frozen=True)
class BuildContext:
    """Project-wide naming and tagging shared by all builders."""

    project_name: str
    environment: str
    region: str
    account: str = ""
    tags: Dict[str, str] = field(default_factory=dict)

    @property
    def prefix(self) -> str:
        return f"{self.project_name}-{self.environment}"

    def stack_name(self, unit: str) -> str:
        return f"{self.prefix}-{unit}"

    def resource_tags(self) -> Dict[str, str]:
        tags = dict(self.tags)
        tags.setdefault("Project", self.project_name)
        tags.setdefault("Environment", self.environment)
        return tags

    @classmethod
    def from_config(cls, config: InfrastructureConfig) -> BuildContext:
        return cls(
            project_name=config.project_name,
            environment=config.environment,
            region=config.region,
            account=config.account,
            tags=dict(config.tags),
        )


class _ManifestBuilder:
    unit = ""

    def __init__(self, ctx: BuildContext) -> None:
        self.ctx = ctx

    @property
    def name(self) -> str:
        return self.unit

    def handle(
        self,
        name: str,
        kind: str,
        logical_id: str,
        physical_name: str,
        imported: bool = False,
        **attributes: Any,
    ) -> ResourceHandle:
        attributes = {"stack": self.ctx.stack_name(self.unit), "tags": self.ctx.resource_tags(), **attributes}
        return ResourceHandle(
            unit=self.unit,
            name=name,
            kind=kind,
            logical_id=logical_id,
            physical_name=physical_name,
            imported=imported,
            attributes=attributes,
        )


class NetworkBuilder(_ManifestBuilder):
    """Creates or imports the VPC and the two security groups."""

    unit = "network"

    def build(self, enabled: bool, config: NetworkConfig, inputs: Mapping[str, Any]) -> Dict[str, Any]:
        if config.create_vpc:
            vpc = self.handle(
                "vpc",
                "vpc",
                "VPC",
                f"{self.ctx.prefix}-vpc",
                cidr=config.vpc_cidr,
                max_azs=config.max_azs,
                nat_gateways=config.max_azs if config.nat_gateways else 0,
                subnet_tiers=list(SUBNET_TIERS),
            )
        else:
            vpc = self.handle("vpc", "vpc", "VPC", str(config.vpc_id), imported=True)

        db_sg = self.handle(
            "database_security_group",
            "security_group",
            "DatabaseSecurityGroup",
            f"{self.ctx.prefix}-database-sg",
            vpc=vpc.ref,
            ingress_cidrs=list(config.ip_whitelist),
        )
        app_sg = self.handle(
            "application_security_group",
            "security_group",
            "ApplicationSecurityGroup",
            f"{self.ctx.prefix}-application-sg",
            vpc=vpc.ref,
            ingress_cidrs=list(config.ip_whitelist),
        )
        return {
            "vpc": vpc,
            "database_security_group": db_sg,
            "application_security_group": app_sg,
        }


class StorageBuilder(_ManifestBuilder):
    """Creates or imports the bucket, plus an optional distribution."""

    unit = "storage"

    def build(self, enabled: bool, config: StorageConfig, inputs: Mapping[str, Any]) -> Dict[str, Any]:
        if config.create_bucket:
            bucket = self.handle(
                "bucket",
                "bucket",
                "Bucket",
                config.bucket_name,
                versioned=config.enable_versioning,
                cors_origins=list(config.cors_allowed_origins) if config.enable_cors else [],
                lifecycle=_lifecycle(config),
            )
        else:
            bucket = self.handle("bucket", "bucket", "Bucket", config.bucket_name, imported=True)

        handles: Dict[str, Any] = {"bucket": bucket}
        if config.create_distribution:
            handles["distribution"] = self.handle(
                "distribution",
                "distribution",
                "Distribution",
                f"{self.ctx.prefix}-cdn",
                origin=bucket.ref,
            )
        return handles


def _lifecycle(config: StorageConfig) -> Dict[str, int]:
    if not config.enable_lifecycle:
        return {}
    rules = {"transition_to_ia_after_days": config.transition_to_ia_after_days}
    if config.expire_after_days is not None:
        rules["expire_after_days"] = config.expire_after_days
    return rules


class DatabaseBuilder(_ManifestBuilder):
    """Creates the database instance inside the network's database security group."""

    unit = "database"

    def build(self, enabled: bool, config: DatabaseConfig, inputs: Mapping[str, Any]) -> Dict[str, Any]:
        vpc = inputs["vpc"]
        security_group = inputs["database_security_group"]

        secret = self.handle(
            "database_secret",
            "secret",
            "DatabaseSecret",
            f"{self.ctx.project_name}/{self.ctx.environment}/database",
        )
        instance = self.handle(
            "database_instance",
            "database_instance",
            "Database",
            f"{self.ctx.prefix}-db",
            engine=str(config.engine),
            instance_type=config.instance_type,
            database_name=config.database_name,
            port=config.port,
            allocated_storage=config.allocated_storage,
            multi_az=config.multi_az,
            deletion_protection=config.deletion_protection,
            backup_retention_days=config.backup_retention_days if config.enable_backups else 0,
            subnet_tier="public" if config.publicly_accessible else "private",
            vpc=vpc.ref,
            security_group=security_group.ref,
            credentials=secret.ref,
        )
        return {"database_instance": instance, "database_secret": secret}


class AuthBuilder(_ManifestBuilder):
    """Creates user/identity pools; grants bucket access when storage exists."""

    unit = "auth"

    def build(self, enabled: bool, config: AuthConfig, inputs: Mapping[str, Any]) -> Dict[str, Any]:
        user_pool = self.handle(
            "user_pool",
            "user_pool",
            "UserPool",
            config.user_pool_name,
            self_sign_up=config.self_sign_up_enabled,
            mfa="required" if config.mfa_required else ("optional" if config.mfa_enabled else "off"),
            callback_urls=list(config.callback_urls),
            logout_urls=list(config.logout_urls),
        )
        identity_pool = self.handle(
            "identity_pool",
            "identity_pool",
            "IdentityPool",
            config.identity_pool_name,
            user_pool=user_pool.ref,
        )

        authenticated: Dict[str, Any] = {"identity_pool": identity_pool.ref}
        bucket = inputs.get("bucket")
        if bucket is not None:
            authenticated["bucket_access"] = bucket.ref
        else:
            logger.debug("auth_without_bucket", unit=self.unit)

        return {
            "user_pool": user_pool,
            "identity_pool": identity_pool,
            "authenticated_role": self.handle(
                "authenticated_role",
                "role",
                "AuthenticatedRole",
                f"{self.ctx.prefix}-authenticated-role",
                **authenticated,
            ),
            "unauthenticated_role": self.handle(
                "unauthenticated_role",
                "role",
                "UnauthenticatedRole",
                f"{self.ctx.prefix}-unauthenticated-role",
                identity_pool=identity_pool.ref,
            ),
        }


class ComputeBuilder(_ManifestBuilder):
    """Creates a single instance or an auto-scaling group."""

    unit = "compute"

    def build(self, enabled: bool, config: ComputeConfig, inputs: Mapping[str, Any]) -> Dict[str, Any]:
        vpc = inputs["vpc"]
        security_group = inputs["application_security_group"]

        role = self.handle("instance_role", "role", "InstanceRole", f"{self.ctx.prefix}-instance-role")
        common: Dict[str, Any] = {
            "instance_type": config.instance_type,
            "vpc": vpc.ref,
            "security_group": security_group.ref,
            "role": role.ref,
        }
        if config.ami_id:
            common["ami_id"] = config.ami_id
        if config.key_name:
            common["key_name"] = config.key_name

        if config.create_asg:
            instances = self.handle(
                "instances",
                "auto_scaling_group",
                "AutoScalingGroup",
                f"{self.ctx.prefix}-asg",
                min_capacity=config.min_capacity,
                max_capacity=config.max_capacity,
                desired_capacity=config.desired_capacity,
                **common,
            )
        else:
            instances = self.handle("instances", "instance", "Instance", f"{self.ctx.prefix}-instance", **common)

        return {"instance_role": role, "instances": instances}


class ServerlessBuilder(_ManifestBuilder):
    """Creates the function execution role, the functions and an optional API."""

    unit = "serverless"

    def build(self, enabled: bool, config: ServerlessConfig, inputs: Mapping[str, Any]) -> Dict[str, Any]:
        vpc = inputs["vpc"]

        role = self.handle(
            "execution_role",
            "role",
            "LambdaExecutionRole",
            f"{self.ctx.prefix}-lambda-role",
            vpc_access=True,
        )
        functions = self.handle(
            "functions",
            "function_set",
            "Functions",
            f"{self.ctx.prefix}-functions",
            names=[f"{self.ctx.prefix}-{fn.name}" for fn in config.functions],
            vpc=vpc.ref,
            role=role.ref,
        )

        handles: Dict[str, Any] = {"execution_role": role, "functions": functions}
        if config.create_api_gateway:
            handles["api"] = self.handle(
                "api",
                "rest_api",
                "Api",
                f"{self.ctx.prefix}-api",
                stage=config.api_stage_name,
                integrations=list(functions.attributes["names"]),
            )
        return handles


class MonitoringBuilder(_ManifestBuilder):
    """Creates the alarm topic, alarms for whatever units exist, and a dashboard."""

    unit = "monitoring"

    def build(self, enabled: bool, config: MonitoringConfig, inputs: Mapping[str, Any]) -> Dict[str, Any]:
        prefix = self.ctx.prefix
        topic = self.handle(
            "alarm_topic",
            "topic",
            "AlarmTopic",
            f"{prefix}-alarms",
            subscriptions=[config.alarm_email] if config.alarm_email else [],
        )

        alarms: List[str] = []
        watched: List[str] = []
        instances = inputs.get("instances")
        if instances is not None:
            watched.append(instances.ref)
            alarms.append(f"{prefix}-cpu-high")
            if not config.essential_alarms_only:
                alarms.append(f"{prefix}-status-check-failed")
        database = inputs.get("database_instance")
        if database is not None:
            watched.append(database.ref)
            alarms.append(f"{prefix}-db-cpu-high")
            if not config.essential_alarms_only:
                alarms.append(f"{prefix}-db-storage-low")
        functions = inputs.get("functions")
        if functions is not None:
            watched.append(functions.ref)
            alarms.extend(f"{name}-errors" for name in functions.attributes.get("names", []))

        if not config.create_alarms:
            alarms = []

        handles: Dict[str, Any] = {
            "alarm_topic": topic,
            "alarms": self.handle(
                "alarms",
                "alarm_set",
                "Alarms",
                f"{prefix}-alarm-set",
                names=alarms,
                watched=watched,
                topic=topic.ref,
            ),
        }
        if config.create_dashboard:
            handles["dashboard"] = self.handle(
                "dashboard", "dashboard", "Dashboard", f"{prefix}-dashboard", widgets=len(watched)
            )
        return handles


DEFAULT_BUILDERS = (
    NetworkBuilder,
    StorageBuilder,
    DatabaseBuilder,
    AuthBuilder,
    ComputeBuilder,
    ServerlessBuilder,
    MonitoringBuilder,
)


def register_default_builders(registry: BuilderRegistry, ctx: BuildContext) -> None:
    """Register the manifest builder for every default unit."""
    for builder_cls in DEFAULT_BUILDERS:
        registry.register(builder_cls(ctx))
