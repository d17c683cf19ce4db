"""
Application settings using Pydantic.

Provides environment-based configuration loading with STACKWEAVE_ prefix.
Infrastructure fields also accept the plain AWS/CDK variable names
(AWS_REGION, PROJECT_NAME, VPC_CIDR, DB_NAME, TAG_OWNER, ...).
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env(name: str, *plain: str) -> Any:
    """Optional field read from STACKWEAVE_<NAME> or one of the plain names."""
    return Field(default=None, validation_alias=AliasChoices(f"STACKWEAVE_{name}", *plain))


def _urls(value: str | None) -> list[str] | None:
    if not value:
        return None
    return [url.strip() for url in value.split(",") if url.strip()]


class Settings(BaseSettings):
    """Application settings."""

    # Infrastructure base fields
    account: str | None = _env("ACCOUNT", "AWS_ACCOUNT_ID", "CDK_DEFAULT_ACCOUNT")
    region: str | None = _env("REGION", "AWS_REGION", "CDK_DEFAULT_REGION")
    profile: str | None = _env("PROFILE", "AWS_PROFILE")
    project_name: str | None = _env("PROJECT_NAME", "PROJECT_NAME")
    environment: str | None = _env("ENVIRONMENT", "ENVIRONMENT")

    # Tags
    tag_environment: str | None = _env("TAG_ENVIRONMENT", "TAG_ENVIRONMENT")
    tag_project: str | None = _env("TAG_PROJECT", "TAG_PROJECT")
    tag_owner: str | None = _env("TAG_OWNER", "TAG_OWNER")

    # Category parameters
    vpc_cidr: str | None = _env("VPC_CIDR", "VPC_CIDR")
    max_azs: int | None = _env("MAX_AZS", "MAX_AZS")
    s3_bucket_name: str | None = _env("S3_BUCKET_NAME", "S3_BUCKET_NAME")
    db_name: str | None = _env("DB_NAME", "DB_NAME")
    db_instance_type: str | None = _env("DB_INSTANCE_TYPE", "DB_INSTANCE_TYPE")
    db_allocated_storage: int | None = _env("DB_ALLOCATED_STORAGE", "DB_ALLOCATED_STORAGE")
    user_pool_name: str | None = _env("USER_POOL_NAME", "USER_POOL_NAME")
    identity_pool_name: str | None = _env("IDENTITY_POOL_NAME", "IDENTITY_POOL_NAME")
    cognito_callback_url: str | None = _env("COGNITO_CALLBACK_URL", "COGNITO_CALLBACK_URL")
    cognito_logout_url: str | None = _env("COGNITO_LOGOUT_URL", "COGNITO_LOGOUT_URL")
    ec2_instance_type: str | None = _env("EC2_INSTANCE_TYPE", "EC2_INSTANCE_TYPE")
    ec2_key_pair_name: str | None = _env("EC2_KEY_PAIR_NAME", "EC2_KEY_PAIR_NAME")
    ec2_user_data: str | None = _env("EC2_USER_DATA", "EC2_USER_DATA")
    api_stage_name: str | None = _env("API_STAGE_NAME", "API_STAGE_NAME")
    alarm_email: str | None = _env("ALARM_EMAIL", "ALARM_EMAIL")

    # Config file
    config_path: str | None = None

    # Logging
    log_level: str = "WARNING"
    log_json: bool = True

    # Execution
    max_workers: int = 1

    model_config = SettingsConfigDict(
        env_prefix="STACKWEAVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def base_overrides(self) -> dict[str, Any]:
        """Base infrastructure fields that were actually set in the environment."""
        values = {
            "account": self.account,
            "region": self.region,
            "profile": self.profile,
            "project_name": self.project_name,
            "environment": self.environment,
        }
        return {key: value for key, value in values.items() if value}

    def tag_overrides(self) -> dict[str, str]:
        tags = {
            "Environment": self.tag_environment,
            "Project": self.tag_project,
            "Owner": self.tag_owner,
        }
        return {key: value for key, value in tags.items() if value}

    def section_overrides(self) -> dict[str, dict[str, Any]]:
        """Category parameters set in the environment, keyed by category."""
        sections = {
            "network": {"vpc_cidr": self.vpc_cidr, "max_azs": self.max_azs},
            "storage": {"bucket_name": self.s3_bucket_name},
            "database": {
                "database_name": self.db_name,
                "instance_type": self.db_instance_type,
                "allocated_storage": self.db_allocated_storage,
            },
            "auth": {
                "user_pool_name": self.user_pool_name,
                "identity_pool_name": self.identity_pool_name,
                "callback_urls": _urls(self.cognito_callback_url),
                "logout_urls": _urls(self.cognito_logout_url),
            },
            "compute": {
                "instance_type": self.ec2_instance_type,
                "key_name": self.ec2_key_pair_name,
                "user_data": self.ec2_user_data,
            },
            "serverless": {"api_stage_name": self.api_stage_name},
            "monitoring": {"alarm_email": self.alarm_email},
        }
        overrides = {}
        for category, values in sections.items():
            present = {key: value for key, value in values.items() if value is not None and value != ""}
            if present:
                overrides[category] = present
        return overrides

    def config_overrides(self) -> dict[str, Any]:
        """Everything the environment contributes to an InfrastructureConfig."""
        overrides: dict[str, Any] = {**self.base_overrides(), **self.section_overrides()}
        tags = self.tag_overrides()
        if tags:
            overrides["tags"] = tags
        return overrides


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
