"""
stackweave configuration.

Provides:
- The immutable infrastructure configuration model
- Pydantic-based settings (environment variables, .env files)
- YAML config file discovery and loading
"""

from stackweave.config.loader import ConfigLoader, build_config, get_config_path, load_config
from stackweave.config.models import (
    CATEGORIES,
    AuthConfig,
    ComputeConfig,
    DatabaseConfig,
    DatabaseEngine,
    FunctionConfig,
    InfrastructureConfig,
    MonitoringConfig,
    NetworkConfig,
    PasswordPolicy,
    ServerlessConfig,
    StorageConfig,
)
from stackweave.config.settings import Settings, get_settings

__all__ = [
    # Model
    "CATEGORIES",
    "InfrastructureConfig",
    "NetworkConfig",
    "StorageConfig",
    "DatabaseConfig",
    "DatabaseEngine",
    "AuthConfig",
    "PasswordPolicy",
    "ComputeConfig",
    "ServerlessConfig",
    "FunctionConfig",
    "MonitoringConfig",
    # Settings
    "Settings",
    "get_settings",
    # Loader
    "ConfigLoader",
    "build_config",
    "get_config_path",
    "load_config",
]
