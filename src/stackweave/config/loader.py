"""
Configuration file loading and merging.

Search order:
1. Explicit path (--config flag or STACKWEAVE_CONFIG_PATH)
2. .stackweave/config.yaml (project root)
3. ~/.stackweave/config.yaml (user home)
4. Default configuration

Base fields, tags and category parameters set in the environment fill in
whatever the file leaves out. Values in the file win, key by key within a
section.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pydantic
import structlog
import yaml

from stackweave.config.models import InfrastructureConfig
from stackweave.config.settings import Settings, get_settings
from stackweave.core.errors import ConfigurationError

logger = structlog.get_logger()


def get_config_path(explicit_path: str | Path | None = None) -> Path | None:
    """
    Find the configuration file to use.

    An explicit path that does not exist is an error rather than a silent
    fallback to defaults.

    Returns:
        Path to config file or None if not found
    """
    if explicit_path:
        path = Path(explicit_path).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"Config file not found: {path}", {"path": str(path)})
        return path

    cwd_config = Path.cwd() / ".stackweave" / "config.yaml"
    if cwd_config.exists():
        return cwd_config

    home_config = Path.home() / ".stackweave" / "config.yaml"
    if home_config.exists():
        return home_config

    return None


class ConfigLoader:
    """
    Loads configuration from a YAML file and the environment.
    """

    def __init__(self, config_path: Path | None = None, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.config_path = config_path

    def load(self) -> InfrastructureConfig:
        """Load, merge and validate configuration."""
        data: dict[str, Any] = {}
        if self.config_path is not None:
            data = self._read_file(self.config_path)

        merged = merge_overrides(self.settings.config_overrides(), data)
        return build_config(merged, source=str(self.config_path or "defaults"))

    def _read_file(self, path: Path) -> dict[str, Any]:
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Config file is not valid YAML: {path}", {"path": str(path), "error": str(e)}
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Config file could not be read: {path}", {"path": str(path), "error": str(e)}
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file must contain a mapping at the top level: {path}", {"path": str(path)}
            )

        logger.debug("loaded_config", path=str(path))
        return data


def merge_overrides(env: dict[str, Any], data: dict[str, Any]) -> dict[str, Any]:
    """Lay file values over environment values; nested sections merge one level deep."""
    merged = dict(env)
    for key, value in data.items():
        base = merged.get(key)
        if isinstance(value, dict) and isinstance(base, dict):
            merged[key] = {**base, **value}
        else:
            merged[key] = value
    return merged


def build_config(data: dict[str, Any], source: str = "inline") -> InfrastructureConfig:
    """Validate a raw mapping into an InfrastructureConfig."""
    try:
        return InfrastructureConfig.model_validate(data)
    except pydantic.ValidationError as e:
        problems = [
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
        ]
        raise ConfigurationError(
            f"Invalid configuration ({len(problems)} problem(s)): " + "; ".join(problems),
            {"source": source},
        ) from e


def load_config(
    path: str | Path | None = None, settings: Settings | None = None
) -> InfrastructureConfig:
    """
    Convenience function to load configuration.

    Args:
        path: Optional explicit config file path
        settings: Optional settings, defaults to the cached environment settings

    Returns:
        InfrastructureConfig instance
    """
    settings = settings or get_settings()
    config_path = get_config_path(path or settings.config_path)
    return ConfigLoader(config_path, settings).load()
