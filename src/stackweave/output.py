"""
Output serialization for plans, run results and configuration.

Formats: json, yaml. Handles are rendered with their ``to_dict`` when they
have one, otherwise with ``repr``.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any

import structlog
import yaml

from stackweave.config.models import InfrastructureConfig
from stackweave.orchestration import ExecutionPlan, RunResult

logger = structlog.get_logger()

FORMATS = ("json", "yaml")


def encode_handle(value: Any) -> Any:
    """Best-effort serializable form of an opaque handle."""
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return repr(value)


def render(data: Any, fmt: str) -> str:
    """Render plain data as JSON or YAML."""
    if fmt == "json":
        return json.dumps(data, indent=2, default=_json_default)
    if fmt == "yaml":
        return yaml.safe_dump(_plain(data), default_flow_style=False, sort_keys=False)
    raise ValueError(f"unsupported output format: {fmt}")


def render_plan(plan: ExecutionPlan, fmt: str = "json") -> str:
    return render(plan.to_dict(), fmt)


def render_result(result: RunResult, fmt: str = "json") -> str:
    return render(result.to_dict(encode_handle=encode_handle), fmt)


def render_config(config: InfrastructureConfig, fmt: str = "yaml") -> str:
    return render(config.model_dump(mode="json"), fmt)


def write_output(path: str | Path, text: str) -> Path:
    """Write rendered output to a file, creating parent directories."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text if text.endswith("\n") else text + "\n")
    logger.info("wrote_output", path=str(target), bytes=len(text))
    return target


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return repr(value)


def _plain(data: Any) -> Any:
    # yaml.safe_dump only accepts builtin containers and scalars.
    if isinstance(data, Enum):
        return data.value
    if isinstance(data, dict):
        return {str(k): _plain(v) for k, v in data.items()}
    if isinstance(data, (list, tuple, set, frozenset)):
        return [_plain(v) for v in data]
    if data is None or isinstance(data, (str, int, float, bool)):
        return data
    return repr(data)
