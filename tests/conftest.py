"""Root test configuration."""

import logging
from types import SimpleNamespace

import pytest
import structlog
from stackweave.config.settings import get_settings
from stackweave.orchestration import BuilderRegistry, UnitCatalog, UnitDescriptor

ENV_VARS = (
    "STACKWEAVE_ACCOUNT",
    "STACKWEAVE_REGION",
    "STACKWEAVE_PROFILE",
    "STACKWEAVE_PROJECT_NAME",
    "STACKWEAVE_ENVIRONMENT",
    "STACKWEAVE_CONFIG_PATH",
    "STACKWEAVE_LOG_LEVEL",
    "STACKWEAVE_LOG_JSON",
    "STACKWEAVE_MAX_WORKERS",
    "AWS_ACCOUNT_ID",
    "AWS_REGION",
    "AWS_PROFILE",
    "CDK_DEFAULT_ACCOUNT",
    "CDK_DEFAULT_REGION",
    "PROJECT_NAME",
    "ENVIRONMENT",
)

# Category parameters and tags, read with or without the STACKWEAVE_ prefix
PARAMETER_VARS = (
    "TAG_ENVIRONMENT",
    "TAG_PROJECT",
    "TAG_OWNER",
    "VPC_CIDR",
    "MAX_AZS",
    "S3_BUCKET_NAME",
    "DB_NAME",
    "DB_INSTANCE_TYPE",
    "DB_ALLOCATED_STORAGE",
    "USER_POOL_NAME",
    "IDENTITY_POOL_NAME",
    "COGNITO_CALLBACK_URL",
    "COGNITO_LOGOUT_URL",
    "EC2_INSTANCE_TYPE",
    "EC2_KEY_PAIR_NAME",
    "EC2_USER_DATA",
    "API_STAGE_NAME",
    "ALARM_EMAIL",
)


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Run every test away from real config files and environment variables."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    for var in PARAMETER_VARS:
        monkeypatch.delenv(var, raising=False)
        monkeypatch.delenv(f"STACKWEAVE_{var}", raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FlagConfig:
    """Minimal categorized configuration: one ``enabled`` flag per category."""

    def __init__(self, *enabled: str):
        self.enabled = set(enabled)

    def category(self, name):
        return SimpleNamespace(name=name, enabled=name in self.enabled)


def flag(name):
    return lambda config: name in config.enabled


@pytest.fixture
def flags():
    """Factory for FlagConfig instances."""
    return FlagConfig


@pytest.fixture
def chain_catalog():
    """Four units in a chain: a -> b -> c -> d, each passing one handle on."""
    return UnitCatalog.from_descriptors(
        [
            UnitDescriptor("a", flag("a"), produces={"a_out"}),
            UnitDescriptor("b", flag("b"), depends_on=("a",), requires={"a_out"}, produces={"b_out"}),
            UnitDescriptor("c", flag("c"), depends_on=("b",), requires={"b_out"}, produces={"c_out"}),
            UnitDescriptor("d", flag("d"), depends_on=("c",), requires={"c_out"}, produces={"d_out"}),
        ]
    )


@pytest.fixture
def diamond_catalog():
    """root <- left, right <- join."""
    return UnitCatalog.from_descriptors(
        [
            UnitDescriptor("root", flag("root"), produces={"root_out"}),
            UnitDescriptor(
                "left", flag("left"), depends_on=("root",), requires={"root_out"}, produces={"left_out"}
            ),
            UnitDescriptor(
                "right", flag("right"), depends_on=("root",), requires={"root_out"}, produces={"right_out"}
            ),
            UnitDescriptor(
                "join",
                flag("join"),
                depends_on=("left", "right"),
                requires={"left_out", "right_out"},
                produces={"join_out"},
            ),
        ]
    )


class RecordingBuilders:
    """Registers one builder per unit that records calls and publishes ``<unit>_out``."""

    def __init__(self, catalog):
        self.registry = BuilderRegistry()
        self.calls = []
        self.inputs = {}
        self.outputs = {}
        self.hooks = {}
        for desc in catalog:
            self.registry.register_function(desc.name, self._make(desc.name))

    def _make(self, unit):
        def build(enabled, config, inputs):
            self.calls.append(unit)
            self.inputs[unit] = dict(inputs)
            hook = self.hooks.get(unit)
            if hook is not None:
                result = hook(config, inputs)
                if result is not None:
                    return result
            handle = object()
            self.outputs[unit] = handle
            return {f"{unit}_out": handle}

        return build


@pytest.fixture
def recording():
    """Factory for RecordingBuilders over a catalog."""
    return RecordingBuilders
