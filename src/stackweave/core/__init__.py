"""Core modules for stackweave - centralized definitions and utilities."""

from stackweave.core.errors import (
    BinderError,
    CatalogError,
    ConfigurationError,
    CycleDetected,
    DependencyUnsatisfied,
    DuplicateUnit,
    ExitCode,
    InvariantViolation,
    MissingHandle,
    RunFailed,
    StackweaveError,
    UnitBuildFailure,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "StackweaveError",
    "ConfigurationError",
    "CatalogError",
    "CycleDetected",
    "DependencyUnsatisfied",
    "BinderError",
    "DuplicateUnit",
    "MissingHandle",
    "InvariantViolation",
    "UnitBuildFailure",
    "RunFailed",
    "main_with_error_handling",
    "format_error_message",
]
