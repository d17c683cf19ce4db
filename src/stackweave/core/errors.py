"""
Unified error handling for stackweave.

Every failure the orchestration core can report is a StackweaveError subclass
carrying a message, structured details and an exit code, so the CLI and
library callers react the same way.

Exit Codes:
- 0: Success
- 2: Blocked (an enabled unit depends on a unit that is not enabled)
- 10: Configuration error
- 11: Unit build failure (external builder raised)
- 12: Catalog error (invalid unit descriptor table)
- 127: Internal error (binder contract or invariant violation)
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    BLOCKED = 2
    CONFIG_ERROR = 10
    BUILD_ERROR = 11
    CATALOG_ERROR = 12
    CANCELLED = 130
    UNKNOWN_ERROR = 127


class StackweaveError(Exception):
    """Base exception for stackweave errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(StackweaveError):
    """Raised for malformed or missing configuration, before planning starts."""

    exit_code = ExitCode.CONFIG_ERROR


class CatalogError(StackweaveError):
    """Raised when the unit descriptor table is invalid."""

    exit_code = ExitCode.CATALOG_ERROR


class CycleDetected(CatalogError):
    """Raised when unit dependencies form a cycle."""

    def __init__(self, units: list[str]):
        super().__init__(
            f"Dependency cycle detected among units: {', '.join(units)}",
            {"units": units},
        )
        self.units = units


class DependencyUnsatisfied(StackweaveError):
    """Raised when an enabled unit depends on a disabled or unknown unit."""

    exit_code = ExitCode.BLOCKED

    def __init__(self, unit: str, dependency: str):
        super().__init__(
            f"Unit '{unit}' requires '{dependency}', which is not enabled",
            {"unit": unit, "dependency": dependency},
        )
        self.unit = unit
        self.dependency = dependency


class BinderError(StackweaveError):
    """Resource binder contract violation."""


class DuplicateUnit(BinderError):
    """Raised when a unit publishes its handles twice in one run."""

    def __init__(self, unit: str):
        super().__init__(f"Unit '{unit}' was already recorded in this run", {"unit": unit})
        self.unit = unit


class MissingHandle(BinderError):
    """Raised when a requested handle has not been published."""

    def __init__(self, unit: str, handle: str | None = None, reason: str = ""):
        if handle is None:
            message = f"Unit '{unit}' has not published any handles"
        else:
            message = f"Unit '{unit}' did not publish handle '{handle}'"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, {"unit": unit, "handle": handle})
        self.unit = unit
        self.handle = handle


class InvariantViolation(StackweaveError):
    """Raised when execution diverges from the plan it was given."""

    def __init__(self, unit: str, message: str):
        super().__init__(message, {"unit": unit})
        self.unit = unit


class UnitBuildFailure(StackweaveError):
    """Wraps an error raised by an external unit builder."""

    exit_code = ExitCode.BUILD_ERROR

    def __init__(self, unit: str, cause: BaseException):
        super().__init__(
            f"Unit '{unit}' failed to build: {cause}",
            {"unit": unit, "cause": type(cause).__name__},
        )
        self.unit = unit
        self.cause = cause


class RunFailed(StackweaveError):
    """Raised by RunResult.raise_for_status for failed or cancelled runs."""

    def __init__(self, message: str, exit_code: ExitCode, details: dict[str, Any] | None = None):
        super().__init__(message, details)
        self.exit_code = exit_code


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI main functions that provides unified error handling.

    Args:
        show_traceback: If True, show full traceback for unexpected errors
        log_errors: If True, log errors to structlog

    Exit codes:
        - StackweaveError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except StackweaveError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return ExitCode.CANCELLED
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: StackweaveError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
