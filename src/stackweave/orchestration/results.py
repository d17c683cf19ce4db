"""Result types for orchestration runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Callable, Dict, List, Optional

from stackweave.core.errors import ExitCode, RunFailed, StackweaveError
from stackweave.orchestration.planner import ExecutionPlan, OrderingHint


class RunStage(StrEnum):
    """Where a run was when it stopped."""

    PLANNING = "planning"
    EXECUTING = "executing"
    COMPLETED = "completed"


class RunStatus(StrEnum):
    """Terminal state of a run."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class RunFailure:
    """The single root cause of a failed run."""

    stage: RunStage
    error: StackweaveError
    unit: Optional[str] = None

    @property
    def message(self) -> str:
        return self.error.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": str(self.stage),
            "unit": self.unit,
            "error_type": type(self.error).__name__,
            "message": self.error.message,
            "details": {k: str(v) for k, v in self.error.details.items()},
        }


@dataclass
class RunResult:
    """Outcome of one orchestration run."""

    run_id: str
    status: RunStatus
    plan: Optional[ExecutionPlan] = None
    completed: List[str] = field(default_factory=list)
    handles: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    ordering: List[OrderingHint] = field(default_factory=list)
    failure: Optional[RunFailure] = None
    unit_durations: Dict[str, float] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        """Whether every planned unit was instantiated."""
        return self.status == RunStatus.COMPLETED

    @property
    def failed_unit(self) -> Optional[str]:
        return self.failure.unit if self.failure else None

    @property
    def remaining(self) -> List[str]:
        """Planned units that were not instantiated."""
        if self.plan is None:
            return []
        done = set(self.completed)
        return [u for u in self.plan.units if u not in done]

    def destroy_order(self) -> List[str]:
        """Completed units in the order they can be torn down."""
        return list(reversed(self.completed))

    def raise_for_status(self) -> None:
        """Raise RunFailed unless the run completed."""
        if self.status == RunStatus.COMPLETED:
            return
        details = {"run_id": self.run_id, "completed": list(self.completed)}
        if self.status == RunStatus.CANCELLED:
            raise RunFailed("Run was cancelled", ExitCode.CANCELLED, details)
        assert self.failure is not None
        details.update(stage=str(self.failure.stage), unit=self.failure.unit)
        raise RunFailed(self.failure.message, self.failure.error.exit_code, details) from self.failure.error

    def to_dict(self, encode_handle: Callable[[Any], Any] = repr) -> Dict[str, Any]:
        """Serializable view of the run."""
        return {
            "run_id": self.run_id,
            "status": str(self.status),
            "success": self.success,
            "plan": self.plan.to_dict() if self.plan else None,
            "completed": list(self.completed),
            "remaining": self.remaining,
            "failure": self.failure.to_dict() if self.failure else None,
            "ordering": [hint.to_dict() for hint in self.ordering],
            "handles": {
                unit: {name: encode_handle(value) for name, value in handles.items()}
                for unit, handles in self.handles.items()
            },
            "unit_durations": dict(self.unit_durations),
            "duration_seconds": self.duration_seconds,
        }


class RunCollector:
    """Aggregates unit outcomes while a run executes."""

    def __init__(self, run_id: str) -> None:
        self._run_id = run_id
        self._plan: Optional[ExecutionPlan] = None
        self._completed: List[str] = []
        self._ordering: List[OrderingHint] = []
        self._durations: Dict[str, float] = {}
        self._failure: Optional[RunFailure] = None
        self._cancelled = False

    @property
    def failed(self) -> bool:
        return self._failure is not None

    @property
    def completed(self) -> List[str]:
        return list(self._completed)

    def set_plan(self, plan: ExecutionPlan) -> None:
        self._plan = plan

    def record(self, unit: str, duration: float) -> None:
        """Record a successfully instantiated unit and its ordering edges."""
        self._completed.append(unit)
        self._durations[unit] = duration
        if self._plan is not None:
            self._ordering.extend(
                OrderingHint(unit=unit, after=dep) for dep in self._plan.dependencies_of(unit)
            )

    def record_error(self, stage: RunStage, error: StackweaveError, unit: Optional[str] = None) -> None:
        """Record the root cause. Later failures do not replace the first."""
        if self._failure is None:
            self._failure = RunFailure(stage=stage, error=error, unit=unit)

    def cancel(self) -> None:
        self._cancelled = True

    def finalize(self, handles: Dict[str, Dict[str, Any]], duration: float) -> RunResult:
        """Return the final result with duration set."""
        if self._failure is not None:
            status = RunStatus.FAILED
        elif self._cancelled:
            status = RunStatus.CANCELLED
        else:
            status = RunStatus.COMPLETED
        return RunResult(
            run_id=self._run_id,
            status=status,
            plan=self._plan,
            completed=list(self._completed),
            handles=handles,
            ordering=list(self._ordering),
            failure=self._failure,
            unit_durations=dict(self._durations),
            duration_seconds=duration,
        )
