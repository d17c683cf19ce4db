"""
Orchestrator: plans a run and instantiates the planned units in order.

Run lifecycle
  planning -> executing (one unit at a time, or independent branches in
  parallel when max_workers > 1) -> completed
A run can end early as failed (first error wins, nothing is rolled back) or
cancelled (cancel event set between units). In both cases the result names
exactly which units completed.
"""

from __future__ import annotations

import threading
import time
import uuid
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from stackweave.core.errors import (
    ConfigurationError,
    InvariantViolation,
    MissingHandle,
    StackweaveError,
    UnitBuildFailure,
)
from stackweave.logging import bind_context
from stackweave.orchestration.binder import ResourceBinder
from stackweave.orchestration.catalog import UnitCatalog
from stackweave.orchestration.planner import DependencyPlanner, ExecutionPlan
from stackweave.orchestration.registry import BuilderRegistry
from stackweave.orchestration.results import RunCollector, RunResult, RunStage


class Orchestrator:
    """Drives the planner, the resource binder and the unit builders."""

    def __init__(
        self,
        catalog: UnitCatalog,
        registry: BuilderRegistry,
        max_workers: int = 1,
        resolve_timeout: Optional[float] = 300.0,
    ) -> None:
        if max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1", {"max_workers": max_workers})
        self._catalog = catalog
        self._registry = registry
        self._planner = DependencyPlanner(catalog)
        self._max_workers = max_workers
        self._resolve_timeout = resolve_timeout

    @property
    def catalog(self) -> UnitCatalog:
        return self._catalog

    def plan(self, config: Any) -> ExecutionPlan:
        """Compute the execution plan without instantiating anything."""
        return self._planner.plan(config)

    def run(self, config: Any, cancel: Optional[threading.Event] = None) -> RunResult:
        """Execute a full run and return its result. Never raises for run failures."""
        run_id = uuid.uuid4().hex[:12]
        log = bind_context(run_id=run_id)
        collector = RunCollector(run_id)
        binder = ResourceBinder()
        started = time.perf_counter()

        log.info("run_planning", units=len(self._catalog))
        try:
            plan = self._planner.plan(config)
            self._check_builders(plan)
        except StackweaveError as e:
            log.error("run_planning_failed", error_type=type(e).__name__, message=e.message)
            unit = e.details.get("unit")
            collector.record_error(RunStage.PLANNING, e, unit=unit)
            return collector.finalize({}, time.perf_counter() - started)

        collector.set_plan(plan)
        log.info("run_executing", plan=list(plan.units), skipped=list(plan.skipped))

        if self._max_workers > 1 and len(plan) > 1:
            self._execute_concurrent(plan, config, binder, collector, cancel, log)
        else:
            self._execute_sequential(plan, config, binder, collector, cancel, log)

        result = collector.finalize(binder.snapshot(), time.perf_counter() - started)
        if result.success:
            log.info("run_completed", completed=result.completed, duration=result.duration_seconds)
        elif result.failure is None:
            log.warning("run_cancelled", completed=result.completed, remaining=result.remaining)
        else:
            log.error(
                "run_failed",
                unit=result.failed_unit,
                completed=result.completed,
                message=result.failure.message,
            )
        return result

    def _check_builders(self, plan: ExecutionPlan) -> None:
        missing = [unit for unit in plan.units if unit not in self._registry]
        if missing:
            raise ConfigurationError(
                f"No builder registered for planned unit(s): {', '.join(missing)}",
                {"unit": missing[0], "units": missing},
            )

    def _execute_sequential(
        self,
        plan: ExecutionPlan,
        config: Any,
        binder: ResourceBinder,
        collector: RunCollector,
        cancel: Optional[threading.Event],
        log: Any,
    ) -> None:
        total = len(plan)
        for step, unit in enumerate(plan.units, 1):
            if cancel is not None and cancel.is_set():
                collector.cancel()
                return
            log.info("unit_started", unit=unit, step=step, total=total)
            try:
                duration = self._execute_unit(unit, config, binder, block=False)
            except StackweaveError as e:
                log.error("unit_failed", unit=unit, error_type=type(e).__name__, message=e.message)
                collector.record_error(RunStage.EXECUTING, e, unit=unit)
                return
            collector.record(unit, duration)
            log.info("unit_completed", unit=unit, duration=duration)

    def _execute_concurrent(
        self,
        plan: ExecutionPlan,
        config: Any,
        binder: ResourceBinder,
        collector: RunCollector,
        cancel: Optional[threading.Event],
        log: Any,
    ) -> None:
        pending = list(plan.units)
        done: set[str] = set()
        running: Dict[Future[float], str] = {}

        with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="stackweave") as pool:
            while pending or running:
                stopping = collector.failed or (cancel is not None and cancel.is_set())
                if not stopping:
                    ready = [u for u in pending if all(d in done for d in plan.dependencies_of(u))]
                    for unit in ready:
                        pending.remove(unit)
                        log.info("unit_started", unit=unit, parallel=True)
                        future = pool.submit(self._execute_unit, unit, config, binder, True)
                        running[future] = unit
                elif pending and not collector.failed:
                    collector.cancel()

                if not running:
                    break

                finished, _ = wait(list(running), return_when=FIRST_COMPLETED)
                for future in sorted(finished, key=lambda f: plan.index(running[f])):
                    unit = running.pop(future)
                    try:
                        duration = future.result()
                    except StackweaveError as e:
                        log.error("unit_failed", unit=unit, error_type=type(e).__name__, message=e.message)
                        collector.record_error(RunStage.EXECUTING, e, unit=unit)
                        continue
                    done.add(unit)
                    collector.record(unit, duration)
                    log.info("unit_completed", unit=unit, duration=duration)

            if pending and not collector.failed:
                collector.cancel()

    def _execute_unit(self, unit: str, config: Any, binder: ResourceBinder, block: bool) -> float:
        """Instantiate one unit and publish its handles. Returns the build duration."""
        desc = self._catalog.get(unit)
        if not desc.is_enabled(config):
            raise InvariantViolation(unit, f"Unit '{unit}' is planned but no longer enabled")

        inputs: Dict[str, Any] = {}
        for source in self._catalog.input_sources(unit):
            if source.optional:
                inputs.update(binder.resolve_optional(source.unit, [source.handle]))
                continue
            if block:
                binder.wait_for(source.unit, self._resolve_timeout, handle=source.handle)
            inputs.update(binder.resolve(source.unit, [source.handle]))

        builder = self._registry.get(unit)
        if builder is None:
            raise InvariantViolation(unit, f"No builder registered for unit '{unit}'")

        section = desc.config_for(config)
        started = time.perf_counter()
        try:
            outputs = builder.build(True, section, MappingProxyType(inputs))
        except Exception as e:
            raise UnitBuildFailure(unit, e) from e
        duration = time.perf_counter() - started

        self._check_outputs(unit, desc.produces, outputs)
        binder.record(unit, outputs)
        return duration

    def _check_outputs(self, unit: str, produces: frozenset[str], outputs: Any) -> None:
        if not isinstance(outputs, Mapping):
            raise UnitBuildFailure(
                unit, TypeError(f"builder returned {type(outputs).__name__}, expected a mapping")
            )
        for handle in sorted(produces):
            if handle not in outputs:
                raise MissingHandle(unit, handle, reason="declared but not returned by builder")
