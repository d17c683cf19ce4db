"""Tests for the Orchestrator.

Covers sequential and concurrent runs, handle propagation, failure
semantics (first error wins, completed prefix, no rollback), cancellation
and the builder output contract.
"""

import threading
from unittest.mock import MagicMock

import pytest
from stackweave.config import build_config
from stackweave.core.errors import (
    ConfigurationError,
    DependencyUnsatisfied,
    ExitCode,
    InvariantViolation,
    MissingHandle,
    RunFailed,
    UnitBuildFailure,
)
from stackweave.orchestration import (
    BuilderRegistry,
    Orchestrator,
    RunStage,
    RunStatus,
    UnitCatalog,
    UnitDescriptor,
    category_enabled,
)

ALL_CHAIN = ("a", "b", "c", "d")
ALL_DIAMOND = ("root", "left", "right", "join")


class TestSequentialRun:
    def test_runs_every_planned_unit_in_order(self, chain_catalog, flags, recording):
        builders = recording(chain_catalog)
        result = Orchestrator(chain_catalog, builders.registry).run(flags(*ALL_CHAIN))

        assert result.success
        assert result.status == RunStatus.COMPLETED
        assert result.completed == ["a", "b", "c", "d"]
        assert builders.calls == ["a", "b", "c", "d"]
        assert result.failure is None
        assert result.remaining == []

    def test_handles_are_passed_by_identity(self, chain_catalog, flags, recording):
        builders = recording(chain_catalog)
        result = Orchestrator(chain_catalog, builders.registry).run(flags(*ALL_CHAIN))

        assert builders.inputs["b"]["a_out"] is builders.outputs["a"]
        assert builders.inputs["c"]["b_out"] is builders.outputs["b"]
        assert result.handles["d"]["d_out"] is builders.outputs["d"]

    def test_builder_sees_only_declared_inputs(self, diamond_catalog, flags, recording):
        builders = recording(diamond_catalog)
        Orchestrator(diamond_catalog, builders.registry).run(flags(*ALL_DIAMOND))

        assert set(builders.inputs["root"]) == set()
        assert set(builders.inputs["left"]) == {"root_out"}
        assert set(builders.inputs["join"]) == {"left_out", "right_out"}

    def test_builder_receives_category_config(self, recording):
        seen = {}
        catalog = UnitCatalog.from_descriptors(
            [UnitDescriptor("db", lambda c: True, category="database", produces={"db_out"})]
        )
        config = MagicMock()
        config.category.return_value = "database-section"
        registry = BuilderRegistry()

        def build(enabled, section, inputs):
            seen.update(enabled=enabled, section=section)
            return {"db_out": 1}

        registry.register_function("db", build)
        Orchestrator(catalog, registry).run(config)

        config.category.assert_called_with("database")
        assert seen == {"enabled": True, "section": "database-section"}

    def test_ordering_hints_follow_completed_units(self, chain_catalog, flags, recording):
        builders = recording(chain_catalog)
        result = Orchestrator(chain_catalog, builders.registry).run(flags("a", "b"))

        assert [(h.unit, h.after) for h in result.ordering] == [("b", "a")]
        assert result.destroy_order() == ["b", "a"]

    def test_durations_recorded(self, chain_catalog, flags, recording):
        builders = recording(chain_catalog)
        result = Orchestrator(chain_catalog, builders.registry).run(flags("a"))

        assert set(result.unit_durations) == {"a"}
        assert result.duration_seconds >= 0
        assert len(result.run_id) == 12

    def test_empty_plan_completes(self, chain_catalog, flags, recording):
        builders = recording(chain_catalog)
        result = Orchestrator(chain_catalog, builders.registry).run(flags())

        assert result.success
        assert result.completed == []
        assert builders.calls == []


class TestRunFailure:
    def test_third_unit_failure_keeps_completed_prefix(self, chain_catalog, flags, recording):
        builders = recording(chain_catalog)

        def boom(config, inputs):
            raise RuntimeError("quota exceeded")

        builders.hooks["c"] = boom
        result = Orchestrator(chain_catalog, builders.registry).run(flags(*ALL_CHAIN))

        assert result.status == RunStatus.FAILED
        assert result.completed == ["a", "b"]
        assert builders.calls == ["a", "b", "c"]
        assert result.failed_unit == "c"
        assert result.remaining == ["c", "d"]
        assert result.failure.stage == RunStage.EXECUTING
        assert isinstance(result.failure.error, UnitBuildFailure)
        assert isinstance(result.failure.error.cause, RuntimeError)
        assert "quota exceeded" in result.failure.message
        # Nothing is rolled back.
        assert set(result.handles) == {"a", "b"}

    def test_blocked_dependency_instantiates_nothing(self, flags):
        from stackweave.units import default_catalog

        catalog = default_catalog()
        registry = BuilderRegistry()
        build = MagicMock(return_value={})
        for name in catalog.names():
            registry.register_function(name, build)

        result = Orchestrator(catalog, registry).run(flags("database"))

        assert result.status == RunStatus.FAILED
        assert result.failure.stage == RunStage.PLANNING
        assert isinstance(result.failure.error, DependencyUnsatisfied)
        assert result.failure.error.unit == "database"
        assert result.failure.error.dependency == "network"
        assert result.failed_unit == "database"
        assert result.completed == []
        assert result.plan is None
        build.assert_not_called()

    def test_missing_builder_fails_planning(self, chain_catalog, flags):
        registry = BuilderRegistry()
        registry.register_function("a", lambda e, c, i: {"a_out": 1})

        result = Orchestrator(chain_catalog, registry).run(flags("a", "b"))

        assert result.failure.stage == RunStage.PLANNING
        assert isinstance(result.failure.error, ConfigurationError)
        assert result.failure.error.details["units"] == ["b"]
        assert result.completed == []

    def test_missing_declared_handle(self, chain_catalog, flags, recording):
        builders = recording(chain_catalog)
        builders.hooks["b"] = lambda config, inputs: {"wrong_name": 1}

        result = Orchestrator(chain_catalog, builders.registry).run(flags(*ALL_CHAIN))

        assert isinstance(result.failure.error, MissingHandle)
        assert result.failure.error.handle == "b_out"
        assert result.completed == ["a"]
        assert "b" not in result.handles

    def test_extra_handles_are_recorded(self, chain_catalog, flags, recording):
        builders = recording(chain_catalog)
        builders.hooks["a"] = lambda config, inputs: {"a_out": 1, "bonus": 2}

        result = Orchestrator(chain_catalog, builders.registry).run(flags("a"))

        assert result.success
        assert result.handles["a"] == {"a_out": 1, "bonus": 2}

    def test_non_mapping_output(self, chain_catalog, flags, recording):
        builders = recording(chain_catalog)
        builders.hooks["a"] = lambda config, inputs: ["a_out"]

        result = Orchestrator(chain_catalog, builders.registry).run(flags("a"))

        assert isinstance(result.failure.error, UnitBuildFailure)
        assert isinstance(result.failure.error.cause, TypeError)

    def test_enablement_changing_mid_run_is_an_invariant_violation(self):
        answers = iter([True, False])
        catalog = UnitCatalog.from_descriptors(
            [UnitDescriptor("flaky", lambda c: next(answers), produces={"out"})]
        )
        registry = BuilderRegistry()
        build = MagicMock(return_value={"out": 1})
        registry.register_function("flaky", build)

        result = Orchestrator(catalog, registry).run(MagicMock())

        assert isinstance(result.failure.error, InvariantViolation)
        assert result.failure.error.exit_code == ExitCode.UNKNOWN_ERROR
        build.assert_not_called()

    def test_raise_for_status(self, chain_catalog, flags, recording):
        builders = recording(chain_catalog)
        builders.hooks["b"] = MagicMock(side_effect=ValueError("bad"))
        result = Orchestrator(chain_catalog, builders.registry).run(flags(*ALL_CHAIN))

        with pytest.raises(RunFailed) as exc_info:
            result.raise_for_status()

        assert exc_info.value.exit_code == ExitCode.BUILD_ERROR
        assert exc_info.value.details["unit"] == "b"
        assert exc_info.value.details["completed"] == ["a"]
        assert isinstance(exc_info.value.__cause__, UnitBuildFailure)

    def test_invalid_worker_count(self, chain_catalog):
        with pytest.raises(ConfigurationError):
            Orchestrator(chain_catalog, BuilderRegistry(), max_workers=0)

    def test_unknown_category_in_predicate_fails_planning(self):
        catalog = UnitCatalog.from_descriptors(
            [UnitDescriptor("cdn", category_enabled("cdn"), produces={"distribution"})]
        )
        registry = BuilderRegistry()
        build = MagicMock(return_value={"distribution": 1})
        registry.register_function("cdn", build)

        result = Orchestrator(catalog, registry).run(build_config({}))

        assert result.status == RunStatus.FAILED
        assert result.failure.stage == RunStage.PLANNING
        assert isinstance(result.failure.error, ConfigurationError)
        assert isinstance(result.failure.error.__cause__, KeyError)
        assert result.failure.error.exit_code == ExitCode.CONFIG_ERROR
        assert result.failed_unit == "cdn"
        assert result.completed == []
        build.assert_not_called()

    @pytest.mark.parametrize("workers", [1, 2])
    def test_unknown_category_lookup_fails_execution(self, workers):
        catalog = UnitCatalog.from_descriptors(
            [
                UnitDescriptor("network", category_enabled("network"), produces={"vpc"}),
                UnitDescriptor("edge", lambda c: True, category="cdn", depends_on=("network",)),
            ]
        )
        registry = BuilderRegistry()
        registry.register_function("network", lambda e, c, i: {"vpc": 1})
        registry.register_function("edge", MagicMock(return_value={}))

        result = Orchestrator(catalog, registry, max_workers=workers).run(build_config({}))

        assert result.status == RunStatus.FAILED
        assert result.failure.stage == RunStage.EXECUTING
        assert isinstance(result.failure.error, ConfigurationError)
        assert result.failure.error.details["category"] == "cdn"
        assert result.failed_unit == "edge"
        assert result.completed == ["network"]


class TestCancellation:
    def test_cancel_between_units(self, chain_catalog, flags, recording):
        builders = recording(chain_catalog)
        cancel = threading.Event()

        def cancel_after(config, inputs):
            cancel.set()

        builders.hooks["b"] = cancel_after
        result = Orchestrator(chain_catalog, builders.registry).run(flags(*ALL_CHAIN), cancel=cancel)

        assert result.status == RunStatus.CANCELLED
        assert result.completed == ["a", "b"]
        assert result.remaining == ["c", "d"]
        assert result.failure is None
        assert builders.calls == ["a", "b"]

    def test_cancel_before_start(self, chain_catalog, flags, recording):
        builders = recording(chain_catalog)
        cancel = threading.Event()
        cancel.set()

        result = Orchestrator(chain_catalog, builders.registry).run(flags(*ALL_CHAIN), cancel=cancel)

        assert result.status == RunStatus.CANCELLED
        assert result.completed == []

        with pytest.raises(RunFailed) as exc_info:
            result.raise_for_status()
        assert exc_info.value.exit_code == ExitCode.CANCELLED

    def test_cancelled_concurrent_run_finishes_running_units(self, diamond_catalog, flags, recording):
        builders = recording(diamond_catalog)
        cancel = threading.Event()

        def cancel_after(config, inputs):
            cancel.set()

        builders.hooks["root"] = cancel_after
        result = Orchestrator(diamond_catalog, builders.registry, max_workers=4).run(
            flags(*ALL_DIAMOND), cancel=cancel
        )

        assert result.status == RunStatus.CANCELLED
        assert result.completed == ["root"]
        assert builders.calls == ["root"]


class TestConcurrentRun:
    def test_independent_units_run_in_parallel(self, diamond_catalog, flags, recording):
        builders = recording(diamond_catalog)
        # Both branches must be inside build at the same time to pass the barrier.
        barrier = threading.Barrier(2, timeout=5)

        def meet(config, inputs):
            barrier.wait()

        builders.hooks["left"] = meet
        builders.hooks["right"] = meet
        result = Orchestrator(diamond_catalog, builders.registry, max_workers=4).run(flags(*ALL_DIAMOND))

        assert result.success, result.failure and result.failure.message
        assert result.completed[0] == "root"
        assert set(result.completed[1:3]) == {"left", "right"}
        assert result.completed[3] == "join"
        assert builders.inputs["join"]["left_out"] is builders.outputs["left"]
        assert builders.inputs["join"]["right_out"] is builders.outputs["right"]

    def test_failure_stops_new_work_but_lets_running_units_finish(
        self, diamond_catalog, flags, recording
    ):
        builders = recording(diamond_catalog)
        right_started = threading.Event()

        def fail_left(config, inputs):
            right_started.wait(timeout=5)
            raise RuntimeError("left broke")

        def mark_right(config, inputs):
            right_started.set()

        builders.hooks["left"] = fail_left
        builders.hooks["right"] = mark_right
        result = Orchestrator(diamond_catalog, builders.registry, max_workers=4).run(flags(*ALL_DIAMOND))

        assert result.status == RunStatus.FAILED
        assert result.failed_unit == "left"
        assert result.completed == ["root", "right"]
        assert "join" not in builders.calls
        assert result.remaining == ["left", "join"]

    def test_single_worker_matches_sequential(self, chain_catalog, flags, recording):
        sequential = recording(chain_catalog)
        parallel = recording(chain_catalog)

        first = Orchestrator(chain_catalog, sequential.registry).run(flags(*ALL_CHAIN))
        second = Orchestrator(chain_catalog, parallel.registry, max_workers=3).run(flags(*ALL_CHAIN))

        assert first.completed == second.completed == ["a", "b", "c", "d"]
