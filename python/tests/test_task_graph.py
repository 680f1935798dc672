"""Tests for conductor.orchestration.task_graph (StepGraph + TaskGraphExecutor)."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from conductor.exceptions import CycleDetectedError, WorkflowValidationError
from conductor.models.types import AgentResult, WorkflowDefinition, WorkflowStep
from conductor.orchestration.task_graph import StepGraph, TaskGraphExecutor


def _step(operation, depends_on=None, critical=False, agent_type="seo", **data):
    return WorkflowStep(agent_type=agent_type, operation=operation, depends_on=depends_on,
                        critical=critical, data=data)


def _fake_dispatcher(failing=(), raising=()):
    """Dispatcher whose invoke succeeds unless the operation is listed."""
    dispatcher = MagicMock()

    async def invoke(agent_type, operation, data=None, *, task_id=None, retries=None):
        if operation in raising:
            raise RuntimeError(f"{operation} exploded")
        if operation in failing:
            return AgentResult(success=False, error=f"{operation} failed", error_type="AgentExecutionError")
        return AgentResult(success=True, message=operation, agent_type=agent_type)

    dispatcher.invoke = AsyncMock(side_effect=invoke)
    return dispatcher


def _dispatched(dispatcher):
    return [call.args[1] for call in dispatcher.invoke.await_args_list]


# ── StepGraph ────────────────────────────────────────────────────────


def test_graph_without_edges_is_valid():
    StepGraph([_step("a"), _step("b")]).validate()


def test_self_reference_is_a_cycle():
    with pytest.raises(CycleDetectedError) as exc:
        StepGraph([_step("a", depends_on=["a"])]).validate()
    assert exc.value.cycle == ["a", "a"]


def test_two_step_cycle():
    graph = StepGraph([_step("a", depends_on=["b"]), _step("b", depends_on=["a"])])
    with pytest.raises(CycleDetectedError, match="Dependency cycle detected: a -> b -> a"):
        graph.validate()


def test_three_step_cycle():
    graph = StepGraph([
        _step("a", depends_on=["c"]),
        _step("b", depends_on=["a"]),
        _step("c", depends_on=["b"]),
    ])
    cycle = graph.find_cycle()
    assert cycle[0] == cycle[-1]
    assert set(cycle) == {"a", "b", "c"}


def test_repeated_operation_is_not_a_self_reference():
    graph = StepGraph([_step("navigate"), _step("navigate", depends_on=["navigate"])])
    graph.validate()
    assert graph.dependencies_of(1) == ["navigate"]


def test_repeated_operation_links_to_latest_earlier_step():
    graph = StepGraph([
        _step("navigate"),
        _step("optimize", depends_on=["navigate"]),
        _step("navigate", depends_on=["optimize"]),
        _step("validate", depends_on=["navigate"]),
    ])
    graph.validate(strict=True)
    assert graph.find_cycle() is None
    assert graph.forward_references == []
    assert graph._edges[3] == {2}


def test_forward_reference_still_joins_cycle_search():
    graph = StepGraph([_step("a", depends_on=["b"]), _step("b", depends_on=["a"]), _step("a")])
    with pytest.raises(CycleDetectedError):
        graph.validate()


def test_forward_and_unknown_references_are_tolerated():
    graph = StepGraph([_step("a", depends_on=["b"]), _step("b"), _step("c", depends_on=["zzz"])])
    graph.validate()
    assert graph.forward_references == [("a", "b")]
    assert graph.unknown_references == [("c", "zzz")]


def test_strict_mode_rejects_loose_references():
    graph = StepGraph([_step("a", depends_on=["b"]), _step("b")])
    with pytest.raises(WorkflowValidationError, match="declared later"):
        graph.validate(strict=True)


# ── Executor ─────────────────────────────────────────────────────────


async def test_steps_run_in_declared_order(settings):
    dispatcher = _fake_dispatcher()
    executor = TaskGraphExecutor(dispatcher, settings)
    steps = [_step("navigate", agent_type="navigation"), _step("optimize"), _step("validate")]

    result = await executor.execute_workflow(WorkflowDefinition(name="wf", steps=steps))

    assert result.success
    assert len(result.results) == len(steps)
    assert [r.message for r in result.results] == ["navigate", "optimize", "validate"]
    assert result.message == "Workflow 'wf' completed: 3/3 steps successful"


async def test_accepts_plain_dict_definition(settings):
    executor = TaskGraphExecutor(_fake_dispatcher(), settings)
    result = await executor.execute_workflow({
        "name": "wf",
        "steps": [{"agentType": "seo", "operation": "optimize", "dependsOn": None}],
    })
    assert result.success


async def test_critical_failure_halts(settings):
    dispatcher = _fake_dispatcher(failing={"a"})
    executor = TaskGraphExecutor(dispatcher, settings)

    result = await executor.execute_workflow(WorkflowDefinition(
        name="wf", steps=[_step("a", critical=True), _step("b"), _step("c")],
    ))

    assert _dispatched(dispatcher) == ["a"]
    assert len(result.results) == 1
    assert not result.success


async def test_non_critical_failure_continues(settings):
    dispatcher = _fake_dispatcher(failing={"a"})
    executor = TaskGraphExecutor(dispatcher, settings)

    result = await executor.execute_workflow(WorkflowDefinition(name="wf", steps=[_step("a"), _step("b")]))

    assert _dispatched(dispatcher) == ["a", "b"]
    assert result.success
    assert result.message == "Workflow 'wf' completed: 1/2 steps successful"


async def test_critical_failure_with_dependent_step(settings):
    dispatcher = _fake_dispatcher(failing={"stepA"})
    executor = TaskGraphExecutor(dispatcher, settings)

    result = await executor.execute_workflow(WorkflowDefinition(name="wf", steps=[
        _step("stepA", critical=True),
        _step("stepB", depends_on=["stepA"]),
    ]))

    assert len(result.results) == 1
    assert result.results[0].error == "stepA failed"
    assert _dispatched(dispatcher) == ["stepA"]
    assert result.success is False


async def test_unmet_dependency_is_recorded_not_dispatched(settings):
    dispatcher = _fake_dispatcher(failing={"a"})
    executor = TaskGraphExecutor(dispatcher, settings)

    result = await executor.execute_workflow(WorkflowDefinition(name="wf", steps=[
        _step("a"),
        _step("b", depends_on=["a"], item_id="X"),
        _step("c"),
    ]))

    assert _dispatched(dispatcher) == ["a", "c"]
    unmet = result.results[1]
    assert unmet.error == "Dependencies not met for step: b"
    assert unmet.error_type == "DependencyUnmet"
    assert unmet.data == {"item_id": "X"}
    assert result.success


async def test_unmet_critical_dependency_halts(settings):
    dispatcher = _fake_dispatcher(failing={"a"})
    executor = TaskGraphExecutor(dispatcher, settings)

    result = await executor.execute_workflow(WorkflowDefinition(name="wf", steps=[
        _step("a"),
        _step("b", depends_on=["a"], critical=True),
        _step("c"),
    ]))

    assert _dispatched(dispatcher) == ["a"]
    assert len(result.results) == 2
    assert result.success is False


async def test_forward_reference_fails_at_runtime(settings):
    dispatcher = _fake_dispatcher()
    executor = TaskGraphExecutor(dispatcher, settings)

    result = await executor.execute_workflow(WorkflowDefinition(name="wf", steps=[
        _step("a", depends_on=["b"]),
        _step("b"),
    ]))

    assert _dispatched(dispatcher) == ["b"]
    assert result.results[0].error_type == "DependencyUnmet"
    assert result.success


async def test_round_trip_with_repeated_operation_runs_every_step(settings):
    dispatcher = _fake_dispatcher()
    executor = TaskGraphExecutor(dispatcher, settings)

    result = await executor.execute_workflow({"name": "round-trip", "steps": [
        {"agentType": "navigation", "operation": "navigate"},
        {"agentType": "seo", "operation": "optimize", "dependsOn": ["navigate"]},
        {"agentType": "navigation", "operation": "navigate", "dependsOn": ["optimize"]},
    ]})

    assert _dispatched(dispatcher) == ["navigate", "optimize", "navigate"]
    assert result.success
    assert result.message == "Workflow 'round-trip' completed: 3/3 steps successful"


async def test_cycle_dispatches_nothing(settings):
    dispatcher = _fake_dispatcher()
    executor = TaskGraphExecutor(dispatcher, settings)

    result = await executor.execute_workflow(WorkflowDefinition(name="loop", steps=[
        _step("a", depends_on=["b"]),
        _step("b", depends_on=["a"]),
    ]))

    assert not result.success
    assert result.results == []
    assert "Dependency cycle detected" in result.message
    dispatcher.invoke.assert_not_awaited()


async def test_all_failed_means_failure(settings):
    executor = TaskGraphExecutor(_fake_dispatcher(failing={"a", "b"}), settings)
    result = await executor.execute_workflow(WorkflowDefinition(name="wf", steps=[_step("a"), _step("b")]))
    assert not result.success
    assert result.message == "Workflow 'wf' completed: 0/2 steps successful"


async def test_dispatch_exception_aborts_with_partial_results(settings):
    executor = TaskGraphExecutor(_fake_dispatcher(raising={"b"}), settings)
    result = await executor.execute_workflow(WorkflowDefinition(name="wf", steps=[_step("a"), _step("b"), _step("c")]))
    assert not result.success
    assert len(result.results) == 1
    assert result.message == "Workflow 'wf' failed: b exploded"


async def test_rollback_runs_after_critical_halt(settings):
    dispatcher = _fake_dispatcher(failing={"b"})
    executor = TaskGraphExecutor(dispatcher, settings)

    result = await executor.execute_workflow(WorkflowDefinition(
        name="wf",
        steps=[_step("a"), _step("b", critical=True), _step("c")],
        rollback_steps=[_step("undo-a", depends_on=["never"])],
    ))

    assert _dispatched(dispatcher) == ["a", "b", "undo-a"]
    assert [r.message for r in result.rollback_results] == ["undo-a"]
    assert result.message == "Workflow 'wf' completed: 1/2 steps successful"


async def test_no_rollback_without_halt(settings):
    dispatcher = _fake_dispatcher(failing={"b"})
    executor = TaskGraphExecutor(dispatcher, settings)
    result = await executor.execute_workflow(WorkflowDefinition(
        name="wf", steps=[_step("a"), _step("b")], rollback_steps=[_step("undo")],
    ))
    assert result.rollback_results == []
    assert "undo" not in _dispatched(dispatcher)
