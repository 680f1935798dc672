"""
Workflow execution over a dependency-checked step graph.

Steps run strictly in declared order.  ``depends_on`` names the *operation*
of earlier steps; a step whose dependencies have not all succeeded is recorded
as failed and not dispatched.  A failing critical step halts the workflow and
triggers the optional rollback steps.

Provides:
- StepGraph: self-reference / cycle detection (DFS) before anything runs
- TaskGraphExecutor: ordered execution with dependency gating and rollback
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

from conductor.config.settings import Settings, get_settings
from conductor.exceptions import (
    CycleDetectedError,
    DependencyUnmet,
    WorkflowValidationError,
    error_message_of,
)
from conductor.interfaces.event_bus import EventType, IEventBus
from conductor.models.types import AgentResult, WorkflowDefinition, WorkflowResult, WorkflowStep
from conductor.orchestration.dispatcher import Dispatcher

logger = logging.getLogger(__name__)


# ── Graph ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StepNode:
    """Immutable view of one step's position in the graph."""

    index: int
    operation: str
    depends_on: Tuple[str, ...]
    critical: bool


class StepGraph:
    """Steps as nodes, ``depends_on`` references as edges.

    Operation names may repeat.  A reference points at the latest earlier
    step carrying that operation name; only when there is none does it point
    at the later ones (a forward reference).
    """

    def __init__(self, steps: Sequence[WorkflowStep]) -> None:
        self.nodes: List[StepNode] = [
            StepNode(i, s.operation, tuple(s.depends_on or ()), s.critical)
            for i, s in enumerate(steps)
        ]
        by_operation: Dict[str, List[int]] = defaultdict(list)
        for node in self.nodes:
            by_operation[node.operation].append(node.index)

        # index -> indices it depends on
        self._edges: Dict[int, Set[int]] = {n.index: set() for n in self.nodes}
        self.self_references: List[str] = []
        self.unknown_references: List[Tuple[str, str]] = []
        self.forward_references: List[Tuple[str, str]] = []

        for node in self.nodes:
            for dep in node.depends_on:
                candidates = by_operation.get(dep, [])
                earlier = [j for j in candidates if j < node.index]
                if earlier:
                    # gating reads the most recent result recorded under dep
                    self._edges[node.index].add(max(earlier))
                    continue
                later = [j for j in candidates if j > node.index]
                if later:
                    self.forward_references.append((node.operation, dep))
                    self._edges[node.index].update(later)
                elif dep == node.operation:
                    self.self_references.append(dep)
                else:
                    self.unknown_references.append((node.operation, dep))

    def dependencies_of(self, index: int) -> List[str]:
        return sorted({self.nodes[j].operation for j in self._edges[index]})

    def find_cycle(self) -> Optional[List[str]]:
        """Return the operation names along a dependency cycle, or None."""
        for node in self.nodes:
            for dep in self._edges[node.index]:
                path = self._dfs_find_path(dep, node.index)
                if path is not None:
                    return [self.nodes[i].operation for i in [node.index] + path]
        return None

    def _dfs_find_path(self, start: int, target: int) -> Optional[List[int]]:
        """Return a path from *start* to *target* following dependency edges,
        or ``None`` if no path exists."""
        visited: Set[int] = set()
        stack: List[Tuple[int, List[int]]] = [(start, [start])]
        while stack:
            index, path = stack.pop()
            if index == target:
                return path
            if index in visited:
                continue
            visited.add(index)
            for dep in self._edges[index]:
                stack.append((dep, path + [dep]))
        return None

    def validate(self, strict: bool = False) -> None:
        """Raise if the graph can never run correctly.

        Raises:
            CycleDetectedError: on a self-reference or a dependency cycle.
            WorkflowValidationError: in strict mode, on forward or unknown
                references.
        """
        if self.self_references:
            op = self.self_references[0]
            raise CycleDetectedError([op, op])
        cycle = self.find_cycle()
        if cycle is not None:
            raise CycleDetectedError(cycle)

        loose = [f"{op} -> {dep} (unknown)" for op, dep in self.unknown_references]
        loose += [f"{op} -> {dep} (declared later)" for op, dep in self.forward_references]
        if not loose:
            return
        if strict:
            raise WorkflowValidationError(
                f"Unresolvable dependencies: {', '.join(loose)}",
                details={"references": loose},
            )
        for ref in loose:
            logger.warning("Workflow dependency will not be satisfied in order: %s", ref)


# ── Executor ─────────────────────────────────────────────────────────


def _step_data(step: WorkflowStep) -> Dict[str, Any]:
    if isinstance(step.data, dict):
        return step.data
    return {"data": step.data}


class TaskGraphExecutor:
    """Runs workflow definitions through a dispatcher."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        settings: Optional[Settings] = None,
        event_bus: Optional[IEventBus] = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.settings = settings or get_settings()
        self.event_bus = event_bus

    async def execute_workflow(self, definition: Union[WorkflowDefinition, Dict[str, Any]]) -> WorkflowResult:
        if not isinstance(definition, WorkflowDefinition):
            definition = WorkflowDefinition.model_validate(definition)
        name = definition.name

        try:
            StepGraph(definition.steps).validate(strict=self.settings.workflow_strict_dependencies)
        except WorkflowValidationError as exc:
            logger.error("Workflow '%s' rejected: %s", name, exc)
            return WorkflowResult(success=False, message=f"Workflow '{name}' failed: {exc}")

        logger.info("Executing workflow '%s' (%d steps)", name, len(definition.steps))
        await self._emit(EventType.WORKFLOW_STARTED, {"name": name, "steps": len(definition.steps)})

        results: List[AgentResult] = []
        recorded: Dict[str, AgentResult] = {}
        halted = False

        try:
            for step in definition.steps:
                if step.depends_on:
                    missing = [
                        dep for dep in step.depends_on
                        if dep not in recorded or not recorded[dep].success
                    ]
                    if missing:
                        unmet = DependencyUnmet(step.operation, missing)
                        logger.warning("%s (missing: %s)", unmet, ", ".join(missing))
                        result = AgentResult.from_exception(
                            unmet,
                            data=_step_data(step),
                            agent_type=step.agent_type,
                            task_id=step.id,
                        )
                        results.append(result)
                        recorded[step.operation] = result
                        if step.critical:
                            halted = True
                            break
                        continue

                result = await self.dispatcher.invoke(
                    step.agent_type,
                    step.operation,
                    step.data,
                    task_id=step.id,
                    retries=step.retries,
                )
                results.append(result)
                recorded[step.operation] = result

                if not result.success and step.critical:
                    logger.error("Critical step failed, halting workflow '%s': %s", name, step.operation)
                    halted = True
                    break
        except Exception as exc:
            logger.exception("Workflow '%s' aborted", name)
            return WorkflowResult(
                success=False,
                results=results,
                message=f"Workflow '{name}' failed: {error_message_of(exc)}",
            )

        rollback_results: List[AgentResult] = []
        if halted and definition.rollback_steps:
            rollback_results = await self._rollback(name, definition.rollback_steps)

        success_count = sum(1 for r in results if r.success)
        workflow = WorkflowResult(
            success=success_count > 0,
            results=results,
            message=f"Workflow '{name}' completed: {success_count}/{len(results)} steps successful",
            rollback_results=rollback_results,
        )
        logger.info("%s", workflow.message)
        await self._emit(EventType.WORKFLOW_COMPLETED, {
            "name": name,
            "success": workflow.success,
            "success_count": success_count,
            "total": len(results),
            "halted": halted,
        })
        return workflow

    async def _rollback(self, name: str, steps: List[WorkflowStep]) -> List[AgentResult]:
        logger.info("Rolling back workflow '%s' (%d steps)", name, len(steps))
        results: List[AgentResult] = []
        try:
            for step in steps:
                results.append(await self.dispatcher.invoke(
                    step.agent_type,
                    step.operation,
                    step.data,
                    task_id=step.id,
                    retries=step.retries,
                ))
        except Exception:
            logger.exception("Rollback of workflow '%s' aborted", name)
        return results

    async def _emit(self, event_type: EventType, data: Dict[str, Any]) -> None:
        if self.event_bus is not None:
            await self.event_bus.publish(event_type, data, source="workflow")
