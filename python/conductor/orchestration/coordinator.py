"""
AgentCoordinator: the public facade over registry, dispatcher and executors.

Owns one AgentRegistry for its page context and wires the dispatcher,
workflow executor and bulk executor on top of it.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from conductor.agents.base import AgentKind
from conductor.agents.registry import AgentFactory, AgentRegistry
from conductor.config.settings import Settings, get_settings
from conductor.enhanced_logging import track_performance
from conductor.exceptions import WorkflowValidationError
from conductor.interfaces.event_bus import IEventBus
from conductor.interfaces.page_driver import PageDriver
from conductor.models.bulk import BulkOperationConfig, BulkOperationResult, BulkOperationStatus
from conductor.models.types import (
    AgentContext,
    AgentResult,
    PageContext,
    Task,
    WorkflowDefinition,
    WorkflowResult,
)
from conductor.orchestration.batch_executor import BatchExecutor
from conductor.orchestration.dispatcher import Dispatcher
from conductor.orchestration.task_graph import TaskGraphExecutor

logger = logging.getLogger(__name__)

WORKFLOW_TASK_TYPE = "workflow"


class AgentCoordinator:
    """Coordinates agents for one dashboard session."""

    def __init__(
        self,
        context: AgentContext,
        *,
        driver: Optional[PageDriver] = None,
        settings: Optional[Settings] = None,
        event_bus: Optional[IEventBus] = None,
        factories: Optional[Dict[AgentKind, AgentFactory]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.event_bus = event_bus
        self.registry = AgentRegistry(
            context,
            driver=driver,
            settings=self.settings,
            event_bus=event_bus,
            factories=factories,
        )
        self.dispatcher = Dispatcher(self.registry, self.settings, event_bus)
        self.workflows = TaskGraphExecutor(self.dispatcher, self.settings, event_bus)
        self.bulk = BatchExecutor(self.dispatcher, self.settings, event_bus)
        self._initialized = False

    @property
    def context(self) -> AgentContext:
        return self.registry.context

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Warm up the agents available on the current page."""
        for agent_type in self.available_agents():
            if agent_type.startswith("mock-"):
                continue
            await self.registry.resolve(agent_type)
        self._initialized = True
        logger.info(
            "Coordinator initialized on %s (%d agents)",
            self.registry.page_type.value, len(self.registry.instances()),
        )

    # ── Tasks & workflows ────────────────────────────────────────────

    @track_performance
    async def execute_task(self, task: Union[Task, Dict[str, Any]]) -> AgentResult:
        if not isinstance(task, Task):
            task = Task.model_validate(task)
        if task.type != WORKFLOW_TASK_TYPE:
            return await self.dispatcher.dispatch(task)

        started = time.perf_counter()
        try:
            definition = WorkflowDefinition.model_validate(task.data)
        except PydanticValidationError as exc:
            error = WorkflowValidationError(f"Invalid workflow definition: {exc.error_count()} errors")
            return AgentResult.from_exception(error, task_id=task.id, timestamp=time.time(), duration=0.0)

        workflow = await self.workflows.execute_workflow(definition)
        error_type = None
        if not workflow.success:
            # no results at all means the definition was rejected up front
            error_type = "AgentExecutionError" if workflow.results else WorkflowValidationError.__name__
        return AgentResult(
            success=workflow.success,
            message=workflow.message,
            error=None if workflow.success else workflow.message,
            error_type=error_type,
            data=workflow.model_dump(),
            duration=time.perf_counter() - started,
            timestamp=time.time(),
            agent_type="coordinator",
            task_id=task.id,
        )

    async def execute_workflow(self, definition: Union[WorkflowDefinition, Dict[str, Any]]) -> WorkflowResult:
        return await self.workflows.execute_workflow(definition)

    # ── Bulk ─────────────────────────────────────────────────────────

    async def execute_bulk(self, config: BulkOperationConfig) -> BulkOperationResult:
        return await self.bulk.execute(config)

    def submit_bulk(self, config: BulkOperationConfig) -> str:
        return self.bulk.submit(config)

    def get_status(self, operation_id: str) -> Optional[BulkOperationStatus]:
        return self.bulk.get_status(operation_id)

    def cancel(self, operation_id: str) -> bool:
        return self.bulk.cancel(operation_id)

    def active_operations(self) -> List[BulkOperationStatus]:
        return self.bulk.active_operations()

    # ── Page context ─────────────────────────────────────────────────

    async def handle_page_change(self, page: PageContext) -> None:
        previous = self.registry.page_type
        await self.registry.update_context(page)
        if previous != page.page_type and self._initialized:
            await self.initialize()

    def available_agents(self) -> List[str]:
        return self.registry.available_agent_types()

    def is_agent_available(self, agent_type: str) -> bool:
        return self.registry.is_available(agent_type)

    def agent_status(self) -> Dict[str, Any]:
        agents = {
            handle.type: {
                "enhanced": handle.enhanced,
                "ready": handle.ready,
                "page_type": handle.page_type.value,
                "capabilities": handle.capabilities,
                "operations": handle.instance.operations(),
            }
            for handle in self.registry.instances()
        }
        return {
            "agents": agents,
            "coordinator": {
                "initialized": self._initialized,
                "page": self.context.page.model_dump(mode="json"),
                "registry": self.registry.status(),
                "active_bulk_operations": len(self.bulk.active_operations()),
            },
        }

    async def destroy(self) -> None:
        await self.bulk.shutdown()
        self.registry.destroy()
        self._initialized = False
        logger.info("Coordinator destroyed")
