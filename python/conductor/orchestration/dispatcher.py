"""
Task dispatcher: routes a task to (agent type, operation) and runs it.

Routing failures are answered without touching any agent.  Agent exceptions
are retried with exponential backoff; whatever still fails is converted into
a failed ``AgentResult`` so callers only ever see results.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Tuple

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from conductor.agents.base import DOMAgent, parse_agent_type
from conductor.agents.registry import AgentRegistry
from conductor.config.settings import Settings, get_settings
from conductor.exceptions import (
    AgentExecutionError,
    AgentUnavailableError,
    ConductorException,
    RoutingError,
    UnknownAgentType,
    UnknownOperation,
    UnknownTaskType,
    error_message_of,
)
from conductor.interfaces.event_bus import EventType, IEventBus
from conductor.models.types import AgentResult, Task

logger = logging.getLogger(__name__)


# task type -> (agent type, operation)
TASK_ROUTES: Dict[str, Tuple[str, str]] = {
    "seo-update": ("seo", "optimize"),
    "seo-optimize": ("seo", "optimize"),
    "seo-validate": ("seo", "validate"),
    "seo-extract": ("seo", "extract"),
    "seo-bulk-update": ("seo", "bulk-update"),
    "navigate": ("navigation", "navigate"),
    "navigation": ("navigation", "navigate"),
    "search": ("navigation", "search"),
    "validate-page": ("navigation", "validate"),
    "extract-results": ("navigation", "extract-results"),
    "catalog-sync": ("catalog", "sync"),
    "inventory-update": ("catalog", "inventory"),
    "pricing-update": ("catalog", "pricing"),
    "extract-catalog": ("catalog", "extract"),
}


def route(task_type: str) -> Tuple[str, str]:
    """Return (agent type, operation) for *task_type* or raise UnknownTaskType."""
    try:
        return TASK_ROUTES[task_type]
    except KeyError:
        raise UnknownTaskType(task_type) from None


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, ConductorException):
        return exc.is_recoverable
    return isinstance(exc, Exception)


def _as_payload(data: Any) -> Dict[str, Any]:
    if data is None:
        return {}
    if isinstance(data, dict):
        return data
    return {"data": data}


class Dispatcher:
    """Single entry point for running one agent operation."""

    def __init__(
        self,
        registry: AgentRegistry,
        settings: Optional[Settings] = None,
        event_bus: Optional[IEventBus] = None,
    ) -> None:
        self.registry = registry
        self.settings = settings or get_settings()
        self.event_bus = event_bus

    async def dispatch(self, task: Task) -> AgentResult:
        """Route *task* by its type and run it."""
        try:
            agent_type, operation = route(task.type)
        except UnknownTaskType as exc:
            logger.warning("%s", exc)
            return AgentResult.from_exception(exc, task_id=task.id, timestamp=time.time(), duration=0.0)
        return await self.invoke(
            agent_type,
            operation,
            task.data,
            task_id=task.id,
            retries=task.retries,
        )

    async def _resolve(self, agent_type: str, operation: str) -> Tuple[str, DOMAgent]:
        try:
            parse_agent_type(agent_type)
        except ValueError:
            raise UnknownAgentType(agent_type) from None
        handle = await self.registry.resolve(agent_type)
        if handle is None:
            raise AgentUnavailableError(agent_type)
        if not handle.instance.supports(operation):
            raise UnknownOperation(agent_type, operation)
        return handle.type, handle.instance

    async def _run(self, agent: DOMAgent, operation: str, payload: Dict[str, Any],
                   task_id: Optional[str], retries: int) -> AgentResult:
        result: Optional[AgentResult] = None
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(retries + 1),
            wait=wait_exponential(
                multiplier=self.settings.retry_backoff_min,
                min=self.settings.retry_backoff_min,
                max=self.settings.retry_backoff_max,
            ),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                result = await agent.operation(operation, payload, task_id=task_id)
        return result

    async def invoke(
        self,
        agent_type: str,
        operation: str,
        data: Any = None,
        *,
        task_id: Optional[str] = None,
        retries: Optional[int] = None,
    ) -> AgentResult:
        """Run *operation* on the agent of *agent_type*; never raises for agent faults."""
        started = time.perf_counter()
        stamp = {"task_id": task_id}

        try:
            resolved_type, agent = await self._resolve(agent_type, operation)
        except RoutingError as exc:
            logger.warning("Routing failed for %s/%s: %s", agent_type, operation, exc)
            result = AgentResult.from_exception(exc, agent_type=agent_type, **stamp)
            return self._stamp(result, started, agent_type, task_id)

        await self._emit(EventType.TASK_DISPATCHED, {
            "agent_type": resolved_type,
            "operation": operation,
            "task_id": task_id,
        })

        attempts = self.settings.default_task_retries if retries is None else retries
        try:
            result = await self._run(agent, operation, _as_payload(data), task_id, attempts)
        except Exception as exc:
            logger.warning("%s/%s failed after %d attempt(s): %s",
                           resolved_type, operation, attempts + 1, exc)
            if isinstance(exc, ConductorException):
                result = AgentResult.from_exception(exc)
            else:
                result = AgentResult.failure(error_message_of(exc), error_type=AgentExecutionError.__name__)

        if not result.success and result.error_type is None:
            result = result.model_copy(update={"error_type": AgentExecutionError.__name__})

        result = self._stamp(result, started, resolved_type, task_id)
        await self._emit(
            EventType.TASK_COMPLETED if result.success else EventType.TASK_FAILED,
            {
                "agent_type": resolved_type,
                "operation": operation,
                "task_id": task_id,
                "success": result.success,
                "error": result.error,
            },
        )
        return result

    @staticmethod
    def _stamp(result: AgentResult, started: float, agent_type: str, task_id: Optional[str]) -> AgentResult:
        return result.model_copy(update={
            "duration": result.duration if result.duration is not None else time.perf_counter() - started,
            "timestamp": result.timestamp or time.time(),
            "agent_type": result.agent_type or agent_type,
            "task_id": task_id,
        })

    async def _emit(self, event_type: EventType, data: Dict[str, Any]) -> None:
        if self.event_bus is not None:
            await self.event_bus.publish(event_type, data, source="dispatcher")
