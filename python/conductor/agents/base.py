"""Base class for every agent variant.

An agent is a closed capability provider: it publishes a fixed table of
operation names (``OPERATIONS``) and exposes a single polymorphic entry point,
``operation(name, data)``.  Callers never probe for methods.

Exceptions raised by an operation propagate to the dispatcher, which owns
retry and normalisation; expected failures (missing input, validation
problems) are returned as unsuccessful ``AgentResult`` objects instead.
"""

from __future__ import annotations

import logging
import time
from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, ClassVar, Dict, List, Optional

from conductor.exceptions import ConfigurationError, UnknownOperation
from conductor.interfaces.page_driver import PageDriver
from conductor.models.types import AgentContext, AgentResult

logger = logging.getLogger(__name__)


class AgentKind(str, Enum):
    """The closed set of agent capabilities."""

    SEO = "seo"
    NAVIGATION = "navigation"
    CATALOG = "catalog"


MOCK_PREFIX = "mock-"


def parse_agent_type(agent_type: str) -> tuple[AgentKind, bool]:
    """Split ``"seo"`` / ``"mock-seo"`` into (kind, is_mock).

    Raises ValueError for anything outside the closed set.
    """
    is_mock = agent_type.startswith(MOCK_PREFIX)
    name = agent_type[len(MOCK_PREFIX):] if is_mock else agent_type
    return AgentKind(name), is_mock


@dataclass
class AgentConfig:
    name: str
    timeout: float = 10.0  # seconds, advisory
    retries: int = 2


OperationHandler = Callable[[Dict[str, Any]], Awaitable[AgentResult]]


class DOMAgent(ABC):
    """Common behaviour for enhanced and mock agents."""

    kind: ClassVar[AgentKind]
    enhanced: ClassVar[bool] = True
    # operation name -> method name
    OPERATIONS: ClassVar[Dict[str, str]] = {}
    CAPABILITIES: ClassVar[List[str]] = []
    requires_driver: ClassVar[bool] = True

    def __init__(
        self,
        context: AgentContext,
        config: AgentConfig,
        driver: Optional[PageDriver] = None,
    ) -> None:
        if self.requires_driver and driver is None:
            raise ConfigurationError(f"{config.name} requires a page driver")
        self.context = context
        self.config = config
        self.driver = driver
        self._initialized = False
        self._destroyed = False

    # ── Identity ─────────────────────────────────────────────────────

    @property
    def agent_type(self) -> str:
        prefix = "" if self.enhanced else MOCK_PREFIX
        return f"{prefix}{self.kind.value}"

    @property
    def ready(self) -> bool:
        return not self._destroyed

    def operations(self) -> List[str]:
        return sorted(self.OPERATIONS)

    def supports(self, operation: str) -> bool:
        return operation in self.OPERATIONS

    def get_capabilities(self) -> List[str]:
        return list(self.CAPABILITIES)

    # ── Lifecycle ────────────────────────────────────────────────────

    async def initialize(self) -> None:
        self._initialized = True

    def update_context(self, context: AgentContext) -> None:
        self.context = context

    def destroy(self) -> None:
        self._destroyed = True
        self._initialized = False
        logger.debug("[%s] destroyed", self.config.name)

    # ── Execution ────────────────────────────────────────────────────

    async def operation(
        self,
        name: str,
        data: Optional[Dict[str, Any]] = None,
        *,
        task_id: Optional[str] = None,
    ) -> AgentResult:
        """Run operation *name* and stamp timing/identity on the result."""
        if not self.supports(name):
            raise UnknownOperation(self.agent_type, name)
        if not self._initialized:
            await self.initialize()

        handler: OperationHandler = getattr(self, self.OPERATIONS[name])
        started = time.perf_counter()
        result = await handler(dict(data or {}))
        return result.model_copy(update={
            "duration": result.duration if result.duration is not None else time.perf_counter() - started,
            "timestamp": time.time(),
            "agent_type": self.agent_type,
            "task_id": task_id,
        })

    def log(self, message: str, *args: Any) -> None:
        logger.info("[%s] " + message, self.config.name, *args)
