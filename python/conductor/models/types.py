"""Wire-level data types shared by the registry, dispatcher and executors.

All models accept both snake_case and camelCase keys so payloads produced by
the browser extension (``dependsOn``, ``agentType``) validate unchanged.
"""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


# ── Page context ─────────────────────────────────────────────────────


class PageType(str, Enum):
    """Dashboard page kinds, as reported by the page-detection collaborator."""

    DASHBOARD = "dashboard"
    ITEMS_LIBRARY = "items-library"
    ITEM_DETAIL = "item-detail"
    ITEM_EDIT = "item-edit"
    INVENTORY = "inventory"
    SEO_SETTINGS = "seo-settings"
    UNKNOWN = "unknown"


class PageContext(_Model):
    """Descriptor of the page the agents operate on.  Read, never computed."""

    url: str
    page_type: PageType = PageType.UNKNOWN
    item_id: Optional[str] = None
    timestamp: float = Field(default_factory=time.time)


class AgentSettings(_Model):
    test_mode: bool = True
    debug_mode: bool = False


class AgentContext(_Model):
    """Everything an agent instance is constructed with."""

    page: PageContext
    user_id: Optional[str] = None
    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    settings: AgentSettings = Field(default_factory=AgentSettings)


# ── Tasks & workflows ────────────────────────────────────────────────


class TaskPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


class Task(_Model):
    """A single unit of work.

    ``type`` is the externally visible task kind; the dispatcher resolves it
    to an (agent type, operation) pair.  It is deliberately a free string so
    that unknown kinds reach the dispatcher and fail as ``UnknownTaskType``.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    type: str
    agent_type: Optional[str] = None
    operation: Optional[str] = None
    data: Any = Field(default_factory=dict)
    priority: TaskPriority = TaskPriority.NORMAL
    timeout: Optional[float] = None
    retries: Optional[int] = Field(default=None, ge=0)
    depends_on: Optional[List[str]] = None
    created_at: float = Field(default_factory=time.time)


class WorkflowStep(_Model):
    """One step of a workflow, bound to an agent type and operation."""

    id: Optional[str] = None
    agent_type: str
    operation: str
    data: Any = Field(default_factory=dict)
    depends_on: Optional[List[str]] = None  # operation names of earlier steps
    critical: bool = False
    timeout: Optional[float] = None
    retries: Optional[int] = Field(default=None, ge=0)


class WorkflowDefinition(_Model):
    name: str
    description: Optional[str] = None
    steps: List[WorkflowStep] = Field(default_factory=list)
    rollback_steps: Optional[List[WorkflowStep]] = None
    timeout: Optional[float] = None


# ── Results ──────────────────────────────────────────────────────────


class AgentResult(_Model):
    """Canonical outcome of every task, workflow step and bulk item."""

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    duration: Optional[float] = None  # seconds
    timestamp: Optional[float] = None
    agent_type: Optional[str] = None
    task_id: Optional[str] = None

    @classmethod
    def failure(
        cls,
        error: str,
        *,
        error_type: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        **extra: Any,
    ) -> "AgentResult":
        return cls(success=False, error=error, error_type=error_type, data=data, **extra)

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        *,
        data: Optional[Dict[str, Any]] = None,
        **extra: Any,
    ) -> "AgentResult":
        from conductor.exceptions import error_message_of, error_type_of

        return cls.failure(
            error_message_of(exc),
            error_type=error_type_of(exc),
            data=data,
            **extra,
        )


class WorkflowResult(_Model):
    success: bool
    results: List[AgentResult] = Field(default_factory=list)
    message: str = ""
    rollback_results: List[AgentResult] = Field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)
