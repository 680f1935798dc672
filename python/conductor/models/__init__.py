"""Shared data model: tasks, workflows, results and bulk status records."""

from conductor.models.bulk import (
    BulkOperationConfig,
    BulkOperationResult,
    BulkOperationStatus,
    BulkOperationType,
    BulkState,
)
from conductor.models.types import (
    AgentContext,
    AgentResult,
    AgentSettings,
    PageContext,
    PageType,
    Task,
    TaskPriority,
    WorkflowDefinition,
    WorkflowResult,
    WorkflowStep,
)

__all__ = [
    "AgentContext",
    "AgentResult",
    "AgentSettings",
    "BulkOperationConfig",
    "BulkOperationResult",
    "BulkOperationStatus",
    "BulkOperationType",
    "BulkState",
    "PageContext",
    "PageType",
    "Task",
    "TaskPriority",
    "WorkflowDefinition",
    "WorkflowResult",
    "WorkflowStep",
]
