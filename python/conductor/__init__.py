"""Conductor: agent orchestration and bulk execution for the seller dashboard."""

from conductor.models import (
    AgentContext,
    AgentResult,
    BulkOperationConfig,
    BulkOperationResult,
    BulkOperationStatus,
    PageContext,
    PageType,
    Task,
    WorkflowDefinition,
    WorkflowResult,
    WorkflowStep,
)
from conductor.orchestration import AgentCoordinator, ProgressChannel

__version__ = "0.3.0"

__all__ = [
    "AgentContext",
    "AgentCoordinator",
    "AgentResult",
    "BulkOperationConfig",
    "BulkOperationResult",
    "BulkOperationStatus",
    "PageContext",
    "PageType",
    "ProgressChannel",
    "Task",
    "WorkflowDefinition",
    "WorkflowResult",
    "WorkflowStep",
]
