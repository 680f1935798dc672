"""Dispatch, workflow and bulk execution on top of the agent registry."""

from conductor.orchestration.batch_executor import BULK_ROUTES, BatchExecutor, BulkOperation, partition
from conductor.orchestration.coordinator import AgentCoordinator
from conductor.orchestration.dispatcher import TASK_ROUTES, Dispatcher, route
from conductor.orchestration.progress import ProgressChannel
from conductor.orchestration.task_graph import StepGraph, StepNode, TaskGraphExecutor

__all__ = [
    "AgentCoordinator",
    "BULK_ROUTES",
    "BatchExecutor",
    "BulkOperation",
    "Dispatcher",
    "ProgressChannel",
    "StepGraph",
    "StepNode",
    "TASK_ROUTES",
    "TaskGraphExecutor",
    "partition",
    "route",
]
