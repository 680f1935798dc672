"""Interface for event bus and pub/sub messaging.

Decouples the executors from whoever watches them (HTTP progress streams,
metrics, logs) by publishing lifecycle events.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol


class EventType(Enum):
    """Standard event types in the system."""
    # Agent lifecycle
    AGENT_CREATED = "agent_created"
    AGENT_DESTROYED = "agent_destroyed"
    CONTEXT_CHANGED = "context_changed"
    # Task lifecycle
    TASK_DISPATCHED = "task_dispatched"
    TASK_COMPLETED = "task_completed"
    TASK_FAILED = "task_failed"
    # Workflow
    WORKFLOW_STARTED = "workflow_started"
    WORKFLOW_COMPLETED = "workflow_completed"
    # Bulk
    BULK_PROGRESS = "bulk_progress"
    BULK_COMPLETED = "bulk_completed"
    # Errors
    ERROR_OCCURRED = "error_occurred"


class IEventBus(Protocol):
    """Interface for publish-subscribe event messaging."""

    async def publish(
        self,
        event_type: EventType,
        data: Dict[str, Any],
        source: Optional[str] = None
    ) -> None:
        """Publish an event to the bus.

        Args:
            event_type: Type of event
            data: Event data/payload
            source: Optional source identifier
        """
        ...

    async def subscribe(
        self,
        event_type: EventType,
        handler: Callable[[Dict[str, Any]], Awaitable[None]],
        *,
        match: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Subscribe to events of a type.

        Args:
            event_type: Type of event
            handler: Called with each delivered payload
            match: Only deliver payloads containing these key/value pairs

        Returns:
            Subscription ID for later unsubscribe
        """
        ...

    async def unsubscribe(self, subscription_id: str) -> None:
        """Remove a subscription."""
        ...
