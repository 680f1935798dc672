"""Lightweight in-memory event bus satisfying the IEventBus protocol.

Used for intra-process pub/sub between the registry, the executors and the
HTTP layer.  Subscriptions may narrow delivery to payloads carrying given
values, e.g. ``match={"operation_id": op_id}`` for one bulk operation.
"""

import inspect
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from conductor.interfaces.event_bus import EventType

logger = logging.getLogger(__name__)


@dataclass
class Subscription:
    handler: Callable[[Dict[str, Any]], Any]
    match: Dict[str, Any] = field(default_factory=dict)

    def accepts(self, data: Dict[str, Any]) -> bool:
        return all(key in data and data[key] == value for key, value in self.match.items())


class InMemoryEventBus:
    """Simple async event bus for single-process use.

    Satisfies ``conductor.interfaces.IEventBus`` via structural subtyping.
    Handler failures are logged and never reach the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[EventType, Dict[str, Subscription]] = {}

    async def publish(
        self,
        event_type: EventType,
        data: Dict[str, Any],
        source: Optional[str] = None,
    ) -> None:
        if source:
            data = {**data, "_source": source}
        subscriptions = list(self._subscribers.get(event_type, {}).values())
        for sub in subscriptions:
            if not sub.accepts(data):
                continue
            try:
                if inspect.iscoroutinefunction(sub.handler):
                    await sub.handler(data)
                else:
                    sub.handler(data)
            except Exception:
                logger.exception("Event handler failed for %s", event_type.value)

    async def subscribe(
        self,
        event_type: EventType,
        handler: Callable[[Dict[str, Any]], Awaitable[None]],
        *,
        match: Optional[Dict[str, Any]] = None,
    ) -> str:
        if event_type not in self._subscribers:
            self._subscribers[event_type] = {}
        sub_id = uuid.uuid4().hex[:12]
        self._subscribers[event_type][sub_id] = Subscription(handler, dict(match or {}))
        return sub_id

    async def unsubscribe(self, subscription_id: str) -> None:
        for subscriptions in self._subscribers.values():
            subscriptions.pop(subscription_id, None)

    def subscriber_count(self, event_type: EventType) -> int:
        return len(self._subscribers.get(event_type, {}))
