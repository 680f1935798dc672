"""
Bulk execution: many items through one agent operation, in batches.

Items are split into contiguous batches.  All items of a batch are dispatched
concurrently and joined with settle-all semantics; the next batch is launched
only after every item of the previous one has settled.  Cancellation is
cooperative and sampled before each batch.

Per-item failures are recorded as failed results.  Only faults in the
execution loop itself (e.g. a raising progress callback) mark the operation
``failed`` and propagate.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
import uuid
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from conductor.config.settings import Settings, get_settings
from conductor.exceptions import AgentExecutionError, UnknownOperation
from conductor.interfaces.event_bus import EventType, IEventBus
from conductor.models.bulk import (
    BulkOperationConfig,
    BulkOperationResult,
    BulkOperationStatus,
    BulkState,
)
from conductor.models.types import AgentResult
from conductor.orchestration.dispatcher import Dispatcher

logger = logging.getLogger(__name__)


# ── Item routing ─────────────────────────────────────────────────────


def _seo_payload(item: Any) -> Dict[str, Any]:
    return {"seo_data": item}


def _sync_payload(item: Any) -> Dict[str, Any]:
    return {"items": [item]}


def _inventory_payload(item: Dict[str, Any]) -> Dict[str, Any]:
    return {"quantities": {item["id"]: item["quantity"]}}


def _pricing_payload(item: Dict[str, Any]) -> Dict[str, Any]:
    return {"prices": {item["id"]: item["price"]}}


# bulk type -> (operation, item -> payload)
BULK_ROUTES: Dict[str, Tuple[str, Callable[[Any], Dict[str, Any]]]] = {
    "seo-bulk-update": ("update", _seo_payload),
    "catalog-bulk-sync": ("sync", _sync_payload),
    "inventory-bulk-update": ("inventory", _inventory_payload),
    "pricing-bulk-update": ("pricing", _pricing_payload),
}


def partition(items: Sequence[Any], batch_size: int) -> List[List[Any]]:
    """Split *items* into ``ceil(n / batch_size)`` contiguous batches."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return [list(items[i:i + batch_size]) for i in range(0, len(items), batch_size)]


def bulk_type_name(bulk_type: Any) -> str:
    return bulk_type.value if isinstance(bulk_type, Enum) else str(bulk_type)


def new_operation_id() -> str:
    return f"bulk-op-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


# ── Single operation ─────────────────────────────────────────────────


class BulkOperation:
    """One bulk run.  Owns and is the only writer of its status record."""

    def __init__(
        self,
        operation_id: str,
        config: BulkOperationConfig,
        dispatcher: Dispatcher,
        settings: Optional[Settings] = None,
        event_bus: Optional[IEventBus] = None,
    ) -> None:
        self.id = operation_id
        self.config = config
        self.dispatcher = dispatcher
        self.settings = settings or get_settings()
        self.event_bus = event_bus
        self.status = BulkOperationStatus(
            id=operation_id,
            type=bulk_type_name(config.type),
            total_items=len(config.items),
        )
        self.results: List[AgentResult] = []
        self._cancelled = False

    @property
    def batch_size(self) -> int:
        return self.config.batch_size or self.settings.default_batch_size

    @property
    def delay(self) -> float:
        if self.config.delay_between_batches is None:
            return self.settings.default_delay_between_batches
        return self.config.delay_between_batches

    def get_status(self) -> BulkOperationStatus:
        return self.status.snapshot()

    def cancel(self) -> bool:
        if self.status.status.is_terminal:
            return False
        self._cancelled = True
        logger.info("Cancellation requested for bulk operation %s", self.id)
        return True

    async def execute(self) -> BulkOperationResult:
        status = self.status
        status.status = BulkState.RUNNING
        status.start_time = time.time()
        batches = partition(self.config.items, self.batch_size)
        logger.info(
            "Starting bulk operation %s: %s, %d items in %d batches",
            self.id, status.type, status.total_items, len(batches),
        )

        try:
            for index, batch in enumerate(batches):
                if self._cancelled:
                    status.status = BulkState.CANCELLED
                    logger.info("Bulk operation %s cancelled before batch %d", self.id, index + 1)
                    break
                await self._process_batch(batch)
                if index < len(batches) - 1 and self.delay > 0:
                    await asyncio.sleep(self.delay)

            status.status = BulkState.CANCELLED if self._cancelled else BulkState.COMPLETED
            status.end_time = time.time()
        except asyncio.CancelledError:
            status.status = BulkState.CANCELLED
            status.end_time = time.time()
            self._close_channel()
            raise
        except Exception:
            status.status = BulkState.FAILED
            status.end_time = time.time()
            logger.exception("Bulk operation %s failed", self.id)
            self._close_channel()
            raise

        result = BulkOperationResult(
            success=status.success_count > 0,
            operation_id=self.id,
            total_items=status.total_items,
            success_count=status.success_count,
            failure_count=status.failure_count,
            results=list(self.results),
            duration=status.end_time - status.start_time,
        )
        logger.info(
            "Bulk operation %s %s: %d succeeded, %d failed",
            self.id, status.status.value, status.success_count, status.failure_count,
        )
        if self.config.progress is not None:
            self.config.progress.publish(status.snapshot())
        self._close_channel()
        await self._emit(EventType.BULK_COMPLETED, {
            "operation_id": self.id,
            "status": status.to_dict(),
            "success": result.success,
        })
        return result

    async def _process_batch(self, batch: List[Any]) -> None:
        settled = await asyncio.gather(
            *(self._process_item(item) for item in batch),
            return_exceptions=True,
        )
        for item, outcome in zip(batch, settled):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                result = AgentResult.from_exception(outcome, data={"item": item})
            elif not outcome.success:
                result = AgentResult.failure(
                    outcome.error or "Operation failed",
                    error_type=outcome.error_type or AgentExecutionError.__name__,
                    data={"item": item},
                    agent_type=outcome.agent_type,
                    duration=outcome.duration,
                    timestamp=outcome.timestamp,
                )
            else:
                result = outcome

            self.status.processed_items += 1
            if result.success:
                self.status.success_count += 1
            else:
                self.status.failure_count += 1
            self.results.append(result)
            await self._notify()

    async def _process_item(self, item: Any) -> AgentResult:
        route = BULK_ROUTES.get(self.status.type)
        if route is None:
            raise UnknownOperation("bulk", self.status.type)
        operation, build_payload = route
        return await self.dispatcher.invoke(self.config.agent_type, operation, build_payload(item))

    async def _notify(self) -> None:
        snapshot = self.status.snapshot()
        callback = self.config.on_progress
        if callback is not None:
            outcome = callback(snapshot)
            if inspect.isawaitable(outcome):
                await outcome
        if self.config.progress is not None:
            self.config.progress.publish(self.status.snapshot())
        await self._emit(EventType.BULK_PROGRESS, {
            "operation_id": self.id,
            "status": snapshot.to_dict(),
        })

    def _close_channel(self) -> None:
        if self.config.progress is not None:
            self.config.progress.close()

    async def _emit(self, event_type: EventType, data: Dict[str, Any]) -> None:
        if self.event_bus is not None:
            await self.event_bus.publish(event_type, data, source="bulk")


# ── Manager ──────────────────────────────────────────────────────────


class BatchExecutor:
    """Creates, tracks and cancels bulk operations.

    Operation records stay queryable after they finish until ``cleanup()``.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        settings: Optional[Settings] = None,
        event_bus: Optional[IEventBus] = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.settings = settings or get_settings()
        self.event_bus = event_bus
        self._operations: Dict[str, BulkOperation] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    def _register(self, config: BulkOperationConfig) -> BulkOperation:
        operation = BulkOperation(new_operation_id(), config, self.dispatcher, self.settings, self.event_bus)
        self._operations[operation.id] = operation
        return operation

    async def execute(self, config: BulkOperationConfig) -> BulkOperationResult:
        """Run *config* to completion in the caller's task."""
        return await self._register(config).execute()

    def submit(self, config: BulkOperationConfig) -> str:
        """Start *config* in a background task and return its operation id."""
        operation = self._register(config)
        task = asyncio.create_task(operation.execute(), name=operation.id)
        task.add_done_callback(self._on_done)
        self._tasks[operation.id] = task
        return operation.id

    @staticmethod
    def _on_done(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background bulk operation %s failed: %s", task.get_name(), exc)

    async def wait(self, operation_id: str) -> Optional[BulkOperationResult]:
        """Await a submitted operation; re-raises its failure."""
        task = self._tasks.get(operation_id)
        if task is None:
            return None
        return await task

    def get_status(self, operation_id: str) -> Optional[BulkOperationStatus]:
        operation = self._operations.get(operation_id)
        return operation.get_status() if operation else None

    def cancel(self, operation_id: str) -> bool:
        operation = self._operations.get(operation_id)
        if operation is None:
            return False
        return operation.cancel()

    def active_operations(self) -> List[BulkOperationStatus]:
        return [
            op.get_status() for op in self._operations.values()
            if not op.status.status.is_terminal
        ]

    def all_operations(self) -> List[BulkOperationStatus]:
        return [op.get_status() for op in self._operations.values()]

    def cleanup(self) -> int:
        """Drop terminal operation records; returns how many were removed."""
        finished = [oid for oid, op in self._operations.items() if op.status.status.is_terminal]
        for oid in finished:
            del self._operations[oid]
            self._tasks.pop(oid, None)
        if finished:
            logger.debug("Cleaned up %d bulk operations", len(finished))
        return len(finished)

    async def shutdown(self) -> None:
        """Request cancellation of everything running and wait for it."""
        for operation in self._operations.values():
            operation.cancel()
        pending = [t for t in self._tasks.values() if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
