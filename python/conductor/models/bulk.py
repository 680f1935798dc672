"""Bulk operation configuration, live status and outcome records."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from conductor.models.types import AgentResult

if TYPE_CHECKING:
    from conductor.orchestration.progress import ProgressChannel


class BulkOperationType(str, Enum):
    SEO_BULK_UPDATE = "seo-bulk-update"
    CATALOG_BULK_SYNC = "catalog-bulk-sync"
    INVENTORY_BULK_UPDATE = "inventory-bulk-update"
    PRICING_BULK_UPDATE = "pricing-bulk-update"


class BulkState(str, Enum):
    """Lifecycle of a bulk operation."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (BulkState.COMPLETED, BulkState.FAILED, BulkState.CANCELLED)


@dataclass
class BulkOperationConfig:
    """What to run: *items* routed through one agent type in batches.

    ``batch_size`` / ``delay_between_batches`` left as ``None`` fall back to
    the configured defaults.  ``on_progress`` may be sync or async and
    always receives a snapshot, never the live status.
    """

    type: str
    agent_type: str
    items: List[Any]
    batch_size: Optional[int] = None
    delay_between_batches: Optional[float] = None  # seconds
    on_progress: Optional[Callable[["BulkOperationStatus"], Any]] = field(default=None, repr=False)
    progress: Optional["ProgressChannel"] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.batch_size is not None and self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.delay_between_batches is not None and self.delay_between_batches < 0:
            raise ValueError("delay_between_batches must be >= 0")


@dataclass
class BulkOperationStatus:
    """Live progress record, owned and mutated only by its BulkOperation."""

    id: str
    type: str
    total_items: int
    processed_items: int = 0
    success_count: int = 0
    failure_count: int = 0
    status: BulkState = BulkState.PENDING
    start_time: float = 0.0
    end_time: Optional[float] = None

    def snapshot(self) -> "BulkOperationStatus":
        """Detached copy safe to hand to callers."""
        return dataclasses.replace(self)

    @property
    def percent(self) -> float:
        if not self.total_items:
            return 100.0
        return round(100.0 * self.processed_items / self.total_items, 1)

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data["status"] = self.status.value
        data["percent"] = self.percent
        return data


@dataclass
class BulkOperationResult:
    success: bool
    operation_id: str
    total_items: int
    success_count: int
    failure_count: int
    results: List[AgentResult] = field(default_factory=list)
    duration: float = 0.0  # seconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "operation_id": self.operation_id,
            "total_items": self.total_items,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "results": [r.model_dump() for r in self.results],
            "duration": self.duration,
        }
