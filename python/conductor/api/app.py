"""
Conductor: FastAPI application entry point.

- /health: service health status
- /api/agents: agent availability and instance status
- /api/context: page context updates
- /api/tasks, /api/workflows: single tasks and workflows
- /api/bulk: background bulk operations, status, cancel, SSE progress
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sse_starlette.sse import EventSourceResponse

from conductor.config.settings import get_settings
from conductor.di_container import get_container, shutdown_container
from conductor.enhanced_logging import configure_logging
from conductor.exceptions import ConductorException
from conductor.interfaces import EventType
from conductor.models.bulk import BulkOperationConfig, BulkOperationType
from conductor.models.types import PageContext, PageType, Task, WorkflowDefinition

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class ContextRequest(BaseModel):
    url: str
    page_type: PageType = PageType.UNKNOWN
    item_id: Optional[str] = None


class BulkRequest(BaseModel):
    type: BulkOperationType
    agent_type: str
    items: List[Any] = Field(default_factory=list)
    batch_size: Optional[int] = Field(default=None, ge=1, le=500)
    delay_between_batches: Optional[float] = Field(default=None, ge=0.0)


# ---------------------------------------------------------------------------
# Application lifecycle
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(application: FastAPI):
    configure_logging()
    container = get_container()
    logger.info("Conductor starting up (%s)", container.settings.environment)
    yield
    await container.shutdown()
    shutdown_container()
    logger.info("Conductor shutting down")


app = FastAPI(
    title="Conductor",
    version=get_settings().app_version,
    description="Agent orchestration and bulk execution for the seller dashboard",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ConductorException)
async def conductor_exception_handler(request: Request, exc: ConductorException):
    logger.warning("%s on %s: %s", exc.error_type, request.url.path, exc)
    return JSONResponse(status_code=exc.http_status, content={"error": exc.to_dict()})


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health")
async def health():
    container = get_container()
    coordinator = container.coordinator
    return {
        "status": "healthy",
        "version": container.settings.app_version,
        "environment": container.settings.environment,
        "page_type": coordinator.registry.page_type.value,
        "driver_attached": container.status()["driver"],
    }


@app.get("/api/agents")
async def list_agents():
    coordinator = get_container().coordinator
    return {
        "available": coordinator.available_agents(),
        **coordinator.agent_status(),
    }


@app.put("/api/context")
async def update_context(req: ContextRequest):
    coordinator = get_container().coordinator
    await coordinator.handle_page_change(PageContext(url=req.url, page_type=req.page_type, item_id=req.item_id))
    return {
        "page_type": coordinator.registry.page_type.value,
        "available": coordinator.available_agents(),
    }


@app.post("/api/tasks")
async def execute_task(task: Task):
    result = await get_container().coordinator.execute_task(task)
    return result.model_dump()


@app.post("/api/workflows")
async def execute_workflow(definition: WorkflowDefinition):
    result = await get_container().coordinator.execute_workflow(definition)
    return result.model_dump()


@app.post("/api/bulk", status_code=202)
async def submit_bulk(req: BulkRequest):
    config = BulkOperationConfig(
        type=req.type.value,
        agent_type=req.agent_type,
        items=req.items,
        batch_size=req.batch_size,
        delay_between_batches=req.delay_between_batches,
    )
    operation_id = get_container().coordinator.submit_bulk(config)
    return {"operation_id": operation_id}


def _status_or_404(operation_id: str) -> Dict[str, Any]:
    status = get_container().coordinator.get_status(operation_id)
    if status is None:
        raise HTTPException(status_code=404, detail=f"Unknown bulk operation: {operation_id}")
    return status.to_dict()


@app.get("/api/bulk/{operation_id}")
async def bulk_status(operation_id: str):
    return _status_or_404(operation_id)


@app.post("/api/bulk/{operation_id}/cancel")
async def cancel_bulk(operation_id: str):
    _status_or_404(operation_id)
    cancelled = get_container().coordinator.cancel(operation_id)
    return {"operation_id": operation_id, "cancelled": cancelled}


@app.get("/api/bulk/{operation_id}/progress")
async def stream_bulk_progress(operation_id: str):
    """Stream bulk status snapshots as Server-Sent Events."""
    container = get_container()
    queue: asyncio.Queue = asyncio.Queue()

    async def on_event(data):
        await queue.put(data["status"])

    match = {"operation_id": operation_id}
    progress_sub = await container.event_bus.subscribe(EventType.BULK_PROGRESS, on_event, match=match)
    completed_sub = await container.event_bus.subscribe(EventType.BULK_COMPLETED, on_event, match=match)

    async def unsubscribe():
        await container.event_bus.unsubscribe(progress_sub)
        await container.event_bus.unsubscribe(completed_sub)

    try:
        current = _status_or_404(operation_id)
    except HTTPException:
        await unsubscribe()
        raise

    ping = container.settings.sse_ping_interval

    async def event_generator():
        try:
            yield {"event": "progress", "data": json.dumps(current)}
            status = current
            while status["status"] not in ("completed", "failed", "cancelled"):
                try:
                    status = await asyncio.wait_for(queue.get(), timeout=ping)
                except asyncio.TimeoutError:
                    latest = container.coordinator.get_status(operation_id)
                    if latest is None:
                        break
                    if latest.status.is_terminal:
                        status = latest.to_dict()
                    else:
                        yield {"event": "ping", "data": ""}
                        continue
                yield {"event": "progress", "data": json.dumps(status)}
            yield {"event": status["status"], "data": json.dumps(status)}
        finally:
            await unsubscribe()

    return EventSourceResponse(event_generator())
