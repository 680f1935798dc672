"""Integration tests for conductor.orchestration.coordinator.AgentCoordinator.

Runs the real registry, dispatcher and executors against the fake page driver
or, without a driver, the mock agents.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from conductor.agents.base import AgentKind
from conductor.agents.seo import SEOAgent
from conductor.models.bulk import BulkOperationConfig, BulkState
from conductor.models.types import PageContext, PageType, Task, WorkflowDefinition
from conductor.orchestration.coordinator import AgentCoordinator


@pytest.fixture
def coordinator(item_context, driver, settings):
    return AgentCoordinator(item_context, driver=driver, settings=settings)


@pytest.fixture
def mock_coordinator(item_context, settings):
    return AgentCoordinator(item_context, settings=settings)


async def test_initialize_warms_available_agents(coordinator):
    await coordinator.initialize()
    assert coordinator.initialized
    types = sorted(h.type for h in coordinator.registry.instances())
    assert types == ["catalog", "navigation", "seo"]


async def test_execute_task_uses_enhanced_agent(coordinator, driver):
    result = await coordinator.execute_task(Task(type="seo-update", data={"seo_data": {"title": "Shirt"}}))
    assert result.success
    assert result.agent_type == "seo"
    assert driver.fields["item_name"] == "Shirt"


async def test_execute_task_accepts_dict(mock_coordinator):
    result = await mock_coordinator.execute_task({"type": "catalog-sync", "data": {"items": []}})
    assert result.success
    assert result.agent_type == "mock-catalog"
    assert result.data["synced_items"] == 10


async def test_unknown_task_type(mock_coordinator):
    result = await mock_coordinator.execute_task(Task(type="teleport"))
    assert not result.success
    assert result.error_type == "UnknownTaskType"


async def test_workflow_task_type(mock_coordinator):
    result = await mock_coordinator.execute_task(Task(type="workflow", data={
        "name": "publish",
        "steps": [
            {"agentType": "navigation", "operation": "navigate", "data": {"item_id": "A"}},
            {"agentType": "seo", "operation": "optimize", "dependsOn": ["navigate"]},
        ],
    }))
    assert result.success
    assert result.agent_type == "coordinator"
    assert result.message == "Workflow 'publish' completed: 2/2 steps successful"
    assert len(result.data["results"]) == 2


async def test_invalid_workflow_task(mock_coordinator):
    result = await mock_coordinator.execute_task(Task(type="workflow", data={"steps": "nope"}))
    assert not result.success
    assert result.error_type == "WorkflowValidationError"


async def test_cyclic_workflow_task(mock_coordinator):
    result = await mock_coordinator.execute_task(Task(type="workflow", data={
        "name": "loop",
        "steps": [
            {"agentType": "seo", "operation": "a", "dependsOn": ["a"]},
        ],
    }))
    assert not result.success
    assert result.error_type == "WorkflowValidationError"


async def test_execute_workflow(mock_coordinator):
    result = await mock_coordinator.execute_workflow(WorkflowDefinition(name="wf", steps=[
        {"agent_type": "catalog", "operation": "inventory", "critical": True},
        {"agent_type": "catalog", "operation": "pricing", "depends_on": ["inventory"]},
    ]))
    assert result.success
    assert [r.data["mock_result"] for r in result.results] == [True, True]


async def test_execute_bulk_through_mocks(mock_coordinator):
    progress = []
    result = await mock_coordinator.execute_bulk(BulkOperationConfig(
        type="inventory-bulk-update",
        agent_type="catalog",
        items=[{"id": f"I{i}", "quantity": i} for i in range(7)],
        batch_size=3,
        on_progress=progress.append,
    ))
    assert result.success_count == 7
    assert progress[-1].processed_items == 7


async def test_submit_get_status_cancel(mock_coordinator):
    operation_id = mock_coordinator.submit_bulk(BulkOperationConfig(
        type="seo-bulk-update", agent_type="seo", items=[{"title": "x"}] * 4, batch_size=2,
    ))
    assert mock_coordinator.cancel(operation_id) is True
    await mock_coordinator.bulk.wait(operation_id)
    status = mock_coordinator.get_status(operation_id)
    assert status.status is BulkState.CANCELLED
    assert status.processed_items == 0


async def test_page_change_recreates_agents(coordinator):
    await coordinator.initialize()
    old_seo = await coordinator.registry.resolve("seo")

    await coordinator.handle_page_change(PageContext(
        url="https://squareup.com/dashboard/inventory", page_type=PageType.INVENTORY,
    ))

    assert not old_seo.instance.ready
    types = sorted(h.type for h in coordinator.registry.instances())
    assert types == ["catalog", "navigation"]
    assert not coordinator.is_agent_available("seo")


async def test_agent_status(coordinator):
    await coordinator.registry.resolve("seo")
    report = coordinator.agent_status()
    assert report["agents"]["seo"]["enhanced"] is True
    assert "optimize" in report["agents"]["seo"]["operations"]
    assert report["coordinator"]["registry"]["page_type"] == "item-edit"


async def test_destroy(coordinator):
    await coordinator.initialize()
    await coordinator.destroy()
    assert coordinator.registry.instances() == []
    assert not coordinator.initialized


async def test_events_flow_to_bus(item_context, settings):
    bus = AsyncMock()
    coordinator = AgentCoordinator(item_context, settings=settings, event_bus=bus)
    await coordinator.execute_task(Task(type="search", data={"search_term": "x"}))
    assert bus.publish.await_count >= 3


async def test_bulk_batch_builds_agent_once(item_context, driver, settings):
    constructed = []

    class SlowInitAgent(SEOAgent):
        async def initialize(self):
            await asyncio.sleep(0)
            await super().initialize()

    def factory(context, driver, settings):
        agent = SlowInitAgent(context, driver, settings)
        constructed.append(agent)
        return agent

    coordinator = AgentCoordinator(item_context, driver=driver, settings=settings,
                                   factories={AgentKind.SEO: factory})
    result = await coordinator.execute_bulk(BulkOperationConfig(
        type="seo-bulk-update", agent_type="seo", items=[{"title": f"Item {i}"} for i in range(5)], batch_size=5,
    ))

    assert result.total_items == 5
    assert len(constructed) == 1
    await coordinator.handle_page_change(PageContext(
        url="https://squareup.com/dashboard/inventory", page_type=PageType.INVENTORY,
    ))
    assert not constructed[0].ready
