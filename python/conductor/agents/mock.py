"""
Mock agents.

Used as the fallback when an enhanced agent cannot be constructed (no page
driver, page type not allowed) and directly via ``mock-<kind>`` agent types.
They need no driver and always return canned successful results tagged with
``mock_result``.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Type

from conductor.agents.base import AgentConfig, AgentKind, DOMAgent
from conductor.models.types import AgentContext, AgentResult


class MockAgent(DOMAgent):
    enhanced = False
    requires_driver = False

    def __init__(self, context: AgentContext, latency: float = 0.0) -> None:
        super().__init__(context, AgentConfig(name=f"Mock{self.kind.value.title()}Agent"))
        self.latency = latency

    async def _respond(self, message: str, **data: Any) -> AgentResult:
        if self.latency:
            await asyncio.sleep(self.latency)
        return AgentResult(success=True, message=message, data={"mock_result": True, **data})


class MockSEOAgent(MockAgent):
    kind = AgentKind.SEO
    OPERATIONS = {
        "optimize": "optimize",
        "update": "optimize",
        "validate": "validate",
        "extract": "extract",
        "bulk-update": "bulk_update",
    }
    CAPABILITIES = ["seo-optimization", "mock-mode"]

    async def optimize(self, data: Dict[str, Any]) -> AgentResult:
        return await self._respond("Mock SEO update completed", fields_updated=["title", "description"])

    async def validate(self, data: Dict[str, Any]) -> AgentResult:
        return await self._respond("Mock SEO validation completed", validation={"valid": True, "issues": []})

    async def extract(self, data: Dict[str, Any]) -> AgentResult:
        return await self._respond(
            "Mock SEO data extracted",
            seo_data={"title": "Mock Product Title", "description": "Mock product description"},
        )

    async def bulk_update(self, data: Dict[str, Any]) -> AgentResult:
        return await self._respond("Mock bulk SEO update completed", items_updated=5)


class MockNavigationAgent(MockAgent):
    kind = AgentKind.NAVIGATION
    OPERATIONS = {
        "navigate": "navigate",
        "search": "search",
        "validate": "validate",
        "extract-results": "extract_results",
    }
    CAPABILITIES = ["navigation", "mock-mode"]

    async def navigate(self, data: Dict[str, Any]) -> AgentResult:
        return await self._respond(
            "Mock navigation completed",
            url=data.get("url") or "mock://page",
            page_type="mock-page",
            navigation_time=100,
        )

    async def search(self, data: Dict[str, Any]) -> AgentResult:
        term = data.get("search_term") or data.get("query") or ""
        results = [
            {"id": "mock-1", "name": f"Mock result for {term}".strip()},
            {"id": "mock-2", "name": "Mock result 2"},
        ]
        return await self._respond("Mock search completed", search_term=term, results=results, total_results=2)

    async def validate(self, data: Dict[str, Any]) -> AgentResult:
        return await self._respond("Mock page valid", valid=True, issues=[], url="mock://page")

    async def extract_results(self, data: Dict[str, Any]) -> AgentResult:
        return await self._respond("Mock results extracted", results=[], count=0)


class MockCatalogAgent(MockAgent):
    kind = AgentKind.CATALOG
    OPERATIONS = {
        "sync": "sync",
        "inventory": "update_inventory",
        "pricing": "update_pricing",
        "extract": "extract",
    }
    CAPABILITIES = ["catalog-sync", "mock-mode"]

    async def sync(self, data: Dict[str, Any]) -> AgentResult:
        return await self._respond("Mock catalog sync completed", synced_items=10)

    async def update_inventory(self, data: Dict[str, Any]) -> AgentResult:
        return await self._respond("Mock inventory update completed", updated_items=5)

    async def update_pricing(self, data: Dict[str, Any]) -> AgentResult:
        return await self._respond("Mock pricing update completed", updated_prices=3)

    async def extract(self, data: Dict[str, Any]) -> AgentResult:
        items = [
            {"id": "mock-item-1", "name": "Mock Item 1", "price": 10.0, "quantity": 5},
            {"id": "mock-item-2", "name": "Mock Item 2", "price": 20.0, "quantity": 3},
        ]
        return await self._respond("Mock catalog extracted", items=items)


MOCK_AGENTS: Dict[AgentKind, Type[MockAgent]] = {
    AgentKind.SEO: MockSEOAgent,
    AgentKind.NAVIGATION: MockNavigationAgent,
    AgentKind.CATALOG: MockCatalogAgent,
}


def create_mock_agent(kind: AgentKind, context: AgentContext, latency: Optional[float] = None) -> MockAgent:
    return MOCK_AGENTS[AgentKind(kind)](context, latency=latency or 0.0)
