"""Navigation agent: moves the page driver around the dashboard and searches it."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from conductor.agents.base import AgentConfig, AgentKind, DOMAgent
from conductor.agents.environment import DashboardUrls, host_allowed
from conductor.config.settings import Settings, get_settings
from conductor.interfaces.page_driver import PageDriver
from conductor.models.types import AgentContext, AgentResult, PageType

logger = logging.getLogger(__name__)

MENU_ITEMS = ("dashboard", "items", "inventory", "online")
SEARCH_SCOPES = ("items", "customers", "orders")
DEFAULT_MAX_RESULTS = 10


class NavigationAgent(DOMAgent):

    kind = AgentKind.NAVIGATION
    OPERATIONS = {
        "navigate": "navigate",
        "search": "search",
        "validate": "validate",
        "extract-results": "extract_results",
    }
    CAPABILITIES = [
        "navigation",
        "search",
        "page-validation",
        "result-extraction",
    ]

    def __init__(
        self,
        context: AgentContext,
        driver: Optional[PageDriver] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        super().__init__(context, AgentConfig(name="NavigationAgent"), driver)
        self.settings = settings or get_settings()
        self.urls = DashboardUrls(self.settings.square_base_url)

    def _target(self, data: Dict[str, Any]) -> tuple[Optional[str], PageType, Optional[str]]:
        """Resolve a navigation request to (url, expected page type, error)."""
        kind = data.get("type")
        if kind is None:
            if data.get("item_id"):
                kind = "item"
            elif data.get("url"):
                kind = "url"
            else:
                kind = data.get("target")

        if kind == "url":
            url = data.get("url")
            if not url:
                return None, PageType.UNKNOWN, "URL is required"
            if not host_allowed(url, self.settings.allowed_hosts):
                return None, PageType.UNKNOWN, f"Navigation to host not allowed: {url}"
            return url, PageType.UNKNOWN, None
        if kind == "item":
            item_id = data.get("item_id")
            if not item_id:
                return None, PageType.UNKNOWN, "item_id is required"
            return self.urls.item(item_id), PageType.ITEM_EDIT, None
        if kind == "catalog":
            return self.urls.catalog(), PageType.ITEMS_LIBRARY, None
        if kind == "inventory":
            return self.urls.inventory(), PageType.INVENTORY, None
        if kind == "seo":
            return self.urls.seo_settings(), PageType.SEO_SETTINGS, None
        if kind == "dashboard":
            return self.urls.dashboard(), PageType.DASHBOARD, None
        return None, PageType.UNKNOWN, f"Unknown navigation target: {kind}"

    async def navigate(self, data: Dict[str, Any]) -> AgentResult:
        started = time.perf_counter()

        if data.get("type") == "menu":
            menu_item = data.get("menu_item")
            if menu_item not in MENU_ITEMS:
                return AgentResult.failure(f"Unknown menu item: {menu_item}")
            if not await self.driver.click(f"menu_{menu_item}"):
                return AgentResult.failure(f"Failed to open menu item: {menu_item}")
            return AgentResult(
                success=True,
                message=f"Opened {menu_item}",
                data={
                    "url": await self.driver.current_url(),
                    "navigation_time": time.perf_counter() - started,
                },
            )

        url, page_type, error = self._target(data)
        if error:
            return AgentResult.failure(error)

        ok = await self.driver.navigate(url, wait_for_load=data.get("wait_for_load", True))
        if not ok:
            return AgentResult.failure(f"Navigation failed: {url}", data={"url": url})

        if data.get("validate_page") and not await self.driver.exists("page_ready"):
            return AgentResult.failure(f"Page did not load correctly: {url}", data={"url": url})

        self.log("Navigated to %s", url)
        return AgentResult(
            success=True,
            message=f"Navigated to {url}",
            data={
                "url": url,
                "page_type": page_type.value,
                "navigation_time": time.perf_counter() - started,
            },
        )

    async def search(self, data: Dict[str, Any]) -> AgentResult:
        term = (data.get("search_term") or data.get("query") or "").strip()
        if not term:
            return AgentResult.failure("search_term is required")
        scope = data.get("search_type", "items")
        if scope not in SEARCH_SCOPES:
            return AgentResult.failure(f"Unsupported search type: {scope}")
        max_results = int(data.get("max_results", DEFAULT_MAX_RESULTS))

        if scope == "items" and "/items" not in await self.driver.current_url():
            if not await self.driver.navigate(self.urls.catalog()):
                return AgentResult.failure("Could not open the items library for search")

        rows = await self.driver.search(term, scope=scope)
        results = rows[:max_results]
        return AgentResult(
            success=True,
            message=f"Found {len(results)} results for '{term}'",
            data={"search_term": term, "results": results, "total_results": len(rows)},
        )

    async def validate(self, data: Dict[str, Any]) -> AgentResult:
        url = await self.driver.current_url()
        issues = []
        if not await self.driver.exists("page_ready"):
            issues.append("Page is not ready")
        if not host_allowed(url, self.settings.allowed_hosts):
            issues.append(f"Host not allowed: {url}")
        item_id = data.get("item_id")
        if item_id and item_id not in url:
            issues.append(f"Not on item page: {item_id}")

        valid = not issues
        result_data = {"valid": valid, "issues": issues, "url": url}
        if not valid:
            return AgentResult.failure("; ".join(issues), data=result_data)
        return AgentResult(success=True, message="Page valid", data=result_data)

    async def extract_results(self, data: Dict[str, Any]) -> AgentResult:
        limit = int(data.get("max_results", DEFAULT_MAX_RESULTS))
        items = await self.driver.list_items(limit=limit)
        return AgentResult(
            success=True,
            message=f"Extracted {len(items)} results",
            data={"results": items, "count": len(items)},
        )
