"""
Catalog agent: item sync, inventory and price updates, catalog extraction.

Per-item failures inside a multi-item operation are recorded on that item's
entry and do not abort the remaining items.  The operation succeeds when at
least one item succeeded.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from conductor.agents.base import AgentConfig, AgentKind, DOMAgent
from conductor.agents.environment import DashboardUrls
from conductor.config.settings import Settings, get_settings
from conductor.exceptions import error_message_of
from conductor.interfaces.page_driver import PageDriver
from conductor.models.types import AgentContext, AgentResult

logger = logging.getLogger(__name__)

REQUIRED_ITEM_FIELDS = ("id", "name")


def validate_catalog_data(items: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Summarise missing required fields and suspicious values in *items*."""
    report: Dict[str, Any] = {
        "total_items": len(items),
        "valid_items": 0,
        "invalid_items": 0,
        "missing_fields": [],
        "warnings": [],
    }
    for index, item in enumerate(items):
        ident = item.get("id") or f"item-{index}"
        missing = [f for f in REQUIRED_ITEM_FIELDS if not item.get(f)]
        if missing:
            report["invalid_items"] += 1
            report["missing_fields"].extend(f"{ident}: {f}" for f in missing)
        else:
            report["valid_items"] += 1

        price = item.get("price")
        if price is not None and not _non_negative(price):
            report["warnings"].append(f"{ident}: invalid price value")
        quantity = item.get("quantity")
        if quantity is not None and not _non_negative(quantity, integer=True):
            report["warnings"].append(f"{ident}: invalid quantity value")
    return report


def _non_negative(value: Any, integer: bool = False) -> bool:
    if isinstance(value, bool):
        return False
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    if integer and number != int(number):
        return False
    return number >= 0


class CatalogAgent(DOMAgent):
    """Enhanced catalog agent."""

    kind = AgentKind.CATALOG
    OPERATIONS = {
        "sync": "sync",
        "inventory": "update_inventory",
        "pricing": "update_pricing",
        "extract": "extract",
    }
    CAPABILITIES = [
        "catalog-sync",
        "inventory-management",
        "pricing-updates",
        "catalog-extraction",
    ]

    def __init__(
        self,
        context: AgentContext,
        driver: Optional[PageDriver] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        super().__init__(context, AgentConfig(name="CatalogAgent"), driver)
        self.settings = settings or get_settings()
        self.urls = DashboardUrls(self.settings.square_base_url)

    async def _update_item_field(self, item_id: str, field_name: str, value: Any) -> Dict[str, Any]:
        entry: Dict[str, Any] = {"item_id": item_id, field_name: value}
        try:
            if not await self.driver.navigate(self.urls.item(item_id)):
                raise RuntimeError(f"Could not open item {item_id}")
            if not await self.driver.fill(field_name, str(value)):
                raise RuntimeError(f"Could not set {field_name}")
            if not await self.driver.click("save_button"):
                raise RuntimeError("Save failed")
        except Exception as exc:
            logger.warning("Catalog update failed for %s: %s", item_id, exc)
            entry.update(success=False, error=error_message_of(exc))
            return entry
        entry["success"] = True
        return entry

    @staticmethod
    def _summarise(label: str, results: List[Dict[str, Any]], key: str) -> AgentResult:
        ok = sum(1 for r in results if r["success"])
        data = {key: ok, "results": results}
        message = f"{label} updated for {ok}/{len(results)} items"
        if not ok:
            return AgentResult.failure(message, data=data)
        return AgentResult(success=True, message=message, data=data)

    async def update_inventory(self, data: Dict[str, Any]) -> AgentResult:
        quantities: Dict[str, Any] = data.get("quantities") or {}
        if not quantities:
            return AgentResult.failure("No quantities provided")

        results = []
        for item_id, quantity in quantities.items():
            if not _non_negative(quantity, integer=True):
                results.append({"item_id": item_id, "quantity": quantity, "success": False,
                                "error": "invalid quantity value"})
                continue
            results.append(await self._update_item_field(item_id, "quantity", quantity))
        return self._summarise("Inventory", results, "updated_items")

    async def update_pricing(self, data: Dict[str, Any]) -> AgentResult:
        prices: Dict[str, Any] = data.get("prices") or {}
        if not prices:
            return AgentResult.failure("No prices provided")

        results = []
        for item_id, price in prices.items():
            if not _non_negative(price):
                results.append({"item_id": item_id, "price": price, "success": False,
                                "error": "invalid price value"})
                continue
            results.append(await self._update_item_field(item_id, "price", price))
        return self._summarise("Pricing", results, "updated_prices")

    async def sync(self, data: Dict[str, Any]) -> AgentResult:
        items: List[Dict[str, Any]] = data.get("items") or []
        if not items:
            return AgentResult.failure("No items provided for sync")

        results = []
        for item in items:
            item_id = item.get("id")
            if not item_id:
                results.append({"item_id": None, "success": False, "error": "Missing item id"})
                continue
            entry: Dict[str, Any] = {"item_id": item_id, "name": item.get("name"), "success": True}
            for field_name in ("name", "price", "quantity"):
                if item.get(field_name) is None:
                    continue
                outcome = await self._update_item_field(item_id, field_name, item[field_name])
                if not outcome["success"]:
                    entry.update(success=False, error=outcome["error"])
                    break
            results.append(entry)

        synced = sum(1 for r in results if r["success"])
        data_out = {"synced_items": synced, "results": results}
        message = f"Catalog synced: {synced}/{len(results)} items"
        if not synced:
            return AgentResult.failure(message, data=data_out)
        return AgentResult(success=True, message=message, data=data_out)

    async def extract(self, data: Dict[str, Any]) -> AgentResult:
        if not await self.driver.navigate(self.urls.catalog()):
            return AgentResult.failure("Could not open the items library")

        items = await self.driver.list_items(limit=data.get("item_limit"))
        if not data.get("include_inventory", True):
            items = [{k: v for k, v in i.items() if k != "quantity"} for i in items]
        if not data.get("include_pricing", True):
            items = [{k: v for k, v in i.items() if k != "price"} for i in items]

        return AgentResult(
            success=True,
            message=f"Extracted {len(items)} catalog items",
            data={"items": items, "validation": validate_catalog_data(items)},
        )
