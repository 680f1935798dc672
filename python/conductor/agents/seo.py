"""
SEO agent: fills and validates the search-engine fields of an item.

Content generation is pure string work and lives in module-level helpers so
it can be used without a page driver.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from conductor.agents.base import AgentConfig, AgentKind, DOMAgent
from conductor.agents.environment import DashboardUrls
from conductor.config.settings import Settings, get_settings
from conductor.interfaces.page_driver import PageDriver
from conductor.models.types import AgentContext, AgentResult, PageType

logger = logging.getLogger(__name__)

# SEO form field -> page field name understood by the driver
SEO_FIELDS: Dict[str, str] = {
    "title": "item_name",
    "description": "item_description",
    "meta_title": "seo_title",
    "meta_description": "seo_description",
    "url_slug": "seo_url_slug",
    "tags": "tags",
}

SEO_PAGE_TYPES = (PageType.ITEM_DETAIL, PageType.ITEM_EDIT)

TITLE_MAX = 70
DESCRIPTION_MIN = 50
DESCRIPTION_MAX = 500
META_TITLE_MAX = 60
META_DESCRIPTION_MAX = 155
SLUG_MAX = 50
TAGS_MAX = 10

_DESCRIPTION_FILLER = " Premium quality product with exceptional value and customer satisfaction."
_TAG_STOPWORDS = {"the", "and", "with", "for"}
_SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


# ── Content helpers ──────────────────────────────────────────────────


def optimize_title(title: str) -> str:
    words = title.strip().split()
    return " ".join(w[:1].upper() + w[1:].lower() for w in words)[:TITLE_MAX]


def optimize_description(description: str) -> str:
    text = description.strip()
    if len(text) < DESCRIPTION_MIN:
        text += _DESCRIPTION_FILLER
    return text[:DESCRIPTION_MAX]


def generate_tags(name: str, category: Optional[str] = None, keywords: Optional[List[str]] = None) -> List[str]:
    tags: List[str] = []
    if category:
        tags.append(category.lower())
    tags.extend(k.lower() for k in keywords or [])
    tags.extend(
        w for w in name.lower().split()
        if len(w) > 3 and w not in _TAG_STOPWORDS
    )
    # de-duplicate, keep first occurrence
    return list(dict.fromkeys(tags))[:TAGS_MAX]


def generate_meta_title(name: str, category: Optional[str] = None) -> str:
    parts = [name]
    if category:
        parts.append(f"- {category}")
    parts.append("| Store")
    return " ".join(parts)[:META_TITLE_MAX]


def generate_meta_description(description: str) -> str:
    clean = re.sub(r"\s+", " ", description).strip()
    if len(clean) > META_DESCRIPTION_MAX:
        return clean[:META_DESCRIPTION_MAX - 3] + "..."
    return clean


def generate_url_slug(name: str) -> str:
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")[:SLUG_MAX]


def generate_seo_content(item: Dict[str, Any]) -> Dict[str, Any]:
    """Build a complete SEO field set from basic item data."""
    name = str(item.get("name") or item.get("title") or "")
    description = str(item.get("description") or "")
    category = item.get("category")
    return {
        "title": optimize_title(name),
        "description": optimize_description(description or name),
        "meta_title": generate_meta_title(name, category),
        "meta_description": generate_meta_description(description or name),
        "url_slug": generate_url_slug(name),
        "tags": generate_tags(name, category, item.get("keywords")),
    }


def validate_seo_content(seo: Dict[str, Any]) -> List[str]:
    """Return a list of human-readable problems with *seo* (empty if fine)."""
    issues: List[str] = []
    title = seo.get("title") or ""
    description = seo.get("description") or ""
    if not title:
        issues.append("Title is missing")
    elif len(title) > TITLE_MAX:
        issues.append(f"Title exceeds {TITLE_MAX} characters")
    if not description:
        issues.append("Description is missing")
    elif len(description) < DESCRIPTION_MIN:
        issues.append(f"Description shorter than {DESCRIPTION_MIN} characters")
    elif len(description) > DESCRIPTION_MAX:
        issues.append(f"Description exceeds {DESCRIPTION_MAX} characters")
    if len(seo.get("meta_title") or "") > META_TITLE_MAX:
        issues.append(f"Meta title exceeds {META_TITLE_MAX} characters")
    if len(seo.get("meta_description") or "") > META_DESCRIPTION_MAX:
        issues.append(f"Meta description exceeds {META_DESCRIPTION_MAX} characters")
    slug = seo.get("url_slug")
    if slug and not _SLUG_PATTERN.match(slug):
        issues.append("URL slug contains invalid characters")
    return issues


# ── Agent ────────────────────────────────────────────────────────────


class SEOAgent(DOMAgent):
    """Enhanced SEO agent driving the item edit form."""

    kind = AgentKind.SEO
    OPERATIONS = {
        "optimize": "optimize",
        "update": "optimize",
        "validate": "validate",
        "extract": "extract",
        "bulk-update": "bulk_update",
    }
    CAPABILITIES = [
        "seo-optimization",
        "content-generation",
        "seo-validation",
        "bulk-seo-update",
    ]

    def __init__(
        self,
        context: AgentContext,
        driver: Optional[PageDriver] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        super().__init__(context, AgentConfig(name="SEOAgent"), driver)
        self.settings = settings or get_settings()
        self.urls = DashboardUrls(self.settings.square_base_url)

    async def _page_issues(self) -> List[str]:
        if self.context.page.page_type in SEO_PAGE_TYPES:
            return []
        if await self.driver.exists("item_form"):
            return []
        return [f"SEO form not available on page type: {self.context.page.page_type.value}"]

    async def _fill_seo_form(self, seo: Dict[str, Any]) -> tuple[List[str], List[str]]:
        updated: List[str] = []
        errors: List[str] = []
        for key, field_name in SEO_FIELDS.items():
            value = seo.get(key)
            if value is None or value == "" or value == []:
                continue
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value)
            if await self.driver.fill(field_name, str(value)):
                updated.append(key)
            else:
                errors.append(f"Failed to update {key}")
        return updated, errors

    async def optimize(self, data: Dict[str, Any]) -> AgentResult:
        if not self.context.settings.test_mode and not data.get("confirm"):
            return AgentResult.failure("SEO update requires confirmation outside test mode")

        issues = await self._page_issues()
        if issues:
            return AgentResult.failure(
                f"Page validation failed: {'; '.join(issues)}",
                data={"issues": issues},
            )

        seo = dict(data.get("seo_data") or {})
        if data.get("generate_content") or not seo:
            base = data.get("item_data") or seo
            generated = generate_seo_content(base)
            seo = {**generated, **{k: v for k, v in seo.items() if k in SEO_FIELDS}}

        updated, errors = await self._fill_seo_form(seo)
        if not updated:
            return AgentResult.failure(
                "No SEO fields were updated",
                data={"errors": errors},
            )
        if not await self.driver.click("save_button"):
            return AgentResult.failure("Failed to save SEO changes", data={"fields_updated": updated})

        self.log("SEO updated: %s", ", ".join(updated))
        return AgentResult(
            success=True,
            message=f"SEO updated: {len(updated)} fields",
            data={
                "fields_updated": updated,
                "errors": errors,
                "seo_data": seo,
                "screenshot": await self.driver.screenshot(),
            },
        )

    async def extract(self, data: Dict[str, Any]) -> AgentResult:
        seo: Dict[str, Any] = {}
        for key, field_name in SEO_FIELDS.items():
            value = await self.driver.read(field_name)
            if value is None:
                continue
            if key == "tags":
                value = [t.strip() for t in value.split(",") if t.strip()]
            seo[key] = value
        return AgentResult(success=True, message="SEO data extracted", data={"seo_data": seo})

    async def validate(self, data: Dict[str, Any]) -> AgentResult:
        seo = data.get("seo_data")
        if seo is None:
            extracted = await self.extract({})
            seo = extracted.data["seo_data"]
        issues = validate_seo_content(seo)
        return AgentResult(
            success=True,
            message="SEO valid" if not issues else f"{len(issues)} SEO issues found",
            data={"validation": {"valid": not issues, "issues": issues}},
        )

    async def bulk_update(self, data: Dict[str, Any]) -> AgentResult:
        bulk_items = data.get("bulk_items") or []
        if not bulk_items:
            return AgentResult.failure("No items provided for bulk SEO update")

        results: List[Dict[str, Any]] = []
        for entry in bulk_items:
            item_id = entry.get("item_id")
            if not item_id:
                results.append({"item_id": None, "success": False, "error": "Missing item_id"})
                continue
            if not await self.driver.navigate(self.urls.item(item_id)):
                results.append({"item_id": item_id, "success": False, "error": "Navigation failed"})
                continue
            seo = entry.get("seo_data") or generate_seo_content(entry)
            updated, errors = await self._fill_seo_form(seo)
            saved = bool(updated) and await self.driver.click("save_button")
            results.append({
                "item_id": item_id,
                "success": saved,
                "fields_updated": updated,
                "error": None if saved else "; ".join(errors) or "Save failed",
            })

        updated_count = sum(1 for r in results if r["success"])
        data_out = {"items_updated": updated_count, "bulk_results": results}
        if not updated_count:
            return AgentResult.failure("Bulk SEO update failed for all items", data=data_out)
        return AgentResult(
            success=True,
            message=f"Bulk SEO update: {updated_count}/{len(results)} items updated",
            data=data_out,
        )
