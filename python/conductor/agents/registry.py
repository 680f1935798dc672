"""
Agent registry: page-context aware, lazily constructed agent instances.

Instances are cached under ``(agent_type, page_type)``.  When the page type
changes, every cached instance bound to another page type is destroyed and
then evicted.  If an enhanced agent cannot be constructed (no page driver,
page type outside its allow-list, constructor error) the registry falls back
to the mock variant of the same kind and caches it under the requested key.

The registry is owned by whoever creates it (normally the coordinator); it is
not a process-wide singleton.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from conductor.agents.base import AgentKind, DOMAgent, parse_agent_type
from conductor.agents.catalog import CatalogAgent
from conductor.agents.environment import host_allowed
from conductor.agents.mock import create_mock_agent
from conductor.agents.navigation import NavigationAgent
from conductor.agents.seo import SEOAgent
from conductor.config.settings import Settings, get_settings
from conductor.exceptions import UnknownAgentType, ValidationError
from conductor.interfaces.event_bus import EventType, IEventBus
from conductor.interfaces.page_driver import PageDriver
from conductor.models.types import AgentContext, PageContext, PageType

logger = logging.getLogger(__name__)

AgentFactory = Callable[[AgentContext, Optional[PageDriver], Settings], DOMAgent]

DEFAULT_FACTORIES: Dict[AgentKind, AgentFactory] = {
    AgentKind.SEO: SEOAgent,
    AgentKind.NAVIGATION: NavigationAgent,
    AgentKind.CATALOG: CatalogAgent,
}

# Page types on which each enhanced agent may be constructed.
PAGE_ALLOW_LIST: Dict[AgentKind, Tuple[PageType, ...]] = {
    AgentKind.SEO: (PageType.ITEM_DETAIL, PageType.ITEM_EDIT, PageType.ITEMS_LIBRARY),
    AgentKind.CATALOG: (PageType.ITEMS_LIBRARY, PageType.ITEM_DETAIL, PageType.ITEM_EDIT, PageType.INVENTORY),
}


@dataclass
class AgentInstance:
    """A constructed agent and how it was obtained."""

    type: str
    kind: AgentKind
    instance: DOMAgent
    enhanced: bool
    page_type: PageType
    capabilities: List[str] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return self.instance.ready


class AgentRegistry:
    """Resolves agent types to live agent instances for the current page."""

    def __init__(
        self,
        context: AgentContext,
        driver: Optional[PageDriver] = None,
        settings: Optional[Settings] = None,
        event_bus: Optional[IEventBus] = None,
        factories: Optional[Dict[AgentKind, AgentFactory]] = None,
    ) -> None:
        self._context = context
        self._driver = driver
        self._settings = settings or get_settings()
        self._event_bus = event_bus
        self._factories = dict(DEFAULT_FACTORIES)
        if factories:
            self._factories.update(factories)
        self._agents: Dict[Tuple[str, PageType], AgentInstance] = {}
        self._locks: Dict[Tuple[str, PageType], asyncio.Lock] = {}

    @property
    def context(self) -> AgentContext:
        return self._context

    @property
    def page_type(self) -> PageType:
        return self._context.page.page_type

    # ── Validation ───────────────────────────────────────────────────

    def validate_for_page(self, kind: AgentKind, page: Optional[PageContext] = None) -> None:
        """Raise ValidationError unless the enhanced *kind* agent may run on *page*."""
        page = page or self._context.page
        if kind is AgentKind.NAVIGATION:
            if page.page_type is PageType.UNKNOWN or not host_allowed(page.url, self._settings.allowed_hosts):
                raise ValidationError(
                    f"navigation agent not available for page: {page.url}",
                    details={"page_type": page.page_type.value, "url": page.url},
                )
            return
        if page.page_type not in PAGE_ALLOW_LIST[kind]:
            raise ValidationError(
                f"{kind.value} agent not available for page type: {page.page_type.value}",
                details={"page_type": page.page_type.value},
            )

    def is_available(self, agent_type: str) -> bool:
        try:
            kind, is_mock = parse_agent_type(agent_type)
        except ValueError:
            return False
        if is_mock:
            return True
        try:
            self.validate_for_page(kind)
        except ValidationError:
            return False
        return True

    # ── Resolution ───────────────────────────────────────────────────

    def _construct(self, kind: AgentKind, is_mock: bool) -> DOMAgent:
        if is_mock:
            return create_mock_agent(kind, self._context)
        self.validate_for_page(kind)
        return self._factories[kind](self._context, self._driver, self._settings)

    async def resolve(
        self,
        agent_type: str,
        page_context: Optional[PageContext] = None,
        force_recreate: bool = False,
    ) -> Optional[AgentInstance]:
        """Return a ready agent for *agent_type*, constructing it if needed.

        Returns None only when both the enhanced agent and its mock fallback
        could not be constructed.
        """
        try:
            kind, is_mock = parse_agent_type(agent_type)
        except ValueError:
            raise UnknownAgentType(agent_type) from None

        current = self._context.page
        if page_context is not None and (page_context.page_type, page_context.url) != (current.page_type, current.url):
            await self.update_context(page_context)

        key = (agent_type, self.page_type)
        # one construction per key; concurrent callers wait and reuse it
        async with self._locks.setdefault(key, asyncio.Lock()):
            return await self._get_or_create(key, kind, is_mock, force_recreate)

    async def _get_or_create(
        self,
        key: Tuple[str, PageType],
        kind: AgentKind,
        is_mock: bool,
        force_recreate: bool,
    ) -> Optional[AgentInstance]:
        agent_type, page_type = key
        cached = self._agents.get(key)
        if cached is not None and cached.ready and not force_recreate:
            return cached
        if cached is not None:
            self._destroy_instance(cached)
            del self._agents[key]

        try:
            agent = self._construct(kind, is_mock)
            await agent.initialize()
        except Exception as exc:
            logger.warning("Failed to create %s agent: %s", agent_type, exc)
            if is_mock or not self._settings.mock_fallback_enabled:
                return None
            try:
                agent = create_mock_agent(kind, self._context)
                await agent.initialize()
            except Exception:
                logger.exception("Mock fallback failed for %s", agent_type)
                return None
            logger.info("Using mock %s agent for page type %s", kind.value, page_type.value)

        handle = AgentInstance(
            type=agent.agent_type,
            kind=kind,
            instance=agent,
            enhanced=agent.enhanced,
            page_type=page_type,
            capabilities=agent.get_capabilities(),
        )
        self._agents[key] = handle
        logger.debug("Created %s agent for page type %s", handle.type, page_type.value)
        await self._emit(EventType.AGENT_CREATED, {
            "agent_type": handle.type,
            "requested_type": agent_type,
            "enhanced": handle.enhanced,
            "page_type": page_type.value,
        })
        return handle

    # ── Context ──────────────────────────────────────────────────────

    async def update_context(self, page: PageContext) -> None:
        """Switch to *page*, destroying agents bound to any other page type."""
        old_type = self.page_type
        self._context = self._context.model_copy(update={"page": page})

        evicted: List[str] = []
        for key, handle in list(self._agents.items()):
            if key[1] == page.page_type:
                handle.instance.update_context(self._context)
                continue
            self._destroy_instance(handle)
            del self._agents[key]
            evicted.append(handle.type)

        if old_type != page.page_type:
            logger.info(
                "Page context changed: %s -> %s (%d agents destroyed)",
                old_type.value, page.page_type.value, len(evicted),
            )
        await self._emit(EventType.CONTEXT_CHANGED, {
            "previous_page_type": old_type.value,
            "page_type": page.page_type.value,
            "url": page.url,
            "destroyed": evicted,
        })
        for agent_type in evicted:
            await self._emit(EventType.AGENT_DESTROYED, {"agent_type": agent_type})

    # ── Introspection ────────────────────────────────────────────────

    def available_agent_types(self) -> List[str]:
        types = [kind.value for kind in AgentKind if self.is_available(kind.value)]
        types.extend(f"mock-{kind.value}" for kind in AgentKind)
        return types

    def instances(self) -> List[AgentInstance]:
        return list(self._agents.values())

    def capabilities(self, agent_type: str) -> List[str]:
        handle = self._agents.get((agent_type, self.page_type))
        return list(handle.capabilities) if handle else []

    def status(self) -> Dict[str, object]:
        return {
            "total_agents": len(self._agents),
            "active_agents": sum(1 for h in self._agents.values() if h.ready),
            "available_types": self.available_agent_types(),
            "page_type": self.page_type.value,
        }

    # ── Teardown ─────────────────────────────────────────────────────

    @staticmethod
    def _destroy_instance(handle: AgentInstance) -> None:
        try:
            handle.instance.destroy()
        except Exception:
            logger.exception("Error destroying %s agent", handle.type)

    def destroy(self) -> None:
        for handle in self._agents.values():
            self._destroy_instance(handle)
        self._agents.clear()
        logger.info("Agent registry destroyed")

    async def _emit(self, event_type: EventType, data: Dict[str, object]) -> None:
        if self._event_bus is not None:
            await self._event_bus.publish(event_type, data, source="registry")
