"""Dependency injection container for Conductor.

Lightweight wiring of services at application startup.
Uses lazy initialization: services are created on first access.
"""

import logging
from typing import Any, Dict, Optional

from conductor.config.settings import Settings, get_settings
from conductor.interfaces.page_driver import PageDriver
from conductor.models.types import AgentContext, PageContext, PageType

logger = logging.getLogger(__name__)


class ConductorContainer:
    """Central service container.

    A page driver, if any, must be attached before the coordinator is first
    accessed; without one every agent resolves to its mock variant.
    """

    def __init__(self, settings: Optional[Settings] = None, driver: Optional[PageDriver] = None) -> None:
        self._settings = settings
        self._driver = driver
        self._event_bus = None
        self._coordinator = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def event_bus(self):
        if self._event_bus is None:
            from conductor.event_bus import InMemoryEventBus
            self._event_bus = InMemoryEventBus()
        return self._event_bus

    def attach_driver(self, driver: PageDriver) -> None:
        if self._coordinator is not None:
            raise RuntimeError("Coordinator already created; attach the driver first")
        self._driver = driver

    def default_context(self) -> AgentContext:
        page = PageContext(url=f"{self.settings.square_base_url}/dashboard", page_type=PageType.DASHBOARD)
        return AgentContext(page=page)

    @property
    def coordinator(self):
        if self._coordinator is None:
            from conductor.orchestration.coordinator import AgentCoordinator
            self._coordinator = AgentCoordinator(
                self.default_context(),
                driver=self._driver,
                settings=self.settings,
                event_bus=self.event_bus,
            )
            logger.info("AgentCoordinator initialized (driver=%s)", type(self._driver).__name__ if self._driver else None)
        return self._coordinator

    async def shutdown(self) -> None:
        if self._coordinator is not None:
            await self._coordinator.destroy()
            self._coordinator = None

    def status(self) -> Dict[str, Any]:
        """Report which services are initialized."""
        return {
            "settings": self._settings is not None,
            "event_bus": self._event_bus is not None,
            "coordinator": self._coordinator is not None,
            "driver": self._driver is not None,
        }


# Global container
_container: Optional[ConductorContainer] = None


def get_container() -> ConductorContainer:
    global _container
    if _container is None:
        _container = ConductorContainer()
    return _container


def shutdown_container() -> None:
    global _container
    _container = None
