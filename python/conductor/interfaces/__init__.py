"""Protocols at the boundary between Conductor and its collaborators."""

from conductor.interfaces.event_bus import EventType, IEventBus
from conductor.interfaces.page_driver import PageDriver

__all__ = ["EventType", "IEventBus", "PageDriver"]
