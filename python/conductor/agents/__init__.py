"""Agent variants (SEO, navigation, catalog, and their mocks) and the registry."""

from conductor.agents.base import AgentConfig, AgentKind, DOMAgent, parse_agent_type
from conductor.agents.catalog import CatalogAgent, validate_catalog_data
from conductor.agents.environment import DashboardUrls, host_allowed
from conductor.agents.mock import (
    MockAgent,
    MockCatalogAgent,
    MockNavigationAgent,
    MockSEOAgent,
    create_mock_agent,
)
from conductor.agents.navigation import NavigationAgent
from conductor.agents.registry import AgentInstance, AgentRegistry
from conductor.agents.seo import SEOAgent, generate_seo_content

__all__ = [
    "AgentConfig",
    "AgentInstance",
    "AgentKind",
    "AgentRegistry",
    "CatalogAgent",
    "DOMAgent",
    "DashboardUrls",
    "MockAgent",
    "MockCatalogAgent",
    "MockNavigationAgent",
    "MockSEOAgent",
    "NavigationAgent",
    "SEOAgent",
    "create_mock_agent",
    "generate_seo_content",
    "host_allowed",
    "parse_agent_type",
    "validate_catalog_data",
]
