"""Shared fakes for the Conductor test suite."""

from typing import Any, Dict, List, Optional

import pytest

from conductor.agents.base import AgentConfig, AgentKind, DOMAgent
from conductor.config.settings import Settings
from conductor.models.types import AgentContext, AgentResult, PageContext, PageType


BASE_URL = "https://squareup.com"


class FakePageDriver:
    """In-memory PageDriver: records everything, fails on request."""

    def __init__(self, url: str = f"{BASE_URL}/dashboard/items/library", items=None) -> None:
        self.url = url
        self.fields: Dict[str, Any] = {}
        self.clicks: List[str] = []
        self.visited: List[str] = []
        self.present = {"item_form", "page_ready", "save_button"}
        self.fail_fill: set = set()
        self.fail_navigate: set = set()
        self.save_ok = True
        self.items: List[Dict[str, Any]] = list(items or [])
        self.search_rows: List[Dict[str, Any]] = []

    async def current_url(self) -> str:
        return self.url

    async def navigate(self, url: str, wait_for_load: bool = True) -> bool:
        self.visited.append(url)
        if url in self.fail_navigate:
            return False
        self.url = url
        return True

    async def fill(self, field: str, value: Any, clear: bool = True) -> bool:
        if field in self.fail_fill:
            return False
        self.fields[field] = value
        return True

    async def read(self, field: str) -> Optional[Any]:
        return self.fields.get(field)

    async def click(self, target: str) -> bool:
        self.clicks.append(target)
        return target != "save_button" or self.save_ok

    async def exists(self, target: str) -> bool:
        return target in self.present

    async def search(self, term: str, scope: str = "items") -> List[Dict[str, Any]]:
        return [r for r in self.search_rows if term.lower() in r.get("name", "").lower()]

    async def list_items(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return list(self.items[:limit] if limit else self.items)

    async def screenshot(self) -> Optional[str]:
        return None


class ScriptedAgent(DOMAgent):
    """SEO-kind agent whose ``optimize`` replays a script of outcomes.

    Each outcome is an AgentResult to return or an exception to raise; once
    the script runs out every call succeeds.
    """

    kind = AgentKind.SEO
    requires_driver = False
    OPERATIONS = {"optimize": "optimize", "update": "optimize", "validate": "validate"}

    def __init__(self, context: AgentContext, outcomes=None) -> None:
        super().__init__(context, AgentConfig(name="ScriptedAgent"))
        self.outcomes = list(outcomes or [])
        self.calls: List[Dict[str, Any]] = []

    async def optimize(self, data: Dict[str, Any]) -> AgentResult:
        self.calls.append(data)
        outcome = self.outcomes.pop(0) if self.outcomes else AgentResult(success=True, message="ok")
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def validate(self, data: Dict[str, Any]) -> AgentResult:
        return AgentResult(success=True, data={"validation": {"valid": True, "issues": []}})


@pytest.fixture
def settings():
    return Settings(
        square_base_url=BASE_URL,
        retry_backoff_min=0,
        retry_backoff_max=0,
        default_task_retries=2,
    )


@pytest.fixture
def driver():
    return FakePageDriver()


def make_context(page_type: PageType = PageType.ITEM_EDIT, url: Optional[str] = None, **settings) -> AgentContext:
    page = PageContext(url=url or f"{BASE_URL}/dashboard/items/ABC/edit", page_type=page_type)
    return AgentContext(page=page, settings=settings or {})


@pytest.fixture
def item_context():
    return make_context(PageType.ITEM_EDIT)


@pytest.fixture
def library_context():
    return make_context(PageType.ITEMS_LIBRARY, url=f"{BASE_URL}/dashboard/items/library")


@pytest.fixture
def context_factory():
    return make_context


@pytest.fixture
def fake_driver_cls():
    return FakePageDriver


@pytest.fixture
def scripted_agent_cls():
    return ScriptedAgent
