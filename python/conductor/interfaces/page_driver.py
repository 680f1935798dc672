"""Interface for the browser primitives concrete agents rely on.

The real implementation lives in the browser extension and talks over its
messaging transport; Conductor only depends on this contract.  Field and
target names are logical ("item_name", "seo_title", "save_button"), the
driver maps them to selectors.
"""

from typing import Any, Dict, List, Optional, Protocol


class PageDriver(Protocol):
    """Browser-side capabilities consumed by DOM agents."""

    async def current_url(self) -> str:
        """Return the URL currently loaded in the tab."""
        ...

    async def navigate(self, url: str, wait_for_load: bool = True) -> bool:
        """Load *url*; return False if the page never became ready."""
        ...

    async def fill(self, field: str, value: Any, clear: bool = True) -> bool:
        """Type *value* into a logical form field."""
        ...

    async def read(self, field: str) -> Optional[Any]:
        """Read the current value of a logical form field."""
        ...

    async def click(self, target: str) -> bool:
        """Click a logical target (button, menu entry)."""
        ...

    async def exists(self, target: str) -> bool:
        """Whether a logical element is present on the page."""
        ...

    async def search(self, term: str, scope: str = "items") -> List[Dict[str, Any]]:
        """Run the dashboard search and return raw result rows."""
        ...

    async def list_items(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Scrape catalog rows from the current library page."""
        ...

    async def screenshot(self) -> Optional[str]:
        """Capture the visible tab as a data URL, if supported."""
        ...
