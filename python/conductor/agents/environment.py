"""Dashboard URL layout and host checks."""

from __future__ import annotations

from typing import Iterable
from urllib.parse import urlparse


class DashboardUrls:
    """Builds dashboard URLs relative to a base such as https://squareup.com."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url.rstrip("/")

    def dashboard(self) -> str:
        return f"{self.base_url}/dashboard"

    def catalog(self) -> str:
        return f"{self.base_url}/dashboard/items/library"

    def item(self, item_id: str) -> str:
        return f"{self.base_url}/dashboard/items/{item_id}/edit"

    def inventory(self) -> str:
        return f"{self.base_url}/dashboard/inventory"

    def seo_settings(self) -> str:
        return f"{self.base_url}/dashboard/online/seo"

    @property
    def environment(self) -> str:
        host = urlparse(self.base_url).hostname or ""
        if host.endswith("squareupsandbox.com"):
            return "sandbox"
        if host.endswith("squareup.com"):
            return "production"
        return "test"


def host_allowed(url: str, allowed_hosts: Iterable[str]) -> bool:
    """True if *url*'s host is one of *allowed_hosts* or a subdomain of one."""
    host = (urlparse(url).hostname or "").lower()
    if not host:
        return False
    for allowed in allowed_hosts:
        allowed = allowed.lower()
        if host == allowed or host.endswith("." + allowed):
            return True
    return False
