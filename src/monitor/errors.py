"""Error types raised by the monitoring core and translated by the API layer."""

from __future__ import annotations


class MonitorError(Exception):
    """Base class for expected, user-facing failures."""


class InvalidDomainError(MonitorError):
    pass


class DuplicateDomainError(MonitorError):
    pass


class SiteNotFoundError(MonitorError):
    def __init__(self, site_id: str) -> None:
        super().__init__("Site not found")
        self.site_id = site_id


class PageNotFoundError(MonitorError):
    def __init__(self, page_id: str) -> None:
        super().__init__("Page not found")
        self.page_id = page_id


class SearchConfigError(MonitorError):
    """Search credentials are missing from both the settings table and the environment."""


class SearchProviderError(MonitorError):
    """The search provider returned an error, an unusable body, or could not be reached."""
