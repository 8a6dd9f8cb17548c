"""Google Programmable Search wrapper — finds recently indexed pages of a domain."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Union

import httpx

from src.config import Settings
from src.monitor.errors import SearchConfigError, SearchProviderError

logger = logging.getLogger(__name__)

PAGE_SIZE = 10
MAX_START = 100  # the API refuses to page past the first 100 results

DEFAULT_DATE_RANGE = "1w"

DATE_RANGE_DAYS: dict[str, int] = {
    "1d": 1,
    "1w": 7,
    "2w": 14,
    "1m": 30,
}

API_KEY_SETTING = "google_api_key"
CX_SETTING = "google_cx"


@dataclass(frozen=True)
class SearchResult:
    title: str
    link: str


@dataclass(frozen=True)
class SearchCredentials:
    api_key: str
    cx: str


@dataclass(frozen=True)
class ResultPage:
    items: list[SearchResult] = field(default_factory=list)


@dataclass(frozen=True)
class EmptyPage:
    pass


@dataclass(frozen=True)
class ProviderFailure:
    message: str


DecodedPage = Union[ResultPage, EmptyPage, ProviderFailure]


def date_after(date_range: str, now: datetime | None = None) -> str:
    """Return the ``YYYY-MM-DD`` cutoff for a range code; unknown codes mean one week."""
    now = now or datetime.now(timezone.utc)
    days = DATE_RANGE_DAYS.get(date_range, DATE_RANGE_DAYS[DEFAULT_DATE_RANGE])
    return (now - timedelta(days=days)).strftime("%Y-%m-%d")


def build_query(domain: str, after: str) -> str:
    return f"site:{domain} after:{after}"


def resolve_credentials(stored: dict[str, str], settings: Settings) -> SearchCredentials:
    """Prefer values from the settings table, fall back to the environment."""
    api_key = stored.get(API_KEY_SETTING) or settings.google_api_key
    cx = stored.get(CX_SETTING) or settings.google_cx
    if not api_key or not cx:
        raise SearchConfigError(
            "Google API is not configured: set the API key and Search Engine ID first"
        )
    return SearchCredentials(api_key=api_key, cx=cx)


def decode_page(payload: Any) -> DecodedPage:
    """Classify one page of provider JSON without trusting its shape."""
    if not isinstance(payload, dict):
        return ProviderFailure("Unexpected search response format")

    error = payload.get("error")
    if error is not None:
        message = error.get("message") if isinstance(error, dict) else None
        return ProviderFailure(message if isinstance(message, str) and message else str(error))

    raw_items = payload.get("items")
    if raw_items is None:
        return EmptyPage()
    if not isinstance(raw_items, list):
        return ProviderFailure("Unexpected search response format: items is not a list")
    if not raw_items:
        return EmptyPage()

    items: list[SearchResult] = []
    for raw in raw_items:
        if not isinstance(raw, dict) or not isinstance(raw.get("link"), str):
            return ProviderFailure("Unexpected search response format: item without link")
        title = raw.get("title")
        items.append(SearchResult(title=title if isinstance(title, str) else "", link=raw["link"]))
    return ResultPage(items=items)


class GoogleSearchClient:
    """Pages through the Custom Search JSON API for one ``site:`` query."""

    def __init__(self, search_url: str, timeout: float = 30.0) -> None:
        self._search_url = search_url
        self._timeout = timeout

    async def search_site(
        self,
        domain: str,
        date_range: str,
        credentials: SearchCredentials,
        now: datetime | None = None,
    ) -> list[SearchResult]:
        """Return every result newer than the range cutoff, in provider order.

        Any failure aborts the whole search; already fetched pages are dropped.
        """
        query = build_query(domain, date_after(date_range, now))
        logger.debug("searching", extra={"domain": domain, "query": query})

        results: list[SearchResult] = []
        start = 1
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            while start <= MAX_START:
                params = {
                    "key": credentials.api_key,
                    "cx": credentials.cx,
                    "q": query,
                    "num": str(PAGE_SIZE),
                    "start": str(start),
                }
                try:
                    resp = await client.get(self._search_url, params=params)
                    payload = resp.json()
                except httpx.HTTPError as exc:
                    logger.warning(
                        "search request failed",
                        extra={"domain": domain, "start": start},
                        exc_info=True,
                    )
                    raise SearchProviderError(f"Search request failed: {exc}") from exc
                except ValueError as exc:
                    raise SearchProviderError("Search provider returned a non-JSON response") from exc

                page = decode_page(payload)
                if resp.status_code >= 400 and not isinstance(page, ProviderFailure):
                    page = ProviderFailure(f"Search provider returned HTTP {resp.status_code}")
                if isinstance(page, ProviderFailure):
                    logger.warning(
                        "search provider error",
                        extra={"domain": domain, "start": start, "error": page.message},
                    )
                    raise SearchProviderError(page.message)
                if isinstance(page, EmptyPage):
                    break

                results.extend(page.items)
                if len(page.items) < PAGE_SIZE:
                    break
                start += PAGE_SIZE

        logger.debug(
            "search results received",
            extra={"domain": domain, "result_count": len(results)},
        )
        return results
