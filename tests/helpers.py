"""Shared test helpers."""

import httpx

SEARCH_URL = "https://search.test/customsearch/v1"


def search_response(links: list[str], status_code: int = 200) -> httpx.Response:
    """A Custom Search JSON page listing ``links``; no links means no ``items`` key."""
    if not links:
        return httpx.Response(status_code, json={"searchInformation": {"totalResults": "0"}})
    payload = {"items": [{"title": f"Title of {link}", "link": link} for link in links]}
    return httpx.Response(status_code, json=payload)
