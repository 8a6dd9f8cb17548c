"""Store search results that a site does not already have."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.db import repository
from src.db.models import utcnow
from src.monitor.search import SearchResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestOutcome:
    new_pages_count: int
    total_found: int


async def ingest_results(
    session: AsyncSession,
    site_id: str,
    results: list[SearchResult],
    now: datetime | None = None,
) -> IngestOutcome:
    """Insert every result whose link is new for the site.

    Existing pages are never touched. A link that another crawl inserts
    between our read and our write is skipped and not counted.
    """
    now = now or utcnow()
    existing = await repository.known_urls(session, site_id)

    fresh: dict[str, SearchResult] = {}
    for result in results:
        if result.link not in existing and result.link not in fresh:
            fresh[result.link] = result

    inserted = 0
    for result in fresh.values():
        if await repository.insert_page(session, site_id, result.link, result.title, now):
            inserted += 1

    logger.debug(
        "ingest complete",
        extra={
            "site_id": site_id,
            "total_found": len(results),
            "candidates": len(fresh),
            "inserted": inserted,
        },
    )
    return IngestOutcome(new_pages_count=inserted, total_found=len(results))
