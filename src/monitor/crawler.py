"""One crawl of one site: search, store new pages, record the outcome."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import Settings
from src.db import repository
from src.db.models import utcnow
from src.monitor.ingest import ingest_results
from src.monitor.search import (
    DEFAULT_DATE_RANGE,
    GoogleSearchClient,
    SearchCredentials,
    resolve_credentials,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CrawlOutcome:
    site_id: str
    new_pages_count: int
    total_found: int


class SiteCrawler:
    """Shared by the on-demand endpoint and the scheduler."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        search_client: GoogleSearchClient,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings
        self._search = search_client

    async def credentials(self) -> SearchCredentials:
        """Read credentials fresh for every crawl so saved settings apply immediately."""
        async with self._session_factory() as session:
            stored = await repository.get_settings_map(session)
        return resolve_credentials(stored, self._settings)

    async def crawl(
        self,
        site_id: str,
        date_range: str = DEFAULT_DATE_RANGE,
        credentials: SearchCredentials | None = None,
        now: datetime | None = None,
    ) -> CrawlOutcome:
        """Crawl a site and write exactly one success or failure status.

        Raises ``SiteNotFoundError`` or ``SearchConfigError`` before touching
        the site; any later failure is recorded on the site and re-raised.
        """
        async with self._session_factory() as session:
            site = await repository.get_site(session, site_id)
            domain = site.domain

            if credentials is None:
                stored = await repository.get_settings_map(session)
                credentials = resolve_credentials(stored, self._settings)

            logger.info("crawling site", extra={"site_id": site_id, "domain": domain, "date_range": date_range})
            try:
                results = await self._search.search_site(domain, date_range, credentials, now=now)
                outcome = await ingest_results(session, site_id, results, now=now)
            except Exception as exc:
                message = str(exc) or "Unknown error"
                logger.warning(
                    "crawl failed",
                    extra={"site_id": site_id, "domain": domain, "error": message},
                    exc_info=True,
                )
                # Pages committed before the failure are kept
                await session.rollback()
                await repository.record_crawl_failure(session, site_id, message, now=now)
                raise

            await repository.record_crawl_success(session, site_id, now=now or utcnow())

        logger.info(
            "crawl complete",
            extra={
                "site_id": site_id,
                "domain": domain,
                "total_found": outcome.total_found,
                "new_pages": outcome.new_pages_count,
            },
        )
        return CrawlOutcome(
            site_id=site_id,
            new_pages_count=outcome.new_pages_count,
            total_found=outcome.total_found,
        )
