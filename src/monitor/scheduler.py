"""Background loop that crawls every site whose interval has elapsed."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.db import repository
from src.db.models import SITE_STATUS_ERROR, Site, utcnow
from src.monitor.crawler import SiteCrawler
from src.monitor.due import is_due
from src.monitor.errors import SearchConfigError
from src.monitor.search import DEFAULT_DATE_RANGE, SearchCredentials

logger = logging.getLogger(__name__)

TICK_SECONDS = 60.0


def due_reference(site: Site) -> datetime | None:
    """Timestamp the interval is measured from.

    A failed crawl leaves ``last_crawled_at`` alone but bumps ``updated_at``,
    so failing sites wait a full interval before the next attempt.
    """
    if site.status == SITE_STATUS_ERROR:
        stamps = [s for s in (site.last_crawled_at, site.updated_at) if s is not None]
        return max(stamps) if stamps else None
    return site.last_crawled_at


class CrawlScheduler:
    """Owns the periodic crawl task. Construct once, ``start()`` at startup."""

    def __init__(
        self,
        crawler: SiteCrawler,
        session_factory: async_sessionmaker[AsyncSession],
        tick_seconds: float = TICK_SECONDS,
    ) -> None:
        self._crawler = crawler
        self._session_factory = session_factory
        self._tick_seconds = tick_seconds
        self._running = False
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start the loop; calling it again while running does nothing."""
        if self._running:
            logger.debug("scheduler already running")
            return
        self._running = True
        self._stop_event.clear()
        self._task = asyncio.create_task(self._loop(), name="crawl-scheduler")
        logger.info("scheduler started", extra={"tick_seconds": self._tick_seconds})

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._stop_event.set()
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        logger.info("scheduler stopped")

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._tick_seconds)
                break
            except asyncio.TimeoutError:
                pass
            try:
                await self.run_tick()
            except Exception:
                logger.exception("scheduler tick failed")

    async def run_tick(self, now: datetime | None = None) -> list[str]:
        """Crawl every due site one after another and return the ids attempted."""
        now = now or utcnow()
        logger.debug("checking for sites to crawl")

        async with self._session_factory() as session:
            sites = await repository.list_schedulable_sites(session)

        credentials: SearchCredentials | None = None
        attempted: list[str] = []
        for site in sites:
            if not is_due(now, due_reference(site), site.crawl_interval):
                continue

            if credentials is None:
                try:
                    credentials = await self._crawler.credentials()
                except SearchConfigError:
                    logger.info("search API not configured, skipping scheduled crawls")
                    return attempted

            attempted.append(site.id)
            try:
                # Each site is stamped with its own crawl time, not the tick time
                await self._crawler.crawl(site.id, DEFAULT_DATE_RANGE, credentials=credentials)
            except Exception:
                # The crawler has already stored the error on the site
                logger.warning(
                    "scheduled crawl failed",
                    extra={"site_id": site.id, "domain": site.domain},
                )

        if attempted:
            logger.info("scheduler tick complete", extra={"crawled": len(attempted)})
        return attempted
