"""Service layer — turns repository rows into API payloads for the routes."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.api.schemas import (
    CrawlRequest,
    CrawlResponse,
    PageList,
    PageOut,
    SiteCreate,
    SiteOut,
    SiteRef,
    SiteUpdate,
)
from src.db import repository
from src.db.models import Page, Site
from src.monitor.crawler import SiteCrawler
from src.monitor.due import DEFAULT_INTERVAL

logger = logging.getLogger(__name__)


def site_out(site: Site, page_count: int = 0) -> SiteOut:
    return SiteOut.model_validate(site).model_copy(update={"page_count": page_count})


def page_out(page: Page, include_site: bool = False) -> PageOut:
    # Built field by field so an unloaded ``page.site`` is never touched
    return PageOut(
        id=page.id,
        site_id=page.site_id,
        url=page.url,
        title=page.title,
        discovered_at=page.discovered_at,
        is_read=page.is_read,
        created_at=page.created_at,
        site=SiteRef.model_validate(page.site) if include_site else None,
    )


async def list_sites(session: AsyncSession) -> list[SiteOut]:
    return [site_out(site, count) for site, count in await repository.list_sites(session)]


async def get_site(session: AsyncSession, site_id: str) -> SiteOut:
    site = await repository.get_site(session, site_id)
    return site_out(site, await repository.count_pages(session, site_id))


async def create_site(session: AsyncSession, body: SiteCreate) -> SiteOut:
    site = await repository.create_site(
        session,
        name=body.name,
        domain=body.domain,
        crawl_interval=body.crawl_interval or DEFAULT_INTERVAL,
    )
    return site_out(site)


async def update_site(session: AsyncSession, site_id: str, body: SiteUpdate) -> SiteOut:
    site = await repository.update_site(
        session,
        site_id,
        name=body.name,
        domain=body.domain,
        crawl_interval=body.crawl_interval,
    )
    return site_out(site, await repository.count_pages(session, site_id))


async def list_pages(
    session: AsyncSession,
    site_id: str | None,
    is_read: str | None,
    search: str | None,
    limit: int,
    offset: int,
) -> PageList:
    """``is_read`` is the raw query value.

    Empty means no filter, ``true`` selects read pages and any other value unread ones.
    """
    read_filter = is_read.lower() == "true" if is_read else None
    pages, total, unread = await repository.list_pages(
        session,
        site_id=site_id,
        is_read=read_filter,
        search=search,
        limit=limit,
        offset=offset,
    )
    return PageList(
        pages=[page_out(page, include_site=True) for page in pages],
        total=total,
        unread_count=unread,
        limit=limit,
        offset=offset,
    )


async def crawl_site(crawler: SiteCrawler, body: CrawlRequest) -> CrawlResponse:
    logger.info("on-demand crawl requested", extra={"site_id": body.site_id, "date_range": body.date_range})
    outcome = await crawler.crawl(body.site_id, body.date_range)
    return CrawlResponse(
        success=True,
        new_pages_count=outcome.new_pages_count,
        total_found=outcome.total_found,
    )
