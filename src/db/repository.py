"""Database reads and writes for sites, pages and settings.

Every function takes an ``AsyncSession`` and commits its own work. There is
no surrounding transaction across calls: a crawl is a sequence of separate
statements, so a crash part-way leaves earlier writes in place.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.db.models import (
    SITE_STATUS_ACTIVE,
    SITE_STATUS_ERROR,
    Page,
    Setting,
    Site,
    utcnow,
)
from src.monitor.domains import normalize_domain
from src.monitor.errors import DuplicateDomainError, PageNotFoundError, SiteNotFoundError

logger = logging.getLogger(__name__)


# --- sites ---


def _page_counts():
    return (
        select(Page.site_id, func.count(Page.id).label("page_count"))
        .group_by(Page.site_id)
        .subquery()
    )


async def list_sites(session: AsyncSession) -> list[tuple[Site, int]]:
    """All sites, newest first, each paired with its page count."""
    counts = _page_counts()
    stmt = (
        select(Site, func.coalesce(counts.c.page_count, 0))
        .outerjoin(counts, counts.c.site_id == Site.id)
        .order_by(Site.created_at.desc())
    )
    rows = (await session.execute(stmt)).all()
    return [(site, int(count)) for site, count in rows]


async def get_site(session: AsyncSession, site_id: str) -> Site:
    site = await session.get(Site, site_id)
    if site is None:
        raise SiteNotFoundError(site_id)
    return site


async def count_pages(session: AsyncSession, site_id: str) -> int:
    stmt = select(func.count(Page.id)).where(Page.site_id == site_id)
    return int((await session.execute(stmt)).scalar_one())


async def _domain_taken(session: AsyncSession, domain: str, exclude_id: str | None = None) -> bool:
    stmt = select(Site.id).where(Site.domain == domain)
    if exclude_id is not None:
        stmt = stmt.where(Site.id != exclude_id)
    return (await session.execute(stmt.limit(1))).first() is not None


async def create_site(
    session: AsyncSession,
    name: str,
    domain: str,
    crawl_interval: str = "1d",
) -> Site:
    clean_domain = normalize_domain(domain)
    if await _domain_taken(session, clean_domain):
        raise DuplicateDomainError("This domain already exists")

    site = Site(name=name, domain=clean_domain, crawl_interval=crawl_interval)
    session.add(site)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise DuplicateDomainError("This domain already exists") from exc
    logger.info("site created", extra={"site_id": site.id, "domain": clean_domain})
    return site


async def update_site(
    session: AsyncSession,
    site_id: str,
    name: str | None = None,
    domain: str | None = None,
    crawl_interval: str | None = None,
) -> Site:
    """Apply the given non-empty fields; a changed domain must stay unique."""
    site = await get_site(session, site_id)

    if domain:
        clean_domain = normalize_domain(domain)
        if await _domain_taken(session, clean_domain, exclude_id=site_id):
            raise DuplicateDomainError("This domain is already used by another site")
        site.domain = clean_domain
    if name:
        site.name = name
    if crawl_interval:
        site.crawl_interval = crawl_interval

    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise DuplicateDomainError("This domain is already used by another site") from exc
    return site


async def delete_site(session: AsyncSession, site_id: str) -> None:
    """Delete a site together with every page it owns."""
    site = await get_site(session, site_id)
    await session.execute(delete(Page).where(Page.site_id == site_id))
    await session.delete(site)
    await session.commit()
    logger.info("site deleted", extra={"site_id": site_id, "domain": site.domain})


async def list_schedulable_sites(session: AsyncSession) -> list[Site]:
    """Sites the scheduler considers each tick, including ones whose last crawl failed."""
    stmt = select(Site).where(Site.status.in_((SITE_STATUS_ACTIVE, SITE_STATUS_ERROR)))
    return list((await session.execute(stmt)).scalars().all())


async def record_crawl_success(session: AsyncSession, site_id: str, now: datetime | None = None) -> None:
    now = now or utcnow()
    await session.execute(
        update(Site)
        .where(Site.id == site_id)
        .values(
            status=SITE_STATUS_ACTIVE,
            last_crawled_at=now,
            error_message=None,
            updated_at=now,
        )
    )
    await session.commit()


async def record_crawl_failure(
    session: AsyncSession, site_id: str, message: str, now: datetime | None = None
) -> None:
    """Flag the site as failing; ``last_crawled_at`` keeps its previous value."""
    await session.execute(
        update(Site)
        .where(Site.id == site_id)
        .values(status=SITE_STATUS_ERROR, error_message=message, updated_at=now or utcnow())
    )
    await session.commit()


# --- pages ---


async def list_pages(
    session: AsyncSession,
    site_id: str | None = None,
    is_read: bool | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Page], int, int]:
    """Return ``(pages, total, unread_count)`` for the filter, newest discoveries first.

    ``unread_count`` ignores the ``is_read`` filter and counts unread pages only.
    """
    conditions = []
    if site_id:
        conditions.append(Page.site_id == site_id)
    if search:
        needle = search.lower()
        conditions.append(
            or_(
                func.lower(Page.title).contains(needle, autoescape=True),
                func.lower(Page.url).contains(needle, autoescape=True),
            )
        )

    filtered = list(conditions)
    if is_read is not None:
        filtered.append(Page.is_read.is_(is_read))

    stmt = (
        select(Page)
        .options(selectinload(Page.site))
        .where(*filtered)
        .order_by(Page.discovered_at.desc(), Page.id)
        .limit(limit)
        .offset(offset)
    )
    pages = list((await session.execute(stmt)).scalars().all())

    total = (await session.execute(select(func.count(Page.id)).where(*filtered))).scalar_one()
    unread = (
        await session.execute(
            select(func.count(Page.id)).where(*conditions, Page.is_read.is_(False))
        )
    ).scalar_one()
    return pages, int(total), int(unread)


async def set_page_read(session: AsyncSession, page_id: str, is_read: bool) -> Page:
    page = await session.get(Page, page_id)
    if page is None:
        raise PageNotFoundError(page_id)
    page.is_read = is_read
    await session.commit()
    return page


async def mark_all_read(session: AsyncSession, site_id: str | None = None) -> int:
    stmt = update(Page).where(Page.is_read.is_(False)).values(is_read=True)
    if site_id:
        stmt = stmt.where(Page.site_id == site_id)
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount or 0


async def known_urls(session: AsyncSession, site_id: str) -> set[str]:
    rows = await session.execute(select(Page.url).where(Page.site_id == site_id))
    return set(rows.scalars().all())


async def insert_page(
    session: AsyncSession,
    site_id: str,
    url: str,
    title: str,
    now: datetime | None = None,
) -> bool:
    """Insert one unread page. Returns ``False`` if the store already holds the URL."""
    now = now or utcnow()
    session.add(Page(site_id=site_id, url=url, title=title, discovered_at=now, is_read=False))
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.debug("duplicate page ignored", extra={"site_id": site_id, "url": url})
        return False
    return True


# --- settings ---


async def get_settings_map(session: AsyncSession) -> dict[str, str]:
    rows = (await session.execute(select(Setting))).scalars().all()
    return {row.key: row.value for row in rows}


async def upsert_settings(session: AsyncSession, values: dict[str, str]) -> None:
    for key, value in values.items():
        existing = await session.get(Setting, key)
        if existing is None:
            session.add(Setting(key=key, value=value))
        else:
            existing.value = value
    await session.commit()
