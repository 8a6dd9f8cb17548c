"""Sites, pages, crawl and settings endpoint handlers."""

from __future__ import annotations

import logging
from typing import Any, AsyncGenerator, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.api import service
from src.api.schemas import (
    CrawlRequest,
    CrawlResponse,
    PageList,
    PageOut,
    PageUpdate,
    SiteCreate,
    SiteOut,
    SiteUpdate,
    SuccessResponse,
)
from src.db import repository
from src.monitor.crawler import SiteCrawler
from src.monitor.errors import (
    MonitorError,
    PageNotFoundError,
    SearchProviderError,
    SiteNotFoundError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.session_factory() as session:
        yield session


def _get_crawler(request: Request) -> SiteCrawler:
    return request.app.state.crawler


def _http_error(exc: MonitorError) -> HTTPException:
    if isinstance(exc, (SiteNotFoundError, PageNotFoundError)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, SearchProviderError):
        return HTTPException(status_code=500, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    detail = f"{field}: {message}" if field else message
    return JSONResponse(status_code=400, content={"detail": detail})


def install_error_handlers(app: FastAPI) -> None:
    """Answer malformed request bodies with 400 rather than FastAPI's 422."""
    app.add_exception_handler(RequestValidationError, _validation_error_handler)


# --- sites ---


@router.get("/sites", response_model=list[SiteOut])
async def list_sites(session: AsyncSession = Depends(_get_session)):
    return await service.list_sites(session)


@router.post("/sites", response_model=SiteOut, status_code=201)
async def create_site(body: SiteCreate, session: AsyncSession = Depends(_get_session)):
    try:
        return await service.create_site(session, body)
    except MonitorError as exc:
        raise _http_error(exc) from exc


@router.get("/sites/{site_id}", response_model=SiteOut)
async def get_site(site_id: str, session: AsyncSession = Depends(_get_session)):
    try:
        return await service.get_site(session, site_id)
    except MonitorError as exc:
        raise _http_error(exc) from exc


@router.put("/sites/{site_id}", response_model=SiteOut)
async def update_site(
    site_id: str,
    body: SiteUpdate,
    session: AsyncSession = Depends(_get_session),
):
    try:
        return await service.update_site(session, site_id, body)
    except MonitorError as exc:
        raise _http_error(exc) from exc


@router.delete("/sites/{site_id}", response_model=SuccessResponse)
async def delete_site(site_id: str, session: AsyncSession = Depends(_get_session)):
    try:
        await repository.delete_site(session, site_id)
    except MonitorError as exc:
        raise _http_error(exc) from exc
    return SuccessResponse()


# --- crawl ---


@router.post("/crawl", response_model=CrawlResponse)
async def crawl(body: CrawlRequest, crawler: SiteCrawler = Depends(_get_crawler)):
    try:
        return await service.crawl_site(crawler, body)
    except MonitorError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:
        logger.exception("crawl failed", extra={"site_id": body.site_id})
        raise HTTPException(status_code=500, detail=str(exc) or "Failed to crawl") from exc


# --- pages ---


@router.get("/pages", response_model=PageList)
async def list_pages(
    site_id: Optional[str] = Query(None, alias="siteId"),
    is_read: Optional[str] = Query(None, alias="isRead"),
    search: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(_get_session),
):
    return await service.list_pages(session, site_id, is_read, search, limit, offset)


# Registered before /pages/{page_id} so "read-all" is not taken as an id
@router.put("/pages/read-all", response_model=SuccessResponse)
async def mark_all_read(
    site_id: Optional[str] = Query(None, alias="siteId"),
    session: AsyncSession = Depends(_get_session),
):
    count = await repository.mark_all_read(session, site_id)
    logger.info("pages marked read", extra={"site_id": site_id, "count": count})
    return SuccessResponse()


@router.put("/pages/{page_id}", response_model=PageOut)
async def update_page(
    page_id: str,
    body: PageUpdate,
    session: AsyncSession = Depends(_get_session),
):
    try:
        page = await repository.set_page_read(session, page_id, body.is_read)
    except MonitorError as exc:
        raise _http_error(exc) from exc
    return service.page_out(page)


# --- settings ---


@router.get("/settings", response_model=dict[str, str])
async def get_settings_map(session: AsyncSession = Depends(_get_session)):
    return await repository.get_settings_map(session)


@router.put("/settings", response_model=SuccessResponse)
async def update_settings(
    body: dict[str, Any] = Body(...),
    session: AsyncSession = Depends(_get_session),
):
    # Non-string values are ignored rather than rejected
    values = {key: value for key, value in body.items() if isinstance(value, str)}
    await repository.upsert_settings(session, values)
    logger.info("settings updated", extra={"keys": sorted(values)})
    return SuccessResponse()
