"""Fixtures — temp SQLite database, crawler, ASGI test client, mocked search HTTP."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from src.api.routes import install_error_handlers, router
from src.config import Settings
from src.db.session import create_engine, create_session_factory, init_db
from src.monitor.crawler import SiteCrawler
from src.monitor.search import GoogleSearchClient
from tests.helpers import SEARCH_URL

# Bound at import so patching httpx.AsyncClient for the search client leaves the test client alone
_AsyncClient = httpx.AsyncClient
_ASGITransport = httpx.ASGITransport


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        google_api_key="",
        google_cx="",
        google_search_url=SEARCH_URL,
        scheduler_enabled=False,
    )


@pytest_asyncio.fixture
async def engine(settings: Settings):
    engine = create_engine(settings.database_url)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def crawler(session_factory, settings: Settings) -> SiteCrawler:
    return SiteCrawler(session_factory, settings, GoogleSearchClient(SEARCH_URL))


@pytest_asyncio.fixture
async def client(session_factory, settings: Settings, crawler: SiteCrawler):
    """ASGI client against the routes, without the lifespan (no scheduler)."""
    app = FastAPI()
    app.include_router(router)
    install_error_handlers(app)
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.crawler = crawler

    async with _AsyncClient(transport=_ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def search_http():
    """The ``httpx.AsyncClient`` used by the search client; set ``.get.side_effect``."""
    with patch("src.monitor.search.httpx.AsyncClient") as mock_client:
        ctx = AsyncMock()
        mock_client.return_value.__aenter__ = AsyncMock(return_value=ctx)
        mock_client.return_value.__aexit__ = AsyncMock(return_value=False)
        yield ctx

