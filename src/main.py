"""FastAPI app entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.api.routes import install_error_handlers, router
from src.config import get_settings
from src.db.session import create_engine, create_session_factory, init_db
from src.logging_config import setup_logging
from src.monitor.crawler import SiteCrawler
from src.monitor.scheduler import CrawlScheduler
from src.monitor.search import GoogleSearchClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # Initialize logging FIRST so all subsequent operations produce JSON logs
    setup_logging(settings.log_level)
    logger.info("starting site monitor")

    engine = create_engine(settings.database_url)
    await init_db(engine)
    session_factory = create_session_factory(engine)

    search_client = GoogleSearchClient(
        settings.google_search_url,
        timeout=settings.search_timeout_seconds,
    )
    crawler = SiteCrawler(session_factory, settings, search_client)
    scheduler = CrawlScheduler(crawler, session_factory)

    # Attach to app state for dependency injection
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.crawler = crawler
    app.state.scheduler = scheduler

    if settings.scheduler_enabled:
        scheduler.start()

    logger.info(
        "site monitor ready",
        extra={
            "scheduler_enabled": settings.scheduler_enabled,
            "search_configured_from_env": bool(settings.google_api_key and settings.google_cx),
        },
    )

    yield

    # Cleanup
    logger.info("shutting down site monitor")
    await scheduler.stop()
    await engine.dispose()


app = FastAPI(title="Site Monitor", lifespan=lifespan)
app.include_router(router)
install_error_handlers(app)


@app.get("/health")
async def health():
    return {"status": "ok"}
