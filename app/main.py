from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response

from app.core.config import Settings, get_settings
from app.core.durations import format_duration
from app.core.logging import configure_logging, request_id_middleware
from app.exporter.config import ScraperConfig
from app.exporter.router import router as scraper_router
from app.exporter.scraper import StrichlisteScraper

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    scraper: Optional[StrichlisteScraper] = None,
) -> FastAPI:
    """Build the exporter app.

    Args:
        settings: Process settings (defaults to environment/.env)
        scraper: Pre-built scraper; built from the settings when omitted

    Raises:
        ConfigError: If the settings don't form a valid scraper config
    """
    settings = settings or get_settings()
    if scraper is None:
        scraper = StrichlisteScraper(ScraperConfig.from_settings(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start the scrape loop with the app and stop it on shutdown."""
        config = scraper.config
        logger.info("Starting strichliste exporter")
        logger.info(f"Environment: {settings.ENV}")
        logger.info(f"Upstream: {config.api_base_url} ({scraper.client.get_source_name()})")
        logger.info(f"Scrape interval: {format_duration(config.interval)}")
        if config.targets.mode == "fixed":
            logger.info(f"Scraping users: {', '.join(map(str, scraper.user_ids))}")
        else:
            logger.info("Scraping all users (discovered every cycle)")

        await scraper.start()

        yield

        logger.info("Shutting down strichliste exporter")
        await scraper.stop()

    app = FastAPI(title="Strichliste Exporter", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.scraper = scraper
    app.middleware("http")(request_id_middleware)
    app.include_router(scraper_router)

    @app.get("/metrics")
    def metrics(request: Request):
        """Prometheus exposition of the exporter's registry."""
        body, content_type = scraper.metrics.render(request.headers.get("accept"))
        return Response(content=body, media_type=content_type)

    @app.get("/")
    def health_check():
        return {"status": "ok"}

    @app.get("/healthz")
    def healthz():
        logger.debug(f"Healthz endpoint called (env: {settings.ENV})")
        return {"status": "healthy", "env": settings.ENV, "scraper_running": scraper.running}

    return app


def build_default_app() -> FastAPI:
    """App factory for ``uvicorn app.main:build_default_app --factory``."""
    settings = get_settings()
    configure_logging(settings.ENV, settings.DEBUG)
    return create_app(settings)
