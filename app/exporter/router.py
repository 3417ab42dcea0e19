"""
Scraper API routes.

Provides endpoints to inspect the scraper and to trigger a cycle by hand.
The Prometheus exposition itself lives at ``/metrics`` (see ``app.main``).
"""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from app.exporter.scraper import StrichlisteScraper

logger = structlog.get_logger()

router = APIRouter(prefix="/scraper", tags=["scraper"])


class ScrapeTriggerResponse(BaseModel):
    """Response for manual scrape trigger."""

    run_id: str
    status: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ScraperStatusResponse(BaseModel):
    """Response for scraper status."""

    running: bool
    source: str
    targets: str
    user_ids: List[int]
    interval_seconds: float
    last_scrape_time: Optional[str]
    total_runs: int
    last_run: Optional[Dict[str, Any]]
    recent_runs: List[Dict[str, Any]]


def get_scraper(request: Request) -> StrichlisteScraper:
    return request.app.state.scraper


@router.get("/status", response_model=ScraperStatusResponse)
async def scraper_status(request: Request):
    """Current scraper state and the most recent runs."""
    return ScraperStatusResponse(**get_scraper(request).get_status())


@router.post("/scrape", response_model=ScrapeTriggerResponse)
async def trigger_scrape(request: Request):
    """
    Run a scrape cycle now.

    Waits for a cycle already in progress to finish first. Counts as a
    regular cycle in the exported counters.
    """
    scraper = get_scraper(request)
    logger.info("scrape.manual_trigger")
    run = await scraper.scrape_once()

    return ScrapeTriggerResponse(
        run_id=run.run_id,
        status=run.status.value,
        message=(
            f"Scraped {run.users_scraped}/{run.targets} users "
            f"with {run.failure_count} failures"
        ),
        details=run.to_dict(),
    )
