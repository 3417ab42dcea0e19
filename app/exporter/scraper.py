"""
Strichliste scraper service.

Periodically fetches system and user figures from the strichliste API,
normalizes them and writes them into the exporter's Prometheus metrics.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
import structlog

from app.exporter.clients.base import APIError, BaseAccountingClient
from app.exporter.clients.http_client import StrichlisteClient
from app.exporter.clients.mock_client import MockAccountingClient
from app.exporter.config import FixedTargets, ScraperConfig
from app.exporter.history import ScrapeHistory, ScrapeRun, ScrapeStatus
from app.exporter.metrics import ExporterMetrics
from app.exporter.models import UserRecord
from app.exporter.normalizer import normalize_user
from app.exporter.window import settled_transactions

logger = structlog.get_logger()

# Transport, decode and normalization failures. JSONDecodeError,
# pydantic's ValidationError and TimestampParseError are ValueErrors.
SCRAPE_ERRORS = (httpx.HTTPError, APIError, ValueError)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_client(config: ScraperConfig) -> BaseAccountingClient:
    """Create the API client named by the config."""
    if config.api_client_type == "mock":
        return MockAccountingClient.with_demo_data()
    return StrichlisteClient(config.api_base_url, timeout=config.api_timeout)


class StrichlisteScraper:
    """
    Scrape loop for a strichliste server.

    One cycle fetches the system figures, resolves the target users and
    fetches each of them in turn. Failures are logged and counted but
    never stop the loop; the next tick is the retry.
    """

    def __init__(
        self,
        config: ScraperConfig,
        client: Optional[BaseAccountingClient] = None,
        metrics: Optional[ExporterMetrics] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the scraper.

        Args:
            config: Validated scraper configuration
            client: API client (defaults to the one named by the config)
            metrics: Metric catalog to write into (defaults to a fresh one)
            clock: Source of "now" for the delta window, must return aware datetimes
        """
        self.config = config
        self.client = client or create_client(config)
        self.metrics = metrics or ExporterMetrics()
        self.history = ScrapeHistory(config.history_size)
        self._clock = clock or _utcnow

        # Fixed for the process in fixed mode, refreshed every cycle otherwise
        self._user_ids: List[int] = (
            list(config.targets.user_ids)
            if isinstance(config.targets, FixedTargets)
            else []
        )

        self._cycle_lock = asyncio.Lock()
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._last_scrape_time: Optional[datetime] = None

        logger.info(
            "scraper.initialized",
            client_type=self.client.get_source_name(),
            api=config.api_base_url,
            interval_seconds=config.get_interval_seconds(),
            targets=config.targets.mode,
            user_ids=self._user_ids or None,
        )

    @property
    def running(self) -> bool:
        return self._running

    @property
    def user_ids(self) -> List[int]:
        """The current target list (last successful discovery in discover mode)."""
        return list(self._user_ids)

    async def start(self):
        """
        Start the scrape loop in the background.

        The first cycle runs immediately, then one per interval.
        """
        if self._running:
            logger.warning("scraper.already_running")
            return

        self._running = True
        self._task = asyncio.create_task(self._scrape_loop())
        logger.info("scraper.started", interval_seconds=self.config.get_interval_seconds())

    async def stop(self):
        """Stop the scrape loop, cancelling a cycle in flight."""
        if not self._running:
            logger.debug("scraper.not_running")
            return

        self._running = False
        logger.info("scraper.stopping")

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("scraper.stopped")

    async def _scrape_loop(self):
        """Run cycles on a fixed grid of ticks.

        A cycle that overruns one or more ticks is followed by a single
        catch-up cycle; the missed ticks are coalesced.
        """
        loop = asyncio.get_running_loop()
        interval = self.config.get_interval_seconds()
        next_tick = loop.time()

        while self._running:
            try:
                await self.scrape_once()
            except asyncio.CancelledError:
                logger.info("scrape_loop.cancelled")
                raise
            except Exception as e:
                logger.error(
                    "scrape_loop.error",
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )

            next_tick += interval
            now = loop.time()
            if now > next_tick:
                missed = int((now - next_tick) // interval)
                next_tick += missed * interval
                logger.warning(
                    "scrape_loop.overrun",
                    ticks_coalesced=missed + 1,
                    interval_seconds=interval,
                )
            await asyncio.sleep(max(0.0, next_tick - now))

    async def scrape_once(self) -> ScrapeRun:
        """
        Execute a single scrape cycle.

        Cycles are serialized: a call made while another cycle is running
        waits for it to finish.

        Returns:
            Summary of the finished run
        """
        async with self._cycle_lock:
            return await self._scrape()

    async def _scrape(self) -> ScrapeRun:
        self.metrics.record_cycle()
        run = self.history.start_run()
        log = logger.bind(run_id=run.run_id)
        log.info(
            "scrape.started",
            source=self.client.get_source_name(),
            targets=self.config.targets.mode,
        )

        try:
            system = await self.client.fetch_system()
        except SCRAPE_ERRORS as e:
            self._record_failure(log, "scrape.system_failed", e)
        else:
            self.metrics.set_system(system)
            run.system_updated = True
            log.debug(
                "scrape.system_updated",
                users=system.user_count,
                transactions=system.tx_count,
            )

        if not isinstance(self.config.targets, FixedTargets):
            try:
                self._user_ids = await self.client.fetch_user_ids()
            except SCRAPE_ERRORS as e:
                self._record_failure(log, "scrape.user_list_failed", e)
                return self._finish(log, ScrapeStatus.FAILED)
            log.debug("scrape.users_discovered", count=len(self._user_ids))

        run.targets = len(self._user_ids)
        for user_id in self._user_ids:
            try:
                user = normalize_user(
                    await self.client.fetch_user(user_id), self.config.tz
                )
            except SCRAPE_ERRORS as e:
                self._record_failure(log, "scrape.user_failed", e, user_id=user_id)
                continue

            run.deltas_exposed += self._update_user(user)
            run.users_scraped += 1

        status = ScrapeStatus.PARTIAL if run.failure_count else ScrapeStatus.SUCCESS
        return self._finish(log, status)

    def _update_user(self, user: UserRecord) -> int:
        """Write one user's gauges and rebuild their settled deltas."""
        self.metrics.set_user(user)
        settled = settled_transactions(
            user.transactions, self.config.interval, self._clock()
        )
        return self.metrics.replace_deltas(user.name, settled)

    def _record_failure(self, log, event: str, error: Exception, **context: Any):
        self.metrics.record_failure()
        self.history.record_failure(f"{event}: {error}")
        log.error(event, error=str(error), error_type=type(error).__name__, **context)

    def _finish(self, log, status: ScrapeStatus) -> ScrapeRun:
        run = self.history.end_run(status)
        self._last_scrape_time = run.ended_at
        log.info(
            "scrape.completed",
            status=status.value,
            system_updated=run.system_updated,
            users_scraped=run.users_scraped,
            targets=run.targets,
            deltas=run.deltas_exposed,
            failures=run.failure_count,
            duration_seconds=run.duration_seconds,
        )
        return run

    def get_status(self) -> Dict[str, Any]:
        """
        Get current scraper status.

        Returns:
            Status dictionary
        """
        last_run = self.history.get_last_run()
        return {
            "running": self._running,
            "source": self.client.get_source_name(),
            "targets": self.config.targets.mode,
            "user_ids": self.user_ids,
            "interval_seconds": self.config.get_interval_seconds(),
            "last_scrape_time": (
                self._last_scrape_time.isoformat() if self._last_scrape_time else None
            ),
            "total_runs": self.history.total_runs,
            "last_run": last_run.to_dict() if last_run else None,
            "recent_runs": [run.to_dict() for run in self.history.get_recent_runs()],
        }
