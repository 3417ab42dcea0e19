"""
Scrape run history.

Keeps summaries of recent scrape cycles in memory for the status route
and logs. The Prometheus counters in ``app.exporter.metrics`` are the
exported record; this is the operator's view of individual runs.
"""

from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Optional


class ScrapeStatus(str, Enum):
    """Outcome of a scrape cycle."""

    SUCCESS = "success"
    PARTIAL = "partial"  # Some fetches failed, the rest were exported
    FAILED = "failed"  # Nothing past the system fetch was exported


@dataclass
class ScrapeRun:
    """Summary of a single scrape cycle."""

    run_id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    status: ScrapeStatus = ScrapeStatus.SUCCESS
    duration_seconds: float = 0.0

    system_updated: bool = False
    targets: int = 0
    users_scraped: int = 0
    deltas_exposed: int = 0

    errors: List[str] = field(default_factory=list)
    failure_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["ended_at"] = self.ended_at.isoformat() if self.ended_at else None
        data["status"] = self.status.value
        return data


class ScrapeHistory:
    """
    In-memory tracker of the current and recent scrape runs.

    Only the scrape loop writes to it; cycles never overlap so there is
    at most one current run.
    """

    def __init__(self, history_size: int = 100):
        self.history_size = history_size
        self._current_run: Optional[ScrapeRun] = None
        self._history: Deque[ScrapeRun] = deque(maxlen=history_size)
        self._run_counter = 0

    def start_run(self) -> ScrapeRun:
        self._run_counter += 1
        started_at = datetime.now(timezone.utc)
        run_id = f"scrape-{started_at.strftime('%Y%m%d-%H%M%S')}-{self._run_counter}"
        self._current_run = ScrapeRun(run_id=run_id, started_at=started_at)
        return self._current_run

    def record_failure(self, error: str):
        if self._current_run:
            self._current_run.errors.append(error)
            self._current_run.failure_count += 1

    def end_run(self, status: ScrapeStatus) -> Optional[ScrapeRun]:
        """Close the current run and move it into history."""
        run = self._current_run
        if not run:
            return None

        run.ended_at = datetime.now(timezone.utc)
        run.status = status
        run.duration_seconds = (run.ended_at - run.started_at).total_seconds()

        self._history.append(run)
        self._current_run = None
        return run

    def get_current_run(self) -> Optional[ScrapeRun]:
        return self._current_run

    def get_last_run(self) -> Optional[ScrapeRun]:
        return self._history[-1] if self._history else None

    def get_recent_runs(self, limit: int = 10) -> List[ScrapeRun]:
        """Most recent runs first."""
        return list(reversed(self._history))[:limit]

    @property
    def total_runs(self) -> int:
        return self._run_counter
