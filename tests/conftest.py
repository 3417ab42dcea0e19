import copy
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure project root is on sys.path so `import app` works when running pytest from root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.exporter.clients.mock_client import MockAccountingClient  # noqa: E402
from app.exporter.config import DiscoverTargets, ScraperConfig  # noqa: E402
from app.exporter.metrics import ExporterMetrics  # noqa: E402
from tests.fixtures.sample_payloads import (  # noqa: E402
    ALICE_PAYLOAD,
    BOB_PAYLOAD,
    SYSTEM_PAYLOAD,
)

# Two days after the sample transactions; 24h interval settles most of them.
NOW = datetime(2024, 1, 3, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def metrics():
    """A fresh metric catalog on its own registry."""
    return ExporterMetrics()


@pytest.fixture
def mock_client():
    """Mock client serving alice (1) and bob (2)."""
    return MockAccountingClient(
        system=copy.deepcopy(SYSTEM_PAYLOAD),
        users={1: copy.deepcopy(ALICE_PAYLOAD), 2: copy.deepcopy(BOB_PAYLOAD)},
    )


@pytest.fixture
def discover_config():
    return ScraperConfig(
        api_client_type="mock",
        interval=timedelta(hours=24),
        targets=DiscoverTargets(),
    )


def sample(metrics: ExporterMetrics, name: str, **labels):
    """Read one sample from the metrics' registry (None if absent)."""
    return metrics.registry.get_sample_value(name, labels or None)


def delta_series(metrics: ExporterMetrics):
    """All exposed (user, id, from, to) -> value pairs of strichliste_tx."""
    series = {}
    for family in metrics.registry.collect():
        if family.name != "strichliste_tx":
            continue
        for s in family.samples:
            key = (s.labels["user"], s.labels["id"], s.labels["from"], s.labels["to"])
            series[key] = s.value
    return series
