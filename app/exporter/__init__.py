"""
Strichliste scraping and metrics export.

This module polls the strichliste API, normalizes the users' recent
transactions and republishes everything as Prometheus metrics.
"""

from app.exporter.clients.base import BaseAccountingClient
from app.exporter.clients.http_client import StrichlisteClient
from app.exporter.clients.mock_client import MockAccountingClient
from app.exporter.config import ScraperConfig
from app.exporter.metrics import ExporterMetrics
from app.exporter.scraper import StrichlisteScraper

__all__ = [
    "BaseAccountingClient",
    "ExporterMetrics",
    "MockAccountingClient",
    "ScraperConfig",
    "StrichlisteClient",
    "StrichlisteScraper",
]
