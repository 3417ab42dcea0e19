"""Strichliste API client implementations."""

from app.exporter.clients.base import (
    APIConnectionError,
    APIError,
    BaseAccountingClient,
)
from app.exporter.clients.http_client import StrichlisteClient
from app.exporter.clients.mock_client import MockAccountingClient

__all__ = [
    "APIConnectionError",
    "APIError",
    "BaseAccountingClient",
    "MockAccountingClient",
    "StrichlisteClient",
]
