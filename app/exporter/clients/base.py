"""
Base strichliste API client interface.

Defines the contract that all accounting API clients must implement.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from app.exporter.models import SystemSnapshot, UserRecord


class BaseAccountingClient(ABC):
    """
    Abstract base class for strichliste API clients.

    Clients only fetch and decode. They perform no retries and do not
    interpret errors: whatever the transport or decoder raises reaches
    the caller unchanged.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30.0):
        """
        Initialize the client.

        Args:
            base_url: Base URL for the API
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/") if base_url else base_url
        self.timeout = timeout

    @abstractmethod
    async def fetch_system(self) -> SystemSnapshot:
        """
        Fetch system-wide figures from ``GET {base}/metrics``.

        Returns:
            Decoded system snapshot
        """
        pass

    @abstractmethod
    async def fetch_user_ids(self) -> List[int]:
        """
        Discover all user ids from ``GET {base}/user``.

        Returns:
            User ids in upstream order
        """
        pass

    @abstractmethod
    async def fetch_user(self, user_id: int) -> UserRecord:
        """
        Fetch one user's detail from ``GET {base}/user/{id}``.

        The record is returned as decoded, not normalized.

        Args:
            user_id: Upstream user id

        Returns:
            Decoded user record
        """
        pass

    @abstractmethod
    def get_source_name(self) -> str:
        """
        Get the name of this client, used in logs and status.

        Returns:
            Source identifier (e.g., 'http', 'mock')
        """
        pass


class APIError(Exception):
    """Base exception for API client errors raised by this package."""

    pass


class APIConnectionError(APIError):
    """Raised when connection to API fails."""

    pass
