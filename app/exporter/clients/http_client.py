"""
HTTP client for the strichliste API.

Issues plain unauthenticated GET requests and decodes the JSON bodies
into records.
"""

from typing import List, Optional, Type, TypeVar

import httpx
import structlog
from pydantic import BaseModel

from app.exporter.clients.base import BaseAccountingClient
from app.exporter.models import SystemSnapshot, UserList, UserRecord

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)


class StrichlisteClient(BaseAccountingClient):
    """
    Client for a strichliste server.

    Errors are not wrapped:
    - httpx.HTTPError for connection failures and non-2xx responses
    - json.JSONDecodeError for bodies that aren't JSON
    - pydantic.ValidationError for JSON of the wrong shape
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Base URL of the strichliste API
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        super().__init__(base_url, timeout)
        self._transport = transport

    def get_source_name(self) -> str:
        return "http"

    async def fetch_system(self) -> SystemSnapshot:
        return await self._get("/metrics", SystemSnapshot)

    async def fetch_user_ids(self) -> List[int]:
        user_list = await self._get("/user", UserList)
        return user_list.ids()

    async def fetch_user(self, user_id: int) -> UserRecord:
        return await self._get(f"/user/{user_id}", UserRecord)

    async def _get(self, path: str, model: Type[ModelT]) -> ModelT:
        """GET ``{base}{path}`` and decode the body into ``model``.

        The client context closes the connection whether or not
        decoding succeeds.
        """
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            response = await client.get(path)
            logger.debug(
                "api.response",
                path=path,
                status=response.status_code,
                bytes=len(response.content),
            )
            response.raise_for_status()
            return model.model_validate(response.json())
