"""Tests for the strichliste API clients."""

import json

import httpx
import pytest
from pydantic import ValidationError

from app.exporter.clients.base import APIConnectionError
from app.exporter.clients.http_client import StrichlisteClient
from app.exporter.clients.mock_client import CALL_LOG_SIZE, MockAccountingClient
from app.exporter.models import SystemSnapshot, UserRecord
from tests.fixtures.sample_payloads import (
    ALICE_PAYLOAD,
    SYSTEM_PAYLOAD,
    USER_LIST_PAYLOAD,
)

BASE_URL = "http://strichliste.test/api"


def routes_transport(routes, requests=None):
    """MockTransport answering GETs from a path -> (status, body) mapping."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        status, body = routes.get(request.url.path, (404, {"error": "not found"}))
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, content=body)

    return httpx.MockTransport(handler)


def make_client(routes, requests=None):
    return StrichlisteClient(
        BASE_URL, timeout=5.0, transport=routes_transport(routes, requests)
    )


@pytest.mark.asyncio
class TestStrichlisteClient:
    """Tests for the HTTP client."""

    async def test_fetch_system(self):
        requests = []
        client = make_client({"/api/metrics": (200, SYSTEM_PAYLOAD)}, requests)

        system = await client.fetch_system()

        assert system == SystemSnapshot(
            tx_count=10, avg_balance=2.5, user_count=3, balance=7.5
        )
        assert len(requests) == 1
        assert requests[0].method == "GET"
        assert str(requests[0].url) == f"{BASE_URL}/metrics"
        assert "authorization" not in requests[0].headers

    async def test_fetch_user_ids(self):
        client = make_client({"/api/user": (200, USER_LIST_PAYLOAD)})
        assert await client.fetch_user_ids() == [1, 2]

    async def test_fetch_user_ids_empty(self):
        client = make_client({"/api/user": (200, {"entries": []})})
        assert await client.fetch_user_ids() == []

    async def test_fetch_user_is_not_normalized(self):
        client = make_client({"/api/user/1": (200, ALICE_PAYLOAD)})

        user = await client.fetch_user(1)

        assert isinstance(user, UserRecord)
        assert user.name == "alice"
        assert user.weight == 12.5
        assert user.days == 40
        assert user.tx_count == 17
        tx = user.transactions[2]
        assert tx.id == 42
        assert tx.delta == -3.5
        assert tx.created_raw == "2024-01-01 10:00:00"
        assert tx.comment == "from Alice"
        assert tx.when is None
        assert tx.sender is None

    async def test_trailing_slash_in_base_url(self):
        requests = []
        client = StrichlisteClient(
            BASE_URL + "/",
            transport=routes_transport({"/api/metrics": (200, SYSTEM_PAYLOAD)}, requests),
        )
        await client.fetch_system()
        assert str(requests[0].url) == f"{BASE_URL}/metrics"

    async def test_http_error_status_propagates(self):
        client = make_client({"/api/user/9": (500, {"error": "boom"})})
        with pytest.raises(httpx.HTTPStatusError):
            await client.fetch_user(9)

    async def test_invalid_json_propagates(self):
        client = make_client({"/api/metrics": (200, b"<html>not json</html>")})
        with pytest.raises(json.JSONDecodeError):
            await client.fetch_system()

    async def test_unexpected_shape_propagates(self):
        client = make_client({"/api/metrics": (200, {"countUsers": "many"})})
        with pytest.raises(ValidationError):
            await client.fetch_system()

    async def test_transport_error_propagates(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = StrichlisteClient(BASE_URL, transport=httpx.MockTransport(handler))
        with pytest.raises(httpx.ConnectError):
            await client.fetch_user_ids()

    async def test_source_name(self):
        assert make_client({}).get_source_name() == "http"


@pytest.mark.asyncio
class TestMockClient:
    """Tests for MockAccountingClient."""

    async def test_serves_payloads(self):
        client = MockAccountingClient(system=SYSTEM_PAYLOAD, users={1: ALICE_PAYLOAD})

        assert (await client.fetch_system()).user_count == 3
        assert await client.fetch_user_ids() == [1]
        assert (await client.fetch_user(1)).name == "alice"
        assert list(client.calls) == ["/metrics", "/user", "/user/1"]

    async def test_simulated_failures(self):
        client = MockAccountingClient(system=SYSTEM_PAYLOAD, users={1: ALICE_PAYLOAD})
        client.fail_system = True
        client.fail_user_list = True
        client.failing_user_ids.add(1)

        with pytest.raises(APIConnectionError):
            await client.fetch_system()
        with pytest.raises(APIConnectionError):
            await client.fetch_user_ids()
        with pytest.raises(APIConnectionError):
            await client.fetch_user(1)

    async def test_unknown_user(self):
        client = MockAccountingClient()
        with pytest.raises(APIConnectionError):
            await client.fetch_user(404)

    async def test_demo_data_is_valid(self):
        client = MockAccountingClient.with_demo_data(seed=1)

        system = await client.fetch_system()
        user_ids = await client.fetch_user_ids()

        assert system.user_count == len(user_ids) == 5
        for user_id in user_ids:
            user = await client.fetch_user(user_id)
            assert user.tx_count == len(user.transactions)

    async def test_call_log_is_bounded(self):
        client = MockAccountingClient(system=SYSTEM_PAYLOAD)

        for _ in range(CALL_LOG_SIZE + 10):
            await client.fetch_system()

        assert len(client.calls) == CALL_LOG_SIZE
