"""
Mock strichliste API client for testing and development.

Serves an in-memory ledger instead of talking to a real server, with
switches to simulate failures of each endpoint.
"""

import asyncio
import random
from collections import deque
from datetime import datetime, timedelta
from typing import Any, Deque, Dict, List, Optional, Set

from app.exporter.clients.base import APIConnectionError, BaseAccountingClient
from app.exporter.models import SystemSnapshot, UserRecord

DEMO_NAMES = ["alice", "bob", "carol", "dave", "erin"]
DEMO_COMMENTS = [None, None, "coffee", "club mate", "from {peer}", "to {peer}"]
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Most recent request paths kept in ``calls``
CALL_LOG_SIZE = 100


class MockAccountingClient(BaseAccountingClient):
    """
    Mock API client backed by raw upstream-shaped payloads.

    Payloads are decoded through the same models as the HTTP client, so
    malformed fixtures fail the way a malformed upstream response would.
    """

    def __init__(
        self,
        system: Optional[Dict[str, Any]] = None,
        users: Optional[Dict[int, Dict[str, Any]]] = None,
        latency_ms: int = 0,
    ):
        """
        Initialize mock client.

        Args:
            system: Raw ``/metrics`` payload
            users: Raw ``/user/{id}`` payloads keyed by user id
            latency_ms: Simulated network latency in milliseconds
        """
        super().__init__(base_url=None)
        self.system = system
        self.users: Dict[int, Dict[str, Any]] = dict(users or {})
        self.latency_ms = latency_ms

        self.fail_system = False
        self.fail_user_list = False
        self.failing_user_ids: Set[int] = set()
        self.calls: Deque[str] = deque(maxlen=CALL_LOG_SIZE)

    @classmethod
    def with_demo_data(cls, seed: int = 0) -> "MockAccountingClient":
        """Build a client with a small generated ledger for development."""
        rng = random.Random(seed)
        now = datetime.now().replace(microsecond=0)
        users: Dict[int, Dict[str, Any]] = {}
        tx_id = 0

        for user_id, name in enumerate(DEMO_NAMES, 1):
            transactions = []
            for _ in range(rng.randint(2, 6)):
                tx_id += 1
                comment = rng.choice(DEMO_COMMENTS)
                if comment:
                    comment = comment.format(peer=rng.choice(DEMO_NAMES))
                when = now - timedelta(hours=rng.randint(1, 96))
                transactions.append(
                    {
                        "id": tx_id,
                        "createDate": when.strftime(TIMESTAMP_FORMAT),
                        "value": round(rng.uniform(-5, 10), 2),
                        "comment": comment,
                    }
                )
            transactions.sort(key=lambda tx: tx["createDate"], reverse=True)
            users[user_id] = {
                "name": name,
                "weightedCountOfPurchases": round(rng.uniform(0, 40), 2),
                "activeDays": rng.randint(1, 300),
                "balance": round(sum(tx["value"] for tx in transactions), 2),
                "countOfTransactions": len(transactions),
                "transactions": transactions,
            }

        balances = [user["balance"] for user in users.values()]
        system = {
            "countTransactions": tx_id,
            "avgBalance": round(sum(balances) / len(balances), 2),
            "countUsers": len(users),
            "overallBalance": round(sum(balances), 2),
        }
        return cls(system=system, users=users)

    def get_source_name(self) -> str:
        return "mock"

    async def fetch_system(self) -> SystemSnapshot:
        await self._simulate_latency()
        self.calls.append("/metrics")
        if self.fail_system or self.system is None:
            raise APIConnectionError("Simulated failure fetching /metrics")
        return SystemSnapshot.model_validate(self.system)

    async def fetch_user_ids(self) -> List[int]:
        await self._simulate_latency()
        self.calls.append("/user")
        if self.fail_user_list:
            raise APIConnectionError("Simulated failure fetching /user")
        return list(self.users)

    async def fetch_user(self, user_id: int) -> UserRecord:
        await self._simulate_latency()
        self.calls.append(f"/user/{user_id}")
        if user_id in self.failing_user_ids or user_id not in self.users:
            raise APIConnectionError(f"Simulated failure fetching /user/{user_id}")
        return UserRecord.model_validate(self.users[user_id])

    async def _simulate_latency(self):
        """Simulate network latency."""
        if self.latency_ms > 0:
            await asyncio.sleep(self.latency_ms / 1000.0)
