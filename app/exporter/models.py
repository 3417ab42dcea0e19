"""Records decoded from the strichliste API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _UpstreamModel(BaseModel):
    """Upstream field names are camelCase; attributes are snake_case."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SystemSnapshot(_UpstreamModel):
    """Aggregate figures for the whole ledger (``GET /metrics``)."""

    tx_count: int = Field(..., alias="countTransactions")
    avg_balance: float = Field(..., alias="avgBalance")
    user_count: int = Field(..., alias="countUsers")
    balance: float = Field(..., alias="overallBalance")


class UserListEntry(_UpstreamModel):
    """One entry of ``GET /user``; only the id is consumed."""

    id: int


class UserList(_UpstreamModel):
    entries: list[UserListEntry] = Field(default_factory=list)

    def ids(self) -> list[int]:
        return [entry.id for entry in self.entries]


_DERIVED_FIELDS = frozenset({"when", "sender", "recipient"})


class TransactionRecord(_UpstreamModel):
    """One ledger entry of a user's recent transactions.

    ``when``, ``sender`` and ``recipient`` are filled in by normalization.
    A classified transaction never keeps its comment.
    """

    id: int
    created_raw: str = Field(..., alias="createDate")
    delta: float = Field(..., alias="value")
    comment: Optional[str] = None

    when: Optional[datetime] = Field(default=None, exclude=True)
    sender: Optional[str] = Field(
        default=None, exclude=True, description="Inbound transfer source ('from X')"
    )
    recipient: Optional[str] = Field(
        default=None, exclude=True, description="Outbound transfer destination ('to X')"
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_derived_fields(cls, data: Any) -> Any:
        # Only normalization sets these; use model_copy to attach them
        if isinstance(data, dict):
            data = {k: v for k, v in data.items() if k not in _DERIVED_FIELDS}
        return data


class UserRecord(_UpstreamModel):
    """One account (``GET /user/{id}``)."""

    name: str
    weight: float = Field(..., alias="weightedCountOfPurchases")
    days: int = Field(..., alias="activeDays")
    balance: float
    tx_count: int = Field(..., alias="countOfTransactions")
    transactions: list[TransactionRecord] = Field(default_factory=list)
