"""Normalization of decoded user records: timestamps and transfer parties."""

from __future__ import annotations

import re
from datetime import datetime, timezone, tzinfo

from app.exporter.models import TransactionRecord, UserRecord

# ============================================================================
# Timestamps
# ============================================================================

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class TimestampParseError(ValueError):
    """Raised when a transaction's createDate doesn't match the upstream layout."""

    def __init__(self, raw: str, tx_id: int | None = None):
        self.raw = raw
        self.tx_id = tx_id
        where = f" of transaction {tx_id}" if tx_id is not None else ""
        super().__init__(
            f"cannot parse createDate{where}: {raw!r} (expected YYYY-MM-DD HH:MM:SS)"
        )


# strptime alone also takes unpadded fields such as "2024-1-1 1:2:3"
TIMESTAMP_LAYOUT = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", re.ASCII)


def parse_timestamp(raw: str, tz: tzinfo = timezone.utc) -> datetime:
    """
    Parse an upstream ``YYYY-MM-DD HH:MM:SS`` string into an aware datetime.

    The upstream sends naive wall-clock times; ``tz`` says where that wall
    clock hangs.

    Raises:
        TimestampParseError: If the string doesn't match the layout
    """
    if not isinstance(raw, str) or not TIMESTAMP_LAYOUT.fullmatch(raw):
        raise TimestampParseError(raw)
    try:
        naive = datetime.strptime(raw, TIMESTAMP_FORMAT)
    except ValueError:
        raise TimestampParseError(raw) from None
    return naive.replace(tzinfo=tz)


# ============================================================================
# Transfer classification
# ============================================================================

# Tried in order; first match wins.
SENDER_PATTERN = re.compile(r"^from (.*)$")
RECIPIENT_PATTERN = re.compile(r"^to (.*)$")


def classify_comment(tx: TransactionRecord) -> TransactionRecord:
    """
    Turn a ``from X`` / ``to X`` comment into a transfer party label.

    A classified transaction loses its comment. Anything else, including
    an already classified transaction, is returned unchanged.
    """
    if tx.comment is None or tx.sender is not None or tx.recipient is not None:
        return tx

    match = SENDER_PATTERN.fullmatch(tx.comment)
    if match:
        return tx.model_copy(update={"sender": match.group(1), "comment": None})

    match = RECIPIENT_PATTERN.fullmatch(tx.comment)
    if match:
        return tx.model_copy(update={"recipient": match.group(1), "comment": None})

    return tx


# ============================================================================
# Records
# ============================================================================


def normalize_transaction(
    tx: TransactionRecord, tz: tzinfo = timezone.utc
) -> TransactionRecord:
    """Attach the absolute timestamp and classify the comment."""
    if tx.when is None:
        try:
            when = parse_timestamp(tx.created_raw, tz)
        except TimestampParseError:
            raise TimestampParseError(tx.created_raw, tx.id) from None
        tx = tx.model_copy(update={"when": when})
    return classify_comment(tx)


def normalize_user(user: UserRecord, tz: tzinfo = timezone.utc) -> UserRecord:
    """
    Normalize every transaction of a user record.

    One bad timestamp fails the whole user.

    Raises:
        TimestampParseError: If any transaction's createDate is malformed
    """
    transactions = [normalize_transaction(tx, tz) for tx in user.transactions]
    return user.model_copy(update={"transactions": transactions})
