"""Settlement window for per-transaction deltas."""

from datetime import datetime, timedelta
from typing import Iterable, List

from app.exporter.models import TransactionRecord


def is_settled(when: datetime, interval: timedelta, now: datetime) -> bool:
    """True once a full scrape interval has passed since ``when``.

    The boundary counts as settled: ``when + interval == now`` is reported.
    """
    return when + interval <= now


def settled_transactions(
    transactions: Iterable[TransactionRecord], interval: timedelta, now: datetime
) -> List[TransactionRecord]:
    """
    Select the transactions to report as deltas this cycle.

    Evaluated against the current time on every cycle, so a transaction
    shows up once it has aged past the interval and stays until the
    upstream drops it from the recent list.

    Args:
        transactions: Normalized transactions (``when`` must be set)
        interval: Configured scrape interval
        now: Current time, aware

    Returns:
        The settled transactions in their original order
    """
    return [tx for tx in transactions if is_settled(tx.when, interval, now)]
