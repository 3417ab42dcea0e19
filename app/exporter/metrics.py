"""
Prometheus instruments for the exporter.

The catalog is declared once per ExporterMetrics instance on its own
CollectorRegistry. Scrape logic writes into it; the /metrics route
renders it.
"""

import threading
from typing import Dict, Iterable, Optional, Set, Tuple

from prometheus_client import CollectorRegistry, Counter, Gauge
from prometheus_client.exposition import choose_encoder

from app.exporter.models import SystemSnapshot, TransactionRecord, UserRecord

NAMESPACE = "strichliste"

DeltaLabels = Tuple[str, str, str, str]


class ExporterMetrics:
    """
    The exporter's fixed metric catalog.

    Registering a second catalog on the same registry raises ValueError
    (duplicated timeseries), which is fatal at startup.
    """

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        namespace: str = NAMESPACE,
    ):
        self.registry = registry if registry is not None else CollectorRegistry()
        self.namespace = namespace

        self.scrape_cycles = self._counter("scrape_cycles", "number of scrape cycles")
        self.scrape_failures = self._counter(
            "scrape_failures", "number of failed scrape cycles"
        )

        self.system_tx_count = self._gauge("system_tx_count", "total number of TXs")
        self.system_user_count = self._gauge("users", "total user count")
        self.system_balance = self._gauge("system_balance", "total system balance")
        self.system_balance_avg = self._gauge("balance_avg", "average user balance")

        self.user_tx_count = self._gauge(
            "tx_count", "total number of user TXs", ("user",)
        )
        self.user_balance = self._gauge("balance", "account balance", ("user",))
        self.user_weight = self._gauge("weight", "account weight", ("user",))
        self.user_days = self._gauge(
            "days", "total number of days with activity", ("user",)
        )
        self.user_deltas = self._gauge(
            "tx", "transaction", ("user", "id", "from", "to")
        )

        # Label sets currently exposed on user_deltas, per user
        self._delta_labels: Dict[str, Set[DeltaLabels]] = {}
        self._delta_lock = threading.Lock()

    def _counter(self, name: str, documentation: str) -> Counter:
        return Counter(
            name, documentation, namespace=self.namespace, registry=self.registry
        )

    def _gauge(
        self, name: str, documentation: str, labelnames: Iterable[str] = ()
    ) -> Gauge:
        return Gauge(
            name,
            documentation,
            labelnames=tuple(labelnames),
            namespace=self.namespace,
            registry=self.registry,
        )

    # ------------------------------------------------------------------
    # Cycle bookkeeping
    # ------------------------------------------------------------------

    def record_cycle(self):
        self.scrape_cycles.inc()

    def record_failure(self):
        self.scrape_failures.inc()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def set_system(self, system: SystemSnapshot):
        """Replace the system-wide gauges."""
        self.system_tx_count.set(system.tx_count)
        self.system_user_count.set(system.user_count)
        self.system_balance.set(system.balance)
        self.system_balance_avg.set(system.avg_balance)

    def set_user(self, user: UserRecord):
        """Replace the per-user gauges for ``user.name``."""
        self.user_tx_count.labels(user.name).set(user.tx_count)
        self.user_balance.labels(user.name).set(user.balance)
        self.user_weight.labels(user.name).set(user.weight)
        self.user_days.labels(user.name).set(user.days)

    def replace_deltas(
        self, user_name: str, transactions: Iterable[TransactionRecord]
    ) -> int:
        """
        Rebuild the transaction delta series of one user.

        Every series previously exposed for ``user_name`` is removed first,
        so transactions that left the window disappear. Other users' series
        are untouched.

        Returns:
            Number of series now exposed for the user
        """
        with self._delta_lock:
            for labels in self._delta_labels.pop(user_name, set()):
                self.user_deltas.remove(*labels)

            current: Set[DeltaLabels] = set()
            for tx in transactions:
                labels = (user_name, str(tx.id), tx.sender or "", tx.recipient or "")
                self.user_deltas.labels(*labels).set(tx.delta)
                current.add(labels)

            self._delta_labels[user_name] = current
            return len(current)

    # ------------------------------------------------------------------
    # Exposition
    # ------------------------------------------------------------------

    def render(self, accept_header: Optional[str] = None) -> Tuple[bytes, str]:
        """
        Encode the registry for a collector.

        OpenMetrics is served when the Accept header asks for it, the
        Prometheus text format otherwise.

        Returns:
            Tuple of (body, content type)
        """
        encoder, content_type = choose_encoder(accept_header or "")
        return encoder(self.registry), content_type
