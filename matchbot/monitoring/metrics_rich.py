"""
Prometheus metrics for matcher observability.

Organized into: cycles, orders, actions, retry bookkeeping.
"""

from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry, start_http_server
from typing import Optional


class RichMetrics:
    """Metrics for the reconciliation engine."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        reg = registry or CollectorRegistry()

        # === Cycle Metrics ===
        self.cycles = Counter(
            'matchbot_cycles_total',
            'Reconciliation cycles by outcome',
            labelnames=['outcome'],
            registry=reg
        )
        self.ticks_dropped = Counter(
            'matchbot_ticks_dropped_total',
            'Ticks dropped because a cycle was still running',
            registry=reg
        )
        self.cycle_duration_ms = Histogram(
            'matchbot_cycle_duration_ms',
            'Wall time of one reconciliation cycle (milliseconds)',
            buckets=[50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000],
            registry=reg
        )

        # === Order Metrics ===
        self.open_orders = Gauge(
            'matchbot_open_orders',
            'Open orders in the latest snapshot',
            registry=reg
        )
        self.pair_groups = Gauge(
            'matchbot_pair_groups',
            'Trading-pair groups in the latest snapshot',
            registry=reg
        )

        # === Action Metrics ===
        self.match_attempts = Counter(
            'matchbot_match_attempts_total',
            'matchOrders calls by result',
            labelnames=['result'],
            registry=reg
        )
        self.cancels = Counter(
            'matchbot_cancels_total',
            'cancelOrder calls by reason and result',
            labelnames=['reason', 'result'],
            registry=reg
        )
        self.expiry_batches = Counter(
            'matchbot_expiry_batches_total',
            'distributeExpiredOrders batches by result',
            labelnames=['result'],
            registry=reg
        )

        # === Retry Metrics ===
        self.pairs_abandoned = Counter(
            'matchbot_pairs_abandoned_total',
            'Candidate pairs abandoned after reaching the attempt limit',
            registry=reg
        )
        self.retry_ledger_size = Gauge(
            'matchbot_retry_ledger_size',
            'Candidate pairs currently tracked in the retry ledger',
            registry=reg
        )

        self.registry = reg

    def get_registry(self):
        """Return the Prometheus registry for export."""
        return self.registry

    def serve(self, port: int, addr: str = "0.0.0.0") -> None:
        """Expose the registry over HTTP for scraping."""
        start_http_server(port, addr=addr, registry=self.registry)
