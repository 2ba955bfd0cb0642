"""
ExpirySweeper: asks the ledger to refund expired orders in id batches.

The executor contract exposes ``distributeExpiredOrders(fromId, toId)``
which voids and refunds every expired order in the inclusive range. The
sweep walks ``[1, nextOrderId)`` in fixed-size batches; each batch is an
independent transaction and a failed batch is logged and skipped.

The sweep runs inside a reconciliation cycle, after planning, so it never
races the matcher for the signer's nonce.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TYPE_CHECKING

from matchbot.ledger.gateway import LedgerGateway

if TYPE_CHECKING:
    from matchbot.monitoring.metrics_rich import RichMetrics

log = logging.getLogger("matchbot")


@dataclass
class SweepConfig:
    """Configuration for ExpirySweeper."""
    # Seconds between sweeps (0 disables)
    interval_sec: float = 300.0

    # Order ids per distributeExpiredOrders call
    batch_size: int = 50

    # Logging callback
    log_event_callback: Optional[Callable[..., None]] = None


@dataclass
class SweepResult:
    """Result of one sweep."""
    batches: int = 0
    succeeded: int = 0
    failed: int = 0
    upper_id: int = 0


class ExpirySweeper:
    def __init__(
        self,
        gateway: LedgerGateway,
        config: Optional[SweepConfig] = None,
        rich_metrics: Optional["RichMetrics"] = None,
    ) -> None:
        self.gateway = gateway
        self.config = config or SweepConfig()
        self.rich_metrics = rich_metrics
        self._last_sweep: float = 0.0
        self._log_event = self.config.log_event_callback or self._default_log

    def _default_log(self, event: str, level: int = logging.INFO, **kwargs: Any) -> None:
        payload = {"event": event, **kwargs}
        log.log(level, json.dumps(payload))

    @property
    def is_due(self) -> bool:
        """Check if a sweep is due."""
        if self.config.interval_sec <= 0:
            return False
        return time.time() - self._last_sweep >= self.config.interval_sec

    async def sweep(self, next_order_id: int) -> SweepResult:
        result = SweepResult(upper_id=max(next_order_id - 1, 0))
        batch = max(1, self.config.batch_size)
        self._log_event("expiry_sweep_start", upper_id=result.upper_id)

        from_id = 1
        while from_id < next_order_id:
            to_id = min(from_id + batch - 1, next_order_id - 1)
            result.batches += 1
            try:
                outcome = await self.gateway.distribute_expired(from_id, to_id)
                ok, reason = outcome.success, outcome.reason
            except Exception as exc:
                ok, reason = False, str(exc)

            if ok:
                result.succeeded += 1
            else:
                result.failed += 1
                self._log_event(
                    "expiry_batch_skipped",
                    level=logging.WARNING,
                    from_id=from_id,
                    to_id=to_id,
                    reason=reason,
                )
            if self.rich_metrics:
                try:
                    self.rich_metrics.expiry_batches.labels(result="ok" if ok else "failed").inc()
                except Exception:
                    pass
            from_id += batch

        self._last_sweep = time.time()
        self._log_event(
            "expiry_sweep_complete",
            batches=result.batches,
            succeeded=result.succeeded,
            failed=result.failed,
        )
        return result

    def reset_timer(self) -> None:
        self._last_sweep = 0.0
