"""
OrderSnapshot: point-in-time view of the ledger's open orders.

Reads ``nextOrderId`` and then every order in ``[1, nextOrderId)``. The
per-id reads are pure and independent, so they fan out concurrently
(bounded by a semaphore). Raw records are duck-typed mappings; they are
parsed eagerly into ``Order`` here so nothing downstream has to validate.

Failure semantics:
    - a single order read failing is treated as "absent";
    - a malformed field is defaulted (zero / empty), never raised;
    - failing to read the id counter aborts the snapshot with SnapshotError.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Tuple

from matchbot.core.errors import SnapshotError
from matchbot.core.models import Order, OrderKind, is_open, now_sec
from matchbot.ledger.gateway import LedgerGateway

log = logging.getLogger("matchbot")

_TRUE = {"1", "true", "yes", "y"}
_FALSE = {"0", "false", "no", "n", ""}


def _to_uint(value: Any) -> Optional[int]:
    """Parse a non-negative integer; None when malformed."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value >= 0 else None
    if isinstance(value, str):
        s = value.strip().lower()
        try:
            parsed = int(s, 16) if s.startswith("0x") else int(s, 10)
        except ValueError:
            return None
        return parsed if parsed >= 0 else None
    return None


def _to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        s = value.strip().lower()
        if s in _TRUE:
            return True
        if s in _FALSE:
            return False
    return None


def _to_address(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip().lower()
    return None


def parse_order(order_id: int, raw: Mapping[str, Any]) -> Tuple[Order, List[str]]:
    """
    Normalize a raw ledger record into an Order.

    Returns the order plus the names of any fields that were malformed and
    replaced by their default.
    """
    defaulted: List[str] = []

    def uint(name: str) -> int:
        val = _to_uint(raw.get(name))
        if val is None:
            defaulted.append(name)
            return 0
        return val

    def flag(name: str) -> bool:
        val = _to_bool(raw.get(name))
        if val is None:
            defaulted.append(name)
            return False
        return val

    def addr(name: str) -> str:
        val = _to_address(raw.get(name))
        if val is None:
            defaulted.append(name)
            return ""
        return val

    kind = OrderKind.from_raw(raw.get("orderType"))
    if kind is None:
        defaulted.append("orderType")

    order = Order(
        id=order_id,
        maker=addr("maker"),
        token_in=addr("tokenIn"),
        token_out=addr("tokenOut"),
        amount_in=uint("amountIn"),
        target_price=uint("targetPrice"),
        expiry=uint("expiry"),
        filled=flag("filled"),
        cancelled=flag("cancelled"),
        kind=kind,
    )
    return order, defaulted


@dataclass
class SnapshotConfig:
    """Configuration for OrderSnapshot."""
    # Maximum in-flight getOrder reads
    concurrency: int = 16

    # Logging callback
    log_event_callback: Optional[Callable[..., None]] = None


class OrderSnapshot:
    def __init__(self, gateway: LedgerGateway, config: Optional[SnapshotConfig] = None) -> None:
        self.gateway = gateway
        self.config = config or SnapshotConfig()
        self.last_next_order_id: int = 0
        self.last_read_count: int = 0
        self._log_event = self.config.log_event_callback or self._default_log

    def _default_log(self, event: str, level: int = logging.INFO, **kwargs: Any) -> None:
        payload = {"event": event, **kwargs}
        log.log(level, json.dumps(payload))

    async def snapshot(self, now: Optional[int] = None) -> List[Order]:
        """Return every open order on the ledger as of ``now``."""
        now = now_sec() if now is None else now
        try:
            next_id = int(await self.gateway.next_order_id())
        except Exception as exc:
            self._log_event("snapshot_failed", level=logging.WARNING, error=str(exc))
            raise SnapshotError(f"nextOrderId unavailable: {exc}") from exc

        sem = asyncio.Semaphore(max(1, self.config.concurrency))

        async def _bounded(order_id: int) -> Optional[Order]:
            async with sem:
                return await self.read_order(order_id)

        results = await asyncio.gather(*(_bounded(i) for i in range(1, max(next_id, 1))))
        present = [o for o in results if o is not None]
        open_orders = [o for o in present if is_open(o, now)]

        self.last_next_order_id = next_id
        self.last_read_count = len(present)
        self._log_event(
            "snapshot_complete",
            next_order_id=next_id,
            read=len(present),
            absent=len(results) - len(present),
            open=len(open_orders),
        )
        return open_orders

    async def read_order(self, order_id: int) -> Optional[Order]:
        """Point read of one order; None when the ledger read fails."""
        try:
            raw = await self.gateway.get_order(order_id)
        except Exception as exc:
            self._log_event("order_read_failed", level=logging.DEBUG, order_id=order_id, error=str(exc))
            return None
        if raw is None:
            return None
        order, defaulted = parse_order(order_id, raw)
        if defaulted:
            self._log_event("order_record_malformed", level=logging.DEBUG, order_id=order_id, fields=defaulted)
        return order
