"""
LedgerGateway: the narrow boundary between the matcher and the ledger.

The matcher never talks to the chain directly. Everything it needs is a
point read of the id counter, a point read of one order, and three
mutating actions. Any object providing these coroutines can drive the
reconciliation engine (the tests use an in-memory fake).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, runtime_checkable


@dataclass
class ActionResult:
    """Outcome of a mutating ledger call."""
    success: bool
    reason: Optional[str] = None
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None


@runtime_checkable
class LedgerGateway(Protocol):
    async def next_order_id(self) -> int:
        """Exclusive upper bound of assigned order ids. Raises on failure."""
        ...

    async def get_order(self, order_id: int) -> Optional[Mapping[str, Any]]:
        """Raw order record, or None when the read fails for any reason."""
        ...

    async def match_orders(self, buy_id: int, sell_id: int) -> ActionResult:
        ...

    async def cancel_order(self, order_id: int) -> ActionResult:
        ...

    async def distribute_expired(self, from_id: int, to_id: int) -> ActionResult:
        ...
