"""
Order data model shared by every reconciliation component.

Orders are owned by the external ledger. The matcher only holds immutable
copies taken during a cycle and never mutates them; a fresh copy is read
back from the ledger after every action.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

# Fixed-point scale of ``targetPrice`` (tokenOut per tokenIn).
PRICE_SCALE = 10 ** 18

# One basis point, expressed as the divisor applied to a price.
BPS_DIVISOR = 10_000


class OrderKind(Enum):
    """Side of an order as encoded by the ledger's ``orderType`` field."""
    BUY = 0
    SELL = 1

    @classmethod
    def from_raw(cls, value: object) -> Optional["OrderKind"]:
        try:
            return cls(int(value))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None


@dataclass(frozen=True)
class Order:
    """Normalized, read-only copy of a ledger order record."""
    id: int
    maker: str
    token_in: str
    token_out: str
    amount_in: int
    target_price: int
    expiry: int
    filled: bool
    cancelled: bool
    kind: Optional[OrderKind]

    @property
    def is_buy(self) -> bool:
        return self.kind is OrderKind.BUY

    @property
    def is_sell(self) -> bool:
        return self.kind is OrderKind.SELL


@dataclass(frozen=True, order=True)
class PairKey:
    """Unordered token pair, stored in canonical (sorted) order."""
    token_a: str
    token_b: str

    @classmethod
    def of(cls, token_x: str, token_y: str) -> "PairKey":
        a, b = sorted((token_x, token_y))
        return cls(a, b)

    def __str__(self) -> str:
        return f"{self.token_a}-{self.token_b}"


@dataclass(frozen=True)
class MatchCandidate:
    """A (buy, sell) pairing considered during the current cycle."""
    buy_id: int
    sell_id: int

    @property
    def key(self) -> Tuple[int, int]:
        return (self.buy_id, self.sell_id)


def now_sec() -> int:
    return int(time.time())


def is_closed(order: Order) -> bool:
    """Closed orders can never trade again, whatever the clock says."""
    return order.filled or order.cancelled or order.amount_in == 0


def is_open(order: Order, now: int) -> bool:
    return not is_closed(order) and order.expiry > now


def price_tolerance(price: int, bps: int = 1) -> int:
    """Rounding allowance for a price: floor(price * bps / 10000)."""
    if price <= 0 or bps <= 0:
        return 0
    return price * bps // BPS_DIVISOR


def prices_cross(buy_price: int, sell_price: int, bps: int = 1) -> bool:
    """
    Price-crossing test used to decide match eligibility.

    The tolerance is always derived from the buy price, never the sell.
    """
    return buy_price >= sell_price - price_tolerance(buy_price, bps)
