"""
Core package.

This package contains the order data model and the ledger error taxonomy.
"""

from matchbot.core.errors import ActionRejected, LedgerError, SnapshotError, TransientReadError
from matchbot.core.models import (
    BPS_DIVISOR,
    PRICE_SCALE,
    MatchCandidate,
    Order,
    OrderKind,
    PairKey,
    is_closed,
    is_open,
    now_sec,
    price_tolerance,
    prices_cross,
)

__all__ = [
    "ActionRejected",
    "LedgerError",
    "SnapshotError",
    "TransientReadError",
    "BPS_DIVISOR",
    "PRICE_SCALE",
    "MatchCandidate",
    "Order",
    "OrderKind",
    "PairKey",
    "is_closed",
    "is_open",
    "now_sec",
    "price_tolerance",
    "prices_cross",
]
