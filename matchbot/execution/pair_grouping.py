"""
Partition open orders into trading-pair groups.

A BUY for (A, B) and a SELL for (B, A) share the unordered key {A, B}, so
counterparties always land in the same group. Orders with a malformed
(empty) token simply form their own group and never match.
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from matchbot.core.models import Order, PairKey


def pair_key(order: Order) -> PairKey:
    return PairKey.of(order.token_in, order.token_out)


def group_orders(orders: Iterable[Order]) -> Dict[PairKey, List[Order]]:
    groups: Dict[PairKey, List[Order]] = {}
    for o in orders:
        groups.setdefault(pair_key(o), []).append(o)
    return groups
