"""
RetryLedger: bounded-retry bookkeeping for candidate pairs.

Keyed by ``(buy_id, sell_id)``; the value is how many times the pair has
been attempted. State lives for the process lifetime only, so a restart
resets every count. The planner depends on the RetryLedgerStore protocol,
not on the in-memory class, so a durable store can be substituted.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Protocol, Set, Tuple

PairId = Tuple[int, int]


class RetryLedgerStore(Protocol):
    def increment(self, key: PairId) -> int:
        ...

    def remove(self, key: PairId) -> None:
        ...

    def keys(self) -> List[PairId]:
        ...


class InMemoryRetryLedger:
    def __init__(self) -> None:
        self._attempts: Dict[PairId, int] = {}

    def increment(self, key: PairId) -> int:
        count = self._attempts.get(key, 0) + 1
        self._attempts[key] = count
        return count

    def remove(self, key: PairId) -> None:
        self._attempts.pop(key, None)

    def get(self, key: PairId) -> int:
        return self._attempts.get(key, 0)

    def keys(self) -> List[PairId]:
        return list(self._attempts.keys())

    def __len__(self) -> int:
        return len(self._attempts)

    def __contains__(self, key: object) -> bool:
        return key in self._attempts


def prune_closed(store: RetryLedgerStore, live_ids: Iterable[int]) -> int:
    """Drop entries whose buy or sell id is no longer open. Returns the count removed."""
    live: Set[int] = set(live_ids)
    removed = 0
    for key in store.keys():
        buy_id, sell_id = key
        if buy_id not in live or sell_id not in live:
            store.remove(key)
            removed += 1
    return removed
