"""
MatchPlanner: decides and executes matches / cancellations for one pair group.

Within a group, BUY orders are scanned most-aggressive first (descending
target price) against SELL orders most-aggressive first (ascending target
price). This is a nested scan, not a price-level book: every buy is
compared with every sell, which is fine at the group sizes seen on the
executor.

Each (buy, sell) candidate passes through these gates in order; the first
failing gate skips to the next sell, never aborting the whole buy:

    1. counterparty  - the orders must trade opposite directions
    2. dust          - either side below the dust threshold is retired
    3. self-match    - same maker is only allowed for allow-listed makers
    4. price         - buy >= sell - floor(buy * bps / 10000)

An eligible candidate bumps its retry counter and a match is submitted.
After a successful match both orders are re-read; if either comes back
closed, the rest of the group is skipped until the next snapshot. A pair
that is still open once its counter reaches the attempt limit is abandoned
(cancel whichever sides the operator owns, forget the counter).

Every ledger call is guarded individually: a failure is logged and counts
as "no state change", never as a cycle failure.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, Set, TYPE_CHECKING

from matchbot.core.models import Order, PairKey, is_closed, prices_cross
from matchbot.execution.order_snapshot import OrderSnapshot
from matchbot.execution.retry_ledger import RetryLedgerStore
from matchbot.ledger.gateway import ActionResult, LedgerGateway

if TYPE_CHECKING:
    from matchbot.monitoring.metrics_rich import RichMetrics

log = logging.getLogger("matchbot")


@dataclass
class PlannerConfig:
    """Configuration for MatchPlanner."""
    # Orders with amountIn below this (smallest units) are never matched
    dust_threshold: int = 0

    # Makers (lower-cased) allowed to self-match and whose orders we may cancel
    self_match_allowlist: FrozenSet[str] = frozenset()

    # Match attempts on one pair before it is abandoned
    max_attempts: int = 3

    # Price-crossing allowance, in basis points of the buy price
    tolerance_bps: int = 1

    # Logging callback
    log_event_callback: Optional[Callable[..., None]] = None


@dataclass
class GroupPlanResult:
    """Result of planning one pair group."""
    pair: str
    buys: int = 0
    sells: int = 0
    matches_attempted: int = 0
    matches_succeeded: int = 0
    matches_failed: int = 0
    cancels_requested: int = 0
    cancels_succeeded: int = 0
    pairs_abandoned: int = 0
    stopped_early: bool = False
    skipped: Dict[str, int] = field(default_factory=dict)

    def skip(self, reason: str) -> None:
        self.skipped[reason] = self.skipped.get(reason, 0) + 1


class MatchPlanner:
    def __init__(
        self,
        gateway: LedgerGateway,
        snapshot: OrderSnapshot,
        retry_ledger: RetryLedgerStore,
        config: Optional[PlannerConfig] = None,
        rich_metrics: Optional["RichMetrics"] = None,
    ) -> None:
        self.gateway = gateway
        self.snapshot = snapshot
        self.retry_ledger = retry_ledger
        self.config = config or PlannerConfig()
        self.rich_metrics = rich_metrics
        self._log_event = self.config.log_event_callback or self._default_log

    def _default_log(self, event: str, level: int = logging.INFO, **kwargs: Any) -> None:
        payload = {"event": event, **kwargs}
        log.log(level, json.dumps(payload))

    def is_allowlisted(self, maker: str) -> bool:
        return maker in self.config.self_match_allowlist

    async def plan_group(self, pair: PairKey, orders: List[Order]) -> GroupPlanResult:
        result = GroupPlanResult(pair=str(pair))

        # sorted() is stable; id order breaks price ties deterministically.
        buys = sorted((o for o in orders if o.is_buy), key=lambda o: (-o.target_price, o.id))
        sells = sorted((o for o in orders if o.is_sell), key=lambda o: (o.target_price, o.id))
        result.buys, result.sells = len(buys), len(sells)
        if not buys or not sells:
            return result

        self._log_event("group_scan", pair=str(pair), buys=len(buys), sells=len(sells))

        # Orders cancelled this cycle, and dust already handled this cycle.
        retired: Set[int] = set()
        dust_seen: Set[int] = set()

        for bi in range(len(buys)):
            for si in range(len(sells)):
                buy, sell = buys[bi], sells[si]
                if buy.id in retired:
                    break
                if sell.id in retired:
                    continue

                if not (buy.token_in == sell.token_out and buy.token_out == sell.token_in):
                    result.skip("direction")
                    continue

                dusty = [o for o in (buy, sell) if o.amount_in < self.config.dust_threshold]
                if dusty:
                    for o in dusty:
                        if o.id not in dust_seen:
                            dust_seen.add(o.id)
                            await self._retire_dust(o, retired, result)
                    result.skip("dust")
                    continue

                if buy.maker == sell.maker and not self.is_allowlisted(buy.maker):
                    result.skip("self_match")
                    self._log_event(
                        "self_match_skipped",
                        level=logging.DEBUG,
                        buy_id=buy.id,
                        sell_id=sell.id,
                        maker=buy.maker,
                    )
                    continue

                if not prices_cross(buy.target_price, sell.target_price, self.config.tolerance_bps):
                    result.skip("price")
                    continue

                key = (buy.id, sell.id)
                attempts = self.retry_ledger.increment(key)

                result.matches_attempted += 1
                self._log_event(
                    "match_attempt",
                    buy_id=buy.id,
                    sell_id=sell.id,
                    buy_price=buy.target_price,
                    sell_price=sell.target_price,
                    attempt=attempts,
                )
                outcome = await self._guarded("match_orders", lambda: self.gateway.match_orders(buy.id, sell.id))
                if not outcome.success:
                    result.matches_failed += 1
                    self._metric_match("failed")
                    self._log_event(
                        "match_failed",
                        level=logging.WARNING,
                        buy_id=buy.id,
                        sell_id=sell.id,
                        attempt=attempts,
                        reason=outcome.reason,
                    )
                    if attempts >= self.config.max_attempts:
                        await self._abandon(buy, sell, attempts, retired, result)
                    continue

                result.matches_succeeded += 1
                self._metric_match("ok")
                fresh_buy = await self.snapshot.read_order(buy.id)
                fresh_sell = await self.snapshot.read_order(sell.id)
                self._log_event(
                    "match_ok",
                    buy_id=buy.id,
                    sell_id=sell.id,
                    tx_hash=outcome.tx_hash,
                    buy_remaining=fresh_buy.amount_in if fresh_buy else None,
                    sell_remaining=fresh_sell.amount_in if fresh_sell else None,
                )

                # An unreadable order is treated as closed: only a new snapshot can tell.
                if fresh_buy is None or fresh_sell is None or is_closed(fresh_buy) or is_closed(fresh_sell):
                    self.retry_ledger.remove(key)
                    result.stopped_early = True
                    self._log_event("group_stopped", pair=str(pair), buy_id=buy.id, sell_id=sell.id)
                    return result

                buys[bi], sells[si] = fresh_buy, fresh_sell
                if attempts >= self.config.max_attempts:
                    await self._abandon(fresh_buy, fresh_sell, attempts, retired, result)

        return result

    async def _retire_dust(self, order: Order, retired: Set[int], result: GroupPlanResult) -> None:
        if not self.is_allowlisted(order.maker):
            self._log_event(
                "dust_left",
                level=logging.DEBUG,
                order_id=order.id,
                amount_in=order.amount_in,
                maker=order.maker,
            )
            return
        self._log_event("dust_cancel", order_id=order.id, amount_in=order.amount_in)
        await self._cancel(order, "dust", retired, result)

    async def _abandon(
        self,
        buy: Order,
        sell: Order,
        attempts: int,
        retired: Set[int],
        result: GroupPlanResult,
    ) -> None:
        result.pairs_abandoned += 1
        self._log_event("pair_abandoned", level=logging.WARNING, buy_id=buy.id, sell_id=sell.id, attempts=attempts)
        if self.rich_metrics:
            try:
                self.rich_metrics.pairs_abandoned.inc()
            except Exception:
                pass
        # The ledger only honours cancels from the maker, so only touch our own orders.
        for o in (buy, sell):
            if self.is_allowlisted(o.maker) and o.id not in retired:
                await self._cancel(o, "abandoned", retired, result)
        self.retry_ledger.remove((buy.id, sell.id))

    async def _cancel(self, order: Order, reason: str, retired: Set[int], result: GroupPlanResult) -> None:
        result.cancels_requested += 1
        outcome = await self._guarded("cancel_order", lambda: self.gateway.cancel_order(order.id))
        if self.rich_metrics:
            try:
                self.rich_metrics.cancels.labels(reason=reason, result="ok" if outcome.success else "failed").inc()
            except Exception:
                pass
        if outcome.success:
            result.cancels_succeeded += 1
            retired.add(order.id)
            self._log_event("cancel_ok", order_id=order.id, reason=reason, tx_hash=outcome.tx_hash)
        else:
            self._log_event(
                "cancel_failed",
                level=logging.WARNING,
                order_id=order.id,
                reason=reason,
                error=outcome.reason,
            )

    async def _guarded(self, action: str, call: Callable[[], Awaitable[ActionResult]]) -> ActionResult:
        try:
            outcome = await call()
        except Exception as exc:
            self._log_event("ledger_call_error", level=logging.WARNING, action=action, error=str(exc))
            return ActionResult(success=False, reason=str(exc))
        if outcome is None:
            return ActionResult(success=False, reason="no result")
        return outcome

    def _metric_match(self, result: str) -> None:
        if self.rich_metrics:
            try:
                self.rich_metrics.match_attempts.labels(result=result).inc()
            except Exception:
                pass
