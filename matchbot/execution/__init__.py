"""
Execution layer components for order matching.

- OrderSnapshot: reads and normalizes the ledger's open orders
- group_orders: partitions orders by unordered token pair
- InMemoryRetryLedger: bounded-retry counters per candidate pair
- MatchPlanner: gates, matches and cancels within one pair group
- ExpirySweeper: batched refunds of expired orders
"""

from matchbot.execution.order_snapshot import OrderSnapshot, SnapshotConfig, parse_order
from matchbot.execution.pair_grouping import group_orders, pair_key
from matchbot.execution.retry_ledger import InMemoryRetryLedger, RetryLedgerStore, prune_closed
from matchbot.execution.match_planner import GroupPlanResult, MatchPlanner, PlannerConfig
from matchbot.execution.expiry_sweeper import ExpirySweeper, SweepConfig, SweepResult

__all__ = [
    "OrderSnapshot",
    "SnapshotConfig",
    "parse_order",
    "group_orders",
    "pair_key",
    "InMemoryRetryLedger",
    "RetryLedgerStore",
    "prune_closed",
    "GroupPlanResult",
    "MatchPlanner",
    "PlannerConfig",
    "ExpirySweeper",
    "SweepConfig",
    "SweepResult",
]
