"""
ReconciliationLoop: fixed-period scheduler for snapshot -> group -> plan cycles.

Architecture:
    The loop owns timing and the Idle/Running state; the business logic
    lives in OrderSnapshot, MatchPlanner and ExpirySweeper.

    tick() starts a cycle only when the loop is Idle. A tick that arrives
    while a cycle is still Running is dropped, not queued, so a hung
    ledger call degrades to missed cycles instead of a growing backlog.
    This is the only concurrency control the matcher needs: at most one
    cycle ever touches the ledger at a time.

    Any exception escaping a cycle is caught at the loop boundary and
    logged; the loop keeps ticking.

Usage:
    loop = ReconciliationLoop(snapshot, planner, retry_ledger, sweeper, config=cfg)
    await loop.run()          # until loop.stop()
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import traceback
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, List, Optional, TYPE_CHECKING

from matchbot.core.errors import SnapshotError
from matchbot.core.models import now_sec
from matchbot.execution.expiry_sweeper import ExpirySweeper, SweepResult
from matchbot.execution.match_planner import GroupPlanResult, MatchPlanner
from matchbot.execution.order_snapshot import OrderSnapshot
from matchbot.execution.pair_grouping import group_orders
from matchbot.execution.retry_ledger import RetryLedgerStore, prune_closed

if TYPE_CHECKING:
    from matchbot.monitoring.metrics_rich import RichMetrics

log = logging.getLogger("matchbot")


class LoopState(Enum):
    IDLE = auto()
    RUNNING = auto()


class EarlyStopScope(str, Enum):
    """How far a closed order stops planning: the current group, or the whole cycle."""
    GROUP = "group"
    CYCLE = "cycle"


@dataclass
class LoopConfig:
    """Configuration for ReconciliationLoop."""
    # Seconds between ticks
    interval_sec: float = 10.0

    # Scope of the early stop when a matched order closes
    early_stop_scope: EarlyStopScope = EarlyStopScope.GROUP

    # Logging callback
    log_event_callback: Optional[Callable[..., None]] = None


@dataclass
class CycleResult:
    """Result of a single reconciliation cycle."""
    success: bool
    open_orders: int = 0
    groups: int = 0
    groups_planned: int = 0
    matches_attempted: int = 0
    matches_succeeded: int = 0
    matches_failed: int = 0
    cancels_requested: int = 0
    pairs_abandoned: int = 0
    retry_entries_pruned: int = 0
    stopped_early: bool = False
    sweep: Optional[SweepResult] = None
    group_results: List[GroupPlanResult] = field(default_factory=list)
    duration_ms: float = 0.0
    error: Optional[str] = None

    def absorb(self, group: GroupPlanResult) -> None:
        self.group_results.append(group)
        self.groups_planned += 1
        self.matches_attempted += group.matches_attempted
        self.matches_succeeded += group.matches_succeeded
        self.matches_failed += group.matches_failed
        self.cancels_requested += group.cancels_requested
        self.pairs_abandoned += group.pairs_abandoned
        self.stopped_early = self.stopped_early or group.stopped_early


class ReconciliationLoop:
    def __init__(
        self,
        snapshot: OrderSnapshot,
        planner: MatchPlanner,
        retry_ledger: RetryLedgerStore,
        sweeper: Optional[ExpirySweeper] = None,
        rich_metrics: Optional["RichMetrics"] = None,
        config: Optional[LoopConfig] = None,
    ) -> None:
        self.snapshot = snapshot
        self.planner = planner
        self.retry_ledger = retry_ledger
        self.sweeper = sweeper
        self.rich_metrics = rich_metrics
        self.config = config or LoopConfig()

        self._state = LoopState.IDLE
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._stop_event = asyncio.Event()

        self.cycles_run = 0
        self.cycles_failed = 0
        self.ticks_dropped = 0
        self.last_result: Optional[CycleResult] = None

        self._log_event = self.config.log_event_callback or self._default_log

    def _default_log(self, event: str, level: int = logging.INFO, **kwargs: Any) -> None:
        payload = {"event": event, **kwargs}
        log.log(level, json.dumps(payload))

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_running(self) -> bool:
        """True while run() is active."""
        return self._running

    def tick(self) -> bool:
        """
        Start a cycle if Idle. Returns False when the tick was dropped.

        Must be called from within the event loop.
        """
        if self._state is LoopState.RUNNING:
            self.ticks_dropped += 1
            self._log_event("tick_dropped", level=logging.WARNING, dropped_total=self.ticks_dropped)
            if self.rich_metrics:
                try:
                    self.rich_metrics.ticks_dropped.inc()
                except Exception:
                    pass
            return False
        self._state = LoopState.RUNNING
        self._task = asyncio.create_task(self._guarded_cycle())
        return True

    async def run(self) -> None:
        """Fire tick() every interval until stop() is called."""
        self._running = True
        self._stop_event.clear()
        self._log_event("loop_start", interval_sec=self.config.interval_sec)
        while self._running:
            self.tick()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.config.interval_sec)
            except asyncio.TimeoutError:
                pass
        await self._drain()
        self._log_event("loop_stop", cycles=self.cycles_run, failed=self.cycles_failed, dropped=self.ticks_dropped)

    async def stop(self) -> None:
        self._running = False
        self._stop_event.set()
        await self._drain()

    async def _drain(self) -> None:
        task = self._task
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)

    async def _guarded_cycle(self) -> Optional[CycleResult]:
        try:
            result = await self.run_cycle()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.cycles_failed += 1
            self._log_event(
                "cycle_error",
                level=logging.ERROR,
                error=str(exc),
                traceback=traceback.format_exc(),
            )
            self._metric_cycle("error")
            return None
        finally:
            self._state = LoopState.IDLE
        return result

    async def run_cycle(self, now: Optional[int] = None) -> CycleResult:
        """One full snapshot -> group -> plan (-> sweep) pass."""
        start = time.perf_counter()
        now = now_sec() if now is None else now
        self.cycles_run += 1

        try:
            orders = await self.snapshot.snapshot(now)
        except SnapshotError as exc:
            self.cycles_failed += 1
            result = CycleResult(
                success=False,
                error=str(exc),
                duration_ms=(time.perf_counter() - start) * 1000,
            )
            self.last_result = result
            self._metric_cycle("snapshot_failed")
            self._log_event("cycle_skipped", level=logging.WARNING, error=str(exc))
            return result

        result = CycleResult(success=True, open_orders=len(orders))
        result.retry_entries_pruned = prune_closed(self.retry_ledger, (o.id for o in orders))

        groups = group_orders(orders)
        result.groups = len(groups)
        for pair, members in groups.items():
            group_result = await self.planner.plan_group(pair, members)
            result.absorb(group_result)
            if group_result.stopped_early and self.config.early_stop_scope is EarlyStopScope.CYCLE:
                self._log_event("cycle_stopped_early", pair=str(pair))
                break

        if self.sweeper is not None and self.sweeper.is_due:
            result.sweep = await self.sweeper.sweep(self.snapshot.last_next_order_id)

        result.duration_ms = (time.perf_counter() - start) * 1000
        self.last_result = result
        self._record_metrics(result)
        self._log_event(
            "cycle_complete",
            open_orders=result.open_orders,
            groups=result.groups,
            planned=result.groups_planned,
            matches=result.matches_attempted,
            matched=result.matches_succeeded,
            match_failures=result.matches_failed,
            cancels=result.cancels_requested,
            abandoned=result.pairs_abandoned,
            pruned=result.retry_entries_pruned,
            stopped_early=result.stopped_early,
            duration_ms=round(result.duration_ms, 1),
        )
        return result

    def _metric_cycle(self, outcome: str) -> None:
        if self.rich_metrics:
            try:
                self.rich_metrics.cycles.labels(outcome=outcome).inc()
            except Exception:
                pass

    def _record_metrics(self, result: CycleResult) -> None:
        self._metric_cycle("ok")
        if self.rich_metrics:
            try:
                self.rich_metrics.cycle_duration_ms.observe(result.duration_ms)
                self.rich_metrics.open_orders.set(result.open_orders)
                self.rich_metrics.pair_groups.set(result.groups)
                self.rich_metrics.retry_ledger_size.set(len(self.retry_ledger.keys()))
            except Exception:
                pass
