"""
Entry point wiring all components.
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from dataclasses import dataclass
from typing import Optional

import httpx

from matchbot.config.config import Settings
from matchbot.config.config_validator import validate_and_log
from matchbot.execution.expiry_sweeper import ExpirySweeper, SweepConfig
from matchbot.execution.match_planner import MatchPlanner, PlannerConfig
from matchbot.execution.order_snapshot import OrderSnapshot, SnapshotConfig
from matchbot.execution.retry_ledger import InMemoryRetryLedger
from matchbot.infra.logging_cfg import build_logger
from matchbot.ledger.async_execution import AsyncLedgerExecutor
from matchbot.ledger.evm_gateway import EvmLedgerGateway
from matchbot.ledger.nonce import NonceCoordinator
from matchbot.ledger.rpc_reader import AsyncLedgerReader
from matchbot.monitoring.metrics_rich import RichMetrics
from matchbot.orchestrator.reconciliation_loop import EarlyStopScope, LoopConfig, ReconciliationLoop

log = logging.getLogger("matchbot")


@dataclass
class Components:
    gateway: EvmLedgerGateway
    reconciler: ReconciliationLoop
    metrics: RichMetrics
    http_client: httpx.AsyncClient


async def build_components(cfg: Settings, metrics: Optional[RichMetrics] = None) -> Components:
    """Assemble the ledger gateway and engine from settings."""
    account = cfg.resolve_signer() if cfg.private_key else None
    allowlist = cfg.resolve_allowlist()

    http_client = httpx.AsyncClient(timeout=cfg.http_timeout)
    reader = AsyncLedgerReader(cfg.rpc_url, cfg.executor_address, timeout=cfg.http_timeout, client=http_client)
    nonces = NonceCoordinator()
    nonce_lock = await nonces.get_lock(account.address) if account is not None else None
    executor = AsyncLedgerExecutor.connect(
        cfg.rpc_url,
        cfg.executor_address,
        account=account,
        nonce_lock=nonce_lock,
        http_timeout=cfg.http_timeout,
        receipt_timeout=cfg.receipt_timeout,
        gas_limits={
            "matchOrders": cfg.match_gas_limit,
            "cancelOrder": cfg.cancel_gas_limit,
            "distributeExpiredOrders": cfg.sweep_gas_limit,
        },
    )
    gateway = EvmLedgerGateway(reader, executor)

    metrics = metrics or RichMetrics()
    retry_ledger = InMemoryRetryLedger()
    snapshot = OrderSnapshot(gateway, SnapshotConfig(concurrency=cfg.snapshot_concurrency))
    planner = MatchPlanner(
        gateway,
        snapshot,
        retry_ledger,
        PlannerConfig(
            dust_threshold=cfg.dust_threshold,
            self_match_allowlist=allowlist,
            max_attempts=cfg.max_match_attempts,
            tolerance_bps=cfg.price_tolerance_bps,
        ),
        rich_metrics=metrics,
    )
    sweeper = None
    if cfg.expiry_sweep_interval > 0:
        sweeper = ExpirySweeper(
            gateway,
            SweepConfig(interval_sec=cfg.expiry_sweep_interval, batch_size=cfg.expiry_sweep_batch),
            rich_metrics=metrics,
        )
    reconciler = ReconciliationLoop(
        snapshot,
        planner,
        retry_ledger,
        sweeper=sweeper,
        rich_metrics=metrics,
        config=LoopConfig(
            interval_sec=cfg.reconcile_interval,
            early_stop_scope=EarlyStopScope(cfg.early_stop_scope),
        ),
    )
    return Components(gateway=gateway, reconciler=reconciler, metrics=metrics, http_client=http_client)


async def main() -> None:
    cfg = Settings.load()
    build_logger("matchbot", level=getattr(logging, cfg.log_level, logging.INFO), file_path=cfg.log_file)

    if not validate_and_log(cfg, log):
        log.error("Configuration validation failed, exiting")
        sys.exit(1)

    comps = await build_components(cfg)
    if cfg.metrics_port > 0:
        comps.metrics.serve(cfg.metrics_port)

    log.info(json.dumps({
        "event": "startup",
        "executor_address": cfg.executor_address,
        "signer": comps.gateway.executor.signer_address,
        "interval_sec": cfg.reconcile_interval,
    }))

    loop = asyncio.get_running_loop()
    run_task = asyncio.create_task(comps.reconciler.run())

    def stop_all() -> None:
        # Let the in-flight cycle finish before run() returns.
        if not run_task.done():
            asyncio.ensure_future(comps.reconciler.stop())

    # Windows doesn't support add_signal_handler, so rely on KeyboardInterrupt handling
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_all)
        except NotImplementedError:
            pass

    try:
        await run_task
    except (asyncio.CancelledError, KeyboardInterrupt):
        log.info("Shutdown signal received, cleaning up...")
        await comps.reconciler.stop()
    finally:
        log.info("Closing connections...")
        await comps.gateway.close()
        await comps.http_client.aclose()
        log.info("Shutdown complete")


def cli() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nMatcher stopped by user")
    sys.exit(0)


if __name__ == "__main__":
    cli()
