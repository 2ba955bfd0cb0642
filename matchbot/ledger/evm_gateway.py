"""
EvmLedgerGateway: LedgerGateway backed by an EVM limit-order executor.

Reads go through AsyncLedgerReader (JSON-RPC eth_call over httpx) so the
snapshot can fan out cheaply; writes go through AsyncLedgerExecutor
(signed web3 transactions on a worker pool, one at a time per signer).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Tuple

from matchbot.core.errors import ActionRejected
from matchbot.ledger.async_execution import AsyncLedgerExecutor
from matchbot.ledger.gateway import ActionResult
from matchbot.ledger.rpc_reader import AsyncLedgerReader

log = logging.getLogger("matchbot")


class EvmLedgerGateway:
    def __init__(
        self,
        reader: AsyncLedgerReader,
        executor: AsyncLedgerExecutor,
        log_event_callback: Optional[Callable[..., None]] = None,
    ) -> None:
        self.reader = reader
        self.executor = executor
        self._log_event = log_event_callback or self._default_log

    def _default_log(self, event: str, **kwargs: Any) -> None:
        payload = {"event": event, **kwargs}
        log.debug(json.dumps(payload))

    async def next_order_id(self) -> int:
        return await self.reader.next_order_id()

    async def get_order(self, order_id: int) -> Optional[Mapping[str, Any]]:
        try:
            return await self.reader.get_order(order_id)
        except Exception as exc:
            self._log_event("order_read_failed", order_id=order_id, error=str(exc))
            return None

    async def match_orders(self, buy_id: int, sell_id: int) -> ActionResult:
        return await self._act(
            "match_orders",
            lambda: self.executor.match_orders(buy_id, sell_id),
            buy_id=buy_id,
            sell_id=sell_id,
        )

    async def cancel_order(self, order_id: int) -> ActionResult:
        return await self._act("cancel_order", lambda: self.executor.cancel_order(order_id), order_id=order_id)

    async def distribute_expired(self, from_id: int, to_id: int) -> ActionResult:
        return await self._act(
            "distribute_expired",
            lambda: self.executor.distribute_expired(from_id, to_id),
            from_id=from_id,
            to_id=to_id,
        )

    async def close(self) -> None:
        await self.executor.close()
        await self.reader.close()

    async def _act(
        self,
        action: str,
        submit: Callable[[], Awaitable[Tuple[str, int]]],
        **fields: Any,
    ) -> ActionResult:
        try:
            tx_hash, block_number = await submit()
        except ActionRejected as exc:
            self._log_event("ledger_action_rejected", action=action, reason=exc.reason, tx_hash=exc.tx_hash, **fields)
            return ActionResult(success=False, reason=exc.reason, tx_hash=exc.tx_hash)
        except Exception as exc:
            self._log_event("ledger_action_error", action=action, error=str(exc), **fields)
            return ActionResult(success=False, reason=str(exc))
        self._log_event("ledger_action_ok", action=action, tx_hash=tx_hash, block=block_number, **fields)
        return ActionResult(success=True, tx_hash=tx_hash, block_number=block_number)
