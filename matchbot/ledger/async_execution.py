"""
Async wrapper around blocking web3 contract transactions using a shared
thread pool. Presents async methods for the match / cancel / sweep flows.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional, Tuple

from web3 import Web3

from matchbot.core.errors import ActionRejected
from matchbot.ledger.abi import EXECUTOR_ABI

DEFAULT_GAS_LIMITS: Dict[str, int] = {
    "matchOrders": 1_000_000,
    "cancelOrder": 300_000,
    "distributeExpiredOrders": 5_000_000,
}


class AsyncLedgerExecutor:
    def __init__(
        self,
        web3: Web3,
        contract,
        account=None,
        nonce_lock: Optional[asyncio.Lock] = None,
        receipt_timeout: float = 120.0,
        gas_limits: Optional[Dict[str, int]] = None,
        max_workers: int = 4,
    ) -> None:
        self._web3 = web3
        self._contract = contract
        self._account = account
        self._nonce_lock = nonce_lock or asyncio.Lock()
        self._receipt_timeout = receipt_timeout
        self._gas_limits = {**DEFAULT_GAS_LIMITS, **(gas_limits or {})}
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ledger-exec")

    @classmethod
    def connect(
        cls,
        rpc_url: str,
        executor_address: str,
        account=None,
        nonce_lock: Optional[asyncio.Lock] = None,
        http_timeout: float = 10.0,
        receipt_timeout: float = 120.0,
        gas_limits: Optional[Dict[str, int]] = None,
    ) -> "AsyncLedgerExecutor":
        web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": http_timeout}))
        contract = web3.eth.contract(address=Web3.to_checksum_address(executor_address), abi=EXECUTOR_ABI)
        return cls(
            web3,
            contract,
            account=account,
            nonce_lock=nonce_lock,
            receipt_timeout=receipt_timeout,
            gas_limits=gas_limits,
        )

    @property
    def signer_address(self) -> Optional[str]:
        return self._account.address if self._account is not None else None

    async def match_orders(self, buy_id: int, sell_id: int) -> Tuple[str, int]:
        return await self._transact("match_orders", "matchOrders", (buy_id, sell_id))

    async def cancel_order(self, order_id: int) -> Tuple[str, int]:
        return await self._transact("cancel_order", "cancelOrder", (order_id,))

    async def distribute_expired(self, from_id: int, to_id: int) -> Tuple[str, int]:
        return await self._transact("distribute_expired", "distributeExpiredOrders", (from_id, to_id))

    async def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    async def _transact(self, action: str, fn_name: str, args: Tuple[Any, ...]) -> Tuple[str, int]:
        if self._account is None:
            raise ActionRejected(action, "no signer configured")
        gas = self._gas_limits[fn_name]
        # Mutations are never retried here: a resend could settle twice.
        async with self._nonce_lock:
            return await self._call(lambda: self._send_and_wait(action, fn_name, args, gas))

    def _send_and_wait(self, action: str, fn_name: str, args: Tuple[Any, ...], gas: int) -> Tuple[str, int]:
        address = self._account.address
        fn = getattr(self._contract.functions, fn_name)(*args)
        tx = fn.build_transaction({
            "from": address,
            "nonce": self._web3.eth.get_transaction_count(address, "pending"),
            "gas": gas,
        })
        signed = self._account.sign_transaction(tx)
        tx_hash = self._web3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = self._web3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._receipt_timeout)
        if receipt["status"] != 1:
            raise ActionRejected(action, "transaction reverted", tx_hash.hex())
        return tx_hash.hex(), int(receipt["blockNumber"])

    async def _call(self, fn: Callable[[], Any]) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, fn)
