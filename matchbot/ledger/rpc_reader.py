"""
Minimal async JSON-RPC reader for the executor contract's view functions.
"""

from __future__ import annotations

import itertools
from typing import Any, Dict, Optional

import httpx
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError

from matchbot.core.errors import TransientReadError
from matchbot.ledger.abi import (
    GET_ORDER_SELECTOR,
    NEXT_ORDER_ID_SELECTOR,
    ORDER_FIELD_NAMES,
    ORDER_FIELD_TYPES,
)


class AsyncLedgerReader:
    def __init__(
        self,
        rpc_url: str,
        executor_address: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.executor_address = executor_address
        # A shared client passed in is not closed by close(); otherwise we own it.
        if client is not None:
            self.client = client
            self._owns_client = False
        else:
            self.client = httpx.AsyncClient(timeout=timeout)
            self._owns_client = True
        self._ids = itertools.count(1)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def next_order_id(self) -> int:
        data = await self._eth_call(NEXT_ORDER_ID_SELECTOR)
        try:
            (value,) = decode(["uint256"], data)
        except DecodingError as exc:
            raise TransientReadError(f"nextOrderId: undecodable result: {exc}") from exc
        return int(value)

    async def get_order(self, order_id: int) -> Dict[str, Any]:
        data = await self._eth_call(GET_ORDER_SELECTOR + encode(["uint256"], [order_id]))
        try:
            values = decode(ORDER_FIELD_TYPES, data)
        except DecodingError as exc:
            raise TransientReadError(f"getOrder({order_id}): undecodable result: {exc}") from exc
        return dict(zip(ORDER_FIELD_NAMES, values))

    async def _eth_call(self, calldata: bytes) -> bytes:
        payload: dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": "eth_call",
            "params": [{"to": self.executor_address, "data": "0x" + calldata.hex()}, "latest"],
        }
        try:
            resp = await self.client.post(self.rpc_url, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TransientReadError(f"eth_call transport error: {exc}") from exc

        if not isinstance(body, dict):
            raise TransientReadError("eth_call: malformed response")
        if body.get("error"):
            err = body["error"]
            msg = err.get("message") if isinstance(err, dict) else str(err)
            raise TransientReadError(f"eth_call error: {msg}")
        result = body.get("result")
        if not isinstance(result, str) or len(result) <= 2:
            # Reverted getOrder on a deleted id comes back empty on some nodes.
            raise TransientReadError("eth_call: empty result")
        try:
            return bytes.fromhex(result[2:] if result.startswith("0x") else result)
        except ValueError as exc:
            raise TransientReadError(f"eth_call: non-hex result: {exc}") from exc
