"""
Pytest configuration and fixtures.

FakeLedger is an in-memory stand-in for the executor contract. It keeps raw
order records the way the chain reports them (camelCase fields) so the
parsing path in OrderSnapshot is exercised by every test.
"""

from typing import Any, Dict, List, Optional, Tuple

import pytest

from matchbot.core.models import PRICE_SCALE
from matchbot.ledger.gateway import ActionResult

TOKEN_A = "0x00000000000000000000000000000000000000aa"
TOKEN_B = "0x00000000000000000000000000000000000000bb"
TOKEN_C = "0x00000000000000000000000000000000000000cc"
ALICE = "0x000000000000000000000000000000000000a11c"
BOB = "0x0000000000000000000000000000000000000b0b"
OPERATOR = "0x00000000000000000000000000000000000000e7"

NOW = 1_700_000_000
FAR = NOW + 86_400
ONE = 10 ** 18


def make_record(
    maker: str = ALICE,
    token_in: str = TOKEN_B,
    token_out: str = TOKEN_A,
    amount_in: int = ONE,
    target_price: int = PRICE_SCALE,
    expiry: int = FAR,
    filled: bool = False,
    cancelled: bool = False,
    order_type: int = 0,
) -> Dict[str, Any]:
    return {
        "maker": maker,
        "tokenIn": token_in,
        "tokenOut": token_out,
        "pool": "0x0000000000000000000000000000000000000000",
        "amountIn": amount_in,
        "amountOutMin": 0,
        "targetPrice": target_price,
        "expiry": expiry,
        "filled": filled,
        "cancelled": cancelled,
        "orderType": order_type,
    }


def buy_record(**kwargs) -> Dict[str, Any]:
    """BUY of A paid in B."""
    kwargs.setdefault("token_in", TOKEN_B)
    kwargs.setdefault("token_out", TOKEN_A)
    return make_record(order_type=0, **kwargs)


def sell_record(**kwargs) -> Dict[str, Any]:
    """SELL of A for B."""
    kwargs.setdefault("token_in", TOKEN_A)
    kwargs.setdefault("token_out", TOKEN_B)
    kwargs.setdefault("maker", BOB)
    return make_record(order_type=1, **kwargs)


class FakeLedger:
    """
    In-memory LedgerGateway.

    match_effect controls what a successful match does to the records:
        "fill"      - both orders filled
        "fill_sell" - only the sell is filled, the buy keeps trading
        "none"      - call succeeds but nothing changes (stuck pair)
    """

    def __init__(self) -> None:
        self.orders: Dict[int, Dict[str, Any]] = {}
        self.match_effect = "fill"
        self.fail_matches = False
        self.raise_on_match: Optional[Exception] = None
        self.fail_cancels = False
        self.fail_next_id = False
        self.unreadable: set = set()
        self.vanish_on_match: set = set()
        self.sweep_failures: set = set()

        self.match_calls: List[Tuple[int, int]] = []
        self.cancel_calls: List[int] = []
        self.sweep_calls: List[Tuple[int, int]] = []
        self.read_calls: List[int] = []

    def add(self, record: Dict[str, Any]) -> int:
        order_id = len(self.orders) + 1
        self.orders[order_id] = dict(record)
        return order_id

    async def next_order_id(self) -> int:
        if self.fail_next_id:
            raise ConnectionError("rpc unavailable")
        return len(self.orders) + 1

    async def get_order(self, order_id: int) -> Optional[Dict[str, Any]]:
        self.read_calls.append(order_id)
        if order_id in self.unreadable:
            return None
        rec = self.orders.get(order_id)
        return dict(rec) if rec is not None else None

    async def match_orders(self, buy_id: int, sell_id: int) -> ActionResult:
        self.match_calls.append((buy_id, sell_id))
        if self.raise_on_match is not None:
            raise self.raise_on_match
        if self.fail_matches:
            return ActionResult(success=False, reason="execution reverted")
        if self.match_effect == "fill":
            self.orders[buy_id]["filled"] = True
            self.orders[sell_id]["filled"] = True
        elif self.match_effect == "fill_sell":
            self.orders[sell_id]["filled"] = True
            self.orders[buy_id]["amountIn"] //= 2
        self.unreadable.update(self.vanish_on_match)
        return ActionResult(success=True, tx_hash="0x" + "ab" * 32, block_number=1)

    async def cancel_order(self, order_id: int) -> ActionResult:
        self.cancel_calls.append(order_id)
        if self.fail_cancels:
            return ActionResult(success=False, reason="not maker")
        self.orders[order_id]["cancelled"] = True
        return ActionResult(success=True, tx_hash="0x" + "cd" * 32, block_number=1)

    async def distribute_expired(self, from_id: int, to_id: int) -> ActionResult:
        self.sweep_calls.append((from_id, to_id))
        if (from_id, to_id) in self.sweep_failures:
            return ActionResult(success=False, reason="out of gas")
        return ActionResult(success=True, tx_hash="0x" + "ef" * 32, block_number=1)


@pytest.fixture
def ledger():
    return FakeLedger()
