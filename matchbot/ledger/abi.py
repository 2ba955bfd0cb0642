"""
ABI fragments of the limit-order executor contract used by the matcher.
"""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from eth_utils import function_signature_to_4byte_selector

# Layout of the struct returned by getOrder(uint256). Every member is a
# static type, so the struct encodes exactly like a flat tuple.
ORDER_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("maker", "address"),
    ("tokenIn", "address"),
    ("tokenOut", "address"),
    ("pool", "address"),
    ("amountIn", "uint256"),
    ("amountOutMin", "uint256"),
    ("targetPrice", "uint256"),
    ("expiry", "uint256"),
    ("filled", "bool"),
    ("cancelled", "bool"),
    ("orderType", "uint8"),
)
ORDER_FIELD_NAMES: List[str] = [name for name, _ in ORDER_FIELDS]
ORDER_FIELD_TYPES: List[str] = [typ for _, typ in ORDER_FIELDS]

NEXT_ORDER_ID_SELECTOR: bytes = function_signature_to_4byte_selector("nextOrderId()")
GET_ORDER_SELECTOR: bytes = function_signature_to_4byte_selector("getOrder(uint256)")


def _fn(name: str, inputs: List[Tuple[str, str]]) -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "nonpayable",
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [],
    }


EXECUTOR_ABI: List[Dict[str, Any]] = [
    _fn("matchOrders", [("buyId", "uint256"), ("sellId", "uint256")]),
    _fn("cancelOrder", [("orderId", "uint256")]),
    _fn("distributeExpiredOrders", [("fromId", "uint256"), ("toId", "uint256")]),
]
