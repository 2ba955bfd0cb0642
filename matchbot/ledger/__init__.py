"""
Ledger package.

This package contains the LedgerGateway boundary and its EVM
implementation (JSON-RPC reader, transaction executor, nonce coordination).
"""

from matchbot.ledger.gateway import ActionResult, LedgerGateway
from matchbot.ledger.nonce import NonceCoordinator
from matchbot.ledger.rpc_reader import AsyncLedgerReader
from matchbot.ledger.async_execution import AsyncLedgerExecutor
from matchbot.ledger.evm_gateway import EvmLedgerGateway

__all__ = [
    "ActionResult",
    "LedgerGateway",
    "NonceCoordinator",
    "AsyncLedgerReader",
    "AsyncLedgerExecutor",
    "EvmLedgerGateway",
]
