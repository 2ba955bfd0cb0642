"""
Tests for AsyncLedgerExecutor with a mocked web3 stack.
"""
import asyncio

import pytest
from unittest.mock import MagicMock

from matchbot.core.errors import ActionRejected
from matchbot.ledger.async_execution import AsyncLedgerExecutor


def _executor(status=1, account=True):
    web3 = MagicMock()
    web3.eth.get_transaction_count.return_value = 7
    tx_hash = MagicMock()
    tx_hash.hex.return_value = "0x" + "12" * 32
    web3.eth.send_raw_transaction.return_value = tx_hash
    web3.eth.wait_for_transaction_receipt.return_value = {"status": status, "blockNumber": 99}

    contract = MagicMock()
    contract.functions.matchOrders.return_value.build_transaction.return_value = {"to": "0xexec"}
    contract.functions.cancelOrder.return_value.build_transaction.return_value = {"to": "0xexec"}

    acct = None
    if account:
        acct = MagicMock()
        acct.address = "0x00000000000000000000000000000000000000e7"
        acct.sign_transaction.return_value = MagicMock(raw_transaction=b"signed")

    return AsyncLedgerExecutor(web3, contract, account=acct, gas_limits={"matchOrders": 777}), web3, contract, acct


@pytest.mark.asyncio
async def test_match_sends_signed_transaction():
    ex, web3, contract, acct = _executor()

    tx_hash, block = await ex.match_orders(4, 9)

    assert tx_hash == "0x" + "12" * 32
    assert block == 99
    contract.functions.matchOrders.assert_called_once_with(4, 9)
    params = contract.functions.matchOrders.return_value.build_transaction.call_args[0][0]
    assert params == {"from": acct.address, "nonce": 7, "gas": 777}
    web3.eth.get_transaction_count.assert_called_once_with(acct.address, "pending")
    web3.eth.send_raw_transaction.assert_called_once_with(b"signed")
    await ex.close()


@pytest.mark.asyncio
async def test_default_gas_limit_used():
    ex, _, contract, _ = _executor()
    await ex.cancel_order(3)
    params = contract.functions.cancelOrder.return_value.build_transaction.call_args[0][0]
    assert params["gas"] == 300_000
    await ex.close()


@pytest.mark.asyncio
async def test_reverted_receipt_raises():
    ex, _, _, _ = _executor(status=0)
    with pytest.raises(ActionRejected) as excinfo:
        await ex.match_orders(1, 2)
    assert excinfo.value.reason == "transaction reverted"
    assert excinfo.value.tx_hash == "0x" + "12" * 32
    await ex.close()


@pytest.mark.asyncio
async def test_no_signer_rejects_without_sending():
    ex, web3, _, _ = _executor(account=False)
    assert ex.signer_address is None
    with pytest.raises(ActionRejected, match="no signer"):
        await ex.cancel_order(1)
    web3.eth.send_raw_transaction.assert_not_called()
    await ex.close()


@pytest.mark.asyncio
async def test_transactions_serialize_on_nonce_lock():
    lock = asyncio.Lock()
    ex, _, _, _ = _executor()
    ex._nonce_lock = lock

    await lock.acquire()
    task = asyncio.create_task(ex.match_orders(1, 2))
    await asyncio.sleep(0.01)
    assert not task.done()
    lock.release()
    await asyncio.wait_for(task, timeout=1.0)
    await ex.close()
