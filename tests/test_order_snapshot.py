"""
Tests for OrderSnapshot and record parsing.
"""
import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from matchbot.core.errors import SnapshotError
from matchbot.core.models import OrderKind
from matchbot.execution.order_snapshot import OrderSnapshot, SnapshotConfig, parse_order

from conftest import ALICE, NOW, TOKEN_A, TOKEN_B, buy_record, make_record, sell_record


class TestParseOrder:
    def test_well_formed_record(self):
        order, defaulted = parse_order(7, sell_record(amount_in=5, target_price=11, expiry=99))
        assert defaulted == []
        assert order.id == 7
        assert order.kind is OrderKind.SELL
        assert order.token_in == TOKEN_A
        assert order.token_out == TOKEN_B
        assert (order.amount_in, order.target_price, order.expiry) == (5, 11, 99)

    def test_addresses_are_lower_cased(self):
        order, _ = parse_order(1, make_record(maker=ALICE.upper().replace("0X", "0x")))
        assert order.maker == ALICE

    def test_hex_and_string_numbers(self):
        rec = make_record(amount_in="0x10", target_price="42")
        order, defaulted = parse_order(1, rec)
        assert defaulted == []
        assert order.amount_in == 16
        assert order.target_price == 42

    def test_malformed_fields_are_defaulted(self):
        rec = make_record()
        rec["amountIn"] = "lots"
        rec["filled"] = "maybe"
        rec["orderType"] = 9
        del rec["tokenOut"]
        order, defaulted = parse_order(3, rec)
        assert set(defaulted) == {"amountIn", "filled", "orderType", "tokenOut"}
        assert order.amount_in == 0
        assert order.filled is False
        assert order.kind is None
        assert order.token_out == ""

    def test_negative_amount_is_malformed(self):
        order, defaulted = parse_order(1, make_record(amount_in=-5))
        assert "amountIn" in defaulted
        assert order.amount_in == 0


class TestSnapshot:
    @pytest.mark.asyncio
    async def test_returns_only_open_orders(self, ledger):
        live = ledger.add(buy_record())
        ledger.add(buy_record(filled=True))
        ledger.add(sell_record(cancelled=True))
        ledger.add(sell_record(expiry=NOW))
        ledger.add(sell_record(amount_in=0))
        live_sell = ledger.add(sell_record())

        snap = OrderSnapshot(ledger)
        orders = await snap.snapshot(NOW)

        assert [o.id for o in orders] == [live, live_sell]
        assert snap.last_next_order_id == 7
        assert snap.last_read_count == 6

    @pytest.mark.asyncio
    async def test_reads_every_id_below_counter(self, ledger):
        for _ in range(5):
            ledger.add(buy_record())
        await OrderSnapshot(ledger).snapshot(NOW)
        assert sorted(ledger.read_calls) == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_empty_ledger(self, ledger):
        snap = OrderSnapshot(ledger)
        assert await snap.snapshot(NOW) == []
        assert ledger.read_calls == []

    @pytest.mark.asyncio
    async def test_unreadable_order_is_absent(self, ledger):
        ledger.add(buy_record())
        ledger.add(sell_record())
        ledger.unreadable.add(1)
        orders = await OrderSnapshot(ledger).snapshot(NOW)
        assert [o.id for o in orders] == [2]

    @pytest.mark.asyncio
    async def test_read_exception_is_absent(self):
        gateway = MagicMock()
        gateway.next_order_id = AsyncMock(return_value=3)
        gateway.get_order = AsyncMock(side_effect=[TimeoutError("slow"), buy_record()])
        orders = await OrderSnapshot(gateway).snapshot(NOW)
        assert len(orders) == 1

    @pytest.mark.asyncio
    async def test_counter_failure_raises(self, ledger):
        ledger.fail_next_id = True
        events = []
        snap = OrderSnapshot(ledger, SnapshotConfig(log_event_callback=lambda e, **kw: events.append(e)))
        with pytest.raises(SnapshotError):
            await snap.snapshot(NOW)
        assert "snapshot_failed" in events

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        in_flight = 0
        peak = 0

        async def get_order(order_id):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.001)
            in_flight -= 1
            return buy_record()

        gateway = MagicMock()
        gateway.next_order_id = AsyncMock(return_value=21)
        gateway.get_order = get_order

        orders = await OrderSnapshot(gateway, SnapshotConfig(concurrency=4)).snapshot(NOW)
        assert len(orders) == 20
        assert peak <= 4

    @pytest.mark.asyncio
    async def test_read_order_returns_closed_orders(self, ledger):
        oid = ledger.add(buy_record(filled=True))
        order = await OrderSnapshot(ledger).read_order(oid)
        assert order is not None and order.filled
