from matchbot.core.models import OrderKind, Order, PairKey
from matchbot.execution.pair_grouping import group_orders, pair_key


def _order(order_id, token_in, token_out, kind=OrderKind.BUY):
    return Order(
        id=order_id, maker="0xm", token_in=token_in, token_out=token_out, amount_in=1,
        target_price=1, expiry=10, filled=False, cancelled=False, kind=kind,
    )


def test_counterparties_share_a_group():
    buy = _order(1, "0xb", "0xa", OrderKind.BUY)
    sell = _order(2, "0xa", "0xb", OrderKind.SELL)
    assert pair_key(buy) == pair_key(sell) == PairKey("0xa", "0xb")

    groups = group_orders([buy, sell])
    assert list(groups) == [PairKey("0xa", "0xb")]
    assert [o.id for o in groups[PairKey("0xa", "0xb")]] == [1, 2]


def test_distinct_pairs_are_separate():
    orders = [
        _order(1, "0xb", "0xa"),
        _order(2, "0xc", "0xa"),
        _order(3, "0xa", "0xc", OrderKind.SELL),
    ]
    groups = group_orders(orders)
    assert len(groups) == 2
    assert [o.id for o in groups[PairKey("0xa", "0xc")]] == [2, 3]


def test_empty_input():
    assert group_orders([]) == {}
