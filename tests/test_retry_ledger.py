from matchbot.execution.retry_ledger import InMemoryRetryLedger, RetryLedgerStore, prune_closed


def test_increment_counts_from_one():
    store = InMemoryRetryLedger()
    assert store.increment((1, 2)) == 1
    assert store.increment((1, 2)) == 2
    assert store.increment((3, 4)) == 1
    assert store.get((1, 2)) == 2
    assert len(store) == 2


def test_remove_is_idempotent():
    store = InMemoryRetryLedger()
    store.increment((1, 2))
    store.remove((1, 2))
    store.remove((1, 2))
    assert (1, 2) not in store
    assert store.get((1, 2)) == 0


def test_direction_matters():
    store = InMemoryRetryLedger()
    store.increment((1, 2))
    assert (2, 1) not in store


def test_prune_drops_entries_with_closed_side():
    store = InMemoryRetryLedger()
    store.increment((1, 2))
    store.increment((3, 4))
    store.increment((1, 5))

    removed = prune_closed(store, live_ids=[1, 2, 3])
    assert removed == 2
    assert store.keys() == [(1, 2)]


def test_satisfies_store_protocol():
    store: RetryLedgerStore = InMemoryRetryLedger()
    assert store.keys() == []
