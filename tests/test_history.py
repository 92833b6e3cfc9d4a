import pytest

from storage.history import SearchHistory
from storage.kv_store import StoreError


def test_newest_first_and_case_insensitive_dedupe(store, clock):
    history = SearchHistory(store, clock=clock)

    history.record("Monad", 9)
    clock.advance(1)
    history.record("Berachain")
    clock.advance(1)
    history.record("MONAD", 7)

    entries = history.entries()
    assert [(e.query, e.score) for e in entries] == [("MONAD", 7), ("Berachain", None)]
    assert entries[0].timestamp == int(clock.now * 1000)


def test_history_is_capped(store, clock):
    history = SearchHistory(store, limit=3, clock=clock)
    for name in ["a", "b", "c", "d"]:
        history.record(name)

    assert [e.query for e in history.entries()] == ["d", "c", "b"]


def test_blank_query_is_rejected(store):
    with pytest.raises(ValueError):
        SearchHistory(store).record("  ")


def test_corrupt_history_raises(store):
    store.set("search_history", '{"query": "not a list"}')

    with pytest.raises(StoreError):
        SearchHistory(store).entries()


def test_empty_history(store):
    assert SearchHistory(store).entries() == []
