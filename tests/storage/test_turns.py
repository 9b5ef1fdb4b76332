"""Tests for the chromadb-backed turn store."""

import pytest

from conftest import TEST_DIMENSION
from scenario_chat.errors import StoreWriteError, TurnStoreError
from scenario_chat.models import Turn
from scenario_chat.storage import (
    COLLECTION_PREFIX,
    TurnStore,
    collection_name,
    turn_from_record,
    turn_to_record,
)

SCENARIO = "scen1"


def _turn(n: int, ts: int, vector=None, **overrides) -> Turn:
    fields = dict(
        message_id=f"msg_{ts}",
        scenario_id=SCENARIO,
        turn_number=n,
        real_timestamp_utc_ms=ts,
        sender_character_id="char_alex",
        sender_is_player=True,
        message_content_text=f"message {ts}",
        present_character_ids_at_location=["char_alex", "char_mira"],
        dialogue_target_ids=["char_mira"],
        message_embedding=vector or [float(ts % 7), 0.0, 1.0, 0.5],
    )
    fields.update(overrides)
    return Turn(**fields)


@pytest.fixture
def store(turn_store: TurnStore) -> TurnStore:
    turn_store.ensure_collection(SCENARIO)
    return turn_store


# ---------------------------------------------------------------------------
# Naming and record mapping
# ---------------------------------------------------------------------------

def test_collection_name():
    assert collection_name("abc123") == f"{COLLECTION_PREFIX}abc123"


def test_collection_name_rejects_unsafe():
    with pytest.raises(ValueError):
        collection_name("a/b")


def test_record_round_trip():
    turn = _turn(3, 1000, references_previous_message_ids=["msg_1"])
    record_id, embedding, document, metadata = turn_to_record(turn)
    assert record_id == "msg_1000"
    assert document == "message 1000"
    assert isinstance(metadata["dialogue_target_ids"], str)
    assert "message_embedding" not in metadata
    restored = turn_from_record(record_id, document, metadata, embedding)
    assert restored.model_dump() == turn.model_dump()


# ---------------------------------------------------------------------------
# Provisioning
# ---------------------------------------------------------------------------

def test_ensure_collection_creates(turn_store: TurnStore, chroma_client):
    assert not turn_store.has_collection(SCENARIO)
    name = turn_store.ensure_collection(SCENARIO)
    assert turn_store.has_collection(SCENARIO)
    metadata = chroma_client.get_collection(name, embedding_function=None).metadata
    assert metadata["dimension"] == TEST_DIMENSION
    assert metadata["hnsw:space"] == "l2"


def test_ensure_collection_idempotent(store: TurnStore):
    store.insert(_turn(1, 1000))
    store.ensure_collection(SCENARIO)
    assert len(store.history(SCENARIO)) == 1


def test_ensure_collection_dimension_mismatch(store: TurnStore):
    with pytest.raises(TurnStoreError, match="dim"):
        store.ensure_collection(SCENARIO, dimension=TEST_DIMENSION + 1)


def test_drop_collection(store: TurnStore):
    store.insert(_turn(1, 1000))
    store.drop_collection(SCENARIO)
    assert not store.has_collection(SCENARIO)
    # absent collection: nothing to do
    store.drop_collection(SCENARIO)


def test_lookups_do_not_list_collections(turn_store: TurnStore, chroma_client, monkeypatch):
    def listing(*args, **kwargs):
        raise AssertionError("list_collections called")

    monkeypatch.setattr(chroma_client, "list_collections", listing)
    assert not turn_store.has_collection(SCENARIO)
    turn_store.ensure_collection(SCENARIO)
    assert turn_store.has_collection(SCENARIO)
    turn_store.insert(_turn(1, 1000))
    assert [t.message_id for t in turn_store.history(SCENARIO)] == ["msg_1000"]
    turn_store.drop_collection(SCENARIO)
    assert not turn_store.has_collection(SCENARIO)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def test_insert_requires_collection(turn_store: TurnStore):
    with pytest.raises(StoreWriteError, match="does not exist"):
        turn_store.insert(_turn(1, 1000))


def test_insert_rejects_wrong_dimension(store: TurnStore):
    with pytest.raises(StoreWriteError, match="expects"):
        store.insert(_turn(1, 1000, vector=[1.0, 2.0]))
    assert store.history(SCENARIO) == []


def test_insert_rejects_duplicate_id(store: TurnStore):
    store.insert(_turn(1, 1000))
    with pytest.raises(StoreWriteError, match="already stored"):
        store.insert(_turn(1, 1000))
    assert len(store.history(SCENARIO)) == 1


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def test_history_sorted_by_timestamp(store: TurnStore):
    for ts in (3000, 1000, 2000):
        store.insert(_turn(1, ts))
    history = store.history(SCENARIO)
    assert [t.real_timestamp_utc_ms for t in history] == [1000, 2000, 3000]
    assert history[0].dialogue_target_ids == ["char_mira"]
    assert history[0].message_content_text == "message 1000"


def test_history_limit_keeps_most_recent(store: TurnStore):
    for ts in range(1000, 1006):
        store.insert(_turn(1, ts))
    history = store.history(SCENARIO, limit=3)
    assert [t.real_timestamp_utc_ms for t in history] == [1003, 1004, 1005]


def test_history_missing_collection(turn_store: TurnStore):
    assert turn_store.history("never-created") == []


def test_next_turn_number(store: TurnStore):
    assert store.next_turn_number(SCENARIO) == 1
    store.insert(_turn(1, 1000))
    store.insert(_turn(1, 1001))
    store.insert(_turn(4, 1002))
    assert store.next_turn_number(SCENARIO) == 5


def test_next_turn_number_after_turn_zero(store: TurnStore):
    store.insert(_turn(0, 1000))
    assert store.next_turn_number(SCENARIO) == 1


def test_next_turn_number_missing_collection(turn_store: TurnStore):
    assert turn_store.next_turn_number("never-created") == 1


def test_similarity_search_nearest_first(store: TurnStore):
    store.insert(_turn(1, 1000, vector=[1.0, 0.0, 0.0, 0.0]))
    store.insert(_turn(1, 1001, vector=[0.0, 1.0, 0.0, 0.0]))
    store.insert(_turn(1, 1002, vector=[0.0, 0.0, 1.0, 0.0]))
    results = store.similarity_search(SCENARIO, [0.0, 0.9, 0.1, 0.0], k=2)
    assert [t.message_id for t in results] == ["msg_1001", "msg_1002"]


def test_similarity_search_k_larger_than_count(store: TurnStore):
    store.insert(_turn(1, 1000))
    assert len(store.similarity_search(SCENARIO, [0.0, 0.0, 1.0, 0.5], k=10)) == 1


def test_similarity_search_empty(store: TurnStore, turn_store: TurnStore):
    assert store.similarity_search(SCENARIO, [0.0] * TEST_DIMENSION) == []
    assert turn_store.similarity_search("never-created", [0.0] * TEST_DIMENSION) == []
