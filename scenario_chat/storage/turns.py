"""Per-scenario turn collections in chromadb.

Every scenario owns one collection, `scenario_messages_{scenario_id}`. All
collections share the Turn schema; only the name differs. A turn maps onto a
chromadb record as:

    id         ← message_id
    embedding  ← message_embedding
    document   ← message_content_text
    metadata   ← every other Turn field (list fields JSON-encoded, since
                 chromadb metadata values must be scalars)

Collection metadata records the distance metric (L2 over an HNSW index) and
the embedding dimension; vectors of any other dimension are refused.

Reads used as advisory context (history, next_turn_number,
similarity_search) log failures and fall back to empty/1. Writes and
provisioning raise.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from chromadb.api import ClientAPI
from chromadb.errors import ChromaError

from scenario_chat.errors import StoreWriteError, TurnStoreError
from scenario_chat.models import Turn

from .core import is_safe_id

logger = logging.getLogger(__name__)

COLLECTION_PREFIX = "scenario_messages_"
DISTANCE_METRIC = "l2"
DEFAULT_HISTORY_LIMIT = 50

_VECTOR_FIELD = "message_embedding"
_TEXT_FIELD = "message_content_text"
_LIST_FIELDS = (
    "present_character_ids_at_location",
    "dialogue_target_ids",
    "mentioned_character_ids_in_content",
    "key_topics_or_entities",
    "references_previous_message_ids",
)


def collection_name(scenario_id: str) -> str:
    if not is_safe_id(scenario_id):
        raise ValueError(f"Invalid scenario id {scenario_id!r}")
    return f"{COLLECTION_PREFIX}{scenario_id}"


# ---------------------------------------------------------------------------
# Record mapping
# ---------------------------------------------------------------------------

def turn_to_record(turn: Turn) -> tuple[str, list[float], str, dict[str, Any]]:
    """Return (id, embedding, document, metadata) for a chromadb add()."""
    fields = turn.model_dump(exclude={"message_id", _VECTOR_FIELD, _TEXT_FIELD})
    for key in _LIST_FIELDS:
        fields[key] = json.dumps(fields[key])
    return turn.message_id, turn.message_embedding, turn.message_content_text, fields


def turn_from_record(
    record_id: str,
    document: str | None,
    metadata: dict[str, Any] | None,
    embedding: list[float] | None = None,
) -> Turn:
    fields = dict(metadata or {})
    for key in _LIST_FIELDS:
        raw = fields.get(key)
        fields[key] = json.loads(raw) if isinstance(raw, str) and raw else []
    fields["message_id"] = record_id
    fields[_TEXT_FIELD] = document or ""
    if embedding is not None:
        fields[_VECTOR_FIELD] = [float(v) for v in embedding]
    return Turn.model_validate(fields)


# ---------------------------------------------------------------------------
# TurnStore
# ---------------------------------------------------------------------------

class TurnStore:
    """Lifecycle and I/O for per-scenario turn collections.

    Args:
        client:    chromadb client (PersistentClient in production and tests).
        dimension: Embedding dimension every collection is created with.
    """

    def __init__(self, client: ClientAPI, dimension: int) -> None:
        self._client = client
        self.dimension = dimension

    def _get(self, scenario_id: str):
        return self._client.get_collection(
            name=collection_name(scenario_id), embedding_function=None
        )

    def _find(self, scenario_id: str):
        """The scenario's collection, or None when it does not exist."""
        try:
            return self._get(scenario_id)
        except (ValueError, ChromaError) as e:
            # ValueError on older chromadb, NotFoundError on newer
            if "does not exist" in str(e):
                return None
            raise

    def has_collection(self, scenario_id: str) -> bool:
        return self._find(scenario_id) is not None

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    def ensure_collection(self, scenario_id: str, dimension: int | None = None) -> str:
        """Create the scenario's collection if needed. Safe to call repeatedly."""
        name = collection_name(scenario_id)
        dim = dimension or self.dimension
        try:
            collection = self._find(scenario_id)
            if collection is not None:
                existing = (collection.metadata or {}).get("dimension")
                if existing is not None and int(existing) != dim:
                    raise TurnStoreError(
                        f"Collection {name} holds {existing}-dim vectors, not {dim}"
                    )
                logger.debug("Collection %s already exists", name)
                return name

            self._client.get_or_create_collection(
                name=name,
                metadata={
                    "hnsw:space": DISTANCE_METRIC,
                    "dimension": dim,
                    "scenario_id": scenario_id,
                },
                embedding_function=None,
            )
        except TurnStoreError:
            raise
        except Exception as e:
            raise TurnStoreError(f"Failed to provision collection {name}: {e}") from e
        logger.info("Created collection %s (dim=%d, metric=%s)", name, dim, DISTANCE_METRIC)
        return name

    def drop_collection(self, scenario_id: str) -> None:
        """Drop the scenario's collection. A missing collection is already dropped."""
        name = collection_name(scenario_id)
        try:
            if self._find(scenario_id) is None:
                logger.info("Collection %s does not exist, nothing to drop", name)
                return
            self._client.delete_collection(name=name)
        except Exception as e:
            raise TurnStoreError(f"Failed to drop collection {name}: {e}") from e
        logger.info("Dropped collection %s", name)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, turn: Turn) -> None:
        """Persist one turn. Raises StoreWriteError; never drops silently."""
        name = collection_name(turn.scenario_id)
        try:
            collection = self._find(turn.scenario_id)
            if collection is None:
                raise StoreWriteError(f"Collection {name} does not exist")
            expected = int((collection.metadata or {}).get("dimension") or self.dimension)
            if len(turn.message_embedding) != expected:
                raise StoreWriteError(
                    f"Turn {turn.message_id} has a {len(turn.message_embedding)}-dim "
                    f"embedding, collection {name} expects {expected}"
                )
            if collection.get(ids=[turn.message_id], include=[])["ids"]:
                raise StoreWriteError(f"Message {turn.message_id} already stored")
            record_id, embedding, document, metadata = turn_to_record(turn)
            collection.add(
                ids=[record_id],
                embeddings=[embedding],
                documents=[document],
                metadatas=[metadata],
            )
        except StoreWriteError:
            raise
        except Exception as e:
            raise StoreWriteError(f"Insert of {turn.message_id} into {name} failed: {e}") from e
        logger.debug(
            "Stored %s (%s)", turn.message_id, turn.message_content_text[:30]
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _all_turns(self, scenario_id: str) -> list[Turn]:
        result = self._get(scenario_id).get(
            where={"scenario_id": scenario_id},
            include=["metadatas", "documents"],
        )
        return [
            turn_from_record(rid, doc, meta)
            for rid, doc, meta in zip(
                result["ids"], result["documents"], result["metadatas"]
            )
        ]

    def history(self, scenario_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[Turn]:
        """Most recent `limit` turns, oldest first. [] on any failure."""
        try:
            turns = self._all_turns(scenario_id)
        except Exception as e:
            logger.warning("History query for scenario %s failed: %s", scenario_id, e)
            return []
        # chromadb gives no ordering guarantee
        turns.sort(key=lambda t: t.real_timestamp_utc_ms)
        if limit > 0:
            turns = turns[-limit:]
        logger.debug("Fetched %d turns for scenario %s", len(turns), scenario_id)
        return turns

    def next_turn_number(self, scenario_id: str) -> int:
        """max(existing turn_number, 0) + 1, or 1 when empty or unreadable."""
        try:
            result = self._get(scenario_id).get(
                where={"scenario_id": scenario_id}, include=["metadatas"]
            )
        except Exception as e:
            logger.warning("Turn number query for scenario %s failed: %s", scenario_id, e)
            return 1
        numbers = [int((m or {}).get("turn_number") or 0) for m in result["metadatas"]]
        return max([0, *numbers]) + 1

    def similarity_search(
        self, scenario_id: str, query_vector: list[float], k: int = 5
    ) -> list[Turn]:
        """Nearest turns to `query_vector`, best first. [] on any failure."""
        try:
            collection = self._get(scenario_id)
            count = collection.count()
            if count == 0 or k <= 0:
                return []
            result = collection.query(
                query_embeddings=[query_vector],
                n_results=min(k, count),
                where={"scenario_id": scenario_id},
                include=["metadatas", "documents", "distances"],
            )
        except Exception as e:
            logger.warning("Similarity search in scenario %s failed: %s", scenario_id, e)
            return []
        return [
            turn_from_record(rid, doc, meta)
            for rid, doc, meta in zip(
                result["ids"][0], result["documents"][0], result["metadatas"][0]
            )
        ]
