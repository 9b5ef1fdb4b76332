"""Scenario creation and deletion across both stores.

There is no transaction spanning the document store and the vector store,
so each flow reports exactly which half succeeded.

Creation: write the document, then provision the turn collection. A
provisioning failure keeps the document (the collection is ensured again on
the first exchange) and is reported as collection_ready=False.

Deletion: remove the document, then drop the collection.
  document removed (or already gone) + collection dropped (or absent) → DELETED
  document removed, collection drop failed                            → PARTIAL
  document removal failed (collection left untouched)                 → FAILED
"""

import logging
from typing import Any

from scenario_chat.errors import InvalidInputError, TurnStoreError
from scenario_chat.models import CreationReport, DeletionReport, DeletionStatus
from scenario_chat.storage import ScenarioStore, TurnStore, is_safe_id

logger = logging.getLogger(__name__)


def create_scenario(
    scenarios: ScenarioStore, turns: TurnStore, data: dict[str, Any]
) -> CreationReport:
    """Persist a scenario and provision its turn collection.

    Raises pydantic.ValidationError for malformed payloads (nothing written).
    """
    scenario = scenarios.create(data)
    try:
        turns.ensure_collection(scenario.id)
    except TurnStoreError as e:
        logger.error("Scenario %s created but its turn collection was not: %s", scenario.id, e)
        return CreationReport(scenario=scenario, collection_ready=False)
    return CreationReport(scenario=scenario, collection_ready=True)


def delete_scenario(
    scenarios: ScenarioStore, turns: TurnStore, scenario_id: str
) -> DeletionReport:
    if not is_safe_id(scenario_id):
        raise InvalidInputError(f"Invalid scenario id {scenario_id!r}")

    try:
        if not scenarios.delete(scenario_id):
            logger.warning("Scenario document %s not found, treating as deleted", scenario_id)
    except OSError as e:
        logger.error("Failed to delete scenario document %s: %s", scenario_id, e)
        return DeletionReport(
            scenario_id=scenario_id,
            status=DeletionStatus.FAILED,
            document_deleted=False,
            collection_dropped=False,
            detail=f"Failed to delete scenario: {e}",
        )

    try:
        turns.drop_collection(scenario_id)
    except TurnStoreError as e:
        logger.error("Scenario %s deleted but its message storage was not: %s", scenario_id, e)
        return DeletionReport(
            scenario_id=scenario_id,
            status=DeletionStatus.PARTIAL,
            document_deleted=True,
            collection_dropped=False,
            detail=(
                f"Scenario {scenario_id} was deleted, but its message storage "
                f"could not be removed: {e}"
            ),
        )

    return DeletionReport(
        scenario_id=scenario_id,
        status=DeletionStatus.DELETED,
        document_deleted=True,
        collection_dropped=True,
        detail=f"Scenario {scenario_id} and its message storage deleted successfully.",
    )
