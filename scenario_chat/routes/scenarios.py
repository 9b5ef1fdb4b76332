"""Scenario CRUD + messages + chat exchange + similarity search endpoints."""

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from scenario_chat.context import Services
from scenario_chat.errors import ScenarioNotFound
from scenario_chat.lifecycle import create_scenario, delete_scenario
from scenario_chat.models import DeletionStatus, Scenario
from scenario_chat.pipeline import display_message, run_exchange

from .deps import get_services
from .models import ChatBody, SearchBody

router = APIRouter()

_DELETION_STATUS_CODES = {
    DeletionStatus.DELETED: 200,
    DeletionStatus.PARTIAL: 207,
    DeletionStatus.FAILED: 500,
}


def _require_scenario(services: Services, scenario_id: str) -> Scenario:
    scenario = services.scenarios.get(scenario_id)
    if scenario is None:
        raise ScenarioNotFound(scenario_id)
    return scenario


@router.get("/scenarios")
async def list_scenarios(services: Services = Depends(get_services)):
    """List all scenarios, newest first."""
    return [s.model_dump(by_alias=True) for s in services.scenarios.list_scenarios()]


@router.post("/scenarios", status_code=201)
async def post_scenario(
    body: dict = Body(...), services: Services = Depends(get_services)
):
    """Create a scenario and provision its message storage."""
    report = create_scenario(services.scenarios, services.turns, body)
    return {"id": report.scenario.id, "collectionReady": report.collection_ready}


@router.get("/scenarios/{scenario_id}")
async def get_scenario(scenario_id: str, services: Services = Depends(get_services)):
    """Get a single scenario by id."""
    return _require_scenario(services, scenario_id).model_dump(by_alias=True)


@router.delete("/scenarios/{scenario_id}")
async def remove_scenario(scenario_id: str, services: Services = Depends(get_services)):
    """Delete a scenario and its stored messages.

    200 when both are gone, 207 when only the document is, 500 when neither is.
    """
    report = delete_scenario(services.scenarios, services.turns, scenario_id)
    return JSONResponse(
        report.model_dump(by_alias=True, mode="json"),
        status_code=_DELETION_STATUS_CODES[report.status],
    )


@router.get("/scenarios/{scenario_id}/messages")
async def get_messages(
    scenario_id: str, limit: int = 50, services: Services = Depends(get_services)
):
    """Chat history for a scenario, oldest first."""
    scenario = _require_scenario(services, scenario_id)
    if not services.turns.has_collection(scenario_id):
        return []
    history = services.turns.history(scenario_id, limit=limit)
    return [display_message(t, scenario) for t in history]


@router.post("/scenarios/{scenario_id}/chat")
async def scenario_chat(
    scenario_id: str, body: ChatBody, services: Services = Depends(get_services)
):
    """Send a player message; every AI character replies in turn."""
    result = await run_exchange(
        scenarios=services.scenarios,
        turns=services.turns,
        embedder=services.embedder,
        chat=services.chat,
        scenario_id=scenario_id,
        message=body.message,
        model=body.model,
        character_timeout=services.settings.character_timeout,
    )
    return result.model_dump(by_alias=True)


@router.post("/scenarios/{scenario_id}/search")
async def search_messages(
    scenario_id: str, body: SearchBody, services: Services = Depends(get_services)
):
    """Stored messages most similar to a free-text query."""
    scenario = _require_scenario(services, scenario_id)
    if not services.turns.has_collection(scenario_id):
        return []
    vector = await services.embedder.embed(body.query)
    matches = services.turns.similarity_search(scenario_id, vector, k=body.k)
    return [display_message(t, scenario) for t in matches]
