"""Stateless generation endpoints: scenario drafts, embeddings, one-off replies."""

import logging

from fastapi import APIRouter, Depends

from scenario_chat.context import Services
from scenario_chat.drafts import generate_scenario_draft
from scenario_chat.errors import InvalidInputError
from scenario_chat.pipeline import history_as_chat_messages
from scenario_chat.prompts import reply_system_prompt

from .deps import get_services
from .models import DraftBody, EmbeddingBody, GenerateResponseBody

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate-scenario-draft")
async def generate_draft(body: DraftBody, services: Services = Depends(get_services)):
    """Draft a scenario from a plot idea, or refine an existing one."""
    draft = await generate_scenario_draft(
        services.chat,
        plot_idea=body.plot_idea,
        scenario=body.scenario,
        instructions=body.instructions,
        model=body.model,
    )
    return draft.model_dump(by_alias=True)


@router.post("/generate-embedding")
async def generate_embedding(body: EmbeddingBody, services: Services = Depends(get_services)):
    """Embed a text with the configured embedding model."""
    embedding = await services.embedder.embed(body.text)
    return {"embedding": embedding}


@router.post("/generate-response")
async def generate_response(
    body: GenerateResponseBody, services: Services = Depends(get_services)
):
    """In-character reply to a prompt, without touching any scenario's history."""
    if not body.prompt.strip():
        raise InvalidInputError("Prompt is required")
    history = history_as_chat_messages([h.model_dump() for h in body.history])
    logger.debug("generate-response with %d history messages", len(history))
    text = await services.chat.complete(
        reply_system_prompt(body.character, body.scenario),
        body.prompt,
        history=history,
        model=body.model,
    )
    return {"response": text}
