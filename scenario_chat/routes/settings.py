"""Health check and chat model listing."""

from fastapi import APIRouter, Depends

from scenario_chat.context import Services
from scenario_chat.llm import ALLOWED_MODELS, resolve_model

from .deps import get_services

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/models")
async def list_models(services: Services = Depends(get_services)):
    """Chat models a request may select, plus the one used when none is given."""
    return {
        "models": list(ALLOWED_MODELS),
        "default": resolve_model(None, services.settings.chat_model),
    }
