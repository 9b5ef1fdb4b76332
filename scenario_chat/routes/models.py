"""Pydantic request models for API endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from scenario_chat.models import Character


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatBody(_Body):
    message: str
    model: str | None = None


class SearchBody(_Body):
    query: str
    k: int = Field(default=5, ge=1, le=50)


class DraftBody(_Body):
    plot_idea: str | None = None
    scenario: dict[str, Any] | None = None
    instructions: str | None = None
    model: str | None = None


class EmbeddingBody(_Body):
    text: str


class HistoryEntry(_Body):
    role: str = "user"
    content: str = ""


class GenerateResponseBody(_Body):
    prompt: str
    character: Character | None = None
    history: list[HistoryEntry] = Field(default_factory=list)
    scenario: str = ""
    model: str | None = None
