"""Core domain models.

Scenario documents use camelCase on the wire and on disk (the frontend's
shape); Python code uses snake_case attributes. Turns use snake_case
throughout since their field names double as vector-store metadata keys.
Pydantic is used for validation and serialisation at every data boundary.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

# Upper bounds on list-valued turn fields
MAX_PRESENT_CHARACTERS = 10
MAX_DIALOGUE_TARGETS = 5
MAX_MENTIONED_CHARACTERS = 10
MAX_KEY_TOPICS = 20
MAX_REFERENCED_MESSAGES = 5

MessageType = Literal["dialogue", "action", "narration"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Scenario documents
# ---------------------------------------------------------------------------

class Character(CamelModel):
    """A character embedded in a scenario. Exactly one is normally the player."""

    id: str = ""
    name: str = ""
    gender: str = ""
    is_player: bool = False
    personality_traits: list[str] = Field(default_factory=list)
    physical_attributes: list[str] = Field(default_factory=list)
    backstory: str = ""
    description: str = ""
    personality: str = ""
    avatar: str = ""


class Scene(CamelModel):
    name: str = ""
    description: str = ""


class Scenario(CamelModel):
    id: str = ""
    title: str = ""
    description: str = ""
    venue: str = ""
    current_fictional_date_time: str = ""
    fictional_total_time_elapsed_seconds: int = 0
    characters: list[Character] = Field(default_factory=list)
    scenes: list[Scene] = Field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def player(self) -> Character | None:
        return next((c for c in self.characters if c.is_player), None)

    def ai_characters(self) -> list[Character]:
        """Non-player characters in list order."""
        return [c for c in self.characters if not c.is_player]

    def character_by_id(self, character_id: str) -> Character | None:
        return next((c for c in self.characters if c.id == character_id), None)


class ScenarioDraft(CamelModel):
    """LLM-generated scenario proposal; becomes a Scenario once created."""

    title: str = ""
    description: str = ""
    characters: list[Character] = Field(default_factory=list)
    scenes: list[Scene] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Turns (one chat message with its embedding)
# ---------------------------------------------------------------------------

class Turn(BaseModel):
    """One stored chat message, from the player or an AI character."""

    message_id: str
    scenario_id: str
    turn_number: int
    real_timestamp_utc_ms: int
    sender_character_id: str
    sender_is_player: bool
    venue_name: str = ""
    sub_location_in_venue: str = ""
    present_character_ids_at_location: list[str] = Field(
        default_factory=list, max_length=MAX_PRESENT_CHARACTERS
    )
    fictional_datetime_iso: str = ""
    fictional_total_time_elapsed_seconds: int = 0
    message_content_text: str
    message_type: MessageType = "dialogue"
    action_details: str = ""
    dialogue_target_ids: list[str] = Field(
        default_factory=list, max_length=MAX_DIALOGUE_TARGETS
    )
    # Reserved for a future enrichment step; always written empty for now.
    mentioned_character_ids_in_content: list[str] = Field(
        default_factory=list, max_length=MAX_MENTIONED_CHARACTERS
    )
    key_topics_or_entities: list[str] = Field(
        default_factory=list, max_length=MAX_KEY_TOPICS
    )
    sender_expressed_emotion: str = ""
    references_previous_message_ids: list[str] = Field(
        default_factory=list, max_length=MAX_REFERENCED_MESSAGES
    )
    plot_relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)
    message_embedding: list[float] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class CharacterReply(CamelModel):
    """Outcome of one AI character's turn within an exchange."""

    character_id: str
    character_name: str
    reply: str
    message_id: str
    timestamp: int
    error: bool = False
    error_detail: str | None = None


class ExchangeResult(CamelModel):
    success: bool = True
    user_message_id: str
    timestamp: int
    turn_number: int
    replies: list[CharacterReply] = Field(default_factory=list)
    ai_message_ids: list[str] = Field(default_factory=list)
    character_count: int = 0

    @computed_field
    @property
    def partial_failure(self) -> bool:
        return any(r.error for r in self.replies)


class DeletionStatus(str, Enum):
    DELETED = "deleted"
    PARTIAL = "partial"
    FAILED = "failed"


class DeletionReport(CamelModel):
    scenario_id: str
    status: DeletionStatus
    document_deleted: bool
    collection_dropped: bool
    detail: str = ""


class CreationReport(CamelModel):
    scenario: Scenario
    collection_ready: bool
