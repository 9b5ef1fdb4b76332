"""Chat exchange: one player message in, one reply per AI character out.

Every turn of an exchange (the player's and each reply) shares one
turn_number; real_timestamp_utc_ms strictly increases within the exchange,
and past the newest stored turn, so ordering survives the shared number.
"""

import asyncio
import logging
import uuid

from scenario_chat.embeddings import Embedder
from scenario_chat.errors import InvalidInputError, NoAiCharacters, ScenarioNotFound
from scenario_chat.llm import ChatModel
from scenario_chat.models import (
    MAX_DIALOGUE_TARGETS,
    MAX_PRESENT_CHARACTERS,
    Character,
    CharacterReply,
    ExchangeResult,
    Scenario,
    Turn,
)
from scenario_chat.prompts import character_system_prompt
from scenario_chat.storage import ScenarioStore, TurnStore, new_message_id, now_iso, now_ms

from .context import format_conversation

logger = logging.getLogger(__name__)

PLAYER_DEFAULT_ID = "player_default_id"
AI_DEFAULT_ID = "ai_default_id"
UNKNOWN_VENUE = "Unknown Venue"
UNKNOWN_LOCATION = "Unknown Location"


class _TurnBuilder:
    """Fills in the scenario-derived metadata shared by all turns of one exchange."""

    def __init__(
        self,
        scenario: Scenario,
        player: Character | None,
        ai_characters: list[Character],
        turn_number: int,
        last_timestamp: int = 0,
    ) -> None:
        self.scenario = scenario
        self.turn_number = turn_number
        self.player_id = player.id if player and player.id else PLAYER_DEFAULT_ID
        self.ai_ids = [c.id for c in ai_characters if c.id]
        self._fictional_datetime = scenario.current_fictional_date_time or now_iso()
        self._last_ts = last_timestamp

    def next_timestamp(self) -> int:
        ts = max(now_ms(), self._last_ts + 1)
        self._last_ts = ts
        return ts

    def build(
        self,
        *,
        sender_id: str,
        is_player: bool,
        text: str,
        embedding: list[float],
        targets: list[str],
        references: list[str],
    ) -> Turn:
        return Turn(
            message_id=new_message_id(),
            scenario_id=self.scenario.id,
            turn_number=self.turn_number,
            real_timestamp_utc_ms=self.next_timestamp(),
            sender_character_id=sender_id,
            sender_is_player=is_player,
            venue_name=self.scenario.venue or UNKNOWN_VENUE,
            sub_location_in_venue=UNKNOWN_LOCATION,
            present_character_ids_at_location=[self.player_id, *self.ai_ids][
                :MAX_PRESENT_CHARACTERS
            ],
            fictional_datetime_iso=self._fictional_datetime,
            fictional_total_time_elapsed_seconds=self.scenario.fictional_total_time_elapsed_seconds,
            message_content_text=text,
            message_type="dialogue",
            dialogue_target_ids=targets[:MAX_DIALOGUE_TARGETS],
            references_previous_message_ids=references,
            message_embedding=embedding,
        )


def _error_reply(character: Character, detail: str, timestamp: int) -> CharacterReply:
    name = character.name or "AI"
    return CharacterReply(
        character_id=character.id or AI_DEFAULT_ID,
        character_name=name,
        reply=f"Error: Could not generate response for {name}",
        message_id=f"error_{uuid.uuid4().hex}",
        timestamp=timestamp,
        error=True,
        error_detail=detail,
    )


async def run_exchange(
    *,
    scenarios: ScenarioStore,
    turns: TurnStore,
    embedder: Embedder,
    chat: ChatModel,
    scenario_id: str,
    message: str,
    model: str | None = None,
    character_timeout: float | None = None,
) -> ExchangeResult:
    """Run one exchange and return every AI character's reply.

    Raises InvalidInputError, ScenarioNotFound, or NoAiCharacters before any
    side effect. Failures while provisioning the collection or embedding and
    storing the player's turn abort with the underlying UpstreamError. Later
    failures are isolated per character and reported on the result.
    """
    text = (message or "").strip()
    if not text:
        raise InvalidInputError("Message cannot be empty")

    scenario = scenarios.get(scenario_id)
    if scenario is None:
        raise ScenarioNotFound(scenario_id)
    player = scenario.player()
    ai_characters = scenario.ai_characters()
    if not ai_characters:
        raise NoAiCharacters(scenario_id)
    logger.debug(
        "Exchange for %s: player=%s, %d AI characters",
        scenario_id, player.name if player else None, len(ai_characters),
    )

    # Reads before writes. chromadb calls block, so they run in worker threads.
    await asyncio.to_thread(turns.ensure_collection, scenario_id, embedder.dimension)
    history = await asyncio.to_thread(turns.history, scenario_id)
    turn_number = await asyncio.to_thread(turns.next_turn_number, scenario_id)
    builder = _TurnBuilder(
        scenario, player, ai_characters, turn_number,
        last_timestamp=history[-1].real_timestamp_utc_ms if history else 0,
    )

    # Player turn: mandatory
    user_embedding = await embedder.embed(text)
    user_turn = builder.build(
        sender_id=builder.player_id,
        is_player=True,
        text=text,
        embedding=user_embedding,
        targets=builder.ai_ids,
        references=[],
    )
    await asyncio.to_thread(turns.insert, user_turn)

    running = [*history, user_turn]
    replies: list[CharacterReply] = []
    writes: list[tuple[int, asyncio.Task]] = []

    async def generate(character: Character) -> tuple[str, list[float]]:
        conversation = format_conversation(running, scenario)
        system_prompt = character_system_prompt(scenario, character, conversation, text)
        reply = await chat.complete(system_prompt, text, model=model)
        return reply, await embedder.embed(reply)

    for character in ai_characters:
        try:
            if character_timeout:
                reply, embedding = await asyncio.wait_for(
                    generate(character), character_timeout
                )
            else:
                reply, embedding = await generate(character)
            ai_turn = builder.build(
                sender_id=character.id or AI_DEFAULT_ID,
                is_player=False,
                text=reply,
                embedding=embedding,
                targets=[builder.player_id],
                references=[user_turn.message_id],
            )
        except Exception as e:
            logger.warning("Reply from %s failed: %s", character.name, e)
            replies.append(_error_reply(
                character, str(e) or type(e).__name__, builder.next_timestamp()
            ))
            continue

        writes.append((
            len(replies),
            asyncio.create_task(asyncio.to_thread(turns.insert, ai_turn)),
        ))
        replies.append(CharacterReply(
            character_id=ai_turn.sender_character_id,
            character_name=character.name or "AI",
            reply=reply,
            message_id=ai_turn.message_id,
            timestamp=ai_turn.real_timestamp_utc_ms,
        ))
        running.append(ai_turn)

    # Settle every dispatched write before reporting
    outcomes = await asyncio.gather(*(task for _, task in writes), return_exceptions=True)
    for (index, _), outcome in zip(writes, outcomes):
        if isinstance(outcome, BaseException):
            logger.warning(
                "Reply %s was generated but not stored: %s",
                replies[index].message_id, outcome,
            )
            replies[index].error = True
            replies[index].error_detail = f"Reply was not saved: {outcome}"

    result = ExchangeResult(
        user_message_id=user_turn.message_id,
        timestamp=user_turn.real_timestamp_utc_ms,
        turn_number=turn_number,
        replies=replies,
        ai_message_ids=[r.message_id for r in replies if not r.error],
        character_count=len(ai_characters),
    )
    logger.info(
        "Exchange for scenario %s turn %d: %d replies, %d failed",
        scenario_id, turn_number, len(replies), sum(r.error for r in replies),
    )
    return result
