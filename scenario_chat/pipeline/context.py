"""Conversation context for AI characters.

Turns are labelled by speaker: player turns by the player character's name,
other turns by the sending character's name, "AI" when the sender is not
in the scenario any more.
"""

from scenario_chat.models import Scenario, Turn

CONTEXT_WINDOW = 10
PLAYER_FALLBACK_NAME = "Player"
AI_FALLBACK_NAME = "AI"


def speaker_name(turn: Turn, scenario: Scenario) -> str:
    if turn.sender_is_player:
        player = scenario.player()
        return player.name if player and player.name else PLAYER_FALLBACK_NAME
    sender = scenario.character_by_id(turn.sender_character_id)
    return sender.name if sender and sender.name else AI_FALLBACK_NAME


def format_conversation(
    history: list[Turn], scenario: Scenario, window: int = CONTEXT_WINDOW
) -> str:
    """Last `window` turns as "Name: text" lines."""
    return "\n".join(
        f"{speaker_name(t, scenario)}: {t.message_content_text}"
        for t in history[-window:]
    )


def display_message(turn: Turn, scenario: Scenario) -> dict:
    """Turn as the chat page renders it."""
    return {
        "id": turn.message_id,
        "text": turn.message_content_text,
        "sender": "user" if turn.sender_is_player else "bot",
        "timestamp": turn.real_timestamp_utc_ms,
        "turnNumber": turn.turn_number,
        "characterId": turn.sender_character_id,
        "characterName": speaker_name(turn, scenario),
        "messageType": turn.message_type,
    }


def history_as_chat_messages(history: list[dict]) -> list[dict[str, str]]:
    """Client-supplied {role, content} history, normalised to user/assistant roles."""
    messages = []
    for entry in history:
        content = str(entry.get("content") or "")
        if not content:
            continue
        role = "user" if entry.get("role") == "user" else "assistant"
        messages.append({"role": role, "content": content})
    return messages
