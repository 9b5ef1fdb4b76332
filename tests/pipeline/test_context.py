"""Tests for conversation formatting and display messages."""

from scenario_chat.models import Scenario, Turn
from scenario_chat.pipeline import (
    display_message,
    format_conversation,
    history_as_chat_messages,
    speaker_name,
)

SCENARIO = Scenario.model_validate({
    "id": "s1",
    "characters": [
        {"id": "char_alex", "name": "Alex", "isPlayer": True},
        {"id": "char_mira", "name": "Mira"},
    ],
})


def _turn(ts: int, sender: str, is_player: bool, text: str) -> Turn:
    return Turn(
        message_id=f"msg_{ts}",
        scenario_id="s1",
        turn_number=1,
        real_timestamp_utc_ms=ts,
        sender_character_id=sender,
        sender_is_player=is_player,
        message_content_text=text,
    )


def test_speaker_names():
    assert speaker_name(_turn(1, "char_alex", True, "hi"), SCENARIO) == "Alex"
    assert speaker_name(_turn(2, "char_mira", False, "hi"), SCENARIO) == "Mira"
    assert speaker_name(_turn(3, "char_gone", False, "hi"), SCENARIO) == "AI"


def test_speaker_name_without_player():
    assert speaker_name(_turn(1, "x", True, "hi"), Scenario()) == "Player"


def test_format_conversation():
    history = [
        _turn(1, "char_alex", True, "Who opened the cellar?"),
        _turn(2, "char_mira", False, "Not me."),
    ]
    assert format_conversation(history, SCENARIO) == "Alex: Who opened the cellar?\nMira: Not me."


def test_format_conversation_window():
    history = [_turn(i, "char_mira", False, f"line {i}") for i in range(15)]
    lines = format_conversation(history, SCENARIO, window=10).splitlines()
    assert len(lines) == 10
    assert lines[0] == "Mira: line 5"


def test_format_conversation_empty():
    assert format_conversation([], SCENARIO) == ""


def test_display_message():
    message = display_message(_turn(5, "char_mira", False, "Not me."), SCENARIO)
    assert message == {
        "id": "msg_5",
        "text": "Not me.",
        "sender": "bot",
        "timestamp": 5,
        "turnNumber": 1,
        "characterId": "char_mira",
        "characterName": "Mira",
        "messageType": "dialogue",
    }


def test_history_as_chat_messages():
    history = [
        {"role": "user", "content": "Hi"},
        {"role": "bot", "content": "Hello"},
        {"role": "user", "content": ""},
        {"role": "assistant", "content": "Again"},
    ]
    assert history_as_chat_messages(history) == [
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello"},
        {"role": "assistant", "content": "Again"},
    ]
