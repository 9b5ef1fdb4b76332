"""Handlebars prompt templates and rendering.

Templates use triple-stash ({{{var}}}) so dialogue quotes and apostrophes
reach the model unescaped. Context builders pre-format lists and apply the
"Not specified" fallbacks so templates stay flat.
"""

from collections.abc import Callable
from typing import Any

import pybars

from scenario_chat.models import Character, Scenario, ScenarioDraft

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── In-character reply (chat exchange) ──────────────────


CHARACTER_SYSTEM_PROMPT = """\
You are {{{char.name}}}, a character in a roleplay scenario.
Character Description: {{{char.description}}}
Character Personality: {{{char.personality}}}
{{#if char.backstory}}Backstory: {{{char.backstory}}}
{{/if}}{{#if char.traits}}Personality traits: {{{char.traits}}}
{{/if}}Scenario Context: {{{scenario.description}}}
Current Fictional Datetime: {{{scenario.datetime}}}
Venue: {{{scenario.venue}}}

Recent conversation:
{{{conversation}}}

Player's message to you: "{{{message}}}"

Respond as {{{char.name}}} would, staying in character. Keep responses engaging and appropriate to the scenario.

FORMAT YOUR RESPONSE:
- Use (*action*) for any actions or physical descriptions
- Use ("dialogue") for any spoken words
- Example: (*walks closer and smiles*) ("Hello there, how are you doing today?")

Your response should be between 60-100 words. Be descriptive but concise."""


def _char_context(character: Character) -> dict[str, Any]:
    return {
        "name": character.name or "AI",
        "description": character.description or "No description provided",
        "personality": character.personality or "No personality provided",
        "backstory": character.backstory,
        "traits": ", ".join(t for t in character.personality_traits if t),
    }


def build_character_context(
    scenario: Scenario, character: Character, conversation: str, message: str
) -> dict[str, Any]:
    return {
        "char": _char_context(character),
        "scenario": {
            "description": scenario.description or "No scenario description",
            "datetime": scenario.current_fictional_date_time or "Not specified",
            "venue": scenario.venue or "Not specified",
        },
        "conversation": conversation,
        "message": message,
    }


def character_system_prompt(
    scenario: Scenario, character: Character, conversation: str, message: str
) -> str:
    return render_prompt(
        CHARACTER_SYSTEM_PROMPT,
        build_character_context(scenario, character, conversation, message),
    )


# ── Stateless reply (generate-response endpoint) ────────


REPLY_SYSTEM_PROMPT = """\
You are {{{char.name}}} in a roleplaying scenario.
{{#if char.personality_given}}Your personality: {{{char.personality}}}
{{/if}}{{#if char.backstory}}Your background: {{{char.backstory}}}
{{/if}}{{#if scenario}}Scenario: {{{scenario}}}
{{/if}}Stay in character and respond naturally to the user's messages."""


def reply_system_prompt(character: Character | None, scenario_description: str = "") -> str:
    character = character or Character(name="an AI assistant")
    ctx = {
        "char": {
            **_char_context(character),
            "personality_given": bool(character.personality),
        },
        "scenario": scenario_description,
    }
    return render_prompt(REPLY_SYSTEM_PROMPT, ctx)


# ── Scenario drafts ─────────────────────────────────────


DRAFT_SYSTEM_PROMPT = """\
You are an AI assistant for a roleplay chat application. Your task is to {{{task}}}
The output MUST be a valid JSON object with the following structure:
{
  "title": "string (scenario title)",
  "description": "string (detailed scenario description, 2-3 paragraphs)",
  "characters": [
    {
      "name": "string (character name)",
      "gender": "string (male, female, or other)",
      "isPlayer": "boolean (true for the single player character, false for AI characters)",
      "personalityTraits": ["string", "string", "string"],
      "physicalAttributes": ["string", "string", "string"],
      "backstory": "string (character backstory, 1-2 paragraphs)"
    }
  ],
  "scenes": [
    {
      "name": "string (scene/location name)",
      "description": "string (description of the scene/location, 1-2 paragraphs)"
    }
  ]
}

Include 2 to 4 characters: exactly one player character (isPlayer: true) and the rest AI characters (isPlayer: false).
Include 1 to 3 scenes.
Ensure all string fields are populated with relevant, creative content.
If the plot doesn't specify gender or player status, make the first character a male player and subsequent characters female AI.
Return only the JSON object."""

_NEW_DRAFT_TASK = "generate a detailed scenario based on a user's plot idea."
_REFINE_DRAFT_TASK = (
    "revise an existing scenario according to the user's instructions, "
    "keeping everything the instructions do not ask to change."
)


def draft_system_prompt(refine: bool = False) -> str:
    return render_prompt(
        DRAFT_SYSTEM_PROMPT, {"task": _REFINE_DRAFT_TASK if refine else _NEW_DRAFT_TASK}
    )


def draft_user_message(
    plot_idea: str | None = None,
    existing: ScenarioDraft | None = None,
    instructions: str | None = None,
) -> str:
    if existing is None:
        return f"Here is the plot idea: {plot_idea}"
    parts = [
        "Here is the current scenario as JSON:",
        existing.model_dump_json(by_alias=True, indent=2),
    ]
    if instructions:
        parts.append(f"Refinement instructions: {instructions}")
    if plot_idea:
        parts.append(f"Original plot idea: {plot_idea}")
    return "\n\n".join(parts)
