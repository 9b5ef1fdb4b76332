"""Scenario draft generation from a plot idea, or refinement of an existing draft."""

import json
import logging
from typing import Any

from pydantic import ValidationError

from scenario_chat.errors import DraftParseError, InvalidInputError
from scenario_chat.llm import ChatModel
from scenario_chat.models import ScenarioDraft
from scenario_chat.prompts import draft_system_prompt, draft_user_message

logger = logging.getLogger(__name__)

DRAFT_MAX_TOKENS = 2048
DRAFT_TEMPERATURE = 0.7


def _parse_json_output(text: str) -> dict | None:
    """Parse JSON from LLM output, stripping markdown fences."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    try:
        data = json.loads(cleaned)
        return data if isinstance(data, dict) else None
    except json.JSONDecodeError as e:
        logger.warning("Draft output is not valid JSON: %s", e)
        return None


async def generate_scenario_draft(
    chat: ChatModel,
    *,
    plot_idea: str | None = None,
    scenario: dict[str, Any] | None = None,
    instructions: str | None = None,
    model: str | None = None,
) -> ScenarioDraft:
    """Ask the model for a scenario draft.

    With only `plot_idea`, generates a new draft. With `scenario` (plus
    `instructions`), revises that scenario. Raises InvalidInputError when
    neither is given, CompletionError on backend failure, and DraftParseError
    when the output is not a scenario-shaped JSON object.
    """
    plot_idea = (plot_idea or "").strip() or None
    if scenario is None and plot_idea is None:
        raise InvalidInputError("Plot idea is required")
    if scenario is not None and not (instructions or "").strip():
        raise InvalidInputError("Refinement instructions are required")

    existing = None
    if scenario is not None:
        try:
            existing = ScenarioDraft.model_validate(scenario)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid scenario: {e}") from e

    raw = await chat.complete(
        draft_system_prompt(refine=existing is not None),
        draft_user_message(plot_idea, existing, instructions),
        model=model,
        max_tokens=DRAFT_MAX_TOKENS,
        temperature=DRAFT_TEMPERATURE,
        json_mode=True,
    )

    data = _parse_json_output(raw)
    if data is None:
        raise DraftParseError("Failed to parse AI response into valid JSON", raw=raw)
    try:
        draft = ScenarioDraft.model_validate(data)
    except ValidationError as e:
        raise DraftParseError(f"AI response does not match the scenario shape: {e}", raw=raw) from e
    logger.info(
        "Generated draft %r with %d characters, %d scenes",
        draft.title, len(draft.characters), len(draft.scenes),
    )
    return draft
