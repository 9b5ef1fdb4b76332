"""Create a demo scenario for development/testing."""

import logging

from scenario_chat.lifecycle import create_scenario
from scenario_chat.models import CreationReport
from scenario_chat.storage import ScenarioStore, TurnStore

logger = logging.getLogger(__name__)

DEMO_SCENARIO = {
    "title": "The Lantern Inn",
    "description": (
        "A storm has closed the mountain road, and travellers crowd the common "
        "room of the Lantern Inn. The innkeeper swears the cellar door was "
        "locked last night. This morning it stands open."
    ),
    "venue": "The Lantern Inn",
    "currentFictionalDateTime": "1024-11-03T19:30:00Z",
    "characters": [
        {
            "name": "Alex",
            "gender": "male",
            "isPlayer": True,
            "personalityTraits": ["curious", "stubborn"],
            "backstory": "A courier stranded on his way to the capital.",
        },
        {
            "name": "Mira",
            "gender": "female",
            "isPlayer": False,
            "personalityTraits": ["sharp-tongued", "observant", "secretive"],
            "physicalAttributes": ["ink-stained fingers", "grey travelling cloak"],
            "description": "A cartographer who has mapped every pass in the range.",
            "personality": "Dry humour, slow to trust, quick to notice details.",
            "backstory": "Mira is looking for a map she sold years ago and now regrets.",
        },
        {
            "name": "Tomas",
            "gender": "male",
            "isPlayer": False,
            "personalityTraits": ["jovial", "nervous"],
            "description": "The innkeeper, round and red-faced.",
            "personality": "Warm, talkative, and evasive whenever the cellar comes up.",
        },
    ],
    "scenes": [
        {
            "name": "Common room",
            "description": "Low beams, a roaring hearth, and too many guests for the benches.",
        },
        {
            "name": "Cellar",
            "description": "Cold stone, barrels of ale, and a door that should not be open.",
        },
    ],
}


def create_demo_data(scenarios: ScenarioStore, turns: TurnStore) -> CreationReport:
    """Create the demo scenario. Existing scenarios are left alone."""
    report = create_scenario(scenarios, turns, DEMO_SCENARIO)
    logger.info("Created demo scenario %s (%r)", report.scenario.id, report.scenario.title)
    return report
