import hashlib
from pathlib import Path

import chromadb
import pytest
from chromadb.config import Settings as ChromaSettings

from scenario_chat.config import Settings
from scenario_chat.context import Services
from scenario_chat.errors import CompletionError, EmbeddingError, InvalidInputError
from scenario_chat.models import Scenario
from scenario_chat.storage import ScenarioStore, TurnStore

TEST_DIMENSION = 4


class StubEmbedder:
    """Deterministic embeddings: the same text always maps to the same vector."""

    def __init__(self, dimension: int = TEST_DIMENSION, fail_on: set[str] | None = None):
        self.dimension = dimension
        self.fail_on = fail_on or set()
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise InvalidInputError("Text is required")
        self.calls.append(text)
        if text in self.fail_on or "*" in self.fail_on:
            raise EmbeddingError(f"embedding failed for {text!r}")
        digest = hashlib.sha256(text.encode()).digest()
        return [b / 255 for b in digest[: self.dimension]]


class StubChat:
    """Canned chat replies keyed by the character named in the system prompt.

    The character prompt starts with "You are {name}, ..."; that name picks
    the reply. Names in `fail_for` raise CompletionError.
    """

    def __init__(self, replies: dict[str, str] | None = None, fail_for: set[str] | None = None):
        self.replies = replies or {}
        self.fail_for = fail_for or set()
        self.calls: list[dict] = []

    @staticmethod
    def _speaker(system_prompt: str) -> str:
        first = system_prompt.split("\n", 1)[0]
        if first.startswith("You are "):
            return first[len("You are "):].split(",")[0].split(" in a ")[0]
        return ""

    async def complete(self, system_prompt, user_message, history=(), model=None, **options):
        name = self._speaker(system_prompt)
        self.calls.append({
            "name": name,
            "system_prompt": system_prompt,
            "user_message": user_message,
            "history": list(history),
            "model": model,
            **options,
        })
        if name in self.fail_for:
            raise CompletionError(f"backend refused {name}")
        return self.replies.get(name, f"{name} nods.")


DEMO_CHARACTERS = [
    {"id": "char_alex", "name": "Alex", "isPlayer": True},
    {
        "id": "char_mira",
        "name": "Mira",
        "isPlayer": False,
        "description": "A cartographer",
        "personality": "Dry humour",
    },
    {
        "id": "char_tomas",
        "name": "Tomas",
        "isPlayer": False,
        "description": "The innkeeper",
        "personality": "Warm and evasive",
    },
]


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def chroma_client(tmp_path: Path):
    return chromadb.PersistentClient(
        path=str(tmp_path / "chroma"),
        settings=ChromaSettings(anonymized_telemetry=False),
    )


@pytest.fixture
def scenario_store(data_dir: Path) -> ScenarioStore:
    return ScenarioStore(data_dir)


@pytest.fixture
def turn_store(chroma_client) -> TurnStore:
    return TurnStore(chroma_client, dimension=TEST_DIMENSION)


@pytest.fixture
def embedder() -> StubEmbedder:
    return StubEmbedder()


@pytest.fixture
def chat() -> StubChat:
    return StubChat()


@pytest.fixture
def make_scenario(scenario_store: ScenarioStore):
    """Create a scenario document; characters default to Alex, Mira, and Tomas."""

    def _make(**fields) -> Scenario:
        data = {
            "title": "The Lantern Inn",
            "description": "A storm has closed the mountain road.",
            "venue": "The Lantern Inn",
            "currentFictionalDateTime": "1024-11-03T19:30:00Z",
            "characters": [dict(c) for c in DEMO_CHARACTERS],
        }
        data.update(fields)
        return scenario_store.create(data)

    return _make


@pytest.fixture
def services(data_dir, scenario_store, turn_store, embedder, chat) -> Services:
    settings = Settings(
        data_dir=data_dir,
        embedding_dimension=TEST_DIMENSION,
        public_base_url="http://testserver",
        upload_max_bytes=1024,
    )
    return Services(
        settings=settings,
        scenarios=scenario_store,
        turns=turn_store,
        embedder=embedder,
        chat=chat,
    )
