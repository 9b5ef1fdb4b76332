"""Error taxonomy shared by clients, stores, the chat pipeline, and routes.

  NotFoundError      — scenario (or its collection) does not exist
  InvalidInputError  — missing or malformed request fields
  UpstreamError      — embedding, completion, or store call failed

Routes map these to 404 / 400 / 502. Partial failures are not exceptions:
they are reported on ExchangeResult and DeletionReport.
"""


class ScenarioChatError(Exception):
    """Base class for all application errors."""


class NotFoundError(ScenarioChatError):
    pass


class ScenarioNotFound(NotFoundError):
    def __init__(self, scenario_id: str) -> None:
        super().__init__(f"Scenario {scenario_id} not found")
        self.scenario_id = scenario_id


class InvalidInputError(ScenarioChatError):
    pass


class NoAiCharacters(InvalidInputError):
    def __init__(self, scenario_id: str) -> None:
        super().__init__("No AI characters found in scenario")
        self.scenario_id = scenario_id


class UpstreamError(ScenarioChatError):
    pass


class EmbeddingError(UpstreamError):
    """Raised when the embedding backend fails or returns an unusable vector."""


class CompletionError(UpstreamError):
    """Raised when the chat-completion backend fails or returns no content."""


class TurnStoreError(UpstreamError):
    """Raised when the vector store cannot provision, drop, or read a collection."""


class StoreWriteError(TurnStoreError):
    """Raised when a turn could not be persisted."""


class DraftParseError(UpstreamError):
    """Raised when a generated scenario draft is not valid JSON of the expected shape."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw
