"""Document and vector storage.

  ScenarioStore — scenario documents as JSON files under {data_dir}/scenarios/
  TurnStore     — one chromadb collection of chat turns per scenario

Both are constructed once at startup and shared through Services.
"""

from .core import (  # noqa: F401
    is_safe_id,
    new_character_id,
    new_id,
    new_message_id,
    now_iso,
    now_ms,
)

from .scenarios import (  # noqa: F401
    ScenarioStore,
    canonicalize,
    find_absent_paths,
)

from .turns import (  # noqa: F401
    COLLECTION_PREFIX,
    TurnStore,
    collection_name,
    turn_from_record,
    turn_to_record,
)
