"""Id, timestamp, and JSON file helpers shared by the stores."""

import json
import re
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def new_id() -> str:
    """Opaque document id, e.g. "3f2c9a...". 32 hex chars."""
    return uuid.uuid4().hex


def new_message_id() -> str:
    return f"msg_{uuid.uuid4().hex}"


def new_character_id() -> str:
    return f"char_{uuid.uuid4().hex[:12]}"


def is_safe_id(value: str) -> bool:
    """True if `value` can be used as a file name or collection suffix."""
    return bool(_SAFE_ID.match(value or ""))


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def read_json(path: Path) -> Any:
    return json.loads(path.read_text())


def write_json(path: Path, data: Any) -> None:
    path.write_text(json.dumps(data, indent=2))
