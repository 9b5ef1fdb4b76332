"""Avatar and asset uploads, stored under {data_dir}/uploads and served at /uploads."""

import logging
import re
import uuid
from pathlib import Path

from scenario_chat.errors import InvalidInputError

logger = logging.getLogger(__name__)

UPLOADS_ROUTE = "/uploads"

_SAFE_SUFFIX = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


def stored_name(filename: str) -> str:
    """Random file name keeping a safe extension: "portrait.PNG" → "<hex>.png"."""
    suffix = Path(filename or "").suffix.lower()
    if not _SAFE_SUFFIX.match(suffix):
        suffix = ""
    return f"{uuid.uuid4().hex}{suffix}"


def save_upload(
    uploads_dir: Path,
    filename: str,
    content: bytes,
    public_base_url: str,
    max_bytes: int,
) -> str:
    """Write an uploaded file and return its public URL."""
    if not content:
        raise InvalidInputError("No file provided or invalid file entry.")
    if len(content) > max_bytes:
        raise InvalidInputError(f"File exceeds the {max_bytes}-byte upload limit")

    uploads_dir.mkdir(parents=True, exist_ok=True)
    name = stored_name(filename)
    (uploads_dir / name).write_bytes(content)
    logger.info("Stored upload %r as %s (%d bytes)", filename, name, len(content))
    return f"{public_base_url.rstrip('/')}{UPLOADS_ROUTE}/{name}"
