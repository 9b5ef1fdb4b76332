"""Environment-driven settings.

Values come from process environment, with a `.env` file at the repo root
loaded first (existing environment variables win). load_settings() is
called once at startup; the result travels inside Services.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

ROOT = Path(__file__).parent.parent
DEFAULT_DATA_DIR = ROOT / "data"


class Settings(BaseModel):
    data_dir: Path = DEFAULT_DATA_DIR
    chroma_dir: Path | None = None

    groq_api_key: str = ""
    groq_base_url: str = "https://api.groq.com/openai/v1"
    chat_model: str = "llama-3.3-70b-versatile"
    chat_max_tokens: int = 150
    chat_temperature: float = 0.75

    embedding_api_key: str = ""
    embedding_base_url: str = "https://api.voyageai.com/v1"
    embedding_model: str = "voyage-large-2"
    embedding_dimension: int = 1536

    http_timeout: float = 30.0
    character_timeout: float = 90.0

    public_base_url: str = "http://localhost:13013"
    upload_max_bytes: int = 8 * 1024 * 1024

    @property
    def resolved_chroma_dir(self) -> Path:
        return self.chroma_dir or self.data_dir / "chroma"

    @property
    def uploads_dir(self) -> Path:
        return self.data_dir / "uploads"


# Settings field → environment variable
_ENV_VARS = {
    "data_dir": "DATA_DIR",
    "chroma_dir": "CHROMA_DIR",
    "groq_api_key": "GROQ_API_KEY",
    "groq_base_url": "GROQ_BASE_URL",
    "chat_model": "CHAT_MODEL",
    "chat_max_tokens": "CHAT_MAX_TOKENS",
    "chat_temperature": "CHAT_TEMPERATURE",
    "embedding_api_key": "EMBEDDING_API_KEY",
    "embedding_base_url": "EMBEDDING_BASE_URL",
    "embedding_model": "EMBEDDING_MODEL",
    "embedding_dimension": "EMBEDDING_DIMENSION",
    "http_timeout": "HTTP_TIMEOUT",
    "character_timeout": "CHARACTER_TIMEOUT",
    "public_base_url": "PUBLIC_BASE_URL",
    "upload_max_bytes": "UPLOAD_MAX_BYTES",
}


def load_settings(env_file: Path | None = None, **overrides) -> Settings:
    """Build Settings from `.env` + environment. Keyword overrides win over both."""
    load_dotenv(env_file or ROOT / ".env")
    values = {}
    for field, var in _ENV_VARS.items():
        raw = os.getenv(var, "")
        if raw:
            values[field] = raw
    # VOYAGE_API_KEY is accepted as an alias for the default provider
    if "embedding_api_key" not in values and os.getenv("VOYAGE_API_KEY"):
        values["embedding_api_key"] = os.environ["VOYAGE_API_KEY"]
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings.model_validate(values)
