"""Process-wide services, built once at startup and shared by every request."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import chromadb
import httpx
from chromadb.config import Settings as ChromaSettings

from scenario_chat.config import Settings
from scenario_chat.embeddings import Embedder, HttpEmbedder
from scenario_chat.llm import ChatClient, ChatModel
from scenario_chat.storage import ScenarioStore, TurnStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    scenarios: ScenarioStore
    turns: TurnStore
    embedder: Embedder
    chat: ChatModel
    http: httpx.AsyncClient | None = None

    async def aclose(self) -> None:
        if self.http is not None:
            await self.http.aclose()
            self.http = None


def build_services(settings: Settings) -> Services:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    chroma_dir = settings.resolved_chroma_dir
    chroma_dir.mkdir(parents=True, exist_ok=True)

    http = httpx.AsyncClient(timeout=settings.http_timeout)
    client = chromadb.PersistentClient(
        path=str(chroma_dir),
        settings=ChromaSettings(anonymized_telemetry=False),
    )
    if not settings.groq_api_key:
        logger.warning("GROQ_API_KEY is not set; chat completions will fail")
    if not settings.embedding_api_key:
        logger.warning("EMBEDDING_API_KEY is not set; embeddings will fail")

    return Services(
        settings=settings,
        scenarios=ScenarioStore(settings.data_dir),
        turns=TurnStore(client, dimension=settings.embedding_dimension),
        embedder=HttpEmbedder(
            settings.embedding_base_url,
            api_key=settings.embedding_api_key,
            model=settings.embedding_model,
            dimension=settings.embedding_dimension,
            timeout=settings.http_timeout,
            http=http,
        ),
        chat=ChatClient(
            settings.groq_base_url,
            api_key=settings.groq_api_key,
            default_model=settings.chat_model,
            max_tokens=settings.chat_max_tokens,
            temperature=settings.chat_temperature,
            timeout=settings.http_timeout,
            http=http,
        ),
        http=http,
    )
