"""Embedding client — text to fixed-dimension vectors.

Talks to any OpenAI-compatible `/embeddings` endpoint (Voyage AI by
default). The dimension is fixed per deployment and every vector is checked
against it, since a turn collection must never mix dimensions.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from scenario_chat.errors import EmbeddingError, InvalidInputError

logger = logging.getLogger(__name__)

DEFAULT_DIMENSION = 1536


class Embedder(Protocol):
    dimension: int

    async def embed(self, text: str) -> list[float]: ...


class HttpEmbedder:
    """Async HTTP embedding client.

    Request:  POST {base_url}/embeddings  {"input": [text], "model": model}
    Response: {"data": [{"embedding": [float, ...]}]}
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        model: str = "voyage-large-2",
        dimension: int = DEFAULT_DIMENSION,
        timeout: float = 30.0,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._model = model
        self.dimension = dimension
        self._timeout = timeout
        self._http = http

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _parse_response(self, data: dict) -> list[float]:
        items = data.get("data")
        if not items or not isinstance(items[0], dict) or "embedding" not in items[0]:
            raise EmbeddingError("Unexpected response format from embedding backend")
        vector = items[0]["embedding"]
        if not isinstance(vector, list) or not all(
            isinstance(v, (int, float)) for v in vector
        ):
            raise EmbeddingError("Embedding backend returned a non-numeric vector")
        if len(vector) != self.dimension:
            raise EmbeddingError(
                f"Embedding has dimension {len(vector)}, expected {self.dimension}"
            )
        return [float(v) for v in vector]

    async def _post(self, url: str, body: dict) -> httpx.Response:
        if self._http is not None:
            return await self._http.post(
                url, json=body, headers=self._headers(), timeout=self._timeout
            )
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(url, json=body, headers=self._headers())

    async def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise InvalidInputError("Text is required")
        url = f"{self._base_url}/embeddings"
        body = {"input": [text], "model": self._model}
        logger.debug("embed call model=%s text_len=%d", self._model, len(text))

        try:
            resp = await self._post(url, body)
            resp.raise_for_status()
        except httpx.ConnectError as e:
            raise EmbeddingError(f"Cannot connect to embedding backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise EmbeddingError(
                f"Embedding backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise EmbeddingError(f"Embedding backend timed out after {self._timeout}s") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise EmbeddingError("Embedding backend returned a non-JSON body") from e
        return self._parse_response(data)
