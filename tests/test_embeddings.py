"""Tests for scenario_chat.embeddings — HttpEmbedder."""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from scenario_chat.embeddings import DEFAULT_DIMENSION, HttpEmbedder
from scenario_chat.errors import EmbeddingError, InvalidInputError


def _mock_response(body: dict, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.raise_for_status = MagicMock(
        side_effect=None if status < 400 else httpx.HTTPStatusError(
            "", request=MagicMock(), response=resp
        )
    )
    return resp


@pytest.fixture
def embedder() -> HttpEmbedder:
    return HttpEmbedder("http://voyage.test/v1/", api_key="k", dimension=3)


async def test_returns_vector(embedder: HttpEmbedder) -> None:
    body = {"data": [{"embedding": [0.1, 2, -0.5]}]}
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=_mock_response(body))):
        vector = await embedder.embed("hello")
    assert vector == [0.1, 2.0, -0.5]
    assert all(isinstance(v, float) for v in vector)


async def test_request_shape(embedder: HttpEmbedder) -> None:
    body = {"data": [{"embedding": [0.0, 0.0, 0.0]}]}
    mock_post = AsyncMock(return_value=_mock_response(body))
    with patch("httpx.AsyncClient.post", mock_post):
        await embedder.embed("hello")
    assert mock_post.call_args[0][0] == "http://voyage.test/v1/embeddings"
    assert mock_post.call_args.kwargs["json"] == {"input": ["hello"], "model": "voyage-large-2"}
    assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer k"


async def test_blank_text_rejected(embedder: HttpEmbedder) -> None:
    mock_post = AsyncMock()
    with patch("httpx.AsyncClient.post", mock_post):
        with pytest.raises(InvalidInputError):
            await embedder.embed("   ")
    mock_post.assert_not_called()


async def test_wrong_dimension(embedder: HttpEmbedder) -> None:
    body = {"data": [{"embedding": [0.1, 0.2]}]}
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=_mock_response(body))):
        with pytest.raises(EmbeddingError, match="dimension 2, expected 3"):
            await embedder.embed("hello")


async def test_missing_data(embedder: HttpEmbedder) -> None:
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=_mock_response({"data": []}))):
        with pytest.raises(EmbeddingError, match="Unexpected response format"):
            await embedder.embed("hello")


async def test_non_numeric_vector(embedder: HttpEmbedder) -> None:
    body = {"data": [{"embedding": ["a", "b", "c"]}]}
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=_mock_response(body))):
        with pytest.raises(EmbeddingError, match="non-numeric"):
            await embedder.embed("hello")


async def test_http_error(embedder: HttpEmbedder) -> None:
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=_mock_response({}, 500))):
        with pytest.raises(EmbeddingError, match="HTTP 500"):
            await embedder.embed("hello")


async def test_connect_error(embedder: HttpEmbedder) -> None:
    with patch("httpx.AsyncClient.post", AsyncMock(side_effect=httpx.ConnectError("down"))):
        with pytest.raises(EmbeddingError, match="Cannot connect"):
            await embedder.embed("hello")


def test_default_dimension() -> None:
    assert HttpEmbedder("http://x").dimension == DEFAULT_DIMENSION == 1536
