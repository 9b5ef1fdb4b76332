"""Chat-completion client — HTTP connection to a Groq (OpenAI-compatible) backend.

Pipeline code depends on the ChatModel protocol:

    async def complete(system_prompt, user_message, history=(), model=None,
                       **options) -> str

Production code constructs a ChatClient from Settings and shares it through
Services. Tests use StubChat (defined in conftest.py) instead.

Model selection is a whitelist: unknown identifiers silently fall back to
DEFAULT_MODEL rather than failing the request.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

import httpx

from scenario_chat.errors import CompletionError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama-3.3-70b-versatile"

ALLOWED_MODELS = (
    "llama-3.3-70b-versatile",
    "llama3-8b-8192",
    "qwen-qwq-32b",
    "deepseek-r1-distill-llama-70b",
    "mistral-saba-24b",
)


def resolve_model(model: str | None, default: str = DEFAULT_MODEL) -> str:
    """Return `model` if it is allowed, otherwise the default."""
    if model and model in ALLOWED_MODELS:
        return model
    if model:
        logger.debug("model %r not allowed, using %s", model, default)
    return default


# ---------------------------------------------------------------------------
# Protocol — every chat implementation must match this signature
# ---------------------------------------------------------------------------

class ChatModel(Protocol):
    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        history: Sequence[dict[str, str]] = (),
        model: str | None = None,
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
        json_mode: bool = False,
    ) -> str: ...


# ---------------------------------------------------------------------------
# ChatClient — connects to a real backend
# ---------------------------------------------------------------------------

class ChatClient:
    """Async client for OpenAI-compatible `/chat/completions`.

    Request:  {"model": ..., "messages": [system, *history, user], ...}
    Response: {"choices": [{"message": {"content": "..."}}]}

    Args:
        base_url:      API root including version, e.g. "https://api.groq.com/openai/v1".
        api_key:       Bearer token, or empty string if not required.
        default_model: Used when the caller passes no model or a disallowed one.
        max_tokens:    Default completion length.
        temperature:   Default sampling temperature.
        timeout:       HTTP timeout in seconds.
        http:          Optional shared AsyncClient; a short-lived client is
                       opened per call when omitted.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        default_model: str = DEFAULT_MODEL,
        max_tokens: int = 150,
        temperature: float = 0.75,
        timeout: float = 30.0,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._default_model = resolve_model(default_model)
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout
        self._http = http

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_body(
        self,
        system_prompt: str,
        user_message: str,
        history: Sequence[dict[str, str]],
        model: str | None,
        max_tokens: int | None,
        temperature: float | None,
        json_mode: bool,
    ) -> dict:
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(
            {"role": h["role"], "content": h["content"]} for h in history
        )
        messages.append({"role": "user", "content": user_message})
        body: dict = {
            "model": resolve_model(model, self._default_model),
            "messages": messages,
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": self._temperature if temperature is None else temperature,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}
        return body

    def _parse_response(self, data: dict) -> str:
        choices = data.get("choices")
        if not choices or not isinstance(choices[0], dict):
            raise CompletionError("Unexpected response format from chat backend")
        content = (choices[0].get("message") or {}).get("content")
        if not content:
            raise CompletionError("Unexpected response format from chat backend")
        return content.strip()

    async def _post(self, url: str, body: dict) -> httpx.Response:
        if self._http is not None:
            return await self._http.post(
                url, json=body, headers=self._headers(), timeout=self._timeout
            )
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(url, json=body, headers=self._headers())

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        history: Sequence[dict[str, str]] = (),
        model: str | None = None,
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
        json_mode: bool = False,
    ) -> str:
        url = f"{self._base_url}/chat/completions"
        body = self._build_body(
            system_prompt, user_message, history, model,
            max_tokens, temperature, json_mode,
        )
        logger.debug(
            "chat call model=%s messages=%d prompt_len=%d",
            body["model"], len(body["messages"]), len(system_prompt),
        )

        try:
            resp = await self._post(url, body)
            resp.raise_for_status()
        except httpx.ConnectError as e:
            raise CompletionError(f"Cannot connect to chat backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise CompletionError(
                f"Chat backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise CompletionError(f"Chat backend timed out after {self._timeout}s") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise CompletionError("Chat backend returned a non-JSON body") from e
        text = self._parse_response(data)
        logger.debug("chat response model=%s len=%d", body["model"], len(text))
        return text
