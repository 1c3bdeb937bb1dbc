"""OpenAI-compatible chat-completions client shared by every configured provider."""

import json
import logging
import time
from collections.abc import Callable
from typing import Any

import openai
from langsmith import traceable
from openai import AsyncOpenAI

from portfolio_chat.classification import classify_failure
from portfolio_chat.constants import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE
from portfolio_chat.errors import FailureKind, ProviderError
from portfolio_chat.normalizer import extract_completion_text
from portfolio_chat.prompts import build_chat_messages
from portfolio_chat.provider_registry import ProviderConfig

logger = logging.getLogger(__name__)


@traceable(run_type="llm", name="chat.completions.create")
async def _create_chat_completion(client: AsyncOpenAI, request_params: dict[str, Any]) -> str:
    # The raw body is kept so provider-specific shapes reach the normalizer untouched.
    raw_response = await client.chat.completions.with_raw_response.create(**request_params)
    return raw_response.text


def _parse_body(provider: ProviderConfig, raw_body: str) -> Any:
    try:
        return json.loads(raw_body)
    except json.JSONDecodeError as exc:
        raise ProviderError(
            FailureKind.MALFORMED_RESPONSE,
            f"Response body is not valid JSON: {raw_body[:200]!r}",
            provider=provider.name,
        ) from exc


class OpenAICompatibleClient:
    def __init__(
        self,
        client_factory: Callable[[ProviderConfig], AsyncOpenAI],
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> None:
        self._client_factory = client_factory
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._clients: dict[ProviderConfig, AsyncOpenAI] = {}

    def _get_client(self, provider: ProviderConfig) -> AsyncOpenAI:
        client = self._clients.get(provider)
        if client is None:
            client = self._client_factory(provider)
            self._clients[provider] = client
        return client

    async def complete(
        self, provider: ProviderConfig, message: str, context: str | None = None
    ) -> str:
        request_params: dict[str, Any] = {
            "model": provider.model,
            "messages": build_chat_messages(message, context),
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }

        start = time.time()
        try:
            raw_body = await _create_chat_completion(self._get_client(provider), request_params)
        except openai.OpenAIError as exc:
            raise classify_failure(exc, provider.name) from exc
        duration_ms = int((time.time() - start) * 1000)

        body = _parse_body(provider, raw_body)
        try:
            content = extract_completion_text(body)
        except ProviderError as exc:
            exc.provider = provider.name
            raise

        logger.info(
            "Chat response generated",
            extra={
                "provider": provider.name,
                "provider_duration_ms": duration_ms,
                "model": provider.model,
                "usage": body.get("usage") if isinstance(body, dict) else None,
                "response_length": len(content),
            },
        )
        return content

    async def close(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
