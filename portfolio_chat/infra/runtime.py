"""Runtime infrastructure helpers for credentials, tracing, storage, and providers."""

import logging
import os
from collections.abc import Callable, Mapping
from functools import lru_cache
from typing import Any

import boto3
import httpx
from langsmith.run_trees import get_cached_client
from openai import AsyncOpenAI

from portfolio_chat.constants import (
    ATTEMPT_TIMEOUT_SECONDS,
    AWS_REGION,
    LANGSMITH_API_KEY_PARAMETER_NAME,
    LANGSMITH_PROJECT,
    REQUEST_TIMEOUT_SECONDS,
    OrchestratorName,
)
from portfolio_chat.prompts import DEFAULT_PORTFOLIO_CONTEXT
from portfolio_chat.provider_registry import (
    ProviderConfig,
    ProviderRegistry,
    build_provider_registry,
)
from portfolio_chat.providers.openai_provider import OpenAICompatibleClient
from portfolio_chat.retry import RetryPolicy
from portfolio_chat.storage.base import InteractionStore
from portfolio_chat.storage.dynamodb import DynamoDBInteractionStore
from portfolio_chat.storage.memory import InMemoryInteractionStore

logger = logging.getLogger(__name__)

CREDENTIALS_SOURCE_ENV = "CHAT_CREDENTIALS_SOURCE"
INTERACTIONS_TABLE_ENV = "CHAT_INTERACTIONS_TABLE"
ORCHESTRATOR_ENV = "CHAT_ORCHESTRATOR"
PORTFOLIO_CONTEXT_ENV = "PORTFOLIO_CONTEXT"
ATTEMPT_TIMEOUT_ENV = "CHAT_ATTEMPT_TIMEOUT_SECONDS"


def _get_secure_parameter(ssm_client: Any, parameter_name: str) -> str:
    result = ssm_client.get_parameter(Name=parameter_name, WithDecryption=True)
    value = result["Parameter"].get("Value")
    if not value:
        raise RuntimeError(f"SSM parameter {parameter_name} has no value")
    return value


def _get_optional_secure_parameter(ssm_client: Any, parameter_name: str) -> str | None:
    try:
        return _get_secure_parameter(ssm_client, parameter_name)
    except Exception:
        logger.warning(
            "Optional SSM parameter is unavailable; disabling dependent feature",
            extra={"parameter_name": parameter_name},
            exc_info=True,
        )
        return None


def ssm_enabled(environ: Mapping[str, str]) -> bool:
    return environ.get(CREDENTIALS_SOURCE_ENV, "env").strip().lower() == "ssm"


@lru_cache(maxsize=1)
def get_ssm_client() -> Any:
    return boto3.client("ssm", region_name=AWS_REGION)


def secure_parameter_lookup(environ: Mapping[str, str]) -> Callable[[str], str | None] | None:
    if not ssm_enabled(environ):
        return None
    return lambda parameter_name: _get_optional_secure_parameter(get_ssm_client(), parameter_name)


@lru_cache(maxsize=1)
def get_provider_registry() -> ProviderRegistry:
    return build_provider_registry(os.environ, secure_parameter_lookup(os.environ))


def create_async_openai_client(provider: ProviderConfig) -> AsyncOpenAI:
    return AsyncOpenAI(
        api_key=provider.credential,
        base_url=provider.base_endpoint,
        timeout=httpx.Timeout(REQUEST_TIMEOUT_SECONDS),
        # Retries are handled by RetryingExecutor.
        max_retries=0,
    )


@lru_cache(maxsize=1)
def get_completion_client() -> OpenAICompatibleClient:
    return OpenAICompatibleClient(create_async_openai_client)


def get_langsmith_api_key(environ: Mapping[str, str]) -> str | None:
    api_key = environ.get("LANGSMITH_API_KEY")
    if api_key:
        return api_key
    if ssm_enabled(environ):
        return _get_optional_secure_parameter(get_ssm_client(), LANGSMITH_API_KEY_PARAMETER_NAME)
    return None


def _configure_langsmith(langsmith_api_key: str | None) -> None:
    if not langsmith_api_key:
        os.environ.pop("LANGSMITH_TRACING", None)
        os.environ.pop("LANGSMITH_API_KEY", None)
        logger.info("LangSmith tracing disabled because API key is unavailable")
        return

    os.environ["LANGSMITH_TRACING"] = "true"
    os.environ["LANGSMITH_API_KEY"] = langsmith_api_key
    os.environ.setdefault("LANGSMITH_PROJECT", LANGSMITH_PROJECT)


@lru_cache(maxsize=1)
def ensure_langsmith_configured() -> None:
    """Configure LangSmith environment variables (called once via lru_cache)."""
    _configure_langsmith(get_langsmith_api_key(os.environ))


def flush_langsmith_traces() -> None:
    if os.environ.get("LANGSMITH_TRACING", "").lower() != "true":
        return
    if not os.environ.get("LANGSMITH_API_KEY"):
        return
    try:
        get_cached_client().flush()
    except Exception:
        logger.warning("Failed to flush LangSmith traces", exc_info=True)


@lru_cache(maxsize=1)
def get_interaction_store() -> InteractionStore:
    table_name = os.environ.get(INTERACTIONS_TABLE_ENV)
    if not table_name:
        logger.warning(
            "No interactions table configured; chat history is kept in memory only"
        )
        return InMemoryInteractionStore()

    table = boto3.resource("dynamodb", region_name=AWS_REGION).Table(table_name)
    return DynamoDBInteractionStore(table)


def get_orchestrator_name(environ: Mapping[str, str]) -> OrchestratorName:
    name = environ.get(ORCHESTRATOR_ENV, "direct").strip().lower()
    if name == "langgraph":
        return "langgraph"
    if name != "direct":
        logger.warning("Unknown orchestrator; using direct", extra={"orchestrator": name})
    return "direct"


def get_portfolio_context(environ: Mapping[str, str]) -> str:
    return environ.get(PORTFOLIO_CONTEXT_ENV) or DEFAULT_PORTFOLIO_CONTEXT


def get_retry_policy(environ: Mapping[str, str]) -> RetryPolicy:
    """Retry policy whose per-attempt bound keeps a request inside the Lambda budget."""
    raw = environ.get(ATTEMPT_TIMEOUT_ENV)
    if raw is None:
        return RetryPolicy(attempt_timeout=ATTEMPT_TIMEOUT_SECONDS)
    try:
        attempt_timeout = float(raw)
    except ValueError:
        attempt_timeout = 0.0
    if attempt_timeout <= 0:
        logger.warning(
            "Invalid attempt timeout; using default",
            extra={"value": raw, "default": ATTEMPT_TIMEOUT_SECONDS},
        )
        attempt_timeout = ATTEMPT_TIMEOUT_SECONDS
    return RetryPolicy(attempt_timeout=attempt_timeout)
