"""Map transport, HTTP and parse failures onto the provider failure taxonomy."""

import json

import httpx
import openai

from .constants import LOG_BODY_EXCERPT_LENGTH
from .errors import FailureKind, ProviderError


def classify_status(status_code: int) -> FailureKind:
    if status_code == 429:
        return FailureKind.RATE_LIMITED
    if status_code == 401:
        return FailureKind.AUTH
    if status_code == 403:
        return FailureKind.FORBIDDEN
    if status_code >= 500:
        return FailureKind.SERVER
    return FailureKind.UNKNOWN


def _excerpt(text: str) -> str:
    if len(text) <= LOG_BODY_EXCERPT_LENGTH:
        return text
    return text[:LOG_BODY_EXCERPT_LENGTH] + "..."


def _response_excerpt(response: httpx.Response | None) -> str:
    if response is None:
        return ""
    try:
        return _excerpt(response.text)
    except httpx.ResponseNotRead:
        return ""


def classify_failure(exc: BaseException, provider: str | None = None) -> ProviderError:
    """Wrap ``exc`` in a ``ProviderError`` carrying its failure kind.

    Already-classified errors pass through, gaining the provider name when
    they lack one.
    """
    if isinstance(exc, ProviderError):
        if exc.provider is None:
            exc.provider = provider
        return exc

    # Timeouts subclass the connection errors in both openai and httpx.
    if isinstance(exc, (openai.APITimeoutError, httpx.TimeoutException, TimeoutError)):
        return ProviderError(FailureKind.TIMEOUT, str(exc) or "timed out", provider=provider)

    if isinstance(exc, openai.APIStatusError):
        status_code = exc.status_code
        detail = f"API call failed: {status_code} - {_response_excerpt(exc.response)}"
        return ProviderError(
            classify_status(status_code), detail, provider=provider, status_code=status_code
        )

    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
        detail = f"API call failed: {status_code} - {_response_excerpt(exc.response)}"
        return ProviderError(
            classify_status(status_code), detail, provider=provider, status_code=status_code
        )

    if isinstance(exc, (openai.APIConnectionError, httpx.TransportError, OSError)):
        return ProviderError(FailureKind.NETWORK, str(exc), provider=provider)

    if isinstance(exc, json.JSONDecodeError):
        return ProviderError(
            FailureKind.MALFORMED_RESPONSE,
            f"Response body is not valid JSON: {exc}",
            provider=provider,
        )

    return ProviderError(FailureKind.UNKNOWN, f"{type(exc).__name__}: {exc}", provider=provider)
