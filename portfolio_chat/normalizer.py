"""Extract completion text from the JSON bodies of OpenAI-compatible providers.

Providers disagree on where the assistant text lives. Each extractor below is
total over any parsed body and returns ``None`` when its shape does not match;
they are tried in order and the first non-blank candidate wins. Supporting a
new provider shape means appending an extractor.

A stopped choice reads the same ``message.content`` as the first extractor, so
in the default order it never wins on its own: a stopped choice with empty
content and no other shape is a malformed response.
"""

from collections.abc import Callable
from typing import Any

from .errors import FailureKind, ProviderError

Extractor = Callable[[Any], str | None]


def _first_choice(body: Any) -> dict[str, Any] | None:
    if not isinstance(body, dict):
        return None
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    return choice if isinstance(choice, dict) else None


def _string(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _message_content(body: Any) -> str | None:
    choice = _first_choice(body)
    message = choice.get("message") if choice else None
    return _string(message.get("content")) if isinstance(message, dict) else None


def _choice_text(body: Any) -> str | None:
    choice = _first_choice(body)
    return _string(choice.get("text")) if choice else None


def _delta_content(body: Any) -> str | None:
    choice = _first_choice(body)
    delta = choice.get("delta") if choice else None
    return _string(delta.get("content")) if isinstance(delta, dict) else None


def _stopped_message_content(body: Any) -> str | None:
    choice = _first_choice(body)
    if not choice or choice.get("finish_reason") != "stop" or "message" not in choice:
        return None
    message = choice["message"]
    if not isinstance(message, dict):
        return ""
    return _string(message.get("content")) or ""


def _top_level(key: str) -> Extractor:
    def extract(body: Any) -> str | None:
        return _string(body.get(key)) if isinstance(body, dict) else None

    extract.__name__ = f"_top_level_{key}"
    return extract


EXTRACTORS: tuple[Extractor, ...] = (
    _message_content,
    _choice_text,
    _delta_content,
    _stopped_message_content,
    _top_level("content"),
    _top_level("response"),
)


def _embedded_error_message(body: Any) -> str | None:
    if not isinstance(body, dict) or "error" not in body:
        return None
    error = body["error"]
    if isinstance(error, dict):
        return _string(error.get("message")) or str(error)
    if error:
        return str(error)
    return None


def extract_completion_text(
    body: Any,
    extractors: tuple[Extractor, ...] = EXTRACTORS,
) -> str:
    """Return the trimmed completion text of a provider body.

    Raises:
        ProviderError: ``malformed-response`` when no extractor yields text.
            If the body embeds an ``error`` object its message is carried in
            the error detail.
    """
    for extractor in extractors:
        candidate = extractor(body)
        if candidate is None:
            continue
        text = candidate.strip()
        if text:
            return text

    error_message = _embedded_error_message(body)
    if error_message is not None:
        raise ProviderError(
            FailureKind.MALFORMED_RESPONSE,
            f"Provider returned an error: {error_message}",
        )

    keys = sorted(body) if isinstance(body, dict) else type(body).__name__
    raise ProviderError(
        FailureKind.MALFORMED_RESPONSE,
        f"No content in API response (keys: {keys})",
    )
