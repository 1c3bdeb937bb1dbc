"""Domain-level exceptions and the failure taxonomy for chat providers."""

from enum import Enum
from typing import Literal


class BadRequestError(ValueError):
    """Raised for client-side invalid requests at the domain layer."""


class FailureKind(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate-limited"
    AUTH = "auth"
    FORBIDDEN = "forbidden"
    SERVER = "server"
    MALFORMED_RESPONSE = "malformed-response"
    UNKNOWN = "unknown"


PERMANENT_FAILURES = frozenset(
    {FailureKind.AUTH, FailureKind.FORBIDDEN, FailureKind.MALFORMED_RESPONSE}
)

FAILURE_MESSAGES: dict[FailureKind, str] = {
    FailureKind.NETWORK: "Network error while contacting the AI provider.",
    FailureKind.TIMEOUT: "The AI provider did not respond in time.",
    FailureKind.RATE_LIMITED: "Rate limit exceeded at the AI provider.",
    FailureKind.AUTH: "Authentication failed with the AI provider.",
    FailureKind.FORBIDDEN: "Access to the AI provider was denied.",
    FailureKind.SERVER: "Server error at the AI provider.",
    FailureKind.MALFORMED_RESPONSE: "The AI provider returned an unusable response.",
    FailureKind.UNKNOWN: "Unexpected error from the AI provider.",
}

UserFacingCategory = Literal["configuration", "rate-limited", "network", "timeout", "service"]

USER_FACING_CATEGORIES: dict[FailureKind, UserFacingCategory] = {
    FailureKind.AUTH: "configuration",
    FailureKind.FORBIDDEN: "configuration",
    FailureKind.RATE_LIMITED: "rate-limited",
    FailureKind.NETWORK: "network",
    FailureKind.TIMEOUT: "timeout",
    FailureKind.SERVER: "service",
    FailureKind.MALFORMED_RESPONSE: "service",
    FailureKind.UNKNOWN: "service",
}

USER_FACING_NOTICES: dict[UserFacingCategory, str] = {
    "configuration": "API Key Error: Please check the AI provider configuration.",
    "rate-limited": "Rate Limit: Too many requests. Please wait a moment and try again.",
    "network": "Network Error: Please check your internet connection and try again.",
    "timeout": "Request timed out. Please try again.",
    "service": (
        "AI Service Error: Something went wrong. "
        "Please try again or contact support if the issue persists."
    ),
}


def is_permanent_failure(kind: FailureKind) -> bool:
    return kind in PERMANENT_FAILURES


def user_facing_category(kind: FailureKind) -> UserFacingCategory:
    return USER_FACING_CATEGORIES[kind]


class ProviderError(RuntimeError):
    """A classified failure from one chat-completion provider.

    ``str(error)`` is the fixed user-safe message of the failure kind. The raw
    diagnostic (status code, body excerpt) lives in ``detail`` and is meant
    for logs only.
    """

    def __init__(
        self,
        kind: FailureKind,
        detail: str = "",
        *,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(FAILURE_MESSAGES[kind])
        self.kind = kind
        self.detail = detail
        self.provider = provider
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return not is_permanent_failure(self.kind)

    @property
    def notice(self) -> str:
        return USER_FACING_NOTICES[user_facing_category(self.kind)]

    def __repr__(self) -> str:
        return (
            f"ProviderError(kind={self.kind.value!r}, provider={self.provider!r}, "
            f"status_code={self.status_code!r})"
        )
