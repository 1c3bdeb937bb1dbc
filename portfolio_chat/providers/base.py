"""Provider client interface and shared response model."""

from dataclasses import dataclass, field
from typing import Protocol

from portfolio_chat.errors import ProviderError
from portfolio_chat.provider_registry import ProviderConfig


@dataclass(frozen=True)
class ProviderResponse:
    message: str
    provider: str | None
    model: str | None
    duration_seconds: float
    failures: tuple[ProviderError, ...] = field(default=())

    @property
    def used_fallback(self) -> bool:
        return self.provider is None

    @property
    def notice(self) -> str | None:
        """User-facing notice for the last absorbed failure, if a canned reply was used."""
        if not self.used_fallback or not self.failures:
            return None
        return self.failures[-1].notice


class CompletionClient(Protocol):
    async def complete(self, provider: ProviderConfig, message: str, context: str | None) -> str:
        """Make one chat-completion call and return the normalized completion text."""
        ...
