"""Ordered provider fallback orchestration."""

import logging
import time

from portfolio_chat.canned import CannedResponder
from portfolio_chat.errors import ProviderError
from portfolio_chat.orchestration.base import ChatOrchestrator, build_canned_response
from portfolio_chat.provider_registry import ProviderRegistry
from portfolio_chat.providers.base import ProviderResponse
from portfolio_chat.retry import RetryingExecutor

logger = logging.getLogger(__name__)


class FallbackChatOrchestrator(ChatOrchestrator):
    def __init__(
        self,
        registry: ProviderRegistry,
        executor: RetryingExecutor,
        responder: CannedResponder,
    ) -> None:
        self._registry = registry
        self._executor = executor
        self._responder = responder

    async def run(self, message: str, context: str | None = None) -> ProviderResponse:
        started_at = time.time()
        failures: list[ProviderError] = []

        for provider in self._registry:
            logger.info("Attempting provider", extra={"provider": provider.name})
            try:
                text = await self._executor.execute(provider, message, context)
            except ProviderError as exc:
                logger.warning(
                    "Provider failed; trying next",
                    extra={"provider": provider.name, "failure_kind": exc.kind.value},
                )
                failures.append(exc)
                continue

            return ProviderResponse(
                message=text,
                provider=provider.name,
                model=provider.model,
                duration_seconds=round(time.time() - started_at, 2),
                failures=tuple(failures),
            )

        return build_canned_response(self._responder, message, failures, started_at)

    async def respond(self, message: str, context: str | None = None) -> str:
        return (await self.run(message, context)).message
