"""Orchestration interfaces for chat execution."""

import logging
import time
from collections.abc import Sequence
from typing import Protocol

from portfolio_chat.canned import CannedResponder
from portfolio_chat.errors import ProviderError
from portfolio_chat.providers.base import ProviderResponse

logger = logging.getLogger(__name__)


class ChatOrchestrator(Protocol):
    async def run(self, message: str, context: str | None = None) -> ProviderResponse:
        """Produce an assistant reply, falling back to a canned response when needed."""
        ...

    async def respond(self, message: str, context: str | None = None) -> str:
        """Return only the reply text of ``run``."""
        ...


def build_canned_response(
    responder: CannedResponder,
    message: str,
    failures: Sequence[ProviderError],
    started_at: float,
) -> ProviderResponse:
    if failures:
        logger.warning(
            "All providers failed; using canned response",
            extra={
                "failed_providers": [failure.provider for failure in failures],
                "failure_kinds": [failure.kind.value for failure in failures],
            },
        )
    else:
        logger.info("No providers configured; using canned response")

    return ProviderResponse(
        message=responder.pick(message),
        provider=None,
        model=None,
        duration_seconds=round(time.time() - started_at, 2),
        failures=tuple(failures),
    )
