"""Retrying execution of a single provider call with exponential backoff."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from .classification import classify_failure
from .constants import BASE_RETRY_DELAY_SECONDS, MAX_ATTEMPTS, MAX_RETRY_DELAY_SECONDS
from .errors import FailureKind, is_permanent_failure
from .provider_registry import ProviderConfig
from .providers.base import CompletionClient

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class RetryState(str, Enum):
    ATTEMPTING = "attempting"
    BACKING_OFF = "backing-off"
    EXHAUSTED = "exhausted"
    SUCCEEDED = "succeeded"


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = MAX_ATTEMPTS
    base_delay: float = BASE_RETRY_DELAY_SECONDS
    max_delay: float = MAX_RETRY_DELAY_SECONDS
    attempt_timeout: float | None = None
    is_permanent: Callable[[FailureKind], bool] = field(default=is_permanent_failure)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def backoff(self, attempt: int) -> float:
        """Seconds to wait before the 1-based ``attempt``."""
        if attempt <= 1:
            return 0.0
        return min(self.base_delay * 2 ** (attempt - 2), self.max_delay)


class RetryingExecutor:
    def __init__(
        self,
        client: CompletionClient,
        policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._policy = policy or RetryPolicy()
        self._sleep = sleep

    async def _attempt(self, provider: ProviderConfig, message: str, context: str | None) -> str:
        call = self._client.complete(provider, message, context)
        if self._policy.attempt_timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self._policy.attempt_timeout)

    async def execute(
        self, provider: ProviderConfig, message: str, context: str | None = None
    ) -> str:
        """Call ``provider`` until it succeeds, fails permanently or runs out of attempts.

        Raises:
            ProviderError: the classified failure of the last attempt.
        """
        policy = self._policy
        attempt = 1
        while True:
            logger.debug(
                "Calling provider",
                extra={
                    "provider": provider.name,
                    "state": RetryState.ATTEMPTING.value,
                    "attempt": attempt,
                },
            )
            start = time.time()
            try:
                text = await self._attempt(provider, message, context)
            except Exception as exc:
                error = classify_failure(exc, provider.name)
                if exc is not error:
                    error.__cause__ = exc
                duration_ms = int((time.time() - start) * 1000)

                if policy.is_permanent(error.kind):
                    logger.warning(
                        "Provider call failed permanently",
                        extra={
                            "provider": provider.name,
                            "attempt": attempt,
                            "failure_kind": error.kind.value,
                            "status_code": error.status_code,
                            "detail": error.detail,
                            "duration_ms": duration_ms,
                        },
                    )
                    raise error

                if attempt >= policy.max_attempts:
                    logger.warning(
                        "Provider retry budget exhausted",
                        extra={
                            "provider": provider.name,
                            "state": RetryState.EXHAUSTED.value,
                            "attempts": attempt,
                            "failure_kind": error.kind.value,
                            "status_code": error.status_code,
                            "detail": error.detail,
                        },
                    )
                    raise error

                attempt += 1
                delay = policy.backoff(attempt)
                logger.warning(
                    "Provider call failed; backing off",
                    extra={
                        "provider": provider.name,
                        "state": RetryState.BACKING_OFF.value,
                        "next_attempt": attempt,
                        "max_attempts": policy.max_attempts,
                        "failure_kind": error.kind.value,
                        "status_code": error.status_code,
                        "detail": error.detail,
                        "sleep_s": delay,
                    },
                )
                await self._sleep(delay)
                continue

            logger.info(
                "Provider call succeeded",
                extra={
                    "provider": provider.name,
                    "state": RetryState.SUCCEEDED.value,
                    "attempts": attempt,
                },
            )
            return text

