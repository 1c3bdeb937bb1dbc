"""LangGraph-based provider fallback orchestration."""

import logging
import time
from typing import Literal, NotRequired, TypedDict, cast

from langgraph.graph import END, START, StateGraph

from portfolio_chat.canned import CannedResponder
from portfolio_chat.errors import ProviderError
from portfolio_chat.provider_registry import ProviderRegistry
from portfolio_chat.providers.base import ProviderResponse
from portfolio_chat.retry import RetryingExecutor

from .base import ChatOrchestrator, build_canned_response

logger = logging.getLogger(__name__)


class FallbackGraphState(TypedDict):
    message: str
    context: str | None
    provider_index: int
    started_at: float
    failures: list[ProviderError]
    response: NotRequired[ProviderResponse]


class LangGraphFallbackOrchestrator(ChatOrchestrator):
    def __init__(
        self,
        registry: ProviderRegistry,
        executor: RetryingExecutor,
        responder: CannedResponder,
    ) -> None:
        self._providers = registry.providers
        self._executor = executor
        self._responder = responder

        graph = StateGraph(FallbackGraphState)
        graph.add_node("invoke_provider", self._invoke_provider)
        graph.add_node("canned_response", self._canned_response)
        routes = ["invoke_provider", "canned_response", END]
        graph.add_conditional_edges(START, self._route, routes)
        graph.add_conditional_edges("invoke_provider", self._route, routes)
        graph.add_edge("canned_response", END)
        self._graph = graph.compile()

    def _route(
        self, state: FallbackGraphState
    ) -> Literal["invoke_provider", "canned_response", "__end__"]:
        if state.get("response") is not None:
            return END
        if state["provider_index"] < len(self._providers):
            return "invoke_provider"
        return "canned_response"

    async def _invoke_provider(self, state: FallbackGraphState) -> dict[str, object]:
        index = state["provider_index"]
        provider = self._providers[index]
        logger.info("Attempting provider", extra={"provider": provider.name})
        try:
            text = await self._executor.execute(provider, state["message"], state["context"])
        except ProviderError as exc:
            logger.warning(
                "Provider failed; trying next",
                extra={"provider": provider.name, "failure_kind": exc.kind.value},
            )
            return {"provider_index": index + 1, "failures": [*state["failures"], exc]}

        return {
            "provider_index": index + 1,
            "response": ProviderResponse(
                message=text,
                provider=provider.name,
                model=provider.model,
                duration_seconds=round(time.time() - state["started_at"], 2),
                failures=tuple(state["failures"]),
            ),
        }

    def _canned_response(self, state: FallbackGraphState) -> dict[str, ProviderResponse]:
        return {
            "response": build_canned_response(
                self._responder, state["message"], state["failures"], state["started_at"]
            )
        }

    async def run(self, message: str, context: str | None = None) -> ProviderResponse:
        initial_state: FallbackGraphState = {
            "message": message,
            "context": context,
            "provider_index": 0,
            "started_at": time.time(),
            "failures": [],
        }
        result = cast(
            "FallbackGraphState",
            await self._graph.ainvoke(
                initial_state, config={"recursion_limit": len(self._providers) + 5}
            ),
        )
        response = result.get("response")
        if response is None:
            raise RuntimeError("LangGraph execution did not return a provider response")
        return response

    async def respond(self, message: str, context: str | None = None) -> str:
        return (await self.run(message, context)).message
