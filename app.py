"""Portfolio chat API backend using FastAPI + Mangum for AWS Lambda."""

import asyncio
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import APIRouter, FastAPI, HTTPException
from mangum import Mangum

from portfolio_chat.canned import RandomCannedResponder
from portfolio_chat.errors import USER_FACING_NOTICES, BadRequestError
from portfolio_chat.infra.runtime import (
    ensure_langsmith_configured,
    flush_langsmith_traces,
    get_completion_client,
    get_interaction_store,
    get_orchestrator_name,
    get_portfolio_context,
    get_provider_registry,
    get_retry_policy,
)
from portfolio_chat.orchestration.base import ChatOrchestrator
from portfolio_chat.orchestration.fallback import FallbackChatOrchestrator
from portfolio_chat.orchestration.langgraph_flow import LangGraphFallbackOrchestrator
from portfolio_chat.retry import RetryingExecutor
from portfolio_chat.schemas import ChatRequest, ChatResponse, HistoryResponse, ProviderMetadata
from portfolio_chat.services.chat_service import ChatService

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    yield
    await get_completion_client().close()


app = FastAPI(lifespan=lifespan)
router = APIRouter(prefix="/api")


@lru_cache(maxsize=1)
def get_chat_service() -> ChatService:
    registry = get_provider_registry()
    executor = RetryingExecutor(get_completion_client(), get_retry_policy(os.environ))
    responder = RandomCannedResponder()

    orchestrator: ChatOrchestrator
    if get_orchestrator_name(os.environ) == "langgraph":
        orchestrator = LangGraphFallbackOrchestrator(registry, executor, responder)
    else:
        orchestrator = FallbackChatOrchestrator(registry, executor, responder)

    return ChatService(
        orchestrator=orchestrator,
        store=get_interaction_store(),
        context=get_portfolio_context(os.environ),
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest) -> ChatResponse:
    """Answer one user message and record the interaction."""
    # SSM lookups and the LangSmith flush are blocking network calls.
    await asyncio.to_thread(ensure_langsmith_configured)
    try:
        service = await asyncio.to_thread(get_chat_service)
        return await service.handle_chat(request)
    except BadRequestError as e:
        logger.warning("Invalid chat request", extra={"error": str(e)})
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.exception("Chat request failed")
        raise HTTPException(status_code=502, detail=USER_FACING_NOTICES["service"]) from e
    finally:
        await asyncio.to_thread(flush_langsmith_traces)


@router.get("/chat/{session_id}/history", response_model=HistoryResponse)
async def chat_history(session_id: str) -> HistoryResponse:
    """Return the conversation of a session, oldest message first."""
    try:
        service = await asyncio.to_thread(get_chat_service)
        return await service.load_history(session_id)
    except BadRequestError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.get("/providers", response_model=list[ProviderMetadata])
def providers() -> list[ProviderMetadata]:
    """List configured providers in trial order, without credentials."""
    return [
        ProviderMetadata(
            name=provider.name,
            model=provider.model,
            base_endpoint=provider.base_endpoint,
        )
        for provider in get_provider_registry()
    ]


@router.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


app.include_router(router)


handler = Mangum(app)
