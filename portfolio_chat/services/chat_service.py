"""Application service for chat requests and conversation history."""

import logging

from portfolio_chat.constants import HISTORY_LIMIT, SESSION_ID_PATTERN
from portfolio_chat.errors import BadRequestError
from portfolio_chat.history import new_session_id, reconstruct_history
from portfolio_chat.orchestration.base import ChatOrchestrator
from portfolio_chat.schemas import ChatInteraction, ChatRequest, ChatResponse, HistoryResponse
from portfolio_chat.storage.base import InteractionStore

logger = logging.getLogger(__name__)


def _validate_session_id(session_id: str) -> None:
    if not SESSION_ID_PATTERN.fullmatch(session_id):
        raise BadRequestError("sessionId must be 1-128 letters, digits, '_' or '-'")


class ChatService:
    def __init__(
        self,
        orchestrator: ChatOrchestrator,
        store: InteractionStore,
        context: str | None = None,
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        self._orchestrator = orchestrator
        self._store = store
        self._context = context
        self._history_limit = history_limit

    async def handle_chat(self, request: ChatRequest) -> ChatResponse:
        session_id = request.session_id or new_session_id()
        _validate_session_id(session_id)
        logger.info(
            "Chat request received",
            extra={"session_id": session_id, "message_length": len(request.message)},
        )

        response = await self._orchestrator.run(request.message, self._context)
        await self._record_interaction(session_id, request.message, response.message)

        return ChatResponse(
            message=response.message,
            session_id=session_id,
            provider=response.provider,
            model=response.model,
            used_fallback=response.used_fallback,
            notice=response.notice,
            duration_seconds=response.duration_seconds,
        )

    async def load_history(self, session_id: str) -> HistoryResponse:
        _validate_session_id(session_id)
        interactions = await self._load_interactions(session_id)
        return HistoryResponse(
            session_id=session_id,
            messages=reconstruct_history(interactions, newest_first=True),
        )

    async def _record_interaction(self, session_id: str, message: str, response: str) -> None:
        # Storage problems must never block the conversation.
        try:
            await self._store.record(session_id, message, response)
        except Exception:
            logger.exception(
                "Failed to record chat interaction", extra={"session_id": session_id}
            )

    async def _load_interactions(self, session_id: str) -> list[ChatInteraction]:
        try:
            return await self._store.load(session_id, limit=self._history_limit)
        except Exception:
            logger.exception("Failed to load chat history", extra={"session_id": session_id})
            return []
