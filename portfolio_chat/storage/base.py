"""Interaction store interface."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from portfolio_chat.constants import HISTORY_LIMIT
from portfolio_chat.schemas import ChatInteraction


class InteractionStore(Protocol):
    async def record(
        self, session_id: str, message: str, response: str | None = None
    ) -> ChatInteraction:
        """Persist one user turn."""
        ...

    async def load(self, session_id: str, limit: int = HISTORY_LIMIT) -> list[ChatInteraction]:
        """Return up to ``limit`` interactions of a session, newest first."""
        ...


def new_interaction(session_id: str, message: str, response: str | None) -> ChatInteraction:
    return ChatInteraction(
        id=uuid.uuid4().hex,
        session_id=session_id,
        message=message,
        response=response,
        timestamp=datetime.now(timezone.utc),
    )
