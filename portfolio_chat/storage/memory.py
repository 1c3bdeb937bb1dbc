"""Process-local interaction store for development and tests."""

from collections import defaultdict

from portfolio_chat.constants import HISTORY_LIMIT
from portfolio_chat.schemas import ChatInteraction

from .base import new_interaction


class InMemoryInteractionStore:
    def __init__(self) -> None:
        self._interactions: dict[str, list[ChatInteraction]] = defaultdict(list)

    async def record(
        self, session_id: str, message: str, response: str | None = None
    ) -> ChatInteraction:
        interaction = new_interaction(session_id, message, response)
        self._interactions[session_id].append(interaction)
        return interaction

    async def load(self, session_id: str, limit: int = HISTORY_LIMIT) -> list[ChatInteraction]:
        # Reversed insertion order keeps equal timestamps newest-first after the stable sort.
        rows = sorted(
            reversed(self._interactions.get(session_id, [])),
            key=lambda interaction: interaction.timestamp,
            reverse=True,
        )
        return rows[:limit]
