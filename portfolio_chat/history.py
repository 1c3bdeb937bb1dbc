"""Rebuild a chronological chat thread from stored interactions."""

import secrets
import string
import time
from collections.abc import Iterable

from .schemas import ChatInteraction, DisplayMessage

_SESSION_ALPHABET = string.ascii_lowercase + string.digits


def new_session_id() -> str:
    suffix = "".join(secrets.choice(_SESSION_ALPHABET) for _ in range(9))
    return f"session_{int(time.time() * 1000)}_{suffix}"


def reconstruct_history(
    interactions: Iterable[ChatInteraction],
    *,
    newest_first: bool = True,
) -> list[DisplayMessage]:
    """Turn stored interactions into display messages, oldest first.

    Stores return the most recent interactions first, so by default the input
    is reversed before emission. Each interaction yields a user message,
    followed by an assistant message when a reply was recorded.
    """
    rows = list(interactions)
    if newest_first:
        rows.reverse()

    messages: list[DisplayMessage] = []
    for interaction in rows:
        messages.append(
            DisplayMessage(
                id=f"user_{interaction.id}",
                role="user",
                content=interaction.message,
                timestamp=interaction.timestamp,
            )
        )
        if interaction.response:
            messages.append(
                DisplayMessage(
                    id=f"assistant_{interaction.id}",
                    role="assistant",
                    content=interaction.response,
                    timestamp=interaction.timestamp,
                )
            )
    return messages
