"""DynamoDB-backed interaction store.

The table is keyed by ``session_id`` (partition) and an ISO-8601 UTC
``timestamp`` (sort), so a descending query yields the newest interactions
first. Writes are conditional on the key being free, so two turns that share a
timestamp never overwrite each other.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from portfolio_chat.constants import HISTORY_LIMIT
from portfolio_chat.schemas import ChatInteraction

from .base import new_interaction

logger = logging.getLogger(__name__)

PUT_ATTEMPTS = 3


def _to_item(interaction: ChatInteraction) -> dict[str, Any]:
    item: dict[str, Any] = {
        "session_id": interaction.session_id,
        "timestamp": interaction.timestamp.isoformat(),
        "id": interaction.id,
        "message": interaction.message,
    }
    if interaction.response is not None:
        item["response"] = interaction.response
    return item


def _from_item(item: dict[str, Any]) -> ChatInteraction:
    return ChatInteraction(
        id=str(item["id"]),
        session_id=str(item["session_id"]),
        message=str(item["message"]),
        response=item.get("response"),
        timestamp=datetime.fromisoformat(str(item["timestamp"])),
    )


class DynamoDBInteractionStore:
    def __init__(self, table: Any) -> None:
        self._table = table

    async def record(
        self, session_id: str, message: str, response: str | None = None
    ) -> ChatInteraction:
        attempt = 1
        while True:
            interaction = new_interaction(session_id, message, response)
            try:
                await asyncio.to_thread(
                    self._table.put_item,
                    Item=_to_item(interaction),
                    ConditionExpression="attribute_not_exists(#ts)",
                    ExpressionAttributeNames={"#ts": "timestamp"},
                )
                return interaction
            except ClientError as exc:
                code = exc.response.get("Error", {}).get("Code")
                if code != "ConditionalCheckFailedException" or attempt >= PUT_ATTEMPTS:
                    raise
                logger.warning(
                    "Interaction key already taken; re-stamping",
                    extra={"session_id": session_id, "attempt": attempt},
                )
                attempt += 1

    async def load(self, session_id: str, limit: int = HISTORY_LIMIT) -> list[ChatInteraction]:
        result = await asyncio.to_thread(
            self._table.query,
            KeyConditionExpression=Key("session_id").eq(session_id),
            ScanIndexForward=False,
            Limit=limit,
        )
        items = result.get("Items", [])
        logger.debug(
            "Loaded interactions", extra={"session_id": session_id, "item_count": len(items)}
        )
        return [_from_item(item) for item in items]
