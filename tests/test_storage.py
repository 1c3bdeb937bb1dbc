import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from portfolio_chat.storage.dynamodb import DynamoDBInteractionStore
from portfolio_chat.storage.memory import InMemoryInteractionStore


def client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "PutItem")


class InMemoryInteractionStoreTests(unittest.IsolatedAsyncioTestCase):
    async def test_load_returns_newest_first(self) -> None:
        store = InMemoryInteractionStore()
        for index in range(3):
            await store.record("s1", f"message {index}", f"reply {index}")

        rows = await store.load("s1")

        self.assertEqual([row.message for row in rows], ["message 2", "message 1", "message 0"])

    async def test_load_is_bounded_and_scoped_to_session(self) -> None:
        store = InMemoryInteractionStore()
        for index in range(60):
            await store.record("s1", f"message {index}")
        await store.record("s2", "other session")

        rows = await store.load("s1")

        self.assertEqual(len(rows), 50)
        self.assertEqual(rows[0].message, "message 59")
        self.assertTrue(all(row.session_id == "s1" for row in rows))
        self.assertEqual(await store.load("missing"), [])

    async def test_record_returns_interaction_without_response(self) -> None:
        store = InMemoryInteractionStore()

        interaction = await store.record("s1", "hello")

        self.assertIsNone(interaction.response)
        self.assertEqual(interaction.timestamp.utcoffset(), timedelta(0))
        self.assertTrue(interaction.id)


class DynamoDBInteractionStoreTests(unittest.IsolatedAsyncioTestCase):
    async def test_record_puts_item(self) -> None:
        table = Mock()
        store = DynamoDBInteractionStore(table)

        interaction = await store.record("s1", "hello", "hi there")

        table.put_item.assert_called_once()
        item = table.put_item.call_args.kwargs["Item"]
        self.assertEqual(item["session_id"], "s1")
        self.assertEqual(item["message"], "hello")
        self.assertEqual(item["response"], "hi there")
        self.assertEqual(item["id"], interaction.id)
        self.assertEqual(item["timestamp"], interaction.timestamp.isoformat())

    async def test_record_refuses_to_overwrite_existing_key(self) -> None:
        table = Mock()

        await DynamoDBInteractionStore(table).record("s1", "hello")

        kwargs = table.put_item.call_args.kwargs
        self.assertEqual(kwargs["ConditionExpression"], "attribute_not_exists(#ts)")
        self.assertEqual(kwargs["ExpressionAttributeNames"], {"#ts": "timestamp"})

    async def test_record_restamps_on_key_collision(self) -> None:
        table = Mock()
        table.put_item.side_effect = [client_error("ConditionalCheckFailedException"), None]

        with self.assertLogs("portfolio_chat.storage.dynamodb", level="WARNING"):
            interaction = await DynamoDBInteractionStore(table).record("s1", "hello")

        self.assertEqual(table.put_item.call_count, 2)
        self.assertEqual(table.put_item.call_args.kwargs["Item"]["id"], interaction.id)

    async def test_record_gives_up_after_repeated_collisions(self) -> None:
        table = Mock()
        table.put_item.side_effect = client_error("ConditionalCheckFailedException")

        with self.assertLogs("portfolio_chat.storage.dynamodb", level="WARNING"):
            with self.assertRaises(ClientError):
                await DynamoDBInteractionStore(table).record("s1", "hello")

        self.assertEqual(table.put_item.call_count, 3)

    async def test_record_propagates_other_client_errors(self) -> None:
        table = Mock()
        table.put_item.side_effect = client_error("ResourceNotFoundException")

        with self.assertRaises(ClientError):
            await DynamoDBInteractionStore(table).record("s1", "hello")

        table.put_item.assert_called_once()

    async def test_record_omits_missing_response(self) -> None:
        table = Mock()
        store = DynamoDBInteractionStore(table)

        await store.record("s1", "hello")

        self.assertNotIn("response", table.put_item.call_args.kwargs["Item"])

    async def test_load_queries_newest_first_with_limit(self) -> None:
        table = Mock()
        table.query.return_value = {
            "Items": [
                {
                    "session_id": "s1",
                    "timestamp": "2025-01-01T10:01:00+00:00",
                    "id": "b",
                    "message": "second",
                    "response": "reply",
                },
                {
                    "session_id": "s1",
                    "timestamp": "2025-01-01T10:00:00+00:00",
                    "id": "a",
                    "message": "first",
                },
            ]
        }
        store = DynamoDBInteractionStore(table)

        rows = await store.load("s1", limit=20)

        kwargs = table.query.call_args.kwargs
        self.assertEqual(kwargs["KeyConditionExpression"], Key("session_id").eq("s1"))
        self.assertFalse(kwargs["ScanIndexForward"])
        self.assertEqual(kwargs["Limit"], 20)

        self.assertEqual([row.id for row in rows], ["b", "a"])
        self.assertEqual(rows[0].response, "reply")
        self.assertIsNone(rows[1].response)
        self.assertEqual(rows[1].timestamp, datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc))

    async def test_load_without_items(self) -> None:
        table = Mock()
        table.query.return_value = {}

        self.assertEqual(await DynamoDBInteractionStore(table).load("s1"), [])


if __name__ == "__main__":
    unittest.main()
