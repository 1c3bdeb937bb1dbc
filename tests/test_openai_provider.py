import json
import unittest

import httpx
from openai import AsyncOpenAI

from portfolio_chat.errors import FailureKind, ProviderError
from portfolio_chat.provider_registry import ProviderConfig
from portfolio_chat.providers.openai_provider import OpenAICompatibleClient
from portfolio_chat.retry import RetryingExecutor

PROVIDER = ProviderConfig(
    name="deepseek",
    credential="sk-test-key",
    base_endpoint="https://api.deepseek.com",
    model="deepseek-chat",
)


def completion_body(content: str) -> dict[str, object]:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "model": "deepseek-chat",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }


class ScriptedTransport:
    """httpx.MockTransport handler replaying scripted responses in order."""

    def __init__(self, responses: list[httpx.Response]) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responses.pop(0)


async def no_sleep(delay: float) -> None:
    return None


def mock_client_factory(
    transport: ScriptedTransport, created: list[ProviderConfig] | None = None
):
    def factory(provider: ProviderConfig) -> AsyncOpenAI:
        if created is not None:
            created.append(provider)
        return AsyncOpenAI(
            api_key=provider.credential,
            base_url=provider.base_endpoint,
            max_retries=0,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(transport)),
        )

    return factory


class OpenAICompatibleClientTests(unittest.IsolatedAsyncioTestCase):
    def build(
        self, responses: list[httpx.Response]
    ) -> tuple[OpenAICompatibleClient, ScriptedTransport]:
        transport = ScriptedTransport(responses)
        client = OpenAICompatibleClient(mock_client_factory(transport))
        self.addAsyncCleanup(client.close)
        return client, transport

    async def test_request_shape(self) -> None:
        client, transport = self.build([httpx.Response(200, json=completion_body("Hello!"))])

        text = await client.complete(PROVIDER, "What do you build?", "Projects: X")

        self.assertEqual(text, "Hello!")
        request = transport.requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(str(request.url), "https://api.deepseek.com/chat/completions")
        self.assertEqual(request.headers["Authorization"], "Bearer sk-test-key")

        payload = json.loads(request.content)
        self.assertEqual(payload["model"], "deepseek-chat")
        self.assertEqual(payload["max_tokens"], 500)
        self.assertEqual(payload["temperature"], 0.7)
        self.assertEqual([message["role"] for message in payload["messages"]], ["system", "user"])
        self.assertIn("Context: Projects: X", payload["messages"][0]["content"])
        self.assertEqual(payload["messages"][1]["content"], "What do you build?")

    async def test_non_standard_shapes_are_normalized(self) -> None:
        client, _ = self.build(
            [
                httpx.Response(200, json={"choices": [{"text": " legacy "}]}),
                httpx.Response(200, json={"response": "top level"}),
            ]
        )

        self.assertEqual(await client.complete(PROVIDER, "hi"), "legacy")
        self.assertEqual(await client.complete(PROVIDER, "hi"), "top level")

    async def test_invalid_json_is_malformed_response(self) -> None:
        client, _ = self.build([httpx.Response(200, text="<html>gateway</html>")])

        with self.assertRaises(ProviderError) as ctx:
            await client.complete(PROVIDER, "hi")

        self.assertEqual(ctx.exception.kind, FailureKind.MALFORMED_RESPONSE)
        self.assertEqual(ctx.exception.provider, "deepseek")

    async def test_empty_body_is_malformed_response(self) -> None:
        client, _ = self.build([httpx.Response(200, json={})])

        with self.assertRaises(ProviderError) as ctx:
            await client.complete(PROVIDER, "hi")

        self.assertEqual(ctx.exception.kind, FailureKind.MALFORMED_RESPONSE)

    async def test_http_statuses_are_classified(self) -> None:
        cases = {
            401: FailureKind.AUTH,
            403: FailureKind.FORBIDDEN,
            429: FailureKind.RATE_LIMITED,
            500: FailureKind.SERVER,
            404: FailureKind.UNKNOWN,
        }
        for status_code, kind in cases.items():
            with self.subTest(status_code=status_code):
                client, _ = self.build(
                    [httpx.Response(status_code, json={"error": {"message": "nope"}})]
                )

                with self.assertRaises(ProviderError) as ctx:
                    await client.complete(PROVIDER, "hi")

                self.assertEqual(ctx.exception.kind, kind)
                self.assertEqual(ctx.exception.status_code, status_code)

    async def test_client_is_reused_per_provider(self) -> None:
        created: list[ProviderConfig] = []
        transport = ScriptedTransport(
            [
                httpx.Response(200, json=completion_body("a")),
                httpx.Response(200, json=completion_body("b")),
            ]
        )
        client = OpenAICompatibleClient(mock_client_factory(transport, created))
        self.addAsyncCleanup(client.close)

        await client.complete(PROVIDER, "one")
        await client.complete(PROVIDER, "two")

        self.assertEqual(created, [PROVIDER])


class ExecutorOverHttpTests(unittest.IsolatedAsyncioTestCase):
    async def test_unauthorized_is_attempted_once(self) -> None:
        transport = ScriptedTransport([httpx.Response(401, json={"error": {"message": "bad"}})])
        client = OpenAICompatibleClient(mock_client_factory(transport))
        self.addAsyncCleanup(client.close)
        executor = RetryingExecutor(client, sleep=no_sleep)

        with self.assertRaises(ProviderError) as ctx:
            await executor.execute(PROVIDER, "hi")

        self.assertEqual(ctx.exception.kind, FailureKind.AUTH)
        self.assertEqual(len(transport.requests), 1)

    async def test_server_errors_then_success(self) -> None:
        delays: list[float] = []

        async def record_sleep(delay: float) -> None:
            delays.append(delay)

        transport = ScriptedTransport(
            [
                httpx.Response(500, text="upstream error"),
                httpx.Response(500, text="upstream error"),
                httpx.Response(200, json=completion_body("finally")),
            ]
        )
        client = OpenAICompatibleClient(mock_client_factory(transport))
        self.addAsyncCleanup(client.close)
        executor = RetryingExecutor(client, sleep=record_sleep)

        self.assertEqual(await executor.execute(PROVIDER, "hi"), "finally")
        self.assertEqual(len(transport.requests), 3)
        self.assertEqual(delays, [1.0, 2.0])


if __name__ == "__main__":
    unittest.main()
