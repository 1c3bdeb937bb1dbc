import unittest

from portfolio_chat.errors import FailureKind, ProviderError
from portfolio_chat.normalizer import extract_completion_text


class NormalizerTests(unittest.TestCase):
    def test_standard_message_content(self) -> None:
        body = {"choices": [{"message": {"content": "hi"}}]}

        self.assertEqual(extract_completion_text(body), "hi")

    def test_legacy_choice_text(self) -> None:
        self.assertEqual(extract_completion_text({"choices": [{"text": "hi"}]}), "hi")

    def test_delta_content(self) -> None:
        body = {"choices": [{"delta": {"content": " streamed "}}]}

        self.assertEqual(extract_completion_text(body), "streamed")

    def test_top_level_content_and_response(self) -> None:
        self.assertEqual(extract_completion_text({"content": "from content"}), "from content")
        self.assertEqual(extract_completion_text({"response": "from response"}), "from response")

    def test_priority_prefers_message_content_over_other_shapes(self) -> None:
        body = {
            "choices": [{"message": {"content": "first"}, "text": "second"}],
            "content": "fifth",
            "response": "sixth",
        }

        self.assertEqual(extract_completion_text(body), "first")

    def test_blank_message_content_falls_through_to_later_shapes(self) -> None:
        body = {
            "choices": [{"message": {"content": "   "}, "finish_reason": "stop"}],
            "response": "fallback text",
        }

        self.assertEqual(extract_completion_text(body), "fallback text")

    def test_stopped_choice_with_empty_content_is_malformed(self) -> None:
        body = {"choices": [{"message": {"content": ""}, "finish_reason": "stop"}]}

        with self.assertRaises(ProviderError) as ctx:
            extract_completion_text(body)

        self.assertEqual(ctx.exception.kind, FailureKind.MALFORMED_RESPONSE)

    def test_result_is_trimmed(self) -> None:
        body = {"choices": [{"message": {"content": "\n  hello there \t"}}]}

        self.assertEqual(extract_completion_text(body), "hello there")

    def test_empty_body_is_malformed(self) -> None:
        with self.assertRaises(ProviderError) as ctx:
            extract_completion_text({})

        self.assertEqual(ctx.exception.kind, FailureKind.MALFORMED_RESPONSE)
        self.assertFalse(ctx.exception.retryable)

    def test_whitespace_only_everywhere_is_malformed(self) -> None:
        body = {"choices": [{"message": {"content": "  "}}], "content": " ", "response": ""}

        with self.assertRaises(ProviderError) as ctx:
            extract_completion_text(body)

        self.assertEqual(ctx.exception.kind, FailureKind.MALFORMED_RESPONSE)

    def test_embedded_error_message_is_carried_in_detail(self) -> None:
        body = {"error": {"message": "Insufficient Balance", "type": "invalid_request"}}

        with self.assertRaises(ProviderError) as ctx:
            extract_completion_text(body)

        self.assertEqual(ctx.exception.kind, FailureKind.MALFORMED_RESPONSE)
        self.assertIn("Insufficient Balance", ctx.exception.detail)
        self.assertNotIn("Insufficient Balance", str(ctx.exception))

    def test_non_object_bodies_are_malformed(self) -> None:
        for body in ([], "text", None, {"choices": "nope"}, {"choices": [None]}):
            with self.subTest(body=body):
                with self.assertRaises(ProviderError):
                    extract_completion_text(body)


if __name__ == "__main__":
    unittest.main()
