from __future__ import annotations

import json
import unittest

import httpx

from event_radar.clients.gemini import GOOGLE_SEARCH_TOOL, GeminiGateway, GeminiRequest, RetryPolicy
from event_radar.errors import ConfigurationError, RateLimitError, UpstreamError


def _ok_payload(text: str, urls: list[str] | None = None) -> dict:
    candidate: dict = {"content": {"parts": [{"text": text}]}}
    if urls is not None:
        candidate["groundingMetadata"] = {"groundingChunks": [{"web": {"uri": u, "title": "t"}} for u in urls]}
    return {"candidates": [candidate]}


class _Recorder:
    def __init__(self, responses: list[httpx.Response]) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


class GeminiGatewayTests(unittest.IsolatedAsyncioTestCase):
    def _gateway(self, recorder) -> GeminiGateway:
        self.sleeps: list[float] = []

        async def fake_sleep(delay: float) -> None:
            self.sleeps.append(delay)

        client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        return GeminiGateway(model="gemini-test", client=client, retry_policy=RetryPolicy(sleep=fake_sleep))

    async def test_missing_api_key_fails_before_network(self) -> None:
        recorder = _Recorder([])
        gateway = self._gateway(recorder)

        with self.assertRaises(ConfigurationError):
            await gateway.generate(GeminiRequest(api_key="", parts=["hi"]))
        self.assertEqual(recorder.requests, [])

    async def test_json_mode_without_tools(self) -> None:
        recorder = _Recorder([httpx.Response(200, json=_ok_payload("[]"))])
        gateway = self._gateway(recorder)

        result = await gateway.generate(
            GeminiRequest(api_key="k1", parts=["a", "b"], system_instruction="sys", temperature=0.1, max_output_tokens=100)
        )

        self.assertEqual(result.text, "[]")
        self.assertEqual(result.grounding_urls, [])
        request = recorder.requests[0]
        self.assertEqual(request.url.params["key"], "k1")
        self.assertTrue(request.url.path.endswith("/models/gemini-test:generateContent"))
        body = json.loads(request.content)
        self.assertEqual(body["generationConfig"]["response_mime_type"], "application/json")
        self.assertEqual(body["generationConfig"]["temperature"], 0.1)
        self.assertEqual(body["generationConfig"]["maxOutputTokens"], 100)
        self.assertEqual(body["contents"], [{"parts": [{"text": "a"}, {"text": "b"}]}])
        self.assertEqual(body["system_instruction"], {"parts": [{"text": "sys"}]})
        self.assertNotIn("tools", body)

    async def test_tools_disable_json_mode_and_return_grounding(self) -> None:
        urls = ["https://example.com/a", "https://www.instagram.com/p/XYZ/"]
        payload = {
            "candidates": [
                {
                    "content": {"parts": [{"text": "[{"}, {"text": '"a":1}]'}, {"inlineData": {}}]},
                    "groundingMetadata": {
                        "groundingChunks": [{"web": {"uri": urls[0]}}, {"retrievedContext": {}}, {"web": {"uri": urls[1]}}]
                    },
                }
            ]
        }
        recorder = _Recorder([httpx.Response(200, json=payload)])
        gateway = self._gateway(recorder)

        result = await gateway.generate(GeminiRequest(api_key="k", parts=["x"], tools=[GOOGLE_SEARCH_TOOL]))

        self.assertEqual(result.text, '[{"a":1}]')
        self.assertEqual(result.grounding_urls, urls)
        body = json.loads(recorder.requests[0].content)
        self.assertNotIn("response_mime_type", body["generationConfig"])
        self.assertEqual(body["tools"], [{"google_search": {}}])

    async def test_retries_rate_limit_with_exponential_backoff(self) -> None:
        recorder = _Recorder(
            [
                httpx.Response(429),
                httpx.Response(429),
                httpx.Response(200, json=_ok_payload("ok")),
            ]
        )
        gateway = self._gateway(recorder)

        result = await gateway.generate(GeminiRequest(api_key="k", parts=["x"]))

        self.assertEqual(result.text, "ok")
        self.assertEqual(len(recorder.requests), 3)
        self.assertEqual(self.sleeps, [2.0, 4.0])

    async def test_rate_limit_error_after_retries_exhausted(self) -> None:
        recorder = _Recorder([httpx.Response(429) for _ in range(4)])
        gateway = self._gateway(recorder)

        with self.assertRaises(RateLimitError) as ctx:
            await gateway.generate(GeminiRequest(api_key="k", parts=["x"]))

        self.assertEqual(ctx.exception.status_code, 429)
        self.assertEqual(len(recorder.requests), 4)
        self.assertEqual(self.sleeps, [2.0, 4.0, 8.0])

    async def test_other_status_fails_immediately_with_status_code(self) -> None:
        recorder = _Recorder([httpx.Response(500, text="boom")])
        gateway = self._gateway(recorder)

        with self.assertRaises(UpstreamError) as ctx:
            await gateway.generate(GeminiRequest(api_key="k", parts=["x"]))

        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(len(recorder.requests), 1)
        self.assertEqual(self.sleeps, [])

    async def test_transport_error_becomes_upstream_error(self) -> None:
        calls: list[httpx.Request] = []

        def refuse(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        gateway = self._gateway(refuse)

        with self.assertRaises(UpstreamError) as ctx:
            await gateway.generate(GeminiRequest(api_key="k", parts=["x"]))

        self.assertIsNone(ctx.exception.status_code)
        self.assertIsInstance(ctx.exception.__cause__, httpx.ConnectError)
        self.assertEqual(len(calls), 1)
        self.assertEqual(self.sleeps, [])

    async def test_missing_candidates_yield_empty_text(self) -> None:
        recorder = _Recorder([httpx.Response(200, json={"promptFeedback": {}})])
        gateway = self._gateway(recorder)

        result = await gateway.generate(GeminiRequest(api_key="k", parts=["x"]))

        self.assertEqual(result.text, "")
        self.assertEqual(result.grounding_urls, [])


class RetryPolicyTests(unittest.TestCase):
    def test_delay_doubles_from_base(self) -> None:
        policy = RetryPolicy(base_delay=2.0)
        self.assertEqual([policy.delay_for(i) for i in range(3)], [2.0, 4.0, 8.0])

    def test_retry_predicate_uses_status_code(self) -> None:
        policy = RetryPolicy()
        self.assertTrue(policy.should_retry(RateLimitError()))
        self.assertFalse(policy.should_retry(UpstreamError("x", status_code=500)))
        self.assertFalse(policy.should_retry(ValueError("x")))

    def test_custom_retryable_statuses(self) -> None:
        policy = RetryPolicy(retry_statuses=frozenset({429, 503}))
        self.assertTrue(policy.should_retry(UpstreamError("x", status_code=503)))


if __name__ == "__main__":
    unittest.main()
