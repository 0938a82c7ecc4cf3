import asyncio
import json
import math

import httpx
import pytest

from gemlink.errors import AbortError, APICallError, TypeValidationError


def text_chunk(text, finish_reason=None):
    candidate = {"content": {"role": "model", "parts": [{"text": text}]}}
    if finish_reason is not None:
        candidate["finishReason"] = finish_reason
    return {"candidates": [candidate]}


async def collect(stream_result):
    return [event async for event in stream_result]


class ControlledStream(httpx.AsyncByteStream):
    """SSE body that sends the given chunks, then optionally hangs, and records closing."""

    def __init__(self, chunks, stall=False):
        self.chunks = chunks
        self.stall = stall
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield f"data: {json.dumps(chunk)}\n\n".encode("utf-8")
        if self.stall:
            await asyncio.Event().wait()

    async def aclose(self):
        self.closed = True


def sse_response(body):
    return lambda request: httpx.Response(
        200, headers={"content-type": "text/event-stream"}, stream=body
    )


class TestStreamRequest:

    @pytest.mark.asyncio
    async def test_stream_url_and_body(self, provider, gemini_api, user_prompt):
        gemini_api.respond_sse([text_chunk("Hi", "STOP")])

        result = await provider("gemini-1.5-pro").stream(user_prompt, temperature=0.2)
        await collect(result)

        request = gemini_api.requests[-1]
        assert request.url.path == "/v1beta/models/gemini-1.5-pro:streamGenerateContent"
        assert request.url.params["alt"] == "sse"
        assert request.headers["x-goog-api-key"] == "test-api-key"
        assert gemini_api.last_body["generationConfig"] == {"temperature": 0.2}
        assert json.loads(result.request["body"]) == gemini_api.last_body
        assert result.raw_call["raw_prompt"] == [{"role": "user", "parts": [{"text": "Hello"}]}]
        assert result.raw_response["headers"]["content-type"] == "text/event-stream"
        assert result.warnings == []

    @pytest.mark.asyncio
    async def test_api_error_raised_before_streaming(self, provider, gemini_api, user_prompt):
        gemini_api.respond_json(
            {"error": {"code": 500, "message": "Internal error.", "status": "INTERNAL"}},
            status_code=500,
        )

        with pytest.raises(APICallError) as exc_info:
            await provider("gemini-1.5-pro").stream(user_prompt)

        assert exc_info.value.status_code == 500
        assert exc_info.value.vendor_status == "INTERNAL"
        assert exc_info.value.is_retryable is True


class TestStreamEvents:

    @pytest.mark.asyncio
    async def test_text_deltas_and_finish(self, provider, gemini_api, user_prompt):
        gemini_api.respond_sse([
            text_chunk("A"),
            text_chunk("B", "STOP"),
            {"usageMetadata": {"promptTokenCount": 3, "candidatesTokenCount": 2}},
        ])

        events = await collect(await provider("gemini-1.5-pro").stream(user_prompt))

        assert events == [
            {"type": "text-delta", "text_delta": "A"},
            {"type": "text-delta", "text_delta": "B"},
            {
                "type": "finish",
                "finish_reason": "stop",
                "usage": {"prompt_tokens": 3, "completion_tokens": 2},
                "provider_metadata": {"google": {"grounding_metadata": None, "safety_ratings": None}},
            },
        ]

    @pytest.mark.asyncio
    async def test_empty_text_is_not_emitted(self, provider, gemini_api, user_prompt):
        gemini_api.respond_sse([text_chunk(""), text_chunk("x", "STOP")])

        events = await collect(await provider("gemini-1.5-pro").stream(user_prompt))

        assert [e["type"] for e in events] == ["text-delta", "finish"]

    @pytest.mark.asyncio
    async def test_finish_defaults_without_finish_reason(self, provider, gemini_api, user_prompt):
        gemini_api.respond_sse([text_chunk("partial")])

        events = await collect(await provider("gemini-1.5-pro").stream(user_prompt))

        finish = events[-1]
        assert finish["type"] == "finish"
        assert finish["finish_reason"] == "unknown"
        assert math.isnan(finish["usage"]["prompt_tokens"])
        assert math.isnan(finish["usage"]["completion_tokens"])
        assert finish["provider_metadata"] is None

    @pytest.mark.asyncio
    async def test_empty_stream_still_finishes(self, provider, gemini_api, user_prompt):
        gemini_api.respond_sse([])

        events = await collect(await provider("gemini-1.5-pro").stream(user_prompt))

        assert len(events) == 1
        assert events[0]["type"] == "finish"

    @pytest.mark.asyncio
    async def test_tool_call_delta_then_tool_call(self, provider, gemini_api, user_prompt):
        gemini_api.respond_sse([{
            "candidates": [{
                "content": {"role": "model", "parts": [
                    {"functionCall": {"name": "get_weather", "args": {"city": "Paris"}}},
                ]},
                "finishReason": "STOP",
            }],
        }])

        events = await collect(await provider("gemini-1.5-pro").stream(user_prompt))

        assert events[0] == {
            "type": "tool-call-delta",
            "tool_call_type": "function",
            "tool_call_id": "id-0",
            "tool_name": "get_weather",
            "args_text_delta": '{"city": "Paris"}',
        }
        assert events[1] == {
            "type": "tool-call",
            "tool_call_type": "function",
            "tool_call_id": "id-0",
            "tool_name": "get_weather",
            "args": '{"city": "Paris"}',
        }
        assert events[2]["type"] == "finish"
        assert events[2]["finish_reason"] == "tool-calls"

    @pytest.mark.asyncio
    async def test_tool_calls_across_chunks_keep_tool_calls_finish(self, provider, gemini_api, user_prompt):
        gemini_api.respond_sse([
            {"candidates": [{"content": {"parts": [{"functionCall": {"name": "a", "args": {}}}]}}]},
            text_chunk("done", "STOP"),
        ])

        events = await collect(await provider("gemini-1.5-pro").stream(user_prompt))

        assert events[-1]["finish_reason"] == "tool-calls"

    @pytest.mark.asyncio
    async def test_invalid_chunk_becomes_error_event(self, provider, gemini_api, user_prompt):
        gemini_api.respond_sse([
            text_chunk("A"),
            "{not json",
            {"candidates": "nope"},
            text_chunk("B", "STOP"),
        ])

        events = await collect(await provider("gemini-1.5-pro").stream(user_prompt))

        assert [e["type"] for e in events] == ["text-delta", "error", "error", "text-delta", "finish"]
        assert isinstance(events[1]["error"], TypeValidationError)
        assert isinstance(events[2]["error"], TypeValidationError)
        assert events[-1]["finish_reason"] == "stop"

    @pytest.mark.asyncio
    async def test_sources_emitted_with_finish_reason(self, provider, gemini_api, user_prompt):
        gemini_api.respond_sse([
            text_chunk("Grounded"),
            {
                "candidates": [{
                    "content": {"role": "model", "parts": [{"text": "."}]},
                    "finishReason": "STOP",
                    "groundingMetadata": {
                        "groundingChunks": [{"web": {"uri": "https://example.com", "title": "Example"}}],
                    },
                    "safetyRatings": [{"category": "HARM_CATEGORY_HARASSMENT", "probability": "LOW"}],
                }],
            },
        ])

        events = await collect(await provider("gemini-1.5-pro").stream(user_prompt))

        assert [e["type"] for e in events] == ["text-delta", "text-delta", "source", "finish"]
        assert events[2]["source"] == {
            "source_type": "url",
            "id": "id-0",
            "url": "https://example.com",
            "title": "Example",
        }
        metadata = events[-1]["provider_metadata"]["google"]
        assert metadata["grounding_metadata"]["groundingChunks"][0]["web"]["uri"] == "https://example.com"
        assert metadata["safety_ratings"] == [{"category": "HARM_CATEGORY_HARASSMENT", "probability": "LOW"}]

    @pytest.mark.asyncio
    async def test_inline_data_becomes_file_event(self, provider, gemini_api, user_prompt):
        gemini_api.respond_sse([{
            "candidates": [{
                "content": {"role": "model", "parts": [
                    {"inlineData": {"mimeType": "image/png", "data": "iVBORw0KGgo="}},
                ]},
                "finishReason": "STOP",
            }],
        }])

        events = await collect(await provider("gemini-2.0-flash-exp").stream(user_prompt))

        assert events[0] == {"type": "file", "mime_type": "image/png", "data": "iVBORw0KGgo="}
        assert events[-1]["finish_reason"] == "stop"


class TestStreamAbort:

    @pytest.mark.asyncio
    async def test_abort_mid_stream_stops_without_finish(self, provider, gemini_api, user_prompt):
        gemini_api.respond_sse([text_chunk("A"), text_chunk("B"), text_chunk("C", "STOP")])
        abort_signal = asyncio.Event()

        result = await provider("gemini-1.5-pro").stream(user_prompt, abort_signal=abort_signal)
        events = []
        async for event in result:
            events.append(event)
            abort_signal.set()

        assert events == [{"type": "text-delta", "text_delta": "A"}]

    @pytest.mark.asyncio
    async def test_abort_interrupts_stalled_read(self, provider, gemini_api, user_prompt):
        body = ControlledStream([text_chunk("A")], stall=True)
        gemini_api.respond_with(sse_response(body))
        abort_signal = asyncio.Event()

        result = await provider("gemini-1.5-pro").stream(user_prompt, abort_signal=abort_signal)
        events = result.__aiter__()

        async def next_event():
            try:
                return await events.__anext__()
            except StopAsyncIteration:
                return None

        assert await next_event() == {"type": "text-delta", "text_delta": "A"}

        pending = asyncio.ensure_future(next_event())
        await asyncio.sleep(0.05)
        assert not pending.done()

        abort_signal.set()
        assert await asyncio.wait_for(pending, timeout=2) is None
        assert body.closed

    @pytest.mark.asyncio
    async def test_abort_before_request(self, provider, gemini_api, user_prompt):
        abort_signal = asyncio.Event()
        abort_signal.set()

        with pytest.raises(AbortError):
            await provider("gemini-1.5-pro").stream(user_prompt, abort_signal=abort_signal)

        assert gemini_api.requests == []


class TestStreamClose:

    @pytest.mark.asyncio
    async def test_aclose_without_iterating_releases_response(self, provider, gemini_api, user_prompt):
        body = ControlledStream([text_chunk("A", "STOP")])
        gemini_api.respond_with(sse_response(body))

        result = await provider("gemini-1.5-pro").stream(user_prompt)
        await result.aclose()

        assert body.closed
        assert await collect(result) == []

    @pytest.mark.asyncio
    async def test_async_with_releases_after_early_exit(self, provider, gemini_api, user_prompt):
        body = ControlledStream([text_chunk("A"), text_chunk("B", "STOP")])
        gemini_api.respond_with(sse_response(body))

        async with await provider("gemini-1.5-pro").stream(user_prompt) as result:
            async for event in result:
                assert event == {"type": "text-delta", "text_delta": "A"}
                break

        assert body.closed

    @pytest.mark.asyncio
    async def test_exhausted_stream_releases_response(self, provider, gemini_api, user_prompt):
        body = ControlledStream([text_chunk("A", "STOP")])
        gemini_api.respond_with(sse_response(body))

        events = await collect(await provider("gemini-1.5-pro").stream(user_prompt))

        assert [e["type"] for e in events] == ["text-delta", "finish"]
        assert body.closed
