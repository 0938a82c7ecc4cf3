import itertools
import json

import httpx
import pytest

from gemlink import create_google_generative_ai


class FakeGeminiAPI:
    """Records requests and replays queued responses through an httpx.MockTransport."""

    def __init__(self):
        self.requests = []
        self._responses = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self._responses.pop(0)
        return response(request) if callable(response) else response

    def respond_json(self, payload, status_code=200):
        self._responses.append(httpx.Response(status_code, json=payload))

    def respond_sse(self, chunks):
        lines = []
        for chunk in chunks:
            data = chunk if isinstance(chunk, str) else json.dumps(chunk)
            lines.append(f"data: {data}\n\n")
        self._responses.append(
            httpx.Response(
                200,
                content="".join(lines).encode("utf-8"),
                headers={"content-type": "text/event-stream"},
            )
        )

    def respond_with(self, func):
        self._responses.append(func)

    @property
    def last_body(self):
        return json.loads(self.requests[-1].content)


@pytest.fixture
def mock_env(monkeypatch):
    """Mock environment variables for API keys."""
    monkeypatch.setenv("GOOGLE_GENERATIVE_AI_API_KEY", "AIza-test-google")


@pytest.fixture
def gemini_api():
    return FakeGeminiAPI()


@pytest.fixture
def provider(gemini_api):
    ids = itertools.count()
    return create_google_generative_ai(
        api_key="test-api-key",
        generate_id=lambda: f"id-{next(ids)}",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(gemini_api.handler)),
    )


@pytest.fixture
def user_prompt():
    return [{"role": "user", "content": [{"type": "text", "text": "Hello"}]}]
