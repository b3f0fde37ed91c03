"""Pytest configuration and fixtures for engine tests."""

import json
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest
import pytest_asyncio

from edurag.config import EngineConfig, reset_config, set_config
from edurag.models import ModelConfig
from edurag.services.http_client import ResilientClient
from edurag.services.vector_store import InMemoryDocumentStore


def completion(content: str, total_tokens: Optional[int] = 42) -> Dict[str, Any]:
    """Body of a chat completions answer."""
    body: Dict[str, Any] = {
        "id": "chatcmpl-test",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }
    if total_tokens is not None:
        body["usage"] = {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": total_tokens}
    return body


class FakeProvider:
    """OpenAI-compatible provider served through httpx.MockTransport.

    Attributes:
        requests: (path, json body) of every request received
        chat_replies: Queue of chat answers (dict bodies or httpx.Response)
        embed: Function text -> vector, or -> httpx.Response for failures
    """

    def __init__(self) -> None:
        self.requests: List[tuple] = []
        self.chat_replies: List[Union[Dict[str, Any], httpx.Response]] = []
        self.embed: Callable[[str], Any] = lambda text: [1.0, 0.0, 0.0]

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        path = request.url.path
        self.requests.append((path, body))

        if path.endswith("/embeddings"):
            result = self.embed(body["input"])
            if isinstance(result, httpx.Response):
                return result
            return httpx.Response(200, json={"data": [{"embedding": result, "index": 0}]})

        if path.endswith("/chat/completions"):
            reply = self.chat_replies.pop(0) if self.chat_replies else completion("default answer")
            if isinstance(reply, httpx.Response):
                return reply
            return httpx.Response(200, json=reply)

        return httpx.Response(404, text="not found")

    def calls(self, suffix: str) -> List[Dict[str, Any]]:
        return [body for path, body in self.requests if path.endswith(suffix)]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class SleepRecorder:
    """Drop-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture(autouse=True)
def engine_config():
    """Fast, deterministic engine configuration for every test."""
    config = EngineConfig(
        request_timeout=5,
        max_retries=3,
        backoff_base=0.0,
        chunk_delay=0.0,
        batch_delay=0.0,
        session_dir=None,
    )
    set_config(config)
    yield config
    reset_config()


@pytest.fixture
def model_config() -> ModelConfig:
    return ModelConfig(
        provider="openai",
        model="gpt-test",
        api_key="sk-test",
        base_url="https://llm.test/v1/",
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest_asyncio.fixture
async def client(provider, sleeps):
    http = ResilientClient(transport=provider.transport, sleep=sleeps, backoff_base=0.01)
    yield http
    await http.aclose()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def sample_text() -> str:
    return (
        "Photosynthesis turns light into chemical energy. "
        "It happens in the chloroplasts of plant cells. "
        "Chlorophyll absorbs mostly blue and red light! "
        "Why are leaves green? "
        "Because green light is reflected rather than absorbed."
    )
