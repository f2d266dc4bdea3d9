"""Shared fakes for pipeline tests."""

import json

import httpx
import pytest

from auto_anki.core.models import ConfigSnapshot, SamplingOptions, SyncOutcome
from auto_anki.generation.base import LLMProvider, LLMResponse


PARIS_RESPONSE = json.dumps([
    {
        "question": "What is the capital of France?",
        "answer": "Paris",
        "alternatives": ["Lyon", "Marseille", "Nice"],
    }
])


class FakeProvider(LLMProvider):
    """Provider returning canned content (or raising) and recording requests."""

    def __init__(self, content: str = "", error: Exception = None):
        super().__init__()
        self.content = content
        self.error = error
        self.requests = []
        self.closed = False

    def get_name(self) -> str:
        return "fake"

    async def generate(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.content, model=request.model, provider="fake")

    async def aclose(self):
        self.closed = True


class FakeSyncClient:
    """Sync client that delivers everything except the listed questions."""

    def __init__(self, reject: dict = None):
        self.reject = reject or {}
        self.synced = []
        self.closed = False

    async def sync(self, record):
        self.synced.append(record)
        if record.question in self.reject:
            return SyncOutcome.rejected(record, self.reject[record.question])
        return SyncOutcome.delivered(record, note_id=len(self.synced))

    async def aclose(self):
        self.closed = True


def make_snapshot(**overrides) -> ConfigSnapshot:
    values = dict(
        source_text="Paris is the capital of France.",
        num_questions=1,
        num_alternatives=3,
        api_key="sk-test-1234",
        deck_name="Default",
        control_api_port=8765,
        sampling=SamplingOptions(),
    )
    values.update(overrides)
    return ConfigSnapshot(**values)


def anki_transport(handler):
    """httpx client whose requests are answered by `handler(payload, request)`.

    The handler returns a dict (sent as JSON) or raises an httpx error.
    Returns (client, calls); every decoded request payload lands in `calls`.
    """
    calls = []

    def respond(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        calls.append(payload)
        return httpx.Response(200, json=handler(payload, request))

    client = httpx.AsyncClient(transport=httpx.MockTransport(respond))
    return client, calls


@pytest.fixture
def snapshot():
    return make_snapshot()


@pytest.fixture
def paris_provider():
    return FakeProvider(content=PARIS_RESPONSE)


@pytest.fixture
def sync_client():
    return FakeSyncClient()


@pytest.fixture
def snapshot_factory():
    return make_snapshot


@pytest.fixture
def provider_factory():
    return FakeProvider


@pytest.fixture
def anki_http():
    return anki_transport


@pytest.fixture
def sync_factory():
    return FakeSyncClient
