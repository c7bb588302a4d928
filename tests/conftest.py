import asyncio

import pytest
from fastapi.testclient import TestClient

from chat_gateway.config import Settings
from chat_gateway.main import app, get_gateway
from chat_gateway.services.gateway import ChatGateway
from chat_gateway.services.provider import ModelStreamingProvider


class FakeProvider(ModelStreamingProvider):
    """Streams canned chunks and records what it was asked."""

    def __init__(self, chunks=("Meta-thinking ", "is thinking ", "about thinking."),
                 fail_on_open=None, fail_after=None, delay=0.0):
        self.chunks = list(chunks)
        self.fail_on_open = fail_on_open
        self.fail_after = fail_after
        self.delay = delay
        self.calls = []
        self.closed = False

    async def open_stream(self, system_instruction, messages):
        self.calls.append((system_instruction, messages))
        if self.fail_on_open is not None:
            raise self.fail_on_open
        return self._generate()

    async def _generate(self):
        try:
            for index, chunk in enumerate(self.chunks):
                if self.fail_after is not None and index == self.fail_after:
                    raise RuntimeError("upstream connection reset")
                if self.delay:
                    await asyncio.sleep(self.delay)
                yield chunk
        finally:
            self.closed = True


def make_settings(**overrides) -> Settings:
    values = {
        "api_key": "test-key",
        "system_instruction": "You are a test assistant.",
        "stream_protocol": "text",
        "max_message_length": 4000,
        "require_non_empty": True,
        "strict_parts": False,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def make_client():
    """Builds a TestClient whose gateway uses a FakeProvider and the given settings."""

    def _make(provider=None, **overrides):
        provider = provider or FakeProvider()
        gateway = ChatGateway(make_settings(**overrides), provider)
        app.dependency_overrides[get_gateway] = lambda: gateway
        return TestClient(app), provider

    yield _make
    app.dependency_overrides.clear()
