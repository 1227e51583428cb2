"""
Pytest configuration and shared fixtures for seclai tests.

FakeTransport / FakeResponse stand in for the HTTP layer of AsyncSeclai so
streaming behavior can be driven chunk by chunk without a network.
"""

import asyncio
import json

import pytest

from seclai import AsyncSeclai
from seclai.transport import race_signal


class FakeResponse:
    """In-memory TransportResponse."""

    def __init__(
        self,
        status_code=200,
        headers=None,
        chunks=(),
        body=b"",
        streamable=True,
        hang=False,
    ):
        self.status_code = status_code
        self.headers = headers if headers is not None else {"content-type": "text/event-stream"}
        self.signal = None
        self.closed = False
        self.stream_closed = False
        self.pulled = 0
        self._chunks = list(chunks)
        self._body = body
        self._streamable = streamable
        self._hang = hang

    async def text(self):
        return self._body.decode()

    async def json(self):
        return json.loads(self._body)

    def stream(self):
        if not self._streamable:
            return None
        return self._iter()

    async def _iter(self):
        try:
            for chunk in self._chunks:
                self.pulled += 1
                yield chunk
            if self._hang:
                # Never-ending stream; only the attached signal can end it.
                await race_signal(asyncio.Event().wait(), self.signal)
        finally:
            self.stream_closed = True

    async def close(self):
        self.closed = True


class FakeTransport:
    """Records every request and answers with a prepared FakeResponse."""

    def __init__(self, response):
        self.response = response
        self.requests = []

    async def send(self, method, url, *, headers, content=None, signal=None):
        self.requests.append(
            {"method": method, "url": url, "headers": dict(headers), "content": content, "signal": signal}
        )
        self.response.signal = signal
        return self.response


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's SECLAI_* variables out of the tests."""
    monkeypatch.delenv("SECLAI_API_KEY", raising=False)
    monkeypatch.delenv("SECLAI_API_URL", raising=False)


@pytest.fixture
def make_async_client():
    """Build an AsyncSeclai over a FakeTransport answering with ``response``."""

    def _make(response):
        transport = FakeTransport(response)
        client = AsyncSeclai(
            api_key="test-key",
            base_url="https://example.invalid",
            transport=transport,
        )
        return client, transport

    return _make


@pytest.fixture
def fake_response():
    """The FakeResponse class, for building scripted responses."""
    return FakeResponse
