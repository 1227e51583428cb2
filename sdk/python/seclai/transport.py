"""Pluggable async HTTP transport used by :class:`~seclai.AsyncSeclai`.

The default :class:`HttpxTransport` runs on ``httpx.AsyncClient``. Any object
implementing :class:`AsyncTransport` can be supplied instead, e.g. to route
requests through a custom session or to fake the server in tests.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Mapping
from typing import Any, Optional, Protocol, TypeVar

import httpx

from .errors import SeclaiConnectionError, SeclaiRequestAbortedError
from .signals import CancelSignal

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransportResponse(Protocol):
    """Response returned by :meth:`AsyncTransport.send`."""

    status_code: int
    headers: Mapping[str, str]

    async def text(self) -> str: ...

    async def json(self) -> Any: ...

    def stream(self) -> Optional[AsyncIterator[bytes]]:
        """Return an iterator over body bytes, or ``None`` if unsupported."""
        ...

    async def close(self) -> None: ...


class AsyncTransport(Protocol):
    """Performs one HTTP request and returns a response with an unread body."""

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        content: Optional[bytes] = None,
        signal: Optional[CancelSignal] = None,
    ) -> TransportResponse: ...


async def race_signal(awaitable: Awaitable[T], signal: Optional[CancelSignal]) -> T:
    """Await ``awaitable`` unless ``signal`` triggers first.

    When the signal wins the pending awaitable is cancelled and
    :class:`SeclaiRequestAbortedError` is raised.
    """
    if signal is None:
        return await awaitable
    if signal.triggered:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        signal.raise_if_triggered()

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task.done():
        return task.result()

    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    raise SeclaiRequestAbortedError(signal.reason)


async def _next_chunk(iterator: AsyncIterator[bytes]) -> Optional[bytes]:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return None


class HttpxResponse:
    """:class:`TransportResponse` over a streamed ``httpx.Response``."""

    def __init__(self, response: httpx.Response, signal: Optional[CancelSignal] = None):
        self._response = response
        self._signal = signal

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    async def text(self) -> str:
        try:
            await race_signal(self._response.aread(), self._signal)
        except httpx.TransportError as e:
            raise SeclaiConnectionError(f"Failed to read response body: {e}") from e
        return self._response.text

    async def json(self) -> Any:
        return json.loads(await self.text())

    def stream(self) -> AsyncIterator[bytes]:
        return self._iter_bytes()

    async def _iter_bytes(self) -> AsyncIterator[bytes]:
        iterator = self._response.aiter_bytes().__aiter__()
        while True:
            try:
                chunk = await race_signal(_next_chunk(iterator), self._signal)
            except httpx.TransportError as e:
                raise SeclaiConnectionError(f"Stream interrupted: {e}") from e
            if chunk is None:
                return
            yield chunk

    async def close(self) -> None:
        await self._response.aclose()


class HttpxTransport:
    """:class:`AsyncTransport` backed by ``httpx.AsyncClient``."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 120):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        content: Optional[bytes] = None,
        signal: Optional[CancelSignal] = None,
    ) -> HttpxResponse:
        request = self._client.build_request(method, url, headers=headers, content=content)
        logger.debug("%s %s", method, url)
        try:
            response = await race_signal(self._client.send(request, stream=True), signal)
        except httpx.TransportError as e:
            raise SeclaiConnectionError(f"Failed to connect to {url}: {e}") from e
        return HttpxResponse(response, signal)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
