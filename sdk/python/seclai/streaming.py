"""Seclai SDK async client with streaming agent runs.

Provides :class:`AsyncSeclai`, which runs agents over the Server-Sent Events
endpoint and waits for the terminal ``done`` event, alongside async
versions of the regular API methods.
"""

from __future__ import annotations

import asyncio
import codecs
import json
import logging
from collections.abc import AsyncGenerator, AsyncIterator, Mapping
from typing import Any, Optional, overload

import httpx

from .client import FileContent, _BaseClient, _is_json
from .errors import (
    SeclaiConfigurationError,
    SeclaiStreamIncompleteError,
    SeclaiTimeoutError,
    status_error,
)
from .signals import CancelSignal, CombinedSignal, any_signal
from .sse import SseMessage, SseParser
from .transport import AsyncTransport, HttpxTransport, TransportResponse
from .types import (
    AgentRunListResponse,
    AgentRunRequest,
    AgentRunResponse,
    AgentRunStreamRequest,
    ContentDetailResponse,
    ContentEmbeddingsListResponse,
    FileUploadResponse,
    SourceListResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_STREAM_TIMEOUT_MS = 60_000

INIT_EVENT = "init"
DONE_EVENT = "done"
PENDING_STATUS = "pending"


class AsyncSeclai(_BaseClient):
    """Async client for the Seclai HTTP API.

    Usage::

        async with AsyncSeclai(api_key="...") as client:
            run = await client.run_streaming_agent_and_wait(
                "agent-id", {"input": "Hello!"}, timeout_ms=30_000
            )
            print(run["output"])
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        api_key_header: str = "x-api-key",
        default_headers: Optional[Mapping[str, str]] = None,
        timeout: float = 120,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[AsyncTransport] = None,
    ):
        super().__init__(api_key, base_url, api_key_header, default_headers, timeout)
        self._owned_transport: Optional[HttpxTransport] = None
        if transport is None:
            transport = HttpxTransport(http_client, timeout=timeout)
            self._owned_transport = transport
        self._transport = transport

    async def aclose(self) -> None:
        if self._owned_transport is not None:
            await self._owned_transport.aclose()

    async def __aenter__(self) -> AsyncSeclai:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def _send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        content: Optional[bytes] = None,
        signal: Optional[CancelSignal] = None,
    ) -> TransportResponse:
        response = await self._transport.send(
            method, url, headers=headers, content=content, signal=signal
        )
        if not 200 <= response.status_code < 300:
            try:
                response_text = await _safe_text(response)
            finally:
                await response.close()
            raise status_error(response.status_code, method, url, response_text)
        return response

    async def request(
        self,
        method: str,
        path: str,
        *,
        query: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """Make a raw request to the Seclai API.

        Returns decoded JSON for JSON responses, text for other responses,
        and ``None`` for empty bodies.
        """
        url = self._url(path, query)
        merged, content = self._json_request_parts(json, headers)
        response = await self._send(method, url, merged, content)
        try:
            if response.status_code == 204:
                return None
            text = await response.text()
        finally:
            await response.close()

        if not text:
            return None
        if _is_json(response.headers.get("content-type")):
            return _decode_json(text)
        return text

    async def run_streaming_agent_and_wait(
        self,
        agent_id: str,
        body: AgentRunStreamRequest,
        *,
        timeout_ms: int = DEFAULT_STREAM_TIMEOUT_MS,
        signal: Optional[CancelSignal] = None,
    ) -> AgentRunResponse:
        """Run an agent in streaming mode and wait for the ``done`` event.

        Args:
            agent_id: Agent identifier.
            body: Agent run request payload.
            timeout_ms: Time budget for the whole run, in milliseconds.
            signal: Optional caller-owned cancel signal.

        Returns:
            The final agent run payload.

        Raises:
            SeclaiTimeoutError: ``timeout_ms`` elapsed before completion.
            SeclaiRequestAbortedError: ``signal`` was triggered.
            SeclaiStreamIncompleteError: The stream closed without a ``done``
                event and the last payload seen was still pending.
            SeclaiConfigurationError: The transport cannot stream the body.
            SeclaiAPIStatusError: The API returned a non-success status.
        """
        timeout_signal = CancelSignal()
        timed_out = False

        def on_timeout() -> None:
            nonlocal timed_out
            # A caller abort that is still unwinding is not a timeout.
            if signal is None or not signal.triggered:
                timed_out = True
            timeout_signal.trigger(f"timed out after {timeout_ms}ms")

        timer = asyncio.get_running_loop().call_later(timeout_ms / 1000, on_timeout)
        combined = any_signal(signal, timeout_signal)

        try:
            return await self._stream_until_done(agent_id, body, combined)
        except Exception as e:
            if timed_out:
                logger.debug("Streaming run of agent %s timed out", agent_id)
                raise SeclaiTimeoutError(
                    f"Timed out after {timeout_ms}ms waiting for streaming agent run to complete.",
                    timeout_ms,
                ) from e
            raise
        finally:
            timer.cancel()
            if isinstance(combined, CombinedSignal):
                combined.release()

    async def _stream_until_done(
        self,
        agent_id: str,
        body: AgentRunStreamRequest,
        signal: Optional[CancelSignal],
    ) -> AgentRunResponse:
        response = await self._open_stream(agent_id, body, signal)
        try:
            # Servers may answer with a plain JSON document instead of SSE.
            if _is_json(response.headers.get("content-type")):
                return await response.json()

            chunks = _require_stream(response)

            final: Optional[AgentRunResponse] = None
            last_seen: Optional[AgentRunResponse] = None

            def on_message(message: SseMessage) -> None:
                nonlocal final, last_seen
                if final is not None or not message.data:
                    return
                if message.event not in (INIT_EVENT, DONE_EVENT):
                    return
                try:
                    payload = json.loads(message.data)
                except ValueError:
                    logger.debug("Ignoring malformed %r event payload", message.event)
                    return
                logger.debug("Received %r event", message.event)
                last_seen = payload
                if message.event == DONE_EVENT:
                    final = payload

            parser = SseParser(on_message)
            decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
            try:
                async for chunk in chunks:
                    parser.feed(decoder.decode(chunk))
                    if final is not None:
                        break
            finally:
                await _close_iterator(chunks)
            parser.feed(decoder.decode(b"", final=True))
            parser.end()
        finally:
            await response.close()

        if final is not None:
            return final
        if isinstance(last_seen, dict):
            status = last_seen.get("status")
            if status and status != PENDING_STATUS:
                return last_seen
        raise SeclaiStreamIncompleteError("Stream ended before receiving a 'done' event.")

    async def _open_stream(
        self,
        agent_id: str,
        body: AgentRunStreamRequest,
        signal: Optional[CancelSignal],
    ) -> TransportResponse:
        url = self._url(f"/agents/{agent_id}/runs/stream")
        headers = self._headers(
            {"accept": "text/event-stream", "content-type": "application/json"}
        )
        return await self._send(
            "POST", url, headers, json.dumps(body).encode(), signal
        )

    async def stream_agent_run(
        self,
        agent_id: str,
        body: AgentRunStreamRequest,
        *,
        signal: Optional[CancelSignal] = None,
    ) -> AsyncGenerator[SseMessage, None]:
        """Run an agent in streaming mode, yielding every SSE message.

        A server that answers with JSON yields a single ``done`` message
        carrying the JSON document.
        """
        response = await self._open_stream(agent_id, body, signal)
        try:
            if _is_json(response.headers.get("content-type")):
                yield SseMessage(data=await response.text(), event=DONE_EVENT)
                return

            chunks = _require_stream(response)

            pending: list[SseMessage] = []
            parser = SseParser(pending.append)
            decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
            try:
                async for chunk in chunks:
                    parser.feed(decoder.decode(chunk))
                    while pending:
                        yield pending.pop(0)
            finally:
                await _close_iterator(chunks)
            parser.feed(decoder.decode(b"", final=True))
            parser.end()
            for message in pending:
                yield message
        finally:
            await response.close()

    async def run_agent(self, agent_id: str, body: AgentRunRequest) -> AgentRunResponse:
        """Start an agent run and return the created run."""
        return await self.request("POST", f"/agents/{agent_id}/runs", json=body)

    async def list_agent_runs(
        self, agent_id: str, *, page: int = 1, limit: int = 50
    ) -> AgentRunListResponse:
        """List the runs of an agent."""
        return await self.request(
            "GET", f"/agents/{agent_id}/runs", query={"page": page, "limit": limit}
        )

    @overload
    async def get_agent_run(
        self, run_id: str, *, include_step_outputs: bool = False
    ) -> AgentRunResponse: ...

    @overload
    async def get_agent_run(
        self, agent_id: str, run_id: str, *, include_step_outputs: bool = False
    ) -> AgentRunResponse: ...

    async def get_agent_run(
        self,
        arg1: str,
        arg2: Optional[str] = None,
        *,
        include_step_outputs: bool = False,
    ) -> AgentRunResponse:
        """Get a single agent run.

        Accepts ``(run_id)`` or the deprecated ``(agent_id, run_id)``.
        """
        run_id = self._resolve_run_id(arg1, arg2, "get_agent_run")
        query = {"include_step_outputs": True} if include_step_outputs else None
        return await self.request("GET", f"/agents/runs/{run_id}", query=query)

    @overload
    async def delete_agent_run(self, run_id: str) -> AgentRunResponse: ...

    @overload
    async def delete_agent_run(self, agent_id: str, run_id: str) -> AgentRunResponse: ...

    async def delete_agent_run(self, arg1: str, arg2: Optional[str] = None) -> AgentRunResponse:
        """Cancel an agent run. Accepts ``(run_id)`` or ``(agent_id, run_id)``."""
        run_id = self._resolve_run_id(arg1, arg2, "delete_agent_run")
        return await self.request("DELETE", f"/agents/runs/{run_id}")

    async def get_content_detail(
        self, source_connection_content_version: str, *, start: int = 0, end: int = 5000
    ) -> ContentDetailResponse:
        """Fetch a slice of a content version.

        Use ``start``/``end`` to page through large content.
        """
        return await self.request(
            "GET",
            f"/contents/{source_connection_content_version}",
            query={"start": start, "end": end},
        )

    async def delete_content(self, source_connection_content_version: str) -> None:
        """Delete a content version."""
        await self.request("DELETE", f"/contents/{source_connection_content_version}")

    async def list_content_embeddings(
        self, source_connection_content_version: str, *, page: int = 1, limit: int = 20
    ) -> ContentEmbeddingsListResponse:
        """List the embeddings of a content version."""
        return await self.request(
            "GET",
            f"/contents/{source_connection_content_version}/embeddings",
            query={"page": page, "limit": limit},
        )

    async def list_sources(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        sort: str = "created_at",
        order: str = "desc",
        account_id: Optional[str] = None,
    ) -> SourceListResponse:
        """List sources."""
        return await self.request(
            "GET",
            "/sources/",
            query={
                "page": page,
                "limit": limit,
                "sort": sort,
                "order": order,
                "account_id": account_id,
            },
        )

    async def upload_file_to_source(
        self,
        source_connection_id: str,
        *,
        file: FileContent,
        title: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        file_name: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> FileUploadResponse:
        """Upload a file to a source connection. See :meth:`Seclai.upload_file_to_source`."""
        return await self._upload(
            f"/sources/{source_connection_id}/upload",
            file, title, metadata, file_name, mime_type,
        )

    async def upload_file_to_content(
        self,
        source_connection_content_version: str,
        *,
        file: FileContent,
        title: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        file_name: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> FileUploadResponse:
        """Replace the file backing a content version. See :meth:`Seclai.upload_file_to_content`."""
        return await self._upload(
            f"/contents/{source_connection_content_version}/upload",
            file, title, metadata, file_name, mime_type,
        )

    async def _upload(
        self,
        path: str,
        file: FileContent,
        title: Optional[str],
        metadata: Optional[Mapping[str, Any]],
        file_name: Optional[str],
        mime_type: Optional[str],
    ) -> FileUploadResponse:
        url = self._url(path)
        files, data = self._upload_parts(file, title, metadata, file_name, mime_type)
        # Let httpx produce the multipart body and its boundary header.
        encoded = httpx.Request("POST", url, files=files, data=data)
        headers = self._headers({"content-type": encoded.headers["content-type"]})
        response = await self._send("POST", url, headers, encoded.read())
        try:
            return await response.json()
        finally:
            await response.close()


async def _safe_text(response: TransportResponse) -> Optional[str]:
    try:
        return await response.text()
    except Exception:
        logger.debug("Could not read error response body", exc_info=True)
        return None


def _require_stream(response: TransportResponse) -> AsyncIterator[bytes]:
    chunks = response.stream()
    if chunks is None:
        raise SeclaiConfigurationError(
            "Streaming response body is not available. Provide a "
            "transport whose responses support incremental reads."
        )
    return chunks


async def _close_iterator(iterator: Any) -> None:
    aclose = getattr(iterator, "aclose", None)
    if aclose is not None:
        await aclose()


def _decode_json(text: str) -> Any:
    return json.loads(text)
