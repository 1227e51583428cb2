"""Seclai SDK client for Python.

Provides typed methods for running agents, inspecting agent runs, and
managing sources and content via the Seclai HTTP API.
"""

from __future__ import annotations

import json
import logging
import os
import warnings
from typing import IO, Any, Mapping, Optional, Union, overload

import httpx

from .errors import SeclaiConfigurationError, SeclaiConnectionError, status_error
from .types import (
    AgentRunListResponse,
    AgentRunRequest,
    AgentRunResponse,
    ContentDetailResponse,
    ContentEmbeddingsListResponse,
    FileUploadResponse,
    SourceListResponse,
)

logger = logging.getLogger(__name__)

SECLAI_API_URL = "https://api.seclai.com"
"""Default API base URL, overridden by ``base_url`` or ``SECLAI_API_URL``."""

FileContent = Union[bytes, bytearray, memoryview, IO[bytes]]


class _BaseClient:
    """Configuration shared by the sync and async clients."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        api_key_header: str = "x-api-key",
        default_headers: Optional[Mapping[str, str]] = None,
        timeout: float = 120,
    ):
        api_key = api_key or os.environ.get("SECLAI_API_KEY")
        if not api_key:
            raise SeclaiConfigurationError(
                "Missing API key. Provide api_key or set SECLAI_API_KEY."
            )
        self._api_key = api_key
        self._base_url = (
            base_url or os.environ.get("SECLAI_API_URL") or SECLAI_API_URL
        ).rstrip("/")
        self._api_key_header = api_key_header
        self._default_headers = dict(default_headers or {})
        self._timeout = timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    def _url(self, path: str, query: Optional[Mapping[str, Any]] = None) -> str:
        url = httpx.URL(f"{self._base_url}{path}")
        if query:
            params = {k: v for k, v in query.items() if v is not None}
            if params:
                url = url.copy_merge_params(params)
        return str(url)

    def _headers(self, extra: Optional[Mapping[str, str]] = None) -> dict[str, str]:
        headers = dict(self._default_headers)
        if extra:
            headers.update(extra)
        headers[self._api_key_header] = self._api_key
        return headers

    def _json_request_parts(
        self,
        json_body: Any,
        headers: Optional[Mapping[str, str]],
    ) -> tuple[dict[str, str], Optional[bytes]]:
        merged = self._headers(headers)
        if json_body is None:
            return merged, None
        if not any(k.lower() == "content-type" for k in merged):
            merged["content-type"] = "application/json"
        return merged, json.dumps(json_body).encode()

    @staticmethod
    def _upload_parts(
        file: FileContent,
        title: Optional[str],
        metadata: Optional[Mapping[str, Any]],
        file_name: Optional[str],
        mime_type: Optional[str],
    ) -> tuple[dict[str, Any], dict[str, str]]:
        content = file if hasattr(file, "read") else bytes(file)
        files = {
            "file": (
                file_name or "upload",
                content,
                mime_type or "application/octet-stream",
            )
        }
        data: dict[str, str] = {}
        if title is not None:
            data["title"] = title
        if metadata is not None:
            data["metadata"] = json.dumps(metadata)
        return files, data

    @staticmethod
    def _resolve_run_id(arg1: str, arg2: Optional[str], method: str) -> str:
        if arg2 is None:
            return arg1
        warnings.warn(
            f"Passing agent_id to {method}() is deprecated; pass only run_id.",
            DeprecationWarning,
            stacklevel=3,
        )
        return arg2


def _is_json(content_type: Optional[str]) -> bool:
    return "application/json" in (content_type or "")


class Seclai(_BaseClient):
    """Synchronous client for the Seclai HTTP API.

    Usage::

        client = Seclai(api_key="...")
        sources = client.list_sources(limit=10)
        run = client.run_agent("agent-id", {"input": "Summarize the latest docs"})

    Streaming runs are available on :class:`~seclai.AsyncSeclai`.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        api_key_header: str = "x-api-key",
        default_headers: Optional[Mapping[str, str]] = None,
        timeout: float = 120,
        http_client: Optional[httpx.Client] = None,
    ):
        super().__init__(api_key, base_url, api_key_header, default_headers, timeout)
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> Seclai:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _send(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        logger.debug("%s %s", method, url)
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise SeclaiConnectionError(f"Failed to connect to {url}: {e}") from e
        if response.is_error:
            raise status_error(response.status_code, method, url, _safe_text(response))
        return response

    def request(
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

        Raises:
            SeclaiAPIValidationError: For validation errors (HTTP 422).
            SeclaiAPIStatusError: For other non-success status codes.
        """
        url = self._url(path, query)
        merged, content = self._json_request_parts(json, headers)
        response = self._send(method, url, headers=merged, content=content)

        if response.status_code == 204 or not response.content:
            return None
        if _is_json(response.headers.get("content-type")):
            return response.json()
        return response.text

    def run_agent(self, agent_id: str, body: AgentRunRequest) -> AgentRunResponse:
        """Start an agent run and return the created run."""
        return self.request("POST", f"/agents/{agent_id}/runs", json=body)

    def list_agent_runs(
        self, agent_id: str, *, page: int = 1, limit: int = 50
    ) -> AgentRunListResponse:
        """List the runs of an agent."""
        return self.request(
            "GET", f"/agents/{agent_id}/runs", query={"page": page, "limit": limit}
        )

    @overload
    def get_agent_run(
        self, run_id: str, *, include_step_outputs: bool = False
    ) -> AgentRunResponse: ...

    @overload
    def get_agent_run(
        self, agent_id: str, run_id: str, *, include_step_outputs: bool = False
    ) -> AgentRunResponse: ...

    def get_agent_run(
        self,
        arg1: str,
        arg2: Optional[str] = None,
        *,
        include_step_outputs: bool = False,
    ) -> AgentRunResponse:
        """Get a single agent run.

        The ``(agent_id, run_id)`` form is kept for backwards compatibility.
        """
        run_id = self._resolve_run_id(arg1, arg2, "get_agent_run")
        query = {"include_step_outputs": True} if include_step_outputs else None
        return self.request("GET", f"/agents/runs/{run_id}", query=query)

    @overload
    def delete_agent_run(self, run_id: str) -> AgentRunResponse: ...

    @overload
    def delete_agent_run(self, agent_id: str, run_id: str) -> AgentRunResponse: ...

    def delete_agent_run(self, arg1: str, arg2: Optional[str] = None) -> AgentRunResponse:
        """Cancel an agent run and return the updated run."""
        run_id = self._resolve_run_id(arg1, arg2, "delete_agent_run")
        return self.request("DELETE", f"/agents/runs/{run_id}")

    def get_content_detail(
        self, source_connection_content_version: str, *, start: int = 0, end: int = 5000
    ) -> ContentDetailResponse:
        """Fetch a slice of a content version.

        Use ``start``/``end`` to page through large content.
        """
        return self.request(
            "GET",
            f"/contents/{source_connection_content_version}",
            query={"start": start, "end": end},
        )

    def delete_content(self, source_connection_content_version: str) -> None:
        """Delete a content version."""
        self.request("DELETE", f"/contents/{source_connection_content_version}")

    def list_content_embeddings(
        self, source_connection_content_version: str, *, page: int = 1, limit: int = 20
    ) -> ContentEmbeddingsListResponse:
        """List the embeddings of a content version."""
        return self.request(
            "GET",
            f"/contents/{source_connection_content_version}/embeddings",
            query={"page": page, "limit": limit},
        )

    def list_sources(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        sort: str = "created_at",
        order: str = "desc",
        account_id: Optional[str] = None,
    ) -> SourceListResponse:
        """List sources."""
        return self.request(
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

    def upload_file_to_source(
        self,
        source_connection_id: str,
        *,
        file: FileContent,
        title: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        file_name: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> FileUploadResponse:
        """Upload a file to a source connection.

        Maximum file size is 200 MiB. When ``mime_type`` is omitted the file
        is sent as ``application/octet-stream`` and the server infers the
        type from ``file_name``, so prefer a meaningful extension
        (e.g. ``"recording.mp3"``). ``metadata`` is sent as a JSON string
        form field.
        """
        return self._upload(
            f"/sources/{source_connection_id}/upload",
            file, title, metadata, file_name, mime_type,
        )

    def upload_file_to_content(
        self,
        source_connection_content_version: str,
        *,
        file: FileContent,
        title: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        file_name: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> FileUploadResponse:
        """Replace the file backing an existing content version.

        The content version ID stays the same, so existing references keep
        working.
        """
        return self._upload(
            f"/contents/{source_connection_content_version}/upload",
            file, title, metadata, file_name, mime_type,
        )

    def _upload(
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
        response = self._send("POST", url, headers=self._headers(), files=files, data=data)
        return response.json()


def _safe_text(response: httpx.Response) -> Optional[str]:
    try:
        return response.text
    except Exception:
        logger.debug("Could not read error response body", exc_info=True)
        return None
