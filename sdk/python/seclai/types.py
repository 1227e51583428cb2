"""Shapes of the JSON documents exchanged with the Seclai API.

These are ``TypedDict`` declarations: values are plain dicts decoded from
JSON, and the server may send fields not listed here.
"""

from __future__ import annotations

from typing import Any, Optional, TypedDict, Union

JSONValue = Union[dict[str, Any], list[Any], str, int, float, bool, None]


class AgentRunRequest(TypedDict, total=False):
    """Request body for starting an agent run."""
    input: Optional[str]
    metadata: Optional[dict[str, Any]]
    priority: bool


AgentRunStreamRequest = AgentRunRequest
"""Request body for a streaming agent run."""


class AgentRunStepResponse(TypedDict, total=False):
    agent_step_id: str
    step_type: str
    status: str
    output: Optional[str]
    output_content_type: Optional[str]
    started_at: Optional[str]
    ended_at: Optional[str]
    duration: Optional[float]
    credits_used: Optional[float]


class AgentRunResponse(TypedDict, total=False):
    """An agent run, as returned by the run endpoints and the ``done`` event."""
    run_id: str
    status: str
    input: Optional[str]
    output: Optional[str]
    error_count: int
    priority: bool
    credits: Optional[float]
    attempts: int
    steps: Optional[list[AgentRunStepResponse]]


class PaginationResponse(TypedDict, total=False):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool


class AgentRunListResponse(TypedDict, total=False):
    data: list[AgentRunResponse]
    pagination: PaginationResponse


class ContentDetailResponse(TypedDict, total=False):
    id: str
    title: Optional[str]
    content_type: Optional[str]
    content: Optional[str]
    start: int
    end: int
    total_length: int
    metadata: Optional[dict[str, Any]]


class ContentEmbeddingResponse(TypedDict, total=False):
    id: str
    text: str
    vector: list[float]


class ContentEmbeddingsListResponse(TypedDict, total=False):
    data: list[ContentEmbeddingResponse]
    pagination: PaginationResponse


class SourceResponse(TypedDict, total=False):
    id: str
    name: str
    source_type: str
    account_id: Optional[str]
    created_at: str
    updated_at: str


class SourceListResponse(TypedDict, total=False):
    data: list[SourceResponse]
    pagination: PaginationResponse


class FileUploadResponse(TypedDict, total=False):
    source_connection_content_version: str
    filename: str
    content_type: str
    status: str


class ValidationErrorItem(TypedDict, total=False):
    loc: list[Union[str, int]]
    msg: str
    type: str


class HTTPValidationError(TypedDict, total=False):
    """Validation error body returned with HTTP 422."""
    detail: list[ValidationErrorItem]
