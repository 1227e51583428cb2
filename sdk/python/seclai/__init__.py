"""Seclai SDK for Python.

A typed client library for the Seclai HTTP API.
"""

from .client import SECLAI_API_URL, Seclai
from .errors import (
    SeclaiAPIStatusError,
    SeclaiAPIValidationError,
    SeclaiConfigurationError,
    SeclaiConnectionError,
    SeclaiError,
    SeclaiRequestAbortedError,
    SeclaiStreamIncompleteError,
    SeclaiTimeoutError,
)
from .signals import CancelSignal, any_signal
from .sse import SseMessage, SseParser
from .streaming import AsyncSeclai
from .transport import AsyncTransport, HttpxTransport, TransportResponse
from .types import (
    AgentRunListResponse,
    AgentRunRequest,
    AgentRunResponse,
    AgentRunStreamRequest,
    ContentDetailResponse,
    ContentEmbeddingsListResponse,
    FileUploadResponse,
    HTTPValidationError,
    JSONValue,
    SourceListResponse,
)

__all__ = [
    "SECLAI_API_URL",
    "Seclai",
    "AsyncSeclai",
    "SeclaiError",
    "SeclaiAPIStatusError",
    "SeclaiAPIValidationError",
    "SeclaiConfigurationError",
    "SeclaiConnectionError",
    "SeclaiRequestAbortedError",
    "SeclaiStreamIncompleteError",
    "SeclaiTimeoutError",
    "CancelSignal",
    "any_signal",
    "SseMessage",
    "SseParser",
    "AsyncTransport",
    "HttpxTransport",
    "TransportResponse",
    "AgentRunListResponse",
    "AgentRunRequest",
    "AgentRunResponse",
    "AgentRunStreamRequest",
    "ContentDetailResponse",
    "ContentEmbeddingsListResponse",
    "FileUploadResponse",
    "HTTPValidationError",
    "JSONValue",
    "SourceListResponse",
]

__version__ = "0.1.0"
