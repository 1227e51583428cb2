"""Error types raised by the Seclai SDK."""

from __future__ import annotations

import json
from typing import Any, Optional


class SeclaiError(Exception):
    """Base error for the Seclai SDK."""
    pass


class SeclaiConfigurationError(SeclaiError):
    """The SDK is misconfigured or the environment cannot support an operation."""
    pass


class SeclaiConnectionError(SeclaiError):
    """Error connecting to the Seclai API."""
    pass


class SeclaiAPIStatusError(SeclaiError):
    """The API returned a non-success status code.

    Validation failures (HTTP 422) raise :class:`SeclaiAPIValidationError`
    instead.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        method: str,
        url: str,
        response_text: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.method = method
        self.url = url
        self.response_text = response_text

    def __str__(self) -> str:
        return f"{self.args[0]} ({self.method} {self.url})"


class SeclaiAPIValidationError(SeclaiAPIStatusError):
    """The API rejected the request as invalid (HTTP 422).

    ``validation_error`` holds the decoded validation payload when the
    response body was valid JSON, otherwise ``None``.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        method: str,
        url: str,
        response_text: Optional[str] = None,
        validation_error: Any = None,
    ):
        super().__init__(
            message,
            status_code=status_code,
            method=method,
            url=url,
            response_text=response_text,
        )
        self.validation_error = validation_error


class SeclaiStreamIncompleteError(SeclaiError):
    """The event stream closed before a terminal ``done`` event arrived."""
    pass


class SeclaiTimeoutError(SeclaiError, TimeoutError):
    """The time budget of a streaming run elapsed."""

    def __init__(self, message: str, timeout_ms: int):
        super().__init__(message)
        self.timeout_ms = timeout_ms


class SeclaiRequestAbortedError(SeclaiError):
    """The cancel signal attached to a request was triggered."""

    def __init__(self, reason: Any = None):
        super().__init__("Request was aborted" if reason is None else f"Request was aborted: {reason}")
        self.reason = reason


def status_error(
    status_code: int,
    method: str,
    url: str,
    response_text: Optional[str],
) -> SeclaiAPIStatusError:
    """Build the error for a non-success response.

    The validation payload of a 422 response is decoded from
    ``response_text`` on a best-effort basis.
    """
    if status_code == 422:
        return SeclaiAPIValidationError(
            "Validation error",
            status_code=status_code,
            method=method,
            url=url,
            response_text=response_text,
            validation_error=_safe_json(response_text),
        )
    return SeclaiAPIStatusError(
        f"Request failed with status {status_code}",
        status_code=status_code,
        method=method,
        url=url,
        response_text=response_text,
    )


def _safe_json(text: Optional[str]) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None
