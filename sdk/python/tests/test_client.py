"""
Unit tests for the synchronous Seclai client.

Requests are answered by httpx.MockTransport handlers, so the tests check
exactly what goes over the wire.
"""

import json

import httpx
import pytest

from seclai import (
    SECLAI_API_URL,
    Seclai,
    SeclaiAPIStatusError,
    SeclaiAPIValidationError,
    SeclaiConfigurationError,
    SeclaiConnectionError,
)


def json_response(payload, status_code=200):
    return httpx.Response(status_code, json=payload)


def make_client(handler, **kwargs):
    kwargs.setdefault("api_key", "k")
    kwargs.setdefault("base_url", "https://example.invalid")
    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return Seclai(http_client=http_client, **kwargs)


class TestConfiguration:
    """Tests for API key and base URL resolution."""

    def test_missing_api_key(self):
        with pytest.raises(SeclaiConfigurationError):
            Seclai()

    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("SECLAI_API_KEY", "env-key")
        seen = {}

        def handler(request):
            seen["key"] = request.headers["x-api-key"]
            return json_response({"ok": True})

        client = Seclai(http_client=httpx.Client(transport=httpx.MockTransport(handler)))
        client.request("GET", "/sources/")

        assert seen["key"] == "env-key"

    def test_default_base_url(self):
        assert Seclai(api_key="k").base_url == SECLAI_API_URL

    def test_base_url_from_env(self, monkeypatch):
        monkeypatch.setenv("SECLAI_API_URL", "https://env.example.invalid/")
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return json_response({"data": [], "pagination": {"page": 1, "limit": 20, "total": 0}})

        client = Seclai(api_key="k", http_client=httpx.Client(transport=httpx.MockTransport(handler)))
        client.list_sources()

        assert seen["url"].host == "env.example.invalid"
        assert seen["url"].path == "/sources/"

    def test_custom_headers(self):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            return json_response({})

        client = make_client(
            handler,
            api_key="secret",
            api_key_header="authorization-token",
            default_headers={"x-trace": "abc"},
        )
        client.request("GET", "/sources/", headers={"x-extra": "1"})

        assert seen["headers"]["authorization-token"] == "secret"
        assert "x-api-key" not in seen["headers"]
        assert seen["headers"]["x-trace"] == "abc"
        assert seen["headers"]["x-extra"] == "1"

    def test_context_manager_closes_owned_client(self):
        with Seclai(api_key="k") as client:
            pass
        assert client._client.is_closed


class TestRequest:
    """Tests for the generic request executor."""

    def test_json_body_and_content_type(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["content_type"] = request.headers["content-type"]
            seen["body"] = json.loads(request.content)
            return json_response({"ok": True})

        client = make_client(handler)
        assert client.request("POST", "/agents/a/runs", json={"hello": "world"}) == {"ok": True}

        assert seen["method"] == "POST"
        assert "application/json" in seen["content_type"]
        assert seen["body"] == {"hello": "world"}

    def test_no_content(self):
        client = make_client(lambda request: httpx.Response(204))
        assert client.request("DELETE", "/contents/c1") is None

    def test_text_response(self):
        client = make_client(
            lambda request: httpx.Response(200, text="plain", headers={"content-type": "text/plain"})
        )
        assert client.request("GET", "/health") == "plain"

    def test_validation_error(self):
        detail = {"detail": [{"loc": ["body"], "msg": "bad", "type": "value_error"}]}
        client = make_client(lambda request: json_response(detail, status_code=422))

        with pytest.raises(SeclaiAPIValidationError) as exc_info:
            client.list_sources()

        assert exc_info.value.validation_error == detail
        assert exc_info.value.method == "GET"
        assert isinstance(exc_info.value, SeclaiAPIStatusError)

    def test_status_error(self):
        client = make_client(lambda request: httpx.Response(401, text="nope"))

        with pytest.raises(SeclaiAPIStatusError) as exc_info:
            client.list_sources()

        err = exc_info.value
        assert not isinstance(err, SeclaiAPIValidationError)
        assert err.status_code == 401
        assert err.response_text == "nope"
        assert err.url.startswith("https://example.invalid/sources/")

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)
        with pytest.raises(SeclaiConnectionError):
            client.list_sources()


class TestResources:
    """Tests for paths and query parameters of the resource methods."""

    def recording_client(self, payload=None):
        seen = []

        def handler(request):
            seen.append(request)
            return json_response(payload if payload is not None else {})

        return make_client(handler), seen

    def test_list_sources_defaults(self):
        client, seen = self.recording_client()
        client.list_sources()

        params = seen[0].url.params
        assert seen[0].url.path == "/sources/"
        assert params["page"] == "1"
        assert params["limit"] == "20"
        assert params["sort"] == "created_at"
        assert params["order"] == "desc"
        assert "account_id" not in params

    def test_list_sources_options(self):
        client, seen = self.recording_client()
        client.list_sources(page=2, limit=10, order="asc", account_id="acc_123")

        params = seen[0].url.params
        assert params["page"] == "2"
        assert params["limit"] == "10"
        assert params["order"] == "asc"
        assert params["account_id"] == "acc_123"

    def test_run_agent(self):
        client, seen = self.recording_client({"run_id": "r1", "status": "pending"})
        run = client.run_agent("agent_1", {"input": "go"})

        assert run["run_id"] == "r1"
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/agents/agent_1/runs"
        assert json.loads(seen[0].content) == {"input": "go"}

    def test_list_agent_runs(self):
        client, seen = self.recording_client()
        client.list_agent_runs("agent_1", page=3)

        assert seen[0].url.path == "/agents/agent_1/runs"
        assert seen[0].url.params["page"] == "3"
        assert seen[0].url.params["limit"] == "50"

    def test_get_agent_run(self):
        client, seen = self.recording_client()
        client.get_agent_run("run_1")
        client.get_agent_run("run_1", include_step_outputs=True)

        assert seen[0].url.path == "/agents/runs/run_1"
        assert "include_step_outputs" not in seen[0].url.params
        assert seen[1].url.params["include_step_outputs"] == "true"

    def test_get_agent_run_legacy_signature(self):
        client, seen = self.recording_client()
        with pytest.warns(DeprecationWarning):
            client.get_agent_run("agent_1", "run_1", include_step_outputs=True)

        assert seen[0].url.path == "/agents/runs/run_1"
        assert seen[0].url.params["include_step_outputs"] == "true"

    def test_delete_agent_run(self):
        client, seen = self.recording_client()
        client.delete_agent_run("run_1")
        with pytest.warns(DeprecationWarning):
            client.delete_agent_run("agent_1", "run_2")

        assert [r.method for r in seen] == ["DELETE", "DELETE"]
        assert [r.url.path for r in seen] == ["/agents/runs/run_1", "/agents/runs/run_2"]

    def test_content_methods(self):
        client, seen = self.recording_client()
        client.get_content_detail("cv_1")
        client.list_content_embeddings("cv_1", limit=5)
        assert client.delete_content("cv_1") is None

        assert seen[0].url.path == "/contents/cv_1"
        assert seen[0].url.params["start"] == "0"
        assert seen[0].url.params["end"] == "5000"
        assert seen[1].url.path == "/contents/cv_1/embeddings"
        assert seen[1].url.params["page"] == "1"
        assert seen[1].url.params["limit"] == "5"
        assert seen[2].method == "DELETE"


class TestUpload:
    """Tests for multipart uploads."""

    def test_upload_file_to_source(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return json_response({"filename": "hello.txt"})

        client = make_client(handler)
        result = client.upload_file_to_source(
            "sc_123",
            file=b"hello",
            title="My title",
            metadata={"category": "docs"},
            file_name="hello.txt",
            mime_type="text/plain",
        )

        request = seen["request"]
        body = request.content
        assert result == {"filename": "hello.txt"}
        assert request.method == "POST"
        assert request.url.path == "/sources/sc_123/upload"
        assert request.headers["content-type"].startswith("multipart/form-data; boundary=")
        assert request.headers["x-api-key"] == "k"
        assert b'name="file"; filename="hello.txt"' in body
        assert b"Content-Type: text/plain" in body
        assert b"hello" in body
        assert b'name="title"' in body
        assert b"My title" in body
        assert b'{"category": "docs"}' in body

    def test_upload_defaults(self):
        seen = {}

        def handler(request):
            seen["body"] = request.content
            return json_response({})

        make_client(handler).upload_file_to_content("cv_1", file=bytearray(b"\x01\x02\x03"))

        assert b'filename="upload"' in seen["body"]
        assert b"Content-Type: application/octet-stream" in seen["body"]
        assert b'name="title"' not in seen["body"]
        assert b'name="metadata"' not in seen["body"]

    def test_upload_validation_error(self):
        client = make_client(lambda request: json_response({"detail": []}, status_code=422))

        with pytest.raises(SeclaiAPIValidationError):
            client.upload_file_to_source("sc_123", file=b"\x01", file_name="a.bin")
