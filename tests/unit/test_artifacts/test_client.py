"""Unit tests for the artifact upload client."""

import json
from collections.abc import Callable

import httpx
import pytest

from llms_export.artifacts.client import ArtifactClient
from llms_export.artifacts.constants import BATCH_UPLOAD_DELAY_SECONDS
from llms_export.artifacts.metrics import UploadMetrics
from llms_export.artifacts.models import UploadErrorClass, UploadRequest


ENDPOINT = "https://artifacts.test/upload"

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture(autouse=True)
def reset_metrics() -> None:
    """Reset upload metrics between tests."""
    UploadMetrics.reset()


def _client(
    handler: Handler,
    token: str | None = None,
    sleeps: list[float] | None = None,
) -> ArtifactClient:
    recorded = sleeps if sleeps is not None else []
    return ArtifactClient(
        endpoint=ENDPOINT,
        tenant_id="example-com",
        token=token,
        transport=httpx.MockTransport(handler),
        sleep=recorded.append,
    )


def _ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"url": "https://cdn.test/a.md"})


class TestUploadSuccess:
    """Tests for successful uploads."""

    def test_returns_url(self) -> None:
        """Test a 200 response with a url yields that url."""
        result = _client(_ok).upload("# Title", "post_1_title.md")

        assert result.is_success
        assert result.url == "https://cdn.test/a.md"
        assert result.tenant_id == "example-com"
        assert result.error is None

    def test_sends_multipart_fields(self) -> None:
        """Test the file and tenant fields are sent as multipart."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            request.read()
            captured.append(request)
            return _ok(request)

        _client(handler).upload("# Hello", "post_1_hello.md", tenant_id="other")

        request = captured[0]
        body = request.content
        assert request.method == "POST"
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b'name="file"; filename="post_1_hello.md"' in body
        assert b"Content-Type: text/plain" in body
        assert b"# Hello" in body
        assert b'name="site_id"' in body
        assert b"other" in body

    def test_bearer_token_header(self) -> None:
        """Test the token is sent as a bearer credential."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return _ok(request)

        _client(handler, token="secret").upload("x", "a.md")

        assert captured[0].headers["authorization"] == "Bearer secret"

    def test_no_token_no_auth_header(self) -> None:
        """Test no Authorization header without a token."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return _ok(request)

        _client(handler).upload("x", "a.md")

        assert "authorization" not in captured[0].headers

    def test_metrics_recorded(self) -> None:
        """Test bytes sent are counted."""
        _client(_ok).upload("abc", "a.md")

        metrics = UploadMetrics.get_instance()
        assert metrics.uploads_total == 1
        assert metrics.upload_bytes_total == 3


class TestUploadErrors:
    """Tests for error classification."""

    def test_non_200_status(self) -> None:
        """Test a non-200 response is UPLOAD_FAILED with the status."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="x" * 500)

        result = _client(handler).upload("x", "a.md")

        assert not result.is_success
        assert result.error is not None
        assert result.error.error_class == UploadErrorClass.UPLOAD_FAILED
        assert result.error.status_code == 500
        assert "500" in result.error.message
        assert "x" * 201 not in result.error.message

    def test_created_status_is_failure(self) -> None:
        """Test only 200 counts as success."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, json={"url": "https://cdn.test/a.md"})

        result = _client(handler).upload("x", "a.md")

        assert result.error is not None
        assert result.error.error_class == UploadErrorClass.UPLOAD_FAILED

    def test_redirect_not_followed(self) -> None:
        """Test a redirect is reported with its own status, not re-sent."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.path == "/moved":
                return httpx.Response(200, json={"url": "https://cdn.test/a.md"})
            return httpx.Response(
                302, headers={"Location": "https://artifacts.test/moved"}
            )

        result = _client(handler).upload("x", "a.md")

        assert result.error is not None
        assert result.error.error_class == UploadErrorClass.UPLOAD_FAILED
        assert result.error.status_code == 302
        assert [r.method for r in requests] == ["POST"]

    def test_non_json_body(self) -> None:
        """Test an unparsable body is INVALID_RESPONSE."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>ok</html>")

        result = _client(handler).upload("x", "a.md")

        assert result.error is not None
        assert result.error.error_class == UploadErrorClass.INVALID_RESPONSE

    @pytest.mark.parametrize(
        "payload",
        [{}, {"url": ""}, {"url": 42}, ["https://cdn.test/a.md"]],
    )
    def test_missing_url(self, payload: object) -> None:
        """Test JSON without a string url is MISSING_URL."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=json.dumps(payload).encode())

        result = _client(handler).upload("x", "a.md")

        assert result.error is not None
        assert result.error.error_class == UploadErrorClass.MISSING_URL

    def test_transport_error(self) -> None:
        """Test a connection failure is UPLOAD_FAILED."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        result = _client(handler).upload("x", "a.md")

        assert result.error is not None
        assert result.error.error_class == UploadErrorClass.UPLOAD_FAILED
        assert result.error.status_code is None

    def test_timeout(self) -> None:
        """Test a timeout is UPLOAD_FAILED."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        result = _client(handler).upload("x", "a.md")

        assert result.error is not None
        assert "timed out" in result.error.message

    def test_failures_counted_by_class(self) -> None:
        """Test failures are counted per class."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="nope")

        _client(handler).upload("x", "a.md")

        assert UploadMetrics.get_instance().upload_failures_total == {
            "INVALID_RESPONSE": 1
        }


class TestBatchUpload:
    """Tests for sequential batch uploads."""

    def test_results_in_order_with_delays(self) -> None:
        """Test each request gets a result and uploads are spaced out."""
        sleeps: list[float] = []

        def handler(request: httpx.Request) -> httpx.Response:
            request.read()
            name = "bad" if b'filename="b.md"' in request.content else "ok"
            if name == "bad":
                return httpx.Response(502, text="bad gateway")
            return _ok(request)

        requests = [
            UploadRequest(content="a", filename="a.md"),
            UploadRequest(content="b", filename="b.md"),
            UploadRequest(content="c", filename="c.md"),
        ]

        results = _client(handler, sleeps=sleeps).batch_upload(requests)

        assert [r.filename for r in results] == ["a.md", "b.md", "c.md"]
        assert [r.is_success for r in results] == [True, False, True]
        assert sleeps == [BATCH_UPLOAD_DELAY_SECONDS, BATCH_UPLOAD_DELAY_SECONDS]

    def test_empty_batch(self) -> None:
        """Test an empty batch uploads nothing."""
        sleeps: list[float] = []

        assert _client(_ok, sleeps=sleeps).batch_upload([]) == []
        assert sleeps == []


class TestConnectionProbe:
    """Tests for test_connection."""

    def test_uploads_probe_file(self) -> None:
        """Test the probe is a small text file."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            request.read()
            captured.append(request)
            return _ok(request)

        result = _client(handler).test_connection()

        assert result.is_success
        assert result.filename.startswith("test-connection-")
        assert result.filename.endswith(".txt")
        assert b"Connection test from llms-export" in captured[0].content
