"""HTTP client for the remote artifact store."""

import time
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from llms_export.artifacts.constants import (
    ARTIFACT_CONTENT_TYPE,
    BATCH_UPLOAD_DELAY_SECONDS,
    FILE_FIELD,
    HTTP_STATUS_OK,
    MAX_ERROR_BODY_CHARS,
    MAX_UPLOAD_TIMEOUT_SECONDS,
    TENANT_FIELD,
    USER_AGENT,
)
from llms_export.artifacts.metrics import UploadMetrics
from llms_export.artifacts.models import (
    UploadError,
    UploadErrorClass,
    UploadRequest,
    UploadResult,
)
from llms_export.artifacts.redact import redact_headers


logger = structlog.get_logger()


class ArtifactClient:
    """Uploads text artifacts and returns their stable URLs.

    Each upload is a single multipart POST with an explicit timeout.
    Failures come back as typed errors on the result; nothing is retried
    because the remote side is not assumed to be idempotent.
    """

    def __init__(
        self,
        endpoint: str,
        tenant_id: str,
        token: str | None = None,
        timeout: float = MAX_UPLOAD_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            endpoint: Upload endpoint URL.
            tenant_id: Default namespace sent with every file.
            token: Optional bearer token.
            timeout: Request timeout in seconds, capped at 30.
            transport: Optional httpx transport (tests inject a mock).
            sleep: Delay function used between batch uploads.
        """
        self._endpoint = endpoint
        self._tenant_id = tenant_id
        self._token = token
        self._timeout = min(timeout, MAX_UPLOAD_TIMEOUT_SECONDS)
        self._transport = transport
        self._sleep = sleep
        self._metrics = UploadMetrics.get_instance()
        self._log = logger.bind(component="artifacts", endpoint=endpoint)

    @property
    def tenant_id(self) -> str:
        """Get the default tenant id."""
        return self._tenant_id

    def _build_headers(self) -> dict[str, str]:
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def upload(
        self,
        content: str,
        filename: str,
        tenant_id: str | None = None,
    ) -> UploadResult:
        """Upload one text file.

        Args:
            content: File content.
            filename: File name sent in the multipart part.
            tenant_id: Namespace override; defaults to the client's tenant.

        Returns:
            UploadResult with the artifact URL or a typed error.
        """
        tenant = tenant_id or self._tenant_id
        payload = content.encode("utf-8")
        headers = self._build_headers()
        log = self._log.bind(
            filename=filename,
            tenant_id=tenant,
            headers=redact_headers(headers),
        )

        start_ns = time.perf_counter_ns()
        try:
            with httpx.Client(
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = client.post(
                    self._endpoint,
                    headers=headers,
                    files={FILE_FIELD: (filename, payload, ARTIFACT_CONTENT_TYPE)},
                    data={TENANT_FIELD: tenant},
                )
        except httpx.TimeoutException as e:
            return self._failure(
                log,
                filename,
                tenant,
                UploadErrorClass.UPLOAD_FAILED,
                f"Upload timed out: {e}",
            )
        except httpx.HTTPError as e:
            return self._failure(
                log,
                filename,
                tenant,
                UploadErrorClass.UPLOAD_FAILED,
                f"Upload request failed: {e}",
            )
        finally:
            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            self._metrics.record_upload(len(payload), duration_ms)

        if response.status_code != HTTP_STATUS_OK:
            body = response.text[:MAX_ERROR_BODY_CHARS]
            return self._failure(
                log,
                filename,
                tenant,
                UploadErrorClass.UPLOAD_FAILED,
                f"Upload failed with status {response.status_code}: {body}",
                status_code=response.status_code,
            )

        try:
            decoded: Any = response.json()
        except ValueError as e:
            return self._failure(
                log,
                filename,
                tenant,
                UploadErrorClass.INVALID_RESPONSE,
                f"Response is not valid JSON: {e}",
                status_code=response.status_code,
            )

        url = decoded.get("url") if isinstance(decoded, dict) else None
        if not isinstance(url, str) or not url:
            return self._failure(
                log,
                filename,
                tenant,
                UploadErrorClass.MISSING_URL,
                "Response missing required url field",
                status_code=response.status_code,
            )

        log.info(
            "artifact_uploaded",
            url=url,
            bytes=len(payload),
            duration_ms=round(duration_ms, 2),
        )
        return UploadResult(filename=filename, url=url, tenant_id=tenant)

    def _failure(
        self,
        log: structlog.stdlib.BoundLogger,
        filename: str,
        tenant_id: str,
        error_class: UploadErrorClass,
        message: str,
        status_code: int | None = None,
    ) -> UploadResult:
        """Build, log and count a failed upload result."""
        self._metrics.record_failure(error_class)
        log.warning(
            "artifact_upload_failed",
            error_class=error_class.value,
            status_code=status_code,
            message=message,
        )
        return UploadResult(
            filename=filename,
            tenant_id=tenant_id,
            error=UploadError(
                error_class=error_class,
                message=message,
                status_code=status_code,
            ),
        )

    def batch_upload(
        self,
        requests: Iterable[UploadRequest],
        tenant_id: str | None = None,
    ) -> list[UploadResult]:
        """Upload several files sequentially.

        A failed file does not stop the batch. Consecutive uploads are
        separated by a short pause.

        Args:
            requests: Files to upload, in order.
            tenant_id: Namespace override for every file.

        Returns:
            One result per request, in request order.
        """
        pending = list(requests)
        results: list[UploadResult] = []

        for index, request in enumerate(pending):
            if index > 0:
                self._sleep(BATCH_UPLOAD_DELAY_SECONDS)
            results.append(self.upload(request.content, request.filename, tenant_id))

        failed = sum(1 for result in results if not result.is_success)
        self._log.info("batch_upload_complete", total=len(results), failed=failed)
        return results

    def test_connection(self) -> UploadResult:
        """Upload a small probe file to verify endpoint connectivity."""
        now = datetime.now(UTC)
        content = f"Connection test from llms-export - {now.isoformat()}"
        filename = f"test-connection-{int(now.timestamp())}.txt"
        return self.upload(content, filename)
