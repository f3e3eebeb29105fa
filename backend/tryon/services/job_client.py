"""Job client: stateless HTTP exchanges with the try-on endpoint.

Async implementation using httpx. Each call carries its own deadline:
submissions are large (two base64 photos), status checks carry no payload,
and the blocking sync path waits for the whole transformation.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from ..config import Settings, get_settings
from ..exceptions import (
    ConfigurationError,
    NetworkTimeoutError,
    ProcessingError,
    StatusCheckError,
    SubmissionError,
)
from ..models import EncodedImage, JobStatus, JobSubmission, ProcessRequest, ProcessResult

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Failed to process images"
SUCCESS_MESSAGE = "Image processed successfully"
TIMEOUT_MESSAGE = "Request timed out. Please try with smaller images."

# Timed out, or the connection was dropped mid-transfer
_NETWORK_ABORT_ERRORS = (
    httpx.TimeoutException,
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, httpx.RequestError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or 500 <= status < 600
    return False


def extract_error_message(exc: Exception, default: str = DEFAULT_ERROR_MESSAGE) -> str:
    """Human-readable message for a failed exchange.

    Prefers the response body's `error` field (then `message`), falls back to
    the transport error's own text, and finally to `default`.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("error", "message"):
                value = body.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()
        return f"Request failed with status code {exc.response.status_code}"
    text = str(exc).strip()
    if text:
        return text
    if isinstance(exc, httpx.TimeoutException):
        return "Request timed out"
    return default


class JobClient:
    """Submit try-on jobs, poll their status, or run them synchronously."""

    def __init__(self, settings: Optional[Settings] = None, *, http_client: Optional[httpx.AsyncClient] = None) -> None:
        self.settings = settings or get_settings()
        if not self.settings.TRYON_API_ENDPOINT:
            raise ConfigurationError("Missing TRYON_API_ENDPOINT")
        self.endpoint = self.settings.TRYON_API_ENDPOINT
        self._client = http_client
        self._owns_client = http_client is None

    async def __aenter__(self) -> "JobClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(headers={"Content-Type": "application/json"})
        return self._client

    def _timeout(self, seconds: float) -> httpx.Timeout:
        return httpx.Timeout(seconds, connect=min(self.settings.CONNECT_TIMEOUT_S, seconds))

    async def _request_json(
        self,
        method: str,
        *,
        timeout: float,
        params: Optional[Dict[str, str]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send one request and return the parsed JSON body.

        Raises httpx.HTTPStatusError on non-2xx, httpx.RequestError on
        transport failures and ValueError on a non-JSON body.
        """
        resp = await self._http().request(
            method,
            self.endpoint,
            params=params,
            json=payload,
            timeout=self._timeout(timeout),
        )
        resp.raise_for_status()
        return resp.json()

    def _body(self, user: EncodedImage, outfit: EncodedImage, *, async_mode: bool) -> Dict[str, Any]:
        return ProcessRequest.from_images(
            user, outfit, async_mode=async_mode, save_to_s3=self.settings.SAVE_TO_S3
        ).to_json()

    async def submit(self, user: EncodedImage, outfit: EncodedImage) -> JobSubmission:
        """Submit both images in async mode and return the server-assigned job."""
        try:
            data = await self._request_json(
                "POST",
                timeout=self.settings.SUBMIT_TIMEOUT_S,
                payload=self._body(user, outfit, async_mode=True),
            )
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.info("Submission rejected with HTTP %s", status)
            raise SubmissionError(extract_error_message(exc), status_code=status) from exc
        except httpx.RequestError as exc:
            logger.error("Submission transport error: %s", exc)
            raise SubmissionError(extract_error_message(exc)) from exc
        except ValueError as exc:
            raise SubmissionError("Invalid response from server") from exc

        try:
            submission = JobSubmission.model_validate(data)
        except ValidationError as exc:
            logger.error("Unexpected submission response: %s", data)
            raise SubmissionError("Server did not return a job id") from exc
        logger.info("[%s] job submitted", submission.jobId)
        return submission

    async def check_status(self, job_id: str) -> JobStatus:
        """Fetch the current status of a job."""
        try:
            data = await self._request_json(
                "GET",
                timeout=self.settings.STATUS_TIMEOUT_S,
                params={"jobId": job_id},
            )
        except httpx.HTTPStatusError as exc:
            raise StatusCheckError(
                extract_error_message(exc),
                status_code=exc.response.status_code,
                transient=_is_retryable(exc),
            ) from exc
        except httpx.RequestError as exc:
            raise StatusCheckError(extract_error_message(exc), transient=True) from exc
        except ValueError as exc:
            raise StatusCheckError("Invalid status response from server") from exc

        if isinstance(data, dict) and not data.get("jobId"):
            data = {**data, "jobId": job_id}
        try:
            return JobStatus.model_validate(data)
        except ValidationError as exc:
            logger.error("[%s] unexpected status response: %s", job_id, data)
            raise StatusCheckError("Invalid status response from server") from exc

    async def process_sync(self, user: EncodedImage, outfit: EncodedImage) -> ProcessResult:
        """Run the transformation as one blocking request (async flag off)."""
        try:
            data = await self._request_json(
                "POST",
                timeout=self.settings.SYNC_TIMEOUT_S,
                payload=self._body(user, outfit, async_mode=False),
            )
        except _NETWORK_ABORT_ERRORS as exc:
            logger.error("Sync request aborted: %s", exc)
            raise NetworkTimeoutError(TIMEOUT_MESSAGE) from exc
        except httpx.HTTPError as exc:
            raise ProcessingError(extract_error_message(exc)) from exc
        except ValueError as exc:
            raise ProcessingError("Invalid response from server") from exc

        image_url = data.get("imageUrl") if isinstance(data, dict) else None
        if not isinstance(image_url, str) or not image_url.strip():
            logger.error("Sync response without imageUrl: %s", data)
            raise ProcessingError("Malformed completion: server returned no image URL")
        message = data.get("message")
        if not isinstance(message, str) or not message.strip():
            message = SUCCESS_MESSAGE
        try:
            return ProcessResult(message=message, imageUrl=image_url)
        except ValidationError as exc:
            logger.error("Unexpected sync response: %s", data)
            raise ProcessingError("Invalid response from server") from exc
