from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol, Union, runtime_checkable

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_random_exponential,
)

from ...config import Settings
from ...exceptions import (
    PollingTimeoutError,
    ProcessingError,
    StatusCheckError,
    SubmissionError,
)
from ...models import EncodedImage, JobStatus, ProcessResult
from ...utils.clock import AsyncioClock, Clock
from ..encoder import ImageSource, encode_pair
from ..job_client import SUCCESS_MESSAGE, JobClient
from .state_machine import (
    JobState,
    advance,
    on_budget_exhausted,
    on_status,
    on_submission_error,
    on_submitted,
    on_sync_completed,
    on_sync_failed,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class ProgressSink(Protocol):
    def observe_progress(self, progress: float) -> None: ...


ProgressCallback = Union[Callable[[float], None], ProgressSink]


def _as_callback(on_progress: Optional[ProgressCallback]) -> Optional[Callable[[float], None]]:
    if on_progress is None:
        return None
    if isinstance(on_progress, ProgressSink):
        return on_progress.observe_progress
    if callable(on_progress):
        return on_progress
    raise TypeError("on_progress must be callable or implement observe_progress()")


def _is_transient_status_error(exc: BaseException) -> bool:
    return isinstance(exc, StatusCheckError) and exc.transient


class JobOrchestrator:
    """Drives one try-on job from submission to a single outcome.

    Submits in async mode and polls until the job reaches a terminal state or
    the attempt budget runs out. When the remote rejects async mode with a
    Bad Request, the same images are re-sent through the blocking sync path;
    callers get the same ProcessResult either way.
    """

    def __init__(
        self,
        client: JobClient,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.client = client
        self.settings = settings or client.settings
        self.clock = clock or AsyncioClock()

    async def process_images(
        self,
        user_image: ImageSource,
        outfit_image: ImageSource,
        on_progress: Optional[ProgressCallback] = None,
        *,
        user_mime: Optional[str] = None,
        outfit_mime: Optional[str] = None,
    ) -> ProcessResult:
        """Process a user photo and an outfit photo into a try-on image URL.

        Succeeds with a ProcessResult holding a non-empty imageUrl, or raises
        exactly one TryOnError whose message is safe to show to users.
        """
        notify = _as_callback(on_progress)
        state = JobState.SUBMITTING

        user, outfit = await encode_pair(
            user_image, outfit_image, user_mime=user_mime, outfit_mime=outfit_mime
        )

        try:
            submission = await self.client.submit(user, outfit)
        except SubmissionError as exc:
            transition = on_submission_error(exc)
            state = advance(state, transition)
            if state is JobState.SYNC_FALLBACK:
                logger.info("Remote rejected async mode (HTTP %s); using sync request", exc.status_code)
                return await self._run_sync(state, user, outfit)
            logger.error("Submission failed: %s", transition.error)
            raise ProcessingError(transition.error) from exc

        state = advance(state, on_submitted())
        return await self._poll(submission.jobId, state, notify)

    async def _run_sync(self, state: JobState, user: EncodedImage, outfit: EncodedImage) -> ProcessResult:
        started = self.clock.monotonic()
        try:
            result = await self.client.process_sync(user, outfit)
        except ProcessingError as exc:
            advance(state, on_sync_failed(str(exc)))
            logger.error("Sync request failed: %s", exc)
            raise
        advance(state, on_sync_completed(result))
        logger.info("Sync request completed in %.1fs", self.clock.monotonic() - started)
        return result

    async def _check_status(self, job_id: str) -> JobStatus:
        # One attempt unless STATUS_CHECK_RETRIES opts into retrying transient errors
        retrying = AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self.settings.STATUS_CHECK_RETRIES + 1),
            wait=wait_random_exponential(multiplier=0.5, max=self.settings.POLL_INTERVAL_S),
            retry=retry_if_exception(_is_transient_status_error),
            sleep=self.clock.sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        async for attempt in retrying:
            with attempt:
                status = await self.client.check_status(job_id)
        return status

    def _notify(self, notify: Callable[[float], None], job_id: str, progress: float) -> None:
        try:
            notify(progress)
        except Exception as exc:  # noqa: BLE001 progress is best-effort
            logger.warning("[%s] progress callback failed: %s", job_id, exc)

    async def _poll(
        self, job_id: str, state: JobState, notify: Optional[Callable[[float], None]]
    ) -> ProcessResult:
        max_attempts = self.settings.POLL_MAX_ATTEMPTS
        interval = self.settings.POLL_INTERVAL_S
        started = self.clock.monotonic()

        for attempt in range(1, max_attempts + 1):
            try:
                status = await self._check_status(job_id)
            except StatusCheckError as exc:
                logger.error("[%s] status check failed on attempt %d: %s", job_id, attempt, exc)
                raise ProcessingError(str(exc)) from exc

            transition = on_status(status, SUCCESS_MESSAGE)
            state = advance(state, transition)

            if state is JobState.COMPLETED:
                logger.info(
                    "[%s] completed after %d checks (%.1fs)",
                    job_id, attempt, self.clock.monotonic() - started,
                )
                return transition.result
            if state is JobState.FAILED:
                logger.error("[%s] job failed: %s", job_id, transition.error)
                raise ProcessingError(transition.error)

            logger.debug("[%s] attempt %d/%d: processing (progress=%s)", job_id, attempt, max_attempts, transition.progress)
            if notify is not None and transition.progress is not None:
                self._notify(notify, job_id, transition.progress)
            if attempt < max_attempts:
                await self.clock.sleep(interval)

        transition = on_budget_exhausted(max_attempts, interval)
        advance(state, transition)
        logger.error("[%s] %s", job_id, transition.error)
        raise PollingTimeoutError(transition.error)


async def process_images(
    user_image: ImageSource,
    outfit_image: ImageSource,
    on_progress: Optional[ProgressCallback] = None,
    *,
    settings: Optional[Settings] = None,
    user_mime: Optional[str] = None,
    outfit_mime: Optional[str] = None,
) -> ProcessResult:
    """One-shot helper: build a client and orchestrator for a single call."""
    async with JobClient(settings) as client:
        orchestrator = JobOrchestrator(client, settings=client.settings)
        return await orchestrator.process_images(
            user_image, outfit_image, on_progress, user_mime=user_mime, outfit_mime=outfit_mime
        )
