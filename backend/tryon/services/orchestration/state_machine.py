"""Explicit job states and the pure transitions between them.

    SUBMITTING -> POLLING -> COMPLETED | FAILED | TIMED_OUT
    SUBMITTING -> SYNC_FALLBACK -> COMPLETED | FAILED   (HTTP 400 on submit only)

The functions here take an observation (a submission error, a status snapshot,
an exhausted budget) and return the next Transition. They do no I/O, so each
branch can be tested without HTTP or timers.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ...exceptions import InvalidTransitionError, SubmissionError
from ...models import JobStatus, ProcessResult

# Remote signals "async mode not recognised" with a plain Bad Request
ASYNC_UNSUPPORTED_STATUS = 400

GENERIC_FAILURE_MESSAGE = "Image processing failed"


class JobState(str, Enum):
    SUBMITTING = "submitting"
    POLLING = "polling"
    SYNC_FALLBACK = "sync_fallback"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED, JobState.TIMED_OUT)


@dataclass(frozen=True)
class Transition:
    state: JobState
    result: Optional[ProcessResult] = None
    error: Optional[str] = None
    progress: Optional[float] = None


_ALLOWED = {
    JobState.SUBMITTING: {JobState.POLLING, JobState.SYNC_FALLBACK, JobState.FAILED},
    JobState.POLLING: {JobState.POLLING, JobState.COMPLETED, JobState.FAILED, JobState.TIMED_OUT},
    JobState.SYNC_FALLBACK: {JobState.COMPLETED, JobState.FAILED},
}


def advance(current: JobState, transition: Transition) -> JobState:
    """Validate and apply a transition; terminal states never move again."""
    if current.is_terminal:
        raise InvalidTransitionError(f"Job already {current.value}; cannot move to {transition.state.value}")
    if transition.state not in _ALLOWED[current]:
        raise InvalidTransitionError(f"Invalid transition {current.value} -> {transition.state.value}")
    return transition.state


def is_async_unsupported(exc: SubmissionError) -> bool:
    return exc.status_code == ASYNC_UNSUPPORTED_STATUS


def on_submission_error(exc: SubmissionError) -> Transition:
    if is_async_unsupported(exc):
        return Transition(JobState.SYNC_FALLBACK)
    return Transition(JobState.FAILED, error=str(exc) or GENERIC_FAILURE_MESSAGE)


def on_submitted() -> Transition:
    return Transition(JobState.POLLING)


def on_status(status: JobStatus, success_message: str) -> Transition:
    if not status.is_terminal:
        return Transition(JobState.POLLING, progress=status.progress)
    if status.status == "completed":
        if status.imageUrl and status.imageUrl.strip():
            return Transition(
                JobState.COMPLETED,
                result=ProcessResult(message=success_message, imageUrl=status.imageUrl),
            )
        return Transition(
            JobState.FAILED,
            error="Malformed completion: job completed without an image URL",
        )
    return Transition(JobState.FAILED, error=status.error or GENERIC_FAILURE_MESSAGE)


def on_sync_completed(result: ProcessResult) -> Transition:
    return Transition(JobState.COMPLETED, result=result)


def on_sync_failed(message: str) -> Transition:
    return Transition(JobState.FAILED, error=message or GENERIC_FAILURE_MESSAGE)


def on_budget_exhausted(attempts: int, interval_s: float) -> Transition:
    minutes = attempts * interval_s / 60.0
    return Transition(
        JobState.TIMED_OUT,
        error=f"Processing timeout: job did not finish after {attempts} checks (~{minutes:g} min)",
    )
