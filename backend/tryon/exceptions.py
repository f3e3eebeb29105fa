from __future__ import annotations

"""Domain-specific exceptions for the encoder, job client and orchestrator.

Every exception derives from TryOnError and its str() is a user-facing message,
so callers can catch a single type and display it as-is.
"""

from typing import Optional


class TryOnError(Exception):
    """Base class for all failures surfaced to callers."""


class ConfigurationError(TryOnError):
    """Missing or invalid client configuration (e.g., no endpoint)."""


class EncodingError(TryOnError):
    """Image input could not be read or encoded (I/O failure, empty, bad type)."""


class SubmissionError(TryOnError):
    """Remote rejected the job or was unreachable at submit time."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StatusCheckError(TryOnError):
    """Remote was unreachable or answered badly during a status poll."""

    def __init__(self, message: str, status_code: Optional[int] = None, transient: bool = False) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.transient = transient


class ProcessingError(TryOnError):
    """Job failed remotely, completed without a result, or could not be processed."""


class PollingTimeoutError(ProcessingError):
    """Attempt budget exhausted while the job was still processing."""


class NetworkTimeoutError(ProcessingError):
    """Network-level deadline exceeded or connection aborted (suggest smaller images)."""


class InvalidTransitionError(TryOnError):
    """A terminal job state was asked to transition again."""
