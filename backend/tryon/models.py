"""Pydantic models for the try-on API requests and responses."""
from __future__ import annotations

from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class EncodedImage(BaseModel):
    """A base64 image payload ready to travel in a JSON body."""

    model_config = ConfigDict(frozen=True)

    base64Payload: str = Field(..., min_length=1, description="Raw base64 payload, no data-URI prefix")
    mimeType: str = Field(..., description="Declared media type, e.g. image/jpeg")


class ProcessRequest(BaseModel):
    """Body of the POST sent to the try-on endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    userImageBase64: str
    outfitImageBase64: str
    userImageMimeType: str
    outfitImageMimeType: str
    async_: bool = Field(alias="async")
    saveToS3: bool = True

    @classmethod
    def from_images(
        cls, user: EncodedImage, outfit: EncodedImage, *, async_mode: bool, save_to_s3: bool = True
    ) -> "ProcessRequest":
        return cls(
            userImageBase64=user.base64Payload,
            outfitImageBase64=outfit.base64Payload,
            userImageMimeType=user.mimeType,
            outfitImageMimeType=outfit.mimeType,
            async_=async_mode,
            saveToS3=save_to_s3,
        )

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)


class JobSubmission(BaseModel):
    """Response to an async submission."""

    model_config = ConfigDict(frozen=True)

    jobId: str = Field(..., min_length=1)
    status: Literal["processing"] = "processing"
    message: str = ""


class JobStatus(BaseModel):
    """Snapshot of a job's state as reported by the remote.

    A completed status without imageUrl is accepted here on purpose; the
    orchestrator reports it as a malformed completion.
    """

    jobId: str
    status: Literal["processing", "completed", "failed"]
    imageUrl: Optional[str] = None
    error: Optional[str] = None
    progress: Optional[float] = None

    @field_validator("progress")
    @classmethod
    def _clamp_progress(cls, value: Optional[float]) -> Optional[float]:
        if value is None:
            return None
        return max(0.0, min(100.0, float(value)))

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "failed")


class ProcessResult(BaseModel):
    """Successful outcome of a try-on call, whichever path produced it."""

    model_config = ConfigDict(frozen=True)

    message: str = ""
    imageUrl: str = Field(..., min_length=1)
