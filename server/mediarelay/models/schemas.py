"""Pydantic models describing request and response payloads."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class GenerateRequest(_CamelModel):
    """Incoming payload for ``POST /api/generate``.

    Every field is optional at the schema level so that missing values surface as
    a 400 from request validation rather than FastAPI's default 422.
    """

    api_type: Optional[str] = Field(default=None, alias="apiType", description="video | image | avatar | audio")
    prompt: Optional[str] = Field(default=None, description="Text prompt (or avatar script)")
    height: Optional[PositiveInt] = Field(default=None, description="Output height in pixels")
    width: Optional[PositiveInt] = Field(default=None, description="Output width in pixels")
    voice_id: Optional[str] = Field(default=None, alias="voiceId", description="Avatar voice identifier")
    avatar_id: Optional[str] = Field(default=None, alias="avatarId", description="Avatar identifier")


class StatusCheckRequest(_CamelModel):
    """Incoming payload for ``POST /api/status``."""

    status_url: Optional[str] = Field(default=None, alias="statusUrl")
    api_type: Optional[str] = Field(default=None, alias="apiType")


class GenerationResponse(_CamelModel):
    """Successful generation; exactly one of the URL fields is set unless ``warning`` is."""

    message: str
    job_id: Optional[str] = Field(default=None, alias="jobId")
    video_url: Optional[str] = Field(default=None, alias="videoUrl")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    output_url: Optional[str] = Field(default=None, alias="outputUrl")
    warning: Optional[str] = None


class PendingResponse(_CamelModel):
    message: str
    status_url: str = Field(..., alias="statusUrl")
    job_id: Optional[str] = Field(default=None, alias="jobId")


class StatusCheckResponse(_CamelModel):
    status: Optional[str] = None
    output_url: Optional[str] = Field(default=None, alias="outputUrl")


class ProgressResponse(BaseModel):
    status: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None
