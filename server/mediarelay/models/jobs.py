"""Domain objects owned by a single orchestration call."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from ..errors import UnsupportedKind


class JobKind(str, Enum):
    """Generation job kinds accepted by the relay."""

    VIDEO = "video"
    IMAGE = "image"
    AVATAR = "avatar"
    AUDIO = "audio"

    @classmethod
    def parse(cls, value: Any) -> "JobKind":
        """Normalize a raw ``apiType`` value, case-insensitively."""
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        try:
            return cls(key)
        except ValueError:
            raise UnsupportedKind(f"Unsupported apiType: {value!r}") from None


class PollStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def from_provider(cls, raw: Any) -> "PollStatus":
        if not isinstance(raw, str):
            return cls.UNKNOWN
        value = raw.strip().lower()
        if value in {"succeeded", "success", "completed", "done"}:
            return cls.SUCCEEDED
        if value in {"failed", "error", "canceled", "cancelled"}:
            return cls.FAILED
        if value in {"pending", "running", "queued", "in_progress", "processing"}:
            return cls.PENDING
        return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self in (PollStatus.SUCCEEDED, PollStatus.FAILED)


@dataclass(slots=True)
class GenerationRequest:
    """Validated generation request."""

    kind: JobKind
    prompt: str
    height: Optional[int] = None
    width: Optional[int] = None
    voice_id: Optional[str] = None
    avatar_id: Optional[str] = None


@dataclass(slots=True)
class Credential:
    bearer_token: str = field(repr=False)
    obtained_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(slots=True)
class SubmittedJob:
    kind: JobKind
    status_url: str
    job_id: Optional[str] = None


@dataclass(slots=True)
class PollAttempt:
    attempt_index: int
    status: PollStatus
    raw_status: Optional[str] = None
    payload: Optional[dict[str, Any]] = None


@dataclass(slots=True)
class GenerationResult:
    kind: JobKind
    output_url: Optional[str]
    job_id: Optional[str] = None
    warning: Optional[str] = None
