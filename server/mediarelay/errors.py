"""Error taxonomy shared by the orchestration pipeline.

Every failure an orchestration can end in is one of these types. Each carries the
HTTP status it maps to and an optional ``details`` payload (usually the raw
provider response) that is safe to hand back to the caller for diagnostics.
"""
from __future__ import annotations

from typing import Any, Optional


class GenerationError(Exception):
    """Base class for failures surfaced to the caller as a JSON error body."""

    status_code: int = 500

    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidRequest(GenerationError):
    status_code = 400


class UnsupportedKind(GenerationError):
    status_code = 400


class KindNotImplementedError(GenerationError):
    """The job kind is known but the relay has no submission strategy for it."""

    status_code = 501


class CredentialError(GenerationError):
    status_code = 500


class JobSubmissionError(GenerationError):
    status_code = 500


class PollTransientParseError(GenerationError):
    """A single status response could not be parsed; the poll loop retries."""


class GenerationTimeout(GenerationError):
    """The poll budget ran out before the job reached a terminal status."""

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        status_url: str,
        attempts: int,
        last_status: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            details={"statusUrl": status_url, "attempts": attempts, "lastStatus": last_status},
        )
        self.status_url = status_url
        self.attempts = attempts
        self.last_status = last_status


class GenerationFailed(GenerationError):
    status_code = 500


class ExtractionError(GenerationError):
    status_code = 500


class PollCancelled(GenerationError):
    # nginx-style "client closed request"
    status_code = 499


class UnexpectedError(GenerationError):
    status_code = 500
