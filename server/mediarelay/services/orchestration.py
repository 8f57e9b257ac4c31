"""Request-scoped orchestration: credential -> submit -> poll -> extract."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import (
    GenerationError,
    GenerationFailed,
    GenerationTimeout,
    InvalidRequest,
    PollCancelled,
    UnexpectedError,
)
from ..models import schemas
from ..models.jobs import (
    GenerationRequest,
    GenerationResult,
    JobKind,
    PollAttempt,
    PollStatus,
    SubmittedJob,
)
from .credentials import CredentialProvider
from .extraction import extract_output_url
from .polling import PollPolicy, Sleep, StatusPoller
from .progress import ProgressSink, report
from .submission import JobSubmitter, build_kind_specs

logger = logging.getLogger(__name__)

OUTPUT_MISSING_WARNING = "Job succeeded but the provider response did not include an output URL"

_URL_FIELDS = {
    JobKind.VIDEO: "video_url",
    JobKind.IMAGE: "image_url",
}


class OrchestrationState(Enum):
    """States of a single generation request."""

    IDLE = "idle"
    AWAITING_CREDENTIAL = "awaiting_credential"
    SUBMITTING_JOB = "submitting_job"
    POLLING = "polling"
    EXTRACTING = "extracting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass
class OrchestrationOutcome:
    """Terminal state plus the HTTP response it maps to."""

    state: OrchestrationState
    status_code: int
    body: dict[str, Any]
    result: Optional[GenerationResult] = None
    error: Optional[GenerationError] = None


def parse_generation_request(raw: Any) -> GenerationRequest:
    """Validate an inbound body into a ``GenerationRequest``.

    Raises ``InvalidRequest`` for missing or malformed fields and
    ``UnsupportedKind`` for an ``apiType`` outside the known kinds.
    """
    if not isinstance(raw, Mapping):
        raise InvalidRequest("Request body must be a JSON object")
    try:
        body = schemas.GenerateRequest.model_validate(raw)
    except ValidationError as exc:
        raise InvalidRequest(
            "Invalid request", details=exc.errors(include_url=False, include_context=False)
        ) from None

    prompt = (body.prompt or "").strip()
    if not prompt:
        raise InvalidRequest("Missing prompt")
    if not (body.api_type or "").strip():
        raise InvalidRequest("Missing apiType")
    kind = JobKind.parse(body.api_type)

    if kind is JobKind.AVATAR and not (body.voice_id and body.avatar_id):
        raise InvalidRequest("Avatar generation requires both voiceId and avatarId")

    return GenerationRequest(
        kind=kind,
        prompt=prompt,
        height=body.height,
        width=body.width,
        voice_id=body.voice_id,
        avatar_id=body.avatar_id,
    )


class GenerationOrchestrator:
    """Turns one synchronous request into a provider job and waits for its output."""

    def __init__(
        self,
        *,
        credentials: CredentialProvider,
        submitter: JobSubmitter,
        poller: StatusPoller,
        progress: Optional[ProgressSink] = None,
        return_pending_on_timeout: bool = False,
    ) -> None:
        self._credentials = credentials
        self._submitter = submitter
        self._poller = poller
        self._progress = progress
        self._return_pending_on_timeout = return_pending_on_timeout
        self.state = OrchestrationState.IDLE

    def _transition(self, state: OrchestrationState, message: Optional[str] = None) -> None:
        old_state = self.state
        self.state = state
        logger.info("Orchestration state: %s -> %s", old_state.value, state.value)
        if message:
            report(self._progress, message)

    async def run(
        self, raw: Any, *, cancel_event: Optional[asyncio.Event] = None
    ) -> OrchestrationOutcome:
        """Drive one request to a terminal state; never raises ``Exception`` subclasses."""
        self.state = OrchestrationState.IDLE
        try:
            return await self._run(raw, cancel_event)
        except GenerationError as exc:
            return self._fail(exc)
        except Exception as exc:
            logger.exception("Unexpected orchestration failure")
            return self._fail(UnexpectedError("Unexpected error during generation", details=str(exc)))

    async def _run(self, raw: Any, cancel_event: Optional[asyncio.Event]) -> OrchestrationOutcome:
        request = parse_generation_request(raw)
        kind = request.kind
        # Reject kinds without a submission strategy before spending a token request.
        self._submitter.spec_for(kind)

        self._transition(OrchestrationState.AWAITING_CREDENTIAL, "Requesting access token...")
        credential = await self._credentials.obtain_credential()

        self._transition(OrchestrationState.SUBMITTING_JOB, f"Submitting {kind.value} job...")
        job = await self._submitter.submit_job(kind, request, credential)

        self._transition(OrchestrationState.POLLING, f"Waiting for {kind.value} job...")
        try:
            attempt = await self._poller.poll_until_terminal(
                job.status_url,
                credential,
                kind,
                cancel_event=cancel_event,
                on_attempt=lambda a: self._report_attempt(kind, a),
            )
        except GenerationTimeout as exc:
            return self._timed_out(job, exc)

        if attempt.status is PollStatus.FAILED:
            raise GenerationFailed(
                f"{kind.value.capitalize()} generation failed", details=attempt.payload
            )

        self._transition(OrchestrationState.EXTRACTING)
        return self._succeed(self._extract(job, attempt))

    def _report_attempt(self, kind: JobKind, attempt: PollAttempt) -> None:
        report(
            self._progress,
            f"{kind.value.capitalize()} job status (attempt {attempt.attempt_index}/"
            f"{self._poller.policy.max_attempts}): {attempt.raw_status or attempt.status.value}",
        )

    @staticmethod
    def _extract(job: SubmittedJob, attempt: PollAttempt) -> GenerationResult:
        output_url = extract_output_url(job.kind, attempt.payload)
        warning = None
        if output_url is None:
            logger.warning("%s job %s succeeded without an output URL", job.kind.value, job.job_id)
            warning = OUTPUT_MISSING_WARNING
        return GenerationResult(kind=job.kind, output_url=output_url, job_id=job.job_id, warning=warning)

    def _succeed(self, result: GenerationResult) -> OrchestrationOutcome:
        label = result.kind.value.capitalize()
        fields: dict[str, Any] = {"message": f"{label} generated successfully", "job_id": result.job_id}
        if result.output_url:
            fields[_URL_FIELDS.get(result.kind, "output_url")] = result.output_url
        else:
            fields["message"] = f"{label} job completed"
            fields["warning"] = result.warning

        self._transition(OrchestrationState.SUCCEEDED, f"{label} ready")
        return OrchestrationOutcome(
            state=OrchestrationState.SUCCEEDED,
            status_code=200,
            body=schemas.GenerationResponse(**fields).to_body(),
            result=result,
        )

    def _timed_out(self, job: SubmittedJob, exc: GenerationTimeout) -> OrchestrationOutcome:
        logger.error("%s (%s)", exc.message, job.status_url)
        if self._return_pending_on_timeout:
            self._transition(OrchestrationState.TIMED_OUT, f"{job.kind.value.capitalize()} job still processing")
            body = schemas.PendingResponse(
                message=f"{job.kind.value.capitalize()} job is still processing",
                status_url=job.status_url,
                job_id=job.job_id,
            ).to_body()
            return OrchestrationOutcome(
                state=OrchestrationState.TIMED_OUT, status_code=202, body=body, error=exc
            )

        self._transition(OrchestrationState.TIMED_OUT, exc.message)
        return OrchestrationOutcome(
            state=OrchestrationState.TIMED_OUT, status_code=exc.status_code, body=exc.to_body(), error=exc
        )

    def _fail(self, exc: GenerationError) -> OrchestrationOutcome:
        state = OrchestrationState.CANCELLED if isinstance(exc, PollCancelled) else OrchestrationState.FAILED
        logger.error("Generation failed in state %s: %s", self.state.value, exc.message)
        self._transition(state, f"Failed: {exc.message}")
        return OrchestrationOutcome(state=state, status_code=exc.status_code, body=exc.to_body(), error=exc)

    async def check_status(self, raw: Any) -> OrchestrationOutcome:
        """Single status lookup for a job started earlier (pairs with the 202 mode)."""
        try:
            if not isinstance(raw, Mapping):
                raise InvalidRequest("Request body must be a JSON object")
            try:
                body = schemas.StatusCheckRequest.model_validate(raw)
            except ValidationError:
                raise InvalidRequest("Missing statusUrl or apiType.") from None
            if not body.status_url or not body.api_type:
                raise InvalidRequest("Missing statusUrl or apiType.")
            kind = JobKind.parse(body.api_type)

            credential = await self._credentials.obtain_credential()
            attempt = await self._poller.query(body.status_url, credential)
            output_url = None
            if attempt.payload is not None:
                output_url = extract_output_url(kind, attempt.payload)
        except GenerationError as exc:
            logger.error("Status check failed: %s", exc.message)
            return OrchestrationOutcome(
                state=OrchestrationState.FAILED, status_code=exc.status_code, body=exc.to_body(), error=exc
            )
        except Exception as exc:
            logger.exception("Unexpected status check failure")
            err = UnexpectedError("Unexpected error during status check", details=str(exc))
            return OrchestrationOutcome(
                state=OrchestrationState.FAILED, status_code=err.status_code, body=err.to_body(), error=err
            )

        response = schemas.StatusCheckResponse(status=attempt.raw_status, output_url=output_url)
        return OrchestrationOutcome(state=OrchestrationState.POLLING, status_code=200, body=response.to_body())


def build_orchestrator(
    client: httpx.AsyncClient,
    settings: Settings,
    *,
    progress: Optional[ProgressSink] = None,
    sleep: Sleep = asyncio.sleep,
) -> GenerationOrchestrator:
    """Wire the pipeline components for one request from ``settings``."""

    api_key = settings.firefly_client_id
    return GenerationOrchestrator(
        credentials=CredentialProvider(
            client,
            token_url=settings.token_url,
            client_id=settings.firefly_client_id,
            client_secret=settings.firefly_client_secret,
            scope=settings.token_scope,
        ),
        submitter=JobSubmitter(client, specs=build_kind_specs(settings), api_key=api_key),
        poller=StatusPoller(
            client,
            policy=PollPolicy(
                max_attempts=settings.poll_max_attempts,
                delay_seconds=settings.poll_delay_seconds,
            ),
            api_key=api_key,
            sleep=sleep,
        ),
        progress=progress,
        return_pending_on_timeout=settings.return_pending_on_timeout,
    )
