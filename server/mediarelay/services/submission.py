"""Provider job submission, one strategy per job kind."""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import httpx

from ..config import Settings
from ..errors import JobSubmissionError, KindNotImplementedError
from ..models.jobs import Credential, GenerationRequest, JobKind, SubmittedJob
from .credentials import auth_headers

logger = logging.getLogger(__name__)

PayloadBuilder = Callable[[GenerationRequest, random.Random], dict[str, Any]]

_MAX_SEED = 100_000


def _size(request: GenerationRequest, default: tuple[int, int]) -> dict[str, int]:
    width, height = default
    return {"width": request.width or width, "height": request.height or height}


def build_video_payload(request: GenerationRequest, rng: random.Random) -> dict[str, Any]:
    return {
        "prompt": request.prompt,
        "bulkCount": 1,
        "seeds": [rng.randint(1, _MAX_SEED)],
        "sizes": [_size(request, (1920, 1080))],
        "videoSettings": {
            "cameraMotion": "camera pan left",
            "promptStyle": "cinematic",
            "shotAngle": "eye_level shot",
            "shotSize": "medium shot",
        },
    }


def build_image_payload(request: GenerationRequest, rng: random.Random) -> dict[str, Any]:
    return {
        "prompt": request.prompt,
        "numVariations": 1,
        "size": _size(request, (1024, 1024)),
        "contentClass": "photo",
        "visualIntensity": 6,
    }


def build_avatar_payload(request: GenerationRequest, rng: random.Random) -> dict[str, Any]:
    return {
        "script": {"text": request.prompt, "mediaType": "text/plain"},
        "voiceId": request.voice_id,
        "avatarId": request.avatar_id,
        "output": {"mediaType": "video/mp4"},
    }


@dataclass(frozen=True)
class JobKindSpec:
    """Submission strategy for one job kind.

    ``status_template`` is ``None`` when the provider answers with a ready-made
    status URL; otherwise the returned job id is interpolated into it.
    """

    kind: JobKind
    endpoint: str
    build_payload: PayloadBuilder
    status_template: Optional[str] = None
    model_version: Optional[str] = None

    def derive_status_url(self, data: Mapping[str, Any]) -> tuple[str, Optional[str]]:
        job_id = data.get("jobId")
        job_id = str(job_id) if job_id else None

        if self.status_template is None:
            status_url = data.get("statusUrl")
            if not isinstance(status_url, str) or not status_url:
                raise JobSubmissionError(
                    f"Missing statusUrl in {self.kind.value} submission response", details=dict(data)
                )
            return self._resolvable(status_url, data), job_id

        if not job_id:
            raise JobSubmissionError(
                f"Missing jobId in {self.kind.value} submission response", details=dict(data)
            )
        return self._resolvable(self.status_template.format(job_id=job_id), data), job_id

    def _resolvable(self, status_url: str, data: Mapping[str, Any]) -> str:
        """Only absolute http(s) URLs can be polled."""
        try:
            url = httpx.URL(status_url)
        except httpx.InvalidURL:
            url = None
        if url is None or url.scheme not in {"http", "https"} or not url.host:
            raise JobSubmissionError(
                f"Unresolvable {self.kind.value} status URL: {status_url!r}", details=dict(data)
            )
        return status_url


def build_kind_specs(settings: Settings) -> dict[JobKind, JobKindSpec]:
    """Submission strategies for every implemented kind; audio has none."""

    return {
        JobKind.VIDEO: JobKindSpec(
            kind=JobKind.VIDEO,
            endpoint=settings.video_endpoint,
            build_payload=build_video_payload,
            model_version=settings.video_model,
        ),
        JobKind.IMAGE: JobKindSpec(
            kind=JobKind.IMAGE,
            endpoint=settings.image_endpoint,
            build_payload=build_image_payload,
            status_template=settings.image_status_template,
            model_version=settings.image_model,
        ),
        JobKind.AVATAR: JobKindSpec(
            kind=JobKind.AVATAR,
            endpoint=settings.avatar_endpoint,
            build_payload=build_avatar_payload,
            status_template=settings.avatar_status_template,
            model_version=settings.avatar_model,
        ),
    }


class JobSubmitter:
    """Sends a kind-specific payload to that kind's endpoint and resolves its status URL."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        specs: Mapping[JobKind, JobKindSpec],
        api_key: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._client = client
        self._specs = dict(specs)
        self._api_key = api_key
        self._rng = rng or random.Random()

    def spec_for(self, kind: JobKind) -> JobKindSpec:
        kind = JobKind.parse(kind)
        spec = self._specs.get(kind)
        if spec is None:
            raise KindNotImplementedError(f"{kind.value} generation is not implemented")
        return spec

    async def submit_job(
        self, kind: JobKind, request: GenerationRequest, credential: Credential
    ) -> SubmittedJob:
        spec = self.spec_for(kind)
        payload = spec.build_payload(request, self._rng)
        headers = auth_headers(credential, self._api_key)
        if spec.model_version:
            headers["x-model-version"] = spec.model_version

        logger.info("Submitting %s job to %s", spec.kind.value, spec.endpoint)
        try:
            resp = await self._client.post(spec.endpoint, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise JobSubmissionError(f"{spec.kind.value} submission request failed: {exc}") from exc

        try:
            data: Any = resp.json()
        except ValueError:
            raise JobSubmissionError(
                f"Unparseable {spec.kind.value} submission response",
                details={"status": resp.status_code, "body": resp.text[:500]},
            ) from None

        if resp.is_error:
            raise JobSubmissionError(
                f"{spec.kind.value} submission rejected with HTTP {resp.status_code}", details=data
            )
        if not isinstance(data, dict):
            raise JobSubmissionError(f"Unexpected {spec.kind.value} submission response", details=data)

        status_url, job_id = spec.derive_status_url(data)
        logger.info("Submitted %s job %s; status at %s", spec.kind.value, job_id, status_url)
        return SubmittedJob(kind=spec.kind, status_url=status_url, job_id=job_id)
