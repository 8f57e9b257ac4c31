"""Bounded status polling for submitted provider jobs."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import httpx

from ..errors import GenerationTimeout, PollCancelled, PollTransientParseError
from ..models.jobs import Credential, JobKind, PollAttempt, PollStatus
from .credentials import auth_headers

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]
AttemptCallback = Callable[[PollAttempt], None]


@dataclass(frozen=True)
class PollPolicy:
    """Attempt budget and fixed inter-poll delay."""

    max_attempts: int = 50
    delay_seconds: float = 5.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")


class StatusPoller:
    """Queries a status URL until the job succeeds, fails, or the budget runs out."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        policy: PollPolicy,
        api_key: Optional[str] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._policy = policy
        self._api_key = api_key
        self._sleep = sleep

    @property
    def policy(self) -> PollPolicy:
        return self._policy

    async def query(self, status_url: str, credential: Credential, attempt_index: int = 1) -> PollAttempt:
        """Issue a single status query.

        Transport and decoding failures and unparseable bodies come back as an ``UNKNOWN``
        attempt instead of raising, so one bad poll never ends the loop.
        """
        try:
            resp = await self._client.get(status_url, headers=auth_headers(credential, self._api_key))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Status query %d to %s failed: %s", attempt_index, status_url, exc)
            return PollAttempt(attempt_index=attempt_index, status=PollStatus.UNKNOWN)

        try:
            payload = self._parse(resp)
        except PollTransientParseError as exc:
            logger.warning("Status query %d: %s", attempt_index, exc.message)
            return PollAttempt(attempt_index=attempt_index, status=PollStatus.UNKNOWN)

        raw_status = payload.get("status")
        raw_status = raw_status if isinstance(raw_status, str) else None
        return PollAttempt(
            attempt_index=attempt_index,
            status=PollStatus.from_provider(raw_status),
            raw_status=raw_status,
            payload=payload,
        )

    @staticmethod
    def _parse(resp: httpx.Response) -> dict[str, Any]:
        try:
            payload = resp.json()
        except httpx.HTTPError as exc:
            raise PollTransientParseError(f"unreadable status response body: {exc}") from None
        except ValueError:
            raise PollTransientParseError(
                f"non-JSON status response (HTTP {resp.status_code})",
                details=resp.text[:200],
            ) from None
        if not isinstance(payload, dict):
            raise PollTransientParseError(f"unexpected status payload type {type(payload).__name__}")
        return payload

    async def poll_until_terminal(
        self,
        status_url: str,
        credential: Credential,
        kind: JobKind,
        *,
        cancel_event: Optional[asyncio.Event] = None,
        on_attempt: Optional[AttemptCallback] = None,
    ) -> PollAttempt:
        max_attempts = self._policy.max_attempts
        last: Optional[PollAttempt] = None

        for attempt_index in range(1, max_attempts + 1):
            if cancel_event is not None and cancel_event.is_set():
                raise PollCancelled(f"Polling of {kind.value} job cancelled after {attempt_index - 1} attempts")

            last = await self.query(status_url, credential, attempt_index)
            logger.info(
                "%s job status (attempt %d/%d): %s",
                kind.value,
                attempt_index,
                max_attempts,
                last.raw_status or last.status.value,
            )
            if on_attempt is not None:
                on_attempt(last)
            if last.status.is_terminal:
                return last
            if attempt_index < max_attempts:
                await self._wait(cancel_event)

        raise GenerationTimeout(
            f"Timed out waiting for {kind.value} job after {max_attempts} attempts",
            status_url=status_url,
            attempts=max_attempts,
            last_status=last.raw_status if last else None,
        )

    async def _wait(self, cancel_event: Optional[asyncio.Event]) -> None:
        delay = self._policy.delay_seconds
        if cancel_event is None:
            await self._sleep(delay)
            return

        sleeper = asyncio.ensure_future(self._sleep(delay))
        watcher = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({sleeper, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, watcher):
                if not task.done():
                    task.cancel()
