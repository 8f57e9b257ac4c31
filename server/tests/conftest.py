"""Shared fixtures: an in-process fake of the provider's HTTP API.

Also ensures the server directory is on ``sys.path`` so tests can import the
``mediarelay`` package however pytest is invoked.
"""
from __future__ import annotations

import os
import sys
from typing import Any, Optional

import httpx
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from mediarelay.config import Settings  # noqa: E402

VIDEO_STATUS_URL = "https://firefly-api.adobe.io/v3/status/video-job-1"


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "firefly_client_id": "client-id",
        "firefly_client_secret": "client-secret",
        "poll_max_attempts": 5,
        "poll_delay_seconds": 2.0,
        "return_pending_on_timeout": False,
    }
    values.update(overrides)
    return Settings(**values)


def succeeded(kind: str, url: Optional[str]) -> dict[str, Any]:
    output: dict[str, Any] = {"seed": 42}
    if url is not None:
        output[kind] = {"url": url}
    return {"status": "succeeded", "jobId": "job-1", "result": {"outputs": [output]}}


class FakeProvider:
    """Routes token, submission and status calls; records every request."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.requests: list[httpx.Request] = []
        self.token_reply: tuple[int, dict[str, Any]] = (
            200,
            {"access_token": "token-abc", "token_type": "bearer", "expires_in": 86399},
        )
        self.submit_replies: dict[str, tuple[int, dict[str, Any]]] = {
            settings.video_endpoint: (202, {"jobId": "video-job-1", "statusUrl": VIDEO_STATUS_URL}),
            settings.image_endpoint: (202, {"jobId": "image-job-1"}),
            settings.avatar_endpoint: (202, {"jobId": "avatar-job-1"}),
        }
        # Served in order; the last entry repeats once the list runs out.
        # Callables are invoked to build a fresh response per query.
        self.status_replies: list[Any] = [{"status": "pending"}]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if request.method == "POST" and url == self.settings.token_url:
            code, body = self.token_reply
            return httpx.Response(code, json=body)
        if request.method == "POST" and url in self.submit_replies:
            code, body = self.submit_replies[url]
            return httpx.Response(code, json=body)
        if request.method == "GET":
            index = min(len(self.status_calls) - 1, len(self.status_replies) - 1)
            reply = self.status_replies[index]
            if callable(reply):
                return reply()
            if isinstance(reply, httpx.Response):
                return httpx.Response(reply.status_code, content=reply.content, headers=reply.headers)
            return httpx.Response(200, json=reply)
        return httpx.Response(404, json={"error_code": "not_found"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def token_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == self.settings.token_url]

    @property
    def submit_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST" and str(r.url) != self.settings.token_url]

    @property
    def status_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that returns immediately."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class RecordingSink:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def set_status(self, message: str) -> None:
        self.messages.append(message)

    def get_status(self) -> str:
        return self.messages[-1] if self.messages else ""


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def provider(settings: Settings) -> FakeProvider:
    return FakeProvider(settings)


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
