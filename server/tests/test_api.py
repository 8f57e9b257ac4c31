from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from mediarelay import main
from mediarelay.config import get_settings
from mediarelay.main import create_app
from mediarelay.routers.dependencies import get_http_client

from conftest import FakeProvider, make_settings, succeeded


@pytest.fixture
def api_provider() -> FakeProvider:
    return FakeProvider(make_settings(poll_delay_seconds=0.0, poll_max_attempts=3))


@pytest.fixture
def client(api_provider: FakeProvider):
    app = create_app()

    async def _http_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(api_provider.handler)) as http_client:
            yield http_client

    app.dependency_overrides[get_settings] = lambda: api_provider.settings
    app.dependency_overrides[get_http_client] = _http_client
    with TestClient(app) as test_client:
        yield test_client


def test_health(client: TestClient) -> None:
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_generate_video_end_to_end(client: TestClient, api_provider: FakeProvider) -> None:
    api_provider.status_replies = [{"status": "pending"}, succeeded("video", "https://cdn/v.mp4")]

    resp = client.post("/api/generate", json={"apiType": "VIDEO", "prompt": "a paper boat"})

    assert resp.status_code == 200
    assert resp.json() == {
        "message": "Video generated successfully",
        "jobId": "video-job-1",
        "videoUrl": "https://cdn/v.mp4",
    }
    assert len(api_provider.status_calls) == 2

    progress = client.get("/api/progress")
    assert progress.json() == {"status": "Video ready"}


def test_non_json_body_is_400(client: TestClient, api_provider: FakeProvider) -> None:
    resp = client.post("/api/generate", content=b"prompt=hello", headers={"content-type": "text/plain"})

    assert resp.status_code == 400
    assert "error" in resp.json()
    assert api_provider.requests == []


def test_missing_prompt_is_400(client: TestClient, api_provider: FakeProvider) -> None:
    resp = client.post("/api/generate", json={"apiType": "image"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing prompt"}
    assert api_provider.requests == []


@pytest.mark.parametrize("body", [{"apiType": "gif", "prompt": "cat"}, {"apiType": "video", "prompt": "cat", "height": "tall"}])
def test_invalid_input_is_400_not_422(client: TestClient, api_provider: FakeProvider, body: dict) -> None:
    resp = client.post("/api/generate", json=body)

    assert resp.status_code == 400
    assert api_provider.requests == []


def test_timeout_is_500_with_details(client: TestClient, api_provider: FakeProvider) -> None:
    api_provider.status_replies = [{"status": "running"}]

    resp = client.post("/api/generate", json={"apiType": "video", "prompt": "slow"})

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"].startswith("Timed out")
    assert body["details"]["attempts"] == 3


def test_status_endpoint(client: TestClient, api_provider: FakeProvider) -> None:
    api_provider.status_replies = [{"status": "running"}]

    resp = client.post(
        "/api/status", json={"statusUrl": "https://firefly-api.adobe.io/v3/status/abc", "apiType": "video"}
    )

    assert resp.status_code == 200
    assert resp.json() == {"status": "running"}


def test_status_endpoint_requires_fields(client: TestClient) -> None:
    resp = client.post("/api/status", json={"apiType": "video"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing statusUrl or apiType."}


def test_invalid_poll_budget_fails_at_startup(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(main, "settings", make_settings(poll_max_attempts=0))

    async def start():
        async with main.lifespan(main.create_app()):
            pass

    with pytest.raises(ValueError, match="max_attempts"):
        asyncio.run(start())
