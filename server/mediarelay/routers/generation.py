"""Generation and status endpoints."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..errors import InvalidRequest
from ..models import schemas
from ..services.orchestration import OrchestrationOutcome, build_orchestrator
from ..services.progress import ProgressSink
from .dependencies import get_http_client, get_progress_sink

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["generation"])

_DISCONNECT_CHECK_SECONDS = 1.0


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise InvalidRequest("Request body must be valid JSON") from None


async def _watch_disconnect(request: Request, cancel_event: asyncio.Event) -> None:
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info("Client disconnected; cancelling generation")
            cancel_event.set()
            return
        await asyncio.sleep(_DISCONNECT_CHECK_SECONDS)


def _respond(outcome: OrchestrationOutcome) -> JSONResponse:
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)


@router.post("/generate")
async def generate(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
    progress: ProgressSink = Depends(get_progress_sink),
) -> JSONResponse:
    """Run one generation job to completion and return its media URL."""

    try:
        payload = await _read_json(request)
    except InvalidRequest as exc:
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    orchestrator = build_orchestrator(client, settings, progress=progress)
    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
    try:
        outcome = await orchestrator.run(payload, cancel_event=cancel_event)
    finally:
        watcher.cancel()
        await asyncio.gather(watcher, return_exceptions=True)

    logger.info("Generation finished: state=%s status=%d", outcome.state.value, outcome.status_code)
    return _respond(outcome)


@router.post("/status")
async def check_status(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Look up a previously submitted job once."""

    try:
        payload = await _read_json(request)
    except InvalidRequest as exc:
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    orchestrator = build_orchestrator(client, settings)
    return _respond(await orchestrator.check_status(payload))


@router.get("/progress", response_model=schemas.ProgressResponse)
async def get_progress(progress: ProgressSink = Depends(get_progress_sink)) -> schemas.ProgressResponse:
    """Return the most recent progress message from any generation."""

    return schemas.ProgressResponse(status=progress.get_status())
