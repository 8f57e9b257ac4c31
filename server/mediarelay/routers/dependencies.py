"""Shared FastAPI dependencies."""
from __future__ import annotations

from typing import AsyncIterator

import httpx
from fastapi import Depends, Request

from ..config import Settings, get_settings
from ..services.progress import InMemoryProgressSink, ProgressSink

_fallback_sink = InMemoryProgressSink()


async def get_http_client(settings: Settings = Depends(get_settings)) -> AsyncIterator[httpx.AsyncClient]:
    """One client per request; closed once the response is sent."""

    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        yield client


def get_progress_sink(request: Request) -> ProgressSink:
    return getattr(request.app.state, "progress_sink", _fallback_sink)
