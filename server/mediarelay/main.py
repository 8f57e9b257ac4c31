"""FastAPI application entrypoint for the media relay."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .routers import generation
from .services.polling import PollPolicy
from .services.progress import InMemoryProgressSink

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fail at startup rather than on the first request when the poll budget is invalid.
    PollPolicy(max_attempts=settings.poll_max_attempts, delay_seconds=settings.poll_delay_seconds)
    if not settings.has_client_credentials:
        logger.warning("FIREFLY_CLIENT_ID / FIREFLY_CLIENT_SECRET not set; generation requests will fail")
    yield


def create_app() -> FastAPI:
    """Instantiate and configure the FastAPI application."""
    application = FastAPI(
        title="Media Relay",
        description="Mediates generation requests to the provider's async job API.",
        version="0.1.0",
        lifespan=lifespan,
    )
    # Initialized once per process; shared by every request.
    application.state.progress_sink = InMemoryProgressSink()
    application.include_router(generation.router)

    @application.get("/")
    async def root() -> dict[str, str]:
        """Lightweight health endpoint for service discovery."""
        return {"service": "mediarelay", "status": "ok"}

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
