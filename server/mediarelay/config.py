"""Configuration helpers for the media relay service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass
class Settings:
    """Centralized environment-driven configuration.

    Client credentials are only ever read from the environment; when they are
    missing the credential step fails before any request reaches the provider.
    """

    firefly_client_id: Optional[str] = os.getenv("FIREFLY_CLIENT_ID")
    firefly_client_secret: Optional[str] = os.getenv("FIREFLY_CLIENT_SECRET")
    token_url: str = os.getenv("FIREFLY_TOKEN_URL", "https://ims-na1.adobelogin.com/ims/token/v3")
    token_scope: str = os.getenv(
        "FIREFLY_TOKEN_SCOPE",
        "openid,AdobeID,session,additional_info,read_organizations,firefly_api,ff_apis",
    )

    # Generation endpoints, one per job kind
    video_endpoint: str = os.getenv("FIREFLY_VIDEO_ENDPOINT", "https://firefly-api.adobe.io/v3/videos/generate")
    image_endpoint: str = os.getenv("FIREFLY_IMAGE_ENDPOINT", "https://firefly-api.adobe.io/v3/images/generate-async")
    avatar_endpoint: str = os.getenv("FIREFLY_AVATAR_ENDPOINT", "https://audio-video-api.adobe.io/v1/generate-avatar")

    # Status URL templates for kinds whose submit response only carries a job id
    image_status_template: str = os.getenv(
        "FIREFLY_IMAGE_STATUS_TEMPLATE", "https://firefly-api.adobe.io/v3/status/{job_id}"
    )
    avatar_status_template: str = os.getenv(
        "FIREFLY_AVATAR_STATUS_TEMPLATE", "https://audio-video-api.adobe.io/v1/status/{job_id}"
    )

    video_model: str = os.getenv("FIREFLY_VIDEO_MODEL", "video1_standard")
    image_model: str = os.getenv("FIREFLY_IMAGE_MODEL", "image4_standard")
    avatar_model: str = os.getenv("FIREFLY_AVATAR_MODEL", "avatar1_standard")

    poll_max_attempts: int = int(os.getenv("POLL_MAX_ATTEMPTS", "50"))
    poll_delay_seconds: float = float(os.getenv("POLL_DELAY_SECONDS", "5"))
    # Answer 202 with the status URL instead of an error once the poll budget runs out
    return_pending_on_timeout: bool = _env_flag("RETURN_PENDING_ON_TIMEOUT")

    http_timeout_seconds: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def has_client_credentials(self) -> bool:
        return bool(self.firefly_client_id and self.firefly_client_secret)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance to avoid repeated environment reads."""

    return Settings()


settings = get_settings()
