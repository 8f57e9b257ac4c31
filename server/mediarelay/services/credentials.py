"""Client-credentials token exchange against the provider's identity service."""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..errors import CredentialError
from ..models.jobs import Credential

logger = logging.getLogger(__name__)


class CredentialProvider:
    """Obtains a fresh bearer token; one attempt per orchestration, no caching."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        token_url: str,
        client_id: Optional[str],
        client_secret: Optional[str],
        scope: str,
    ) -> None:
        self._client = client
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._scope = scope

    async def obtain_credential(self) -> Credential:
        if not (self._client_id and self._client_secret):
            raise CredentialError("Provider client credentials are not configured")

        form = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "grant_type": "client_credentials",
            "scope": self._scope,
        }
        logger.info("Requesting access token from %s", self._token_url)
        try:
            resp = await self._client.post(self._token_url, data=form)
        except httpx.HTTPError as exc:
            raise CredentialError(f"Token request failed: {exc}") from exc

        try:
            data: Any = resp.json()
        except ValueError:
            raise CredentialError(
                "Failed to obtain access token",
                details={"status": resp.status_code, "body": resp.text[:500]},
            ) from None

        if resp.is_error:
            raise CredentialError("Failed to obtain access token", details=data)

        token = data.get("access_token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise CredentialError("Failed to obtain access token", details=data)

        return Credential(bearer_token=token)


def auth_headers(credential: Credential, api_key: Optional[str]) -> dict[str, str]:
    """Headers every authenticated provider call carries."""

    headers = {"Authorization": f"Bearer {credential.bearer_token}"}
    if api_key:
        headers["x-api-key"] = api_key
    return headers
