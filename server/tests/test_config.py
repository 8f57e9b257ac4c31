from __future__ import annotations

import importlib
import os

import mediarelay.config as config


def _reload_with(monkeypatch, **env: str):  # noqa: ANN001, ANN003
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return importlib.reload(config)


def test_settings_read_poll_budget_and_pending_mode(monkeypatch) -> None:  # noqa: ANN001
    try:
        reloaded = _reload_with(
            monkeypatch,
            POLL_MAX_ATTEMPTS="18",
            POLL_DELAY_SECONDS="3",
            RETURN_PENDING_ON_TIMEOUT="yes",
        )
        assert reloaded.settings.poll_max_attempts == 18
        assert reloaded.settings.poll_delay_seconds == 3.0
        assert reloaded.settings.return_pending_on_timeout is True
    finally:
        monkeypatch.undo()
        importlib.reload(config)


def test_client_credentials_come_only_from_environment(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.delenv("FIREFLY_CLIENT_ID", raising=False)
    monkeypatch.delenv("FIREFLY_CLIENT_SECRET", raising=False)
    try:
        reloaded = importlib.reload(config)
        assert reloaded.settings.firefly_client_id is None
        assert reloaded.settings.has_client_credentials is False

        reloaded = _reload_with(monkeypatch, FIREFLY_CLIENT_ID="abc", FIREFLY_CLIENT_SECRET="shh")
        assert reloaded.settings.has_client_credentials is True
        assert "FIREFLY_CLIENT_ID" in os.environ
    finally:
        monkeypatch.undo()
        importlib.reload(config)
