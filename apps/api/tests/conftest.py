"""Shared fixtures: a fresh SQLite database and storage root per test."""

from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient

from plus_api.core.db import create_schema, reset_engine
from plus_api.modules.accounts.auth import issue_player_token
from plus_api.modules.cosmetics import service as cosmetics_service

WEBHOOK_SECRET = "test-webhook-secret"
TOKEN_SECRET = "test-token-secret"


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{(tmp_path / 'app.db').as_posix()}")
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path / "storage"))
    monkeypatch.setenv("ASSET_BASE_URL", "https://cdn.example.test/assets")
    monkeypatch.setenv("TEBEX_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setenv("PLAYER_TOKEN_SECRET", TOKEN_SECRET)
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setattr(cosmetics_service, "_info_cache", None)
    reset_engine()
    create_schema()
    yield tmp_path
    reset_engine()


@pytest.fixture
def client():
    from plus_api.main import app

    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def player() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def auth_headers(player):
    return {"Authorization": f"Bearer {issue_player_token(player)}"}
