"""
Tests for the plugin HTTP surface: /health, /manifest, /configure, /process.

The app is started through FastAPI's TestClient so the lifespan runs; the
settings point cache and output at tmp_path and background submission is
replaced with a mock so no pipeline work starts.
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from provider import __version__
from provider.config import ProviderSettings

VALID_PROCESS = {
    "taskId": "task-1",
    "cid": "bafkreistoreref",
    "filePath": "/files/watch/Sintel.2010.mkv",
    "callbackUrl": "http://meta-sort:8180/callback",
    "metaCoreUrl": "http://meta-core:9000",
    "existingMeta": {"fileType": "video", "originalTitle": "Sintel"},
}


@pytest.fixture
def client(tmp_path):
    settings = ProviderSettings(
        cache_dir=str(tmp_path / "cache"),
        output_path=str(tmp_path / "output"),
        api_key=None,
    )
    with patch("provider.main.get_settings", return_value=settings), \
            patch("provider.main.configure_logging"):
        from provider.main import app

        with TestClient(app) as test_client:
            yield test_client


def test_health_reports_ready(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "ready": True, "version": __version__}


def test_manifest(client):
    body = client.get("/manifest").json()

    assert body["id"] == "tmdb"
    assert body["name"] == "TMDB Metadata"
    assert body["version"] == __version__
    assert body["dependencies"] == ["file-info", "filename-parser", "jellyfin-nfo"]
    assert body["priority"] == 30
    assert body["defaultQueue"] == "background"
    assert body["timeout"] == 60000
    assert set(body["schema"]) == {
        "tmdbid", "imdbid", "originalTitle", "movieYear", "releasedate", "rating", "plot/eng",
    }
    assert body["schema"]["tmdbid"]["readonly"] is True
    assert body["config"]["apiKey"]["secret"] is True
    assert body["config"]["apiKey"]["required"] is True
    assert body["config"]["language"]["default"] == "en-US"
    assert body["config"]["forceRecompute"]["default"] is False


def test_configure_replaces_snapshot(client):
    runtime = client.app.state.runtime
    assert not runtime.config_store.current().has_credentials

    response = client.post(
        "/configure",
        json={"config": {"apiKey": "abcdef1234567890", "language": "de", "forceRecompute": "true"}},
    )

    assert response.json() == {"status": "ok"}
    config = runtime.config_store.current()
    assert config.has_credentials
    assert config.language == "de-DE"
    assert config.force_recompute is True


def test_configure_rejects_invalid(client):
    before = client.app.state.runtime.config_store.current()

    response = client.post("/configure", json={"config": {"forceRecompute": "sometimes"}})

    body = response.json()
    assert body["status"] == "error"
    assert "Invalid boolean" in body["error"]
    assert client.app.state.runtime.config_store.current() is before


def test_configure_empty_body(client):
    assert client.post("/configure", json={}).json() == {"status": "ok"}


def test_process_accepts_and_submits(client):
    runtime = client.app.state.runtime
    runtime.submit = MagicMock()

    response = client.post("/process", json=VALID_PROCESS)

    assert response.json() == {"status": "accepted"}
    submitted = runtime.submit.call_args.args[0]
    assert submitted.taskId == "task-1"
    assert submitted.existingMeta["originalTitle"] == "Sintel"


@pytest.mark.parametrize("field", ["taskId", "cid", "filePath", "callbackUrl", "metaCoreUrl"])
def test_process_rejects_missing_fields(client, field):
    runtime = client.app.state.runtime
    runtime.submit = MagicMock()
    body = {k: v for k, v in VALID_PROCESS.items() if k != field}

    response = client.post("/process", json=body)

    assert response.json() == {"status": "rejected", "error": "Missing required fields"}
    runtime.submit.assert_not_called()
