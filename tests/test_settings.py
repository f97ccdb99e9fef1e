from pathlib import Path

import pytest

from utils.settings import GallerySettings

_VARS = (
    "RECORD_SOURCE",
    "BACKEND_API_URL",
    "BACKEND_API_TOKEN",
    "MEDIA_BASE_URL",
    "DATABASE_DIR",
    "EXPORT_DIR",
    "REQUEST_TIMEOUT",
    "WORKER_CONCURRENCY",
    "UNKNOWN_CONFIDENCE_THRESHOLD",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_backend_settings_derive_media_origin(monkeypatch):
    monkeypatch.setenv("BACKEND_API_URL", "http://127.0.0.1:8000/api")
    monkeypatch.setenv("WORKER_CONCURRENCY", "4")

    settings = GallerySettings.from_env()

    assert settings.record_source == "backend"
    assert settings.media_base_url == "http://127.0.0.1:8000"
    assert settings.worker_concurrency == 4
    assert settings.unknown_confidence_threshold == 50.0
    assert settings.export_dir == Path("exports")


def test_backend_requires_api_url():
    with pytest.raises(RuntimeError, match="BACKEND_API_URL"):
        GallerySettings.from_env()


def test_sqlite_requires_database_dir(monkeypatch, tmp_path):
    monkeypatch.setenv("RECORD_SOURCE", "sqlite")
    with pytest.raises(RuntimeError, match="DATABASE_DIR"):
        GallerySettings.from_env()

    monkeypatch.setenv("DATABASE_DIR", str(tmp_path))
    assert GallerySettings.from_env().database_dir == tmp_path


@pytest.mark.parametrize(
    "name,value",
    [("RECORD_SOURCE", "ftp"), ("WORKER_CONCURRENCY", "0"), ("REQUEST_TIMEOUT", "soon")],
)
def test_invalid_values_are_rejected(monkeypatch, name, value):
    monkeypatch.setenv("BACKEND_API_URL", "http://localhost/api")
    monkeypatch.setenv(name, value)
    with pytest.raises(RuntimeError):
        GallerySettings.from_env()
