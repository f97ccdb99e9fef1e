"""Environment-driven configuration for the gallery service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

RECORD_SOURCES = ("backend", "sqlite")


def _env_number(name: str, default: float, cast=float):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return cast(default)
    try:
        return cast(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name}={raw!r} is not a valid number") from exc


@dataclass(frozen=True)
class GallerySettings:
    """Runtime settings.

    Attributes:
        record_source: "backend" for the REST API, "sqlite" for the local store.
        backend_api_url: Base URL of the REST API (e.g. http://127.0.0.1:8000/api).
        backend_api_token: Optional bearer token sent with every request.
        media_base_url: Origin used to resolve relative media paths.
        database_dir: Directory holding the local SQLite store.
        export_dir: Directory where saved archives are written.
        request_timeout: Seconds before an HTTP request is abandoned.
        worker_concurrency: Max in-flight per-item requests for bulk actions and exports.
        unknown_confidence_threshold: Percentage below which images are "unknown".
    """

    record_source: str = "backend"
    backend_api_url: Optional[str] = None
    backend_api_token: Optional[str] = None
    media_base_url: Optional[str] = None
    database_dir: Optional[Path] = None
    export_dir: Path = Path("exports")
    request_timeout: float = 30.0
    worker_concurrency: int = 1
    unknown_confidence_threshold: float = 50.0

    @classmethod
    def from_env(cls) -> "GallerySettings":
        """Read settings from the process environment.

        Raises:
            RuntimeError: If a required variable is missing or invalid.
        """
        record_source = (os.getenv("RECORD_SOURCE") or "backend").strip().lower()
        if record_source not in RECORD_SOURCES:
            raise RuntimeError(
                f"RECORD_SOURCE={record_source!r} is not supported; use one of {', '.join(RECORD_SOURCES)}."
            )

        api_url = (os.getenv("BACKEND_API_URL") or "").strip() or None
        if record_source == "backend" and not api_url:
            raise RuntimeError("BACKEND_API_URL environment variable must be set when RECORD_SOURCE=backend.")

        database_dir = (os.getenv("DATABASE_DIR") or "").strip() or None
        if record_source == "sqlite" and not database_dir:
            raise RuntimeError("DATABASE_DIR environment variable must be set when RECORD_SOURCE=sqlite.")

        media_base = (os.getenv("MEDIA_BASE_URL") or "").strip() or None
        if media_base is None and api_url:
            parts = urlsplit(api_url)
            media_base = f"{parts.scheme}://{parts.netloc}"

        concurrency = _env_number("WORKER_CONCURRENCY", 1, int)
        if concurrency < 1:
            raise RuntimeError("WORKER_CONCURRENCY must be at least 1.")

        return cls(
            record_source=record_source,
            backend_api_url=api_url,
            backend_api_token=(os.getenv("BACKEND_API_TOKEN") or "").strip() or None,
            media_base_url=media_base,
            database_dir=Path(database_dir).expanduser() if database_dir else None,
            export_dir=Path(os.getenv("EXPORT_DIR") or "exports").expanduser(),
            request_timeout=_env_number("REQUEST_TIMEOUT", 30.0),
            worker_concurrency=concurrency,
            unknown_confidence_threshold=_env_number("UNKNOWN_CONFIDENCE_THRESHOLD", 50.0),
        )
