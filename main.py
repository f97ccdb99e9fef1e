import inspect
import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request

from dal.backend_client import BackendClient
from dal.image_dal import ImageDAL
from dal.record_source import AuthorizationError, RecordSource
from routes.gallery_route import router as gallery_router
from services.gallery_state import GalleryState
from utils.database_init import AsyncDatabaseInitializer
from utils.logging_config import configure_logging
from utils.settings import GallerySettings

load_dotenv()  # Load environment variables from .env file if present
configure_logging()

logger = logging.getLogger(__name__)


async def _build_record_source(settings: GallerySettings) -> RecordSource:
    """Create the record source selected by RECORD_SOURCE."""
    if settings.record_source == "sqlite":
        db_initializer = AsyncDatabaseInitializer(settings.database_dir)
        await db_initializer.ensure_database()
        return ImageDAL(db_initializer)

    return BackendClient(
        api_url=settings.backend_api_url or "",
        token=settings.backend_api_token,
        media_base=settings.media_base_url,
        timeout=settings.request_timeout,
    )


async def _close_quietly(resource) -> None:
    close = getattr(resource, "aclose", None) or getattr(resource, "close", None)
    if close is None:
        return
    try:
        result = close()
        if inspect.isawaitable(result):
            await result
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.warning("Error while closing record source: %s", exc)


def create_app(record_source: Optional[RecordSource] = None, settings: Optional[GallerySettings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Args:
        record_source: Preconstructed record source; built from settings when omitted.
        settings: Runtime settings; read from the environment when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan manager to initialize:
          - the record source (REST backend or local SQLite store)
          - the in-memory gallery state, loaded once on startup
        and attach them to `app.state`.
        """
        app_settings = settings or GallerySettings.from_env()
        source = record_source or await _build_record_source(app_settings)

        app.state.settings = app_settings
        app.state.record_source = source
        app.state.gallery = GalleryState(
            source,
            threshold=app_settings.unknown_confidence_threshold,
            max_concurrency=app_settings.worker_concurrency,
        )

        # A failed first load leaves the gallery empty with an error; /gallery/refresh retries.
        try:
            await app.state.gallery.load()
        except AuthorizationError as exc:
            logger.error("Initial gallery load was not authorized: %s", exc)

        try:
            yield
        finally:
            if record_source is None:
                await _close_quietly(source)

    app = FastAPI(title="Disease Image Gallery", lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting the record source and the last load.
        """
        gallery = getattr(request.app.state, "gallery", None)
        app_settings = getattr(request.app.state, "settings", None)
        return {
            "ok": True,
            "record_source": app_settings.record_source if app_settings else None,
            "loaded": gallery is not None and gallery.loaded_at is not None,
            "error": gallery.error if gallery else None,
        }

    # Register application routers
    app.include_router(gallery_router)

    return app


app = create_app()
