import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from routes.intake_route import router as intake_router
from routes.rotation_route import router as rotation_router
from services.object_store import LocalObjectStore, S3ObjectStore
from utils.app_config import AppConfig
from utils.database_init import AsyncDatabaseInitializer
from utils.error_responses import register_error_handlers

BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


def build_object_store(config: AppConfig):
    """Create the object store selected by `config.object_store`."""
    if config.object_store == "local":
        return LocalObjectStore(config.blob_dir)
    return S3ObjectStore(
        bucket=config.aws_s3_bucket,
        region=config.aws_region,
        access_key_id=config.aws_access_key_id,
        secret_access_key=config.aws_secret_access_key,
        endpoint_url=config.aws_s3_endpoint_url,
        expires_in=config.presign_expires_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the SQLite image record store (at DATABASE_DIR/app.db)
      - the object store holding the image bytes
    and attach them to `app.state`.
    """
    config: AppConfig = app.state.config or AppConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db_initializer = AsyncDatabaseInitializer(config.database_dir)
    await db_initializer.ensure_database()
    app.state.db_initializer = db_initializer
    LOGGER.info("Image record store ready at %s", db_initializer.db_path)

    if getattr(app.state, "object_store", None) is None:
        try:
            app.state.object_store = build_object_store(config)
        except Exception as exc:
            raise RuntimeError("Failed to initialize object store") from exc
    LOGGER.info("Object store ready: %s", type(app.state.object_store).__name__)

    yield


def create_app(config: Optional[AppConfig] = None, object_store=None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Args:
        config: Settings to use; read from the environment at startup when None.
        object_store: Optional prebuilt object store, replacing the one `config` selects.
    """
    app = FastAPI(lifespan=lifespan)
    app.state.config = config
    app.state.object_store = object_store

    register_error_handlers(app)

    # Serve static assets from the public directory, if it exists.
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")

    @app.get("/", include_in_schema=False)
    async def serve_index():
        """
        Serve the slideshow page from the public directory.
        """
        index_path = PUBLIC_DIR / "index.html"
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="Frontend not found")
        return FileResponse(index_path)

    @app.get("/blobs/{key}", include_in_schema=False)
    async def serve_local_blob(request: Request, key: str):
        """
        Serve image bytes kept by the local object store.
        """
        store = request.app.state.object_store
        if not isinstance(store, LocalObjectStore):
            raise HTTPException(status_code=404, detail="Not found")
        try:
            path = store.path_for(key)
        except ValueError:
            raise HTTPException(status_code=404, detail="Not found")
        if not path.is_file():
            raise HTTPException(status_code=404, detail="Not found")
        return FileResponse(path)

    @app.get("/health", response_class=PlainTextResponse)
    async def health():
        return "ok"

    # Register application routers
    app.include_router(rotation_router)
    app.include_router(intake_router)

    return app


app = create_app()
