"""Shared test fixtures for the slideshow service."""

import io
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from dal.image_dal import ImageDAL
from main import create_app
from models.image_record import ImageRecord, RotationState
from services.object_store import LocalObjectStore
from services.rotation_engine import RotationEngine
from utils.app_config import AppConfig
from utils.database_init import AsyncDatabaseInitializer

BASE_TIME = datetime(2026, 6, 20, 14, 0, 0, tzinfo=timezone.utc)


def image_bytes(fmt: str = "PNG", color: str = "red") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return image_bytes("PNG")


@pytest.fixture
def db_initializer(tmp_path) -> AsyncDatabaseInitializer:
    """SQLite store in a per-test directory."""
    return AsyncDatabaseInitializer(tmp_path / "db")


@pytest.fixture
def image_dal(db_initializer) -> ImageDAL:
    return ImageDAL(db_initializer)


@pytest.fixture
def engine(image_dal) -> RotationEngine:
    return RotationEngine(image_dal)


@pytest.fixture
def local_store(tmp_path) -> LocalObjectStore:
    return LocalObjectStore(tmp_path / "blobs")


@pytest.fixture
def make_record(image_dal):
    """Insert a record uploaded `minute` minutes after BASE_TIME in the given state."""

    async def _make(minute: int, state: RotationState = RotationState.FRESH, key: str | None = None) -> ImageRecord:
        record = ImageRecord(
            id=None,
            blob_key=key or f"image_{minute}.jpg",
            uploaded_at=BASE_TIME + timedelta(minutes=minute),
            is_new=state is RotationState.FRESH,
            is_displayed=state is RotationState.SHOWN,
        )
        return await image_dal.create_image(record)

    return _make


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(database_dir=tmp_path / "db", object_store="local", local_blob_dir=tmp_path / "blobs")


@pytest.fixture
def client(app_config):
    """TestClient running the app lifespan against a local object store."""
    app = create_app(app_config)
    with TestClient(app) as test_client:
        yield test_client
