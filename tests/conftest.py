"""
Inventory Catalog Backend — Test Configuration (conftest.py)
=============================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own SQLite database file and storage directory
       under tmp_path. The stores are built explicitly and injected, the
       same way create_app() wires them in production.

Fixture Hierarchy (all function-scoped):
    test_settings ─┬─ engine ── record_store ─┐
                   └─ asset_store ────────────┼─ service
                                              └─ test_client (create_app)
"""

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Keep the module-level default Settings() off any real database or volume
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from inventory_catalog.config import Settings  # noqa: E402
from inventory_catalog.database import (  # noqa: E402
    create_engine_from_settings,
    create_session_factory,
    dispose_engine,
    init_db,
)
from inventory_catalog.main import create_app  # noqa: E402
from inventory_catalog.services.asset_store import LocalAssetStore  # noqa: E402
from inventory_catalog.services.inventory_service import InventoryService  # noqa: E402
from inventory_catalog.services.record_store import RecordStore  # noqa: E402


# Minimal JPEG: SOI + JFIF marker + EOI. Not a photograph, just recognizable bytes.
JPEG_BYTES = (
    b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
    b"\xff\xd9"
)

# PNG signature followed by an IHDR chunk header
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """
    Settings pointing at throwaway locations.

    Reclaim backoff is zero so retry tests do not sleep.
    """
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'inventory.db'}",
        storage_root=str(tmp_path / "uploads"),
        cache_dir=str(tmp_path / "cache"),
        reclaim_max_attempts=3,
        reclaim_min_wait=0,
        reclaim_max_wait=0,
        orphan_grace_seconds=3600,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def engine(test_settings):
    engine = create_engine_from_settings(test_settings)
    await init_db(engine)
    yield engine
    await dispose_engine(engine)


@pytest.fixture
def record_store(engine) -> RecordStore:
    return RecordStore(create_session_factory(engine))


@pytest.fixture
def asset_store(test_settings) -> LocalAssetStore:
    return LocalAssetStore(test_settings.storage_root)


@pytest.fixture
def service(record_store, asset_store, test_settings) -> InventoryService:
    return InventoryService(record_store, asset_store, test_settings)


@pytest.fixture
def jpeg_bytes() -> bytes:
    return JPEG_BYTES


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest_asyncio.fixture
async def test_client(test_settings, record_store, asset_store) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to an app built around the test stores.

    Usage:
        async def test_list(test_client):
            response = await test_client.get("/inventory")
            assert response.status_code == 200
    """
    app = create_app(test_settings, record_store=record_store, asset_store=asset_store)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
