"""
Inventory Catalog Backend — Asset Store Unit Tests
===================================================

What:  Tests for LocalAssetStore on a temporary directory.

What we test:
    ✅ put() returns a fresh date-organized reference and get() returns the bytes
    ✅ Extension kept only for known image types
    ✅ Unknown and traversal references raise AssetNotFoundError
    ✅ delete() is idempotent
    ✅ list_refs() skips temp files
    ✅ Write failures surface as StoreUnavailableError
"""

import re
from unittest.mock import patch

import pytest

from inventory_catalog.exceptions import AssetNotFoundError, StoreUnavailableError
from inventory_catalog.services.asset_store import (
    DEFAULT_MEDIA_TYPE,
    TEMP_PREFIX,
    LocalAssetStore,
    media_type_for,
)


class TestMediaType:

    def test_known_extensions(self):
        assert media_type_for("2026/10/18/abc.jpg") == "image/jpeg"
        assert media_type_for("2026/10/18/abc.JPEG") == "image/jpeg"
        assert media_type_for("2026/10/18/abc.png") == "image/png"

    def test_unknown_extension_is_octet_stream(self):
        assert media_type_for("2026/10/18/abc") == DEFAULT_MEDIA_TYPE
        assert media_type_for("2026/10/18/abc.exe") == DEFAULT_MEDIA_TYPE


class TestLocalAssetStore:

    @pytest.mark.asyncio
    async def test_put_then_get_returns_same_bytes(self, asset_store, jpeg_bytes):
        ref = await asset_store.put(jpeg_bytes, "widget.jpg")

        assert re.fullmatch(r"\d{4}/\d{2}/\d{2}/[0-9a-f-]{36}\.jpg", ref)
        assert await asset_store.get(ref) == jpeg_bytes

    @pytest.mark.asyncio
    async def test_put_never_reuses_a_reference(self, asset_store, jpeg_bytes):
        first = await asset_store.put(jpeg_bytes, "a.jpg")
        second = await asset_store.put(jpeg_bytes, "a.jpg")
        assert first != second

    @pytest.mark.asyncio
    async def test_unrecognized_extension_dropped(self, asset_store):
        ref = await asset_store.put(b"payload", "../../etc/passwd.sh")
        assert "/" in ref and not ref.endswith(".sh")
        assert ".." not in ref

    @pytest.mark.asyncio
    async def test_get_unknown_reference(self, asset_store):
        with pytest.raises(AssetNotFoundError):
            await asset_store.get("2026/01/01/missing.jpg")

    @pytest.mark.asyncio
    async def test_traversal_reference_rejected(self, asset_store):
        with pytest.raises(AssetNotFoundError):
            await asset_store.get("../inventory.db")

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, asset_store, jpeg_bytes):
        ref = await asset_store.put(jpeg_bytes, "a.jpg")

        await asset_store.delete(ref)
        await asset_store.delete(ref)

        with pytest.raises(AssetNotFoundError):
            await asset_store.get(ref)

    @pytest.mark.asyncio
    async def test_list_refs_skips_partial_writes(self, asset_store, jpeg_bytes):
        ref = await asset_store.put(jpeg_bytes, "a.jpg")
        partial = asset_store.storage_root / "2026" / f"{TEMP_PREFIX}half.jpg"
        partial.parent.mkdir(parents=True, exist_ok=True)
        partial.write_bytes(b"half")

        refs = [asset.asset_ref for asset in await asset_store.list_refs()]

        assert refs == [ref]

    @pytest.mark.asyncio
    async def test_write_failure_is_store_unavailable(self, asset_store, jpeg_bytes):
        with patch(
            "inventory_catalog.services.asset_store.os.replace",
            side_effect=OSError(28, "No space left on device"),
        ):
            with pytest.raises(StoreUnavailableError) as exc_info:
                await asset_store.put(jpeg_bytes, "a.jpg")

        assert exc_info.value.store == "asset_store"
        assert await asset_store.list_refs() == []

    @pytest.mark.asyncio
    async def test_health_check(self, asset_store):
        assert await asset_store.health_check() is True

    def test_storage_root_created(self, tmp_path):
        root = tmp_path / "nested" / "photos"
        LocalAssetStore(str(root))
        assert root.is_dir()
