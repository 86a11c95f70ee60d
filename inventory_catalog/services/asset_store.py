"""
Inventory Catalog Backend — Asset Store
========================================

What:  Key-addressed blob storage for inventory photos.
Why:   Photos live outside the database. The inventory service only needs
       put/get/delete by reference, so the backing medium can change (local
       volume today, object storage later) without touching the service.
How:   AssetStore is the abstract contract; LocalAssetStore implements it on
       a directory with aiofiles.
Who:   Constructed at startup and passed to InventoryService; tests pass a
       LocalAssetStore on a temp directory or a fake.

Write discipline (append-mostly):
    Assets are never modified in place. put() writes the bytes to a hidden
    temporary file in the target directory, then os.replace()s it to its
    final name. A reader either sees the complete file or no file at all.
    Replacing a photo always means put() a new asset, then delete() the old.

Directory Structure:
    uploads/
    └── 2026/
        └── 10/
            └── 18/
                ├── 3f0c...-9a1e.jpg
                └── 77b2...-01cd.png

    The relative path ("2026/10/18/3f0c...-9a1e.jpg") is the asset reference
    stored on the inventory row.
"""

import logging
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

import aiofiles

from inventory_catalog.exceptions import AssetNotFoundError, StoreUnavailableError

logger = logging.getLogger(__name__)

# Extension → media type for serving photos back.
# Anything else is stored without a suffix and served as octet-stream.
MEDIA_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".heic": "image/heic",
}

DEFAULT_MEDIA_TYPE = "application/octet-stream"

TEMP_PREFIX = ".tmp-"


def media_type_for(asset_ref: str) -> str:
    """Media type implied by an asset reference's extension."""
    return MEDIA_TYPES.get(Path(asset_ref).suffix.lower(), DEFAULT_MEDIA_TYPE)


@dataclass(frozen=True)
class StoredAsset:
    """An asset reference together with the time it was written."""

    asset_ref: str
    stored_at: datetime


class AssetStore(ABC):
    """
    Abstract interface for photo storage.

    Contract:
        - put() returns a new, never-before-used reference for every call
        - get() raises AssetNotFoundError for an unknown reference
        - delete() of an unknown reference is a no-op (reclaim is retried)
        - I/O failures are raised as StoreUnavailableError(store="asset_store")
    """

    @abstractmethod
    async def put(self, content: bytes, filename: Optional[str] = None) -> str:
        """
        Store bytes as a new asset.

        Args:
            content:  Raw photo bytes.
            filename: Client filename, used only for its extension.

        Returns:
            The opaque asset reference to record on the inventory row.
        """
        ...

    @abstractmethod
    async def get(self, asset_ref: str) -> bytes:
        """Return the bytes stored under asset_ref."""
        ...

    @abstractmethod
    async def delete(self, asset_ref: str) -> None:
        """Remove the asset. Missing assets are ignored."""
        ...

    @abstractmethod
    async def list_refs(self) -> List[StoredAsset]:
        """Every asset currently held, for orphan sweeps."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the store can currently accept writes."""
        ...


class LocalAssetStore(AssetStore):
    """
    Asset store on a local (or mounted) directory.

    Why date-organized directories:
        Keeps any single directory small and makes it easy to archive or
        inspect uploads by day.

    Why UUID filenames:
        No user input reaches the filesystem path (no traversal, no
        collisions under concurrent uploads), and a reference is never reused,
        so deleting an old reference can never remove a newer photo.
    """

    def __init__(self, storage_root: str):
        """
        Args:
            storage_root: Directory holding all assets. Created if missing.
        """
        self.storage_root = Path(storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("LocalAssetStore initialized with storage_root=%s", self.storage_root)

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """
        Generate a unique, date-organized path for a new asset.

        Returns:
            Tuple of (absolute_path, relative_path_from_storage_root).
        """
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = f"{uuid.uuid4()}{extension}"

        relative_path = f"{date_dir}/{unique_name}"
        return self.storage_root / relative_path, relative_path

    def _resolve(self, asset_ref: str) -> Path:
        """
        Map a reference to a path inside storage_root.

        Raises:
            AssetNotFoundError if the reference escapes the storage root
            (such a reference cannot have been issued by put()).
        """
        full_path = (self.storage_root / asset_ref).resolve()
        if self.storage_root not in full_path.parents:
            logger.warning("Rejected asset reference outside storage root: %r", asset_ref)
            raise AssetNotFoundError(asset_ref=asset_ref)
        return full_path

    @staticmethod
    def _extension(filename: Optional[str]) -> str:
        ext = Path(filename or "").suffix.lower()
        return ext if ext in MEDIA_TYPES else ""

    async def put(self, content: bytes, filename: Optional[str] = None) -> str:
        absolute_path, relative_path = self._generate_storage_path(self._extension(filename))
        temp_path = absolute_path.with_name(f"{TEMP_PREFIX}{absolute_path.name}")

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)

            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(content)
                await f.flush()
                os.fsync(f.fileno())

            # Atomic on POSIX and Windows: the final name appears fully written
            os.replace(temp_path, absolute_path)

        except OSError as e:
            logger.error("Failed to store asset at %s: %s", absolute_path, str(e))
            try:
                temp_path.unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove partial upload %s", temp_path.name)
            raise StoreUnavailableError(
                store="asset_store",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("Asset stored: %s (%d bytes)", relative_path, len(content))
        return relative_path

    async def get(self, asset_ref: str) -> bytes:
        path = self._resolve(asset_ref)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except FileNotFoundError:
            raise AssetNotFoundError(asset_ref=asset_ref)
        except OSError as e:
            logger.error("Failed to read asset %s: %s", asset_ref, str(e))
            raise StoreUnavailableError(
                store="asset_store",
                context={"asset_ref": asset_ref, "os_error": str(e)},
            )

    async def delete(self, asset_ref: str) -> None:
        path = self._resolve(asset_ref)
        try:
            os.remove(path)
            logger.info("Asset deleted: %s", asset_ref)
        except FileNotFoundError:
            logger.debug("Asset already gone: %s", asset_ref)
        except OSError as e:
            logger.warning("Failed to delete asset %s: %s", asset_ref, str(e))
            raise StoreUnavailableError(
                store="asset_store",
                context={"asset_ref": asset_ref, "os_error": str(e)},
            )

    async def list_refs(self) -> List[StoredAsset]:
        assets = []
        try:
            for path in self.storage_root.rglob("*"):
                if not path.is_file() or path.name.startswith(TEMP_PREFIX):
                    continue
                stored_at = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
                asset_ref = path.relative_to(self.storage_root).as_posix()
                assets.append(StoredAsset(asset_ref=asset_ref, stored_at=stored_at))
        except OSError as e:
            raise StoreUnavailableError(
                store="asset_store",
                context={"os_error": str(e)},
            )
        return assets

    async def health_check(self) -> bool:
        return self.storage_root.is_dir() and os.access(self.storage_root, os.W_OK)
