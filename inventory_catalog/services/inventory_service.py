"""
Inventory Catalog Backend — Inventory Service (Record + Photo Orchestrator)
============================================================================

What:  Every inventory operation, including the ones that touch both the
       record store (database row) and the asset store (photo file).
Why:   The two stores share no transaction. The order of the two writes
       decides what a crash or failure in between leaves behind, and that
       order is decided here and nowhere else.
How:   Composes RecordStore and AssetStore, both passed in at construction.
Who:   Built once at startup; called by the route handlers and the CLI.

Ordering Rule: an orphan is acceptable, a dangling reference is not
    An orphan (photo file no row points at) wastes disk and is reclaimed by
    sweep_orphans(). A dangling reference (row points at a missing file)
    breaks every reader. So:

    create:   put new photo  →  insert row
    replace:  put new photo  →  swap reference  →  delete displaced photo
    delete:   delete row     →  delete its photo

    A failure at any arrow leaves, at worst, one orphan.

Cleanup Failures:
    Deleting a displaced photo happens after the record change has committed.
    It is retried with tenacity; if it still fails the operation still
    succeeds, the failure is logged at ERROR and reported in the response's
    `warnings`, and the orphan is left for the sweep.

    When the reference swap itself fails, the freshly stored photo is only
    deleted right away if the failure proves the swap did not happen
    (NotFoundError: the row was deleted meanwhile). For anything ambiguous,
    e.g. the connection dropped during COMMIT, the photo is kept: if the
    commit did land, deleting it would create exactly the dangling reference
    this service exists to prevent. The sweep decides later, from the
    references actually stored.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from inventory_catalog.config import Settings
from inventory_catalog.exceptions import (
    AssetNotFoundError,
    DanglingAssetReferenceError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from inventory_catalog.schemas.inventory import (
    DeleteResponse,
    InventoryItemResponse,
    InventoryListItem,
    PhotoReplaceResponse,
    SearchResponse,
    photo_url_for,
)
from inventory_catalog.services.asset_store import AssetStore, media_type_for
from inventory_catalog.services.record_store import InventoryRecord, RecordStore, require_name

logger = logging.getLogger(__name__)

RECLAIM_WARNING = (
    "The previous photo could not be removed from storage; "
    "it will be reclaimed by the orphan sweep."
)


@dataclass(frozen=True)
class PhotoUpload:
    """Photo bytes received from a client, with the client's filename."""

    content: bytes
    filename: Optional[str] = None


class InventoryService:
    """
    Business logic layer for inventory records and their photos.

    Responsibilities:
        - create_item(): insert with optional photo
        - list_items() / get_item() / search(): read-only projections
        - update_item(): name/description, no photo coupling
        - fetch_photo(): photo bytes, telling "no photo" from "photo lost"
        - replace_photo(): put → swap → reclaim
        - delete_item(): delete row → reclaim
        - sweep_orphans(): garbage-collect unreferenced photos
    """

    def __init__(self, records: RecordStore, assets: AssetStore, settings: Settings):
        self.records = records
        self.assets = assets
        self.settings = settings

    # ── Projections ───────────────────────────────────────────────────────

    @staticmethod
    def _to_response(record: InventoryRecord) -> InventoryItemResponse:
        return InventoryItemResponse(
            id=record.id,
            name=record.name,
            description=record.description,
            photo=record.asset_ref,
            photo_url=photo_url_for(record.id) if record.asset_ref else None,
            created_at=record.created_at,
        )

    def _check_upload(self, photo: PhotoUpload) -> None:
        if len(photo.content) > self.settings.max_file_size:
            max_mb = self.settings.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=f"Photo exceeds the maximum size of {max_mb:.0f}MB.",
                field="photo",
                context={"max_size": self.settings.max_file_size, "actual_size": len(photo.content)},
            )

    # ── Reclaim ───────────────────────────────────────────────────────────

    async def _reclaim(self, asset_ref: str, reason: str) -> bool:
        """
        Delete an asset nothing references any more, with bounded retries.

        Returns:
            True if the asset is gone, False if it was left as an orphan.
        """
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(StoreUnavailableError),
                stop=stop_after_attempt(self.settings.reclaim_max_attempts),
                wait=wait_exponential_jitter(
                    initial=self.settings.reclaim_min_wait,
                    max=self.settings.reclaim_max_wait,
                    jitter=self.settings.reclaim_min_wait,
                ),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    await self.assets.delete(asset_ref)
        except Exception as e:
            logger.error(
                "Orphaned asset %s left in storage (%s): %s",
                asset_ref,
                reason,
                str(e),
                exc_info=not isinstance(e, StoreUnavailableError),
            )
            return False
        return True

    # ── Operations ────────────────────────────────────────────────────────

    async def create_item(
        self,
        name: Optional[str],
        description: Optional[str] = None,
        photo: Optional[PhotoUpload] = None,
    ) -> InventoryItemResponse:
        """
        Create an inventory item, storing its photo first if one is given.

        Raises:
            ValidationError: blank or over-long name, or oversized photo
                (nothing stored).
            StoreUnavailableError: either store unreachable. If the photo was
                stored and the insert failed, the photo stays as an orphan.
        """
        require_name(name)
        asset_ref = None
        # An empty upload is no photo, same as on replace
        if photo is not None and photo.content:
            self._check_upload(photo)
            asset_ref = await self.assets.put(photo.content, photo.filename)

        try:
            record = await self.records.create(name, description or None, asset_ref)
        except Exception:
            if asset_ref:
                logger.warning(
                    "Insert failed after storing photo %s; leaving it for the orphan sweep",
                    asset_ref,
                )
            raise

        return self._to_response(record)

    async def list_items(self) -> List[InventoryListItem]:
        records = await self.records.list_all()
        return [
            InventoryListItem(
                id=record.id,
                name=record.name,
                description=record.description,
                photo_url=photo_url_for(record.id) if record.asset_ref else None,
            )
            for record in records
        ]

    async def get_item(self, item_id: int) -> InventoryItemResponse:
        return self._to_response(await self.records.get(item_id))

    async def update_item(
        self,
        item_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> InventoryItemResponse:
        """Partial update of name/description; omitted fields are kept."""
        record = await self.records.update_fields(item_id, name=name, description=description)
        return self._to_response(record)

    async def search(self, item_id: int, include_photo_hint: bool = False) -> SearchResponse:
        """
        Look up one item by id.

        With include_photo_hint, an item that has a photo gets photo_url
        pointing at the photo endpoint; the bytes are never inlined.
        """
        record = await self.records.get(item_id)
        return SearchResponse(
            id=record.id,
            name=record.name,
            description=record.description,
            photo_url=(
                photo_url_for(record.id)
                if include_photo_hint and record.asset_ref
                else None
            ),
        )

    async def fetch_photo(self, item_id: int) -> Tuple[bytes, str]:
        """
        Return (photo bytes, media type) for an item.

        A reference can vanish between reading the row and reading the file
        when a concurrent replace wins the race. In that case the row is read
        again and the new reference is tried once before reporting the
        reference as broken.

        Raises:
            NotFoundError: no such item.
            AssetNotFoundError: the item has no photo.
            DanglingAssetReferenceError: the item's reference cannot be read.
        """
        record = await self.records.get(item_id)
        for attempt in range(2):
            if not record.asset_ref:
                raise AssetNotFoundError(context={"item_id": item_id})
            try:
                content = await self.assets.get(record.asset_ref)
                return content, media_type_for(record.asset_ref)
            except AssetNotFoundError:
                current = await self.records.get(item_id)
                if attempt == 0 and current.asset_ref != record.asset_ref:
                    record = current
                    continue
                logger.error(
                    "Inventory item %d references missing asset %s",
                    item_id,
                    record.asset_ref,
                )
                raise DanglingAssetReferenceError(item_id=item_id, asset_ref=record.asset_ref)

        raise DanglingAssetReferenceError(item_id=item_id, asset_ref=record.asset_ref)

    async def replace_photo(
        self,
        item_id: int,
        photo: Optional[PhotoUpload],
    ) -> PhotoReplaceResponse:
        """
        Replace (or add) an item's photo: put new → swap reference → reclaim old.

        Raises:
            NotFoundError: no such item (checked before anything is stored).
            ValidationError: no photo attached, or photo too large.
            StoreUnavailableError: a store failed before the swap committed;
                the item still shows its previous photo.
        """
        # NotFound before anything is stored
        await self.records.get(item_id)
        if photo is None or not photo.content:
            raise ValidationError(message="Bad Request: photo file required", field="photo")
        self._check_upload(photo)

        new_ref = await self.assets.put(photo.content, photo.filename)

        try:
            swap = await self.records.update_asset_ref(item_id, new_ref)
        except NotFoundError:
            # Deleted between our read and the swap: the new photo was never linked
            await self._reclaim(new_ref, reason="item deleted before photo swap")
            raise
        except Exception:
            logger.error(
                "Photo swap for item %d failed; new asset %s left for the orphan sweep",
                item_id,
                new_ref,
            )
            raise

        previous_ref = swap.previous_ref
        warnings = []
        if previous_ref and previous_ref != new_ref:
            if not await self._reclaim(previous_ref, reason=f"replaced on item {item_id}"):
                warnings.append(RECLAIM_WARNING)

        updated = self._to_response(swap.record)
        return PhotoReplaceResponse(**updated.model_dump(), warnings=warnings)

    async def delete_item(self, item_id: int) -> DeleteResponse:
        """
        Delete the row first, then its photo.

        Raises:
            NotFoundError: no such item (also on a second delete of the same id).
        """
        asset_ref = await self.records.delete(item_id)

        warnings = []
        if asset_ref:
            if not await self._reclaim(asset_ref, reason=f"item {item_id} deleted"):
                warnings.append(RECLAIM_WARNING)

        return DeleteResponse(id=item_id, warnings=warnings)

    async def sweep_orphans(self, grace_seconds: Optional[int] = None) -> List[str]:
        """
        Delete stored photos that no item references.

        Only assets older than the grace period are considered, so a photo
        stored by an in-flight create/replace that has not swapped its
        reference in yet is never touched.

        Returns:
            The references that were deleted.
        """
        grace = self.settings.orphan_grace_seconds if grace_seconds is None else grace_seconds
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=grace)

        # Assets first, references second: anything stored after the listing
        # is simply not a candidate this round
        stored = await self.assets.list_refs()
        referenced = await self.records.referenced_asset_refs()

        reclaimed = []
        for asset in stored:
            if asset.asset_ref in referenced or asset.stored_at > cutoff:
                continue
            if await self._reclaim(asset.asset_ref, reason="orphan sweep"):
                reclaimed.append(asset.asset_ref)

        logger.info(
            "Orphan sweep finished: %d stored, %d referenced, %d reclaimed",
            len(stored),
            len(referenced),
            len(reclaimed),
        )
        return reclaimed
