"""
Inventory Catalog Backend — Record Store
=========================================

What:  Durable CRUD over inventory rows, keyed by integer id.
Why:   Gives the inventory service a small, atomic API over the table so the
       photo-coupling logic never has to reason about sessions or SQL.
How:   Every operation opens its own session and transaction and commits
       before returning. When a method returns, its write is durable, so the
       caller can safely start the next step (for example deleting the photo
       a swap just displaced).
Who:   Constructed at startup with a session factory; used by InventoryService.

Atomicity:
    Each write touches only the columns it owns (name/description, or the
    photo reference), inside one transaction, with the row locked
    (SELECT ... FOR UPDATE on PostgreSQL). A concurrent text update and photo
    swap on the same id never overwrite each other's columns.

    update_asset_ref() and delete() return the reference they displaced, read
    under the same lock, so the caller reclaims exactly the asset its own
    write made unreachable, even when another request raced it.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, List, Optional, Set

from sqlalchemy import delete, select, text, update
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inventory_catalog.exceptions import NotFoundError, StoreUnavailableError, ValidationError
from inventory_catalog.models.inventory import NAME_MAX_LENGTH, InventoryItem

logger = logging.getLogger(__name__)

# Failures that mean "the database is unreachable right now", as opposed to a
# bug or a constraint violation
UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError, OSError)


@dataclass(frozen=True)
class InventoryRecord:
    """Immutable snapshot of one inventory row as committed."""

    id: int
    name: str
    description: Optional[str]
    asset_ref: Optional[str]
    created_at: datetime

    @classmethod
    def from_row(cls, row: InventoryItem) -> "InventoryRecord":
        return cls(
            id=row.id,
            name=row.name,
            description=row.description,
            asset_ref=row.asset_ref,
            created_at=row.created_at,
        )


@dataclass(frozen=True)
class AssetSwap:
    """Outcome of update_asset_ref: what was displaced and what was written."""

    previous_ref: Optional[str]
    record: InventoryRecord


def require_name(name: Optional[str]) -> str:
    if name is None or not name.strip():
        raise ValidationError(
            message="Bad Request: inventory_name is required",
            field="inventory_name",
        )
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(
            message=f"Bad Request: inventory_name must be at most {NAME_MAX_LENGTH} characters",
            field="inventory_name",
            context={"max_length": NAME_MAX_LENGTH, "actual_length": len(name)},
        )
    return name


class RecordStore:
    """
    Transaction-per-operation repository for InventoryItem rows.

    Error Handling Strategy:
        - Unknown id → NotFoundError
        - Empty name → ValidationError (checked before touching the database)
        - Connectivity failures → StoreUnavailableError(store="record_store")
        - Anything else propagates unchanged to the global 500 handler
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        """
        Open a session, begin a transaction, commit on exit.

        Rolls back on any exception; translates connectivity failures into
        StoreUnavailableError.
        """
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except UNAVAILABLE_ERRORS as e:
            logger.error("Record store unavailable during %s: %s", operation, str(e))
            raise StoreUnavailableError(
                store="record_store",
                context={"operation": operation, "error_type": type(e).__name__},
            ) from e

    @staticmethod
    async def _locked_row(session: AsyncSession, item_id: int) -> InventoryItem:
        result = await session.execute(
            select(InventoryItem).where(InventoryItem.id == item_id).with_for_update()
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(resource="inventory item", resource_id=item_id)
        return row

    async def create(
        self,
        name: str,
        description: Optional[str] = None,
        asset_ref: Optional[str] = None,
    ) -> InventoryRecord:
        """
        Insert a new row and return it with its assigned id and created_at.

        Raises:
            ValidationError: name missing or blank.
        """
        require_name(name)
        async with self._transaction("create") as session:
            row = InventoryItem(name=name, description=description, asset_ref=asset_ref)
            session.add(row)
            await session.flush()
            await session.refresh(row)
            record = InventoryRecord.from_row(row)

        logger.info("Inventory item created: id=%d asset_ref=%s", record.id, record.asset_ref)
        return record

    async def get(self, item_id: int) -> InventoryRecord:
        """
        Raises:
            NotFoundError: no row with this id.
        """
        async with self._transaction("get") as session:
            row = await session.get(InventoryItem, item_id)
            if row is None:
                raise NotFoundError(resource="inventory item", resource_id=item_id)
            return InventoryRecord.from_row(row)

    async def list_all(self) -> List[InventoryRecord]:
        """All rows ordered by id ascending; empty list if none."""
        async with self._transaction("list") as session:
            result = await session.execute(select(InventoryItem).order_by(InventoryItem.id))
            return [InventoryRecord.from_row(row) for row in result.scalars().all()]

    async def update_fields(
        self,
        item_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> InventoryRecord:
        """
        Partial update of the text columns.

        A None argument leaves that column unchanged; any other value
        overwrites it. The photo reference is never written here.

        Raises:
            ValidationError: name given but blank.
            NotFoundError: no row with this id.
        """
        values = {}
        if name is not None:
            values["name"] = require_name(name)
        if description is not None:
            values["description"] = description

        async with self._transaction("update_fields") as session:
            if values:
                result = await session.execute(
                    update(InventoryItem)
                    .where(InventoryItem.id == item_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise NotFoundError(resource="inventory item", resource_id=item_id)

            row = await session.get(InventoryItem, item_id, populate_existing=True)
            if row is None:
                raise NotFoundError(resource="inventory item", resource_id=item_id)
            record = InventoryRecord.from_row(row)

        logger.info("Inventory item %d updated: fields=%s", item_id, sorted(values))
        return record

    async def update_asset_ref(self, item_id: int, asset_ref: Optional[str]) -> AssetSwap:
        """
        Set or clear the photo reference.

        Returns:
            AssetSwap with the reference this write replaced (None if the row
            had no photo) and the row as this transaction left it.

        Raises:
            NotFoundError: no row with this id.
        """
        async with self._transaction("update_asset_ref") as session:
            row = await self._locked_row(session, item_id)
            previous = row.asset_ref
            row.asset_ref = asset_ref
            await session.flush()
            record = InventoryRecord.from_row(row)

        logger.info(
            "Inventory item %d photo reference swapped: %s -> %s",
            item_id,
            previous,
            asset_ref,
        )
        return AssetSwap(previous_ref=previous, record=record)

    async def delete(self, item_id: int) -> Optional[str]:
        """
        Permanently delete a row.

        Returns:
            The photo reference the row held (None if it had no photo).

        Raises:
            NotFoundError: no row with this id.
        """
        async with self._transaction("delete") as session:
            row = await self._locked_row(session, item_id)
            previous = row.asset_ref
            await session.execute(
                delete(InventoryItem)
                .where(InventoryItem.id == item_id)
                .execution_options(synchronize_session=False)
            )

        logger.info("Inventory item %d deleted", item_id)
        return previous

    async def referenced_asset_refs(self) -> Set[str]:
        """Every non-null photo reference currently held by a row."""
        async with self._transaction("referenced_asset_refs") as session:
            result = await session.execute(
                select(InventoryItem.asset_ref).where(InventoryItem.asset_ref.is_not(None))
            )
            return set(result.scalars().all())

    async def health_check(self) -> bool:
        """True if a trivial query succeeds."""
        try:
            async with self._transaction("health_check") as session:
                await session.execute(text("SELECT 1"))
            return True
        except StoreUnavailableError:
            return False
