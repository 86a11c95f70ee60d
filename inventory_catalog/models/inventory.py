"""
Inventory Catalog Backend — Inventory Item SQLAlchemy Model
============================================================

What:  ORM model for the `inventory` table.
Why:   Maps inventory rows to Python objects for the record store.
Who:   Used by RecordStore for CRUD and by Alembic for schema management.

Table Design Rationale:
    - Integer autoincrement primary key: ids are assigned in increasing order
      and never handed out again after a delete (PostgreSQL SERIAL sequence;
      AUTOINCREMENT on SQLite, which otherwise may reuse the highest rowid).
    - photo: opaque asset reference, relative to the asset store root.
      NULL means "no photo". The attribute is called asset_ref; the column
      keeps the historical name `photo`.
    - created_at: set once on insert, never updated.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import TIMESTAMP, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from inventory_catalog.database import Base

# Matches VARCHAR(255); longer names are rejected before any INSERT
NAME_MAX_LENGTH = 255


class InventoryItem(Base):
    """
    One inventory record.

    Lifecycle:
        1. Inserted by POST /register, with or without asset_ref
        2. name/description changed by PUT /inventory/{id}
        3. asset_ref swapped by PUT /inventory/{id}/photo
        4. Deleted by DELETE /inventory/{id} (hard delete)
    """

    __tablename__ = "inventory"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    name: Mapped[str] = mapped_column(
        String(NAME_MAX_LENGTH),
        nullable=False,
        comment="Display name, required and non-empty",
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        default=None,
    )

    asset_ref: Mapped[Optional[str]] = mapped_column(
        "photo",
        String(255),
        nullable=True,
        default=None,
        comment="Asset store reference of the item photo; NULL means no photo",
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    # Orphan sweeps collect all referenced photos
    __table_args__ = (
        Index("idx_inventory_photo", "photo"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryItem(id={self.id}, name='{self.name}', "
            f"asset_ref={self.asset_ref!r})>"
        )
