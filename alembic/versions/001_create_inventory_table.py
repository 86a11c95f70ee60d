"""Create inventory table

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Creates the `inventory` table.
How:   Integer primary key from a sequence (never reused after deletes);
       `photo` holds the asset store reference, NULL for no photo.

Rollback: downgrade() drops the table (destructive, all records lost).
          Photos in the asset store are not touched.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "inventory",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "name",
            sa.String(255),
            nullable=False,
            comment="Display name, required and non-empty",
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "photo",
            sa.String(255),
            nullable=True,
            comment="Asset store reference of the item photo; NULL means no photo",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    # Orphan sweeps read every referenced photo
    op.create_index("idx_inventory_photo", "inventory", ["photo"])


def downgrade() -> None:
    op.drop_index("idx_inventory_photo", table_name="inventory")
    op.drop_table("inventory")
