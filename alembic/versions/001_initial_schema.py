"""Initial schema with lease_pool table

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Rows are seeded out-of-band, one per consumer group
    op.create_table(
        "lease_pool",
        sa.Column("id", sa.Integer, nullable=False, autoincrement=True),
        sa.Column("assignment_name", sa.String(255), nullable=False),
        sa.Column("holder_id", sa.String(255), nullable=True),
        sa.Column("locked_at", sa.DateTime, nullable=True),
        sa.Column("lock_expires_at", sa.DateTime, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime,
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime,
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("assignment_name", name="uq_lease_pool_assignment_name"),
    )

    # Lookup by holder for renew/release
    op.create_index("ix_lease_pool_holder_id", "lease_pool", ["holder_id"])


def downgrade() -> None:
    op.drop_index("ix_lease_pool_holder_id", table_name="lease_pool")
    op.drop_table("lease_pool")
