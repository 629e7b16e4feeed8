"""create products table (status enum + soft delete)

Revision ID: 5f2a9c1d7e40
Revises:
Create Date: 2025-12-19 06:15:23.000000
"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

from catalogue.database import DEFAULT_SCHEMA

# --- Alembic identifiers ---
revision: str = "5f2a9c1d7e40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLE = "products"
STATUSES = ("active", "inactive", "deleted")


def upgrade() -> None:
    op.create_table(
        TABLE,
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*STATUSES, name="product_status", native_enum=False, create_constraint=True, length=16),
            nullable=False,
            server_default="active",
        ),
        sa.Column("created_by", sa.Integer, nullable=True),
        sa.Column("updated_by", sa.Integer, nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        schema=DEFAULT_SCHEMA,
    )
    op.create_index("ix_products_name", TABLE, ["name"], schema=DEFAULT_SCHEMA, unique=False)
    op.create_index("ix_products_deleted_at", TABLE, ["deleted_at"], schema=DEFAULT_SCHEMA, unique=False)


def downgrade() -> None:
    op.drop_index("ix_products_deleted_at", table_name=TABLE, schema=DEFAULT_SCHEMA)
    op.drop_index("ix_products_name", table_name=TABLE, schema=DEFAULT_SCHEMA)
    op.drop_table(TABLE, schema=DEFAULT_SCHEMA)
