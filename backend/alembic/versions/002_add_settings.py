"""add_settings

Revision ID: 002_add_settings
Revises: 001_create_fields_tables
Create Date: 2026-10-19 00:00:00.000000 UTC

Creates the settings table for admin key-value configuration.
The profile validator reads its attribute/document mappings from here when
PROFILE_VALIDATOR_SOURCE=settings.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "002_add_settings"
down_revision: Union[str, None] = "001_create_fields_tables"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "settings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("key", sa.String(255), nullable=False, comment="Configuration key"),
        sa.Column(
            "value",
            postgresql.JSONB(),
            nullable=False,
            comment="Configuration document",
        ),
        sa.Column("created_by", sa.String(255), nullable=False),
        sa.Column("updated_by", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key"),
    )


def downgrade() -> None:
    op.drop_table("settings")
