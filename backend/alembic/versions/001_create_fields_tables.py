"""create_fields_tables

Revision ID: 001_create_fields_tables
Revises:
Create Date: 2026-10-19 00:00:00.000000 UTC

Creates the custom-fields tables:
  - fields        (field definitions, JSONB params/attributes)
  - field_values  (one text value per field per item; field_id is not a
                   foreign key, so deleting a field leaves its values)
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_create_fields_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- fields table ---
    op.create_table(
        "fields",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False, comment="UUID primary key - exposed as fieldId"),
        sa.Column("name", sa.String(length=255), nullable=False, comment="Machine-readable field name, unique per context"),
        sa.Column("label", sa.String(length=255), nullable=False, comment="Human-readable label shown in forms and error messages"),
        sa.Column("type", sa.String(length=20), nullable=False, comment="FieldType value: text, numeric, drop_down, multi_select, ..."),
        sa.Column("context", sa.String(length=20), nullable=False, comment="Entity category: USERS, COHORTS, ORGANIZATIONS, APPLICATIONS"),
        sa.Column("context_type", sa.String(length=100), nullable=True, comment="Optional sub-classification within the context"),
        sa.Column("ordering", sa.Integer(), nullable=False, server_default="0", comment="Display/sort order, ties broken by created_at"),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("field_params", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("field_attributes", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("source_details", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("depends_on", postgresql.JSONB(astext_type=sa.Text()), nullable=True, comment="Conditional visibility / dependency on other fields"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", "context", name="uq_fields_name_context"),
    )
    op.create_index(op.f("ix_fields_context"), "fields", ["context"], unique=False)
    op.create_index("ix_fields_context_context_type", "fields", ["context", "context_type"], unique=False)
    op.create_index("ix_fields_context_ordering", "fields", ["context", "ordering"], unique=False)

    # --- field_values table ---
    op.create_table(
        "field_values",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False, comment="UUID row identifier"),
        sa.Column("field_id", postgresql.UUID(as_uuid=False), nullable=False, comment="fields.id of the definition; not a foreign key, values outlive a deleted field"),
        sa.Column("item_id", sa.String(length=255), nullable=False, comment="Entity instance the value belongs to (userId, cohortId, ...)"),
        sa.Column("value", sa.Text(), nullable=True, comment="Raw value as text. Never logged."),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True, comment="Value-specific metadata, e.g. original filename for file fields"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("field_id", "item_id", name="uq_field_values_field_item"),
    )
    op.create_index(op.f("ix_field_values_field_id"), "field_values", ["field_id"], unique=False)
    op.create_index(op.f("ix_field_values_item_id"), "field_values", ["item_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_field_values_item_id"), table_name="field_values")
    op.drop_index(op.f("ix_field_values_field_id"), table_name="field_values")
    op.drop_table("field_values")
    op.drop_index("ix_fields_context_ordering", table_name="fields")
    op.drop_index("ix_fields_context_context_type", table_name="fields")
    op.drop_index(op.f("ix_fields_context"), table_name="fields")
    op.drop_table("fields")
