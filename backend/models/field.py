"""
models/field.py - SQLAlchemy ORM model for custom field definitions.

Table: fields
One row per administrator-defined field. The field's `type` decides which
validation rule applies to every value stored against it in field_values.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from backend.database import Base


class FieldORM(Base):
    """
    ORM model for a custom field definition.

    type / context: stored as plain strings mirroring the FieldType and
                    FieldContext enums in backend.customfields.schemas.
    field_params:   type-specific configuration, e.g. {"options": [...],
                    "validation": {"regex": ..., "minLength": ...}}.
    """
    __tablename__ = "fields"
    __table_args__ = (
        UniqueConstraint("name", "context", name="uq_fields_name_context"),
        Index("ix_fields_context_context_type", "context", "context_type"),
        Index("ix_fields_context_ordering", "context", "ordering"),
    )

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="UUID primary key - exposed as fieldId",
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Machine-readable field name, unique per context",
    )
    label: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Human-readable label shown in forms and error messages",
    )
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="FieldType value: text, numeric, drop_down, multi_select, ...",
    )
    context: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        comment="Entity category: USERS, COHORTS, ORGANIZATIONS, APPLICATIONS",
    )
    context_type: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Optional sub-classification within the context",
    )
    ordering: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Display/sort order, ties broken by created_at",
    )
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    field_params: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)
    field_attributes: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)
    source_details: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)
    depends_on: Mapped[Optional[dict]] = mapped_column(
        JSONB,
        nullable=True,
        comment="Conditional visibility / dependency on other fields",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
