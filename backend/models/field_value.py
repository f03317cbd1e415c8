"""
models/field_value.py - SQLAlchemy ORM model for custom field values.

Table: field_values
One row per (field_id, item_id). The value is always text; how it is read
depends on the referenced field's type. item_id is a generic reference to a
user, cohort, organization or application.

field_id carries no foreign key: deleting a definition leaves its values in
place, and reads join them back to fields so orphans drop out of every view.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from backend.database import Base


class FieldValueORM(Base):
    """ORM model for a single stored field value."""
    __tablename__ = "field_values"
    __table_args__ = (
        UniqueConstraint("field_id", "item_id", name="uq_field_values_field_item"),
    )

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="UUID row identifier",
    )
    field_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        nullable=False,
        index=True,
        comment="fields.id of the definition; not a foreign key, values outlive a deleted field",
    )
    item_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Entity instance the value belongs to (userId, cohortId, ...)",
    )
    value: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Raw value as text. Never logged.",
    )
    metadata_: Mapped[Optional[dict]] = mapped_column(
        "metadata",
        JSONB,
        nullable=True,
        comment="Value-specific metadata, e.g. original filename for file fields",
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
