"""
store.py - PostgreSQL data access facade.

PostgresFieldStore implements backend.customfields.store.FieldStore over an
AsyncSession; the settings helpers at the bottom back SettingsConfigSource.

Design principles:
  - All methods are async and run on the caller's AsyncSession
  - No raw SQL: ORM-only queries
  - Logs only field_id / item_id / setting key - never stored values
  - Returns domain Pydantic objects (not ORM instances) so callers are persistence-agnostic
  - Uses flush() (not commit()) - session_scope() / get_db() handles commit
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.customfields.schemas import (
    FieldContext,
    FieldDefinition,
    FieldQuery,
    FieldValue,
    FieldValueWithDefinition,
)
from backend.customfields.store import FieldStore
from backend.errors import BadInputError, NotFoundError
from backend.models.field import FieldORM
from backend.models.field_value import FieldValueORM
from backend.models.setting import SettingORM

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ORM <-> domain mapping
# ---------------------------------------------------------------------------

def _field_from_orm(orm: FieldORM) -> FieldDefinition:
    return FieldDefinition(
        field_id=orm.id,
        name=orm.name,
        label=orm.label,
        type=orm.type,
        context=orm.context,
        context_type=orm.context_type,
        ordering=orm.ordering,
        is_required=orm.is_required,
        is_hidden=orm.is_hidden,
        field_params=orm.field_params,
        field_attributes=orm.field_attributes,
        source_details=orm.source_details,
        depends_on=orm.depends_on,
        created_at=orm.created_at,
        updated_at=orm.updated_at,
    )


def _apply_field(orm: FieldORM, field: FieldDefinition) -> None:
    orm.name = field.name
    orm.label = field.label
    orm.type = field.type.value
    orm.context = field.context.value
    orm.context_type = field.context_type
    orm.ordering = field.ordering
    orm.is_required = field.is_required
    orm.is_hidden = field.is_hidden
    orm.field_params = field.field_params
    orm.field_attributes = field.field_attributes
    orm.source_details = field.source_details
    orm.depends_on = field.depends_on


def _value_from_orm(orm: FieldValueORM) -> FieldValue:
    return FieldValue(
        field_id=orm.field_id,
        item_id=orm.item_id,
        value=orm.value,
        metadata=orm.metadata_,
        created_at=orm.created_at,
        updated_at=orm.updated_at,
    )


def _as_uuid(value: str) -> Optional[str]:
    """Canonical UUID text, or None when value cannot name a row in a UUID column."""
    try:
        return str(uuid.UUID(value))
    except (TypeError, ValueError, AttributeError):
        return None


def _duplicate_name(field: FieldDefinition) -> BadInputError:
    return BadInputError(field.name, f"already exists in context {field.context.value}")


# ---------------------------------------------------------------------------
# Field store
# ---------------------------------------------------------------------------

class PostgresFieldStore(FieldStore):
    """FieldStore backed by the fields / field_values tables."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _field_orm(self, field_id: str) -> Optional[FieldORM]:
        field_id = _as_uuid(field_id)
        if field_id is None:
            return None
        result = await self.db.execute(select(FieldORM).where(FieldORM.id == field_id))
        return result.scalar_one_or_none()

    async def _value_orm(self, field_id: str, item_id: str) -> Optional[FieldValueORM]:
        field_id = _as_uuid(field_id)
        if field_id is None:
            return None
        result = await self.db.execute(
            select(FieldValueORM).where(
                FieldValueORM.field_id == field_id,
                FieldValueORM.item_id == item_id,
            )
        )
        return result.scalar_one_or_none()

    # ---- definitions ------------------------------------------------------

    async def create_field(self, field: FieldDefinition) -> FieldDefinition:
        """
        Insert a new field definition.
        The (name, context) unique constraint surfaces as BadInputError; the
        savepoint keeps the outer transaction usable after the violation.
        """
        orm = FieldORM(id=field.field_id, created_at=field.created_at, updated_at=field.updated_at)
        try:
            async with self.db.begin_nested():
                _apply_field(orm, field)
                self.db.add(orm)
                await self.db.flush()
        except IntegrityError as exc:
            logger.info("Rejected duplicate field name context=%s", field.context.value)
            raise _duplicate_name(field) from exc
        logger.info("Created field field_id=%s type=%s", orm.id, orm.type)
        return _field_from_orm(orm)

    async def get_field(self, field_id: str) -> Optional[FieldDefinition]:
        orm = await self._field_orm(field_id)
        return _field_from_orm(orm) if orm is not None else None

    async def find_field_by_name(self, name: str, context: FieldContext) -> Optional[FieldDefinition]:
        result = await self.db.execute(
            select(FieldORM).where(FieldORM.name == name, FieldORM.context == context.value)
        )
        orm = result.scalar_one_or_none()
        return _field_from_orm(orm) if orm is not None else None

    async def list_fields(self, query: FieldQuery) -> list[FieldDefinition]:
        stmt = select(FieldORM)
        if query.context is not None:
            stmt = stmt.where(FieldORM.context == query.context.value)
        if query.context_type is not None:
            stmt = stmt.where(FieldORM.context_type == query.context_type)
        if query.type is not None:
            stmt = stmt.where(FieldORM.type == query.type.value)
        if query.is_required is not None:
            stmt = stmt.where(FieldORM.is_required == query.is_required)
        if query.is_hidden is not None:
            stmt = stmt.where(FieldORM.is_hidden == query.is_hidden)
        result = await self.db.execute(
            stmt.order_by(FieldORM.ordering.asc(), FieldORM.created_at.asc())
        )
        return [_field_from_orm(row) for row in result.scalars().all()]

    async def save_field(self, field: FieldDefinition) -> FieldDefinition:
        orm = await self._field_orm(field.field_id)
        if orm is None:
            raise NotFoundError("Field", field.field_id)
        try:
            async with self.db.begin_nested():
                _apply_field(orm, field)
                await self.db.flush()
        except IntegrityError as exc:
            raise _duplicate_name(field) from exc
        logger.info("Updated field field_id=%s", orm.id)
        return _field_from_orm(orm)

    async def delete_field(self, field_id: str) -> bool:
        orm = await self._field_orm(field_id)
        if orm is None:
            return False
        await self.db.delete(orm)
        await self.db.flush()
        logger.info("Deleted field field_id=%s", field_id)
        return True

    # ---- values -----------------------------------------------------------

    async def get_value(self, field_id: str, item_id: str) -> Optional[FieldValue]:
        orm = await self._value_orm(field_id, item_id)
        return _value_from_orm(orm) if orm is not None else None

    async def upsert_value(
        self,
        field_id: str,
        item_id: str,
        value: Optional[str],
        metadata: Optional[dict[str, Any]] = None,
    ) -> FieldValue:
        """
        Insert or overwrite the value for (field_id, item_id).
        One row per pair (unique constraint uq_field_values_field_item).
        """
        if _as_uuid(field_id) is None:
            raise NotFoundError("Field", field_id)
        orm = await self._value_orm(field_id, item_id)
        now = datetime.now(timezone.utc)
        if orm is None:
            orm = FieldValueORM(
                field_id=field_id,
                item_id=item_id,
                value=value,
                metadata_=metadata,
                created_at=now,
                updated_at=now,
            )
            self.db.add(orm)
        else:
            orm.value = value
            orm.metadata_ = metadata
            orm.updated_at = now
        await self.db.flush()
        logger.info("Saved field value field_id=%s item_id=%s", field_id, item_id)
        return _value_from_orm(orm)

    async def list_values_with_fields(self, item_id: str) -> list[FieldValueWithDefinition]:
        result = await self.db.execute(
            select(FieldValueORM, FieldORM)
            .join(FieldORM, FieldORM.id == FieldValueORM.field_id)
            .where(FieldValueORM.item_id == item_id)
            .order_by(FieldORM.ordering.asc(), FieldORM.created_at.asc())
        )
        return [
            FieldValueWithDefinition(**_value_from_orm(value_orm).model_dump(), field=_field_from_orm(field_orm))
            for value_orm, field_orm in result.all()
        ]

    async def delete_value(self, field_id: str, item_id: str) -> bool:
        orm = await self._value_orm(field_id, item_id)
        if orm is None:
            return False
        await self.db.delete(orm)
        await self.db.flush()
        logger.info("Deleted field value field_id=%s item_id=%s", field_id, item_id)
        return True

    async def delete_values_for_item(self, item_id: str, field_ids: Optional[list[str]] = None) -> int:
        stmt = delete(FieldValueORM).where(FieldValueORM.item_id == item_id)
        if field_ids is not None:
            field_ids = [fid for fid in map(_as_uuid, field_ids) if fid is not None]
            if not field_ids:
                return 0
            stmt = stmt.where(FieldValueORM.field_id.in_(field_ids))
        result = await self.db.execute(stmt)
        await self.db.flush()
        logger.info("Deleted field values item_id=%s count=%d", item_id, result.rowcount)
        return result.rowcount

    # ---- search / statistics ----------------------------------------------

    async def item_ids_with_value(self, field_id: str, value: str) -> list[str]:
        result = await self.db.execute(
            select(FieldValueORM.item_id)
            .where(FieldValueORM.field_id == field_id, FieldValueORM.value == value)
            .order_by(FieldValueORM.created_at.asc())
        )
        return list(dict.fromkeys(result.scalars().all()))

    async def item_ids_for_context(self, context: FieldContext) -> list[str]:
        result = await self.db.execute(
            select(FieldValueORM.item_id)
            .join(FieldORM, FieldORM.id == FieldValueORM.field_id)
            .where(FieldORM.context == context.value)
            .order_by(FieldValueORM.created_at.asc())
        )
        return list(dict.fromkeys(result.scalars().all()))

    async def count_values_by_field(self, field_ids: list[str]) -> dict[str, int]:
        counts = {field_id: 0 for field_id in field_ids}
        if not field_ids:
            return counts
        result = await self.db.execute(
            select(FieldValueORM.field_id, func.count(FieldValueORM.id))
            .where(FieldValueORM.field_id.in_(field_ids))
            .group_by(FieldValueORM.field_id)
        )
        for field_id, count in result.all():
            counts[field_id] = count
        return counts


# ---------------------------------------------------------------------------
# Settings operations (admin key-value configuration)
# ---------------------------------------------------------------------------

async def get_setting(db: AsyncSession, key: str) -> Optional[Any]:
    """
    Retrieve the JSON document stored under key.
    Returns None if the key does not exist.
    """
    result = await db.execute(select(SettingORM).where(SettingORM.key == key))
    orm = result.scalar_one_or_none()
    if orm is None:
        return None
    return orm.value


async def set_setting(db: AsyncSession, key: str, value: Any, updated_by: str = "system") -> None:
    """Upsert a settings row. Logs only the key."""
    result = await db.execute(select(SettingORM).where(SettingORM.key == key))
    orm = result.scalar_one_or_none()

    if orm is None:
        orm = SettingORM(key=key, value=value, created_by=updated_by, updated_by=updated_by)
        db.add(orm)
    else:
        orm.value = value  # SQLAlchemy detects reassignment and marks dirty
        orm.updated_by = updated_by

    await db.flush()
    logger.info("Saved setting key=%s updated_by=%s", key, updated_by)
