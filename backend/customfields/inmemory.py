"""In-memory implementation of FieldStore."""
from datetime import datetime, timezone
from typing import Any, Optional

from backend.customfields.schemas import (
    FieldContext,
    FieldDefinition,
    FieldQuery,
    FieldValue,
    FieldValueWithDefinition,
)
from backend.customfields.store import FieldStore
from backend.errors import BadInputError


class InMemoryFieldStore(FieldStore):
    """In-memory implementation of FieldStore for testing and development."""

    def __init__(self) -> None:
        self._fields: dict[str, FieldDefinition] = {}
        self._values: dict[tuple[str, str], FieldValue] = {}

    # ---- definitions ------------------------------------------------------

    async def create_field(self, field: FieldDefinition) -> FieldDefinition:
        if await self.find_field_by_name(field.name, field.context) is not None:
            raise BadInputError(field.name, f"already exists in context {field.context.value}")
        self._fields[field.field_id] = field
        return field

    async def get_field(self, field_id: str) -> Optional[FieldDefinition]:
        return self._fields.get(field_id)

    async def find_field_by_name(self, name: str, context: FieldContext) -> Optional[FieldDefinition]:
        for field in self._fields.values():
            if field.name == name and field.context == context:
                return field
        return None

    async def list_fields(self, query: FieldQuery) -> list[FieldDefinition]:
        matches = [
            field
            for field in self._fields.values()
            if (query.context is None or field.context == query.context)
            and (query.context_type is None or field.context_type == query.context_type)
            and (query.type is None or field.type == query.type)
            and (query.is_required is None or field.is_required == query.is_required)
            and (query.is_hidden is None or field.is_hidden == query.is_hidden)
        ]
        return sorted(matches, key=lambda f: (f.ordering, f.created_at))

    async def save_field(self, field: FieldDefinition) -> FieldDefinition:
        clash = await self.find_field_by_name(field.name, field.context)
        if clash is not None and clash.field_id != field.field_id:
            raise BadInputError(field.name, f"already exists in context {field.context.value}")
        field.updated_at = datetime.now(timezone.utc)
        self._fields[field.field_id] = field
        return field

    async def delete_field(self, field_id: str) -> bool:
        return self._fields.pop(field_id, None) is not None

    # ---- values -----------------------------------------------------------

    async def get_value(self, field_id: str, item_id: str) -> Optional[FieldValue]:
        return self._values.get((field_id, item_id))

    async def upsert_value(
        self,
        field_id: str,
        item_id: str,
        value: Optional[str],
        metadata: Optional[dict[str, Any]] = None,
    ) -> FieldValue:
        existing = self._values.get((field_id, item_id))
        if existing is None:
            stored = FieldValue(field_id=field_id, item_id=item_id, value=value, metadata=metadata)
        else:
            stored = existing.model_copy(
                update={"value": value, "metadata": metadata, "updated_at": datetime.now(timezone.utc)}
            )
        self._values[(field_id, item_id)] = stored
        return stored

    async def list_values_with_fields(self, item_id: str) -> list[FieldValueWithDefinition]:
        joined = [
            FieldValueWithDefinition(**stored.model_dump(), field=self._fields[field_id])
            for (field_id, stored_item_id), stored in self._values.items()
            if stored_item_id == item_id and field_id in self._fields
        ]
        return sorted(joined, key=lambda v: v.field.ordering)

    async def delete_value(self, field_id: str, item_id: str) -> bool:
        return self._values.pop((field_id, item_id), None) is not None

    async def delete_values_for_item(self, item_id: str, field_ids: Optional[list[str]] = None) -> int:
        doomed = [
            key
            for key in self._values
            if key[1] == item_id and (field_ids is None or key[0] in field_ids)
        ]
        for key in doomed:
            del self._values[key]
        return len(doomed)

    # ---- search / statistics ----------------------------------------------

    async def item_ids_with_value(self, field_id: str, value: str) -> list[str]:
        seen: dict[str, None] = {}
        for (stored_field_id, item_id), stored in self._values.items():
            if stored_field_id == field_id and stored.value == value:
                seen[item_id] = None
        return list(seen)

    async def item_ids_for_context(self, context: FieldContext) -> list[str]:
        seen: dict[str, None] = {}
        for (field_id, item_id) in self._values:
            field = self._fields.get(field_id)
            if field is not None and field.context == context:
                seen[item_id] = None
        return list(seen)

    async def count_values_by_field(self, field_ids: list[str]) -> dict[str, int]:
        counts = {field_id: 0 for field_id in field_ids}
        for (field_id, _item_id) in self._values:
            if field_id in counts:
                counts[field_id] += 1
        return counts
