"""
service.py - Custom Fields Engine.

Maintains field definitions and their per-item values on top of a FieldStore.

Rules enforced here (not in the store):
  - NotFoundError for a missing field / value on single-entity operations
  - Every value in an upsert batch is validated BEFORE the first write, so a
    batch that fails validation leaves storage untouched
  - Values are stored as text exactly as supplied; interpretation is by type

Logging: field ids, item ids and counts only. Values never appear in logs.
"""
import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from backend.customfields.schemas import (
    CustomFieldView,
    FieldContext,
    FieldDefinition,
    FieldDefinitionCreate,
    FieldDefinitionUpdate,
    FieldQuery,
    FieldStatistics,
    FieldValue,
    FieldValueItem,
    FieldValueWithDefinition,
    ItemCustomFields,
)
from backend.customfields.store import FieldStore
from backend.customfields.validator import validate_field_value
from backend.errors import BadInputError, NotFoundError

logger = logging.getLogger(__name__)


def _filter_text(expected: Any) -> str:
    return expected if isinstance(expected, str) else json.dumps(expected)


class CustomFieldsEngine:
    """Typed custom-field definitions and values for any item in a context."""

    def __init__(self, store: FieldStore) -> None:
        self.store = store

    # ---------------------------------------------------------------------------
    # Definitions
    # ---------------------------------------------------------------------------

    async def create_field(self, definition: FieldDefinitionCreate) -> FieldDefinition:
        data = definition.model_dump(exclude_none=True)
        field = FieldDefinition(**data)
        created = await self.store.create_field(field)
        logger.info("Field created field_id=%s context=%s", created.field_id, created.context.value)
        return created

    async def list_fields(self, query: Optional[FieldQuery] = None) -> list[FieldDefinition]:
        """Definitions matching every non-None filter, by ordering then creation time."""
        return await self.store.list_fields(query or FieldQuery())

    async def get_field(self, field_id: str) -> FieldDefinition:
        field = await self.store.get_field(field_id)
        if field is None:
            raise NotFoundError("Field", field_id)
        return field

    async def update_field(self, field_id: str, patch: FieldDefinitionUpdate) -> FieldDefinition:
        """
        Apply only the keys present in patch. Existing values are not revalidated.

        The merged definition is validated as a whole, so an explicit null for
        a required attribute (type, name, isRequired, ...) is rejected.
        """
        field = await self.get_field(field_id)
        changes = patch.model_dump(exclude_unset=True)
        try:
            updated = FieldDefinition.model_validate({**field.model_dump(), **changes})
        except ValidationError as exc:
            error = exc.errors()[0]
            name = ".".join(str(part) for part in error["loc"]) or None
            raise BadInputError(name, error["msg"]) from exc
        saved = await self.store.save_field(updated)
        logger.info("Field updated field_id=%s keys=%s", field_id, sorted(changes))
        return saved

    async def delete_field(self, field_id: str) -> None:
        """Delete a definition. Its values are kept and drop out of the joined views."""
        if not await self.store.delete_field(field_id):
            raise NotFoundError("Field", field_id)
        logger.info("Field deleted field_id=%s", field_id)

    # ---------------------------------------------------------------------------
    # Values
    # ---------------------------------------------------------------------------

    async def upsert_values(self, item_id: str, items: list[FieldValueItem]) -> list[FieldValue]:
        """
        Validate and store a batch of values for one item.

        Phase 1 loads every definition (NotFoundError on the first missing one)
        and validates every value (BadInputError on the first violation).
        Phase 2 writes sequentially. Repeating the same pair leaves one row
        holding the latest value.
        """
        checked: list[FieldValueItem] = []
        for item in items:
            field = await self.get_field(item.field_id)
            validate_field_value(field, item.value)
            checked.append(item)

        saved = [
            await self.store.upsert_value(item.field_id, item_id, item.value, item.metadata)
            for item in checked
        ]
        logger.info("Upserted field values item_id=%s count=%d", item_id, len(saved))
        return saved

    async def get_values_for_item(self, item_id: str) -> list[FieldValueWithDefinition]:
        return await self.store.list_values_with_fields(item_id)

    async def get_item_with_fields(self, item_id: str, context: FieldContext) -> ItemCustomFields:
        """
        Every definition of context with this item's value, or None when unset.
        This is the canonical "entity + custom fields" view.
        """
        fields = await self.store.list_fields(FieldQuery(context=context))
        values = {v.field_id: v.value for v in await self.store.list_values_with_fields(item_id)}
        return ItemCustomFields(
            item_id=item_id,
            custom_fields=[CustomFieldView.from_definition(f, values.get(f.field_id)) for f in fields],
        )

    async def delete_value(self, field_id: str, item_id: str) -> None:
        if not await self.store.delete_value(field_id, item_id):
            raise NotFoundError("Field value", f"{field_id}/{item_id}")
        logger.info("Field value deleted field_id=%s item_id=%s", field_id, item_id)

    async def delete_all_values_for_item(self, item_id: str) -> int:
        return await self.store.delete_values_for_item(item_id)

    async def delete_values_for_item(self, item_id: str, field_ids: list[str]) -> int:
        """Delete only the listed fields' values for item_id. Idempotent."""
        return await self.store.delete_values_for_item(item_id, field_ids)

    # ---------------------------------------------------------------------------
    # Search / statistics
    # ---------------------------------------------------------------------------

    async def search_by_fields(self, context: FieldContext, filters: dict[str, Any]) -> list[str]:
        """
        Item ids whose values equal every resolvable filter (logical AND).

        Values are stored as text, so a non-string filter (42, true) is compared
        by its JSON text ("42", "true").

        Field names that do not exist in context are skipped and do not narrow
        the result. With no resolvable filter, every item holding a value for
        some field of context is returned.
        """
        matched: Optional[list[str]] = None
        for name, expected in filters.items():
            field = await self.store.find_field_by_name(name, context)
            if field is None:
                logger.debug("Search filter skipped, unknown field context=%s", context.value)
                continue
            item_ids = await self.store.item_ids_with_value(field.field_id, _filter_text(expected))
            if matched is None:
                matched = item_ids
            else:
                allowed = set(item_ids)
                matched = [i for i in matched if i in allowed]

        if matched is None:
            return await self.store.item_ids_for_context(context)
        return matched

    async def get_field_statistics(self, context: FieldContext) -> list[FieldStatistics]:
        fields = await self.store.list_fields(FieldQuery(context=context))
        counts = await self.store.count_values_by_field([f.field_id for f in fields])
        return [
            FieldStatistics(
                field_id=f.field_id,
                name=f.name,
                label=f.label,
                type=f.type,
                value_count=counts.get(f.field_id, 0),
                is_required=f.is_required,
                is_hidden=f.is_hidden,
            )
            for f in fields
        ]
