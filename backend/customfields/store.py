"""FieldStore abstract interface."""
from abc import ABC, abstractmethod
from typing import Any, Optional

from backend.customfields.schemas import (
    FieldContext,
    FieldDefinition,
    FieldQuery,
    FieldValue,
    FieldValueWithDefinition,
)


class FieldStore(ABC):
    """Abstract interface for field definition and field value storage.

    Implementations only read and write; validation and NotFound semantics
    live in the engine. Lookups return None rather than raising. Writes are
    flushed but never committed; the session owner commits.
    """

    # ---- definitions ------------------------------------------------------

    @abstractmethod
    async def create_field(self, field: FieldDefinition) -> FieldDefinition:
        """Insert a definition. Raises BadInputError if (name, context) exists."""

    @abstractmethod
    async def get_field(self, field_id: str) -> Optional[FieldDefinition]:
        """Get a definition by id."""

    @abstractmethod
    async def find_field_by_name(self, name: str, context: FieldContext) -> Optional[FieldDefinition]:
        """Get a definition by its (name, context) pair."""

    @abstractmethod
    async def list_fields(self, query: FieldQuery) -> list[FieldDefinition]:
        """Filtered definitions, ordered by ordering asc then created_at asc."""

    @abstractmethod
    async def save_field(self, field: FieldDefinition) -> FieldDefinition:
        """Persist changes to an existing definition."""

    @abstractmethod
    async def delete_field(self, field_id: str) -> bool:
        """Delete a definition. Returns False if it did not exist."""

    # ---- values -----------------------------------------------------------

    @abstractmethod
    async def get_value(self, field_id: str, item_id: str) -> Optional[FieldValue]:
        """Get the stored value for one (field, item) pair."""

    @abstractmethod
    async def upsert_value(
        self,
        field_id: str,
        item_id: str,
        value: Optional[str],
        metadata: Optional[dict[str, Any]] = None,
    ) -> FieldValue:
        """Insert or overwrite the single value for (field, item)."""

    @abstractmethod
    async def list_values_with_fields(self, item_id: str) -> list[FieldValueWithDefinition]:
        """Item values joined with their definitions, ordered by definition ordering."""

    @abstractmethod
    async def delete_value(self, field_id: str, item_id: str) -> bool:
        """Delete one value. Returns False if it did not exist."""

    @abstractmethod
    async def delete_values_for_item(self, item_id: str, field_ids: Optional[list[str]] = None) -> int:
        """Delete an item's values (all, or only field_ids). Returns rows deleted."""

    # ---- search / statistics ----------------------------------------------

    @abstractmethod
    async def item_ids_with_value(self, field_id: str, value: str) -> list[str]:
        """Distinct item ids whose stored value for field_id equals value exactly."""

    @abstractmethod
    async def item_ids_for_context(self, context: FieldContext) -> list[str]:
        """Distinct item ids holding at least one value of a field in context."""

    @abstractmethod
    async def count_values_by_field(self, field_ids: list[str]) -> dict[str, int]:
        """Number of stored values per field id (missing ids count 0)."""
