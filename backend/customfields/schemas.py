"""
schemas.py - Custom-fields Pydantic v2 data contracts.

Defines:
  - FieldType, FieldContext enums
  - FieldDefinitionCreate / FieldDefinitionUpdate / FieldQuery   (inputs)
  - FieldDefinition, FieldValue, FieldValueWithDefinition          (stored objects)
  - FieldValueItem                                                  (one upsert entry)
  - CustomFieldView, ItemCustomFields, FieldStatistics             (assembled views)

Wire format is camelCase (fieldId, contextType, isRequired, ...); Python code
uses snake_case attribute names. Both spellings are accepted on input.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class FieldType(str, Enum):
    text = "text"
    textarea = "textarea"
    numeric = "numeric"
    date = "date"
    datetime = "datetime"
    drop_down = "drop_down"
    multi_select = "multi_select"
    checkbox = "checkbox"
    radio = "radio"
    email = "email"
    phone = "phone"
    url = "url"
    file = "file"
    json = "json"
    currency = "currency"
    percent = "percent"
    rating = "rating"

    @classmethod
    def _missing_(cls, value: object) -> Optional["FieldType"]:
        # Older admin clients send "dropdown" / "multi-select"
        if isinstance(value, str):
            normalized = value.strip().lower().replace("-", "_")
            if normalized == "dropdown":
                normalized = "drop_down"
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class FieldContext(str, Enum):
    USERS = "USERS"
    COHORTS = "COHORTS"
    ORGANIZATIONS = "ORGANIZATIONS"
    APPLICATIONS = "APPLICATIONS"


NUMERIC_TYPES = frozenset({FieldType.numeric, FieldType.currency, FieldType.percent, FieldType.rating})


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Field definitions
# ---------------------------------------------------------------------------

class FieldDefinitionCreate(_CamelModel):
    """Administrative payload for a new field. fieldId is generated if omitted."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    field_id: Optional[str] = Field(
        default=None,
        description="UUID for the field. Auto-generated if omitted.",
    )
    name: str = Field(..., min_length=1, max_length=255, description="Machine-readable name, e.g. 'schoolName'.")
    label: str = Field(..., min_length=1, max_length=255, description="Label shown in forms, e.g. 'School Name'.")
    type: FieldType
    context: FieldContext
    context_type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    ordering: int = Field(default=0, ge=0, le=9999)
    is_required: bool = False
    is_hidden: bool = False
    field_params: Optional[dict[str, Any]] = Field(
        default=None,
        description=(
            "Type-specific configuration. 'options' lists allowed values for "
            "drop_down/radio/multi_select/checkbox; 'validation' may carry "
            "regex, minLength, maxLength, min, max."
        ),
    )
    field_attributes: Optional[dict[str, Any]] = None
    source_details: Optional[dict[str, Any]] = None
    depends_on: Optional[dict[str, Any]] = None

    @field_validator("field_id")
    @classmethod
    def _canonical_uuid(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            return str(uuid.UUID(v))
        except ValueError:
            raise ValueError("fieldId must be a UUID") from None


class FieldDefinitionUpdate(_CamelModel):
    """Partial update. Only keys present in the request are applied."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    label: Optional[str] = Field(default=None, min_length=1, max_length=255)
    type: Optional[FieldType] = None
    context: Optional[FieldContext] = None
    context_type: Optional[str] = Field(default=None, max_length=100)
    ordering: Optional[int] = Field(default=None, ge=0, le=9999)
    is_required: Optional[bool] = None
    is_hidden: Optional[bool] = None
    field_params: Optional[dict[str, Any]] = None
    field_attributes: Optional[dict[str, Any]] = None
    source_details: Optional[dict[str, Any]] = None
    depends_on: Optional[dict[str, Any]] = None


class FieldQuery(_CamelModel):
    """Filters for listing definitions. None means 'do not filter on this'."""
    context: Optional[FieldContext] = None
    context_type: Optional[str] = None
    type: Optional[FieldType] = None
    is_required: Optional[bool] = None
    is_hidden: Optional[bool] = None


class FieldDefinition(_CamelModel):
    field_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    label: str
    type: FieldType
    context: FieldContext
    context_type: Optional[str] = None
    ordering: int = 0
    is_required: bool = False
    is_hidden: bool = False
    field_params: Optional[dict[str, Any]] = None
    field_attributes: Optional[dict[str, Any]] = None
    source_details: Optional[dict[str, Any]] = None
    depends_on: Optional[dict[str, Any]] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def option_values(self) -> Optional[List[Any]]:
        """
        Allowed values from fieldParams.options, or None if no options are configured.

        Options may be plain scalars (["A", "B"]) or objects with a "value" key
        ([{"name": "Option A", "value": "a"}]).
        """
        options = (self.field_params or {}).get("options")
        if not options:
            return None
        return [opt.get("value") if isinstance(opt, dict) else opt for opt in options]

    def validation_rules(self) -> dict[str, Any]:
        rules = (self.field_params or {}).get("validation")
        return rules if isinstance(rules, dict) else {}


# ---------------------------------------------------------------------------
# Field values
# ---------------------------------------------------------------------------

class FieldValueItem(_CamelModel):
    """One (fieldId, value) pair in an upsert batch."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    field_id: str
    value: Optional[str] = Field(
        default=None,
        description="Raw value as text. Multi-select/checkbox values are JSON array literals.",
    )
    metadata: Optional[dict[str, Any]] = None


class FieldValue(_CamelModel):
    field_id: str
    item_id: str
    value: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class FieldValueWithDefinition(FieldValue):
    field: FieldDefinition


# ---------------------------------------------------------------------------
# Assembled views
# ---------------------------------------------------------------------------

class CustomFieldView(_CamelModel):
    """A definition joined with one item's value (value is None when unset)."""
    field_id: str
    name: str
    label: str
    type: FieldType
    context: FieldContext
    context_type: Optional[str] = None
    field_params: Optional[dict[str, Any]] = None
    field_attributes: Optional[dict[str, Any]] = None
    source_details: Optional[dict[str, Any]] = None
    depends_on: Optional[dict[str, Any]] = None
    ordering: int = 0
    is_required: bool = False
    is_hidden: bool = False
    value: Optional[str] = None

    @classmethod
    def from_definition(cls, field: FieldDefinition, value: Optional[str]) -> "CustomFieldView":
        data = field.model_dump(exclude={"created_at", "updated_at"})
        return cls(**data, value=value)


class ItemCustomFields(_CamelModel):
    item_id: str
    custom_fields: List[CustomFieldView]


class FieldStatistics(_CamelModel):
    field_id: str
    name: str
    label: str
    type: FieldType
    value_count: int
    is_required: bool
    is_hidden: bool
