"""
Custom-field value validator.

Validates one raw text value against its FieldDefinition. Runs BEFORE any
write, so a batch with a bad value never touches storage.

Rules, in order:
  1. Required-ness   empty (None / whitespace) fails only when isRequired;
                     an empty optional value skips every other rule
  2. Type rule       one function per FieldType, dispatched via _TYPE_RULES
  3. Param rules     fieldParams.validation: regex, minLength, maxLength,
                     min / max (numeric-like types only)

The first violation raises BadInputError(label, issue); later rules are not
evaluated.
"""
from __future__ import annotations

import json
import logging
import math
import re
from datetime import datetime
from typing import Any, Callable, Optional

from pydantic import AnyUrl, TypeAdapter, ValidationError

from backend.customfields.schemas import NUMERIC_TYPES, FieldDefinition, FieldType
from backend.errors import BadInputError

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_URL_ADAPTER = TypeAdapter(AnyUrl)

# Regional date spellings accepted in addition to ISO 8601
_EXTRA_DATE_FORMATS = ("%d-%m-%Y", "%d/%m/%Y", "%Y/%m/%d")

# A rule returns None when the value passes, otherwise the issue text
TypeRule = Callable[[str, FieldDefinition], Optional[str]]


def is_empty_value(value: Optional[str]) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


# ---------------------------------------------------------------------------
# Type rules
# ---------------------------------------------------------------------------

def _no_rule(value: str, field: FieldDefinition) -> Optional[str]:
    return None


def _numeric_rule(value: str, field: FieldDefinition) -> Optional[str]:
    try:
        number = float(value)
    except ValueError:
        return "must be a valid number"
    if math.isnan(number):
        return "must be a valid number"
    return None


def _parse_iso(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def _date_rule(value: str, field: FieldDefinition) -> Optional[str]:
    if _parse_iso(value) is not None:
        return None
    for fmt in _EXTRA_DATE_FORMATS:
        try:
            datetime.strptime(value.strip(), fmt)
            return None
        except ValueError:
            continue
    return "must be a valid date"


def _datetime_rule(value: str, field: FieldDefinition) -> Optional[str]:
    if _parse_iso(value) is None:
        return "must be a valid datetime"
    return None


def _email_rule(value: str, field: FieldDefinition) -> Optional[str]:
    if not _EMAIL_PATTERN.match(value):
        return "must be a valid email address"
    return None


def _url_rule(value: str, field: FieldDefinition) -> Optional[str]:
    try:
        _URL_ADAPTER.validate_python(value)
    except ValidationError:
        return "must be a valid URL"
    return None


def _single_option_rule(value: str, field: FieldDefinition) -> Optional[str]:
    options = field.option_values()
    if options is not None and value not in options:
        return f"value must be one of: {', '.join(str(o) for o in options)}"
    return None


def _multi_option_rule(value: str, field: FieldDefinition) -> Optional[str]:
    try:
        selected = json.loads(value)
    except json.JSONDecodeError:
        return "must be a JSON array of values"
    if not isinstance(selected, list):
        return "must be a JSON array of values"

    options = field.option_values()
    if options is None:
        return None
    invalid = [item for item in selected if item not in options]
    if invalid:
        return f"contains invalid values: {', '.join(str(i) for i in invalid)}"
    return None


def _json_rule(value: str, field: FieldDefinition) -> Optional[str]:
    try:
        json.loads(value)
    except json.JSONDecodeError:
        return "must be valid JSON"
    return None


_TYPE_RULES: dict[FieldType, TypeRule] = {
    FieldType.text: _no_rule,
    FieldType.textarea: _no_rule,
    FieldType.phone: _no_rule,
    FieldType.file: _no_rule,
    FieldType.numeric: _numeric_rule,
    FieldType.currency: _numeric_rule,
    FieldType.percent: _numeric_rule,
    FieldType.rating: _numeric_rule,
    FieldType.date: _date_rule,
    FieldType.datetime: _datetime_rule,
    FieldType.email: _email_rule,
    FieldType.url: _url_rule,
    FieldType.drop_down: _single_option_rule,
    FieldType.radio: _single_option_rule,
    FieldType.multi_select: _multi_option_rule,
    FieldType.checkbox: _multi_option_rule,
    FieldType.json: _json_rule,
}

# Adding a FieldType member without a rule must fail at import, not at request time
_missing_rules = set(FieldType) - set(_TYPE_RULES)
if _missing_rules:
    raise RuntimeError(f"No validation rule for field types: {sorted(t.value for t in _missing_rules)}")


# ---------------------------------------------------------------------------
# fieldParams.validation rules
# ---------------------------------------------------------------------------

def _rule_number(rules: dict[str, Any], key: str, cast: Callable[[Any], Any]) -> Any:
    """rules[key] coerced with cast ("5" -> 5), None when the rule is absent."""
    raw = rules.get(key)
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise TypeError(key)
    return cast(raw)


def _param_rule(value: str, field: FieldDefinition) -> Optional[str]:
    rules: dict[str, Any] = field.validation_rules()
    if not rules:
        return None

    pattern = rules.get("regex")
    if pattern:
        try:
            if re.search(pattern, value) is None:
                return "does not match the required pattern"
        except re.error:
            return "has an invalid pattern configured"

    try:
        min_length = _rule_number(rules, "minLength", int)
        max_length = _rule_number(rules, "maxLength", int)
        minimum = _rule_number(rules, "min", float)
        maximum = _rule_number(rules, "max", float)
    except (TypeError, ValueError):
        logger.warning("Invalid validation rule configured field_id=%s", field.field_id)
        return "has an invalid validation rule configured"

    if min_length and len(value) < min_length:
        return f"is too short. Minimum length is {min_length}"
    if max_length and len(value) > max_length:
        return f"is too long. Maximum length is {max_length}"

    if field.type in NUMERIC_TYPES:
        number = float(value)  # type rule already guaranteed this parses
        if minimum is not None and number < minimum:
            return f"is too small. Minimum value is {rules['min']}"
        if maximum is not None and number > maximum:
            return f"is too large. Maximum value is {rules['max']}"
    return None


def validate_field_value(field: FieldDefinition, value: Optional[str]) -> None:
    """
    Validate a raw value against its field definition.

    Args:
        field: The definition the value will be stored against.
        value: Raw text as supplied by the caller (None allowed).

    Raises:
        BadInputError: naming the field label and the violated constraint.
    """
    if is_empty_value(value):
        if field.is_required:
            raise BadInputError(field.label, "is required")
        return

    issue = _TYPE_RULES[field.type](value, field) or _param_rule(value, field)
    if issue:
        # Log the field id and rule outcome only, never the value
        logger.info("Field value rejected field_id=%s type=%s", field.field_id, field.type.value)
        raise BadInputError(field.label, issue)
