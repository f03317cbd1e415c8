"""
errors.py - Domain error hierarchy for the custom-fields engine and the
profile verification matcher.

  NotFoundError  - referenced field or field value does not exist
  BadInputError  - a value fails type, option, rule or required-ness validation
  ConfigError    - matcher configuration missing or malformed (fatal for a run)
  LookupMiss     - one document-type candidate could not be evaluated;
                   raised and caught inside the matcher only

BadInputError subclasses ValueError so callers that already treat ValueError
as a data problem (422) keep working.
"""
from typing import Any, Optional


class NotFoundError(Exception):
    """Raised when a specific entity lookup fails (not for empty searches)."""

    def __init__(self, entity: str, key: str, message: Optional[str] = None) -> None:
        self.entity = entity
        self.key = key
        super().__init__(message or f"{entity} with ID {key} not found")


class BadInputError(ValueError):
    """
    Raised when a value violates its field definition.

    field: label (or name) of the offending field
    issue: the violated constraint, phrased for end users
    """

    def __init__(self, field: Optional[str], issue: str) -> None:
        self.field = field
        self.issue = issue
        message = f"Field {field} {issue}" if field else issue
        super().__init__(message)

    def to_detail(self) -> dict[str, Any]:
        return {"field": self.field, "issue": self.issue}


class ConfigError(RuntimeError):
    """Raised when the matcher configuration cannot be read or parsed."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        super().__init__(f"Profile validator config '{key}': {message}")


class LookupMiss(Exception):
    """A single candidate document type yielded nothing to compare."""
