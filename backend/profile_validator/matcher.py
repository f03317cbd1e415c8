"""
matcher.py - Profile Verification Matcher.

For each attribute of a user's profile, decides whether any parsed
verifiable credential corroborates the claimed value.

Per attribute:
  1. A None claim is unverified.
  2. Document types from config[attribute] are tried in order.
  3. For one document type, the first mapping entry with an available
     credential (same vcType, docFormat == entry.format, same docType) is the
     only entry evaluated.
  4. The value is resolved by path, then compared:
       fieldValues synonyms  -> case-insensitive synonym membership
       date attributes       -> both sides normalized to YYYY-MM-DD
       anything else         -> exact, case-sensitive string equality
  5. The first verifying document type ends the scan and is the only entry
     of docsUsed.

A missing doc map, credential or path is a LookupMiss: logged at DEBUG and
the next document type is tried. It never escapes match().

Logging: attribute names and doc types only - claimed values and
credential content are never logged.
"""
import logging
import re
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from backend.errors import LookupMiss
from backend.profile_validator.json_path import resolve_path
from backend.profile_validator.schemas import (
    DocumentFieldMapEntry,
    MatcherConfig,
    ProfileAttributeMatchResult,
    VerifiableCredential,
)

logger = logging.getLogger(__name__)

NAME_ATTRIBUTES = ("firstName", "middleName", "lastName")
FULL_NAME_FIELD = "name"
JSON_FORMAT = "json"

# (pattern, day-first) - searched in this order, first hit wins
_DATE_PATTERNS = (
    (re.compile(r"(\d{2})-(\d{2})-(\d{4})"), True),
    (re.compile(r"(\d{4})-(\d{2})-(\d{2})"), False),
    (re.compile(r"(\d{2})/(\d{2})/(\d{4})"), True),
    (re.compile(r"(\d{4})/(\d{2})/(\d{2})"), False),
)


def normalize_date(raw: Any) -> Optional[str]:
    """
    Canonical YYYY-MM-DD for a raw date string, or None.

    Recognizes DD-MM-YYYY, YYYY-MM-DD, DD/MM/YYYY and YYYY/MM/DD anywhere in
    the string. The parts must form a real calendar date.
    """
    if not isinstance(raw, str):
        return None
    for pattern, day_first in _DATE_PATTERNS:
        match = pattern.search(raw)
        if match is None:
            continue
        if day_first:
            day, month, year = match.groups()
        else:
            year, month, day = match.groups()
        try:
            return date(int(year), int(month), int(day)).isoformat()
        except ValueError:
            return None
    return None


CredentialLike = Union[VerifiableCredential, Mapping[str, Any]]


class ProfileVerificationMatcher:
    """Pure, synchronous matcher over an immutable MatcherConfig."""

    def __init__(
        self,
        config: MatcherConfig,
        date_attributes: Iterable[str] = ("dob",),
        full_name_vc_types: Iterable[str] = ("digilocker",),
    ) -> None:
        self.config = config
        self.date_attributes = frozenset(date_attributes)
        self.full_name_vc_types = frozenset(full_name_vc_types)

    def match(
        self,
        user_profile: Mapping[str, Any],
        vcs: Sequence[CredentialLike],
    ) -> list[ProfileAttributeMatchResult]:
        """One result per attribute of user_profile, in the profile's order."""
        credentials = [
            vc if isinstance(vc, VerifiableCredential) else VerifiableCredential.model_validate(vc)
            for vc in vcs
        ]
        results = [
            self._match_attribute(attribute, claimed, credentials)
            for attribute, claimed in user_profile.items()
        ]
        logger.info(
            "Profile match complete attributes=%d verified=%d credentials=%d",
            len(results),
            sum(1 for r in results if r.verified),
            len(credentials),
        )
        return results

    # ---------------------------------------------------------------------------
    # Per attribute / per document type
    # ---------------------------------------------------------------------------

    def _match_attribute(
        self,
        attribute: str,
        claimed: Any,
        credentials: list[VerifiableCredential],
    ) -> ProfileAttributeMatchResult:
        if claimed is None:
            return ProfileAttributeMatchResult(attribute=attribute)

        for doc_type in self.config.attribute_documents.get(attribute, []):
            try:
                verified = self._match_document(doc_type, attribute, claimed, credentials)
            except LookupMiss as miss:
                logger.debug("Lookup miss attribute=%s doc_type=%s reason=%s", attribute, doc_type, miss)
                continue
            if verified:
                return ProfileAttributeMatchResult(attribute=attribute, verified=True, docs_used=[doc_type])

        return ProfileAttributeMatchResult(attribute=attribute)

    def _match_document(
        self,
        doc_type: str,
        attribute: str,
        claimed: Any,
        credentials: list[VerifiableCredential],
    ) -> bool:
        entries = self.config.doc_to_field_maps.get(doc_type)
        if entries is None:
            raise LookupMiss("no document field map")

        for entry in entries:
            credential = self._find_credential(entry, doc_type, credentials)
            if credential is None:
                continue
            resolved = self._resolve(entry, credential, doc_type, attribute)
            return self._compare(attribute, claimed, resolved)

        raise LookupMiss("no matching credential")

    @staticmethod
    def _find_credential(
        entry: DocumentFieldMapEntry,
        doc_type: str,
        credentials: list[VerifiableCredential],
    ) -> Optional[VerifiableCredential]:
        for vc in credentials:
            if vc.vc_type == entry.vc_type and vc.doc_format == entry.format and vc.doc_type == doc_type:
                return vc
        return None

    # ---------------------------------------------------------------------------
    # Value resolution
    # ---------------------------------------------------------------------------

    def _resolve(
        self,
        entry: DocumentFieldMapEntry,
        credential: VerifiableCredential,
        doc_type: str,
        attribute: str,
    ) -> Any:
        full_name = attribute in NAME_ATTRIBUTES and credential.vc_type in self.full_name_vc_types
        path = entry.fields.get(FULL_NAME_FIELD if full_name else attribute)
        if not path:
            raise LookupMiss("no path configured")
        if credential.doc_format != JSON_FORMAT:
            raise LookupMiss(f"format {credential.doc_format} is not traversable")

        value = resolve_path(credential.content, path)
        if value is None:
            raise LookupMiss("path not found")
        if full_name:
            value = self._name_part(value, doc_type, attribute)
        return value

    def _name_part(self, full_name: Any, doc_type: str, attribute: str) -> str:
        if not isinstance(full_name, str):
            raise LookupMiss("full name is not text")
        position = self.config.name_fields_position.get(doc_type, {}).get(attribute)
        if position is None:
            raise LookupMiss("no name position configured")
        # Negative positions count from the end: -1 is the last token
        parts = full_name.split()
        if not -len(parts) <= position < len(parts):
            raise LookupMiss("name position out of range")
        return parts[position]

    # ---------------------------------------------------------------------------
    # Comparison
    # ---------------------------------------------------------------------------

    def _compare(self, attribute: str, claimed: Any, resolved: Any) -> bool:
        if isinstance(resolved, (dict, list)):
            return False

        synonyms = self.config.field_values.get(attribute)
        if synonyms:
            return self._synonym_match(synonyms, claimed, resolved)

        if attribute in self.date_attributes:
            claimed_date = normalize_date(str(claimed))
            return claimed_date is not None and claimed_date == normalize_date(str(resolved))

        return str(claimed) == str(resolved)

    @staticmethod
    def _synonym_match(synonyms: dict[str, list[str]], claimed: Any, resolved: Any) -> bool:
        wanted = str(claimed).lower()
        for canonical, accepted in synonyms.items():
            if canonical.lower() == wanted:
                return str(resolved).lower() in (s.lower() for s in accepted)
        return False
