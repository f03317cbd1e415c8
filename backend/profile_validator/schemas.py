"""
schemas.py - Profile verification data contracts.

  DocumentFieldMapEntry        one credential variant of a document type
  VerifiableCredential         a parsed credential as supplied by the caller
  ProfileAttributeMatchResult  per-attribute outcome of a matching run
  MatcherConfig                immutable bundle of all matcher configuration

Wire format is camelCase (vcType, docType, docsUsed, ...).
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DocumentFieldMapEntry(BaseModel):
    """
    One {vcType, format, fields} entry of docToFieldMaps/<docType>.json.

    fields maps a profile attribute to a dot-separated path into the
    credential content, e.g. {"dob": "CertificateData.Student.dob"}.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    vc_type: str
    format: str
    fields: dict[str, str] = Field(default_factory=dict)


class VerifiableCredential(BaseModel):
    """A credential that has already been fetched, decrypted and parsed."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    vc_type: str = Field(..., description="Issuer format, e.g. 'digilocker'.")
    doc_type: str = Field(..., description="Document type, e.g. 'marksheet'.")
    doc_format: str = Field(..., description="Content encoding. Only 'json' is traversable.")
    content: Any = None


class ProfileAttributeMatchResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    attribute: str
    verified: bool = False
    docs_used: list[str] = Field(default_factory=list)


class MatcherConfig(BaseModel):
    """
    Everything the matcher reads, loaded once and never reloaded.

    attribute_documents: attribute -> ordered document types to check   (config.json)
    field_values:        attribute -> canonical value -> synonyms       (fieldValues.json)
    name_fields_position: docType -> name attribute -> token index      (nameFieldsPosition.json)
    doc_to_field_maps:   docType -> ordered mapping entries             (docToFieldMaps/*.json)
    """
    model_config = ConfigDict(frozen=True)

    attribute_documents: dict[str, list[str]]
    field_values: dict[str, dict[str, list[str]]] = Field(default_factory=dict)
    name_fields_position: dict[str, dict[str, int]] = Field(default_factory=dict)
    doc_to_field_maps: dict[str, list[DocumentFieldMapEntry]] = Field(default_factory=dict)
