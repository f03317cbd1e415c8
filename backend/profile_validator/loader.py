"""
loader.py - Builds the immutable MatcherConfig from a ConfigSource.

Failure policy:
  config                     missing or malformed  -> ConfigError (fatal)
  fieldValues                missing -> {}, malformed -> ConfigError
  nameFieldsPosition         missing -> {}, malformed -> ConfigError
  docToFieldMaps/<docType>   missing or malformed  -> skipped with a warning;
                             the matcher treats it as a lookup miss
"""
import logging
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from backend.errors import ConfigError
from backend.profile_validator.schemas import DocumentFieldMapEntry, MatcherConfig
from backend.profile_validator.sources import ConfigSource, doc_map_key

logger = logging.getLogger(__name__)

CONFIG_KEY = "config"
FIELD_VALUES_KEY = "fieldValues"
NAME_FIELDS_POSITION_KEY = "nameFieldsPosition"

_ATTRIBUTE_DOCUMENTS = TypeAdapter(dict[str, list[str]])
_FIELD_VALUES = TypeAdapter(dict[str, dict[str, list[str]]])
_NAME_FIELDS_POSITION = TypeAdapter(dict[str, dict[str, int]])
_DOC_MAP = TypeAdapter(list[DocumentFieldMapEntry])


def _validate(adapter: TypeAdapter, key: str, document: Any) -> Any:
    try:
        return adapter.validate_python(document)
    except ValidationError as exc:
        raise ConfigError(key, f"unexpected shape ({exc.error_count()} errors)") from exc


async def _optional_document(source: ConfigSource, key: str, adapter: TypeAdapter) -> Any:
    document = await source.get_json(key)
    if document is None:
        logger.info("Profile validator config key=%s not found, using empty mapping", key)
        return {}
    return _validate(adapter, key, document)


async def _load_doc_map(source: ConfigSource, doc_type: str) -> Optional[list[DocumentFieldMapEntry]]:
    key = doc_map_key(doc_type)
    try:
        document = await source.get_json(key)
        if document is None:
            logger.warning("Document field map missing doc_type=%s", doc_type)
            return None
        return _validate(_DOC_MAP, key, document)
    except ConfigError as exc:
        logger.warning("Document field map skipped doc_type=%s: %s", doc_type, exc)
        return None


async def load_matcher_config(source: ConfigSource) -> MatcherConfig:
    """
    Read every matcher document once and return them as one frozen object.

    Raises:
        ConfigError: the attribute -> document list mapping is missing or
                     malformed, or fieldValues / nameFieldsPosition is malformed.
    """
    document = await source.get_json(CONFIG_KEY)
    if document is None:
        raise ConfigError(CONFIG_KEY, "not found")
    attribute_documents = _validate(_ATTRIBUTE_DOCUMENTS, CONFIG_KEY, document)

    field_values = await _optional_document(source, FIELD_VALUES_KEY, _FIELD_VALUES)
    name_fields_position = await _optional_document(source, NAME_FIELDS_POSITION_KEY, _NAME_FIELDS_POSITION)

    doc_types = list(dict.fromkeys(d for docs in attribute_documents.values() for d in docs))
    doc_to_field_maps: dict[str, list[DocumentFieldMapEntry]] = {}
    for doc_type in doc_types:
        entries = await _load_doc_map(source, doc_type)
        if entries is not None:
            doc_to_field_maps[doc_type] = entries

    logger.info(
        "Profile validator config loaded attributes=%d doc_maps=%d/%d",
        len(attribute_documents),
        len(doc_to_field_maps),
        len(doc_types),
    )
    return MatcherConfig(
        attribute_documents=attribute_documents,
        field_values=field_values,
        name_fields_position=name_fields_position,
        doc_to_field_maps=doc_to_field_maps,
    )
