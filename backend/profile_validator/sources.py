"""
sources.py - Key -> JSON document sources for matcher configuration.

Keys (shared by every source):
  config                        attribute -> ordered document types
  fieldValues                   attribute -> canonical value -> synonyms
  nameFieldsPosition            docType -> name attribute -> token index
  docToFieldMaps/<docType>      ordered mapping entries for one document type

Contract of get_json(key):
  - returns the parsed document, or None when the key does not exist
  - raises ConfigError when the stored text is not valid JSON

Sources:
  FileConfigSource      <directory>/<key>.json          (default, shipped data/)
  RedisConfigSource     <prefix>:<key> in redis.asyncio (decode_responses=True)
  SettingsConfigSource  settings table row <prefix>.<key>
"""
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import settings
from backend.errors import ConfigError
from backend.store import get_setting

logger = logging.getLogger(__name__)


def doc_map_key(doc_type: str) -> str:
    """Key of one document type's field map: docToFieldMaps/{doc_type}"""
    return f"docToFieldMaps/{doc_type}"


def _parse(key: str, raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(key, f"invalid JSON at line {exc.lineno} column {exc.colno}") from exc


class ConfigSource(ABC):
    """A readable key -> JSON document mapping."""

    @abstractmethod
    async def get_json(self, key: str) -> Optional[Any]:
        """Parsed document stored under key, or None if absent."""


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

class FileConfigSource(ConfigSource):
    """Reads <directory>/<key>.json; docToFieldMaps keys map to a subdirectory."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    async def get_json(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        if not path.is_file():
            return None
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(key, f"unreadable file {path.name}: {exc.strerror}") from exc
        return _parse(key, raw)


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------

async def create_redis_client() -> aioredis.Redis:
    """
    Create the async Redis client used by RedisConfigSource.
    Called once at startup. Verifies connectivity with PING before returning.
    """
    client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    await client.ping()
    logger.info("Redis connection pool established")
    return client


class RedisConfigSource(ConfigSource):
    """
    Config documents stored as JSON strings under <prefix>:<key>.
    The client is owned by the caller - this class never closes it.
    """

    def __init__(self, client: aioredis.Redis, prefix: Optional[str] = None) -> None:
        self.client = client
        self.prefix = prefix or settings.profile_validator_key_prefix

    def make_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get_json(self, key: str) -> Optional[Any]:
        raw = await self.client.get(self.make_key(key))
        if raw is None:
            return None
        return _parse(key, raw)

    async def set_json(self, key: str, document: Any) -> None:
        """Store a document, overwriting any previous one. Used for seeding."""
        await self.client.set(self.make_key(key), json.dumps(document))
        logger.info("Profile validator config stored key=%s", self.make_key(key))


# ---------------------------------------------------------------------------
# Settings table
# ---------------------------------------------------------------------------

class SettingsConfigSource(ConfigSource):
    """
    Config documents stored in the admin settings table under <prefix>.<key>.

    JSONB rows are already parsed; a row holding a JSON string is parsed once
    more so documents pasted as text by admins still load.
    """

    def __init__(self, db: AsyncSession, prefix: Optional[str] = None) -> None:
        self.db = db
        self.prefix = prefix or settings.profile_validator_key_prefix

    def make_key(self, key: str) -> str:
        return f"{self.prefix}.{key}"

    async def get_json(self, key: str) -> Optional[Any]:
        document = await get_setting(self.db, self.make_key(key))
        if isinstance(document, str):
            return _parse(key, document)
        return document
