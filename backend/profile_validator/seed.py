"""
seed.py - Copy the shipped matcher configuration into Redis or the settings table.

Usage (from the project root):
    PROFILE_VALIDATOR_SOURCE=redis    python -m backend.profile_validator.seed
    PROFILE_VALIDATOR_SOURCE=settings python -m backend.profile_validator.seed

Existing documents under the same keys are overwritten.
"""
import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable

from backend.config import settings
from backend.database import session_scope
from backend.profile_validator.sources import (
    FileConfigSource,
    RedisConfigSource,
    SettingsConfigSource,
    create_redis_client,
    doc_map_key,
)
from backend.store import set_setting

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
)
log = logging.getLogger(__name__)

Writer = Callable[[str, Any], Awaitable[None]]


def shipped_keys(directory: Path) -> list[str]:
    """Every key present in a FileConfigSource directory, top-level files first."""
    keys = [p.stem for p in sorted(directory.glob("*.json"))]
    keys += [doc_map_key(p.stem) for p in sorted((directory / "docToFieldMaps").glob("*.json"))]
    return keys


async def copy_documents(source: FileConfigSource, write: Writer) -> int:
    count = 0
    for key in shipped_keys(source.directory):
        document = await source.get_json(key)
        if document is None:
            continue
        await write(key, document)
        count += 1
    return count


async def main() -> None:
    source = FileConfigSource(settings.profile_validator_config_dir)
    target = settings.profile_validator_source.strip().lower()
    if target == "redis":
        client = await create_redis_client()
        try:
            count = await copy_documents(source, RedisConfigSource(client).set_json)
        finally:
            await client.aclose()
    elif target == "settings":
        async with session_scope() as session:
            rows = SettingsConfigSource(session)

            async def write(key: str, document: Any) -> None:
                await set_setting(session, rows.make_key(key), document)

            count = await copy_documents(source, write)
    else:
        raise SystemExit(f"PROFILE_VALIDATOR_SOURCE must be 'redis' or 'settings', got '{target}'")

    log.info("Seeded %d profile validator documents into %s", count, target)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    asyncio.run(main())
