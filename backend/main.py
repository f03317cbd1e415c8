"""
main.py - Beneficiary backend bootstrap.

The surrounding application (HTTP layer, workers) owns routing; this module
owns everything it needs at startup:

    from backend.main import lifespan, field_engine, error_envelope

    async with lifespan() as services:
        results = services.matcher.match(user_profile, vcs)
        async with field_engine() as engine:
            view = await engine.get_item_with_fields(user_id, FieldContext.USERS)
"""
import logging
import os
import subprocess
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import redis.asyncio as aioredis
from pydantic import ValidationError

from backend.config import settings
from backend.customfields.service import CustomFieldsEngine
from backend.database import session_scope
from backend.errors import BadInputError, ConfigError, NotFoundError
from backend.profile_validator.loader import load_matcher_config
from backend.profile_validator.matcher import ProfileVerificationMatcher
from backend.profile_validator.schemas import MatcherConfig
from backend.profile_validator.sources import (
    FileConfigSource,
    RedisConfigSource,
    SettingsConfigSource,
    create_redis_client,
)
from backend.store import PostgresFieldStore

# ---------------------------------------------------------------------------
# Logging - configured before anything else
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

SOURCE_FILE = "file"
SOURCE_REDIS = "redis"
SOURCE_SETTINGS = "settings"


# ---------------------------------------------------------------------------
# Startup steps
# ---------------------------------------------------------------------------

def run_migrations() -> None:
    """Apply pending Alembic revisions (alembic upgrade head) in a subprocess."""
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    result = subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        capture_output=True,
        text=True,
        cwd=backend_dir,
    )
    if result.returncode != 0:
        logger.error("Alembic migration failed:\n%s", result.stderr)
        raise RuntimeError(f"Alembic migration failed: {result.stderr}")
    msg = result.stdout.strip() or "No pending migrations"
    logger.info("Alembic: %s", msg)


async def load_profile_validator_config(redis_client: Optional[aioredis.Redis] = None) -> MatcherConfig:
    """Read the matcher configuration once from the configured source."""
    source_name = settings.profile_validator_source.strip().lower()
    if source_name == SOURCE_FILE:
        return await load_matcher_config(FileConfigSource(settings.profile_validator_config_dir))
    if source_name == SOURCE_REDIS:
        if redis_client is None:
            raise ConfigError("source", "redis source selected but no redis client available")
        return await load_matcher_config(RedisConfigSource(redis_client))
    if source_name == SOURCE_SETTINGS:
        async with session_scope() as session:
            return await load_matcher_config(SettingsConfigSource(session))
    raise ConfigError("source", f"unknown source '{settings.profile_validator_source}'")


def build_matcher(config: MatcherConfig) -> ProfileVerificationMatcher:
    return ProfileVerificationMatcher(
        config,
        date_attributes=settings.date_attributes_list,
        full_name_vc_types=settings.full_name_vc_types_list,
    )


# ---------------------------------------------------------------------------
# Lifespan - startup & shutdown
# ---------------------------------------------------------------------------

@dataclass
class Services:
    """Long-lived objects shared by every request."""
    matcher: ProfileVerificationMatcher
    redis: Optional[aioredis.Redis] = None


@asynccontextmanager
async def lifespan() -> AsyncIterator[Services]:
    """
    Startup:
      1. Run Alembic migrations (skipped when RUN_MIGRATIONS_ON_STARTUP=false)
      2. Open the Redis client when the matcher config lives in Redis
      3. Load the matcher configuration once (ConfigError aborts startup)
    Shutdown:
      1. Close the Redis client
    """
    if settings.run_migrations_on_startup:
        run_migrations()

    redis_client = None
    if settings.profile_validator_source.strip().lower() == SOURCE_REDIS:
        redis_client = await create_redis_client()

    try:
        matcher = build_matcher(await load_profile_validator_config(redis_client))
        logger.info("Beneficiary backend v%s starting up", settings.app_version)
        yield Services(matcher=matcher, redis=redis_client)
    finally:
        if redis_client is not None:
            await redis_client.aclose()
            logger.info("Redis connection pool closed")
        logger.info("Beneficiary backend shutting down")


@asynccontextmanager
async def field_engine() -> AsyncIterator[CustomFieldsEngine]:
    """One CustomFieldsEngine bound to one unit of work (commit on success)."""
    async with session_scope() as session:
        yield CustomFieldsEngine(PostgresFieldStore(session))


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------

def _make_error_body(
    code: str,
    message: str,
    details: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a standard {error: {code, message, details}} body."""
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details or [],
        }
    }


def error_envelope(exc: Exception) -> tuple[int, dict[str, Any]]:
    """
    Map a domain exception to (status_code, body) for the caller's HTTP layer.

    NotFoundError -> 404 NOT_FOUND
    BadInputError -> 422 VALIDATION_ERROR (details name the field)
    ValidationError -> 422 VALIDATION_ERROR (every pydantic violation listed)
    ConfigError   -> 503 CONFIG_ERROR
    anything else -> 500 INTERNAL_ERROR; exception details only when DEBUG=true
    """
    if isinstance(exc, NotFoundError):
        return 404, _make_error_body(
            "NOT_FOUND", str(exc), [{"entity": exc.entity, "key": exc.key}]
        )
    if isinstance(exc, BadInputError):
        return 422, _make_error_body("VALIDATION_ERROR", str(exc), [exc.to_detail()])
    if isinstance(exc, ValidationError):
        details = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            details.append({"field": field or None, "issue": error["msg"]})
        return 422, _make_error_body("VALIDATION_ERROR", "Request validation failed", details)
    if isinstance(exc, ConfigError):
        logger.error("Configuration error key=%s", exc.key)
        return 503, _make_error_body("CONFIG_ERROR", "Service configuration is unavailable")

    logger.error("Unhandled exception %s", type(exc).__name__, exc_info=exc)
    if settings.debug:
        details = [{"issue": f"{type(exc).__name__}: {exc}"}]
        message = "An unexpected error occurred (debug details included)"
    else:
        details = []
        message = "An unexpected error occurred"
    return 500, _make_error_body("INTERNAL_ERROR", message, details)


def health_check() -> dict:
    """Service health payload for load balancers and deployment checks."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
