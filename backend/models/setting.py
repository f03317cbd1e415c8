"""
models/setting.py - SQLAlchemy ORM model for admin key-value configuration.

Table: settings
Each row holds one JSON document under a unique key. The profile validator
can read its configuration from here (keys "profile_validator.config",
"profile_validator.docToFieldMaps/marksheet", ...).
"""
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from backend.database import Base


class SettingORM(Base):
    __tablename__ = "settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Configuration key",
    )
    value: Mapped[Any] = mapped_column(
        JSONB,
        nullable=False,
        comment="Configuration document",
    )
    created_by: Mapped[str] = mapped_column(String(255), nullable=False, default="system")
    updated_by: Mapped[str] = mapped_column(String(255), nullable=False, default="system")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
