"""
models/__init__.py - imports all ORM models so Alembic's env.py
sees them via Base.metadata when generating migrations.

FieldORM must be imported before FieldValueORM (field_values.field_id FK).
"""
from backend.models.field import FieldORM
from backend.models.field_value import FieldValueORM
from backend.models.setting import SettingORM

__all__ = ["FieldORM", "FieldValueORM", "SettingORM"]
