"""
Database module - SQLite with WAL mode configuration, ORM models and CRUD queries.
"""
from aws_catalog.database.connection import (
    Base,
    SessionLocal,
    engine,
    get_db,
    init_db,
    DATABASE_PATH,
)
from aws_catalog.database.models import (
    Category,
    ComparisonAttribute,
    Memo,
    Relation,
    Service,
    ServiceAttributeValue,
    TimestampMixin,
)
from aws_catalog.database.crud import (
    ensure_default_attributes,
    ensure_default_categories,
)

__all__ = [
    # Connection
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "init_db",
    "DATABASE_PATH",
    # Models
    "Category",
    "ComparisonAttribute",
    "Memo",
    "Relation",
    "Service",
    "ServiceAttributeValue",
    "TimestampMixin",
    # Seeding
    "ensure_default_attributes",
    "ensure_default_categories",
]
