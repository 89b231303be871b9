"""
SQLite engine and session factory for the catalog database.

- Database file: data/aws_catalog.db under the project root, or DATABASE_PATH
- Every connection runs in WAL journal mode with foreign keys enforced
  (a category cannot be deleted while services still point at it)
- SQL lower() is replaced by Python's str.lower so case-insensitive
  matching also folds non-ASCII letters (É, full-width Latin)
- check_same_thread=False so FastAPI can hand sessions across threads
"""
import logging
import os
from pathlib import Path
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker, declarative_base

# Plain logging.getLogger: aws_catalog.utils.logging imports config, which
# must not depend on the database package
logger = logging.getLogger(__name__)

# connection.py is in aws_catalog/database/
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATABASE_PATH = Path(os.getenv("DATABASE_PATH", str(PROJECT_ROOT / "data" / "aws_catalog.db")))
DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)

engine = create_engine(
    f"sqlite:///{DATABASE_PATH}",
    connect_args={"check_same_thread": False},
    echo=False,
)


def unicode_lower(value: Any) -> Any:
    """SQL lower() with Unicode case folding; non-text values pass through."""
    if isinstance(value, str):
        return value.lower()
    return value


def configure_sqlite_connection(dbapi_connection: Any, connection_record: Any) -> None:
    """Connect hook: WAL mode, foreign key enforcement and Unicode lower()."""
    dbapi_connection.create_function("lower", 1, unicode_lower, deterministic=True)
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        mode = cursor.fetchone()
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()

    if mode and mode[0] != "wal":
        logger.warning(f"SQLite journal mode is '{mode[0]}', expected 'wal'")


event.listen(engine, "connect", configure_sqlite_connection)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def init_db() -> None:
    """
    Create any missing tables from the ORM models.

    Existing tables are left as they are; there is no schema migration.
    """
    from aws_catalog.database import models  # noqa: F401  (registers the tables)

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database tables ensured at {DATABASE_PATH}")
