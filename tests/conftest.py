"""
Pytest configuration and fixtures for AWS Service Catalog tests.
"""
import os
import tempfile
from datetime import timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from aws_catalog.main import app, get_pdf_backend
from aws_catalog.database.connection import Base, configure_sqlite_connection, get_db
from aws_catalog.database.crud import (
    create_category,
    create_memo,
    create_relation,
    create_service,
    ensure_default_attributes,
)
from aws_catalog.database.models import utc_now

FAKE_PDF = b"%PDF-1.4 fake comparison report"


@pytest.fixture
def test_db():
    """
    Create an isolated test database for tests that need database isolation.

    This fixture creates a temporary SQLite database with WAL mode and
    foreign keys enabled, creates all tables, and cleans up after the test.

    Usage:
        def test_something(test_db):
            session = test_db()
            # ... use session
            session.close()
    """
    # Create temporary database file
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create test engine with same settings as production
    test_engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
        echo=False,
    )
    event.listen(test_engine, "connect", configure_sqlite_connection)

    # Create all tables
    Base.metadata.create_all(bind=test_engine)

    # Create session factory
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

    yield TestSessionLocal

    # Cleanup
    test_engine.dispose()
    # Remove temporary database files
    for suffix in ["", "-wal", "-shm"]:
        file_path = Path(str(db_path) + suffix)
        if file_path.exists():
            file_path.unlink()


@pytest.fixture
def test_session(test_db):
    """
    Provide a database session for tests, with automatic cleanup.

    Usage:
        def test_something(test_session):
            # test_session is already a Session instance
            test_session.execute(...)
    """
    session = test_db()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def pdf_calls():
    """Records the HTML passed to the fake PDF backend."""
    return []


@pytest.fixture
def client(test_db, pdf_calls):
    """
    Create a test client bound to the isolated test database.

    The lifespan is not entered, so the production database is never touched.
    PDF rendering uses a fake backend instead of a real browser.
    """
    def override_get_db():
        db = test_db()
        try:
            yield db
        finally:
            db.close()

    async def fake_pdf_backend(html):
        pdf_calls.append(html)
        return FAKE_PDF

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_pdf_backend] = lambda: fake_pdf_backend
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def catalog(test_session):
    """
    Create a small catalog: three categories, six services, memos,
    relations and the default comparison attributes.

    Returns:
        Dict with "categories", "services" (keyed by short name) and
        "attributes" (default attributes)
    """
    compute = create_category(test_session, "Compute", color="#FF6B6B")
    storage = create_category(test_session, "Storage", color="#4ECDC4")
    database = create_category(test_session, "Database", color="#DDA0DD")

    services = {
        "ec2": create_service(test_session, "Amazon EC2", compute.id, "Virtual servers in the cloud"),
        "lambda": create_service(test_session, "AWS Lambda", compute.id, "Run code without thinking about servers"),
        "s3": create_service(test_session, "Amazon S3", storage.id, "Object storage built to retrieve any amount of data"),
        "glacier": create_service(test_session, "Amazon S3 Glacier", storage.id, "Low-cost archive storage"),
        "rds": create_service(test_session, "Amazon RDS", database.id, "Managed relational database"),
        "dynamodb": create_service(test_session, "Amazon DynamoDB", database.id),
    }

    now = utc_now()
    memos = [
        ("ec2", "Spot instances cut batch costs", "Pricing", 3),
        ("ec2", "Use Graviton instance types", None, 2),
        ("ec2", "Auto Scaling groups need a launch template", None, 1),
        ("s3", "Bucket policies versus ACLs", "Access", 1),
        ("rds", "Multi-AZ doubles the instance price", None, 1),
    ]
    for key, content, title, days_ago in memos:
        memo = create_memo(test_session, services[key].id, content, title=title)
        memo.created_at = now - timedelta(days=days_ago)
    test_session.commit()

    create_relation(test_session, services["lambda"].id, services["s3"].id)
    create_relation(test_session, services["ec2"].id, services["s3"].id, "DEPENDS_ON")
    create_relation(test_session, services["glacier"].id, services["s3"].id, "ALTERNATIVE_TO")

    attributes = ensure_default_attributes(test_session)

    return {
        "categories": {"compute": compute, "storage": storage, "database": database},
        "services": services,
        "attributes": attributes,
    }
