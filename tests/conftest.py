"""Shared pytest fixtures for adaptive engine tests."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from adaptive_engine.api.deps import get_catalog
from adaptive_engine.config import settings
from adaptive_engine.core.exceptions import NoCatalogAvailable
from adaptive_engine.db.session import Base, get_db
from adaptive_engine.main import app
from adaptive_engine.schemas.catalog import CatalogTopic, CourseCatalog


# Use an in-memory SQLite database for testing with static pool
SQLALCHEMY_TEST_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,  # Use StaticPool to keep connection alive
    echo=False,
)
TestSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)

# Create all tables once at startup
Base.metadata.create_all(bind=engine)


class FakeCatalogClient:
    """In-memory stand-in for the course catalog service."""

    def __init__(self) -> None:
        self.catalogs: dict[str, CourseCatalog] = {}
        self.calls = 0
        self.reachable = True

    def add(self, course_id: str, *topics: str) -> None:
        self.catalogs[course_id] = CourseCatalog(
            course_id=course_id, topics=[CatalogTopic(name=t) for t in topics]
        )

    def get_course_catalog(self, course_id: str) -> CourseCatalog:
        self.calls += 1
        catalog = self.catalogs.get(course_id)
        if catalog is None or not catalog.topics:
            raise NoCatalogAvailable(f"No catalog for {course_id}")
        return catalog

    def healthy(self) -> bool:
        return self.reachable

    def close(self) -> None:
        pass


@pytest.fixture(autouse=True)
def local_runtime(monkeypatch):
    """Keep every test on in-process locks with the Redis cache switched off."""
    monkeypatch.setattr(settings, "LOCK_BACKEND", "local")
    monkeypatch.setattr(settings, "RECOMMENDATION_CACHE_ENABLED", False)
    yield


@pytest.fixture(scope="function")
def db():
    """Get a fresh DB session for each test."""
    session = TestSession()
    try:
        yield session
    finally:
        session.rollback()  # Rollback changes after each test
        session.close()


@pytest.fixture(scope="function")
def catalog() -> FakeCatalogClient:
    return FakeCatalogClient()


@pytest.fixture(scope="function")
def client(db: Session, catalog: FakeCatalogClient):
    """FastAPI test client with overridden DB and catalog dependencies."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_catalog] = lambda: catalog

    # Remove TrustedHostMiddleware for tests to allow 'testserver' host
    app.user_middleware = [m for m in app.user_middleware if "TrustedHost" not in str(m)]

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
