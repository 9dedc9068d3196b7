import os
import random

# App startup runs init_db() on its own engine; keep it off the filesystem
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from chaveamento.database import get_session
from chaveamento.main import app

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. Use sqlite:///:memory: with StaticPool so ALL sessions share same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. All models MUST be imported before create_all() (see session_fixture)
# 4. App dependency overridden to use test_engine (see client_fixture)
# 5. Tables are created per test and dropped afterwards, so the arena-wide
#    partner history never leaks between tests
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on freshly created tables"""
    # Import all models to ensure they're registered BEFORE create_all
    import chaveamento.models  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place
    for the entire duration. This ensures the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def rng() -> random.Random:
    """Seeded RNG so draws and pairings are reproducible inside a test"""
    return random.Random(1234)
