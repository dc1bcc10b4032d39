import os
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

sys.path.append(os.path.dirname(os.path.dirname(__file__)))

# app.database builds its engine at import time from this variable
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_tasks.db"
os.environ.setdefault("DATABASE_URL", SQLALCHEMY_DATABASE_URL)

from app.main import app  # noqa: E402
from app.config import Settings, get_settings  # noqa: E402
from app.database import Base, get_db  # noqa: E402


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: test de integración con Docker/TestContainers")
    config.addinivalue_line("markers", "benchmark: pruebas de rendimiento")


# ============================================================
# DATABASE (SQLite) FOR UNIT + API TESTS
# ============================================================

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine
)

Base.metadata.create_all(bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture(autouse=True)
def clean_db():
    """Fresh tables for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def settings():
    return Settings(database_url=SQLALCHEMY_DATABASE_URL)


@pytest.fixture
def client(settings):
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.pop(get_settings, None)
