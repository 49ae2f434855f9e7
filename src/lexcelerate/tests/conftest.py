"""Test configuration."""
import os
import tempfile
from typing import Generator

import pytest

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="lexcelerate-test-"))
os.environ.setdefault("SOUND_ENABLED", "false")

# Import after environment setup
from sqlalchemy.orm import sessionmaker

from lexcelerate.config import ensure_directories
from lexcelerate.models.base import init_db, make_engine
from lexcelerate.services.catalogue_service import CatalogueService
from lexcelerate.services.storage_service import SqlKeyValueStore


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    ensure_directories()
    yield


@pytest.fixture
def session_factory() -> Generator[sessionmaker, None, None]:
    """A fresh in-memory database for each test."""
    engine = make_engine("sqlite://")
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def store(session_factory: sessionmaker) -> SqlKeyValueStore:
    """Create a key-value store on the test database."""
    return SqlKeyValueStore(session_factory)


@pytest.fixture
def catalogue_service(store: SqlKeyValueStore) -> CatalogueService:
    """Create a catalogue service instance."""
    return CatalogueService(store)
