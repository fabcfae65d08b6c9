"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from collections.abc import Callable, Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from collector.app import create_app
from collector.config import Settings
from collector.database import Database
from collector.figures import Figure, FigureRepository
from collector.search import (
    FallbackScoringSearch,
    ManagedIndexSearch,
    SearchIndexer,
    SqliteSearchStore,
)

OWNER_A = "64f000000000000000000001"
OWNER_B = "64f000000000000000000002"


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        host="127.0.0.1",
        port=8000,
        debug=True,
        database_path=":memory:",
    )


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    """Create test client with configured app and a running lifespan."""
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def database() -> Iterator[Database]:
    """Initialized in-memory database."""
    db = Database(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def repository(database: Database) -> FigureRepository:
    return FigureRepository(database)


@pytest.fixture
def store(database: Database) -> SqliteSearchStore:
    return SqliteSearchStore(database)


@pytest.fixture
def indexer(store: SqliteSearchStore) -> SearchIndexer:
    return SearchIndexer(store)


@pytest.fixture
def fallback(repository: FigureRepository) -> FallbackScoringSearch:
    return FallbackScoringSearch(repository)


@pytest.fixture
def managed(store: SqliteSearchStore) -> ManagedIndexSearch:
    return ManagedIndexSearch(store)


@pytest.fixture
def make_figure() -> Callable[..., Figure]:
    """Factory for figures with sequential ids."""
    counter = iter(range(1, 10_000))

    def _make(name: str, owner_id: str = OWNER_A, **fields: Any) -> Figure:
        return Figure(id=f"fig-{next(counter):04d}", owner_id=owner_id, name=name, **fields)

    return _make
