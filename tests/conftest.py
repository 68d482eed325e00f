import os
import sys

import pytest
from unittest.mock import AsyncMock

# Add the project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from regwatch.analysis.analysis_service import AnalysisService
from regwatch.database.connection import create_db_engine, create_session_factory, create_tables, session_scope
from regwatch.database.models import Source

from helpers import analysis_payload


@pytest.fixture
def test_engine():
    """Create an in-memory database engine with all tables."""
    engine = create_db_engine("sqlite:///:memory:", echo=False)
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Create a test session factory."""
    return create_session_factory(test_engine)


@pytest.fixture
def db_session(session_factory):
    """Create a test database session."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def add_source(session_factory):
    """Factory fixture inserting a source and returning the detached row."""
    def _add(name: str = "FDA MoCRA",
             url: str = "https://www.fda.gov/mocra",
             source_type: str = "federal",
             is_active: bool = True) -> Source:
        with session_scope(session_factory) as db:
            source = Source(name=name, url=url, source_type=source_type, is_active=is_active)
            db.add(source)
            db.flush()
        return source
    return _add


@pytest.fixture
def analysis_client():
    """Analysis client double answering with a well-formed payload."""
    client = AsyncMock()
    client.complete = AsyncMock(return_value=analysis_payload())
    return client


@pytest.fixture
def analysis_service(analysis_client):
    """Analysis service backed by the client double."""
    return AnalysisService(analysis_client, timeout_seconds=5)
