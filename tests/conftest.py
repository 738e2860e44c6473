# WORKFLOW: Shared pytest fixtures for the import pipeline tests.
# Used by: every test module under tests/
# Fixtures:
# 1. engine - Throwaway SQLite database with all tables created
# 2. test_settings - Settings instance independent of the local .env
# 3. write_csv - Helper that writes a text export into tmp_path

import pytest

from core.config import Settings
from db.session import create_db_engine, init_db


@pytest.fixture
def engine(tmp_path):
    """SQLite engine on a fresh database file."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'am_explorer.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def test_settings():
    return Settings(
        database_url="sqlite://",
        batch_size=50,
        max_batch_size=500,
        data_source="test_import",
        fuzzy_match_threshold=90.0,
    )


@pytest.fixture
def write_csv(tmp_path):
    def _write(name, content):
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path
    return _write
