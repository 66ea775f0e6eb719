"""Fixtures for F1 tests - Leveling and the level store."""

from pathlib import Path

import pytest

from practice.config.app_config import LevelingPolicy
from practice.core.leveling import UserSkillLevel
from practice.db.database import init_db
from practice.db.level_repository import SQLiteLevelStore


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Initialized SQLite database in a temp directory."""
    return init_db(tmp_path / "db" / "practice.db")


@pytest.fixture
def level_store(db_path) -> SQLiteLevelStore:
    return SQLiteLevelStore(db_path=db_path)


@pytest.fixture
def policy() -> LevelingPolicy:
    return LevelingPolicy()


@pytest.fixture
def fresh_level() -> UserSkillLevel:
    """Default starting level: 2.0 / A2, counters at zero."""
    return UserSkillLevel(
        user_id="user-1",
        skill_area="listening",
        exercise_type="listen_and_respond",
        numeric_level=2.0,
    )
