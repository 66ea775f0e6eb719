"""Fixtures for F4 tests - Selection tiers and score reporting."""

from datetime import datetime, timezone
from typing import Callable
from unittest.mock import MagicMock

import pytest

from practice.config.app_config import LevelingPolicy
from practice.core.catalog import schema_id_for
from practice.core.content_generator import ContentGenerator, GeneratedContent
from practice.core.payloads import parse_payload
from practice.core.selector import Selector
from practice.core.stores import ContentItem, GenerationMetadata
from practice.db.content_repository import SQLiteContentCache
from practice.db.database import init_db
from practice.db.level_repository import SQLiteLevelStore


@pytest.fixture
def db_path(tmp_path):
    return init_db(tmp_path / "db" / "practice.db")


@pytest.fixture
def level_store(db_path) -> SQLiteLevelStore:
    return SQLiteLevelStore(db_path=db_path, policy=LevelingPolicy(), max_retries=5)


@pytest.fixture
def content_cache(db_path) -> SQLiteContentCache:
    return SQLiteContentCache(db_path=db_path)


@pytest.fixture
def make_generated(payload_samples) -> Callable[[str], GeneratedContent]:
    """Build a GeneratedContent for an exercise type from the sample payloads."""

    def _make(exercise_type: str = "listen_and_type") -> GeneratedContent:
        schema_id = schema_id_for(exercise_type)
        return GeneratedContent(
            payload=parse_payload(schema_id, payload_samples[exercise_type]),
            metadata=GenerationMetadata(
                provider="lmstudio",
                model="test-model",
                schema_id=schema_id,
                generated_at=datetime.now(timezone.utc).isoformat(),
                topics=("weather",),
                latency_ms=5,
            ),
        )

    return _make


@pytest.fixture
def mock_generator(make_generated) -> MagicMock:
    """Generator that succeeds with a listen_and_type payload unless told otherwise."""
    generator = MagicMock(spec=ContentGenerator)
    generator.generate.return_value = make_generated("listen_and_type")
    return generator


@pytest.fixture
def selector(level_store, content_cache, mock_generator) -> Selector:
    return Selector(
        level_store=level_store,
        content_cache=content_cache,
        generator=mock_generator,
        pregenerate_target=3,
    )


@pytest.fixture
def cached_item(content_cache, make_generated) -> Callable[..., ContentItem]:
    """Put an item straight into the cache."""

    def _store(band: str = "A2", exercise_type: str = "listen_and_type") -> ContentItem:
        generated = make_generated(exercise_type)
        skill_area = "reading" if exercise_type == "read_and_select" else "listening"
        return content_cache.store(
            skill_area, exercise_type, band, generated.payload, generated.metadata
        )

    return _store
