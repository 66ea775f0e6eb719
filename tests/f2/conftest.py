"""Fixtures for F2 tests - Payload schemas and the content cache."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import pytest

from practice.core.catalog import schema_id_for
from practice.core.payloads import parse_payload
from practice.core.stores import ContentItem, GenerationMetadata
from practice.db.content_repository import SQLiteContentCache
from practice.db.database import init_db


@pytest.fixture
def db_path(tmp_path) -> Path:
    return init_db(tmp_path / "db" / "practice.db")


@pytest.fixture
def content_cache(db_path) -> SQLiteContentCache:
    return SQLiteContentCache(db_path=db_path)


@pytest.fixture
def store_item(content_cache, payload_samples) -> Callable[..., ContentItem]:
    """Store a valid item for an exercise type at a band."""

    def _store(
        band: str = "A2",
        skill_area: str = "listening",
        exercise_type: str = "listen_and_type",
    ) -> ContentItem:
        schema_id = schema_id_for(exercise_type)
        payload = parse_payload(schema_id, payload_samples[exercise_type])
        metadata = GenerationMetadata(
            provider="lmstudio",
            model="test-model",
            schema_id=schema_id,
            generated_at=datetime.now(timezone.utc).isoformat(),
            topics=("weather",),
            latency_ms=12,
        )
        return content_cache.store(skill_area, exercise_type, band, payload, metadata)

    return _store
