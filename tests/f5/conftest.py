"""Fixtures for F5 tests - Web API and CLI."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from practice.config.app_config import LevelingPolicy
from practice.core.catalog import schema_id_for
from practice.core.content_generator import ContentGenerator, GeneratedContent
from practice.core.payloads import parse_payload
from practice.core.selector import Selector
from practice.core.stores import GenerationMetadata
from practice.db.content_repository import SQLiteContentCache
from practice.db.database import init_db
from practice.db.level_repository import SQLiteLevelStore


@pytest.fixture
def db_path(tmp_path):
    return init_db(tmp_path / "db" / "practice.db")


@pytest.fixture
def generated(payload_samples) -> GeneratedContent:
    schema_id = schema_id_for("listen_and_type")
    return GeneratedContent(
        payload=parse_payload(schema_id, payload_samples["listen_and_type"]),
        metadata=GenerationMetadata(
            provider="lmstudio",
            model="test-model",
            schema_id=schema_id,
            generated_at=datetime.now(timezone.utc).isoformat(),
            topics=("weather",),
            latency_ms=5,
        ),
    )


@pytest.fixture
def mock_generator(generated) -> MagicMock:
    generator = MagicMock(spec=ContentGenerator)
    generator.generate.return_value = generated
    return generator


@pytest.fixture
def selector(db_path, mock_generator) -> Selector:
    return Selector(
        level_store=SQLiteLevelStore(db_path=db_path, policy=LevelingPolicy()),
        content_cache=SQLiteContentCache(db_path=db_path),
        generator=mock_generator,
        pregenerate_target=2,
    )


@pytest.fixture
def mock_llm_client(payload_samples) -> MagicMock:
    """LLM client that answers every request with a listen_and_type payload."""
    client = MagicMock()
    client.config.provider = "lmstudio"
    client.config.model = "test-model"
    client.simple_json.return_value = payload_samples["listen_and_type"]
    return client
