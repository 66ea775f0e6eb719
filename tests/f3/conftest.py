"""Fixtures for F3 tests - Configuration, LLM client and content generation."""

from unittest.mock import MagicMock

import pytest


@pytest.fixture
def mock_llm_client() -> MagicMock:
    """LLM client whose simple_json answer is set per test."""
    client = MagicMock()
    client.config.provider = "lmstudio"
    client.config.model = "test-model"
    return client
