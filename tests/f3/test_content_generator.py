"""Tests for the content generator."""

import pytest

from practice.core.catalog import UnknownExerciseTypeError
from practice.core.content_generator import (
    ContentGenerator,
    GeneratedContent,
    SchemaInvalidError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from practice.core.payloads import (
    ListenAndRespondPayload,
    ReadAndSelectPayload,
    WordRange,
)
from practice.llm.client import LLMConnectionError, LLMResponseError, LLMTimeoutError


@pytest.fixture
def generator(mock_llm_client) -> ContentGenerator:
    return ContentGenerator(client=mock_llm_client)


class TestGenerate:
    """Successful generation."""

    def test_returns_validated_payload(self, generator, mock_llm_client, payload_samples):
        mock_llm_client.simple_json.return_value = payload_samples["listen_and_respond"]

        result = generator.generate("listening", "listen_and_respond", "B1")

        assert isinstance(result, GeneratedContent)
        assert isinstance(result.payload, ListenAndRespondPayload)
        mock_llm_client.simple_json.assert_called_once()

    def test_metadata(self, generator, mock_llm_client, payload_samples):
        mock_llm_client.simple_json.return_value = payload_samples["listen_and_type"]

        result = generator.generate("listening", "listen_and_type", "A2")

        assert result.metadata.provider == "lmstudio"
        assert result.metadata.model == "test-model"
        assert result.metadata.schema_id == "listen_and_type.v1"
        assert result.metadata.latency_ms >= 0
        assert result.metadata.topics

    def test_prompt_carries_band_and_topics(self, generator, mock_llm_client, payload_samples):
        mock_llm_client.simple_json.return_value = payload_samples["listen_and_respond"]

        result = generator.generate(
            "listening", "listen_and_respond", "C1", topic_hints=["space travel"]
        )

        kwargs = mock_llm_client.simple_json.call_args.kwargs
        assert "C1" in kwargs["system_prompt"]
        assert "space travel" in kwargs["user_message"]
        assert result.metadata.topics == ("space travel",)

    def test_word_counts_fixed_by_band(self, generator, mock_llm_client, payload_samples):
        """Model-supplied word counts are replaced with the band's range."""
        raw = payload_samples["writing_sample"]
        raw["expected_word_count"] = {"min": 1, "max": 5}
        mock_llm_client.simple_json.return_value = raw

        result = generator.generate("writing", "writing_sample", "B2")

        assert result.payload.expected_word_count == WordRange(min=150, max=250)

    def test_missing_word_counts_filled(self, generator, mock_llm_client, payload_samples):
        raw = payload_samples["interactive_writing"]
        del raw["expected_word_count_step1"]
        del raw["expected_word_count_step2"]
        mock_llm_client.simple_json.return_value = raw

        result = generator.generate("writing", "interactive_writing", "A1")

        assert result.payload.expected_word_count_step1 == WordRange(min=30, max=60)
        assert result.payload.expected_word_count_step2 == WordRange(min=20, max=40)

    def test_read_and_select_total_from_words(
        self, generator, mock_llm_client, payload_samples
    ):
        raw = payload_samples["read_and_select"]
        raw["total_words"] = 99
        mock_llm_client.simple_json.return_value = raw

        result = generator.generate("reading", "read_and_select", "A2")

        assert isinstance(result.payload, ReadAndSelectPayload)
        assert result.payload.total_words == 4


class TestFailures:
    """Every failure surfaces as a GenerationError subclass."""

    def test_invalid_payload(self, generator, mock_llm_client, payload_samples):
        raw = payload_samples["listen_and_respond"]
        raw["conversation_turns"][0]["options"] = ["only", "three", "options"]
        mock_llm_client.simple_json.return_value = raw

        with pytest.raises(SchemaInvalidError, match="exactly 4 options"):
            generator.generate("listening", "listen_and_respond", "B1")

    def test_no_json(self, generator, mock_llm_client):
        mock_llm_client.simple_json.side_effect = LLMResponseError("No valid JSON")

        with pytest.raises(SchemaInvalidError):
            generator.generate("listening", "listen_and_type", "A2")

    def test_wrong_declared_type(self, generator, mock_llm_client, payload_samples):
        raw = {**payload_samples["listen_and_type"], "type": "read_and_select"}
        mock_llm_client.simple_json.return_value = raw

        with pytest.raises(SchemaInvalidError):
            generator.generate("listening", "listen_and_type", "A2")

    def test_timeout(self, generator, mock_llm_client):
        mock_llm_client.simple_json.side_effect = LLMTimeoutError("slow")

        with pytest.raises(UpstreamTimeoutError):
            generator.generate("listening", "listen_and_type", "A2")

    def test_connection_error(self, generator, mock_llm_client):
        mock_llm_client.simple_json.side_effect = LLMConnectionError("down")

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            generator.generate("listening", "listen_and_type", "A2")
        assert not isinstance(exc_info.value, UpstreamTimeoutError)

    def test_unknown_exercise_type(self, generator, mock_llm_client):
        with pytest.raises(UnknownExerciseTypeError):
            generator.generate("listening", "read_and_select", "A2")
        mock_llm_client.simple_json.assert_not_called()

    def test_unknown_band(self, generator):
        with pytest.raises(ValueError, match="Unknown band"):
            generator.generate("listening", "listen_and_type", "D1")
