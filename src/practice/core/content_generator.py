"""Content generation adapter.

Responsibilities:
- Build the generation prompt for a (skill area, exercise type, band)
- Call the LLM once, with the client's bounded timeout
- Validate the JSON against the exercise type's schema before anyone sees it
- Translate every failure into a GenerationError subclass

Band-fixed fields (word count ranges, the read_and_select word total) are
filled in here rather than trusted to the model.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog

from practice.config.app_config import AppConfig, load_app_config
from practice.core.catalog import (
    BAND_CHARACTERISTICS,
    schema_id_for,
    validate_exercise_type,
)
from practice.core.payloads import ContentPayload, PayloadValidationError, parse_payload
from practice.core.stores import GenerationMetadata
from practice.llm.client import (
    LLMClient,
    LLMConfig,
    LLMError,
    LLMResponseError,
    LLMTimeoutError,
)
from practice.prompts.registry import get_prompt

logger = structlog.get_logger(__name__)

# =============================================================================
# BAND-FIXED FIELDS
# =============================================================================

WRITING_WORD_COUNTS: dict[str, dict[str, int]] = {
    "A1": {"min": 30, "max": 60},
    "A2": {"min": 50, "max": 100},
    "B1": {"min": 100, "max": 180},
    "B2": {"min": 150, "max": 250},
    "C1": {"min": 200, "max": 350},
    "C2": {"min": 250, "max": 400},
}

INTERACTIVE_WRITING_WORD_COUNTS: dict[str, tuple[dict[str, int], dict[str, int]]] = {
    "A1": ({"min": 30, "max": 60}, {"min": 20, "max": 40}),
    "A2": ({"min": 50, "max": 100}, {"min": 30, "max": 60}),
    "B1": ({"min": 80, "max": 150}, {"min": 50, "max": 100}),
    "B2": ({"min": 120, "max": 200}, {"min": 80, "max": 150}),
    "C1": ({"min": 150, "max": 250}, {"min": 100, "max": 180}),
    "C2": ({"min": 180, "max": 300}, {"min": 120, "max": 200}),
}

SUMMARY_WORD_COUNTS: dict[str, dict[str, int]] = {
    "A1": {"min": 20, "max": 40},
    "A2": {"min": 30, "max": 60},
    "B1": {"min": 50, "max": 100},
    "B2": {"min": 80, "max": 150},
    "C1": {"min": 100, "max": 200},
    "C2": {"min": 120, "max": 250},
}


# =============================================================================
# ERRORS
# =============================================================================


class GenerationError(Exception):
    """Content could not be generated."""

    pass


class SchemaInvalidError(GenerationError):
    """Backend answered, but not with a valid payload for the schema."""

    pass


class UpstreamUnavailableError(GenerationError):
    """Generation backend could not be reached or failed."""

    pass


class UpstreamTimeoutError(UpstreamUnavailableError):
    """Generation backend did not answer in time."""

    pass


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class GeneratedContent:
    """A validated payload and how it was produced."""

    payload: ContentPayload
    metadata: GenerationMetadata


# =============================================================================
# GENERATOR
# =============================================================================


class ContentGenerator:
    """Generates schema-valid exercise payloads through an LLM."""

    def __init__(self, client: LLMClient | None = None, config: AppConfig | None = None):
        """Initialize generator.

        Args:
            client: Pre-configured LLM client (built from config when omitted)
            config: Application config (loaded when omitted)
        """
        self.config = config or load_app_config()
        self._client = client

    @property
    def client(self) -> LLMClient:
        # Built on first use so a selector that never misses never needs a key
        if self._client is None:
            self._client = LLMClient(LLMConfig.from_app_config(self.config))
        return self._client

    def generate(
        self,
        skill_area: str,
        exercise_type: str,
        band: str,
        topic_hints: list[str] | None = None,
    ) -> GeneratedContent:
        """Generate one exercise payload.

        Args:
            skill_area: Skill area, e.g. "listening"
            exercise_type: Exercise type within the skill area
            band: CEFR band, e.g. "B1"
            topic_hints: Topics to steer towards (defaults to the band's topics)

        Returns:
            GeneratedContent with the validated payload and metadata

        Raises:
            UnknownExerciseTypeError: If the skill area/type pair is not in the catalog
            SchemaInvalidError: If the response does not validate
            UpstreamTimeoutError: If the backend timed out
            UpstreamUnavailableError: If the backend failed
        """
        validate_exercise_type(skill_area, exercise_type)
        if band not in BAND_CHARACTERISTICS:
            raise ValueError(f"Unknown band: {band}")
        schema_id = schema_id_for(exercise_type)
        traits = BAND_CHARACTERISTICS[band]
        topics = tuple(topic_hints) if topic_hints else traits.topics

        system_prompt = get_prompt(
            "system",
            band=band,
            vocabulary_range=traits.vocabulary_range,
            grammar_structures=traits.grammar_structures,
            sentence_length=traits.sentence_length,
            complexity=traits.complexity,
        )
        user_prompt = get_prompt(
            f"exercises/{exercise_type}",
            topic_hint=_topic_hint(topics, explicit=bool(topic_hints)),
        )

        start_time = time.time()
        try:
            raw = self.client.simple_json(
                system_prompt=system_prompt,
                user_message=user_prompt,
            )
        except LLMTimeoutError as e:
            raise UpstreamTimeoutError(str(e)) from e
        except LLMResponseError as e:
            raise SchemaInvalidError(str(e)) from e
        except LLMError as e:
            raise UpstreamUnavailableError(str(e)) from e
        latency_ms = int((time.time() - start_time) * 1000)

        raw = _fill_band_fields(exercise_type, band, raw)

        try:
            payload = parse_payload(schema_id, raw)
        except PayloadValidationError as e:
            logger.warning(
                "generated_payload_invalid",
                exercise_type=exercise_type,
                band=band,
                path=e.path,
                error=str(e),
            )
            raise SchemaInvalidError(str(e)) from e

        metadata = GenerationMetadata(
            provider=self.client.config.provider,
            model=self.client.config.model,
            schema_id=schema_id,
            generated_at=datetime.now(timezone.utc).isoformat(),
            topics=topics,
            latency_ms=latency_ms,
        )

        logger.info(
            "content_generated",
            skill_area=skill_area,
            exercise_type=exercise_type,
            band=band,
            latency_ms=latency_ms,
        )
        return GeneratedContent(payload=payload, metadata=metadata)


def _topic_hint(topics: tuple[str, ...], explicit: bool) -> str:
    if explicit:
        return f"Focus on one of these topics: {', '.join(topics)}"
    return f"Choose from topics like: {', '.join(topics)}"


def _fill_band_fields(exercise_type: str, band: str, raw: Any) -> Any:
    """Add the fields whose values depend only on band or on the payload itself."""
    if not isinstance(raw, dict):
        return raw

    data = dict(raw)
    data.setdefault("type", exercise_type)

    if exercise_type == "writing_sample":
        data["expected_word_count"] = WRITING_WORD_COUNTS[band]
    elif exercise_type == "interactive_writing":
        step1, step2 = INTERACTIVE_WRITING_WORD_COUNTS[band]
        data["expected_word_count_step1"] = step1
        data["expected_word_count_step2"] = step2
    elif exercise_type == "listen_and_summarize":
        data["word_count_guideline"] = SUMMARY_WORD_COUNTS[band]
    elif exercise_type == "read_and_select" and isinstance(data.get("words"), list):
        data["total_words"] = len(data["words"])

    return data
