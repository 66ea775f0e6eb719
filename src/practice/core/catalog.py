"""Exercise catalog.

Skill areas, the exercise types each one offers, the payload schema id
for every exercise type, and the CEFR band characteristics used to steer
content generation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

# =============================================================================
# TYPES
# =============================================================================

Band = Literal["A1", "A2", "B1", "B2", "C1", "C2"]

SKILL_AREAS: tuple[str, ...] = ("speaking", "writing", "listening", "reading")

EXERCISE_TYPES: dict[str, tuple[str, ...]] = {
    "speaking": ("listen_then_speak", "read_then_speak"),
    "writing": ("writing_sample", "interactive_writing"),
    "listening": (
        "listen_and_type",
        "listen_and_respond",
        "listen_and_complete",
        "listen_and_summarize",
    ),
    "reading": (
        "read_and_select",
        "fill_in_the_blanks",
        "read_and_complete",
        "interactive_reading",
    ),
}


class UnknownExerciseTypeError(ValueError):
    """Skill area or exercise type is not part of the catalog."""

    pass


def schema_id_for(exercise_type: str) -> str:
    """Payload schema identifier for an exercise type."""
    return f"{exercise_type}.v1"


def validate_exercise_type(skill_area: str, exercise_type: str) -> None:
    """Check that an exercise type belongs to a skill area.

    Raises:
        UnknownExerciseTypeError: If either value is unknown or they don't match.
    """
    if skill_area not in EXERCISE_TYPES:
        raise UnknownExerciseTypeError(f"Unknown skill area: {skill_area}")
    if exercise_type not in EXERCISE_TYPES[skill_area]:
        raise UnknownExerciseTypeError(
            f"Exercise type '{exercise_type}' is not offered for {skill_area}"
        )


# =============================================================================
# CEFR CHARACTERISTICS
# =============================================================================


@dataclass(frozen=True)
class BandCharacteristics:
    """What content at a CEFR band should look like."""

    vocabulary_range: str
    grammar_structures: str
    topics: tuple[str, ...]
    sentence_length: str
    complexity: str


BAND_CHARACTERISTICS: dict[str, BandCharacteristics] = {
    "A1": BandCharacteristics(
        vocabulary_range="basic, everyday words (500-1000 words)",
        grammar_structures="simple present, basic past, simple sentences",
        topics=("family", "shopping", "daily routine", "food", "weather", "greetings"),
        sentence_length="5-10 words",
        complexity="very simple, concrete topics only",
    ),
    "A2": BandCharacteristics(
        vocabulary_range="common vocabulary (1000-2000 words)",
        grammar_structures="past tense, future with will/going to, basic connectors",
        topics=("travel", "hobbies", "work basics", "health", "education", "leisure"),
        sentence_length="8-15 words",
        complexity="simple, familiar everyday situations",
    ),
    "B1": BandCharacteristics(
        vocabulary_range="intermediate vocabulary (2000-4000 words)",
        grammar_structures="conditionals, passive voice, relative clauses, perfect tenses",
        topics=("current events", "opinions", "experiences", "future plans", "media", "culture"),
        sentence_length="10-20 words",
        complexity="can handle unexpected situations and express opinions",
    ),
    "B2": BandCharacteristics(
        vocabulary_range="upper intermediate (4000-8000 words)",
        grammar_structures="complex sentences, advanced tenses, nuanced connectors",
        topics=("abstract ideas", "professional topics", "social issues", "arts", "science"),
        sentence_length="15-25 words",
        complexity="can engage with complex texts and abstract topics",
    ),
    "C1": BandCharacteristics(
        vocabulary_range="advanced vocabulary (8000-15000 words)",
        grammar_structures="idiomatic expressions, nuanced structures, sophisticated linking",
        topics=("academic subjects", "complex arguments", "specialized fields", "philosophy"),
        sentence_length="20-30 words",
        complexity="sophisticated, understands implicit meaning",
    ),
    "C2": BandCharacteristics(
        vocabulary_range="near-native vocabulary (15000+ words)",
        grammar_structures="all structures, subtle distinctions, stylistic variation",
        topics=("any topic at depth", "abstract reasoning", "specialized discourse"),
        sentence_length="varied, complex structures",
        complexity="handles any language situation with precision",
    ),
}
