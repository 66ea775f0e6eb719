"""Content payloads, one variant per exercise type.

Every exercise type has a payload dataclass and a parser that turns the
raw JSON produced by the generation backend into that dataclass, checking
field presence, option counts, index bounds and blank markers on the way.
parse_payload() is the single entry point and dispatches on the schema id.

Payload JSON uses snake_case keys, the same keys payload_to_dict() emits.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Callable, ClassVar, Union

from practice.core.catalog import EXERCISE_TYPES, schema_id_for

# Options every multiple-choice block must carry
OPTION_COUNT = 4

# A blank is a run of three or more underscores
BLANK_PATTERN = re.compile(r"_{3,}")

# Passage blanks in interactive reading look like [BLANK_1]
PASSAGE_BLANK_PATTERN = re.compile(r"\[BLANK_\d+\]")

HIGHLIGHT_QUESTION_COUNT = 2


class PayloadValidationError(ValueError):
    """Raw payload does not match its exercise type's schema."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


# =============================================================================
# FIELD HELPERS
# =============================================================================


def _obj(data: Any, path: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise PayloadValidationError(path, "expected an object")
    return data


def _str(data: dict[str, Any], key: str, path: str, required: bool = True) -> str:
    value = data.get(key)
    if value is None and not required:
        return ""
    if not isinstance(value, str) or (required and not value.strip()):
        raise PayloadValidationError(f"{path}.{key}", "expected a non-empty string")
    return value


def _opt_str(data: dict[str, Any], key: str, path: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise PayloadValidationError(f"{path}.{key}", "expected a string")
    return value


def _int(
    data: dict[str, Any],
    key: str,
    path: str,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    value = data.get(key)
    # bool is an int subclass; true/false is never a valid count or index
    if not isinstance(value, int) or isinstance(value, bool):
        raise PayloadValidationError(f"{path}.{key}", "expected an integer")
    if minimum is not None and value < minimum:
        raise PayloadValidationError(f"{path}.{key}", f"must be >= {minimum}")
    if maximum is not None and value > maximum:
        raise PayloadValidationError(f"{path}.{key}", f"must be <= {maximum}")
    return value


def _str_list(
    data: dict[str, Any],
    key: str,
    path: str,
    required: bool = True,
) -> tuple[str, ...]:
    value = data.get(key)
    if value is None and not required:
        return ()
    if not isinstance(value, list) or (required and not value):
        raise PayloadValidationError(f"{path}.{key}", "expected a non-empty list")
    for i, item in enumerate(value):
        if not isinstance(item, str) or not item.strip():
            raise PayloadValidationError(f"{path}.{key}[{i}]", "expected a non-empty string")
    return tuple(value)


def _obj_list(data: dict[str, Any], key: str, path: str) -> list[dict[str, Any]]:
    value = data.get(key)
    if not isinstance(value, list) or not value:
        raise PayloadValidationError(f"{path}.{key}", "expected a non-empty list")
    return [_obj(item, f"{path}.{key}[{i}]") for i, item in enumerate(value)]


def _options(data: dict[str, Any], key: str, path: str) -> tuple[str, ...]:
    options = _str_list(data, key, path)
    if len(options) != OPTION_COUNT:
        raise PayloadValidationError(
            f"{path}.{key}", f"expected exactly {OPTION_COUNT} options, got {len(options)}"
        )
    return options


def _choice_index(data: dict[str, Any], key: str, path: str, options: tuple[str, ...]) -> int:
    return _int(data, key, path, minimum=0, maximum=len(options) - 1)


# =============================================================================
# SHARED PARTS
# =============================================================================


@dataclass(frozen=True)
class WordRange:
    """Expected word count for a written or spoken response."""

    min: int
    max: int

    @classmethod
    def parse(cls, data: Any, path: str) -> WordRange:
        data = _obj(data, path)
        low = _int(data, "min", path, minimum=1)
        high = _int(data, "max", path, minimum=1)
        if low > high:
            raise PayloadValidationError(path, "min must not exceed max")
        return cls(min=low, max=high)


@dataclass(frozen=True)
class ChoiceQuestion:
    """A question with four options and one correct index."""

    question: str
    options: tuple[str, ...]
    correct_index: int

    @classmethod
    def parse(cls, data: Any, path: str) -> ChoiceQuestion:
        data = _obj(data, path)
        options = _options(data, "options", path)
        return cls(
            question=_str(data, "question", path),
            options=options,
            correct_index=_choice_index(data, "correct_index", path, options),
        )


# =============================================================================
# SPEAKING
# =============================================================================


@dataclass(frozen=True)
class ListenThenSpeakPayload:
    exercise_type: ClassVar[str] = "listen_then_speak"

    audio_script: str
    response_prompt: str
    expected_topics: tuple[str, ...]
    suggested_duration: int
    context: str | None = None


@dataclass(frozen=True)
class ReadThenSpeakPayload:
    exercise_type: ClassVar[str] = "read_then_speak"

    reading_text: str
    discussion_prompt: str
    expected_topics: tuple[str, ...]
    suggested_duration: int
    context: str | None = None


def _parse_listen_then_speak(data: dict[str, Any], path: str) -> ListenThenSpeakPayload:
    return ListenThenSpeakPayload(
        audio_script=_str(data, "audio_script", path),
        response_prompt=_str(data, "response_prompt", path),
        expected_topics=_str_list(data, "expected_topics", path),
        suggested_duration=_int(data, "suggested_duration", path, minimum=1),
        context=_opt_str(data, "context", path),
    )


def _parse_read_then_speak(data: dict[str, Any], path: str) -> ReadThenSpeakPayload:
    return ReadThenSpeakPayload(
        reading_text=_str(data, "reading_text", path),
        discussion_prompt=_str(data, "discussion_prompt", path),
        expected_topics=_str_list(data, "expected_topics", path),
        suggested_duration=_int(data, "suggested_duration", path, minimum=1),
        context=_opt_str(data, "context", path),
    )


# =============================================================================
# WRITING
# =============================================================================


@dataclass(frozen=True)
class WritingSamplePayload:
    exercise_type: ClassVar[str] = "writing_sample"

    topic: str
    instructions: str
    expected_word_count: WordRange
    evaluation_criteria: tuple[str, ...]
    context: str | None = None
    suggested_points: tuple[str, ...] = ()


@dataclass(frozen=True)
class InteractiveWritingPayload:
    """Two-step writing task; the step 2 prompt is produced at runtime."""

    exercise_type: ClassVar[str] = "interactive_writing"

    step1_prompt: str
    step1_context: str
    expected_word_count_step1: WordRange
    follow_up_guidelines: tuple[str, ...]
    expected_word_count_step2: WordRange


def _parse_writing_sample(data: dict[str, Any], path: str) -> WritingSamplePayload:
    return WritingSamplePayload(
        topic=_str(data, "topic", path),
        instructions=_str(data, "instructions", path),
        expected_word_count=WordRange.parse(
            data.get("expected_word_count"), f"{path}.expected_word_count"
        ),
        evaluation_criteria=_str_list(data, "evaluation_criteria", path),
        context=_opt_str(data, "context", path),
        suggested_points=_str_list(data, "suggested_points", path, required=False),
    )


def _parse_interactive_writing(data: dict[str, Any], path: str) -> InteractiveWritingPayload:
    return InteractiveWritingPayload(
        step1_prompt=_str(data, "step1_prompt", path),
        step1_context=_str(data, "step1_context", path),
        expected_word_count_step1=WordRange.parse(
            data.get("expected_word_count_step1"), f"{path}.expected_word_count_step1"
        ),
        follow_up_guidelines=_str_list(data, "follow_up_guidelines", path),
        expected_word_count_step2=WordRange.parse(
            data.get("expected_word_count_step2"), f"{path}.expected_word_count_step2"
        ),
    )


# =============================================================================
# LISTENING
# =============================================================================


@dataclass(frozen=True)
class ListenAndTypePayload:
    exercise_type: ClassVar[str] = "listen_and_type"

    audio_script: str
    hints: tuple[str, ...] = ()
    acceptable_variations: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConversationTurn:
    """One speaker line with four candidate replies."""

    prompt: str
    options: tuple[str, ...]
    correct_option: int
    explanation: str | None = None


@dataclass(frozen=True)
class ListenAndRespondPayload:
    exercise_type: ClassVar[str] = "listen_and_respond"

    title: str
    context: str
    conversation_turns: tuple[ConversationTurn, ...]
    summary_prompt: str
    expected_summary_points: tuple[str, ...]


@dataclass(frozen=True)
class FillBlankQuestion:
    """Sentence split around a single gap."""

    id: int
    sentence_start: str
    sentence_end: str
    correct_answer: str
    acceptable_answers: tuple[str, ...] = ()
    hint: str | None = None


@dataclass(frozen=True)
class ListenAndCompletePayload:
    exercise_type: ClassVar[str] = "listen_and_complete"

    title: str
    context: str
    audio_script: str
    questions: tuple[FillBlankQuestion, ...]


@dataclass(frozen=True)
class ListenAndSummarizePayload:
    exercise_type: ClassVar[str] = "listen_and_summarize"

    title: str
    context: str
    audio_script: str
    expected_points: tuple[str, ...]
    word_count_guideline: WordRange


def _parse_listen_and_type(data: dict[str, Any], path: str) -> ListenAndTypePayload:
    return ListenAndTypePayload(
        audio_script=_str(data, "audio_script", path),
        hints=_str_list(data, "hints", path, required=False),
        acceptable_variations=_str_list(data, "acceptable_variations", path, required=False),
    )


def _parse_listen_and_respond(data: dict[str, Any], path: str) -> ListenAndRespondPayload:
    turns = []
    for i, turn in enumerate(_obj_list(data, "conversation_turns", path)):
        turn_path = f"{path}.conversation_turns[{i}]"
        options = _options(turn, "options", turn_path)
        turns.append(
            ConversationTurn(
                prompt=_str(turn, "prompt", turn_path),
                options=options,
                correct_option=_choice_index(turn, "correct_option", turn_path, options),
                explanation=_opt_str(turn, "explanation", turn_path),
            )
        )

    return ListenAndRespondPayload(
        title=_str(data, "title", path),
        context=_str(data, "context", path),
        conversation_turns=tuple(turns),
        summary_prompt=_str(data, "summary_prompt", path),
        expected_summary_points=_str_list(data, "expected_summary_points", path),
    )


def _parse_listen_and_complete(data: dict[str, Any], path: str) -> ListenAndCompletePayload:
    questions = []
    seen_ids: set[int] = set()
    for i, q in enumerate(_obj_list(data, "questions", path)):
        q_path = f"{path}.questions[{i}]"
        qid = _int(q, "id", q_path)
        if qid in seen_ids:
            raise PayloadValidationError(f"{q_path}.id", f"duplicate question id {qid}")
        seen_ids.add(qid)

        start = _str(q, "sentence_start", q_path, required=False)
        end = _str(q, "sentence_end", q_path, required=False)
        if not start.strip() and not end.strip():
            raise PayloadValidationError(q_path, "blank needs text on at least one side")

        questions.append(
            FillBlankQuestion(
                id=qid,
                sentence_start=start,
                sentence_end=end,
                correct_answer=_str(q, "correct_answer", q_path),
                acceptable_answers=_str_list(q, "acceptable_answers", q_path, required=False),
                hint=_opt_str(q, "hint", q_path),
            )
        )

    return ListenAndCompletePayload(
        title=_str(data, "title", path),
        context=_str(data, "context", path),
        audio_script=_str(data, "audio_script", path),
        questions=tuple(questions),
    )


def _parse_listen_and_summarize(data: dict[str, Any], path: str) -> ListenAndSummarizePayload:
    return ListenAndSummarizePayload(
        title=_str(data, "title", path),
        context=_str(data, "context", path),
        audio_script=_str(data, "audio_script", path),
        expected_points=_str_list(data, "expected_points", path),
        word_count_guideline=WordRange.parse(
            data.get("word_count_guideline"), f"{path}.word_count_guideline"
        ),
    )


# =============================================================================
# READING
# =============================================================================


@dataclass(frozen=True)
class WordItem:
    word: str
    is_real: bool
    difficulty: int


@dataclass(frozen=True)
class ReadAndSelectPayload:
    """Real/fake word recognition grid."""

    exercise_type: ClassVar[str] = "read_and_select"

    words: tuple[WordItem, ...]
    total_words: int


@dataclass(frozen=True)
class SentenceWithBlank:
    sentence: str
    missing_word: str
    difficulty: int
    hints: tuple[str, ...] = ()


@dataclass(frozen=True)
class FillInTheBlanksPayload:
    exercise_type: ClassVar[str] = "fill_in_the_blanks"

    sentences: tuple[SentenceWithBlank, ...]


@dataclass(frozen=True)
class ReadAndCompletePayload:
    exercise_type: ClassVar[str] = "read_and_complete"

    title: str
    paragraph: str
    missing_words: tuple[str, ...]
    context: str | None = None


@dataclass(frozen=True)
class SentenceBlank:
    """Dropdown blank embedded in one passage part."""

    part_index: int
    blank_text: str
    options: tuple[str, ...]
    correct_index: int


@dataclass(frozen=True)
class PassageGap:
    """Missing sentence that follows the part at gap_position."""

    gap_position: int
    options: tuple[str, ...]
    correct_index: int


@dataclass(frozen=True)
class HighlightQuestion:
    question: str
    correct_highlight: str
    part_index: int


@dataclass(frozen=True)
class InteractiveReadingPayload:
    """Passage with embedded blanks and six dependent question blocks."""

    exercise_type: ClassVar[str] = "interactive_reading"

    title: str
    passage_parts: tuple[str, ...]
    sentence_blanks: tuple[SentenceBlank, ...]
    passage_gap: PassageGap
    highlight_questions: tuple[HighlightQuestion, ...]
    main_idea: ChoiceQuestion
    title_question: ChoiceQuestion


def _parse_read_and_select(data: dict[str, Any], path: str) -> ReadAndSelectPayload:
    words = []
    for i, w in enumerate(_obj_list(data, "words", path)):
        w_path = f"{path}.words[{i}]"
        is_real = w.get("is_real")
        if not isinstance(is_real, bool):
            raise PayloadValidationError(f"{w_path}.is_real", "expected a boolean")
        words.append(
            WordItem(
                word=_str(w, "word", w_path),
                is_real=is_real,
                difficulty=_int(w, "difficulty", w_path, minimum=1, maximum=5),
            )
        )

    if all(w.is_real for w in words) or not any(w.is_real for w in words):
        raise PayloadValidationError(f"{path}.words", "needs both real and invented words")

    return ReadAndSelectPayload(
        words=tuple(words),
        total_words=_int(data, "total_words", path, minimum=1, maximum=len(words)),
    )


def _parse_fill_in_the_blanks(data: dict[str, Any], path: str) -> FillInTheBlanksPayload:
    sentences = []
    for i, s in enumerate(_obj_list(data, "sentences", path)):
        s_path = f"{path}.sentences[{i}]"
        sentence = _str(s, "sentence", s_path)
        blanks = len(BLANK_PATTERN.findall(sentence))
        if blanks != 1:
            raise PayloadValidationError(
                f"{s_path}.sentence", f"expected exactly one blank, found {blanks}"
            )
        sentences.append(
            SentenceWithBlank(
                sentence=sentence,
                missing_word=_str(s, "missing_word", s_path),
                difficulty=_int(s, "difficulty", s_path, minimum=1, maximum=5),
                hints=_str_list(s, "hints", s_path, required=False),
            )
        )
    return FillInTheBlanksPayload(sentences=tuple(sentences))


def _parse_read_and_complete(data: dict[str, Any], path: str) -> ReadAndCompletePayload:
    paragraph = _str(data, "paragraph", path)
    missing_words = _str_list(data, "missing_words", path)
    blanks = len(BLANK_PATTERN.findall(paragraph))
    if blanks != len(missing_words):
        raise PayloadValidationError(
            f"{path}.missing_words",
            f"{len(missing_words)} words for {blanks} blanks in paragraph",
        )
    return ReadAndCompletePayload(
        title=_str(data, "title", path),
        paragraph=paragraph,
        missing_words=missing_words,
        context=_opt_str(data, "context", path),
    )


def _parse_interactive_reading(data: dict[str, Any], path: str) -> InteractiveReadingPayload:
    parts = _str_list(data, "passage_parts", path)

    blanks = []
    for i, b in enumerate(_obj_list(data, "sentence_blanks", path)):
        b_path = f"{path}.sentence_blanks[{i}]"
        part_index = _int(b, "part_index", b_path, minimum=0, maximum=len(parts) - 1)
        blank_text = _str(b, "blank_text", b_path)
        if blank_text not in parts[part_index]:
            raise PayloadValidationError(
                f"{b_path}.blank_text", f"{blank_text!r} not found in passage part {part_index}"
            )
        options = _options(b, "options", b_path)
        blanks.append(
            SentenceBlank(
                part_index=part_index,
                blank_text=blank_text,
                options=options,
                correct_index=_choice_index(b, "correct_index", b_path, options),
            )
        )

    # Every marker in the passage needs a matching dropdown
    declared = {b.blank_text for b in blanks}
    for part_index, part in enumerate(parts):
        for marker in PASSAGE_BLANK_PATTERN.findall(part):
            if marker not in declared:
                raise PayloadValidationError(
                    f"{path}.passage_parts[{part_index}]", f"marker {marker} has no sentence blank"
                )

    gap_path = f"{path}.passage_gap"
    gap_data = _obj(data.get("passage_gap"), gap_path)
    gap_options = _options(gap_data, "options", gap_path)
    gap = PassageGap(
        gap_position=_int(gap_data, "gap_position", gap_path, minimum=0, maximum=len(parts) - 1),
        options=gap_options,
        correct_index=_choice_index(gap_data, "correct_index", gap_path, gap_options),
    )

    highlights = []
    for i, h in enumerate(_obj_list(data, "highlight_questions", path)):
        h_path = f"{path}.highlight_questions[{i}]"
        part_index = _int(h, "part_index", h_path, minimum=0, maximum=len(parts) - 1)
        highlight = _str(h, "correct_highlight", h_path)
        if highlight not in parts[part_index]:
            raise PayloadValidationError(
                f"{h_path}.correct_highlight", f"not a substring of passage part {part_index}"
            )
        highlights.append(
            HighlightQuestion(
                question=_str(h, "question", h_path),
                correct_highlight=highlight,
                part_index=part_index,
            )
        )
    if len(highlights) != HIGHLIGHT_QUESTION_COUNT:
        raise PayloadValidationError(
            f"{path}.highlight_questions",
            f"expected {HIGHLIGHT_QUESTION_COUNT} questions, got {len(highlights)}",
        )

    return InteractiveReadingPayload(
        title=_str(data, "title", path),
        passage_parts=parts,
        sentence_blanks=tuple(blanks),
        passage_gap=gap,
        highlight_questions=tuple(highlights),
        main_idea=ChoiceQuestion.parse(data.get("main_idea"), f"{path}.main_idea"),
        title_question=ChoiceQuestion.parse(data.get("title_question"), f"{path}.title_question"),
    )


# =============================================================================
# DISPATCH
# =============================================================================

ContentPayload = Union[
    ListenThenSpeakPayload,
    ReadThenSpeakPayload,
    WritingSamplePayload,
    InteractiveWritingPayload,
    ListenAndTypePayload,
    ListenAndRespondPayload,
    ListenAndCompletePayload,
    ListenAndSummarizePayload,
    ReadAndSelectPayload,
    FillInTheBlanksPayload,
    ReadAndCompletePayload,
    InteractiveReadingPayload,
]

_PARSERS: dict[str, Callable[[dict[str, Any], str], ContentPayload]] = {
    schema_id_for("listen_then_speak"): _parse_listen_then_speak,
    schema_id_for("read_then_speak"): _parse_read_then_speak,
    schema_id_for("writing_sample"): _parse_writing_sample,
    schema_id_for("interactive_writing"): _parse_interactive_writing,
    schema_id_for("listen_and_type"): _parse_listen_and_type,
    schema_id_for("listen_and_respond"): _parse_listen_and_respond,
    schema_id_for("listen_and_complete"): _parse_listen_and_complete,
    schema_id_for("listen_and_summarize"): _parse_listen_and_summarize,
    schema_id_for("read_and_select"): _parse_read_and_select,
    schema_id_for("fill_in_the_blanks"): _parse_fill_in_the_blanks,
    schema_id_for("read_and_complete"): _parse_read_and_complete,
    schema_id_for("interactive_reading"): _parse_interactive_reading,
}

_all_types = {t for types in EXERCISE_TYPES.values() for t in types}
if {schema_id_for(t) for t in _all_types} != set(_PARSERS):
    raise RuntimeError("every catalog exercise type needs exactly one payload parser")


def supported_schema_ids() -> list[str]:
    """Schema ids with a registered validator."""
    return sorted(_PARSERS)


def parse_payload(schema_id: str, raw: Any) -> ContentPayload:
    """Validate raw content against a schema and build the payload.

    Args:
        schema_id: Schema identifier, e.g. "listen_and_respond.v1"
        raw: Decoded JSON object

    Returns:
        The typed payload.

    Raises:
        PayloadValidationError: If the schema is unknown or the data is invalid.
    """
    parser = _PARSERS.get(schema_id)
    if parser is None:
        raise PayloadValidationError("$schema", f"no validator for schema {schema_id!r}")

    data = _obj(raw, "$")
    declared_type = data.get("type")
    expected_type = schema_id.rsplit(".", 1)[0]
    if declared_type is not None and declared_type != expected_type:
        raise PayloadValidationError(
            "$.type", f"payload declares {declared_type!r}, expected {expected_type!r}"
        )

    return parser(data, "$")


def payload_to_dict(payload: ContentPayload) -> dict[str, Any]:
    """Convert a payload to a JSON-ready dict tagged with its exercise type."""
    data = asdict(payload)
    return {"type": payload.exercise_type, **_lists(data)}


def _lists(value: Any) -> Any:
    # asdict keeps tuples; JSON round-trips them as lists
    if isinstance(value, dict):
        return {k: _lists(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_lists(v) for v in value]
    return value
