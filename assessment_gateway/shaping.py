"""Narrow parsed model output into typed domain objects.

Parsed replies are untyped JSON. Every function here validates the part it
needs, substitutes placeholders for missing or malformed fields, and returns
pydantic models, so nothing downstream handles raw dictionaries.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .models import (
    CorrectionItem,
    FluencySection,
    GrammarIssue,
    GrammarSection,
    PronunciationIssue,
    PronunciationSection,
    Question,
    Recommendation,
    RecommendationPriority,
    ScoreSection,
    SpeakingFeedback,
    VocabularySection,
    WritingCorrection,
    WritingFeedback,
)
from .normalizer import MalformedResponseError, ParsedContent
from .text_utils import strip_markdown_code_blocks

logger = logging.getLogger(__name__)

PLACEHOLDER_OPTIONS = ["Option A", "Option B", "Option C", "Option D"]
NO_EXPLANATION = "No explanation provided"
DEFAULT_SCORE = 75


class RawQuestionItem(BaseModel):
    """A question item as models actually return it."""

    model_config = ConfigDict(extra="ignore")

    question: Any = None
    options: Any = None
    correct_answer: Any = Field(
        default=None,
        validation_alias=AliasChoices("correctAnswer", "correct_answer", "correctIndex"),
    )
    explanation: Any = None
    topic: Any = None
    section: Any = None


class RawReadingPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    passage: Any = None
    questions: Any = None


class RawCorrectionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    corrected_text: Any = Field(
        default=None, validation_alias=AliasChoices("corrected_text", "correctedText")
    )
    score: Any = None
    errors: Any = None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else str(value).strip()


def _text_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [text for text in (_text(item) for item in value) if text]


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _dict_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _as_index(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def clamp_score(value: Any, default: int = DEFAULT_SCORE) -> int:
    """Round a model-reported score into 0-100, or use the default."""
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return min(100, max(0, int(round(number))))


def narrow_items(value: ParsedContent, items_key: str = "questions") -> List[Dict[str, Any]]:
    """Extract the list of item objects from a parsed reply.

    Args:
        value: Parsed reply (a list of items, or an object holding one)
        items_key: Key of the item list when the reply is an object

    Returns:
        Item dictionaries, skipping anything that is not an object

    Raises:
        MalformedResponseError: If the reply holds no item list
    """
    if isinstance(value, dict):
        value = value.get(items_key)
    if not isinstance(value, list):
        raise MalformedResponseError(f"Expected a list of {items_key}")
    return [item for item in value if isinstance(item, dict)]


def shape_question(
    item: Dict[str, Any],
    position: int,
    default_topic: str,
    option_count: Optional[int] = 4,
    fallback_options: Sequence[str] = PLACEHOLDER_OPTIONS,
    default_explanation: str = NO_EXPLANATION,
) -> Question:
    """Build a Question from a raw item, filling in what is missing.

    Args:
        item: Raw item dictionary
        position: 1-based position, used as id and in the placeholder stem
        default_topic: Topic when the item has none
        option_count: Required number of options, or None to accept any list
            of two or more
        fallback_options: Options used when the item's options are unusable
        default_explanation: Explanation when the item has none

    Returns:
        A valid Question
    """
    raw = RawQuestionItem.model_validate(item)

    options = raw.options if isinstance(raw.options, list) else []
    usable = len(options) == option_count if option_count else len(options) >= 2
    if usable:
        option_texts = [_text(o) for o in options]
    else:
        logger.debug(
            f"Question {position} has {len(options)} usable options, using placeholders"
        )
        option_texts = list(fallback_options)

    correct_index = _as_index(raw.correct_answer)
    if correct_index is None or not 0 <= correct_index < len(option_texts):
        correct_index = 0

    section = _as_index(raw.section)
    return Question(
        id=position,
        prompt_text=_text(raw.question) or f"Question {position}",
        options=option_texts,
        correct_index=correct_index,
        explanation=_text(raw.explanation) or default_explanation,
        topic=_text(raw.topic) or default_topic,
        section=section if section in (1, 2, 3) else None,
    )


def shape_questions(
    value: ParsedContent,
    default_topic: str,
    items_key: str = "questions",
    **kwargs: Any,
) -> List[Question]:
    """Narrow a parsed reply into a list of questions numbered from 1."""
    return [
        shape_question(item, position, default_topic, **kwargs)
        for position, item in enumerate(narrow_items(value, items_key), start=1)
    ]


def shape_reading(value: ParsedContent, default_topic: str) -> Tuple[str, List[Question]]:
    """Split a reading reply into its passage and questions.

    Raises:
        MalformedResponseError: If the reply is not an object with a passage
            and at least one question
    """
    if not isinstance(value, dict):
        raise MalformedResponseError("Expected an object with passage and questions")
    raw = RawReadingPayload.model_validate(value)
    passage = _text(raw.passage)
    if not passage or passage == "No passage provided":
        raise MalformedResponseError("Reading reply has no passage")

    questions = shape_questions({"questions": raw.questions}, default_topic)
    if not questions:
        raise MalformedResponseError("Reading reply has no questions")
    return passage, questions


def _grammar(value: Any) -> GrammarSection:
    data = _mapping(value)
    errors = [
        GrammarIssue(
            type=_text(e.get("type")),
            message=_text(e.get("message")),
            suggestion=_text(e.get("suggestion")),
        )
        for e in _dict_list(data.get("errors"))
    ]
    return GrammarSection(score=clamp_score(data.get("score")), errors=errors)


def _vocabulary(value: Any) -> VocabularySection:
    data = _mapping(value)
    level = _text(data.get("levelAnalysis", data.get("level_analysis")))
    return VocabularySection(
        score=clamp_score(data.get("score")),
        suggestions=_text_list(data.get("suggestions")),
        level_analysis=level or "Intermediate",
    )


def shape_writing_feedback(value: ParsedContent) -> WritingFeedback:
    data = _mapping(value)
    coherence = _mapping(data.get("coherence"))
    return WritingFeedback(
        overall_score=clamp_score(data.get("overallScore", data.get("overall_score"))),
        grammar=_grammar(data.get("grammar")),
        vocabulary=_vocabulary(data.get("vocabulary")),
        coherence=ScoreSection(
            score=clamp_score(coherence.get("score")),
            feedback=_text(coherence.get("feedback")) or "Good structure and flow.",
        ),
        strengths=_text_list(data.get("strengths")),
        improvements=_text_list(data.get("improvements")),
    )


def shape_writing_correction(value: ParsedContent, original_text: str) -> WritingCorrection:
    """Narrow a correction reply, keeping the original text if none came back."""
    raw = RawCorrectionPayload.model_validate(_mapping(value))
    errors = [
        CorrectionItem(
            original=_text(e.get("original")),
            replacement=_text(e.get("replacement")),
            explanation=_text(e.get("explanation")),
        )
        for e in _dict_list(raw.errors)
    ]
    corrected = raw.corrected_text
    return WritingCorrection(
        corrected_text=corrected if isinstance(corrected, str) and corrected.strip() else original_text,
        score=clamp_score(raw.score),
        errors=errors,
    )


def shape_speaking_feedback(value: ParsedContent, words_per_minute: int) -> SpeakingFeedback:
    """Narrow a speaking reply, using the locally estimated speaking rate."""
    data = _mapping(value)
    pronunciation = _mapping(data.get("pronunciation"))
    fluency = _mapping(data.get("fluency"))
    reported_wpm = _as_index(fluency.get("wordsPerMinute", fluency.get("words_per_minute")))
    return SpeakingFeedback(
        overall_score=clamp_score(data.get("overallScore", data.get("overall_score"))),
        pronunciation=PronunciationSection(
            score=clamp_score(pronunciation.get("score"), default=80),
            errors=[
                PronunciationIssue(
                    word=_text(e.get("word")),
                    expected=_text(e.get("expected")),
                    actual=_text(e.get("actual")),
                )
                for e in _dict_list(pronunciation.get("errors"))
            ],
        ),
        fluency=FluencySection(
            score=clamp_score(fluency.get("score")),
            words_per_minute=words_per_minute or reported_wpm or 120,
            pause_analysis=_text(fluency.get("pauseAnalysis", fluency.get("pause_analysis")))
            or "Good pacing",
        ),
        grammar=_grammar(data.get("grammar")),
        vocabulary=_vocabulary(data.get("vocabulary")),
        strengths=_text_list(data.get("strengths")),
        improvements=_text_list(data.get("improvements")),
    )


def shape_tips(value: ParsedContent, limit: int = 4) -> List[str]:
    """Narrow a tips reply (a list of strings, or an object with ``tips``)."""
    if isinstance(value, dict):
        value = value.get("tips")
    if not isinstance(value, list):
        raise MalformedResponseError("Expected a list of tips")
    return _text_list(value)[:limit]


def _priority(value: Any) -> RecommendationPriority:
    try:
        return RecommendationPriority(_text(value).lower())
    except ValueError:
        return RecommendationPriority.MEDIUM


def shape_recommendations(value: ParsedContent, limit: int = 4) -> List[Recommendation]:
    """Narrow a recommendations reply, filling in any missing field."""
    if isinstance(value, dict):
        value = value.get("recommendations")
    if not isinstance(value, list):
        raise MalformedResponseError("Expected a list of recommendations")
    return [
        Recommendation(
            id=_text(item.get("id")) or f"rec-{position}",
            title=_text(item.get("title")) or "Study Recommendation",
            description=_text(item.get("description"))
            or "Continue practicing to improve your skills",
            action=_text(item.get("action")) or "Start Now",
            priority=_priority(item.get("priority")),
        )
        for position, item in enumerate(_dict_list(value)[:limit], start=1)
    ]


def shape_insight(raw: str) -> str:
    """Plain-text insight with any fence or wrapping quotes removed."""
    return strip_markdown_code_blocks(raw or "").strip().strip("\"'").strip()
