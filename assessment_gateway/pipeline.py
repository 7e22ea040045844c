"""Content pipeline: gateway -> normalizer -> shaping -> balancer.

Question-producing operations degrade to built-in content when generation is
unavailable or the reply is unusable. A rejected API key is never hidden this
way: it is always raised so the operator sees it. Analysis operations have no
meaningful default, so gateway errors surface and only an unparseable reply
is replaced with neutral feedback.
"""

import logging
from typing import Callable, List, Optional

from .balancer import AnswerBalancer
from .defaults import (
    DEFAULT_PLACEMENT_COUNT,
    IELTS_QUESTION_COUNT,
    default_ielts_questions,
    default_placement_questions,
    default_quiz_questions,
    default_progress_insight,
    default_reading,
    default_recommendations,
    default_tips,
)
from .gateway import (
    DEFAULT_AUDIO_MIME_TYPE,
    AllProvidersFailedError,
    AllProvidersRateLimitedError,
    ProviderGateway,
    ProviderNotConfiguredError,
)
from .models import (
    CEFRLevel,
    DifficultyLevel,
    LearnerStats,
    Question,
    ReadingComprehension,
    RecentActivity,
    Recommendation,
    ScoreSection,
    SkillScore,
    SpeakingAnalysis,
    TipCategory,
    TipsContext,
    WeaknessAnalysis,
    WritingCorrection,
    WritingFeedback,
)
from .normalizer import MalformedResponseError, ParsedContent, ResponseNormalizer, ResponseShape
from .prompts import (
    IELTS_SIMULATION_PROMPT,
    IELTS_SYSTEM_PROMPT,
    INSIGHT_SYSTEM_PROMPT,
    PLACEMENT_SYSTEM_PROMPT,
    QUIZ_SYSTEM_PROMPT,
    READING_SYSTEM_PROMPT,
    RECOMMENDATIONS_SYSTEM_PROMPT,
    SPEAKING_ANALYSIS_PROMPT,
    TIPS_SYSTEM_PROMPT,
    WRITING_ANALYSIS_PROMPT,
    WRITING_CORRECTION_PROMPT,
    build_placement_prompt,
    build_progress_insight_prompt,
    build_quiz_prompt,
    build_reading_prompt,
    build_recommendations_prompt,
    build_tips_prompt,
)
from .shaping import (
    shape_insight,
    shape_questions,
    shape_reading,
    shape_recommendations,
    shape_speaking_feedback,
    shape_tips,
    shape_writing_correction,
    shape_writing_feedback,
)
from .text_utils import estimate_words_per_minute

logger = logging.getLogger(__name__)

# Failures that question-producing operations absorb with built-in content
RECOVERABLE_ERRORS = (
    ProviderNotConfiguredError,
    AllProvidersRateLimitedError,
    AllProvidersFailedError,
    MalformedResponseError,
)

MIN_ANALYSIS_TEXT_CHARS = 10
MIN_IELTS_QUESTIONS = 20
IELTS_FALLBACK_OPTIONS = ["True", "False", "Not given"]

PLACEMENT_MAX_TOKENS = 2000
IELTS_MAX_TOKENS = 3000
WRITING_ANALYSIS_MAX_TOKENS = 1500
WRITING_CORRECTION_MAX_TOKENS = 800
SPEAKING_ANALYSIS_MAX_TOKENS = 1500
TIPS_MAX_TOKENS = 800
TIP_COUNT = 4
INSIGHT_MAX_TOKENS = 300
RECOMMENDATIONS_MAX_TOKENS = 1000


def quiz_token_budget(count: int) -> int:
    return min(count * 120 + 200, 2000)


def reading_token_budget(question_count: int) -> int:
    return min(question_count * 150 + 500, 3000)


class InvalidInputError(ValueError):
    """Caller-supplied input that no operation can work with."""


def _require_count(count: int) -> None:
    if count < 1:
        raise InvalidInputError(f"Question count must be at least 1, got {count}")


def _require_text(text: str) -> str:
    if not text or len(text.strip()) < MIN_ANALYSIS_TEXT_CHARS:
        raise InvalidInputError(
            f"Text must be at least {MIN_ANALYSIS_TEXT_CHARS} characters long for analysis"
        )
    return text


class ContentPipeline:
    """Generates and analyzes assessment content through the provider gateway."""

    def __init__(
        self,
        gateway: ProviderGateway,
        balancer: Optional[AnswerBalancer] = None,
        normalizer: Optional[ResponseNormalizer] = None,
    ):
        """Initialize the pipeline.

        Args:
            gateway: Provider gateway used for every model call
            balancer: Answer balancer (created with the gateway's metrics if not provided)
            normalizer: Response normalizer (created with the gateway's metrics if not provided)
        """
        self.gateway = gateway
        self.balancer = balancer or AnswerBalancer(metrics=gateway.metrics)
        self.normalizer = normalizer or ResponseNormalizer(metrics=gateway.metrics)

    def _generate(
        self, prompt: str, system_prompt: str, max_tokens: int, shape: ResponseShape
    ) -> ParsedContent:
        raw = self.gateway.invoke(prompt, system_prompt, max_tokens)
        return self.normalizer.parse_with_repair(raw, shape)

    def _finalize(
        self,
        questions: List[Question],
        count: Optional[int],
        filler: Optional[Callable[[int], List[Question]]] = None,
    ) -> List[Question]:
        """Pad or truncate to ``count``, balance, and renumber from 1."""
        questions = list(questions)
        if count is not None:
            if len(questions) < count and filler is not None:
                missing = count - len(questions)
                logger.info(f"Padding {len(questions)} questions with {missing} defaults")
                questions.extend(filler(missing))
            questions = questions[:count]

        balanced = self.balancer.balance(questions)
        return [q.model_copy(update={"id": i}) for i, q in enumerate(balanced, start=1)]

    def generate_quiz(
        self,
        topic: str,
        difficulty: DifficultyLevel,
        count: int = 5,
        cefr_level: Optional[CEFRLevel] = None,
    ) -> List[Question]:
        """Generate a multiple-choice quiz.

        Args:
            topic: Quiz topic
            difficulty: Learner difficulty
            count: Number of questions
            cefr_level: Optional CEFR level, which takes precedence over difficulty

        Returns:
            Exactly ``count`` balanced questions

        Raises:
            InvalidCredentialError: If a provider rejects its API key
            InvalidInputError: If ``count`` is below 1
        """
        _require_count(count)
        rng = self.balancer.rng
        try:
            value = self._generate(
                build_quiz_prompt(topic, difficulty, count, cefr_level),
                QUIZ_SYSTEM_PROMPT,
                quiz_token_budget(count),
                ResponseShape.ITEM_ARRAY,
            )
            questions = shape_questions(value, default_topic=topic)
            if not questions:
                raise MalformedResponseError("AI did not return any quiz questions")
            if len(questions) != count:
                logger.warning(f"AI returned {len(questions)} questions, {count} requested")
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"Quiz generation failed, using default questions: {e}")
            questions = default_quiz_questions(topic, difficulty, count, cefr_level, rng)

        return self._finalize(
            questions,
            count,
            lambda missing: default_quiz_questions(topic, difficulty, missing, cefr_level, rng),
        )

    def generate_reading_comprehension(
        self,
        difficulty: DifficultyLevel,
        question_count: int,
        cefr_level: Optional[CEFRLevel] = None,
        topic: Optional[str] = None,
    ) -> ReadingComprehension:
        """Generate a reading passage with questions about it."""
        _require_count(question_count)
        default_topic = topic or "Reading Comprehension"
        try:
            value = self._generate(
                build_reading_prompt(difficulty, question_count, cefr_level, topic),
                READING_SYSTEM_PROMPT,
                reading_token_budget(question_count),
                ResponseShape.OBJECT_WITH_ITEMS,
            )
            passage, questions = shape_reading(value, default_topic)
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"Reading comprehension generation failed, using default: {e}")
            fallback = default_reading(difficulty, question_count, cefr_level, topic)
            passage, questions = fallback.passage, fallback.questions

        questions = self._finalize(
            questions,
            question_count,
            lambda missing: default_reading(difficulty, missing, cefr_level, topic).questions,
        )
        return ReadingComprehension(passage=passage, questions=questions)

    def generate_placement_test(self, count: int = DEFAULT_PLACEMENT_COUNT) -> List[Question]:
        """Generate a mixed-level CEFR placement test."""
        _require_count(count)
        rng = self.balancer.rng
        try:
            value = self._generate(
                build_placement_prompt(count),
                PLACEMENT_SYSTEM_PROMPT,
                PLACEMENT_MAX_TOKENS,
                ResponseShape.ITEM_ARRAY,
            )
            questions = shape_questions(value, default_topic="Grammar")
            if not questions:
                raise MalformedResponseError("AI did not return any placement questions")
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"Placement test generation failed, using default questions: {e}")
            questions = default_placement_questions(count, rng)

        return self._finalize(
            questions, count, lambda missing: default_placement_questions(missing, rng)
        )

    def generate_ielts_simulation(self) -> List[Question]:
        """Generate an IELTS Academic Reading set of mixed 3- and 4-option items.

        A reply with fewer than ``MIN_IELTS_QUESTIONS`` usable items is
        treated as unusable and replaced by the built-in set.
        """
        try:
            value = self._generate(
                IELTS_SIMULATION_PROMPT,
                IELTS_SYSTEM_PROMPT,
                IELTS_MAX_TOKENS,
                ResponseShape.ITEM_ARRAY,
            )
            questions = shape_questions(
                value,
                default_topic="IELTS Reading",
                option_count=None,
                fallback_options=IELTS_FALLBACK_OPTIONS,
                default_explanation="See the passage.",
            )
            if len(questions) < MIN_IELTS_QUESTIONS:
                raise MalformedResponseError(
                    f"IELTS simulation returned only {len(questions)} questions"
                )
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"IELTS simulation generation failed, using built-in questions: {e}")
            questions = default_ielts_questions(self.balancer.rng)

        return self._finalize(questions[:IELTS_QUESTION_COUNT], count=None)

    def analyze_writing(self, text: str) -> WritingFeedback:
        """Detailed feedback on grammar, vocabulary and coherence.

        Raises:
            InvalidInputError: If the text is shorter than ``MIN_ANALYSIS_TEXT_CHARS``
            GatewayError: If no provider could produce a reply
        """
        raw = self.gateway.invoke(
            _require_text(text), WRITING_ANALYSIS_PROMPT, WRITING_ANALYSIS_MAX_TOKENS
        )
        try:
            value = self.normalizer.parse(raw)
        except MalformedResponseError as e:
            logger.warning(f"Failed to parse writing analysis, using fallback feedback: {e}")
            return WritingFeedback(
                coherence=ScoreSection(
                    feedback="Good overall structure. Consider adding more details and examples."
                )
            )
        return shape_writing_feedback(value)

    def correct_writing(self, text: str) -> WritingCorrection:
        """Corrected text plus the list of corrections made."""
        raw = self.gateway.invoke(
            _require_text(text), WRITING_CORRECTION_PROMPT, WRITING_CORRECTION_MAX_TOKENS
        )
        try:
            value = self.normalizer.parse(raw)
        except MalformedResponseError as e:
            logger.warning(f"Failed to parse writing correction, returning original text: {e}")
            return WritingCorrection(corrected_text=text)
        return shape_writing_correction(value, text)

    def analyze_speaking(
        self, audio: bytes, mime_type: str = DEFAULT_AUDIO_MIME_TYPE
    ) -> SpeakingAnalysis:
        """Transcribe a recording and analyze the transcript.

        Args:
            audio: Raw audio bytes
            mime_type: MIME type of the recording

        Returns:
            SpeakingAnalysis with feedback and the transcript

        Raises:
            InvalidInputError: If no audio was provided
            GatewayError: If transcription or analysis failed on every provider
        """
        if not audio:
            raise InvalidInputError("Audio recording is empty")

        transcript = self.gateway.transcribe(audio, mime_type)
        words_per_minute = estimate_words_per_minute(transcript)
        raw = self.gateway.invoke(
            transcript, SPEAKING_ANALYSIS_PROMPT, SPEAKING_ANALYSIS_MAX_TOKENS
        )
        try:
            feedback = shape_speaking_feedback(self.normalizer.parse(raw), words_per_minute)
        except MalformedResponseError as e:
            logger.warning(f"Failed to parse speaking analysis, using fallback feedback: {e}")
            feedback = shape_speaking_feedback({}, words_per_minute)
        return SpeakingAnalysis(feedback=feedback, transcript=transcript)

    def generate_tips(
        self, category: TipCategory, context: Optional[TipsContext] = None
    ) -> List[str]:
        """Four personalised tips for the given skill area."""
        try:
            value = self._generate(
                build_tips_prompt(category, context),
                TIPS_SYSTEM_PROMPT,
                TIPS_MAX_TOKENS,
                ResponseShape.ITEM_ARRAY,
            )
            tips = shape_tips(value, limit=TIP_COUNT)
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"Tips generation failed, using default tips: {e}")
            return default_tips(category)
        return tips or default_tips(category)

    def generate_progress_insight(
        self,
        stats: LearnerStats,
        skills: List[SkillScore],
        this_week: int,
        last_week: int,
        cefr_level: Optional[CEFRLevel] = None,
    ) -> str:
        """One short, actionable insight about the learner's progress.

        Falls back to a rule-based insight when generation is unavailable.
        The weekly-activity rule only applies when no provider is configured.

        Raises:
            InvalidCredentialError: If a provider rejects its API key
        """
        try:
            raw = self.gateway.invoke(
                build_progress_insight_prompt(stats, skills, this_week, last_week, cefr_level),
                INSIGHT_SYSTEM_PROMPT,
                INSIGHT_MAX_TOKENS,
            )
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"Progress insight generation failed, using rule-based insight: {e}")
            return default_progress_insight(
                skills,
                this_week,
                check_weekly_activity=isinstance(e, ProviderNotConfiguredError),
            )
        return shape_insight(raw) or default_progress_insight(
            skills, this_week, check_weekly_activity=False
        )

    def generate_recommendations(
        self,
        stats: LearnerStats,
        recent_activities: Optional[List[RecentActivity]] = None,
        weakness: Optional[WeaknessAnalysis] = None,
    ) -> List[Recommendation]:
        """Up to four study recommendations, weakest areas first.

        Args:
            stats: Aggregate learner figures
            recent_activities: Most recent activities, newest first
            weakness: Weak skills and quiz topics, if known

        Returns:
            Generated recommendations, or rule-based ones when generation is
            unavailable or returns none

        Raises:
            InvalidCredentialError: If a provider rejects its API key
        """
        try:
            value = self._generate(
                build_recommendations_prompt(stats, recent_activities, weakness),
                RECOMMENDATIONS_SYSTEM_PROMPT,
                RECOMMENDATIONS_MAX_TOKENS,
                ResponseShape.ITEM_ARRAY,
            )
            recommendations = shape_recommendations(value)
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"Recommendation generation failed, using defaults: {e}")
            return default_recommendations(stats, weakness)
        return recommendations or default_recommendations(stats, weakness)
