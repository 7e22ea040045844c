"""Domain types for generated assessment content."""

import enum
from typing import List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)


class DifficultyLevel(str, enum.Enum):
    """Learner difficulty levels."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class CEFRLevel(str, enum.Enum):
    """Common European Framework of Reference levels."""

    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"
    C2 = "C2"

    @property
    def descriptor(self) -> str:
        return _CEFR_DESCRIPTORS[self]


_CEFR_DESCRIPTORS = {
    CEFRLevel.A1: "very basic",
    CEFRLevel.A2: "basic",
    CEFRLevel.B1: "intermediate",
    CEFRLevel.B2: "upper-intermediate",
    CEFRLevel.C1: "advanced",
    CEFRLevel.C2: "near-native",
}


class TipCategory(str, enum.Enum):
    """Skill areas personalised tips can target."""

    QUIZ = "quiz"
    WRITING = "writing"
    SPEAKING = "speaking"


class Question(BaseModel):
    """A multiple-choice question.

    Attributes:
        id: Position-based identifier, 1..n within a generated set
        prompt_text: The question stem
        options: Answer options in display order
        correct_index: Index of the correct option in ``options``
        explanation: Why the correct option is correct
        topic: Topic or question family
        section: IELTS section number (1-3), when applicable
    """

    model_config = ConfigDict(frozen=True)

    id: int
    prompt_text: str
    options: List[str] = Field(..., min_length=1)
    correct_index: int = Field(..., ge=0)
    explanation: str = ""
    topic: str = ""
    section: Optional[int] = Field(default=None, ge=1, le=3)

    @model_validator(mode="after")
    def _correct_index_in_range(self) -> "Question":
        if self.correct_index >= len(self.options):
            raise ValueError(
                f"correct_index {self.correct_index} out of range for "
                f"{len(self.options)} options"
            )
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def option_count(self) -> int:
        return len(self.options)

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_index]


class ReadingComprehension(BaseModel):
    passage: str
    questions: List[Question]


class ScoreSection(BaseModel):
    score: int = Field(default=75, ge=0, le=100)
    feedback: str = ""


class GrammarIssue(BaseModel):
    type: str = ""
    message: str = ""
    suggestion: str = ""


class GrammarSection(BaseModel):
    score: int = Field(default=75, ge=0, le=100)
    errors: List[GrammarIssue] = Field(default_factory=list)


class VocabularySection(BaseModel):
    score: int = Field(default=75, ge=0, le=100)
    suggestions: List[str] = Field(default_factory=list)
    level_analysis: str = Field(
        default="Intermediate",
        validation_alias=AliasChoices("level_analysis", "levelAnalysis"),
    )


class PronunciationIssue(BaseModel):
    word: str = ""
    expected: str = ""
    actual: str = ""


class PronunciationSection(BaseModel):
    score: int = Field(default=80, ge=0, le=100)
    errors: List[PronunciationIssue] = Field(default_factory=list)


class FluencySection(BaseModel):
    score: int = Field(default=75, ge=0, le=100)
    words_per_minute: int = Field(
        default=120, validation_alias=AliasChoices("words_per_minute", "wordsPerMinute")
    )
    pause_analysis: str = Field(
        default="Good pacing",
        validation_alias=AliasChoices("pause_analysis", "pauseAnalysis"),
    )


class WritingFeedback(BaseModel):
    """Detailed feedback on a piece of writing."""

    overall_score: int = Field(
        default=75,
        ge=0,
        le=100,
        validation_alias=AliasChoices("overall_score", "overallScore"),
    )
    grammar: GrammarSection = Field(default_factory=GrammarSection)
    vocabulary: VocabularySection = Field(default_factory=VocabularySection)
    coherence: ScoreSection = Field(
        default_factory=lambda: ScoreSection(feedback="Good structure and flow.")
    )
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)


class CorrectionItem(BaseModel):
    original: str
    replacement: str
    explanation: str = ""


class WritingCorrection(BaseModel):
    """Corrected text plus the individual corrections made."""

    corrected_text: str
    score: int = Field(default=75, ge=0, le=100)
    errors: List[CorrectionItem] = Field(default_factory=list)


class SpeakingFeedback(BaseModel):
    overall_score: int = Field(
        default=75,
        ge=0,
        le=100,
        validation_alias=AliasChoices("overall_score", "overallScore"),
    )
    pronunciation: PronunciationSection = Field(default_factory=PronunciationSection)
    fluency: FluencySection = Field(default_factory=FluencySection)
    grammar: GrammarSection = Field(default_factory=GrammarSection)
    vocabulary: VocabularySection = Field(default_factory=VocabularySection)
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)


class SpeakingAnalysis(BaseModel):
    feedback: SpeakingFeedback
    transcript: str


class TipsContext(BaseModel):
    """Learner profile used to personalise tips. Every field is optional."""

    cefr_level: Optional[str] = None
    average_score: Optional[float] = None
    total_activities: Optional[int] = None
    total_quizzes: Optional[int] = None
    quiz_avg_score: Optional[float] = None
    quiz_best_score: Optional[float] = None
    quiz_perfect_scores: Optional[int] = None
    course_summary: Optional[str] = None
    total_essays: Optional[int] = None
    total_words: Optional[int] = None
    total_recordings: Optional[int] = None
    avg_pronunciation: Optional[float] = None


class SkillScore(BaseModel):
    """A learner's score (0-100) in one skill area."""

    name: str
    value: float = Field(default=0, ge=0, le=100)


class LearnerStats(BaseModel):
    """Aggregate progress figures supplied by the caller."""

    total_activities: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("total_activities", "totalActivities")
    )
    average_score: float = Field(
        default=0, validation_alias=AliasChoices("average_score", "averageScore")
    )
    streak: int = Field(default=0, ge=0)
    total_points: int = Field(
        default=0, validation_alias=AliasChoices("total_points", "totalPoints")
    )
    cefr_level: Optional[CEFRLevel] = Field(
        default=None, validation_alias=AliasChoices("cefr_level", "cefrLevel")
    )


class ProgressSnapshot(BaseModel):
    """Everything a progress insight is built from."""

    stats: LearnerStats = Field(default_factory=LearnerStats)
    skills: List[SkillScore] = Field(default_factory=list)
    this_week_activities: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("this_week_activities", "thisWeekActivities"),
    )
    last_week_activities: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("last_week_activities", "lastWeekActivities"),
    )


class RecentActivity(BaseModel):
    type: str
    score: float = 0
    course_title: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("course_title", "courseTitle")
    )


class WeakArea(BaseModel):
    skill: str
    score: float = 0
    recommendation: str = ""


class WeakQuizTopic(BaseModel):
    topic: str
    avg_score: float = Field(default=0, validation_alias=AliasChoices("avg_score", "avgScore"))
    attempts: int = 0


class WeaknessAnalysis(BaseModel):
    """Weak skills and quiz topics, weakest first."""

    weak_areas: List[WeakArea] = Field(
        default_factory=list, validation_alias=AliasChoices("weak_areas", "weakAreas")
    )
    weak_quiz_topics: List[WeakQuizTopic] = Field(
        default_factory=list,
        validation_alias=AliasChoices("weak_quiz_topics", "weakQuizTopics"),
    )
    improvement_suggestions: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("improvement_suggestions", "improvementSuggestions"),
    )


class RecommendationContext(BaseModel):
    """Everything study recommendations are built from."""

    stats: LearnerStats = Field(default_factory=LearnerStats)
    recent_activities: List[RecentActivity] = Field(
        default_factory=list,
        validation_alias=AliasChoices("recent_activities", "recentActivities"),
    )
    weakness: Optional[WeaknessAnalysis] = None


class RecommendationPriority(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Recommendation(BaseModel):
    """A single study recommendation."""

    id: str
    title: str
    description: str
    action: str
    priority: RecommendationPriority = RecommendationPriority.MEDIUM
