"""Tests for prompt builders."""

from assessment_gateway.models import (
    CEFRLevel,
    DifficultyLevel,
    LearnerStats,
    RecentActivity,
    SkillScore,
    TipCategory,
    TipsContext,
    WeakQuizTopic,
    WeaknessAnalysis,
)
from assessment_gateway.prompts import (
    build_placement_prompt,
    build_progress_insight_prompt,
    build_quiz_prompt,
    build_reading_prompt,
    build_recommendations_prompt,
    build_tips_prompt,
    level_note,
)


class TestLevelNote:
    def test_cefr_takes_precedence(self):
        note = level_note(DifficultyLevel.BEGINNER, CEFRLevel.C1)
        assert "C1" in note
        assert "advanced" in note

    def test_difficulty_only(self):
        assert level_note(DifficultyLevel.BEGINNER, None) == "beginner level."


class TestQuizPrompt:
    def test_contains_topic_and_count(self):
        prompt = build_quiz_prompt("Weather", DifficultyLevel.INTERMEDIATE, 7)

        assert "Generate 7 English quiz questions" in prompt
        assert '"Weather"' in prompt
        assert "correctAnswer" in prompt

    def test_cefr_level(self):
        prompt = build_quiz_prompt("Weather", DifficultyLevel.INTERMEDIATE, 3, CEFRLevel.A2)
        assert "CEFR A2 level." in prompt


class TestReadingPrompt:
    def test_topic_defaults(self):
        prompt = build_reading_prompt(DifficultyLevel.ADVANCED, 4)

        assert "4 multiple-choice questions" in prompt
        assert "general reading comprehension" in prompt

    def test_custom_topic(self):
        prompt = build_reading_prompt(DifficultyLevel.ADVANCED, 4, topic="Volcanoes")
        assert '"Volcanoes"' in prompt


class TestPlacementPrompt:
    def test_request_id_embedded(self):
        assert "request id: abc" in build_placement_prompt(18, request_id="abc")

    def test_requests_differ(self):
        assert build_placement_prompt(18) != build_placement_prompt(18)


class TestTipsPrompt:
    def test_without_context(self):
        prompt = build_tips_prompt(TipCategory.SPEAKING)

        assert "No specific user data." in prompt
        assert "speaking skills" in prompt

    def test_quiz_context_lines(self):
        context = TipsContext(cefr_level="B2", quiz_avg_score=64.0, quiz_perfect_scores=0)

        prompt = build_tips_prompt(TipCategory.QUIZ, context)

        assert "CEFR level: B2" in prompt
        assert "Quiz average: 64.0%" in prompt
        assert "Perfect scores: 0" in prompt

    def test_category_specific_fields_only(self):
        context = TipsContext(total_recordings=5, total_essays=2)

        prompt = build_tips_prompt(TipCategory.SPEAKING, context)

        assert "Recordings: 5" in prompt
        assert "Essays written" not in prompt


class TestProgressInsightPrompt:
    def test_weak_and_strong_skills(self):
        stats = LearnerStats(total_activities=12, average_score=58.5, streak=2)
        skills = [
            SkillScore(name="Grammar", value=30),
            SkillScore(name="Vocabulary", value=60),
            SkillScore(name="Reading", value=70),
        ]

        prompt = build_progress_insight_prompt(stats, skills, 4, 9)

        assert "Weak skills (0-50%): Grammar (30%)" in prompt
        assert "Strong skills (70%+): Reading (70%)" in prompt
        assert "Vocabulary" not in prompt
        assert "CEFR level: Not set" in prompt
        assert "This week activities: 4" in prompt
        assert "Last week activities: 9" in prompt

    def test_level_from_stats(self):
        prompt = build_progress_insight_prompt(LearnerStats(cefr_level="A2"), [], 0, 0)

        assert "CEFR level: A2" in prompt
        assert "Weak skills (0-50%): None" in prompt


class TestRecommendationsPrompt:
    def test_only_five_most_recent_activities(self):
        activities = [RecentActivity(type="quiz", score=i * 10, course_title=f"C{i}") for i in range(7)]

        prompt = build_recommendations_prompt(LearnerStats(), activities)

        assert '"C4"' in prompt
        assert '"C5"' not in prompt
        assert "not yet assessed" in prompt

    def test_weakness_section(self):
        weakness = WeaknessAnalysis(
            weak_quiz_topics=[WeakQuizTopic(topic="Articles", avg_score=42, attempts=3)],
            improvement_suggestions=["Review articles"],
        )

        prompt = build_recommendations_prompt(LearnerStats(cefr_level="B2"), None, weakness)

        assert "CEFR B2" in prompt
        assert "No recent activities" in prompt
        assert "All skill areas are performing well" in prompt
        assert '"Articles" (avg 42%, 3 attempts)' in prompt
        assert "1. Review articles" in prompt
