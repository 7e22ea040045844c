"""Tests for built-in fallback content."""

import random

import pytest

from assessment_gateway.defaults import (
    DEFAULT_PLACEMENT_COUNT,
    IELTS_POOL,
    default_ielts_questions,
    default_placement_questions,
    default_quiz_questions,
    GENERIC_INSIGHT,
    default_progress_insight,
    default_reading,
    default_recommendations,
    default_tips,
    difficulty_band,
)
from assessment_gateway.models import (
    CEFRLevel,
    DifficultyLevel,
    LearnerStats,
    RecommendationPriority,
    SkillScore,
    TipCategory,
    WeakArea,
    WeakQuizTopic,
    WeaknessAnalysis,
)


class TestDifficultyBand:
    def test_cefr_wins(self):
        assert difficulty_band(DifficultyLevel.BEGINNER, CEFRLevel.C2) is DifficultyLevel.ADVANCED

    def test_difficulty_without_cefr(self):
        assert difficulty_band(DifficultyLevel.INTERMEDIATE) is DifficultyLevel.INTERMEDIATE


class TestDefaultQuestions:
    @pytest.mark.parametrize("difficulty", list(DifficultyLevel))
    def test_quiz_count_and_numbering(self, difficulty):
        questions = default_quiz_questions("Food", difficulty, 9, rng=random.Random(3))

        assert len(questions) == 9
        assert [q.id for q in questions] == list(range(1, 10))
        assert all(q.topic == "Food" for q in questions)

    def test_reading(self):
        reading = default_reading(DifficultyLevel.BEGINNER, 3, topic="Family")

        assert reading.passage
        assert len(reading.questions) == 3
        assert reading.questions[0].topic == "Family"

    def test_placement(self):
        questions = default_placement_questions(rng=random.Random(1))

        assert len(questions) == DEFAULT_PLACEMENT_COUNT
        assert all(q.option_count == 4 for q in questions)

    def test_ielts_sections_in_order(self):
        questions = default_ielts_questions(random.Random(5))

        assert len(questions) == len(IELTS_POOL)
        sections = [q.section for q in questions]
        assert sections == sorted(sections)
        assert all(q.topic == f"IELTS Reading Section {q.section}" for q in questions)
        assert {q.option_count for q in questions} == {3, 4}

    @pytest.mark.parametrize("category", list(TipCategory))
    def test_tips(self, category):
        tips = default_tips(category)

        assert len(tips) == 4
        tips.append("mutated")
        assert len(default_tips(category)) == 4


class TestDefaultProgressInsight:
    def test_single_untouched_skill(self):
        insight = default_progress_insight([SkillScore(name="Listening", value=0)], 20)
        assert insight.startswith("Listening is at 0%.")

    def test_low_weekly_activity(self):
        insight = default_progress_insight([SkillScore(name="Grammar", value=60)], 3)

        assert "You completed 3 activities this week" in insight
        assert "weekly goal is 50" in insight

    def test_weekly_rule_can_be_disabled(self):
        assert default_progress_insight([], 3, check_weekly_activity=False) == GENERIC_INSIGHT

    def test_generic(self):
        assert default_progress_insight([SkillScore(name="Grammar", value=60)], 12) == GENERIC_INSIGHT


class TestDefaultRecommendations:
    def test_weakest_areas_and_topic_first(self):
        weakness = WeaknessAnalysis(
            weak_areas=[
                WeakArea(skill="Reading Comprehension", score=35),
                WeakArea(skill="Writing", score=48, recommendation="Write every day."),
            ],
            weak_quiz_topics=[WeakQuizTopic(topic="Past Tense", avg_score=40, attempts=3)],
        )
        stats = LearnerStats(total_activities=4, average_score=45, streak=0)

        recommendations = default_recommendations(stats, weakness)

        assert [r.id for r in recommendations] == [
            "improve-reading-comprehension",
            "improve-writing-2",
            "practice-past-tense",
            "build-streak",
        ]
        assert recommendations[0].description == "Your current score is 35%."
        assert recommendations[1].description == "Write every day. Your score is 48%."
        assert all(r.priority is RecommendationPriority.HIGH for r in recommendations[:3])

    def test_low_average_without_weak_areas(self):
        stats = LearnerStats(total_activities=5, average_score=50, streak=1)

        recommendations = default_recommendations(stats)

        assert [r.id for r in recommendations] == ["improve-basics", "build-streak", "more-practice"]
        assert recommendations[1].priority is RecommendationPriority.MEDIUM

    def test_strong_learner_still_gets_two(self):
        stats = LearnerStats(total_activities=200, average_score=92, streak=30)

        recommendations = default_recommendations(stats)

        assert [r.id for r in recommendations] == ["advanced-topics", "mixed-review"]

    def test_one_rule_is_padded_to_two(self):
        stats = LearnerStats(total_activities=200, average_score=92, streak=1)

        assert [r.id for r in default_recommendations(stats)] == ["build-streak", "advanced-topics"]
