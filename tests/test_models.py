"""Tests for domain models."""

import pytest
from pydantic import ValidationError

from assessment_gateway.models import (
    CEFRLevel,
    FluencySection,
    Question,
    WritingFeedback,
)


class TestQuestion:
    """Tests for the Question model."""

    def test_valid_question(self):
        question = Question(id=1, prompt_text="Q?", options=["a", "b", "c"], correct_index=2)

        assert question.option_count == 3
        assert question.correct_option == "c"

    def test_correct_index_out_of_range(self):
        with pytest.raises(ValidationError):
            Question(id=1, prompt_text="Q?", options=["a", "b"], correct_index=2)

    def test_negative_correct_index(self):
        with pytest.raises(ValidationError):
            Question(id=1, prompt_text="Q?", options=["a", "b"], correct_index=-1)

    def test_empty_options(self):
        with pytest.raises(ValidationError):
            Question(id=1, prompt_text="Q?", options=[], correct_index=0)

    def test_section_range(self):
        with pytest.raises(ValidationError):
            Question(id=1, prompt_text="Q?", options=["a"], correct_index=0, section=4)

    def test_frozen(self):
        question = Question(id=1, prompt_text="Q?", options=["a"], correct_index=0)
        with pytest.raises(ValidationError):
            question.correct_index = 0

    def test_serialized_option_count(self):
        question = Question(id=1, prompt_text="Q?", options=["a", "b"], correct_index=1)
        assert question.model_dump()["option_count"] == 2


class TestCEFRLevel:
    def test_descriptor(self):
        assert CEFRLevel.C2.descriptor == "near-native"


class TestFeedbackAliases:
    def test_camel_case_input(self):
        feedback = WritingFeedback.model_validate({"overallScore": 64})
        assert feedback.overall_score == 64

    def test_fluency_aliases(self):
        fluency = FluencySection.model_validate({"wordsPerMinute": 140, "pauseAnalysis": "Smooth"})
        assert fluency.words_per_minute == 140
        assert fluency.pause_analysis == "Smooth"
