"""Tests for answer-position balancing."""

import random
from collections import Counter

import pytest

from assessment_gateway.balancer import AnswerBalancer

from conftest import make_question


def _longest_run(questions) -> int:
    longest = current = 1
    for previous, question in zip(questions, questions[1:]):
        current = current + 1 if question.correct_index == previous.correct_index else 1
        longest = max(longest, current)
    return longest


@pytest.fixture
def balancer(rng, metrics) -> AnswerBalancer:
    return AnswerBalancer(rng=rng, metrics=metrics)


class TestAnswerBalancer:
    """Tests for AnswerBalancer."""

    def test_empty_list(self, balancer):
        assert balancer.balance([]) == []

    def test_correct_option_text_is_preserved(self, balancer):
        questions = [
            make_question(id=n, correct_index=n % 4, options=[f"q{n}-{i}" for i in range(4)])
            for n in range(1, 13)
        ]

        balanced = balancer.balance(questions)

        for original, result in zip(questions, balanced):
            assert result.correct_option == original.correct_option
            assert sorted(result.options) == sorted(original.options)

    def test_ids_and_order_preserved(self, balancer):
        questions = [make_question(id=n, correct_index=0) for n in range(1, 9)]

        balanced = balancer.balance(questions)

        assert [q.id for q in balanced] == list(range(1, 9))
        assert [q.prompt_text for q in balanced] == [q.prompt_text for q in questions]

    def test_input_is_not_mutated(self, balancer):
        questions = [make_question(id=n, correct_index=0) for n in range(1, 6)]
        snapshot = [q.model_dump() for q in questions]

        balancer.balance(questions)

        assert [q.model_dump() for q in questions] == snapshot

    def test_all_same_answer_never_leaves_long_run(self, metrics):
        """Ten items all answered by option B never keep a run of five."""
        for seed in range(200):
            balancer = AnswerBalancer(rng=random.Random(seed), metrics=metrics)
            questions = [make_question(id=n, correct_index=1) for n in range(1, 11)]

            balanced = balancer.balance(questions)

            assert _longest_run(balanced) < 5

    def test_no_runs_of_three_with_four_options(self, balancer):
        questions = [make_question(id=n, correct_index=2) for n in range(1, 21)]

        result = balancer.balance_with_report(questions)

        assert result.runs_remaining is False
        assert _longest_run(result.questions) < 3

    def test_small_set_gets_varied_positions(self, metrics):
        """Five items answered by option A end up with at least two positions."""
        varied = 0
        for seed in range(200):
            balancer = AnswerBalancer(rng=random.Random(seed), metrics=metrics)
            questions = [make_question(id=n, correct_index=0) for n in range(1, 6)]
            if len({q.correct_index for q in balancer.balance(questions)}) >= 2:
                varied += 1
        assert varied >= 190

    def test_positions_are_spread_out(self, balancer):
        questions = [make_question(id=n, correct_index=3) for n in range(1, 41)]

        balanced = balancer.balance(questions)

        counts = Counter(q.correct_index for q in balanced)
        assert set(counts) == {0, 1, 2, 3}
        assert max(counts.values()) <= 20

    def test_equalize_reduces_crowded_position(self, balancer):
        indices_by_position = [0] * 6 + [1] * 2 + [2] * 2 + [3] * 2
        items = [
            make_question(id=n, correct_index=p)
            for n, p in enumerate(indices_by_position, start=1)
        ]

        equalized = balancer._equalize(items)

        counts = Counter(q.correct_index for q in items)
        per_position = [counts.get(p, 0) for p in range(4)]
        assert equalized == [4]
        assert max(per_position) - min(per_position) <= balancer.max_spread

    def test_balanced_group_is_left_alone(self, balancer):
        items = [make_question(id=n, correct_index=n % 4) for n in range(1, 9)]
        before = list(items)

        assert balancer._equalize(items) == []
        assert items == before

    def test_two_option_items_pass_through(self, balancer):
        questions = [
            make_question(id=n, correct_index=1, options=["Yes", "No"]) for n in range(1, 6)
        ]

        balanced = balancer.balance(questions)

        assert balanced == questions

    def test_mixed_option_counts(self, balancer):
        """Three- and four-option items are balanced within their own group."""
        questions = []
        for n in range(1, 31):
            if n % 2:
                questions.append(
                    make_question(id=n, correct_index=0, options=["True", "False", "Not given"])
                )
            else:
                questions.append(make_question(id=n, correct_index=0))

        balanced = balancer.balance(questions)

        assert [q.option_count for q in balanced] == [q.option_count for q in questions]
        for option_count in (3, 4):
            group = [q for q in balanced if q.option_count == option_count]
            assert all(0 <= q.correct_index < option_count for q in group)
            assert len({q.correct_index for q in group}) > 1

    def test_exhausted_budget_is_reported(self, metrics):
        balancer = AnswerBalancer(rng=random.Random(7), max_run_passes=0, metrics=metrics)
        questions = [
            make_question(id=n, correct_index=0, options=["a", "b", "c"]) for n in range(1, 4)
        ]
        # Force a run that the shuffle cannot break with no passes left
        balancer._shuffle = lambda q: q

        result = balancer.balance_with_report(questions)

        assert result.runs_remaining is True
        assert result.run_passes == 0
        assert metrics.get_summary()["balancer"] == {"runs": 1, "cap_hits": 1}

    def test_balancer_run_is_recorded(self, balancer, metrics):
        balancer.balance([make_question(id=1)])
        assert metrics.get_summary()["balancer"]["runs"] == 1
