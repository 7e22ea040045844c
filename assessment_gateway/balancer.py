"""Answer-position balancing for multiple-choice question sets.

Models tend to put the correct answer in the same slot over and over. The
balancer re-randomizes every item's option order, then breaks up runs of
identical correct positions and evens out how often each position is correct.
It only ever permutes options: the correct option's text is never changed.
"""

import logging
import math
import random
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence

from .metrics import GatewayMetrics, get_metrics
from .models import Question

logger = logging.getLogger(__name__)

MIN_BALANCED_OPTIONS = 3
RUN_LENGTH = 3
DEFAULT_MAX_RUN_PASSES = 20
DEFAULT_MAX_SPREAD = 3


@dataclass
class BalanceResult:
    """Balanced questions plus what it took to balance them.

    Attributes:
        questions: Balanced questions, same length and order as the input
        run_passes: Anti-run passes used
        runs_remaining: True when the pass budget ran out with a run left
        equalized_groups: Option counts whose position distribution was evened out
    """

    questions: List[Question]
    run_passes: int = 0
    runs_remaining: bool = False
    equalized_groups: List[int] = field(default_factory=list)


class AnswerBalancer:
    """Shuffles options and spreads correct answers across positions."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        max_run_passes: int = DEFAULT_MAX_RUN_PASSES,
        max_spread: int = DEFAULT_MAX_SPREAD,
        metrics: Optional[GatewayMetrics] = None,
    ):
        """Initialize the balancer.

        Args:
            rng: Random source (a fresh ``random.Random`` if not provided)
            max_run_passes: Budget of anti-run passes per call
            max_spread: Largest tolerated gap between the most and least
                frequent correct position within an option-count group
            metrics: Metrics tracker (uses the process-wide one if not provided)
        """
        self.rng = rng or random.Random()
        self.max_run_passes = max_run_passes
        self.max_spread = max_spread
        self.metrics = metrics or get_metrics()

    def balance(self, questions: Sequence[Question]) -> List[Question]:
        return self.balance_with_report(questions).questions

    def balance_with_report(self, questions: Sequence[Question]) -> BalanceResult:
        """Balance a question list and report how it went.

        Args:
            questions: Questions in display order

        Returns:
            BalanceResult with a new list of questions
        """
        items = [self._shuffle(q) if self._eligible(q) else q for q in questions]
        if not items:
            return BalanceResult(questions=[])

        passes = self._break_runs(items, self.max_run_passes)
        equalized = self._equalize(items)
        if equalized:
            passes += self._break_runs(items, self.max_run_passes - passes)

        runs_remaining = any(True for _ in self._fixable_runs(items))
        if runs_remaining:
            logger.warning(
                f"Anti-run pass budget ({self.max_run_passes}) exhausted with "
                f"runs of {RUN_LENGTH}+ identical answer positions remaining"
            )
        self.metrics.record_balancer_run(cap_hit=runs_remaining)

        logger.debug(
            f"Balanced {len(items)} questions: {passes} anti-run passes, "
            f"equalized groups {equalized}"
        )
        return BalanceResult(
            questions=items,
            run_passes=passes,
            runs_remaining=runs_remaining,
            equalized_groups=equalized,
        )

    @staticmethod
    def _eligible(question: Question) -> bool:
        return question.option_count >= MIN_BALANCED_OPTIONS

    def _shuffle(self, question: Question) -> Question:
        """Return a copy with options permuted and the correct index remapped."""
        order = list(range(question.option_count))
        self.rng.shuffle(order)
        return question.model_copy(
            update={
                "options": [question.options[i] for i in order],
                "correct_index": order.index(question.correct_index),
            }
        )

    def _fixable_runs(self, items: List[Question]) -> Iterator[int]:
        """Yield the middle index of every window of equal correct positions.

        Windows made only of pass-through items are ignored, since nothing in
        them can be reshuffled.
        """
        for middle in range(1, len(items) - 1):
            window = items[middle - 1 : middle + 2]
            if len({q.correct_index for q in window}) == 1 and any(
                self._eligible(q) for q in window
            ):
                yield middle

    def _break_runs(self, items: List[Question], budget: int) -> int:
        """Reshuffle run middles in place until no run is left or budget runs out.

        Returns:
            Number of passes used
        """
        passes = 0
        while passes < budget:
            changed = False
            for middle in range(1, len(items) - 1):
                window = items[middle - 1 : middle + 2]
                if len({q.correct_index for q in window}) != 1:
                    continue
                # Prefer the middle item, then a neighbour when the middle can't be shuffled
                for target in (middle, middle + 1, middle - 1):
                    if self._eligible(items[target]):
                        items[target] = self._shuffle(items[target])
                        changed = True
                        break
            if not changed:
                break
            passes += 1
        return passes

    def _equalize(self, items: List[Question]) -> List[int]:
        """Even out correct positions within each option-count group.

        Returns:
            Option counts of the groups that were adjusted
        """
        groups: Dict[int, List[int]] = defaultdict(list)
        for index, question in enumerate(items):
            if self._eligible(question):
                groups[question.option_count].append(index)

        equalized = []
        for option_count, indices in sorted(groups.items()):
            if len(indices) < option_count:
                continue
            if self._equalize_group(items, indices, option_count):
                equalized.append(option_count)
        return equalized

    def _spread(self, items: List[Question], indices: List[int], option_count: int):
        counts = Counter(items[i].correct_index for i in indices)
        per_position = [counts.get(p, 0) for p in range(option_count)]
        return max(per_position) - min(per_position), per_position

    def _equalize_group(
        self, items: List[Question], indices: List[int], option_count: int
    ) -> bool:
        spread, per_position = self._spread(items, indices, option_count)
        if spread <= self.max_spread:
            return False

        target = math.ceil(len(indices) / option_count)
        attempts = 0
        changed = False
        while spread > self.max_spread and attempts < len(indices):
            crowded = per_position.index(max(per_position))
            candidates = [i for i in indices if items[i].correct_index == crowded]
            if len(candidates) <= target:
                break
            chosen = self.rng.choice(candidates)
            items[chosen] = self._shuffle(items[chosen])
            attempts += 1
            changed = True
            spread, per_position = self._spread(items, indices, option_count)

        logger.debug(
            f"Equalized {option_count}-option group of {len(indices)}: "
            f"positions {per_position} after {attempts} reshuffles"
        )
        return changed
