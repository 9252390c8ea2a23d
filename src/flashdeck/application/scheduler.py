"""
SM-2 scheduler.

Pure computation: maps (state, grade, now) to the next review state. No I/O,
never mutates its input, and never reads the wall clock.
"""

import math
from datetime import datetime, timedelta

from flashdeck.domain import constants
from flashdeck.domain.models import Grade, ReviewResult, ReviewState


def round_half_up(value: float, digits: int = 0) -> float:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


class SM2Scheduler:
    """
    SM-2 (SuperMemo 2) scheduler, Anki flavoured.

    Failed grades are re-shown after a few minutes instead of the next day.
    All policy numbers are class attributes so a subclass (or a test) can
    override them in one place.
    """

    initial_ease: float = constants.INITIAL_EASE
    min_ease: float = constants.MIN_EASE
    first_interval_days: int = constants.FIRST_INTERVAL_DAYS
    second_interval_days: int = constants.SECOND_INTERVAL_DAYS
    min_interval_days: int = constants.MIN_INTERVAL_DAYS
    again_delay: timedelta = timedelta(minutes=constants.AGAIN_DELAY_MINUTES)
    relearn_delay: timedelta = timedelta(minutes=constants.RELEARN_DELAY_MINUTES)
    ease_precision: int = constants.EASE_PRECISION

    def next(self, state: ReviewState, grade: Grade | int, now: datetime) -> ReviewResult:
        """
        Calculate the next schedule for a card.

        Args:
            state: The card's current memory state.
            grade: Recall quality 0-5.
                0 - Complete blackout
                1 - Incorrect, remembered on seeing the answer (again)
                2 - Incorrect, but the answer seemed easy to recall
                3 - Correct with serious difficulty (hard)
                4 - Correct after hesitation (good)
                5 - Perfect response (easy)
            now: Reference time the due offset is added to.

        Returns:
            ReviewResult with the new interval, ease (2 dp), repetitions and due time.

        Raises:
            InvalidGrade: if grade is outside 0-5.
        """
        q = Grade.parse(grade)
        new_ease = self.next_ease(state.ease, q)

        if not q.passed:
            # Failed: back to relearning, due again within the session.
            new_repetitions = 0
            new_interval = 0
            delay = self.again_delay if q <= Grade.AGAIN else self.relearn_delay
            due_at = now + delay
        else:
            new_repetitions = state.repetitions + 1
            if new_repetitions == 1:
                new_interval = self.first_interval_days
            elif new_repetitions == 2:
                new_interval = self.second_interval_days
            else:
                new_interval = int(round_half_up(state.interval_days * new_ease))
            new_interval = max(self.min_interval_days, new_interval)
            due_at = now + timedelta(days=new_interval)

        return ReviewResult(
            next_interval_days=new_interval,
            next_ease=round_half_up(new_ease, self.ease_precision),
            next_repetitions=new_repetitions,
            next_due_at=due_at,
        )

    def next_ease(self, ease: float, grade: Grade) -> float:
        """
        EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored at min_ease.

        Applied for failing grades too.
        """
        miss = 5 - int(grade)
        return max(self.min_ease, ease + (0.1 - miss * (0.08 + miss * 0.02)))


# Default scheduler instance
default_scheduler = SM2Scheduler()
