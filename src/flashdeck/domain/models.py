"""
Domain models for flashcards and SM-2 scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum

from .constants import INITIAL_EASE, MAX_GRADE, MIN_GRADE, PASSING_GRADE
from .exceptions import InvalidGrade

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Grade(IntEnum):
    """
    Recall quality on the SM-2 0-5 scale.

    Only AGAIN, HARD, GOOD and EASY are reachable from the review buttons;
    BLACKOUT and INCORRECT_EASY exist in the algorithm's domain.
    """

    BLACKOUT = 0
    AGAIN = 1
    INCORRECT_EASY = 2
    HARD = 3
    GOOD = 4
    EASY = 5

    @property
    def passed(self) -> bool:
        return self >= PASSING_GRADE

    @classmethod
    def parse(cls, value: "int | str | Grade") -> "Grade":
        """
        Accept a Grade, a raw 0-5 integer, or a button label ("again", "hard", ...).

        Raises:
            InvalidGrade: for anything outside the 0-5 scale or an unknown label.
        """
        if isinstance(value, str):
            key = value.strip().lower()
            if key in GRADE_LABELS:
                return GRADE_LABELS[key]
            if key.lstrip("-").isdigit():
                value = int(key)
            else:
                raise InvalidGrade(value)

        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidGrade(value)
        if not MIN_GRADE <= value <= MAX_GRADE:
            raise InvalidGrade(value)
        return cls(value)


# Button label -> grade, in display order.
GRADE_LABELS: dict[str, Grade] = {
    "again": Grade.AGAIN,
    "hard": Grade.HARD,
    "good": Grade.GOOD,
    "easy": Grade.EASY,
}


@dataclass(frozen=True)
class ReviewState:
    """
    Per-card SM-2 memory.

    Attributes:
        interval_days: Days until the next review after the last pass (0 = new or relearning).
        ease: Interval growth multiplier, never below 1.3.
        repetitions: Consecutive passed reviews since creation or the last failure.
    """

    interval_days: int = 0
    ease: float = INITIAL_EASE
    repetitions: int = 0

    @classmethod
    def new(cls) -> "ReviewState":
        return cls(interval_days=0, ease=INITIAL_EASE, repetitions=0)


@dataclass(frozen=True)
class ReviewResult:
    """Output of one scheduling step."""

    next_interval_days: int
    next_ease: float
    next_repetitions: int
    next_due_at: datetime


@dataclass(frozen=True)
class ReviewOutcome:
    """
    What a graded card needs persisted.

    Built before any I/O happens, so the session can run the write and only
    then commit its own transition.
    """

    card_id: str
    grade: Grade
    result: ReviewResult


@dataclass
class ReviewRecord:
    """Stored review row for a card (one per card)."""

    card_id: str
    due_at: datetime
    interval_days: int
    ease: float
    repetitions: int
    last_grade: int | None = None
    reviewed_at: datetime | None = None

    @property
    def state(self) -> ReviewState:
        # Storage backends may hand back ease as Decimal or str.
        return ReviewState(
            interval_days=int(self.interval_days),
            ease=float(self.ease),
            repetitions=int(self.repetitions),
        )


@dataclass
class Deck:
    id: str
    title: str
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    created_at: datetime | None = None


@dataclass
class Card:
    """
    A flashcard as handed to a review session.

    `review` is None for a card that has never been graded.
    """

    id: str
    deck_id: str
    front: str
    back: str
    hint: str | None = None
    source_type: str | None = None  # manual | question | lesson | ...
    source_id: str | None = None
    created_at: datetime | None = None
    review: ReviewRecord | None = None

    @property
    def is_new(self) -> bool:
        return self.review is None

    @property
    def review_state(self) -> ReviewState:
        if self.review is None:
            return ReviewState.new()
        return self.review.state


@dataclass(frozen=True)
class DeckStats:
    """Counts shown on a deck overview."""

    total_cards: int
    new_cards: int
    due_now: int
    due_today: int
    learned: int
