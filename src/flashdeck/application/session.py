"""
Review session controller.

Walks a fixed, ordered list of cards captured at session start:

    Active(i, flipped=False) --flip--> Active(i, flipped=True)
    Active(i, flipped=True)  --grade--> Submitting(i)
    Submitting(i) --write ok-->    Active(i + 1, False) | Complete
    Submitting(i) --write failed--> Active(i, True)

The scheduling decision is computed first, persisted second, and the
session only advances once the write has succeeded.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum

from flashdeck.domain.constants import DEFAULT_SESSION_LIMIT
from flashdeck.domain.exceptions import (
    DuplicateSubmission,
    EmptySession,
    IllegalTransition,
    PersistenceFailure,
)
from flashdeck.domain.models import (
    Card,
    Clock,
    Grade,
    ReviewOutcome,
    ReviewResult,
    utc_now,
)
from flashdeck.domain.ports import DueCardQuery, ReviewRepository

from .previews import grade_previews
from .scheduler import SM2Scheduler, default_scheduler

logger = logging.getLogger(__name__)


class SessionPhase(StrEnum):
    ACTIVE = "active"
    SUBMITTING = "submitting"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SessionState:
    """
    Immutable snapshot of a session's position.

    Transitions return a new SessionState; illegal ones raise.
    """

    total: int
    index: int = 0
    flipped: bool = False
    completed: int = 0
    submitting: bool = False

    @property
    def phase(self) -> SessionPhase:
        if self.submitting:
            return SessionPhase.SUBMITTING
        if self.index >= self.total:
            return SessionPhase.COMPLETE
        return SessionPhase.ACTIVE

    @property
    def progress(self) -> float:
        if self.total == 0:
            return 0.0
        return self.completed / self.total * 100

    def flip(self) -> "SessionState":
        if self.phase is not SessionPhase.ACTIVE or self.flipped:
            return self
        return replace(self, flipped=True)

    def begin_submit(self) -> "SessionState":
        phase = self.phase
        if phase is SessionPhase.SUBMITTING:
            raise DuplicateSubmission(self.index)
        if phase is SessionPhase.COMPLETE:
            raise IllegalTransition("Session is complete; there is no card to grade")
        if not self.flipped:
            raise IllegalTransition(f"Card #{self.index} must be flipped before it is graded")
        return replace(self, submitting=True)

    def commit(self) -> "SessionState":
        if not self.submitting:
            raise IllegalTransition("No submission in flight")
        return SessionState(
            total=self.total,
            index=self.index + 1,
            flipped=False,
            completed=self.completed + 1,
            submitting=False,
        )

    def abort(self) -> "SessionState":
        if not self.submitting:
            raise IllegalTransition("No submission in flight")
        return replace(self, submitting=False)

    def reset(self) -> "SessionState":
        if self.submitting:
            raise IllegalTransition("Cannot reset while a grade is being submitted")
        return SessionState(total=self.total)


class StudySession:
    """
    Drives one user through a deck of cards.

    Single writer: one card is mutable at a time and a second grade() while
    the first is in flight is refused. Read-only observers (previews,
    progress) stay usable during a submission.
    """

    def __init__(
        self,
        cards: Sequence[Card],
        reviews: ReviewRepository,
        scheduler: SM2Scheduler | None = None,
        clock: Clock | None = None,
    ):
        """
        Args:
            cards: Ordered cards for this session. Captured, never re-fetched.
            reviews: Port used to persist each graded outcome.
            scheduler: Optional custom scheduler; uses the default SM-2 one if not provided.
            clock: Returns "now"; defaults to UTC wall-clock time.

        Raises:
            EmptySession: if cards is empty.
        """
        if not cards:
            raise EmptySession()
        self._cards: tuple[Card, ...] = tuple(cards)
        self._reviews = reviews
        self._scheduler = scheduler or default_scheduler
        self._clock = clock or utc_now
        self._state = SessionState(total=len(self._cards))
        self._outcomes: list[ReviewOutcome] = []

    @classmethod
    async def start(
        cls,
        query: DueCardQuery,
        reviews: ReviewRepository,
        scope: str | None = None,
        limit: int = DEFAULT_SESSION_LIMIT,
        scheduler: SM2Scheduler | None = None,
        clock: Clock | None = None,
    ) -> "StudySession":
        """Fetch the session cards once and build a session over them."""
        cards = await query.fetch_session_cards(scope, limit)
        logger.info(f"Starting review session: scope={scope or 'all'} cards={len(cards)}")
        return cls(cards, reviews, scheduler=scheduler, clock=clock)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def cards(self) -> tuple[Card, ...]:
        return self._cards

    @property
    def total_cards(self) -> int:
        return len(self._cards)

    @property
    def current_index(self) -> int:
        return self._state.index

    @property
    def current_card(self) -> Card | None:
        if self._state.index >= len(self._cards):
            return None
        return self._cards[self._state.index]

    @property
    def is_flipped(self) -> bool:
        return self._state.flipped

    @property
    def is_submitting(self) -> bool:
        return self._state.submitting

    @property
    def is_complete(self) -> bool:
        return self._state.phase is SessionPhase.COMPLETE

    @property
    def completed_count(self) -> int:
        return self._state.completed

    @property
    def progress(self) -> float:
        return self._state.progress

    @property
    def outcomes(self) -> list[ReviewOutcome]:
        """Outcomes recorded so far, in grading order. Not cleared by reset()."""
        return list(self._outcomes)

    @property
    def grade_previews(self) -> dict[str, str] | None:
        return self.previews()

    def previews(self, now: datetime | None = None) -> dict[str, str] | None:
        card = self.current_card
        if card is None:
            return None
        return grade_previews(card.review_state, now or self._clock(), self._scheduler)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def flip(self) -> None:
        self._state = self._state.flip()

    def reset(self) -> None:
        """Restart the walk from the first card. Already-recorded reviews are kept."""
        self._state = self._state.reset()

    def plan(self, card: Card, grade: Grade, now: datetime) -> ReviewOutcome:
        """Pure scheduling decision for `card`; nothing is persisted."""
        result = self._scheduler.next(card.review_state, grade, now)
        return ReviewOutcome(card_id=card.id, grade=grade, result=result)

    async def grade(self, grade: Grade | int | str, now: datetime | None = None) -> ReviewResult:
        """
        Grade the current (flipped) card, persist the outcome and advance.

        Raises:
            InvalidGrade: grade outside 0-5.
            DuplicateSubmission: a grade for this card is still in flight.
            IllegalTransition: card not flipped yet, or session complete.
            PersistenceFailure: the write failed; the session stays on this card.
        """
        q = Grade.parse(grade)
        submitting = self._state.begin_submit()
        card = self._cards[submitting.index]
        # Scheduling errors propagate as-is; only the write is retryable.
        outcome = self.plan(card, q, now or self._clock())
        self._state = submitting

        try:
            await self._reviews.record_outcome(outcome.card_id, outcome.result, outcome.grade)
        except asyncio.CancelledError:
            self._state = self._state.abort()
            raise
        except Exception as e:
            self._state = self._state.abort()
            logger.warning(f"Recording review for card {card.id} failed: {e}")
            raise PersistenceFailure(card.id, str(e)) from e

        self._outcomes.append(outcome)
        self._state = self._state.commit()
        logger.debug(
            f"Graded card {card.id} q={int(q)} -> interval={outcome.result.next_interval_days}d "
            f"ease={outcome.result.next_ease} ({self._state.completed}/{self._state.total})"
        )
        return outcome.result
