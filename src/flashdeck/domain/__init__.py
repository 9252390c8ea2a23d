# Domain Package
from .exceptions import (
    DeckFormatError,
    DuplicateSubmission,
    EmptySession,
    FlashdeckError,
    IllegalTransition,
    InvalidGrade,
    NotFound,
    PersistenceFailure,
    SessionError,
)
from .models import (
    GRADE_LABELS,
    Card,
    Deck,
    DeckStats,
    Grade,
    ReviewOutcome,
    ReviewRecord,
    ReviewResult,
    ReviewState,
)
from .ports import DeckRepository, DueCardQuery, ReviewRepository

__all__ = [
    "GRADE_LABELS",
    "Card",
    "Deck",
    "DeckStats",
    "Grade",
    "ReviewOutcome",
    "ReviewRecord",
    "ReviewResult",
    "ReviewState",
    "DeckRepository",
    "DueCardQuery",
    "ReviewRepository",
    "FlashdeckError",
    "InvalidGrade",
    "SessionError",
    "EmptySession",
    "DuplicateSubmission",
    "IllegalTransition",
    "PersistenceFailure",
    "DeckFormatError",
    "NotFound",
]
