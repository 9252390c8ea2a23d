"""
Domain errors.

Contract violations (InvalidGrade, session misuse) are programmer errors and
are raised immediately. PersistenceFailure is operational: the session stays
on the same card so the grade can be retried.
"""


class FlashdeckError(Exception):
    """Base class for all flashdeck errors."""


class InvalidGrade(FlashdeckError, ValueError):
    """Raised for a grade outside the 0-5 scale."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Grade must be an integer 0-5 or one of again/hard/good/easy, got {value!r}")


class SessionError(FlashdeckError):
    """Base class for review session contract violations."""


class EmptySession(SessionError):
    """Raised when a session is started with no cards."""

    def __init__(self) -> None:
        super().__init__("Cannot start a review session with no cards")


class DuplicateSubmission(SessionError):
    """Raised when grade() is called while a grade for the same card is in flight."""

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"A grade for card #{index} is already being submitted")


class IllegalTransition(SessionError):
    """Raised when grading an unflipped card or a finished session."""


class PersistenceFailure(FlashdeckError):
    """The review outcome could not be recorded. Safe to retry."""

    def __init__(self, card_id: str, message: str):
        self.card_id = card_id
        super().__init__(f"Failed to record review for card {card_id}: {message}")


class DeckFormatError(FlashdeckError, ValueError):
    """Raised when an imported deck document is malformed."""


class NotFound(FlashdeckError, LookupError):
    """Raised when a deck or card does not exist."""
