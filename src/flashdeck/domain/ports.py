"""
Ports (interfaces) for card storage.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from .models import Card, Deck, Grade, ReviewRecord, ReviewResult


class DueCardQuery(ABC):
    """Port for selecting the cards of a review session."""

    @abstractmethod
    async def fetch_session_cards(self, scope: str | None, limit: int) -> list[Card]:
        """
        Fetch the ordered cards for a new session.

        Args:
            scope: Deck ID, or None for every deck.
            limit: Maximum number of cards.

        Returns:
            Due cards (oldest due first) followed by new cards.
        """
        pass


class ReviewRepository(ABC):
    """
    Port for persisting review outcomes.

    Writes are upserts keyed by card, so retrying after an error is safe.
    """

    @abstractmethod
    async def record_outcome(self, card_id: str, result: ReviewResult, grade: Grade) -> None:
        """Store the scheduling result of one graded review. Raises on failure."""
        pass


class DeckRepository(ABC):
    """Port for deck and card CRUD."""

    @abstractmethod
    async def list_decks(self) -> list[Deck]:
        pass

    @abstractmethod
    async def get_deck(self, deck_id: str) -> Deck | None:
        pass

    @abstractmethod
    async def find_deck_by_title(self, title: str) -> Deck | None:
        pass

    @abstractmethod
    async def create_deck(
        self, title: str, description: str | None = None, tags: list[str] | None = None
    ) -> Deck:
        pass

    @abstractmethod
    async def update_deck(
        self,
        deck_id: str,
        title: str | None = None,
        description: str | None = None,
        tags: list[str] | None = None,
    ) -> Deck | None:
        """Change the given fields; None leaves a field as is. Returns None for an unknown deck."""
        pass

    @abstractmethod
    async def delete_deck(self, deck_id: str) -> bool:
        pass

    @abstractmethod
    async def list_cards(self, deck_id: str | None = None) -> list[Card]:
        """All cards (with their review record attached, if any)."""
        pass

    @abstractmethod
    async def create_card(
        self,
        deck_id: str,
        front: str,
        back: str,
        hint: str | None = None,
        source_type: str | None = None,
        source_id: str | None = None,
    ) -> Card:
        pass

    @abstractmethod
    async def update_card(
        self,
        card_id: str,
        front: str | None = None,
        back: str | None = None,
        hint: str | None = None,
    ) -> Card | None:
        pass

    @abstractmethod
    async def delete_card(self, card_id: str) -> bool:
        pass

    @abstractmethod
    async def seed_review(self, card_id: str, due_at: datetime) -> ReviewRecord:
        """Create an initial new-card review row so the card is due at `due_at`."""
        pass
