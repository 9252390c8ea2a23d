"""
Session card selection.

Due cards come first (oldest due first); remaining slots are filled with
never-reviewed cards in creation order.
"""

from collections.abc import Iterable
from datetime import datetime, timezone

from flashdeck.domain.models import Card

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def select_session_cards(cards: Iterable[Card], now: datetime, limit: int) -> list[Card]:
    """
    Pick the cards for a review session.

    Args:
        cards: Candidate cards with their review records attached.
        now: Cards whose review is due at or before this instant are due.
        limit: Maximum number of cards returned.

    Returns:
        Up to `limit` cards: due cards sorted by due_at, then new cards.
    """
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")

    due: list[Card] = []
    new: list[Card] = []
    for card in cards:
        if card.review is None:
            new.append(card)
        elif card.review.due_at <= now:
            due.append(card)

    due.sort(key=lambda c: c.review.due_at)  # type: ignore[union-attr]
    if len(due) >= limit:
        return due[:limit]

    new.sort(key=lambda c: c.created_at or _EPOCH)
    return due + new[: limit - len(due)]
