"""
Deck statistics service.

Coordinates fetching cards from the repository and counting them.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from flashdeck.domain.constants import LEARNED_REPETITIONS
from flashdeck.domain.models import Card, Clock, Deck, DeckStats, utc_now
from flashdeck.domain.ports import DeckRepository

logger = logging.getLogger(__name__)


def end_of_day(now: datetime) -> datetime:
    """Last instant of the calendar day containing `now`, in now's timezone."""
    return datetime.combine(now.date(), time.max, tzinfo=now.tzinfo)


def compute_deck_stats(cards: Iterable[Card], now: datetime) -> DeckStats:
    """Pure counting. A card is 'learned' once it has 3 consecutive passes."""
    today_end = end_of_day(now)
    total = new = due_now = due_today = learned = 0

    for card in cards:
        total += 1
        review = card.review
        if review is None:
            new += 1
            continue
        if review.due_at <= now:
            due_now += 1
        if review.due_at <= today_end:
            due_today += 1
        if review.repetitions >= LEARNED_REPETITIONS:
            learned += 1

    return DeckStats(
        total_cards=total,
        new_cards=new,
        due_now=due_now,
        due_today=due_today,
        learned=learned,
    )


@dataclass
class DeckOverview:
    deck: Deck
    stats: DeckStats


class DeckStatsService:
    """
    Application service for deck counts.

    Depends on the DeckRepository abstraction, not a concrete store.
    """

    def __init__(self, repo: DeckRepository, clock: Clock | None = None):
        self._repo = repo
        self._clock = clock or utc_now

    async def get_stats(self, deck_id: str | None = None) -> DeckStats:
        """Stats for one deck, or every card when deck_id is None."""
        cards = await self._repo.list_cards(deck_id)
        return compute_deck_stats(cards, self._clock())

    async def list_decks_with_counts(self) -> list[DeckOverview]:
        now = self._clock()
        decks = await self._repo.list_decks()
        cards = await self._repo.list_cards()

        by_deck: dict[str, list[Card]] = {d.id: [] for d in decks}
        for card in cards:
            if card.deck_id in by_deck:
                by_deck[card.deck_id].append(card)
            else:
                logger.debug(f"Card {card.id} references unknown deck {card.deck_id}")

        return [DeckOverview(deck=d, stats=compute_deck_stats(by_deck[d.id], now)) for d in decks]


def due_within(cards: Iterable[Card], now: datetime, window: timedelta) -> list[Card]:
    """Reviewed cards falling due before now + window, soonest first."""
    horizon = now + window
    upcoming = [c for c in cards if c.review is not None and c.review.due_at <= horizon]
    return sorted(upcoming, key=lambda c: c.review.due_at)  # type: ignore[union-attr]
