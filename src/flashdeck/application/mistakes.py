"""Turn incorrectly answered questions into flashcards in the "Mistakes" deck."""

import logging

from flashdeck.domain.constants import MISTAKES_DECK_DESCRIPTION, MISTAKES_DECK_TITLE
from flashdeck.domain.models import Card, Clock, Deck, utc_now
from flashdeck.domain.ports import DeckRepository

logger = logging.getLogger(__name__)


async def get_or_create_mistakes_deck(repo: DeckRepository) -> Deck:
    deck = await repo.find_deck_by_title(MISTAKES_DECK_TITLE)
    if deck is not None:
        return deck
    logger.info(f"Creating '{MISTAKES_DECK_TITLE}' deck")
    return await repo.create_deck(MISTAKES_DECK_TITLE, MISTAKES_DECK_DESCRIPTION)


def mistake_back(correct_answer: str, explanation: str | None = None) -> str:
    back = f"Answer: {correct_answer}"
    if explanation:
        back += f"\n\nExplanation: {explanation}"
    return back


async def add_mistake_card(
    repo: DeckRepository,
    prompt: str,
    correct_answer: str,
    explanation: str | None = None,
    source_id: str | None = None,
    clock: Clock | None = None,
) -> Card:
    """
    Create a card for a missed question and make it due immediately.

    The card gets a fresh new-card review row (interval 0, ease 2.5,
    repetitions 0) due now, so it shows up in the next session.
    """
    deck = await get_or_create_mistakes_deck(repo)
    card = await repo.create_card(
        deck.id,
        prompt,
        mistake_back(correct_answer, explanation),
        source_type="question",
        source_id=source_id,
    )
    card.review = await repo.seed_review(card.id, (clock or utc_now)())
    return card
