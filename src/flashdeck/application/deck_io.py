"""
YAML deck import/export.

Document shape:

    deck: Spanish verbs
    description: optional
    tags: [spanish]
    cards:
      - front: hablar
        back: to speak
        hint: optional
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml  # type: ignore

from flashdeck.domain.exceptions import DeckFormatError, NotFound
from flashdeck.domain.models import Card, Deck
from flashdeck.domain.ports import DeckRepository

logger = logging.getLogger(__name__)


class _LiteralDumper(yaml.SafeDumper):
    """Dump multi-line strings as | blocks so card backs stay readable."""


def _str_representer(dumper: yaml.SafeDumper, data: str) -> yaml.Node:
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_LiteralDumper.add_representer(str, _str_representer)


@dataclass
class ImportResult:
    deck: Deck
    created: bool
    cards_added: int


def parse_deck_document(text: str) -> dict[str, Any]:
    """
    Parse and validate a deck document.

    Raises:
        DeckFormatError: for invalid YAML or a document of the wrong shape.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f" (line {mark.line + 1}, column {mark.column + 1})" if mark else ""
        raise DeckFormatError(f"Invalid YAML{where}: {getattr(e, 'problem', e)}") from e

    if not isinstance(data, dict):
        raise DeckFormatError("Deck document must be a mapping with 'deck' and 'cards' keys")

    title = data.get("deck")
    if not isinstance(title, str) or not title.strip():
        raise DeckFormatError("'deck' must be a non-empty string")

    description = data.get("description")
    if description is not None and not isinstance(description, str):
        raise DeckFormatError("'description' must be a string")

    tags = data.get("tags") or []
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise DeckFormatError("'tags' must be a list of strings")

    cards = data.get("cards") or []
    if not isinstance(cards, list):
        raise DeckFormatError("'cards' must be a list")

    for i, card in enumerate(cards, start=1):
        if not isinstance(card, dict):
            raise DeckFormatError(f"Card #{i} must be a mapping with 'front' and 'back'")
        for key in ("front", "back"):
            value = card.get(key)
            if not isinstance(value, str) or not value.strip():
                raise DeckFormatError(f"Card #{i}: '{key}' must be a non-empty string")
        hint = card.get("hint")
        if hint is not None and not isinstance(hint, str):
            raise DeckFormatError(f"Card #{i}: 'hint' must be a string")

    return {
        "deck": title.strip(),
        "description": description,
        "tags": tags,
        "cards": cards,
    }


async def import_deck(repo: DeckRepository, path: Path) -> ImportResult:
    """Import a YAML deck file, creating the deck (matched by title) if needed."""
    doc = parse_deck_document(path.read_text(encoding="utf-8"))

    deck = await repo.find_deck_by_title(doc["deck"])
    created = deck is None
    if deck is None:
        deck = await repo.create_deck(doc["deck"], doc["description"], doc["tags"])

    for card in doc["cards"]:
        await repo.create_card(
            deck.id,
            card["front"],
            card["back"],
            hint=card.get("hint"),
            source_type="manual",
        )

    logger.info(f"Imported {len(doc['cards'])} cards into '{deck.title}' from {path}")
    return ImportResult(deck=deck, created=created, cards_added=len(doc["cards"]))


def dump_deck(deck: Deck, cards: list[Card]) -> str:
    doc: dict[str, Any] = {"deck": deck.title}
    if deck.description:
        doc["description"] = deck.description
    if deck.tags:
        doc["tags"] = list(deck.tags)

    entries = []
    for card in cards:
        entry = {"front": card.front, "back": card.back}
        if card.hint:
            entry["hint"] = card.hint
        entries.append(entry)
    doc["cards"] = entries

    return yaml.dump(doc, Dumper=_LiteralDumper, sort_keys=False, allow_unicode=True)


async def export_deck(repo: DeckRepository, deck_id: str, path: Path) -> int:
    """Write a deck to `path` as YAML. Returns the number of cards written."""
    deck = await repo.get_deck(deck_id)
    if deck is None:
        raise NotFound(f"Deck {deck_id} not found")

    cards = await repo.list_cards(deck_id)
    path.write_text(dump_deck(deck, cards), encoding="utf-8")
    logger.info(f"Exported {len(cards)} cards from '{deck.title}' to {path}")
    return len(cards)
