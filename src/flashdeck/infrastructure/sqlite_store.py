"""
SQLite Store: infrastructure adapter for local card storage.

Implements DeckRepository, DueCardQuery and ReviewRepository on a single
SQLite file. One review row per card; writes are upserts so a retried
record_outcome is harmless.
"""

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from ulid import ULID

from flashdeck.application.study_cards import select_session_cards
from flashdeck.domain.constants import INITIAL_EASE
from flashdeck.domain.models import (
    Card,
    Clock,
    Deck,
    Grade,
    ReviewRecord,
    ReviewResult,
    utc_now,
)
from flashdeck.domain.ports import DeckRepository, DueCardQuery, ReviewRepository

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS decks (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT,
    tags TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS cards (
    id TEXT PRIMARY KEY,
    deck_id TEXT NOT NULL REFERENCES decks(id) ON DELETE CASCADE,
    front TEXT NOT NULL,
    back TEXT NOT NULL,
    hint TEXT,
    source_type TEXT,
    source_id TEXT,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS reviews (
    card_id TEXT PRIMARY KEY REFERENCES cards(id) ON DELETE CASCADE,
    due_at TEXT NOT NULL,
    interval_days INTEGER NOT NULL,
    ease REAL NOT NULL,
    repetitions INTEGER NOT NULL,
    last_grade INTEGER,
    reviewed_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_cards_deck ON cards(deck_id);
CREATE INDEX IF NOT EXISTS idx_reviews_due ON reviews(due_at);
"""

_CARD_COLUMNS = (
    "c.id, c.deck_id, c.front, c.back, c.hint, c.source_type, c.source_id, c.created_at, "
    "r.card_id, r.due_at, r.interval_days, r.ease, r.repetitions, r.last_grade, r.reviewed_at"
)


def new_id(prefix: str) -> str:
    return f"{prefix}_{ULID()}"


def _to_db(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat()


def _from_db(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def _row_to_deck(row: sqlite3.Row) -> Deck:
    return Deck(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        tags=json.loads(row["tags"] or "[]"),
        created_at=_from_db(row["created_at"]),
    )


def _row_to_card(row: sqlite3.Row) -> Card:
    review = None
    if row["card_id"] is not None:
        review = ReviewRecord(
            card_id=row["card_id"],
            due_at=_from_db(row["due_at"]),  # type: ignore[arg-type]
            interval_days=row["interval_days"],
            ease=row["ease"],
            repetitions=row["repetitions"],
            last_grade=row["last_grade"],
            reviewed_at=_from_db(row["reviewed_at"]),
        )
    return Card(
        id=row["id"],
        deck_id=row["deck_id"],
        front=row["front"],
        back=row["back"],
        hint=row["hint"],
        source_type=row["source_type"],
        source_id=row["source_id"],
        created_at=_from_db(row["created_at"]),
        review=review,
    )


class SqliteStore(DeckRepository, DueCardQuery, ReviewRepository):
    """
    Card storage backed by a local SQLite database.

    Each call opens its own connection; the schema is created on first use.
    """

    def __init__(self, db_path: Path | str, clock: Clock | None = None):
        self.db_path = Path(db_path)
        self._clock = clock or utc_now
        self._initialized = False

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        if not self._initialized:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            if not self._initialized:
                conn.executescript(SCHEMA)
                self._initialized = True
            with conn:
                yield conn
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Decks
    # ------------------------------------------------------------------

    async def list_decks(self) -> list[Deck]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM decks ORDER BY created_at DESC, rowid DESC").fetchall()
        return [_row_to_deck(r) for r in rows]

    async def get_deck(self, deck_id: str) -> Deck | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM decks WHERE id = ?", (deck_id,)).fetchone()
        return _row_to_deck(row) if row else None

    async def find_deck_by_title(self, title: str) -> Deck | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM decks WHERE title = ? ORDER BY created_at, rowid LIMIT 1", (title,)
            ).fetchone()
        return _row_to_deck(row) if row else None

    async def create_deck(
        self, title: str, description: str | None = None, tags: list[str] | None = None
    ) -> Deck:
        deck = Deck(
            id=new_id("deck"),
            title=title,
            description=description,
            tags=list(tags or []),
            created_at=self._clock(),
        )
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO decks (id, title, description, tags, created_at) VALUES (?, ?, ?, ?, ?)",
                (deck.id, deck.title, deck.description, json.dumps(deck.tags), _to_db(deck.created_at)),  # type: ignore[arg-type]
            )
        logger.debug(f"Created deck {deck.id} '{title}'")
        return deck

    async def update_deck(
        self,
        deck_id: str,
        title: str | None = None,
        description: str | None = None,
        tags: list[str] | None = None,
    ) -> Deck | None:
        changes = {"title": title, "description": description}
        if tags is not None:
            changes["tags"] = json.dumps(list(tags))
        if not self._update("decks", deck_id, changes):
            return None
        return await self.get_deck(deck_id)

    async def delete_deck(self, deck_id: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM decks WHERE id = ?", (deck_id,))
        return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    async def list_cards(self, deck_id: str | None = None) -> list[Card]:
        query = f"SELECT {_CARD_COLUMNS} FROM cards c LEFT JOIN reviews r ON r.card_id = c.id"
        params: tuple = ()
        if deck_id is not None:
            query += " WHERE c.deck_id = ?"
            params = (deck_id,)
        query += " ORDER BY c.created_at, c.rowid"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_card(r) for r in rows]

    async def get_card(self, card_id: str) -> Card | None:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_CARD_COLUMNS} FROM cards c "
                "LEFT JOIN reviews r ON r.card_id = c.id WHERE c.id = ?",
                (card_id,),
            ).fetchone()
        return _row_to_card(row) if row else None

    async def create_card(
        self,
        deck_id: str,
        front: str,
        back: str,
        hint: str | None = None,
        source_type: str | None = None,
        source_id: str | None = None,
    ) -> Card:
        card = Card(
            id=new_id("card"),
            deck_id=deck_id,
            front=front,
            back=back,
            hint=hint,
            source_type=source_type,
            source_id=source_id,
            created_at=self._clock(),
        )
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO cards (id, deck_id, front, back, hint, source_type, source_id, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    card.id,
                    card.deck_id,
                    card.front,
                    card.back,
                    card.hint,
                    card.source_type,
                    card.source_id,
                    _to_db(card.created_at),  # type: ignore[arg-type]
                ),
            )
        return card

    async def update_card(
        self,
        card_id: str,
        front: str | None = None,
        back: str | None = None,
        hint: str | None = None,
    ) -> Card | None:
        if not self._update("cards", card_id, {"front": front, "back": back, "hint": hint}):
            return None
        return await self.get_card(card_id)

    async def delete_card(self, card_id: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM cards WHERE id = ?", (card_id,))
        return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    async def seed_review(self, card_id: str, due_at: datetime) -> ReviewRecord:
        record = ReviewRecord(
            card_id=card_id,
            due_at=due_at,
            interval_days=0,
            ease=INITIAL_EASE,
            repetitions=0,
            last_grade=int(Grade.BLACKOUT),
            reviewed_at=self._clock(),
        )
        self._upsert_review(record)
        return record

    async def record_outcome(self, card_id: str, result: ReviewResult, grade: Grade) -> None:
        self._upsert_review(
            ReviewRecord(
                card_id=card_id,
                due_at=result.next_due_at,
                interval_days=result.next_interval_days,
                ease=result.next_ease,
                repetitions=result.next_repetitions,
                last_grade=int(grade),
                reviewed_at=self._clock(),
            )
        )

    async def get_review(self, card_id: str) -> ReviewRecord | None:
        card = await self.get_card(card_id)
        return card.review if card else None

    def _upsert_review(self, record: ReviewRecord) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO reviews
                    (card_id, due_at, interval_days, ease, repetitions, last_grade, reviewed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(card_id) DO UPDATE SET
                    due_at = excluded.due_at,
                    interval_days = excluded.interval_days,
                    ease = excluded.ease,
                    repetitions = excluded.repetitions,
                    last_grade = excluded.last_grade,
                    reviewed_at = excluded.reviewed_at
                """,
                (
                    record.card_id,
                    _to_db(record.due_at),
                    record.interval_days,
                    record.ease,
                    record.repetitions,
                    record.last_grade,
                    _to_db(record.reviewed_at) if record.reviewed_at else None,
                ),
            )

    def _update(self, table: str, row_id: str, changes: dict) -> bool:
        """Set the non-None columns in `changes`. False if the row does not exist."""
        changes = {k: v for k, v in changes.items() if v is not None}
        with self._connect() as conn:
            if not changes:
                row = conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", (row_id,)).fetchone()
                return row is not None
            assignments = ", ".join(f"{column} = ?" for column in changes)
            cur = conn.execute(
                f"UPDATE {table} SET {assignments} WHERE id = ?", (*changes.values(), row_id)
            )
        return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Session query
    # ------------------------------------------------------------------

    async def fetch_session_cards(self, scope: str | None, limit: int) -> list[Card]:
        cards = await self.list_cards(scope)
        return select_session_cards(cards, self._clock(), limit)
