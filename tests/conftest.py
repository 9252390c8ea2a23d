from datetime import datetime, timezone

import pytest

from flashdeck.domain.models import Card, ReviewRecord

NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock(now):
    return lambda: now


@pytest.fixture
def make_card():
    """Factory for cards; pass review=(interval_days, ease, repetitions[, due_at]) for a reviewed card."""

    def _make(card_id: str, review: tuple | None = None, deck_id: str = "deck_1", **kwargs) -> Card:
        record = None
        if review is not None:
            interval_days, ease, repetitions, *rest = review
            record = ReviewRecord(
                card_id=card_id,
                due_at=rest[0] if rest else NOW,
                interval_days=interval_days,
                ease=ease,
                repetitions=repetitions,
            )
        return Card(
            id=card_id,
            deck_id=deck_id,
            front=kwargs.pop("front", f"Front {card_id}"),
            back=kwargs.pop("back", f"Back {card_id}"),
            review=record,
            **kwargs,
        )

    return _make


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    for var in ("FLASHDECK_DB_PATH", "FLASHDECK_SESSION_LIMIT", "FLASHDECK_VERBOSE"):
        monkeypatch.delenv(var, raising=False)
    return home
