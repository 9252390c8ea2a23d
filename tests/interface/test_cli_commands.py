"""Tests for CLI commands: decks, cards, stats, preview and the interactive study loop."""

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from flashdeck.interface.cli import app

runner = CliRunner()


@pytest.fixture
def db(tmp_path, mock_home) -> Path:
    return tmp_path / "cli.db"


def _deck_id(db: Path, title: str) -> str:
    result = runner.invoke(app, ["deck", "list", "--json", "--db", str(db)])
    assert result.exit_code == 0
    return next(d["id"] for d in json.loads(result.output) if d["title"] == title)


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "flashdeck: SM-2 flashcards" in result.output
    assert "study" in result.output
    assert "deck" in result.output


def test_deck_create_and_list(db):
    result = runner.invoke(app, ["deck", "create", "Capitals", "--tag", "geo", "--db", str(db)])
    assert result.exit_code == 0
    assert "Created deck 'Capitals'" in result.output

    result = runner.invoke(app, ["deck", "list", "--json", "--db", str(db)])
    data = json.loads(result.output)
    assert data[0]["title"] == "Capitals"
    assert data[0]["cards"] == 0


def test_deck_list_empty(db):
    result = runner.invoke(app, ["deck", "list", "--db", str(db)])
    assert result.exit_code == 0
    assert "No decks yet" in result.output


def test_card_add_unknown_deck(db):
    result = runner.invoke(
        app, ["card", "add", "deck_nope", "--front", "q", "--back", "a", "--db", str(db)]
    )
    assert result.exit_code == 1


def test_deck_edit_and_delete(db):
    runner.invoke(app, ["deck", "create", "Capitals", "--db", str(db)])
    deck_id = _deck_id(db, "Capitals")

    result = runner.invoke(
        app, ["deck", "edit", deck_id, "--title", "World capitals", "--db", str(db)]
    )
    assert result.exit_code == 0
    assert "Updated deck 'World capitals'" in result.output

    result = runner.invoke(app, ["deck", "delete", deck_id, "--db", str(db)], input="n\n")
    assert result.exit_code == 1
    assert _deck_id(db, "World capitals") == deck_id

    result = runner.invoke(app, ["deck", "delete", deck_id, "--force", "--db", str(db)])
    assert result.exit_code == 0
    assert "Deleted deck 'World capitals'" in result.output

    result = runner.invoke(app, ["deck", "edit", deck_id, "--title", "X", "--db", str(db)])
    assert result.exit_code == 1


def test_card_edit_and_delete(db):
    runner.invoke(app, ["deck", "create", "D", "--db", str(db)])
    deck_id = _deck_id(db, "D")
    result = runner.invoke(
        app, ["card", "add", deck_id, "--front", "q", "--back", "a", "--db", str(db)]
    )
    card_id = result.output.strip().split()[-1]

    result = runner.invoke(app, ["card", "edit", card_id, "--back", "b", "--db", str(db)])
    assert result.exit_code == 0
    assert f"Updated card {card_id}" in result.output

    result = runner.invoke(app, ["card", "delete", card_id, "--db", str(db)])
    assert result.exit_code == 0

    result = runner.invoke(app, ["deck", "list", "--json", "--db", str(db)])
    assert json.loads(result.output)[0]["cards"] == 0

    result = runner.invoke(app, ["card", "delete", card_id, "--db", str(db)])
    assert result.exit_code == 1


def test_verbosity_falls_back_to_config(mock_home, monkeypatch):
    root = logging.getLogger()
    original = root.level
    try:
        monkeypatch.setenv("FLASHDECK_VERBOSE", "2")
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert root.level == logging.DEBUG

        monkeypatch.setenv("FLASHDECK_VERBOSE", "0")
        runner.invoke(app, ["config", "show"])
        assert root.level == logging.WARNING

        runner.invoke(app, ["-v", "config", "show"])
        assert root.level == logging.INFO
    finally:
        root.setLevel(original)


def test_import_export(db, tmp_path):
    src = tmp_path / "deck.yaml"
    src.write_text(
        "deck: Verbs\ncards:\n  - front: hablar\n    back: to speak\n"
        "  - front: comer\n    back: to eat\n"
    )

    result = runner.invoke(app, ["deck", "import", str(src), "--db", str(db)])
    assert result.exit_code == 0
    assert "Created deck 'Verbs': 2 cards added." in result.output

    out = tmp_path / "out.yaml"
    result = runner.invoke(app, ["deck", "export", _deck_id(db, "Verbs"), str(out), "--db", str(db)])
    assert result.exit_code == 0
    assert "hablar" in out.read_text()


def test_import_invalid_file(db, tmp_path):
    src = tmp_path / "bad.yaml"
    src.write_text("cards: []\n")

    result = runner.invoke(app, ["deck", "import", str(src), "--db", str(db)])

    assert result.exit_code == 1


def test_study_session_and_stats(db):
    runner.invoke(app, ["deck", "create", "Capitals", "--db", str(db)])
    deck_id = _deck_id(db, "Capitals")
    for front, back in [("France?", "Paris"), ("Japan?", "Tokyo")]:
        result = runner.invoke(
            app, ["card", "add", deck_id, "--front", front, "--back", back, "--db", str(db)]
        )
        assert result.exit_code == 0

    # reveal, "x" (invalid), good; reveal, easy
    result = runner.invoke(app, ["study", "--db", str(db)], input="\nx\n3\n\n4\n")

    assert result.exit_code == 0, result.output
    assert "[1/2] France?" in result.output
    assert "Paris" in result.output
    assert "[1] again (10m)" in result.output
    assert "Choose 1-4" in result.output
    assert "Session complete: 2 cards reviewed." in result.output

    result = runner.invoke(app, ["stats", "--json", "--db", str(db)])
    stats = json.loads(result.output)
    assert stats["total_cards"] == 2
    assert stats["new_cards"] == 0
    assert stats["due_now"] == 0

    result = runner.invoke(app, ["study", "--db", str(db)])
    assert "No cards to review." in result.output


def test_study_quit(db):
    runner.invoke(app, ["deck", "create", "D", "--db", str(db)])
    deck_id = _deck_id(db, "D")
    runner.invoke(app, ["card", "add", deck_id, "--front", "q", "--back", "a", "--db", str(db)])

    result = runner.invoke(app, ["study", "--deck", deck_id, "--db", str(db)], input="\nq\n")

    assert result.exit_code == 0
    assert "Stopped after 0/1 cards." in result.output


def test_mistake_add_and_due(db):
    result = runner.invoke(
        app,
        ["mistake", "add", "--prompt", "2+2?", "--answer", "4", "--db", str(db)],
    )
    assert result.exit_code == 0

    result = runner.invoke(app, ["due", "--db", str(db)])
    assert "2+2?" in result.output
    assert "now" in result.output


def test_preview_command(db):
    runner.invoke(app, ["deck", "create", "D", "--db", str(db)])
    deck_id = _deck_id(db, "D")
    result = runner.invoke(
        app, ["card", "add", deck_id, "--front", "q", "--back", "a", "--db", str(db)]
    )
    card_id = result.output.strip().split()[-1]

    result = runner.invoke(app, ["preview", card_id, "--db", str(db)])

    assert result.exit_code == 0
    assert "again 10m" in result.output
    assert "easy  1d" in result.output


def test_config_show(mock_home):
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    assert json.loads(result.output)["session_limit"] == 20


@patch("uvicorn.run")
def test_serve_command(mock_run, mock_home):
    result = runner.invoke(app, ["serve", "--port", "9000"])
    assert result.exit_code == 0
    mock_run.assert_called_with("flashdeck.server:app", host="127.0.0.1", port=9000, reload=False)
