"""flashdeck CLI: deck management, statistics and interactive review."""

import asyncio
import json
import logging
import sys
from datetime import timedelta
from pathlib import Path
from typing import Annotated, Any

import typer

from flashdeck.application.config import resolve_config
from flashdeck.domain.exceptions import FlashdeckError

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="flashdeck: SM-2 flashcards in your terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Register subgroups
# ---------------------------------------------------------------------------

deck_app = typer.Typer(help="Create, edit, list, import and export decks.", no_args_is_help=True)
app.add_typer(deck_app, name="deck")

card_app = typer.Typer(help="Manage cards.", no_args_is_help=True)
app.add_typer(card_app, name="card")

mistake_app = typer.Typer(help="Collect missed questions as flashcards.", no_args_is_help=True)
app.add_typer(mistake_app, name="mistake")

config_app = typer.Typer(help="Manage flashdeck configuration.")
app.add_typer(config_app, name="config")

# Number keys accepted in `study`, in button order.
KEY_TO_LABEL = {"1": "again", "2": "hard", "3": "good", "4": "easy"}


def _resolve_with_overrides(**overrides: Any):
    return resolve_config({k: v for k, v in overrides.items() if v is not None})


def _store(db: Path | None = None):
    from flashdeck.application.factory import get_store

    return get_store(_resolve_with_overrides(db_path=db))


def _fail(e: Exception) -> None:
    typer.secho(f"Error: {e}", fg="red", err=True)
    raise typer.Exit(1)


def _log_level(verbose: int) -> int:
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


DbOption = Annotated[Path | None, typer.Option("--db", help="SQLite database path override.")]


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for flashdeck."""
    ctx.ensure_object(dict)
    # Without -v, fall back to the configured verbosity
    level = _resolve_with_overrides(verbose=verbose or None).verbose
    ctx.obj["verbose"] = level
    logging.getLogger().setLevel(_log_level(level))


# ---------------------------------------------------------------------------
# Deck subgroup
# ---------------------------------------------------------------------------


@deck_app.command("create")
def deck_create(
    title: Annotated[str, typer.Argument(help="Deck title.")],
    description: Annotated[str | None, typer.Option(help="Short description.")] = None,
    tag: Annotated[list[str] | None, typer.Option("--tag", help="Tag (repeatable).")] = None,
    db: DbOption = None,
):
    """Create an empty deck."""
    deck = asyncio.run(_store(db).create_deck(title, description, tag or []))
    typer.secho(f"Created deck '{deck.title}' ({deck.id})", fg="green")


@deck_app.command("list")
def deck_list(
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
    db: DbOption = None,
):
    """List decks with card and due counts."""
    from flashdeck.application.stats import DeckStatsService

    overviews = asyncio.run(DeckStatsService(_store(db)).list_decks_with_counts())

    if json_output:
        typer.echo(
            json.dumps(
                [
                    {
                        "id": o.deck.id,
                        "title": o.deck.title,
                        "cards": o.stats.total_cards,
                        "due": o.stats.due_now,
                        "new": o.stats.new_cards,
                    }
                    for o in overviews
                ],
                indent=2,
            )
        )
        return

    if not overviews:
        typer.secho("No decks yet. Create one with 'flashdeck deck create'.", fg="yellow")
        return
    for o in overviews:
        typer.echo(
            f"{o.deck.title}  ({o.deck.id})  cards: {o.stats.total_cards}"
            f"  due: {o.stats.due_now}  new: {o.stats.new_cards}"
        )


@deck_app.command("edit")
def deck_edit(
    deck_id: Annotated[str, typer.Argument(help="Deck ID.")],
    title: Annotated[str | None, typer.Option(help="New title.")] = None,
    description: Annotated[str | None, typer.Option(help="New description.")] = None,
    tag: Annotated[
        list[str] | None, typer.Option("--tag", help="Replace tags (repeatable).")
    ] = None,
    db: DbOption = None,
):
    """Rename a deck or change its description and tags."""
    deck = asyncio.run(_store(db).update_deck(deck_id, title, description, tag))
    if deck is None:
        typer.secho(f"Deck {deck_id} not found.", fg="red", err=True)
        raise typer.Exit(1)
    typer.secho(f"Updated deck '{deck.title}'", fg="green")


@deck_app.command("delete")
def deck_delete(
    deck_id: Annotated[str, typer.Argument(help="Deck ID.")],
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Bypass confirmation for destructive actions.")
    ] = False,
    db: DbOption = None,
):
    """Delete a deck with all of its cards and review history."""
    store = _store(db)
    deck = asyncio.run(store.get_deck(deck_id))
    if deck is None:
        typer.secho(f"Deck {deck_id} not found.", fg="red", err=True)
        raise typer.Exit(1)
    if not force and not typer.confirm(f"Delete deck '{deck.title}' and all its cards?"):
        raise typer.Abort()
    asyncio.run(store.delete_deck(deck_id))
    typer.secho(f"Deleted deck '{deck.title}'", fg="green")


@deck_app.command("import")
def deck_import(
    path: Annotated[Path, typer.Argument(help="YAML deck file.", exists=True, dir_okay=False)],
    db: DbOption = None,
):
    """Import cards from a YAML deck file."""
    from flashdeck.application.deck_io import import_deck

    try:
        result = asyncio.run(import_deck(_store(db), path))
    except FlashdeckError as e:
        _fail(e)
        return

    verb = "Created" if result.created else "Updated"
    typer.secho(
        f"{verb} deck '{result.deck.title}': {result.cards_added} cards added.", fg="green"
    )


@deck_app.command("export")
def deck_export(
    deck_id: Annotated[str, typer.Argument(help="Deck ID.")],
    path: Annotated[Path, typer.Argument(help="Output YAML file.")],
    db: DbOption = None,
):
    """Export a deck to YAML."""
    from flashdeck.application.deck_io import export_deck

    try:
        count = asyncio.run(export_deck(_store(db), deck_id, path))
    except FlashdeckError as e:
        _fail(e)
        return
    typer.secho(f"Exported {count} cards to {path}", fg="green")


# ---------------------------------------------------------------------------
# Card / mistake subgroups
# ---------------------------------------------------------------------------


@card_app.command("add")
def card_add(
    deck_id: Annotated[str, typer.Argument(help="Deck ID.")],
    front: Annotated[str, typer.Option(help="Question side.")],
    back: Annotated[str, typer.Option(help="Answer side.")],
    hint: Annotated[str | None, typer.Option(help="Optional hint.")] = None,
    db: DbOption = None,
):
    """Add a card to a deck."""
    store = _store(db)

    async def run():
        if await store.get_deck(deck_id) is None:
            return None
        return await store.create_card(deck_id, front, back, hint=hint, source_type="manual")

    card = asyncio.run(run())
    if card is None:
        typer.secho(f"Deck {deck_id} not found.", fg="red", err=True)
        raise typer.Exit(1)
    typer.secho(f"Added card {card.id}", fg="green")


@card_app.command("edit")
def card_edit(
    card_id: Annotated[str, typer.Argument(help="Card ID.")],
    front: Annotated[str | None, typer.Option(help="New question side.")] = None,
    back: Annotated[str | None, typer.Option(help="New answer side.")] = None,
    hint: Annotated[str | None, typer.Option(help="New hint.")] = None,
    db: DbOption = None,
):
    """Edit a card's text. Its review schedule is kept."""
    card = asyncio.run(_store(db).update_card(card_id, front, back, hint))
    if card is None:
        typer.secho(f"Card {card_id} not found.", fg="red", err=True)
        raise typer.Exit(1)
    typer.secho(f"Updated card {card.id}", fg="green")


@card_app.command("delete")
def card_delete(
    card_id: Annotated[str, typer.Argument(help="Card ID.")],
    db: DbOption = None,
):
    """Delete a card and its review history."""
    if not asyncio.run(_store(db).delete_card(card_id)):
        typer.secho(f"Card {card_id} not found.", fg="red", err=True)
        raise typer.Exit(1)
    typer.secho(f"Deleted card {card_id}", fg="green")


@mistake_app.command("add")
def mistake_add(
    prompt: Annotated[str, typer.Option(help="The question that was missed.")],
    answer: Annotated[str, typer.Option(help="The correct answer.")],
    explanation: Annotated[str | None, typer.Option(help="Why the answer is correct.")] = None,
    source_id: Annotated[str | None, typer.Option(help="ID of the original question.")] = None,
    db: DbOption = None,
):
    """Add a missed question to the 'Mistakes' deck, due immediately."""
    from flashdeck.application.mistakes import add_mistake_card

    card = asyncio.run(add_mistake_card(_store(db), prompt, answer, explanation, source_id))
    typer.secho(f"Added mistake card {card.id}", fg="green")


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def due(
    deck: Annotated[str | None, typer.Option(help="Limit to one deck ID.")] = None,
    hours: Annotated[int, typer.Option(help="Look-ahead window in hours.")] = 24,
    db: DbOption = None,
):
    """List reviewed cards falling due within the next HOURS."""
    from flashdeck.application.previews import format_interval
    from flashdeck.application.stats import due_within
    from flashdeck.domain.models import utc_now

    now = utc_now()
    cards = due_within(asyncio.run(_store(db).list_cards(deck)), now, timedelta(hours=hours))
    if not cards:
        typer.secho("Nothing due.", fg="green")
        return
    for card in cards:
        delta = card.review.due_at - now  # type: ignore[union-attr]
        when = "now" if delta.total_seconds() <= 0 else f"in {format_interval(delta)}"
        typer.echo(f"{when:>8}  {card.front}  ({card.id})")


@app.command()
def stats(
    deck: Annotated[str | None, typer.Option(help="Limit to one deck ID.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
    db: DbOption = None,
):
    """Show total, new, due and learned counts."""
    from dataclasses import asdict

    from flashdeck.application.stats import DeckStatsService

    result = asyncio.run(DeckStatsService(_store(db)).get_stats(deck))
    if json_output:
        typer.echo(json.dumps(asdict(result), indent=2))
        return
    typer.echo(
        f"Total: {result.total_cards}  New: {result.new_cards}  Due now: {result.due_now}"
        f"  Due today: {result.due_today}  Learned: {result.learned}"
    )


@app.command()
def preview(
    card_id: Annotated[str, typer.Argument(help="Card ID.")],
    db: DbOption = None,
):
    """Show when a card would come back for each grade."""
    from flashdeck.application.previews import grade_previews
    from flashdeck.domain.models import utc_now

    card = asyncio.run(_store(db).get_card(card_id))
    if card is None:
        typer.secho(f"Card {card_id} not found.", fg="red", err=True)
        raise typer.Exit(1)

    state = card.review_state
    typer.echo(
        f"interval={state.interval_days}d ease={state.ease} repetitions={state.repetitions}"
    )
    for label, when in grade_previews(state, utc_now()).items():
        typer.echo(f"  {label:<5} {when}")


@app.command()
def study(
    deck: Annotated[str | None, typer.Option(help="Deck ID. Defaults to every deck.")] = None,
    limit: Annotated[int | None, typer.Option(help="Maximum cards in this session.")] = None,
    db: DbOption = None,
):
    """[bold green]Review[/bold green] due and new cards."""
    from flashdeck.application.factory import get_store
    from flashdeck.application.session import StudySession
    from flashdeck.domain.exceptions import EmptySession, InvalidGrade, PersistenceFailure

    config = _resolve_with_overrides(db_path=db, session_limit=limit)
    store = get_store(config)

    async def run():
        try:
            session = await StudySession.start(
                store, store, scope=deck, limit=config.session_limit
            )
        except EmptySession:
            typer.secho("No cards to review.", fg="green")
            return

        while not session.is_complete:
            card = session.current_card
            typer.echo(f"\n[{session.current_index + 1}/{session.total_cards}] {card.front}")
            if card.hint:
                typer.secho(f"  hint: {card.hint}", fg="cyan")
            typer.prompt("Press Enter to reveal", default="", show_default=False)
            session.flip()
            typer.echo(f"  {card.back}")

            previews = session.grade_previews or {}
            choices = "  ".join(
                f"[{key}] {label} ({previews[label]})" for key, label in KEY_TO_LABEL.items()
            )
            while True:
                answer = typer.prompt(f"{choices}  [q] quit").strip().lower()
                if answer in ("q", "quit"):
                    typer.echo(
                        f"Stopped after {session.completed_count}/{session.total_cards} cards."
                    )
                    return
                try:
                    await session.grade(KEY_TO_LABEL.get(answer, answer))
                    break
                except InvalidGrade:
                    typer.secho("Choose 1-4 or again/hard/good/easy.", fg="yellow")
                except PersistenceFailure as e:
                    typer.secho(f"{e}. Grade again to retry.", fg="red")

        typer.secho(f"\nSession complete: {session.completed_count} cards reviewed.", fg="green")

    asyncio.run(run())


@app.command()
def serve(
    port: Annotated[int | None, typer.Option(help="Port to bind the server to.")] = None,
    host: Annotated[str | None, typer.Option(help="Host to bind the server to.")] = None,
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the HTTP review API."""
    import uvicorn

    config = _resolve_with_overrides(host=host, port=port)
    uvicorn.run("flashdeck.server:app", host=config.host, port=config.port, reload=reload)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
