import logging
import time
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from ulid import ULID

from flashdeck.application.config import resolve_config
from flashdeck.application.factory import get_store as build_store
from flashdeck.application.session import StudySession
from flashdeck.application.stats import DeckStatsService
from flashdeck.consts import VERSION
from flashdeck.domain.exceptions import (
    DuplicateSubmission,
    EmptySession,
    IllegalTransition,
    InvalidGrade,
    PersistenceFailure,
)
from flashdeck.infrastructure.sqlite_store import SqliteStore

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("flashdeck.server")

# Live review sessions, keyed by session ID, oldest first. Process-local.
sessions: dict[str, StudySession] = {}

# Starting a session beyond this count evicts the oldest open one.
MAX_OPEN_SESSIONS = 256


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"flashdeck server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info(f"flashdeck server shutting down ({len(sessions)} open sessions dropped)...")
    sessions.clear()


app = FastAPI(
    title="flashdeck",
    description="Review session API for SM-2 flashcards.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


def get_store() -> SqliteStore:
    return build_store(resolve_config())


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


def _error(status: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status, content={"detail": str(exc)})


@app.exception_handler(InvalidGrade)
async def invalid_grade_handler(request: Request, exc: InvalidGrade):
    return _error(422, exc)


@app.exception_handler(DuplicateSubmission)
async def duplicate_handler(request: Request, exc: DuplicateSubmission):
    return _error(409, exc)


@app.exception_handler(IllegalTransition)
async def illegal_transition_handler(request: Request, exc: IllegalTransition):
    return _error(409, exc)


@app.exception_handler(EmptySession)
async def empty_session_handler(request: Request, exc: EmptySession):
    return _error(409, exc)


@app.exception_handler(PersistenceFailure)
async def persistence_handler(request: Request, exc: PersistenceFailure):
    logger.error(f"Persistence failure: {exc}")
    return _error(503, exc)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class StartSessionRequest(BaseModel):
    deck_id: str | None = None
    limit: int | None = Field(default=None, ge=1)


class GradeRequest(BaseModel):
    # 0-5, or a button label: again, hard, good, easy
    grade: int | str


class CardView(BaseModel):
    id: str
    deck_id: str
    front: str
    back: str | None  # hidden until flipped
    hint: str | None
    is_new: bool


class SessionView(BaseModel):
    id: str
    phase: str
    total_cards: int
    current_index: int
    completed_count: int
    progress: float
    is_flipped: bool
    is_submitting: bool
    is_complete: bool
    current_card: CardView | None
    grade_previews: dict[str, str] | None


class ReviewResultView(BaseModel):
    next_interval_days: int
    next_ease: float
    next_repetitions: int
    next_due_at: str


class GradeResponse(BaseModel):
    result: ReviewResultView
    session: SessionView


def _view(session_id: str, session: StudySession) -> SessionView:
    card = session.current_card
    card_view = None
    if card is not None:
        card_view = CardView(
            id=card.id,
            deck_id=card.deck_id,
            front=card.front,
            back=card.back if session.is_flipped else None,
            hint=card.hint,
            is_new=card.is_new,
        )
    return SessionView(
        id=session_id,
        phase=session.state.phase.value,
        total_cards=session.total_cards,
        current_index=session.current_index,
        completed_count=session.completed_count,
        progress=round(session.progress, 1),
        is_flipped=session.is_flipped,
        is_submitting=session.is_submitting,
        is_complete=session.is_complete,
        current_card=card_view,
        grade_previews=session.grade_previews,
    )


def _get_session(session_id: str) -> StudySession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return session


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.post("/sessions", response_model=SessionView, status_code=201)
async def start_session(req: StartSessionRequest, store: SqliteStore = Depends(get_store)):
    """Start a review session over the due (then new) cards of a deck."""
    limit = req.limit or resolve_config().session_limit
    session = await StudySession.start(store, store, scope=req.deck_id, limit=limit)
    session_id = str(ULID())
    while len(sessions) >= MAX_OPEN_SESSIONS:
        evicted = next(iter(sessions))
        del sessions[evicted]
        logger.info(f"Session {evicted} evicted (limit {MAX_OPEN_SESSIONS})")
    sessions[session_id] = session
    logger.info(f"Session {session_id} started with {session.total_cards} cards")
    return _view(session_id, session)


@app.get("/sessions/{session_id}", response_model=SessionView)
async def get_session(session_id: str):
    return _view(session_id, _get_session(session_id))


@app.post("/sessions/{session_id}/flip", response_model=SessionView)
async def flip_card(session_id: str):
    session = _get_session(session_id)
    session.flip()
    return _view(session_id, session)


@app.post("/sessions/{session_id}/grade", response_model=GradeResponse)
async def grade_card(session_id: str, req: GradeRequest):
    """
    Grade the current card. On 503 the session stays on the same card and
    the request can be retried. Grading the last card closes the session.
    """
    session = _get_session(session_id)
    result = await session.grade(req.grade)
    if session.is_complete:
        sessions.pop(session_id, None)
        logger.info(f"Session {session_id} complete, {session.completed_count} cards reviewed")
    return GradeResponse(
        result=ReviewResultView(
            next_interval_days=result.next_interval_days,
            next_ease=result.next_ease,
            next_repetitions=result.next_repetitions,
            next_due_at=result.next_due_at.isoformat(),
        ),
        session=_view(session_id, session),
    )


@app.post("/sessions/{session_id}/reset", response_model=SessionView)
async def reset_session(session_id: str):
    session = _get_session(session_id)
    session.reset()
    return _view(session_id, session)


@app.delete("/sessions/{session_id}", status_code=204)
async def end_session(session_id: str):
    _get_session(session_id)
    del sessions[session_id]


@app.get("/decks")
async def list_decks(store: SqliteStore = Depends(get_store)):
    overviews = await DeckStatsService(store).list_decks_with_counts()
    return [
        {
            "id": o.deck.id,
            "title": o.deck.title,
            "description": o.deck.description,
            "tags": o.deck.tags,
            "stats": asdict(o.stats),
        }
        for o in overviews
    ]


@app.get("/decks/{deck_id}/stats")
async def deck_stats(deck_id: str, store: SqliteStore = Depends(get_store)):
    if await store.get_deck(deck_id) is None:
        raise HTTPException(status_code=404, detail=f"Deck {deck_id} not found")
    return asdict(await DeckStatsService(store).get_stats(deck_id))
