import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field
from ulid import ULID

from renshu.application.config import resolve_config
from renshu.application.factory import get_progress_repository, get_scheduler
from renshu.application.practice_service import PracticeService
from renshu.application.prompts import check_answer
from renshu.application.session_manager import PracticeSessionManager
from renshu.consts import VERSION
from renshu.domain.errors import EmptyActiveQueueError
from renshu.domain.models import Card, PracticeMode, Rating
from renshu.domain.ports import ProgressRepository
from renshu.infrastructure.catalog import load_deck

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("renshu.server")


@dataclass
class LiveSession:
    manager: PracticeSessionManager
    repo: ProgressRepository
    deck_name: str


sessions: dict[str, LiveSession] = {}


async def _close(session: LiveSession) -> None:
    await session.manager.drain()
    await session.repo.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"renshu server v{VERSION} starting up...")
    yield
    logger.info(f"renshu server shutting down, closing {len(sessions)} session(s)...")
    for session_id in list(sessions):
        await _close(sessions.pop(session_id))


app = FastAPI(
    title="renshu server",
    description="Practice session API for dependency-aware kanji and vocabulary practice.",
    version=VERSION,
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    sessions: int


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(
        status="ok",
        version=VERSION,
        uptime_seconds=time.time() - start_time,
        sessions=len(sessions),
    )


# --- Models ---


class CreateSessionRequest(BaseModel):
    deck: str
    library: str | None = None
    review_only: bool = False
    # If None, use defaults/config file.
    practice_mode: PracticeMode | None = None
    shuffle: bool | None = None
    enable_prerequisites: bool | None = None
    include_reviews: bool | None = None
    review_ratio: float | None = None
    active_capacity: int | None = None


class AnswerRequest(BaseModel):
    rating: Rating | None = None
    response: str | None = None  # graded against the card's answers when no rating is given


class CardModel(BaseModel):
    key: str
    item_type: str
    scope: str
    style: str
    mode: str
    prompt: str
    valid_answers: list[str]
    text: str
    meanings: list[str]
    readings: list[str]
    meaning_mnemonic: str
    reading_mnemonic: str | None = None
    miss_count: int = 0

    @classmethod
    def from_card(cls, card: Card) -> "CardModel":
        return cls(
            key=str(card.key),
            item_type=card.item_type.value,
            scope=card.scope.value,
            style=card.style.value,
            mode=card.mode.value,
            prompt=card.prompt,
            valid_answers=list(card.valid_answers),
            text=card.display.text,
            meanings=list(card.display.meanings),
            readings=list(card.display.readings),
            meaning_mnemonic=card.display.meaning_mnemonic,
            reading_mnemonic=card.display.reading_mnemonic,
            miss_count=card.miss_count,
        )


class ProgressModel(BaseModel):
    done: int
    total: int


class SessionResponse(BaseModel):
    id: str
    deck: str
    review_only: bool
    is_finished: bool
    current_card: CardModel | None
    active_queue: list[str]
    source_queue_sizes: dict[str, int] = Field(default_factory=dict)
    module_progress: ProgressModel
    correct: bool | None = None
    missed: list[CardModel] = Field(default_factory=list)


def _session_response(session_id: str, session: LiveSession, correct: bool | None = None):
    m = session.manager
    finished = m.is_finished()
    active = m.get_active_queue()
    progress = m.get_module_progress()
    return SessionResponse(
        id=session_id,
        deck=session.deck_name,
        review_only=m.review_only,
        is_finished=finished,
        current_card=None if finished or not active else CardModel.from_card(m.get_current_card()),
        active_queue=[str(k) for k in active],
        source_queue_sizes=m.get_source_queue_sizes(),
        module_progress=ProgressModel(done=progress.done, total=progress.total),
        correct=correct,
        missed=[CardModel.from_card(card) for card in m.get_missed_cards()],
    )


def _get_session(session_id: str) -> LiveSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
    return session


# --- Routes ---


@app.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(req: CreateSessionRequest):
    """
    Build a session for a deck file and start it.
    """
    logger.info(f"Session requested via API: {req}")

    overrides = {
        "practice_mode": req.practice_mode,
        "shuffle": req.shuffle,
        "enable_prerequisites": req.enable_prerequisites,
        "include_reviews": req.include_reviews,
        "review_ratio": req.review_ratio,
        "active_capacity": req.active_capacity,
    }

    try:
        config = resolve_config(overrides)
        deck = load_deck(Path(req.deck))
        library = load_deck(Path(req.library)) if req.library else None
        repo = get_progress_repository(config)
    except (ValueError, OSError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    try:
        service = PracticeService(config, repo, get_scheduler(config))
        manager = await service.start_session(deck, library=library, review_only=req.review_only)
    except Exception as e:
        await repo.close()
        logger.error(f"Session start failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    session_id = str(ULID())
    sessions[session_id] = LiveSession(manager=manager, repo=repo, deck_name=deck.name)
    logger.info(f"Started session {session_id} for {deck.name}")
    return _session_response(session_id, sessions[session_id])


@app.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str):
    return _session_response(session_id, _get_session(session_id))


@app.post("/sessions/{session_id}/answer", response_model=SessionResponse)
async def answer(session_id: str, req: AnswerRequest):
    """
    Rate the current card. A free-text ``response`` is graded Good/Again.
    """
    session = _get_session(session_id)
    m = session.manager
    if m.is_finished():
        return _session_response(session_id, session)

    try:
        card = m.get_current_card()
    except EmptyActiveQueueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    correct = None
    rating = req.rating
    if rating is None:
        if req.response is None:
            raise HTTPException(status_code=400, detail="Either rating or response is required")
        correct = check_answer(card, req.response)
        rating = Rating.GOOD if correct else Rating.AGAIN

    await m.process_answer(rating)
    return _session_response(session_id, session, correct)


@app.post("/sessions/{session_id}/introduction", response_model=SessionResponse)
async def complete_introduction(session_id: str):
    """Acknowledge the current introduction card."""
    session = _get_session(session_id)
    try:
        session.manager.process_introduction_completion()
    except EmptyActiveQueueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return _session_response(session_id, session)


@app.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    """Close a session after its pending progress writes finish."""
    session = _get_session(session_id)
    del sessions[session_id]
    await _close(session)
    return {"ok": True, "id": session_id}
