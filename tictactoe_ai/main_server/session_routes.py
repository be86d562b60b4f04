import logging
import secrets
import string
import time
from typing import Callable, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from ..backend.config import Settings
from ..backend.framework import MoveProvider
from ..backend.models import DifficultyIn, ModeIn, MoveIn, NewSessionIn
from ..backend.session import GameSession

logger = logging.getLogger(__name__)

router = APIRouter()


def generate_session_id(length: int = 32) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


class SessionRegistry:
    """
    Live sessions by id. Lives on app.state, nothing is persisted.
    Sessions idle for longer than settings.session_ttl are swept on create and /health.
    """

    def __init__(self, settings: Settings, provider_factory: Callable[[], MoveProvider]):
        self.settings = settings
        self.provider_factory = provider_factory
        self.sessions: Dict[str, GameSession] = {}

    def create(self, body: NewSessionIn) -> str:
        self.sweep()
        session_id = generate_session_id()
        self.sessions[session_id] = GameSession(
            self.provider_factory(),
            settings=self.settings,
            mode=body.mode,
            difficulty=body.difficulty,
        )
        logger.info(f"session {session_id} created ({body.mode.value}, {body.difficulty.value})")
        return session_id

    def get(self, session_id: str) -> GameSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Invalid session_id")
        session.touch()
        return session

    def delete(self, session_id: str):
        if self.sessions.pop(session_id, None) is None:
            raise HTTPException(status_code=404, detail="Invalid session_id")

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop idle sessions; one with an AI turn still running is kept."""
        now = time.monotonic() if now is None else now
        expired = [
            sid
            for sid, s in self.sessions.items()
            if s.idle_for(now) > self.settings.session_ttl and not s.ai_thinking and not s.pending_ai_tasks
        ]
        for sid in expired:
            del self.sessions[sid]
        if expired:
            logger.info(f"swept {len(expired)} idle session(s), {len(self.sessions)} left")
        return len(expired)


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def create_session(body: Optional[NewSessionIn] = None, registry: SessionRegistry = Depends(get_registry)):
    body = body or NewSessionIn()
    session_id = registry.create(body)
    return {"session_id": session_id, "state": registry.get(session_id).state_dict()}


@router.get("/sessions/{session_id}")
async def get_state(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return registry.get(session_id).state_dict()


@router.post("/sessions/{session_id}/move")
async def move(session_id: str, payload: MoveIn, registry: SessionRegistry = Depends(get_registry)):
    """
    Human move. In PVE mode O's reply is started in the background;
    with wait_for_ai the response carries the state after O has moved.
    """
    session = registry.get(session_id)
    out = session.apply_human_move(payload.index)
    if out["status"] != "ok":
        return out

    task = session.schedule_ai_turn()
    if task is not None and payload.wait_for_ai:
        ai_out = await task
        return {**ai_out, "human_move": payload.index}
    # the task has not started yet; report it as thinking
    return {**out, "ai_thinking": task is not None or out["ai_thinking"]}


@router.post("/sessions/{session_id}/ai-move")
async def ai_move(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    """Run (or wait for) O's pending turn and return the resulting state."""
    session = registry.get(session_id)
    task = session.schedule_ai_turn()
    if task is None:
        return {"status": "skipped", **session.state_dict()}
    return await task


@router.post("/sessions/{session_id}/reset")
async def reset(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    session.reset_game()
    return {"status": "ok", **session.state_dict()}


@router.put("/sessions/{session_id}/mode")
async def set_mode(session_id: str, body: ModeIn, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    session.set_mode(body.mode)
    return {"status": "ok", **session.state_dict()}


@router.put("/sessions/{session_id}/difficulty")
async def set_difficulty(session_id: str, body: DifficultyIn, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    session.set_difficulty(body.difficulty)
    return {"status": "ok", **session.state_dict()}


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    registry.delete(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/health")
async def health(registry: SessionRegistry = Depends(get_registry)):
    registry.sweep()
    return {
        "status": "ok",
        "model": registry.settings.model,
        "has_api_key": registry.settings.has_credential,
        "sessions": len(registry.sessions),
    }
