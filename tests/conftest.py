import asyncio
import random
from typing import List, Optional

import pytest
import requests

from tictactoe_ai.backend.config import Settings
from tictactoe_ai.backend.framework import MoveProvider
from tictactoe_ai.backend.game_logic import empty_cells
from tictactoe_ai.backend.models import NO_MOVE, AiMoveResponse, Board, Difficulty
from tictactoe_ai.backend.session import GameSession


class StubProvider(MoveProvider):
    """
    Scripted AI: returns `replies` in order, then the first empty cell.
    With `hold=True` every call waits until `release()` is called.
    """

    def __init__(self, replies: Optional[List[AiMoveResponse]] = None, delay: float = 0.0, hold: bool = False):
        self.replies = list(replies or [])
        self.delay = delay
        self.hold = hold
        self.calls = []
        self.released = False
        self._gate: Optional[asyncio.Event] = None

    def release(self):
        self.released = True
        if self._gate is not None:
            self._gate.set()

    async def choose_move(self, board: Board, difficulty: Difficulty) -> AiMoveResponse:
        self.calls.append((board, difficulty))
        if self.hold and not self.released:
            self._gate = asyncio.Event()
            await self._gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.replies:
            return self.replies.pop(0)
        free = empty_cells(board)
        return AiMoveResponse(move=free[0] if free else NO_MOVE)


class FakeResponse:
    def __init__(self, payload=None, status_code: int = 200, bad_body: bool = False):
        self.payload = payload
        self.status_code = status_code
        self.bad_body = bad_body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self.bad_body:
            raise ValueError("Expecting value")
        return self.payload


class FakeHttp:
    """Stands in for requests.Session; records every post()."""

    def __init__(self, response: Optional[FakeResponse] = None, error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def gemini_payload(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


@pytest.fixture
def settings():
    return Settings(api_key="", ai_min_delay=0)


@pytest.fixture
def keyed_settings():
    return Settings(api_key="test-key", ai_timeout=5, ai_min_delay=0)


@pytest.fixture
def make_session(settings):
    def _make(replies=None, **kwargs):
        provider = kwargs.pop("provider", None) or StubProvider(replies)
        return GameSession(provider, settings=settings, rng=random.Random(7), **kwargs)

    return _make
