"""
Gemini-backed AI opponent.

`GeminiMoveProvider.request_model_move` is the strict call: it raises one of
the AiServiceError subclasses below. `choose_move` is what the game uses: it
wraps the strict call and, on any failure (or without an API key), plays a
uniformly random empty cell with a fixed commentary instead.
"""

import asyncio
import logging
import random
from typing import Any, Dict, Optional

import requests  # type: ignore
from pydantic import ValidationError

from .config import Settings
from .framework import MoveProvider
from .game_logic import empty_cells, render_board_tokens
from .models import NO_MOVE, AiMoveResponse, Board, Difficulty, Symbol

logger = logging.getLogger(__name__)

AI_SYMBOL = Symbol.O

# extra seconds on top of the HTTP timeout before the caller stops waiting
_WAIT_MARGIN = 1.0


class AiServiceError(RuntimeError):
    """Base class for AI call failures."""

    pass


class AiTimeout(AiServiceError, TimeoutError):
    """No reply within the timeout."""

    pass


class AiRequestFailed(AiServiceError):
    """Transport error or non-2xx status."""

    pass


class InvalidAiReply(AiServiceError, ValueError):
    """Empty reply, broken JSON, or a move that breaks the schema / 0-8 range."""

    pass


# ---- fallback commentary, one fixed sentence per reason ----
FALLBACK_COMMENTARY = {
    "no_key": "I'm playing randomly because I don't have a brain (API Key) yet!",
    "failure": "Thinking hurts... I'll just go here.",
}

DIFFICULTY_DIRECTIVES = {
    Difficulty.HARD: (
        "win the game at all costs. Block the opponent if they are about to win. "
        "Set up forks if possible."
    ),
    Difficulty.EASY: "play casually. Make a valid move, but you can make mistakes.",
}

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "move": {
            "type": "INTEGER",
            "description": "The index of the grid cell to place 'O' (0-8).",
        },
        "commentary": {
            "type": "STRING",
            "description": "Short witty commentary about the move.",
        },
    },
    "required": ["move"],
}


def build_prompt(board: Board, difficulty: Difficulty) -> str:
    opponent = AI_SYMBOL.opposite().value
    return (
        f"You are playing Tic-Tac-Toe. You are player '{AI_SYMBOL.value}'. "
        f"The opponent is '{opponent}'.\n\n"
        f"Current board state: {render_board_tokens(board)}\n\n"
        "The board array indices are 0-8.\n"
        "Indices where you see 'X' or 'O' are taken.\n"
        "Indices with numbers like '[0]', '[1]' are empty available spots.\n\n"
        f"Your goal is to {DIFFICULTY_DIRECTIVES[difficulty]}\n\n"
        "Return the index (0-8) of your next move.\n"
        f"Also provide a very short, witty 1-sentence commentary on your move as '{AI_SYMBOL.value}'."
    )


def build_request_body(board: Board, difficulty: Difficulty) -> Dict[str, Any]:
    return {
        "contents": [{"role": "user", "parts": [{"text": build_prompt(board, difficulty)}]}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": RESPONSE_SCHEMA,
        },
    }


def extract_text(payload: Dict[str, Any]) -> str:
    """Concatenated text parts of the first candidate ("" if there is none)."""
    try:
        parts = payload["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))


def parse_reply(text: str) -> AiMoveResponse:
    """
    Validate the model's JSON text strictly: `move` must be a JSON integer
    in 0-8 (no bools, numeric strings or floats), `commentary` an optional string.
    """
    if not text or not text.strip():
        raise InvalidAiReply("Empty response from AI")
    try:
        reply = AiMoveResponse.model_validate_json(text, strict=True)
    except ValidationError as e:
        raise InvalidAiReply(f"reply does not match schema: {e.error_count()} error(s)") from e
    if not reply.has_move:
        raise InvalidAiReply(f"move out of range: {reply.move}")
    return reply


def random_fallback(board: Board, kind: str, rng: Optional[random.Random] = None) -> AiMoveResponse:
    """
    Uniformly random empty cell with the fixed commentary for `kind`.
    A full board yields NO_MOVE without commentary.
    """
    free = empty_cells(board)
    if not free:
        return AiMoveResponse(move=NO_MOVE)
    pick = (rng or random).choice(free)
    return AiMoveResponse(move=pick, commentary=FALLBACK_COMMENTARY[kind])


class GeminiMoveProvider(MoveProvider):
    def __init__(
        self,
        settings: Settings,
        http: Optional[requests.Session] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings
        self.http = http or requests.Session()
        self.rng = rng or random.Random()

    @property
    def endpoint(self) -> str:
        return f"{self.settings.base_url}/models/{self.settings.model}:generateContent"

    def request_model_move(self, board: Board, difficulty: Difficulty) -> AiMoveResponse:
        """Blocking, strict call. Raises AiServiceError subclasses."""
        try:
            r = self.http.post(
                self.endpoint,
                json=build_request_body(board, difficulty),
                headers={"x-goog-api-key": self.settings.api_key},
                timeout=self.settings.ai_timeout,
            )
            r.raise_for_status()
        except requests.Timeout as e:
            raise AiTimeout(f"timeout after {self.settings.ai_timeout}s") from e
        except requests.RequestException as e:
            raise AiRequestFailed(str(e)) from e

        try:
            payload = r.json()
        except ValueError as e:
            raise InvalidAiReply("response body is not JSON") from e

        return parse_reply(extract_text(payload))

    async def choose_move(self, board: Board, difficulty: Difficulty) -> AiMoveResponse:
        if not self.settings.has_credential:
            logger.warning("No API key found, falling back to random move.")
            return random_fallback(board, "no_key", self.rng)

        try:
            reply = await asyncio.wait_for(
                asyncio.to_thread(self.request_model_move, board, difficulty),
                timeout=self.settings.ai_timeout + _WAIT_MARGIN,
            )
        except asyncio.TimeoutError:
            logger.warning(f"AI move error: no reply within {self.settings.ai_timeout}s")
            return random_fallback(board, "failure", self.rng)
        except AiServiceError as e:
            logger.warning(f"AI move error ({type(e).__name__}): {e}")
            return random_fallback(board, "failure", self.rng)
        except Exception:
            logger.exception("AI move error")
            return random_fallback(board, "failure", self.rng)

        logger.debug(f"model chose {reply.move} ({self.settings.model}, {difficulty.value})")
        return reply
