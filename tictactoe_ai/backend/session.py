import asyncio
import logging
import random
import time
from typing import Any, Dict, Optional, Set, Tuple

from .ai_service import AI_SYMBOL, random_fallback
from .config import Settings
from .framework import MoveProvider
from .game_logic import apply_move, create_board, evaluate
from .models import Board, Difficulty, GameMode, Scores, SessionState, Symbol, TerminalResult

logger = logging.getLogger(__name__)

START_COMMENTARY = "Let's play! Your move."
RESET_COMMENTARY = "New game! Your move."

RESULT_COMMENTARY = {
    "DRAW": "It's a draw! Well played.",
    "X": "Player X wins! Nice job.",
    "O": "Player O wins! Better luck next time.",
}


class GameSession:
    """
    One browser's game: board, turn, result, score tally and commentary.

    The human path and the AI path both go through apply_move + evaluate.
    While an AI call is pending (`ai_thinking`) human moves are rejected,
    and every reset bumps `generation` so a late AI reply is dropped.
    """

    def __init__(
        self,
        provider: MoveProvider,
        settings: Optional[Settings] = None,
        mode: GameMode = GameMode.PVE,
        difficulty: Difficulty = Difficulty.HARD,
        rng: Optional[random.Random] = None,
    ):
        self.provider = provider
        self.settings = settings or Settings()
        self.mode = mode
        self.difficulty = difficulty
        self.rng = rng or random.Random()

        self.scores = Scores()
        self.generation = 0
        self.ai_task: Optional[asyncio.Task] = None
        # strong refs to every AI task until it finishes, including stale ones
        self._ai_tasks: Set[asyncio.Task] = set()
        self.last_active = time.monotonic()
        self._clear_board()
        self.commentary = START_COMMENTARY

    def _clear_board(self):
        self.board: Board = create_board()
        self.current_player = Symbol.X
        self.result: Optional[TerminalResult] = None
        self.ai_thinking = False
        self.move_count = 0

    # ---------- activity ----------
    def touch(self):
        self.last_active = time.monotonic()

    def idle_for(self, now: Optional[float] = None) -> float:
        return (time.monotonic() if now is None else now) - self.last_active

    # ---------- read side ----------
    @property
    def game_over(self) -> bool:
        return self.result is not None

    @property
    def winner(self) -> Optional[str]:
        if self.result is None:
            return None
        return "DRAW" if self.result.outcome == "draw" else self.result.winner.value

    @property
    def winning_line(self) -> Optional[Tuple[int, int, int]]:
        return self.result.line if self.result is not None else None

    @property
    def ai_due(self) -> bool:
        return (
            self.mode == GameMode.PVE
            and self.current_player == AI_SYMBOL
            and self.result is None
        )

    def state(self) -> SessionState:
        return SessionState(
            board=self.board,
            current_player=self.current_player,
            winner=self.winner,
            winning_line=self.winning_line,
            game_over=self.game_over,
            ai_thinking=self.ai_thinking,
            commentary=self.commentary,
            scores=self.scores.model_copy(),
            mode=self.mode,
            difficulty=self.difficulty,
            move_count=self.move_count,
            generation=self.generation,
        )

    def state_dict(self) -> Dict[str, Any]:
        return self.state().model_dump(mode="json")

    # ---------- moves ----------
    def _place(self, index: int, symbol: Symbol) -> Optional[TerminalResult]:
        """Apply an already validated move and settle score/turn."""
        new_board = apply_move(self.board, index, symbol)
        if new_board is None:
            raise ValueError(f"illegal move {index} for {symbol.value}")
        self.board = new_board
        self.move_count += 1

        result = evaluate(self.board)
        if result is not None:
            self.result = result
            self._record_result()
        else:
            self.current_player = symbol.opposite()
        return result

    def _record_result(self):
        key = self.winner
        if key == "DRAW":
            self.scores.Draw += 1
        elif key == "X":
            self.scores.X += 1
        else:
            self.scores.O += 1
        self.commentary = RESULT_COMMENTARY[key]
        logger.info(f"game over: {key} (scores X={self.scores.X} O={self.scores.O} Draw={self.scores.Draw})")

    def apply_human_move(self, index: int) -> Dict[str, Any]:
        if self.game_over:
            return {"status": "finished", **self.state_dict()}
        if self.ai_thinking or self.ai_due:
            return {"status": "invalid", **self.state_dict()}
        if apply_move(self.board, index, self.current_player) is None:
            return {"status": "invalid", **self.state_dict()}

        symbol = self.current_player
        result = self._place(index, symbol)
        return {"status": _status(result), "last_move": index, **self.state_dict()}

    async def run_ai_turn_if_due(self) -> Dict[str, Any]:
        """
        Ask the provider for O's move and apply it.
        The provider call and the minimum delay run concurrently.
        """
        if not self.ai_due or self.ai_thinking:
            return {"status": "skipped", **self.state_dict()}

        generation = self.generation
        snapshot = self.board
        self.ai_thinking = True
        try:
            reply, _ = await asyncio.gather(
                self.provider.choose_move(snapshot, self.difficulty),
                asyncio.sleep(self.settings.ai_min_delay),
            )
        finally:
            if generation == self.generation:
                self.ai_thinking = False

        if generation != self.generation:
            logger.info(f"dropping AI reply for stale game (generation {generation} != {self.generation})")
            return {"status": "stale", **self.state_dict()}

        if not reply.has_move:
            return {"status": "skipped", **self.state_dict()}

        index = reply.move
        commentary = reply.commentary
        if apply_move(self.board, index, AI_SYMBOL) is None:
            logger.warning(f"AI returned unusable cell {index}, substituting a random move")
            fallback = random_fallback(self.board, "failure", self.rng)
            if not fallback.has_move:
                return {"status": "skipped", **self.state_dict()}
            index, commentary = fallback.move, fallback.commentary

        if commentary:
            self.commentary = commentary
        result = self._place(index, AI_SYMBOL)
        return {"status": _status(result), "last_move": index, **self.state_dict()}

    # ---------- AI task bookkeeping (HTTP layer) ----------
    def schedule_ai_turn(self) -> Optional[asyncio.Task]:
        """Start the AI turn in the background if one is due and none is pending."""
        if self.ai_task is not None and not self.ai_task.done():
            return self.ai_task
        if not self.ai_due:
            return None
        task = asyncio.create_task(self.run_ai_turn_if_due())
        self._ai_tasks.add(task)
        task.add_done_callback(self._ai_task_done)
        self.ai_task = task
        return task

    def _ai_task_done(self, task: asyncio.Task):
        self._ai_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"AI turn failed: {exc!r}", exc_info=exc)

    @property
    def pending_ai_tasks(self) -> int:
        return len(self._ai_tasks)

    # ---------- controls ----------
    def reset_game(self):
        self.generation += 1
        self._clear_board()
        self.commentary = RESET_COMMENTARY
        self.ai_task = None

    def set_mode(self, mode: GameMode):
        self.mode = mode
        self.reset_game()

    def set_difficulty(self, difficulty: Difficulty):
        self.difficulty = difficulty


def _status(result: Optional[TerminalResult]) -> str:
    if result is None:
        return "ok"
    return result.outcome
