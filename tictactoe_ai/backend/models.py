from enum import Enum
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# row-major 3x3, None = empty
Board = Tuple[Optional[str], ...]

# "no move" sentinel returned when the board has no empty cell
NO_MOVE = -1


class Symbol(str, Enum):
    X = "X"
    O = "O"

    def opposite(self) -> "Symbol":
        return Symbol.O if self == Symbol.X else Symbol.X


class GameMode(str, Enum):
    PVP = "PVP"
    PVE = "PVE"  # Player vs AI


class Difficulty(str, Enum):
    EASY = "EASY"  # "Casual" in the UI
    HARD = "HARD"


class TerminalResult(BaseModel):
    """Outcome of a finished game. A running game has no result (None)."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["win", "draw"]
    winner: Optional[Symbol] = None
    line: Optional[Tuple[int, int, int]] = None


class AiMoveResponse(BaseModel):
    move: int = Field(ge=NO_MOVE, le=8)
    commentary: Optional[str] = None

    @property
    def has_move(self) -> bool:
        return self.move != NO_MOVE


class Scores(BaseModel):
    X: int = 0
    O: int = 0
    Draw: int = 0


# ========== HTTP bodies ==========
class NewSessionIn(BaseModel):
    mode: GameMode = GameMode.PVE
    difficulty: Difficulty = Difficulty.HARD


class MoveIn(BaseModel):
    index: int
    wait_for_ai: bool = False


class ModeIn(BaseModel):
    mode: GameMode


class DifficultyIn(BaseModel):
    difficulty: Difficulty


class SessionState(BaseModel):
    board: Board
    current_player: Symbol
    winner: Optional[Literal["X", "O", "DRAW"]] = None
    winning_line: Optional[Tuple[int, int, int]] = None
    game_over: bool
    ai_thinking: bool
    commentary: str
    scores: Scores
    mode: GameMode
    difficulty: Difficulty
    move_count: int
    generation: int
