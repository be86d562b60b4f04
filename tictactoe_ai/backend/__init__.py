"""
Game logic, AI move provider and session controller.
"""

from .game_logic import WINNING_LINES, apply_move, create_board, empty_cells, evaluate
from .models import NO_MOVE, AiMoveResponse, Difficulty, GameMode, Symbol, TerminalResult
from .session import GameSession
