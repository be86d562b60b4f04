import json
from typing import List, Optional, Tuple

from .models import Board, Symbol, TerminalResult

BOARD_CELLS = 9

# rows, columns, diagonals. Scan order decides which line is reported
WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


def create_board() -> Board:
    """Empty 3x3 board, row-major (index = row * 3 + col)."""
    return (None,) * BOARD_CELLS


def empty_cells(board: Board) -> List[int]:
    return [i for i, cell in enumerate(board) if cell is None]


def is_full(board: Board) -> bool:
    """True when no cell is empty."""
    return all(cell is not None for cell in board)


def check_win_with_positions(board: Board) -> Optional[Tuple[str, Tuple[int, int, int]]]:
    """
    Return (symbol, line) for the first completed line in WINNING_LINES order,
    or None if no line is complete.
    """
    for line in WINNING_LINES:
        a, b, c = line
        if board[a] is not None and board[a] == board[b] == board[c]:
            return board[a], line
    return None


def evaluate(board: Board) -> Optional[TerminalResult]:
    """
    Classify a board: win (symbol + line), draw, or None while the game goes on.
    The board is only read.
    """
    found = check_win_with_positions(board)
    if found is not None:
        symbol, line = found
        return TerminalResult(outcome="win", winner=Symbol(symbol), line=line)
    if is_full(board):
        return TerminalResult(outcome="draw")
    return None


def apply_move(board: Board, index: int, symbol: Symbol) -> Optional[Board]:
    """
    Place `symbol` at `index` and return the new board.
    Returns None (rejected) for a bad index, an occupied cell or a finished game.
    """
    if isinstance(index, bool) or not isinstance(index, int):
        return None
    if not (0 <= index < BOARD_CELLS):
        return None
    if board[index] is not None:
        return None
    if evaluate(board) is not None:
        return None

    cells = list(board)
    cells[index] = Symbol(symbol).value
    return tuple(cells)


def render_board_tokens(board: Board) -> str:
    """
    JSON list with one token per cell: the symbol, or "[i]" for empty cell i,
    so that an empty slot can be referred to by its position.
    """
    tokens = [Symbol(cell).value if cell else f"[{i}]" for i, cell in enumerate(board)]
    return json.dumps(tokens)
