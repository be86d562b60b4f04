from abc import ABC, abstractmethod

from .models import AiMoveResponse, Board, Difficulty


class MoveProvider(ABC):
    """
    Base class for whatever picks the AI's (O's) move.
    Implementations must always return a well-formed response and never raise.
    """

    @abstractmethod
    async def choose_move(self, board: Board, difficulty: Difficulty) -> AiMoveResponse:
        """Return the chosen cell (0-8, or NO_MOVE) plus optional commentary."""
        ...
