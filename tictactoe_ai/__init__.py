"""
Tic-Tac-Toe game server: human vs human, or human vs a Gemini-backed AI
that falls back to random moves when the API is unavailable.
"""

__version__ = "1.0.0"
