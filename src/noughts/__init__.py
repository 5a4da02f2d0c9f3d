"""Noughts package exposing game logic, the minimax opponent, and the web application."""

from .ai import MinimaxAI, NoLegalMove, best_move
from .game import GameState, InvalidMove, Mode, MoveResult, Symbol
from .ui import app

__all__ = [
    "GameState",
    "InvalidMove",
    "MinimaxAI",
    "Mode",
    "MoveResult",
    "NoLegalMove",
    "Symbol",
    "app",
    "best_move",
]
