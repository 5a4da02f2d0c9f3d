"""Exhaustive minimax opponent for the 3x3 board."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Sequence, Tuple
import logging

from .game import EMPTY, GameState, Symbol, check_terminal, empty_cells

logger = logging.getLogger(__name__)

WIN_SCORE = 10
LOSS_SCORE = -10
DRAW_SCORE = 0


class NoLegalMove(RuntimeError):
    """The solver was asked to move on a finished board."""


def best_move(board: Sequence[str], computer: Symbol) -> int:
    """
    Return the optimal cell for ``computer`` to play on ``board``.

    Scores are flat (+10 win, -10 loss, 0 draw) with no preference for
    quicker wins. Ties go to the lowest cell index. The caller's board is
    never modified; the search runs on tuples.
    """
    computer = Symbol(computer)
    cells = tuple(board)
    if check_terminal(cells).is_terminal:
        raise NoLegalMove("Board is already finished")

    best_index = -1
    best_score = None
    for index in empty_cells(cells):
        score = _minimax(_place(cells, index, computer), computer.opponent, computer)
        if best_score is None or score > best_score:
            best_index, best_score = index, score

    logger.debug("Solver picked %d (score %s) for %s", best_index, best_score, computer)
    return best_index


@lru_cache(maxsize=None)
def _minimax(cells: Tuple[str, ...], mover: Symbol, computer: Symbol) -> int:
    # Pure function of its arguments, so memoising cannot change any result.
    result = check_terminal(cells)
    if result.is_win:
        return WIN_SCORE if result.winner is computer else LOSS_SCORE
    if result.is_draw:
        return DRAW_SCORE

    scores = [
        _minimax(_place(cells, index, mover), mover.opponent, computer)
        for index in empty_cells(cells)
    ]
    return max(scores) if mover is computer else min(scores)


def _place(cells: Tuple[str, ...], index: int, symbol: Symbol) -> Tuple[str, ...]:
    return cells[:index] + (symbol.value,) + cells[index + 1 :]


@dataclass
class MinimaxAI:
    """Computer opponent bound to one symbol.

    Usage mirrors the web layer: ``MinimaxAI(player=Symbol.O).choose(state)``.
    """

    player: Symbol = Symbol.O

    def __post_init__(self) -> None:
        self.player = Symbol(self.player)

    def choose(self, state: GameState) -> int:
        if state.turn is not self.player:
            raise ValueError("It is not this AI player's turn")
        if EMPTY not in state.board:
            raise NoLegalMove("No valid moves available")
        return best_move(state.board, self.player)
