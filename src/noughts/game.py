"""Core rules, game state and score bookkeeping for noughts and crosses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Tuple
import logging
import threading

from .storage import MemoryScoreStore, ScoreStore

if TYPE_CHECKING:
    from .ai import MinimaxAI

logger = logging.getLogger(__name__)


class Symbol(str, Enum):
    X = "X"
    O = "O"

    @property
    def opponent(self) -> "Symbol":
        return Symbol.O if self is Symbol.X else Symbol.X

    def __str__(self) -> str:
        return self.value


class Mode(str, Enum):
    HUMAN_VS_HUMAN = "two"
    HUMAN_VS_COMPUTER = "ai"


EMPTY = ""
BOARD_SIZE = 9

# Scan order matters: first satisfied pattern is the reported one.
WIN_PATTERNS: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

SCORE_KEYS: Dict[Symbol, str] = {Symbol.X: "scoreX", Symbol.O: "scoreO"}

# The computer always answers as O; the human opens as X.
COMPUTER_SYMBOL = Symbol.O

# Serialises read-modify-write of persisted scores across every game in the process.
_SCORE_LOCK = threading.Lock()


class InvalidMove(ValueError):
    """Raised when a move is rejected; the game state is left untouched."""


# ---------- Outcomes ----------


@dataclass(frozen=True)
class MoveResult:
    kind: str = "ongoing"
    winner: Optional[Symbol] = None
    pattern: Optional[Tuple[int, int, int]] = None

    @classmethod
    def win(cls, winner: Symbol, pattern: Tuple[int, int, int]) -> "MoveResult":
        return cls(kind="win", winner=winner, pattern=pattern)

    @classmethod
    def draw(cls) -> "MoveResult":
        return cls(kind="draw")

    @property
    def is_win(self) -> bool:
        return self.kind == "win"

    @property
    def is_draw(self) -> bool:
        return self.kind == "draw"

    @property
    def is_terminal(self) -> bool:
        return self.kind != "ongoing"


ONGOING = MoveResult()


def empty_cells(board: Sequence[str]) -> List[int]:
    return [i for i, cell in enumerate(board) if cell == EMPTY]


def check_terminal(board: Sequence[str]) -> MoveResult:
    """Classify a board as a win (first pattern in scan order), a draw, or ongoing."""
    for pattern in WIN_PATTERNS:
        a, b, c = pattern
        v = board[a]
        if v != EMPTY and v == board[b] == board[c]:
            return MoveResult.win(Symbol(v), pattern)
    if EMPTY not in board:
        return MoveResult.draw()
    return ONGOING


def load_scores(store: ScoreStore) -> Dict[Symbol, int]:
    """Read persisted scores; anything missing or unreadable counts as zero."""
    scores: Dict[Symbol, int] = {}
    for symbol, key in SCORE_KEYS.items():
        raw = store.load(key)
        try:
            value = int(raw) if raw is not None else 0
        except (TypeError, ValueError):
            logger.warning("Ignoring unreadable score %r for %s", raw, key)
            value = 0
        scores[symbol] = max(0, value)
    return scores


# ---------- Snapshots ----------


@dataclass(frozen=True)
class GameSnapshot:
    """Read-only view handed to observers and renderers."""

    board: Tuple[str, ...]
    turn: Symbol
    mode: Optional[Mode]
    active: bool
    scores: Tuple[Tuple[Symbol, int], ...]
    outcome: MoveResult
    computer_pending: bool

    @property
    def status(self) -> str:
        if self.outcome.is_win:
            return f"{self.outcome.winner} Wins!"
        if self.outcome.is_draw:
            return "Draw! No points awarded."
        if self.mode is None:
            return "Choose a game mode"
        return f"{self.turn}'s Turn"

    def score_of(self, symbol: Symbol) -> int:
        return dict(self.scores)[symbol]


Listener = Callable[[GameSnapshot], None]


# ---------- Game ----------


@dataclass
class GameState:
    store: ScoreStore = field(default_factory=MemoryScoreStore, repr=False)
    board: List[str] = field(default_factory=lambda: [EMPTY] * BOARD_SIZE)
    turn: Symbol = Symbol.X
    mode: Optional[Mode] = None
    # False before a game starts, after it ends, and while the computer thinks
    active: bool = False
    outcome: MoveResult = ONGOING
    computer_pending: bool = False
    last_move: Optional[int] = None
    score: Dict[Symbol, int] = field(init=False)

    _listeners: List[Listener] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        self.score = load_scores(self.store)

    # ---- primitive operations ----

    def apply_move(self, index: int, player: Symbol) -> None:
        """Place ``player`` on ``index``. Does not switch turn or check the result."""
        if not self.active:
            raise InvalidMove("Game is not accepting moves")
        if isinstance(index, bool) or not isinstance(index, int):
            raise InvalidMove(f"Cell index must be an integer, got {index!r}")
        if not 0 <= index < BOARD_SIZE:
            raise InvalidMove(f"Cell index {index} is out of range")
        if self.board[index] != EMPTY:
            raise InvalidMove("Cell already occupied")
        self.board[index] = Symbol(player).value
        self.last_move = index

    def check_terminal(self) -> MoveResult:
        return check_terminal(self.board)

    def switch_turn(self) -> None:
        self.turn = self.turn.opponent

    def record_win(self, symbol: Symbol) -> None:
        # Other games may have changed the store since this one last read it.
        with _SCORE_LOCK:
            self.score = load_scores(self.store)
            self.score[symbol] += 1
            self._save_scores()
        logger.info("%s wins; score X=%d O=%d", symbol, self.score[Symbol.X], self.score[Symbol.O])

    def reset(self) -> None:
        self.board = [EMPTY] * BOARD_SIZE
        self.turn = Symbol.X
        self.active = True
        self.outcome = ONGOING
        self.computer_pending = False
        self.last_move = None
        self._notify()

    def reset_scores(self) -> None:
        with _SCORE_LOCK:
            for symbol, key in SCORE_KEYS.items():
                self.score[symbol] = 0
                self.store.delete(key)
        logger.info("Scores reset")
        self._notify()

    # ---- orchestration used by the UI ----

    def select_mode(self, mode: Mode) -> None:
        self.mode = Mode(mode)
        logger.info("New game in mode %s", self.mode.name)
        self.reset()

    def back_to_menu(self) -> None:
        self.mode = None
        self.board = [EMPTY] * BOARD_SIZE
        self.turn = Symbol.X
        self.outcome = ONGOING
        self.last_move = None
        self.active = False
        self.computer_pending = False
        self._notify()

    def submit_move(self, index: int) -> MoveResult:
        """Play ``index`` for the side to move and advance the game."""
        try:
            self.apply_move(index, self.turn)
        except InvalidMove as exc:
            logger.debug("Rejected move %r: %s", index, exc)
            raise
        result = self._settle()
        if (
            not result.is_terminal
            and self.mode is Mode.HUMAN_VS_COMPUTER
            and self.turn is COMPUTER_SYMBOL
        ):
            # Block human input until the delayed reply lands.
            self.active = False
            self.computer_pending = True
        self._notify()
        return result

    def play_computer_move(self, ai: "MinimaxAI") -> MoveResult:
        """Apply the computer's reply that ``submit_move`` left pending."""
        if not self.computer_pending:
            raise InvalidMove("No computer move is pending")
        index = ai.choose(self)
        self.computer_pending = False
        self.active = True
        self.apply_move(index, ai.player)
        result = self._settle()
        self._notify()
        return result

    def _settle(self) -> MoveResult:
        result = self.check_terminal()
        self.outcome = result
        if result.is_win:
            self.active = False
            self.record_win(result.winner)
        elif result.is_draw:
            self.active = False
            logger.info("Game drawn")
        else:
            self.switch_turn()
        return result

    # ---- observers ----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for snapshots; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def refresh_scores(self) -> Dict[Symbol, int]:
        with _SCORE_LOCK:
            self.score = load_scores(self.store)
        return self.score

    def snapshot(self) -> GameSnapshot:
        scores = self.refresh_scores()
        return GameSnapshot(
            board=tuple(self.board),
            turn=self.turn,
            mode=self.mode,
            active=self.active,
            scores=tuple((s, scores[s]) for s in (Symbol.X, Symbol.O)),
            outcome=self.outcome,
            computer_pending=self.computer_pending,
        )

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)

    def _save_scores(self) -> None:
        for symbol, key in SCORE_KEYS.items():
            self.store.save(key, str(self.score[symbol]))
