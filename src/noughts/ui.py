"""FastAPI-powered web UI for playing noughts and crosses in the browser."""

from __future__ import annotations

import logging
import os
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from .ai import MinimaxAI
from .game import COMPUTER_SYMBOL, GameSnapshot, GameState, InvalidMove, Mode, load_scores
from .storage import JsonFileScoreStore, MemoryScoreStore, ScoreStore

logger = logging.getLogger(__name__)


def _default_store() -> ScoreStore:
    path = os.environ.get("NOUGHTS_SCORES_PATH")
    if path:
        return JsonFileScoreStore(path)
    return MemoryScoreStore()


@dataclass
class GameSession:
    """Container for one game, its optional computer opponent and move log."""

    state: GameState
    ai: Optional[MinimaxAI]
    move_log: List[Dict[str, int | str]] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


SESSIONS: Dict[str, GameSession] = {}
SCORE_STORE: ScoreStore = _default_store()
app = FastAPI(title="Noughts", description="Noughts and crosses played in the browser")

AI_THINK_DELAY: float = 0.4


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    mode: Mode = Field(default=Mode.HUMAN_VS_COMPUTER, description="'two' or 'ai'")


class MoveRequest(BaseModel):
    """Request payload for claiming a cell."""

    index: int = Field(ge=0, le=8)


def _log_outcome(snapshot: GameSnapshot) -> None:
    if snapshot.outcome.is_terminal:
        logger.info("Game over: %s", snapshot.status)


def _create_session(mode: Mode) -> tuple[str, GameSession]:
    state = GameState(store=SCORE_STORE)
    ai = MinimaxAI(player=COMPUTER_SYMBOL) if mode is Mode.HUMAN_VS_COMPUTER else None
    session = GameSession(state=state, ai=ai)
    state.subscribe(_log_outcome)
    state.select_mode(mode)
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _run_ai_turn(game_id: str) -> None:
    session = SESSIONS.get(game_id)
    if not session or not session.ai:
        return

    time.sleep(max(0.0, AI_THINK_DELAY))

    with session.lock:
        state = session.state
        # A reset or menu request may have landed during the pause.
        if not state.computer_pending:
            return
        result = state.play_computer_move(session.ai)
        index = state.last_move
        session.move_log.append({"player": session.ai.player.value, "index": index})
        logger.debug("Computer played %d in %s (%s)", index, game_id, result.kind)


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        snap = session.state.snapshot()
        outcome = snap.outcome
        state: Dict[str, object] = {
            "id": game_id,
            "mode": snap.mode.value if snap.mode else None,
            "board": list(snap.board),
            "turn": snap.turn.value,
            "active": snap.active,
            "outcome": outcome.kind,
            "winner": outcome.winner.value if outcome.winner else None,
            "pattern": list(outcome.pattern) if outcome.pattern else None,
            "status": snap.status,
            "scores": {s.value: n for s, n in snap.scores},
            "computerPending": snap.computer_pending,
            "moveLog": list(session.move_log),
        }
        return state


def _apply_player_move(
    game_id: str,
    session: GameSession,
    index: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    with session.lock:
        state = session.state
        if state.computer_pending:
            raise HTTPException(status_code=400, detail="Computer is completing its move")

        player = state.turn
        try:
            state.submit_move(index)
        except InvalidMove as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        session.move_log.append({"player": player.value, "index": index})
        should_schedule_ai = state.computer_pending

    if should_schedule_ai and background_tasks is not None:
        background_tasks.add_task(_run_ai_turn, game_id)


@app.post("/api/game")
def create_game(request: NewGameRequest) -> Dict[str, object]:
    game_id, session = _create_session(request.mode)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(
    game_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    _apply_player_move(game_id, session, request.index, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/reset")
def reset_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        if session.state.mode is None:
            raise HTTPException(status_code=400, detail="Choose a game mode first")
        session.state.reset()
        session.move_log.clear()
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/menu")
def back_to_menu(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        session.state.back_to_menu()
    # Choosing a mode again starts a new session.
    SESSIONS.pop(game_id, None)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/scores/reset")
def reset_scores(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        session.state.reset_scores()
    return _serialize_session(game_id, session)


@app.get("/api/scores")
def get_scores() -> Dict[str, int]:
    return {symbol.value: value for symbol, value in load_scores(SCORE_STORE).items()}


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>Noughts</title>
    <style>
      body {
        margin: 0;
        min-height: 100vh;
        display: flex;
        justify-content: center;
        align-items: center;
        background: #0b1220;
        color: #dbe4ff;
        font-family: system-ui, -apple-system, \"Segoe UI\", sans-serif;
      }
      main {
        width: min(420px, 100%);
        text-align: center;
      }
      .hidden {
        display: none;
      }
      #board {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 0.5rem;
        margin: 1rem 0;
      }
      #board button {
        aspect-ratio: 1;
        font-size: 3rem;
        font-weight: 700;
        border-radius: 12px;
        border: 1px solid #1e3a8a;
        background: #111a2e;
        color: #60a5fa;
      }
      #board button.win {
        background: #1d4ed8;
        color: #fff;
      }
      #board.draw button {
        opacity: 0.5;
      }
      .scores {
        display: flex;
        justify-content: space-around;
      }
    </style>
  </head>
  <body>
    <main>
      <h1>Noughts</h1>
      <section id=\"modeScreen\">
        <button data-mode=\"ai\">Play vs Computer</button>
        <button data-mode=\"two\">Two Players</button>
      </section>
      <section id=\"gameScreen\" class=\"hidden\">
        <p id=\"status\"></p>
        <div id=\"board\"></div>
        <div class=\"scores\">
          <span>X: <strong id=\"scoreX\">0</strong></span>
          <span>O: <strong id=\"scoreO\">0</strong></span>
        </div>
        <p>
          <button id=\"reset\">New Game</button>
          <button id=\"resetScores\">Reset Scores</button>
          <button id=\"back\">Back</button>
        </p>
      </section>
    </main>
    <script>
      const boardEl = document.getElementById('board');
      const statusEl = document.getElementById('status');
      const modeScreen = document.getElementById('modeScreen');
      const gameScreen = document.getElementById('gameScreen');
      let gameId = null;

      for (let i = 0; i < 9; i++) {
        const cell = document.createElement('button');
        cell.dataset.index = i;
        boardEl.appendChild(cell);
      }

      async function call(method, url, body) {
        const response = await fetch(url, {
          method,
          headers: { 'Content-Type': 'application/json' },
          body: body ? JSON.stringify(body) : undefined,
        });
        const payload = await response.json();
        if (!response.ok) {
          throw new Error(payload.detail || 'Request failed');
        }
        return payload;
      }

      function render(state) {
        const pattern = state.pattern || [];
        boardEl.querySelectorAll('button').forEach((cell, i) => {
          cell.textContent = state.board[i];
          cell.classList.toggle('win', pattern.includes(i));
        });
        boardEl.classList.toggle('draw', state.outcome === 'draw');
        statusEl.textContent = state.status;
        document.getElementById('scoreX').textContent = state.scores.X;
        document.getElementById('scoreO').textContent = state.scores.O;
        if (state.computerPending) {
          setTimeout(refresh, 450);
        }
      }

      async function refresh() {
        render(await call('GET', `/api/game/${gameId}`));
      }

      modeScreen.addEventListener('click', async (event) => {
        const mode = event.target.dataset.mode;
        if (!mode) return;
        const state = await call('POST', '/api/game', { mode });
        gameId = state.id;
        modeScreen.classList.add('hidden');
        gameScreen.classList.remove('hidden');
        render(state);
      });

      boardEl.addEventListener('click', async (event) => {
        const index = event.target.dataset.index;
        if (index === undefined || !gameId) return;
        try {
          render(await call('POST', `/api/game/${gameId}/move`, { index: Number(index) }));
        } catch (err) {
          statusEl.textContent = err.message;
        }
      });

      document.getElementById('reset').addEventListener('click', async () => {
        render(await call('POST', `/api/game/${gameId}/reset`));
      });
      document.getElementById('resetScores').addEventListener('click', async () => {
        render(await call('POST', `/api/game/${gameId}/scores/reset`));
      });
      document.getElementById('back').addEventListener('click', async () => {
        await call('POST', `/api/game/${gameId}/menu`);
        gameId = null;
        gameScreen.classList.add('hidden');
        modeScreen.classList.remove('hidden');
      });
    </script>
  </body>
</html>
"""
