"""Tests for the FastAPI noughts interface."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from noughts import ui
from noughts.storage import MemoryScoreStore
from noughts.ui import app


client = TestClient(app)
ui.AI_THINK_DELAY = 0.0


@pytest.fixture(autouse=True)
def fresh_store():
    ui.SCORE_STORE = MemoryScoreStore()
    yield ui.SCORE_STORE


def _new_game(mode: str) -> dict:
    response = client.post("/api/game", json={"mode": mode})
    assert response.status_code == 200
    return response.json()


def test_create_game_and_computer_reply():
    payload = _new_game("ai")
    assert payload["turn"] == "X"
    assert payload["active"] is True
    assert payload["status"] == "X's Turn"
    assert payload["board"] == [""] * 9

    game_id = payload["id"]
    move_response = client.post(f"/api/game/{game_id}/move", json={"index": 4})
    assert move_response.status_code == 200
    state = move_response.json()
    assert state["board"][4] == "X"
    assert state["turn"] == "O"
    assert state["computerPending"] is True
    assert state["active"] is False

    follow_up = client.get(f"/api/game/{game_id}")
    assert follow_up.status_code == 200
    final_state = follow_up.json()
    assert final_state["turn"] == "X"
    assert final_state["computerPending"] is False
    assert final_state["outcome"] == "ongoing"
    assert sum(1 for cell in final_state["board"] if cell) == 2
    assert final_state["moveLog"][-1] == {"player": "O", "index": 0}


def test_two_player_win_updates_scores(fresh_store):
    game_id = _new_game("two")["id"]
    for index in (0, 3, 1, 4):
        assert client.post(f"/api/game/{game_id}/move", json={"index": index}).status_code == 200
    state = client.post(f"/api/game/{game_id}/move", json={"index": 2}).json()
    assert state["outcome"] == "win"
    assert state["winner"] == "X"
    assert state["pattern"] == [0, 1, 2]
    assert state["status"] == "X Wins!"
    assert state["scores"] == {"X": 1, "O": 0}
    assert fresh_store.load("scoreX") == "1"
    assert client.get("/api/scores").json() == {"X": 1, "O": 0}

    blocked = client.post(f"/api/game/{game_id}/move", json={"index": 8})
    assert blocked.status_code == 400


def test_invalid_move_rejected():
    game_id = _new_game("two")["id"]
    assert client.post(f"/api/game/{game_id}/move", json={"index": 0}).status_code == 200

    duplicate = client.post(f"/api/game/{game_id}/move", json={"index": 0})
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"]


def test_out_of_range_index_rejected():
    game_id = _new_game("two")["id"]
    response = client.post(f"/api/game/{game_id}/move", json={"index": 9})
    assert response.status_code == 422


def test_rejects_unknown_mode():
    response = client.post("/api/game", json={"mode": "online"})
    assert response.status_code == 422


def test_reset_and_score_reset(fresh_store):
    fresh_store.save("scoreX", "3")
    fresh_store.save("scoreO", "2")
    game_id = _new_game("two")["id"]
    client.post(f"/api/game/{game_id}/move", json={"index": 0})

    state = client.post(f"/api/game/{game_id}/reset").json()
    assert state["board"] == [""] * 9
    assert state["scores"] == {"X": 3, "O": 2}
    assert state["moveLog"] == []

    state = client.post(f"/api/game/{game_id}/scores/reset").json()
    assert state["scores"] == {"X": 0, "O": 0}
    assert fresh_store.load("scoreX") is None
    assert fresh_store.load("scoreO") is None


def test_back_to_menu():
    game_id = _new_game("ai")["id"]
    state = client.post(f"/api/game/{game_id}/menu").json()
    assert state["mode"] is None
    assert state["active"] is False
    assert state["board"] == [""] * 9
    assert client.post(f"/api/game/{game_id}/reset").status_code == 404
    assert game_id not in ui.SESSIONS


def test_missing_game_returns_404():
    assert client.get("/api/game/missing").status_code == 404


def test_index_serves_html():
    response = client.get("/")
    assert response.status_code == 200
    assert "<title>Noughts</title>" in response.text


def _x_wins(game_id: str) -> dict:
    for index in (0, 3, 1, 4, 2):
        response = client.post(f"/api/game/{game_id}/move", json={"index": index})
        assert response.status_code == 200
    return response.json()


def test_wins_in_parallel_games_accumulate(fresh_store):
    first = _new_game("two")["id"]
    second = _new_game("two")["id"]

    _x_wins(first)
    state = _x_wins(second)

    assert state["scores"] == {"X": 2, "O": 0}
    assert client.get("/api/scores").json() == {"X": 2, "O": 0}
    assert client.get(f"/api/game/{first}").json()["scores"] == {"X": 2, "O": 0}


def test_score_reset_in_one_game_holds_for_others(fresh_store):
    fresh_store.save("scoreX", "3")
    fresh_store.save("scoreO", "2")
    first = _new_game("two")["id"]
    second = _new_game("two")["id"]

    client.post(f"/api/game/{first}/scores/reset")
    state = _x_wins(second)

    assert state["scores"] == {"X": 1, "O": 0}
    assert fresh_store.load("scoreX") == "1"
    assert fresh_store.load("scoreO") == "0"
