import pytest
from fastapi.testclient import TestClient

import main
from game import GameSession
from schemas import LoadLevelRequest, NewGameRequest
from scores import DailyScoreStore, ScoreStore
from settings import settings


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(main, "session", GameSession())
    monkeypatch.setattr(main, "score_store", ScoreStore(tmp_path / "scores.json"))
    monkeypatch.setattr(main, "daily_store", DailyScoreStore(tmp_path / "daily.json"))
    return TestClient(main.app)


def _load(client, glasses, obstacles=None):
    return client.post("/game/load", json={
        "glasses": glasses,
        "active": len(glasses),
        "obstacles": obstacles or {},
    }).json()


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_state_before_any_game(client):
    assert client.get("/game/state").json() == {"loaded": False}


def test_new_game_with_seed_is_repeatable(client):
    first = client.post("/game/new", json={"tier": 1, "seed": 42}).json()
    second = client.post("/game/new", json={"tier": 1, "seed": 42}).json()

    assert first["success"]
    assert first["state"]["glasses"] == second["state"]["glasses"]
    assert first["state"]["active"] == 5
    assert first["state"]["won"] is False


def test_new_game_with_custom_layout(client):
    result = client.post("/game/new", json={"active": 6, "empty": 2, "obstacles": 1, "seed": 3}).json()

    assert result["success"]
    assert result["state"]["active"] == 6


def test_new_game_rejects_bad_layout(client):
    result = client.post("/game/new", json={"active": 4, "empty": 4}).json()

    assert result["success"] is False


def test_new_game_rejects_unknown_tier(client):
    assert client.post("/game/new", json={"tier": 9}).json()["success"] is False


def test_daily_game(client):
    result = client.post("/game/new", json={"tier": 2, "daily": "20240131"}).json()

    assert result["state"]["seed"] == 20240131
    assert result["state"]["daily"] == "20240131"


def test_click_and_pour_flow(client):
    _load(client, [["b", "a"], ["a"], []])

    selected = client.post("/game/click", json={"index": 0}).json()
    assert selected["success"]
    assert selected["state"]["selected"] == 0

    poured = client.post("/game/click", json={"index": 1}).json()
    assert poured["success"]
    assert poured["state"]["glasses"][1] == ["a", "a"]
    assert poured["state"]["moves"] == 1


def test_invalid_pour_reports_message(client):
    _load(client, [["a"], ["b"]])

    result = client.post("/game/pour", json={"src": 0, "dst": 1}).json()

    assert result["success"] is False
    assert "same fruit" in result["message"]
    assert result["state"]["state"] == "idle"


def test_winning_pour(client):
    _load(client, [["a", "a", "a"], ["a"], []])

    result = client.post("/game/pour", json={"src": 1, "dst": 0}).json()

    assert result["won"] is True
    assert result["state"]["won"] is True
    assert result["state"]["score"] is not None


def test_load_hides_covered_fruits(client):
    result = _load(client, [["a", "b"], []], {"0": {"kind": "full", "remaining": 1}})

    assert result["state"]["glasses"][0] == [None, None]


def test_load_rejects_cover_on_empty_glass(client):
    result = _load(client, [["a", "b"], []], {"1": {"kind": "full", "remaining": 1}})

    assert result["success"] is False


def test_load_rejects_overfull_glass(client):
    result = _load(client, [["a"] * 5, []])

    assert result["success"] is False


def test_reset(client):
    _load(client, [["b", "a"], []])
    client.post("/game/pour", json={"src": 0, "dst": 1})

    result = client.post("/game/reset").json()

    assert result["state"]["glasses"][:2] == [["b", "a"], []]
    assert result["state"]["moves"] == 0


def test_reset_without_game(client):
    assert client.post("/game/reset").json()["success"] is False


def test_global_scores(client):
    assert client.post("/scores", json={"name": "ann", "score": 40, "diff": "hard"}).json() == {"ok": True}
    client.post("/scores", json={"name": "bob", "score": 90})

    scores = client.get("/scores").json()
    assert [s["name"] for s in scores] == ["bob", "ann"]
    assert scores[0]["difficulty"] == "normal"


def test_global_score_requires_positive_score(client):
    result = client.post("/scores", json={"name": "ann"}).json()

    assert result == {"ok": False, "error": "Missing score"}


def test_daily_score_without_date_is_rejected(client):
    result = client.post("/scores/daily", json={"name": "ann", "score": 40}).json()

    assert result == {"ok": False, "error": "Missing score or date"}
    assert not main.daily_store.file.path.exists()


def test_daily_scores_by_date(client):
    client.post("/scores/daily", json={"name": "ann", "score": 40, "date": "20240131"})

    assert len(client.get("/scores/daily", params={"date": "20240131"}).json()) == 1
    assert client.get("/scores/daily", params={"date": "20240201"}).json() == []
    assert client.get("/scores/daily").json() == []


def test_malformed_score_body(client):
    result = client.post("/scores", content=b"not json", headers={"content-type": "application/json"}).json()

    assert result == {"ok": False, "error": "Invalid request body"}


def test_load_coerces_numeric_cover_values(client):
    result = _load(client, [["a", "b"], ["b"], []], {"0": {"kind": "full", "remaining": "2"}})
    assert result["success"]

    poured = client.post("/game/pour", json={"src": 0, "dst": 1}).json()

    assert poured["success"]
    assert poured["state"]["obstacles"]["0"] == {"kind": "full", "remaining": 1}


@pytest.mark.parametrize("cover", [
    {"kind": "partial", "positions": 5},
    {"kind": "full", "remaining": "two"},
    {"kind": "full", "remaining": 0},
    {"kind": "partial", "positions": []},
    {"kind": "vines"},
])
def test_load_rejects_malformed_covers(client, cover):
    response = client.post("/game/load", json={"glasses": [["a", "b"], []], "active": 2, "obstacles": {"0": cover}})

    assert response.status_code == 422
    assert client.get("/game/state").json() == {"loaded": False}


def test_load_rejects_cover_positions_above_the_stack(client):
    result = _load(client, [["a", "b"], []], {"0": {"kind": "partial", "positions": [0, 3]}})

    assert result["success"] is False


def test_load_rejects_solved_layout(client):
    result = _load(client, [["a"] * 4, ["b"] * 4, []])

    assert result["success"] is False
    assert client.get("/game/state").json() == {"loaded": False}


def test_new_game_accepts_matching_types(client):
    result = client.post("/game/new", json={"active": 5, "empty": 2, "types": 3, "seed": 1}).json()

    assert result["success"]
    assert result["state"]["active"] == 5


def test_new_game_rejects_mismatched_types(client):
    result = client.post("/game/new", json={"active": 6, "empty": 2, "types": 3}).json()

    assert result["success"] is False
    assert "types" in result["message"]


def test_default_tier_comes_from_settings():
    assert NewGameRequest().tier == settings.DEFAULT_TIER
    assert LoadLevelRequest(glasses=[], active=0).tier == settings.DEFAULT_TIER
