import copy

import pytest

from board import LevelConfig, Move
from game import (
    MSG_ALREADY_WON,
    MSG_EMPTY,
    MSG_FULL,
    MSG_MISMATCH,
    MSG_PICK_TARGET,
    MSG_WON,
    GameSession,
    daily_seed,
    score,
)
from obstacles import FullCover, PartialCover
from rng import SeededRandom
from test_helpers import _make_board


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _session(*stacks, obstacles=None, clock=None):
    session = GameSession(clock=clock or FakeClock())
    session.load(_make_board(*stacks), obstacles)
    return session


def test_click_selects_then_cancels():
    session = _session(["a", "b"], [])

    result = session.click(0)
    assert result.ok
    assert result.message == MSG_PICK_TARGET
    assert session.state == "selected"
    assert session.selected == 0

    session.click(0)
    assert session.state == "idle"
    assert session.selected is None


def test_click_on_empty_glass_does_not_select():
    session = _session(["a"], [])

    result = session.click(1)

    assert not result.ok
    assert session.state == "idle"


def test_click_outside_the_level_is_ignored():
    session = _session(["a"], [])

    assert not session.click(7).ok
    assert session.state == "idle"


def test_second_click_pours_the_top_run():
    session = _session(["b", "a", "a"], ["a"], [])

    session.click(0)
    result = session.click(1)

    assert result.ok
    assert result.move == Move(0, 1, 2)
    assert session.board.glasses[0] == ["b"]
    assert session.board.glasses[1] == ["a", "a", "a"]
    assert session.moves == 1
    assert session.state == "idle"


def test_pour_is_capped_by_free_space():
    session = _session(["a", "a", "a"], ["b", "b", "a"], [])

    result = session.pour(0, 1)

    assert result.move.count == 1
    assert session.board.glasses[0] == ["a", "a"]


def test_pour_into_full_glass_is_rejected():
    session = _session(["a"], ["a", "b", "b", "a"])
    session.click(0)

    result = session.click(1)

    assert not result.ok
    assert result.message == MSG_FULL
    assert session.state == "idle"
    assert session.moves == 0


def test_pour_onto_other_fruit_is_rejected():
    session = _session(["a"], ["b"])
    session.click(0)

    result = session.click(1)

    assert not result.ok
    assert result.message == MSG_MISMATCH
    assert session.message == MSG_MISMATCH
    assert session.state == "idle"
    assert session.board.glasses[:2] == [["a"], ["b"]]


def test_pour_from_empty_glass_is_rejected():
    session = _session(["a"], [])

    result = session.pour(1, 0)

    assert not result.ok
    assert result.message == MSG_EMPTY


def test_pour_onto_itself_is_rejected():
    session = _session(["a"], [])

    assert not session.pour(0, 0).ok


def test_win_clears_covers_and_scores():
    clock = FakeClock(100.0)
    session = _session(["a", "a", "a"], ["a"], ["b", "b", "b", "b"], obstacles={0: FullCover(4)}, clock=clock)
    clock.now = 130.0

    result = session.pour(1, 0)

    assert result.won
    assert session.won
    assert session.state == "won"
    assert session.message == MSG_WON
    assert session.obstacles == {}
    # tier 2: 1000 - 1 * 10 - 30 * 2
    assert session.score == 930


def test_no_moves_after_win():
    session = _session(["a", "a", "a"], ["a"], [])
    session.pour(1, 0)
    board = copy.deepcopy(session.board.glasses)

    assert session.click(0).message == MSG_ALREADY_WON
    assert not session.pour(0, 2).ok
    assert session.board.glasses == board
    assert session.won
    assert session.moves == 1


def test_score_formula():
    assert score(10, 30.0, 1000, 10, 2) == 840
    assert score(500, 0, 1000, 10, 2) == 0
    assert score(0, 0.4, 100, 10, 1) == 100


def test_full_cover_cleared_after_two_single_pours():
    session = _session(["a", "b", "c"], [], [], ["d"] * 4, obstacles={0: FullCover(2)})

    session.pour(0, 1)
    assert session.obstacles[0].remaining == 1
    session.pour(0, 2)

    assert 0 not in session.obstacles


def test_full_cover_cleared_after_one_double_pour():
    session = _session(["a", "b", "b"], [], obstacles={0: FullCover(2)})

    session.pour(0, 1)

    assert 0 not in session.obstacles


def test_partial_cover_cleared_when_top_recedes():
    session = _session(["a", "b", "b"], [], obstacles={0: PartialCover({0, 1})})

    session.pour(0, 1)

    assert 0 not in session.obstacles


def test_partial_cover_only_loses_exposed_slots():
    session = _session(["a", "c", "b", "b"], [], obstacles={0: PartialCover({0, 1, 2})})

    session.pour(0, 1)

    assert session.obstacles[0].positions == {0}


def test_rejected_pour_leaves_covers_alone():
    session = _session(["a", "b"], ["c"], obstacles={0: FullCover(2)})

    session.pour(0, 1)

    assert session.obstacles[0] == FullCover(2)


def test_snapshot_hides_covered_fruits():
    session = _session(["a", "b", "c"], [], obstacles={0: PartialCover({0, 1})})

    state = session.snapshot()

    assert state["glasses"][0] == [None, None, "c"]
    assert state["obstacles"] == {"0": {"kind": "partial", "positions": [0, 1]}}
    assert state["moves"] == 0
    assert state["state"] == "idle"


def test_reset_restores_the_starting_layout():
    session = _session(["a", "b", "b"], [], obstacles={0: FullCover(2)})
    session.pour(0, 1)

    session.reset()

    assert session.board.glasses[:2] == [["a", "b", "b"], []]
    assert session.obstacles == {0: FullCover(2)}
    assert session.moves == 0


def test_new_game_is_deterministic_with_seed():
    a = GameSession(clock=FakeClock())
    b = GameSession(clock=FakeClock())
    config = LevelConfig(active=6, empty=2, types=4, obstacles=2)

    a.new_game(config, seed=42)
    b.new_game(config, seed=42)

    assert a.board == b.board
    assert a.snapshot()["obstacles"] == b.snapshot()["obstacles"]
    assert not a.board.is_solved()


def test_cover_seed_only_changes_covers():
    config = LevelConfig(active=6, empty=2, types=4, obstacles=3)
    a = GameSession(clock=FakeClock())
    b = GameSession(clock=FakeClock())

    a.new_game(config, seed=42, cover_seed=1)
    b.new_game(config, seed=42, cover_seed=1)

    assert a.board == b.board
    assert a.obstacles == b.obstacles

    b.new_game(config, seed=42, cover_seed=2)
    assert a.board == b.board


def test_new_game_never_covers_complete_or_empty_glasses():
    session = GameSession(clock=FakeClock())
    for seed in range(5):
        session.new_game(LevelConfig(active=6, empty=2, types=4, obstacles=4), seed=seed)
        for index in session.obstacles:
            stack = session.board.glasses[index]
            assert len(stack) > 1
            assert not (len(stack) == 4 and len(set(stack)) == 1)


def test_daily_seed():
    assert daily_seed("20240131") == 20240131
    with pytest.raises(ValueError):
        daily_seed("2024-01-31")


def test_daily_games_match():
    a = GameSession(clock=FakeClock())
    b = GameSession(clock=FakeClock())

    a.new_game(tier=1, daily="20240131")
    b.new_game(tier=1, daily="20240131")

    assert a.board == b.board
    assert a.seed == 20240131


def test_random_play_never_overflows_and_covers_only_shrink():
    session = GameSession(clock=FakeClock())
    session.new_game(LevelConfig(active=6, empty=2, types=4, obstacles=3), seed=8)
    rng = SeededRandom(3)
    previous = copy.deepcopy(session.obstacles)

    for _ in range(400):
        session.click(rng.rand_int(0, session.board.active - 1))
        assert all(len(g) <= session.board.capacity for g in session.board.glasses)
        for index, cover in session.obstacles.items():
            before = previous.get(index)
            assert before is not None  # no new covers appear during play
            if isinstance(cover, FullCover):
                assert cover.remaining <= before.remaining
            else:
                assert cover.positions <= before.positions
        previous = copy.deepcopy(session.obstacles)


def test_greedy_lexicographic_play_stops_within_bound():
    session = GameSession(clock=FakeClock())
    session.new_game(LevelConfig(active=6, empty=2, types=4), tier=2, seed=42)
    items = sum(len(g) for g in session.board.glasses)
    bound = items ** 3

    iterations = 0
    while iterations < bound and not session.won:
        moves = session.board.legal_moves(full_pours=True)
        if not moves:
            break
        move = min(moves, key=lambda m: (m.src, m.dst))
        assert session.pour(move.src, move.dst).ok
        iterations += 1

    assert iterations <= bound
    assert all(len(g) <= session.board.capacity for g in session.board.glasses)


def test_load_refuses_a_solved_layout():
    session = GameSession(clock=FakeClock())

    with pytest.raises(ValueError):
        session.load(_make_board(["a"] * 4, ["b"] * 4, []))

    assert session.board is None
    assert session.pour(0, 2).ok is False
