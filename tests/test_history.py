import json

import pytest

from pick3.history import compute_stats
from pick3.models import (
    Batter,
    FinalScore,
    HistoricalGame,
    HistoricalPick,
    HistoricalPlayer,
    LineupInfo,
    Player,
    PlayerPickResult,
    ScoreBreakdown,
)
from pick3.storage import HISTORY_KEY

BATTERS = [
    Batter(1, "Byron Buxton", 621439),
    Batter(2, "Carlos Correa", 553869),
    Batter(3, "Royce Lewis", 668904),
]


def make_player(points=(60, -5, 100), score=None):
    results = [
        PlayerPickResult(batter_id=batter_id, points=p, base_points=p, boost_percent=0)
        for batter_id, p in zip((1, 2, 3), points)
    ]
    results[0].breakdown = ScoreBreakdown(singles=1, hr_solo=1)
    results[0].boost_percent = 20
    return Player(picks=[1, 2, 3], results=results, score=sum(points) if score is None else score)


def lineup(game_pk=776001, game_date="2025-08-31T23:10:00Z", opponent="Cleveland Guardians"):
    return LineupInfo(game_pk=game_pk, opponent=opponent, side="home", game_date=game_date)


def test_load_empty_history(history):
    data = history.load()
    assert data.games == []
    assert data.stats.total_games == 0
    assert data.stats.average_score == 0
    assert data.stats.best_score == 0


def test_load_corrupted_history(history, store):
    store.set_item(HISTORY_KEY, "invalid json")
    assert history.load().games == []
    store.set_item(HISTORY_KEY, json.dumps({"games": "nope"}))
    assert history.load().games == []
    store.set_item(HISTORY_KEY, json.dumps({"stats": {}}))
    assert history.load().games == []


def test_add_game_builds_historical_record(history):
    game = history.add_game([make_player()], BATTERS, lineup(), "Final", FinalScore(twins=5, opponent=3))

    assert game.id == "776001_2025-08-31"
    stored = history.load()
    assert len(stored.games) == 1
    saved = stored.games[0]
    assert saved.date == "2025-08-31"
    assert saved.final_score == FinalScore(twins=5, opponent=3)
    assert saved.game_status == "Final"
    picks = saved.players[0].picks
    assert [p.batter_name for p in picks] == ["Byron Buxton", "Carlos Correa", "Royce Lewis"]
    assert picks[0].mlb_id == 621439
    assert picks[0].boost == 20
    assert picks[0].breakdown.hr_solo == 1
    assert saved.players[0].total_score == 155


def test_unresolved_batter_gets_fallback_name(history):
    player = Player(picks=[7], results=[PlayerPickResult(batter_id=7, points=10, base_points=10)], score=10)
    history.add_game([player], BATTERS, lineup(), "Final")
    pick = history.load().games[0].players[0].picks[0]
    assert pick.batter_name == "Batter 7"
    assert pick.mlb_id is None


def test_game_id_falls_back_to_today(history):
    game = history.add_game([make_player()], BATTERS, lineup(game_date=None), "Final")
    assert game.id == "776001_2025-08-31"


def test_add_game_is_idempotent_by_id(history):
    history.add_game([make_player(score=50)], BATTERS, lineup(), "Final")
    history.add_game([make_player(score=90)], BATTERS, lineup(), "Completed")

    data = history.load()
    assert len(data.games) == 1
    assert data.games[0].players[0].total_score == 90
    assert data.games[0].game_status == "Completed"
    assert data.stats.total_games == 1
    assert data.stats.best_score == 90


def test_games_sorted_newest_first(history):
    history.add_game([make_player()], BATTERS, lineup(1, "2025-08-29T18:10:00Z"), "Final")
    history.add_game([make_player()], BATTERS, lineup(3, "2025-08-31T18:10:00Z"), "Final")
    history.add_game([make_player()], BATTERS, lineup(2, "2025-08-30T18:10:00Z"), "Final")

    assert [g.game_pk for g in history.get_recent()] == [3, 2, 1]
    assert [g.game_pk for g in history.get_recent(limit=2)] == [3, 2]


def test_average_score_across_games(history):
    history.add_game([make_player(score=155)], BATTERS, lineup(1, "2025-08-30T18:10:00Z"), "Final")
    history.add_game([make_player(score=75)], BATTERS, lineup(2, "2025-08-31T18:10:00Z"), "Final")

    stats = history.get_stats()
    assert stats.total_games == 2
    assert stats.average_score == 115
    assert stats.best_score == 155
    assert stats.best_game == "1_2025-08-30"


def test_average_rounds_to_one_decimal():
    games = [
        HistoricalGame(id=f"g{i}", date="2025-08-31", game_pk=i, opponent="x", side="home", game_status="Final",
                       players=[HistoricalPlayer(name="You", total_score=score)])
        for i, score in enumerate((10, 10, 11))
    ]
    assert compute_stats(games).average_score == 10.3


def test_best_game_keeps_first_game_reaching_the_max():
    games = [
        HistoricalGame(id=game_id, date="2025-08-31", game_pk=1, opponent="x", side="home", game_status="Final",
                       players=[HistoricalPlayer(name="You", total_score=80)])
        for game_id in ("first", "second")
    ]
    stats = compute_stats(games)
    assert stats.best_score == 80
    assert stats.best_game == "first"


def test_negative_totals_leave_best_score_at_zero():
    games = [HistoricalGame(id="g", date="2025-08-31", game_pk=1, opponent="x", side="home", game_status="Final",
                            players=[HistoricalPlayer(name="You", total_score=-15)])]
    stats = compute_stats(games)
    assert stats.best_score == 0
    assert stats.best_game is None
    assert stats.average_score == -15


def test_favorite_player_ties_go_to_first_seen():
    def pick(name):
        return HistoricalPick(batter_id=1, batter_name=name, points=0, base_points=0, boost=0)

    games = [
        HistoricalGame(id="a", date="2025-08-31", game_pk=1, opponent="x", side="home", game_status="Final",
                       players=[HistoricalPlayer(name="You", picks=[pick("Correa"), pick("Buxton")])]),
        HistoricalGame(id="b", date="2025-08-30", game_pk=2, opponent="x", side="home", game_status="Final",
                       players=[HistoricalPlayer(name="You", picks=[pick("Buxton"), pick("Correa")])]),
    ]
    assert compute_stats(games).favorite_player == "Correa"

    games[1].players[0].picks.append(pick("Buxton"))
    assert compute_stats(games).favorite_player == "Buxton"


def test_clear_history(history, store):
    history.add_game([make_player()], BATTERS, lineup(), "Final")
    history.clear()
    history.clear()
    assert store.get_item(HISTORY_KEY) is None
    assert history.get_recent() == []


def test_add_game_never_raises(history, store, monkeypatch):
    def broken_load():
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(history, "load", broken_load)
    assert history.add_game([make_player()], BATTERS, lineup(), "Final") is None


def _games_with_totals(totals):
    return [
        HistoricalGame(id=f"g{i}", date="2025-08-31", game_pk=i, opponent="x", side="home", game_status="Final",
                       players=[HistoricalPlayer(name="You", total_score=score)])
        for i, score in enumerate(totals)
    ]


@pytest.mark.parametrize(
    "totals, expected",
    [
        ([1, 0, 0, 0], 0.3),
        ([7] + [0] * 19, 0.4),
        ([-1, 0, 0, 0], -0.2),
    ],
)
def test_average_rounds_half_up(totals, expected):
    assert compute_stats(_games_with_totals(totals)).average_score == expected
