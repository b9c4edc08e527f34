from datetime import datetime, timedelta, timezone

from pick3.time_gate import is_drafting_allowed, is_score_viewing_allowed, parse_game_time

START = datetime(2025, 8, 31, 23, 10, tzinfo=timezone.utc)


def test_parse_game_time_accepts_z_suffix():
    assert parse_game_time("2025-08-31T23:10:00Z") == START


def test_parse_game_time_treats_naive_as_utc():
    assert parse_game_time("2025-08-31T23:10:00") == START


def test_parse_game_time_rejects_garbage():
    assert parse_game_time("not a date") is None
    assert parse_game_time("") is None
    assert parse_game_time(None) is None


def test_drafting_allowed_without_game_time():
    assert is_drafting_allowed(None, START)
    assert is_drafting_allowed("garbage", START)


def test_drafting_window_closes_five_minutes_after_first_pitch():
    game_date = "2025-08-31T23:10:00Z"
    assert is_drafting_allowed(game_date, START - timedelta(hours=2))
    assert is_drafting_allowed(game_date, START)
    assert is_drafting_allowed(game_date, START + timedelta(minutes=4, seconds=59))
    assert not is_drafting_allowed(game_date, START + timedelta(minutes=5))
    assert not is_drafting_allowed(game_date, START + timedelta(minutes=5, seconds=1))


def test_drafting_accepts_datetime_start():
    assert not is_drafting_allowed(START, START + timedelta(minutes=6))


def test_score_viewing_without_next_game():
    assert is_score_viewing_allowed(None, START)
    assert is_score_viewing_allowed("??", START)


def test_score_viewing_ends_ten_minutes_before_next_game():
    next_game = "2025-09-01T18:10:00Z"
    cutoff = datetime(2025, 9, 1, 18, 0, tzinfo=timezone.utc)
    assert is_score_viewing_allowed(next_game, cutoff - timedelta(seconds=1))
    assert not is_score_viewing_allowed(next_game, cutoff)
    assert not is_score_viewing_allowed(next_game, cutoff + timedelta(hours=1))
