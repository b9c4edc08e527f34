from datetime import datetime, timezone

import pytest

from pick3.app_state import AppStateManager
from pick3.controller import GameController
from pick3.feed import FeedError, LiveFeed, ScheduledGame, StatsFeed
from pick3.history import HistoryManager
from pick3.storage import MemoryStore

TEAM_ID = 142
# 2025-08-31 12:00 in Minneapolis; first pitch below is 18:10 local
NOW = datetime(2025, 8, 31, 17, 0, tzinfo=timezone.utc)
FIRST_PITCH = "2025-08-31T23:10:00Z"


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeFeed(StatsFeed):
    """StatsFeed that serves canned payloads instead of calling the API."""

    def __init__(self):
        super().__init__(base_url="http://statsapi.invalid/api")
        self.schedules = {}
        self.live_payloads = {}
        self.fail = False
        self.schedule_calls = []
        self.live_calls = []

    def get_schedule(self, on_date, team_id=None):
        self.schedule_calls.append((on_date, team_id))
        if self.fail:
            raise FeedError("feed unavailable")
        return [ScheduledGame.from_json(g) for g in self.schedules.get(on_date, [])]

    def get_live_feed(self, game_pk):
        self.live_calls.append(game_pk)
        if self.fail:
            raise FeedError("Live feed HTTP 503")
        return LiveFeed.from_json(self.live_payloads.get(game_pk, {}))


def schedule_game(game_pk=776001, game_date=FIRST_PITCH, state="Preview", home_id=TEAM_ID,
                  home_name="Minnesota Twins", away_id=114, away_name="Cleveland Guardians"):
    return {
        "gamePk": game_pk,
        "gameDate": game_date,
        "status": {"abstractGameState": state},
        "teams": {
            "home": {"team": {"id": home_id, "name": home_name}},
            "away": {"team": {"id": away_id, "name": away_name}},
        },
    }


def batting(**stats):
    return {
        "hits": 0, "doubles": 0, "triples": 0, "homeRuns": 0, "baseOnBalls": 0,
        "strikeOuts": 0, "groundIntoDoublePlay": 0, "rbi": 0, "runs": 0, **stats,
    }


def live_payload(state="Live", home_players=None, batting_order=None, home_runs=2, away_runs=1,
                 inning="3rd", inning_state="Top"):
    players = {}
    for person_id, (name, stats) in (home_players or {}).items():
        players[f"ID{person_id}"] = {
            "person": {"id": person_id, "fullName": name},
            "stats": {"batting": stats},
        }
    return {
        "gameData": {"status": {"abstractGameState": state}},
        "liveData": {
            "linescore": {
                "currentInningOrdinal": inning,
                "inningState": inning_state,
                "teams": {"home": {"runs": home_runs}, "away": {"runs": away_runs}},
            },
            "boxscore": {
                "teams": {
                    "home": {"players": players, "battingOrder": batting_order or list(players_ids(players))},
                    "away": {"players": {}, "battingOrder": []},
                }
            },
            "plays": {"allPlays": [{"matchup": {"batter": {"id": pid}}} for pid in players_ids(players)]},
        },
    }


def players_ids(players):
    return [entry["person"]["id"] for entry in players.values()]


NINE_BATTERS = {
    600000 + i: (f"Hitter {i}", batting()) for i in range(1, 10)
}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def feed():
    fake = FakeFeed()
    fake.schedules[NOW.date()] = [schedule_game()]
    return fake


@pytest.fixture
def app_state(store, feed, clock):
    return AppStateManager(store, feed, team_id=TEAM_ID, clock=clock)


@pytest.fixture
def history(store, clock):
    return HistoryManager(store, clock=clock)


@pytest.fixture
def controller(feed, app_state, history, clock):
    return GameController(
        feed=feed,
        app_state=app_state,
        history=history,
        team_id=TEAM_ID,
        clock=clock,
        background=False,
    )
