import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

import requests

from . import settings
from .models import BATTERS_PER_LINEUP, Batter, LineupInfo
from .time_gate import parse_game_time

logger = logging.getLogger(__name__)


class FeedError(Exception):
    """The stats feed could not be reached or returned an unusable payload."""


class NoGameScheduled(LookupError):
    """The schedule was fetched successfully but lists no game."""


def _as_int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_dict(value) -> Dict:
    return value if isinstance(value, dict) else {}


def _as_list(value) -> List:
    return value if isinstance(value, list) else []


# ---------------------------------------------------------------------- #
# Response contracts
# ---------------------------------------------------------------------- #
@dataclass
class ScheduledGame:
    game_pk: int
    game_date: str
    abstract_state: str
    home_team_id: Optional[int] = None
    home_team_name: str = ""
    away_team_id: Optional[int] = None
    away_team_name: str = ""

    @property
    def start_time(self) -> Optional[datetime]:
        return parse_game_time(self.game_date)

    @classmethod
    def from_json(cls, data: Dict) -> "ScheduledGame":
        teams = _as_dict(data.get("teams"))
        home = _as_dict(_as_dict(teams.get("home")).get("team"))
        away = _as_dict(_as_dict(teams.get("away")).get("team"))
        return cls(
            game_pk=_as_int(data.get("gamePk")),
            game_date=str(data.get("gameDate") or ""),
            abstract_state=str(_as_dict(data.get("status")).get("abstractGameState") or ""),
            home_team_id=_as_int(home.get("id"), None),
            home_team_name=str(home.get("name") or ""),
            away_team_id=_as_int(away.get("id"), None),
            away_team_name=str(away.get("name") or ""),
        )


@dataclass
class BattingLine:
    hits: int = 0
    doubles: int = 0
    triples: int = 0
    home_runs: int = 0
    base_on_balls: int = 0
    hit_by_pitch: int = 0
    strike_outs: int = 0
    ground_into_double_play: int = 0
    rbi: int = 0
    runs: int = 0

    @classmethod
    def from_json(cls, data: Optional[Dict]) -> "BattingLine":
        data = _as_dict(data)
        return cls(
            hits=_as_int(data.get("hits")),
            doubles=_as_int(data.get("doubles")),
            triples=_as_int(data.get("triples")),
            home_runs=_as_int(data.get("homeRuns")),
            base_on_balls=_as_int(data.get("baseOnBalls")),
            hit_by_pitch=_as_int(data.get("hitByPitch")),
            strike_outs=_as_int(data.get("strikeOuts")),
            ground_into_double_play=_as_int(data.get("groundIntoDoublePlay")),
            rbi=_as_int(data.get("rbi")),
            runs=_as_int(data.get("runs")),
        )


@dataclass
class BoxscorePlayer:
    person_id: int
    full_name: str
    batting: BattingLine


@dataclass
class BoxscoreTeam:
    players: Dict[int, BoxscorePlayer] = field(default_factory=dict)
    batting_order: List[int] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Optional[Dict]) -> "BoxscoreTeam":
        data = _as_dict(data)
        players: Dict[int, BoxscorePlayer] = {}
        for key, entry in _as_dict(data.get("players")).items():
            entry = _as_dict(entry)
            person = _as_dict(entry.get("person"))
            person_id = _as_int(person.get("id"), None)
            if person_id is None and str(key).startswith("ID"):
                person_id = _as_int(str(key)[2:], None)
            if person_id is None:
                continue
            players[person_id] = BoxscorePlayer(
                person_id=person_id,
                full_name=str(person.get("fullName") or ""),
                batting=BattingLine.from_json(_as_dict(entry.get("stats")).get("batting")),
            )

        batting_order = []
        for value in _as_list(data.get("battingOrder")):
            text = str(value)
            player_id = _as_int(text[2:] if text.startswith("ID") else text, None)
            if player_id is not None:
                batting_order.append(player_id)

        return cls(players=players, batting_order=batting_order)

    def batting_for(self, person_id: Optional[int]) -> BattingLine:
        player = self.players.get(person_id) if person_id is not None else None
        return player.batting if player else BattingLine()


@dataclass
class LiveFeed:
    abstract_state: str = ""
    inning_ordinal: str = ""
    inning_state: str = ""
    home_runs: Optional[int] = None
    away_runs: Optional[int] = None
    home: BoxscoreTeam = field(default_factory=BoxscoreTeam)
    away: BoxscoreTeam = field(default_factory=BoxscoreTeam)
    play_batter_ids: List[int] = field(default_factory=list)

    FINISHED_STATES = {"Final", "Completed"}

    @property
    def inning_str(self) -> str:
        return " ".join(part for part in (self.inning_state, self.inning_ordinal) if part)

    @property
    def is_finished(self) -> bool:
        return self.abstract_state in self.FINISHED_STATES

    def team(self, side: str) -> BoxscoreTeam:
        return self.home if side == "home" else self.away

    def final_score(self, side: str) -> Optional[Dict[str, int]]:
        """Runs for ``side`` and its opponent, or None until both are known."""
        if self.home_runs is None or self.away_runs is None:
            return None
        if side == "home":
            return {"twins": self.home_runs, "opponent": self.away_runs}
        return {"twins": self.away_runs, "opponent": self.home_runs}

    @classmethod
    def from_json(cls, data: Dict) -> "LiveFeed":
        data = _as_dict(data)
        game_data = _as_dict(data.get("gameData"))
        live_data = _as_dict(data.get("liveData"))
        linescore = _as_dict(live_data.get("linescore"))
        line_teams = _as_dict(linescore.get("teams"))
        box_teams = _as_dict(_as_dict(live_data.get("boxscore")).get("teams"))
        all_plays = _as_list(_as_dict(live_data.get("plays")).get("allPlays"))

        play_batter_ids = []
        for play in all_plays:
            batter = _as_dict(_as_dict(_as_dict(play).get("matchup")).get("batter"))
            batter_id = _as_int(batter.get("id"), None)
            if batter_id is not None:
                play_batter_ids.append(batter_id)

        return cls(
            abstract_state=str(_as_dict(game_data.get("status")).get("abstractGameState") or ""),
            inning_ordinal=str(linescore.get("currentInningOrdinal") or ""),
            inning_state=str(linescore.get("inningState") or ""),
            home_runs=_as_int(_as_dict(line_teams.get("home")).get("runs"), None),
            away_runs=_as_int(_as_dict(line_teams.get("away")).get("runs"), None),
            home=BoxscoreTeam.from_json(box_teams.get("home")),
            away=BoxscoreTeam.from_json(box_teams.get("away")),
            play_batter_ids=play_batter_ids,
        )


@dataclass
class LineupResult:
    batters: List[Batter]
    lineup_info: LineupInfo
    warning: Optional[str] = None


# ---------------------------------------------------------------------- #
# HTTP client
# ---------------------------------------------------------------------- #
class StatsFeed:
    """Thin client over the public MLB Stats API."""

    PREFERRED_STATES = {"preview", "pre-game", "in progress"}

    def __init__(self, base_url: str = settings.STATS_API_BASE, timeout: int = settings.HTTP_TIMEOUT,
                 timezone_name: str = settings.TIMEZONE):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.tz = ZoneInfo(timezone_name)
        self.session = requests.Session()

    def _get_json(self, path: str, params: Optional[Dict] = None) -> Dict:
        url = f"{self.base_url}/{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as exc:
            raise FeedError(f"Request to {url} failed: {exc}") from exc
        except ValueError as exc:
            raise FeedError(f"Malformed JSON from {url}") from exc
        if not isinstance(data, dict):
            raise FeedError(f"Unexpected payload from {url}")
        return data

    # ------------------------------------------------------------------ #
    # Endpoints
    # ------------------------------------------------------------------ #
    def get_schedule(self, on_date: date, team_id: Optional[int] = None) -> List[ScheduledGame]:
        params = {"sportId": 1, "date": on_date.strftime("%m/%d/%Y")}
        if team_id is not None:
            params["teamId"] = team_id
        data = self._get_json("v1/schedule", params=params)
        dates = _as_list(data.get("dates"))
        if not dates:
            return []
        games = _as_list(_as_dict(dates[0]).get("games"))
        return [ScheduledGame.from_json(_as_dict(game)) for game in games]

    def get_live_feed(self, game_pk: int) -> LiveFeed:
        return LiveFeed.from_json(self._get_json(f"v1.1/game/{game_pk}/feed/live"))

    # ------------------------------------------------------------------ #
    # Lineup
    # ------------------------------------------------------------------ #
    def local_date(self, now: Optional[datetime] = None) -> date:
        now = now or datetime.now(timezone.utc)
        return now.astimezone(self.tz).date()

    def format_local_time(self, game_date: Optional[str]) -> Optional[str]:
        start = parse_game_time(game_date)
        if start is None:
            return None
        local = start.astimezone(self.tz)
        return f"{local.hour % 12 or 12}:{local.minute:02d} {'AM' if local.hour < 12 else 'PM'}"

    def pick_game(self, games: List[ScheduledGame]) -> Optional[ScheduledGame]:
        """Prefer the live game, then one about to start, then the earliest."""
        for game in games:
            if game.abstract_state.lower() == "live":
                return game
        for game in games:
            if game.abstract_state.lower() in self.PREFERRED_STATES:
                return game
        if not games:
            return None
        return min(games, key=lambda g: g.game_date)

    def load_todays_lineup(self, team_id: int, now: Optional[datetime] = None) -> LineupResult:
        games = self.get_schedule(self.local_date(now), team_id=team_id)
        game = self.pick_game(games)
        if game is None:
            raise NoGameScheduled("No game found for today.")

        side = "home" if game.home_team_id == team_id else "away"
        feed = self.get_live_feed(game.game_pk)
        team = feed.team(side)

        order = team.batting_order[:BATTERS_PER_LINEUP] if len(team.batting_order) >= BATTERS_PER_LINEUP else []
        batters = []
        named = 0
        for slot in range(BATTERS_PER_LINEUP):
            mlb_id = order[slot] if slot < len(order) else None
            player = team.players.get(mlb_id) if mlb_id is not None else None
            name = player.full_name if player and player.full_name else "TBD"
            if name != "TBD":
                named += 1
            batters.append(Batter(id=slot + 1, name=name, mlb_id=mlb_id))

        lineup_info = LineupInfo(
            game_pk=game.game_pk,
            opponent=game.away_team_name if side == "home" else game.home_team_name,
            side=side,
            first_pitch_local=self.format_local_time(game.game_date),
            game_date=game.game_date or None,
        )

        warning = None
        if named < BATTERS_PER_LINEUP:
            warning = "Lineup partially available. You can start; it will fill in as the feed updates."
            logger.info("Lineup for game %s has %d of %d names", game.game_pk, named, BATTERS_PER_LINEUP)

        return LineupResult(batters=batters, lineup_info=lineup_info, warning=warning)
