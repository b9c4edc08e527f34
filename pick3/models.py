"""Dataclasses shared by the scoring, persistence and history layers.

Every model round-trips through ``as_dict`` / ``from_dict`` so it can be
stored as JSON. ``from_dict`` is lenient: missing optional fields fall back
to their defaults, while a payload of the wrong shape raises ``TypeError``
or ``ValueError`` for the caller to treat as corrupt data.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Dict, List, Optional

PHASES = ("setup", "draft", "play", "live", "results")
PICKS_PER_PLAYER = 3
BATTERS_PER_LINEUP = 9


def _int_keys(mapping: Optional[Dict]) -> Dict[int, int]:
    # JSON object keys are always strings
    return {int(key): int(value) for key, value in (mapping or {}).items()}


@dataclass
class Batter:
    id: int
    name: str
    mlb_id: Optional[int] = None

    def as_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "Batter":
        mlb_id = data.get("mlb_id")
        return cls(
            id=int(data["id"]),
            name=str(data.get("name") or ""),
            mlb_id=int(mlb_id) if mlb_id is not None else None,
        )


def default_batters() -> List[Batter]:
    return [Batter(id=i, name=f"Batter {i}") for i in range(1, BATTERS_PER_LINEUP + 1)]


@dataclass
class ScoreBreakdown:
    singles: int = 0
    doubles: int = 0
    triples: int = 0
    hr_solo: int = 0
    hr_2r: int = 0
    hr_3r: int = 0
    hr_gs: int = 0
    walks: int = 0
    hbp: int = 0
    rbi_non_hr: int = 0
    runs_non_hr: int = 0
    strikeouts: int = 0
    gidp: int = 0
    fielders_choice: int = 0

    @property
    def home_runs(self) -> int:
        return self.hr_solo + self.hr_2r + self.hr_3r + self.hr_gs

    def as_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> Optional["ScoreBreakdown"]:
        if data is None:
            return None
        return cls(**{f.name: int(data.get(f.name) or 0) for f in fields(cls)})


@dataclass
class PlayerPickResult:
    batter_id: int
    outcomes: List[str] = field(default_factory=list)
    points: int = 0
    breakdown: Optional[ScoreBreakdown] = None
    boost_percent: int = 0
    base_points: int = 0

    def as_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "PlayerPickResult":
        return cls(
            batter_id=int(data["batter_id"]),
            outcomes=[str(code) for code in data.get("outcomes") or []],
            points=int(data.get("points") or 0),
            breakdown=ScoreBreakdown.from_dict(data.get("breakdown")),
            boost_percent=int(data.get("boost_percent") or 0),
            base_points=int(data.get("base_points") or 0),
        )


@dataclass
class Player:
    id: int = 1
    name: str = "You"
    picks: List[int] = field(default_factory=list)
    results: Optional[List[PlayerPickResult]] = None
    score: Optional[int] = None

    def as_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "Player":
        results = data.get("results")
        score = data.get("score")
        return cls(
            id=int(data.get("id", 1)),
            name=str(data.get("name") or "You"),
            picks=[int(pick) for pick in data.get("picks") or []],
            results=[PlayerPickResult.from_dict(r) for r in results] if results is not None else None,
            score=int(score) if score is not None else None,
        )


@dataclass
class LineupInfo:
    game_pk: int
    opponent: str
    side: str  # "home" or "away"
    first_pitch_local: Optional[str] = None
    game_date: Optional[str] = None

    def as_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> Optional["LineupInfo"]:
        if not data:
            return None
        side = data.get("side")
        if side not in ("home", "away"):
            raise ValueError(f"Invalid lineup side: {side!r}")
        return cls(
            game_pk=int(data["game_pk"]),
            opponent=str(data.get("opponent") or ""),
            side=side,
            first_pitch_local=data.get("first_pitch_local"),
            game_date=data.get("game_date"),
        )


@dataclass
class AppState:
    phase: str = "setup"
    batters: List[Batter] = field(default_factory=default_batters)
    players: List[Player] = field(default_factory=lambda: [Player()])
    boosters: Dict[int, int] = field(default_factory=dict)
    lineup_info: Optional[LineupInfo] = None
    game_state: str = ""
    inning_str: str = ""
    previous_scores: Dict[int, int] = field(default_factory=dict)
    previous_total_score: int = 0
    saved_at: int = 0  # epoch milliseconds
    score_viewing_allowed: bool = True

    @property
    def player(self) -> Player:
        return self.players[0]

    @property
    def picks(self) -> List[int]:
        return self.players[0].picks if self.players else []

    def has_progress(self) -> bool:
        return (
            self.phase != "setup"
            or bool(self.picks)
            or bool(self.boosters)
            or self.lineup_info is not None
        )

    def as_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "AppState":
        if not isinstance(data, dict):
            raise TypeError("App state snapshot must be a JSON object")
        phase = data.get("phase") or "setup"
        if phase not in PHASES:
            raise ValueError(f"Unknown phase: {phase!r}")
        batters = data.get("batters")
        players = data.get("players")
        return cls(
            phase=phase,
            batters=[Batter.from_dict(b) for b in batters] if batters else default_batters(),
            players=[Player.from_dict(p) for p in players] if players else [Player()],
            boosters=_int_keys(data.get("boosters")),
            lineup_info=LineupInfo.from_dict(data.get("lineup_info")),
            game_state=str(data.get("game_state") or ""),
            inning_str=str(data.get("inning_str") or ""),
            previous_scores=_int_keys(data.get("previous_scores")),
            previous_total_score=int(data.get("previous_total_score") or 0),
            saved_at=int(data.get("saved_at") or 0),
            score_viewing_allowed=bool(data.get("score_viewing_allowed", True)),
        )


# ---------------------------------------------------------------------- #
# History
# ---------------------------------------------------------------------- #
@dataclass
class FinalScore:
    twins: int
    opponent: int

    def as_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> Optional["FinalScore"]:
        if not data:
            return None
        return cls(twins=int(data["twins"]), opponent=int(data["opponent"]))


@dataclass
class HistoricalPick:
    batter_id: int
    batter_name: str
    points: int
    base_points: int
    boost: int
    mlb_id: Optional[int] = None
    breakdown: Optional[ScoreBreakdown] = None

    @classmethod
    def from_dict(cls, data: Dict) -> "HistoricalPick":
        mlb_id = data.get("mlb_id")
        return cls(
            batter_id=int(data["batter_id"]),
            batter_name=str(data.get("batter_name") or ""),
            points=int(data.get("points") or 0),
            base_points=int(data.get("base_points") or 0),
            boost=int(data.get("boost") or 0),
            mlb_id=int(mlb_id) if mlb_id is not None else None,
            breakdown=ScoreBreakdown.from_dict(data.get("breakdown")),
        )


@dataclass
class HistoricalPlayer:
    name: str
    picks: List[HistoricalPick] = field(default_factory=list)
    total_score: int = 0

    @classmethod
    def from_dict(cls, data: Dict) -> "HistoricalPlayer":
        return cls(
            name=str(data.get("name") or ""),
            picks=[HistoricalPick.from_dict(p) for p in data.get("picks") or []],
            total_score=int(data.get("total_score") or 0),
        )


@dataclass
class HistoricalGame:
    id: str
    date: str
    game_pk: int
    opponent: str
    side: str
    game_status: str
    players: List[HistoricalPlayer] = field(default_factory=list)
    completed_at: int = 0
    final_score: Optional[FinalScore] = None

    def as_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "HistoricalGame":
        return cls(
            id=str(data["id"]),
            date=str(data.get("date") or ""),
            game_pk=int(data.get("game_pk") or 0),
            opponent=str(data.get("opponent") or ""),
            side=str(data.get("side") or "home"),
            game_status=str(data.get("game_status") or ""),
            players=[HistoricalPlayer.from_dict(p) for p in data.get("players") or []],
            completed_at=int(data.get("completed_at") or 0),
            final_score=FinalScore.from_dict(data.get("final_score")),
        )


@dataclass
class HistoryStats:
    total_games: int = 0
    average_score: float = 0
    best_score: int = 0
    best_game: Optional[str] = None
    favorite_player: Optional[str] = None

    def as_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "HistoryStats":
        data = data or {}
        return cls(
            total_games=int(data.get("total_games") or 0),
            average_score=float(data.get("average_score") or 0),
            best_score=int(data.get("best_score") or 0),
            best_game=data.get("best_game"),
            favorite_player=data.get("favorite_player"),
        )


@dataclass
class HistoricalData:
    games: List[HistoricalGame] = field(default_factory=list)
    stats: HistoryStats = field(default_factory=HistoryStats)
    last_updated: int = 0

    def as_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "HistoricalData":
        if not isinstance(data, dict) or not isinstance(data.get("games"), list):
            raise ValueError("Historical data is missing its games list")
        return cls(
            games=[HistoricalGame.from_dict(g) for g in data["games"]],
            stats=HistoryStats.from_dict(data.get("stats")),
            last_updated=int(data.get("last_updated") or 0),
        )
