import json
import logging
import math
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .app_state import epoch_millis
from .models import (
    Batter,
    FinalScore,
    HistoricalData,
    HistoricalGame,
    HistoricalPick,
    HistoricalPlayer,
    HistoryStats,
    LineupInfo,
    Player,
)
from .storage import HISTORY_KEY
from .time_gate import parse_game_time, utc_now

logger = logging.getLogger(__name__)


def compute_stats(games: List[HistoricalGame]) -> HistoryStats:
    """Rebuild aggregate stats from scratch.

    ``best_game`` is the first game, in list order, whose player reached the
    top score. ``favorite_player`` ties go to the batter name seen first.
    """
    if not games:
        return HistoryStats()

    all_scores: List[int] = []
    best_score = 0
    best_game: Optional[str] = None
    pick_counts: Dict[str, int] = {}

    for game in games:
        for player in game.players:
            all_scores.append(player.total_score)
            if player.total_score > best_score:
                best_score = player.total_score
                best_game = game.id
            for pick in player.picks:
                pick_counts[pick.batter_name] = pick_counts.get(pick.batter_name, 0) + 1

    favorite_player: Optional[str] = None
    max_picks = 0
    for name, count in pick_counts.items():
        if count > max_picks:
            max_picks = count
            favorite_player = name

    average = sum(all_scores) / len(all_scores) if all_scores else 0
    return HistoryStats(
        total_games=len(games),
        average_score=math.floor(average * 10 + 0.5) / 10,
        best_score=best_score,
        best_game=best_game,
        favorite_player=favorite_player,
    )


class HistoryManager:
    """Archive of completed games, upserted by ``<gamePk>_<date>``."""

    def __init__(self, store, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def _empty(self) -> HistoricalData:
        return HistoricalData(last_updated=epoch_millis(self.clock()))

    def load(self) -> HistoricalData:
        raw = self.store.get_item(HISTORY_KEY)
        if not raw:
            return self._empty()
        try:
            return HistoricalData.from_dict(json.loads(raw))
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            logger.warning("Failed to load historical data: %s", exc)
            return self._empty()

    def save(self, data: HistoricalData) -> None:
        data.last_updated = epoch_millis(self.clock())
        try:
            self.store.set_item(HISTORY_KEY, json.dumps(data.as_dict()))
        except (TypeError, ValueError) as exc:
            logger.warning("Failed to save historical data: %s", exc)

    def game_id(self, lineup_info: LineupInfo) -> str:
        start = parse_game_time(lineup_info.game_date)
        game_day = (start or self.clock()).date().isoformat()
        return f"{lineup_info.game_pk}_{game_day}"

    def add_game(
        self,
        players: List[Player],
        batters: List[Batter],
        lineup_info: LineupInfo,
        game_status: str,
        final_score: Optional[FinalScore] = None,
    ) -> Optional[HistoricalGame]:
        try:
            data = self.load()
            game_id = self.game_id(lineup_info)
            by_id = {batter.id: batter for batter in batters}

            historical_players = []
            for player in players:
                picks = []
                for result in player.results or []:
                    batter = by_id.get(result.batter_id)
                    picks.append(
                        HistoricalPick(
                            batter_id=result.batter_id,
                            batter_name=batter.name if batter else f"Batter {result.batter_id}",
                            mlb_id=batter.mlb_id if batter else None,
                            points=result.points,
                            base_points=result.base_points or 0,
                            boost=result.boost_percent or 0,
                            breakdown=result.breakdown,
                        )
                    )
                historical_players.append(
                    HistoricalPlayer(name=player.name, picks=picks, total_score=player.score or 0)
                )

            game = HistoricalGame(
                id=game_id,
                date=game_id.split("_", 1)[1],
                game_pk=lineup_info.game_pk,
                opponent=lineup_info.opponent,
                side=lineup_info.side,
                game_status=game_status,
                players=historical_players,
                completed_at=epoch_millis(self.clock()),
                final_score=final_score,
            )

            for index, existing in enumerate(data.games):
                if existing.id == game_id:
                    data.games[index] = game
                    logger.info("Updated existing game in history: %s", game_id)
                    break
            else:
                data.games.append(game)
                logger.info("Added new game to history: %s", game_id)

            data.games.sort(key=lambda g: g.date, reverse=True)
            data.stats = compute_stats(data.games)
            self.save(data)
            return game
        except Exception:
            logger.exception("Failed to add game to history")
            return None

    def get_recent(self, limit: int = 10) -> List[HistoricalGame]:
        return self.load().games[:limit]

    def get_stats(self) -> HistoryStats:
        return self.load().stats

    def clear(self) -> None:
        self.store.remove_item(HISTORY_KEY)
        logger.info("Historical data cleared")
