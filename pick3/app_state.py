import json
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Union

from . import settings
from .feed import FeedError, StatsFeed
from .models import AppState, LineupInfo
from .storage import APP_STATE_KEY
from .time_gate import is_score_viewing_allowed, parse_game_time, utc_now

logger = logging.getLogger(__name__)

MAX_STATE_AGE = timedelta(hours=24)
ESTIMATED_GAME_LENGTH = timedelta(hours=3)
RECENTLY_FINISHED = timedelta(minutes=30)
ACTIVE_STATES = {"Live", "Preview"}


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class AppStateManager:
    """Persists the single ``AppState`` snapshot and decides whether it is still relevant."""

    def __init__(self, store, feed: StatsFeed, team_id: int = settings.TEAM_ID,
                 clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.feed = feed
        self.team_id = team_id
        self.clock = clock

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def load(self, now: Optional[datetime] = None) -> Optional[AppState]:
        now = now or self.clock()
        raw = self.store.get_item(APP_STATE_KEY)
        if not raw:
            logger.info("No saved state found")
            return None

        try:
            state = AppState.from_dict(json.loads(raw))
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            logger.warning("Failed to load app state: %s", exc)
            return None

        age_ms = epoch_millis(now) - state.saved_at
        logger.info(
            "Found saved state: phase=%s picks=%d age=%.1fh",
            state.phase, len(state.picks), age_ms / 3_600_000,
        )

        if age_ms > MAX_STATE_AGE.total_seconds() * 1000:
            logger.info("Saved state is too old, clearing it")
            self.clear()
            return None

        if state.picks and state.phase in ("results", "live"):
            if not self.score_viewing_allowed(now, state.lineup_info):
                logger.info("Score viewing window has ended, clearing state")
                self.clear()
                return None
            return state

        try:
            relevant = self.has_relevant_game_today(now)
        except FeedError as exc:
            logger.warning("Could not check today's games, restoring state anyway: %s", exc)
            return state

        if not relevant:
            logger.info("No active or recently finished games today, clearing saved state")
            self.clear()
            return None
        return state

    def save(self, state: Union[AppState, Dict], now: Optional[datetime] = None) -> Optional[AppState]:
        """Stamp ``saved_at`` and write the snapshot; a dict is merged over the defaults."""
        now = now or self.clock()
        try:
            if isinstance(state, AppState):
                full = replace(state, saved_at=epoch_millis(now))
            else:
                merged = AppState().as_dict()
                merged.update(state)
                merged["saved_at"] = epoch_millis(now)
                full = AppState.from_dict(merged)
            self.store.set_item(APP_STATE_KEY, json.dumps(full.as_dict()))
        except (TypeError, ValueError, KeyError) as exc:
            logger.warning("Failed to save app state: %s", exc)
            return None
        logger.debug("Saved app state: phase=%s picks=%d", full.phase, len(full.picks))
        return full

    def clear(self) -> None:
        self.store.remove_item(APP_STATE_KEY)

    # ------------------------------------------------------------------ #
    # Feed-backed checks
    # ------------------------------------------------------------------ #
    def next_game_start(self, now: Optional[datetime] = None,
                        current: Optional[LineupInfo] = None) -> Optional[datetime]:
        """First pitch of the team's next game after ``current`` (today or tomorrow).

        Raises ``FeedError`` when a schedule cannot be fetched.
        """
        now = now or self.clock()
        after = (parse_game_time(current.game_date) if current else None) or now
        today = self.feed.local_date(now)
        starts = []
        for day in (today, today + timedelta(days=1)):
            for game in self.feed.get_schedule(day, team_id=self.team_id):
                if current is not None and game.game_pk == current.game_pk:
                    continue
                start = game.start_time
                if start is not None and start > after:
                    starts.append(start)
        return min(starts, default=None)

    def score_viewing_allowed(self, now: Optional[datetime] = None,
                              current: Optional[LineupInfo] = None) -> bool:
        """True until ten minutes before the team's next game."""
        now = now or self.clock()
        try:
            next_start = self.next_game_start(now, current)
        except FeedError as exc:
            logger.warning("Could not check the schedule, allowing viewing: %s", exc)
            return True
        return is_score_viewing_allowed(next_start, now)

    def has_relevant_game_today(self, now: Optional[datetime] = None) -> bool:
        """Whether the team has a live, upcoming, or just-finished game today.

        Raises ``FeedError`` when the schedule cannot be fetched.
        """
        now = now or self.clock()
        for game in self.feed.get_schedule(self.feed.local_date(now), team_id=self.team_id):
            if game.abstract_state in ACTIVE_STATES:
                return True
            if game.abstract_state == "Final":
                start = parse_game_time(game.game_date)
                if start is not None and now - (start + ESTIMATED_GAME_LENGTH) <= RECENTLY_FINISHED:
                    return True
        return False
