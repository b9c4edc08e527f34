import logging
import math
import threading
from datetime import datetime
from typing import Callable, Dict, Optional, Set

from . import settings
from .app_state import AppStateManager
from .boosts import even_allocation, normalize_boosters, validate_boosters_complete
from .feed import FeedError, LiveFeed, NoGameScheduled, StatsFeed
from .history import HistoryManager
from .models import PICKS_PER_PLAYER, AppState, Batter, FinalScore, Player, default_batters
from .poller import LivePoller
from .scoring import score_picks
from .time_gate import is_drafting_allowed, utc_now

logger = logging.getLogger(__name__)


class ActionRejected(ValueError):
    """A user action was refused; ``reason`` is safe to show as-is."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class GameController:
    """Drives one user's session through setup, draft, play, live and results.

    The session is a single ``AppState`` guarded by a lock. Every change is
    auto-saved through ``AppStateManager``; finished games are archived via
    ``HistoryManager``. Live polling and the score-viewing re-check run on
    ``LivePoller`` threads when ``background`` is enabled.
    """

    def __init__(
        self,
        feed: StatsFeed,
        app_state: AppStateManager,
        history: HistoryManager,
        team_id: int = settings.TEAM_ID,
        poll_interval: float = settings.POLL_INTERVAL,
        viewing_check_interval: float = settings.VIEWING_CHECK_INTERVAL,
        clock: Callable[[], datetime] = utc_now,
        background: bool = True,
    ):
        self.feed = feed
        self.app_state = app_state
        self.history = history
        self.team_id = team_id
        self.clock = clock
        self.background = background

        self.state = AppState()
        self.lineup_warning: Optional[str] = None
        self.live_error: Optional[str] = None
        self.last_updated: Optional[datetime] = None
        self.recently_updated: Set[int] = set()
        self.total_score_changed = False

        self._lock = threading.RLock()
        self._poll_busy = threading.Lock()
        self._live_poller = LivePoller(self.poll_once, poll_interval, name="live-poller")
        self._viewing_poller = LivePoller(self.check_score_viewing, viewing_check_interval, name="viewing-check")

    # ------------------------------------------------------------------ #
    # Snapshot helpers
    # ------------------------------------------------------------------ #
    @property
    def player(self) -> Player:
        return self.state.player

    @property
    def drafting_allowed(self) -> bool:
        lineup = self.state.lineup_info
        return is_drafting_allowed(lineup.game_date if lineup else None, self.clock())

    @property
    def boosters_complete(self) -> bool:
        return validate_boosters_complete(self.player.picks, self.state.boosters)

    def snapshot(self) -> Dict:
        with self._lock:
            data = self.state.as_dict()
            data.update(
                {
                    "drafting_allowed": self.drafting_allowed,
                    "boosters_complete": self.boosters_complete,
                    "lineup_warning": self.lineup_warning,
                    "live_error": self.live_error,
                    "last_updated": self.last_updated.isoformat() if self.last_updated else None,
                    "recently_updated": sorted(self.recently_updated),
                    "total_score_changed": self.total_score_changed,
                }
            )
            return data

    def _autosave(self) -> None:
        if self.state.has_progress():
            saved = self.app_state.save(self.state, self.clock())
            if saved is not None:
                self.state.saved_at = saved.saved_at

    def _sync_timers(self) -> None:
        """Start or stop background tasks to match the current phase."""
        if not self.background:
            return
        with self._lock:
            phase = self.state.phase
            has_picks = bool(self.player.picks)
        if phase == "live":
            self._live_poller.start()
        else:
            self._live_poller.stop()
        if has_picks and phase in ("live", "results"):
            self._viewing_poller.start()
        else:
            self._viewing_poller.stop()

    # ------------------------------------------------------------------ #
    # Launch & lifecycle
    # ------------------------------------------------------------------ #
    def restore(self) -> bool:
        saved = self.app_state.load(self.clock())
        if saved is None:
            logger.info("Starting with a fresh session")
            return False
        with self._lock:
            self.state = saved
        logger.info("Restored session: phase=%s picks=%d", saved.phase, len(saved.picks))
        self.check_for_completed_game()
        self._sync_timers()
        return True

    def on_background(self) -> None:
        with self._lock:
            self.app_state.save(self.state, self.clock())

    def on_foreground(self) -> None:
        self.check_for_completed_game()

    def shutdown(self) -> None:
        self.on_background()
        self._live_poller.stop(wait=True, timeout=5)
        self._viewing_poller.stop(wait=True, timeout=5)

    # ------------------------------------------------------------------ #
    # Setup
    # ------------------------------------------------------------------ #
    def refresh_lineup(self) -> Optional[str]:
        """Load today's lineup; returns a warning string when it is incomplete or missing."""
        try:
            result = self.feed.load_todays_lineup(self.team_id, self.clock())
        except NoGameScheduled as exc:
            warning = str(exc)
        except FeedError as exc:
            logger.warning("Failed to load lineup: %s", exc)
            warning = "Failed to load lineup."
        else:
            with self._lock:
                self.state.batters = result.batters
                self.state.lineup_info = result.lineup_info
                self.lineup_warning = result.warning
                self._autosave()
            return result.warning

        with self._lock:
            self.lineup_warning = warning
        return warning

    def rename_batter(self, batter_id: int, name: str) -> Batter:
        with self._lock:
            if self.state.phase != "setup":
                raise ActionRejected("Batter names can only be edited during setup.")
            batter = self._find_batter(batter_id)
            batter.name = name.strip() or batter.name
            self._autosave()
            return batter

    def _find_batter(self, batter_id: int) -> Batter:
        for batter in self.state.batters:
            if batter.id == batter_id:
                return batter
        raise ActionRejected(f"Unknown batter {batter_id}.")

    # ------------------------------------------------------------------ #
    # Draft
    # ------------------------------------------------------------------ #
    def start_draft(self) -> None:
        with self._lock:
            if not self.drafting_allowed:
                raise ActionRejected("The game started more than 5 minutes ago. Drafting is closed.")
            self._clear_picks()
            self.state.phase = "draft"
            self._autosave()
        self._sync_timers()

    def new_draft_same_setup(self) -> None:
        self.start_draft()

    def _clear_picks(self) -> None:
        self.state.players = [Player(id=p.id, name=p.name) for p in self.state.players]
        self.state.boosters = {}

    def toggle_pick(self, batter_id: int) -> None:
        with self._lock:
            if self.state.phase != "draft":
                raise ActionRejected("Start the draft before picking batters.")
            if not self.drafting_allowed:
                raise ActionRejected(
                    "Drafting Closed: the game started more than 5 minutes ago. You can no longer make picks or changes."
                )
            self._find_batter(batter_id)
            picks = self.player.picks
            if batter_id in picks:
                picks.remove(batter_id)
                self.state.boosters.pop(batter_id, None)
            elif len(picks) >= PICKS_PER_PLAYER:
                raise ActionRejected(f"You can only pick {PICKS_PER_PLAYER} batters.")
            else:
                picks.append(batter_id)
            self._autosave()

    def finish_draft(self) -> None:
        with self._lock:
            picks = self.player.picks
            if self.state.phase != "draft":
                raise ActionRejected("There is no draft in progress.")
            if len(picks) != PICKS_PER_PLAYER:
                raise ActionRejected(f"Select exactly {PICKS_PER_PLAYER} batters to continue.")
            self.state.boosters = even_allocation(picks)
            self.state.phase = "play"
            self._autosave()

    def set_boost(self, batter_id: int, value: float) -> Dict[int, int]:
        if not isinstance(value, (int, float)) or isinstance(value, bool) or not math.isfinite(value):
            raise ActionRejected("Boost value must be a whole number between 0 and 100.")
        with self._lock:
            picks = self.player.picks
            if len(picks) != PICKS_PER_PLAYER:
                raise ActionRejected(f"Pick {PICKS_PER_PLAYER} batters before assigning boosters.")
            if batter_id not in picks:
                raise ActionRejected(f"Batter {batter_id} is not one of your picks.")
            if self.state.phase not in ("draft", "play"):
                raise ActionRejected("Boosters are locked once live scoring starts.")
            self.state.boosters = normalize_boosters(batter_id, value, picks, self.state.boosters)
            self._autosave()
            return dict(self.state.boosters)

    # ------------------------------------------------------------------ #
    # Live scoring
    # ------------------------------------------------------------------ #
    def start_live_scoring(self) -> None:
        with self._lock:
            if self.state.phase != "play":
                raise ActionRejected("Finish the draft before starting live scoring.")
            if self.state.lineup_info is None:
                raise ActionRejected("Load the lineup first, then try again.")
            if not self.boosters_complete:
                raise ActionRejected("Distribute all 100 booster points across your 3 picks before starting.")
            self.state.phase = "live"
            self.live_error = None
            self._autosave()
        self._sync_timers()

    def stop_live_scoring(self) -> None:
        with self._lock:
            if self.state.phase == "live":
                self.state.phase = "play"
                self._autosave()
        self._sync_timers()

    def poll_once(self) -> bool:
        """One fetch-compute-apply cycle while live; skipped if one is already running."""
        return self._refresh_from_feed(phases=("live",), only_when_finished=False)

    def check_for_completed_game(self) -> bool:
        """One-shot probe that archives the game if it finished while we were away."""
        return self._refresh_from_feed(phases=("draft", "play", "live"), only_when_finished=True)

    def _refresh_from_feed(self, phases, only_when_finished: bool) -> bool:
        if not self._poll_busy.acquire(blocking=False):
            return False
        try:
            with self._lock:
                lineup = self.state.lineup_info
                if self.state.phase not in phases or not self.player.picks:
                    return False
                if lineup is None:
                    if not only_when_finished:
                        self.live_error = "Missing game ID. Load lineup first."
                    return False
                game_pk = lineup.game_pk

            try:
                feed = self.feed.get_live_feed(game_pk)
            except FeedError as exc:
                logger.warning("Failed to fetch live data for game %s: %s", game_pk, exc)
                if not only_when_finished:
                    with self._lock:
                        self.live_error = str(exc)
                return False

            with self._lock:
                current = self.state.lineup_info
                if self.state.phase not in phases or current is None or current.game_pk != game_pk:
                    return False
                if only_when_finished and not feed.is_finished:
                    return False
                self._apply_live_feed(feed)
        finally:
            self._poll_busy.release()
        self._sync_timers()
        return True

    def _apply_live_feed(self, feed: LiveFeed) -> None:
        state = self.state
        player = self.player
        lineup = state.lineup_info
        results = score_picks(feed, lineup.side, state.batters, player.picks, state.boosters)
        total = sum(result.points for result in results)

        previous = state.previous_scores
        had_previous = bool(previous)
        self.recently_updated = {
            r.batter_id for r in results
            if had_previous and r.batter_id in previous and previous[r.batter_id] != r.points
        }
        self.total_score_changed = had_previous and total != state.previous_total_score
        state.previous_scores = {r.batter_id: r.points for r in results}
        state.previous_total_score = total

        player.results = results
        player.score = total
        state.game_state = feed.abstract_state
        state.inning_str = feed.inning_str
        self.live_error = None
        self.last_updated = self.clock()

        if feed.is_finished:
            score = feed.final_score(lineup.side)
            final_score = FinalScore(**score) if score else None
            if results:
                self.history.add_game([player], state.batters, lineup, feed.abstract_state, final_score)
            state.phase = "results"
            logger.info("Game %s is %s, final fantasy score %d", lineup.game_pk, feed.abstract_state, total)
        self._autosave()

    # ------------------------------------------------------------------ #
    # Results window
    # ------------------------------------------------------------------ #
    def check_score_viewing(self) -> bool:
        with self._lock:
            if not self.player.picks or self.state.phase not in ("results", "live"):
                return self.state.score_viewing_allowed
            checked = self.state
            lineup = checked.lineup_info
        allowed = self.app_state.score_viewing_allowed(self.clock(), lineup)
        with self._lock:
            if self.state is not checked:
                # reset or restored while the schedule was being fetched
                return self.state.score_viewing_allowed
            checked.score_viewing_allowed = allowed
        if not allowed:
            logger.info("Score viewing has ended to prepare for the next game, starting fresh")
            self.reset_all()
        return allowed

    def reset_all(self) -> None:
        with self._lock:
            self.state = AppState(batters=default_batters())
            self.lineup_warning = None
            self.live_error = None
            self.last_updated = None
            self.recently_updated = set()
            self.total_score_changed = False
            self.app_state.clear()
        self._live_poller.stop()
        self._viewing_poller.stop()
