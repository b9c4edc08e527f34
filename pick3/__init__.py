"""
Core of the Pick 3 baseball game.

This package hosts the scoring rules, boost allocation, time gates and
persistence so the Flask app and the command-line scripts share the same
MLB Stats API integration and session lifecycle.
"""

from .controller import ActionRejected, GameController

__all__ = ["ActionRejected", "GameController", "build_controller"]


def build_controller(state_dir=None, **kwargs) -> GameController:
    """Wire a controller to the MLB Stats API and a JSON file store."""
    from . import settings
    from .app_state import AppStateManager
    from .feed import StatsFeed
    from .history import HistoryManager
    from .storage import JsonFileStore

    store = JsonFileStore(state_dir or settings.STATE_DIR)
    feed = StatsFeed()
    return GameController(
        feed=feed,
        app_state=AppStateManager(store, feed),
        history=HistoryManager(store),
        **kwargs,
    )
