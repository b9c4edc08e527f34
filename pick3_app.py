"""
Pick 3 Baseball
===============
JSON API for the single-player Pick 3 game:
- Load today's lineup and draft 3 batters
- Spread 100 booster points across the picks
- Live, boosted fantasy scoring refreshed every 15 seconds
- History of completed games
"""

import logging
from typing import Optional

from flask import Flask, jsonify, request

from pick3 import ActionRejected, GameController, build_controller, settings

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


class Pick3App:
    """Flask wrapper around the shared GameController."""

    def __init__(self, controller: Optional[GameController] = None, restore: bool = True):
        self.app = Flask(__name__)
        self.controller = controller or build_controller()

        self._setup_routes()
        if restore:
            self.controller.restore()
            if self.controller.state.phase == "setup":
                self.controller.refresh_lineup()

    # ------------------------------------------------------------------ #
    # Routes
    # ------------------------------------------------------------------ #
    def _setup_routes(self):
        app = self.app
        controller = self.controller

        @app.errorhandler(ActionRejected)
        def action_rejected(exc):
            return jsonify({"error": exc.reason}), 400

        def state_response(**extra):
            payload = controller.snapshot()
            payload.update(extra)
            return jsonify(payload)

        @app.route("/api/state")
        def api_state():
            return state_response()

        @app.route("/api/lineup/refresh", methods=["POST"])
        def refresh_lineup():
            warning = controller.refresh_lineup()
            return state_response(warning=warning)

        @app.route("/api/batters/<int:batter_id>/name", methods=["POST"])
        def rename_batter(batter_id):
            body = request.get_json(silent=True) or {}
            controller.rename_batter(batter_id, str(body.get("name", "")))
            return state_response()

        @app.route("/api/draft/start", methods=["POST"])
        def start_draft():
            controller.start_draft()
            return state_response()

        @app.route("/api/draft/pick/<int:batter_id>", methods=["POST"])
        def toggle_pick(batter_id):
            controller.toggle_pick(batter_id)
            return state_response()

        @app.route("/api/draft/finish", methods=["POST"])
        def finish_draft():
            controller.finish_draft()
            return state_response()

        @app.route("/api/boost/<int:batter_id>", methods=["POST"])
        def set_boost(batter_id):
            body = request.get_json(silent=True) or {}
            try:
                value = int(body["value"])
            except (KeyError, TypeError, ValueError, OverflowError):
                raise ActionRejected("Boost value must be a whole number between 0 and 100.")
            controller.set_boost(batter_id, value)
            return state_response()

        @app.route("/api/live/start", methods=["POST"])
        def start_live():
            controller.start_live_scoring()
            return state_response()

        @app.route("/api/live/stop", methods=["POST"])
        def stop_live():
            controller.stop_live_scoring()
            return state_response()

        @app.route("/api/reset", methods=["POST"])
        def reset():
            controller.reset_all()
            return state_response()

        @app.route("/api/lifecycle/<event>", methods=["POST"])
        def lifecycle(event):
            if event == "background":
                controller.on_background()
            elif event == "foreground":
                controller.on_foreground()
            else:
                raise ActionRejected(f"Unknown lifecycle event: {event}")
            return state_response()

        @app.route("/api/history")
        def history():
            try:
                limit = int(request.args.get("limit", 10))
            except ValueError:
                limit = 10
            games = controller.history.get_recent(limit)
            return jsonify({"games": [game.as_dict() for game in games]})

        @app.route("/api/history/stats")
        def history_stats():
            return jsonify(controller.history.get_stats().as_dict())

        @app.route("/api/history", methods=["DELETE"])
        def clear_history():
            controller.history.clear()
            return jsonify({"cleared": True})

    def run(self, host="0.0.0.0", port: Optional[int] = None, debug: bool = False):
        if port is None:
            port = settings.PORT
        try:
            self.app.run(host=host, port=port, debug=debug, use_reloader=False)
        finally:
            self.controller.shutdown()


if __name__ == "__main__":
    Pick3App().run()
