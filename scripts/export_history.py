#!/usr/bin/env python3
"""
Standalone exporter that writes the Pick 3 game history to JSON.

Reads the same store the app uses, so it can run while the app is stopped
(e.g., to back up or publish past results).
"""

import argparse
import json
import logging
from pathlib import Path

from pick3 import settings
from pick3.history import HistoryManager
from pick3.storage import JsonFileStore

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export Pick 3 game history to a JSON file.")
    parser.add_argument(
        "--state-dir",
        default=settings.STATE_DIR,
        help=f"Directory holding the app's saved data (default: {settings.STATE_DIR}).",
    )
    parser.add_argument(
        "--output",
        default="public/data/history.json",
        help="Path to write the history JSON (default: public/data/history.json).",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Only export the N most recent games (default: all).",
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="Number of spaces for JSON indentation (default: 2).",
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    history = HistoryManager(JsonFileStore(args.state_dir))
    data = history.load()
    games = data.games if args.limit is None else data.games[: args.limit]
    payload = {
        "games": [game.as_dict() for game in games],
        "stats": data.stats.as_dict(),
        "last_updated": data.last_updated,
    }

    with output_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=args.indent)
        handle.write("\n")

    logger.info("History written to %s (%d games)", output_path, len(games))


if __name__ == "__main__":
    main()
