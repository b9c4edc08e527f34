"""Time windows that gate drafting and score viewing.

Both predicates fail open: if the relevant game time is unknown or cannot
be parsed, the user is allowed to continue.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Union

DRAFT_GRACE = timedelta(minutes=5)
VIEWING_CUTOFF = timedelta(minutes=10)

GameTime = Union[str, datetime, None]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_game_time(value: GameTime) -> Optional[datetime]:
    """Parse an ISO-8601 game time (``Z`` suffix allowed) into aware UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return _as_utc(parsed)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_drafting_allowed(game_start: GameTime = None, now: Optional[datetime] = None) -> bool:
    """Picks may change until five minutes after first pitch."""
    start = parse_game_time(game_start)
    if start is None:
        return True
    current = _as_utc(now) if now else utc_now()
    return current < start + DRAFT_GRACE


def is_score_viewing_allowed(next_game_start: GameTime = None, now: Optional[datetime] = None) -> bool:
    """Results stay visible until ten minutes before the next game starts."""
    start = parse_game_time(next_game_start)
    if start is None:
        return True
    current = _as_utc(now) if now else utc_now()
    return current < start - VIEWING_CUTOFF
