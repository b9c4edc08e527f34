import math
from typing import Dict, List

from .models import PICKS_PER_PLAYER

BOOST_TOTAL = 100
EVEN_SPLIT = (34, 33, 33)


def even_allocation(picked_ids: List[int]) -> Dict[int, int]:
    """Starting boosts handed out when the draft is finished."""
    return {batter_id: share for batter_id, share in zip(picked_ids, EVEN_SPLIT)}


def normalize_boosters(
    target_id: int,
    raw_value: float,
    picked_ids: List[int],
    current: Dict[int, int],
) -> Dict[int, int]:
    """Set one pick's boost and rescale the other two so all three sum to 100.

    The other two keep their current ratio; when both are zero the remainder
    is split evenly, the first taking the floor.
    """
    if len(picked_ids) != PICKS_PER_PLAYER or target_id not in picked_ids:
        return current

    clamped = max(0, min(BOOST_TOTAL, int(math.floor(raw_value + 0.5))))
    first, second = [batter_id for batter_id in picked_ids if batter_id != target_id]
    remaining = BOOST_TOTAL - clamped

    first_current = current.get(first, 0)
    other_sum = first_current + current.get(second, 0)
    if other_sum <= 0:
        first_value = remaining // 2
    else:
        first_value = int(math.floor(remaining * first_current / other_sum + 0.5))

    updated = dict(current)
    updated[target_id] = clamped
    updated[first] = first_value
    updated[second] = remaining - first_value
    return updated


def validate_boosters_complete(picked_ids: List[int], boosters: Dict[int, float]) -> bool:
    if len(picked_ids) != PICKS_PER_PLAYER:
        return False
    values = [boosters.get(batter_id) for batter_id in picked_ids]
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v) for v in values):
        return False
    return sum(values) == BOOST_TOTAL
