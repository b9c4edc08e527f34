"""Fantasy point rules for drafted batters.

Scoring is a pure linear function of a 14-counter ``ScoreBreakdown``. The
boost stored for each pick is a whole percent (0-100) and is applied as a
direct multiplier to positive base points: 20% turns 50 points into 1000.
Non-positive scores are never boosted.
"""

import math
from dataclasses import dataclass
from typing import Dict, List

from .feed import BattingLine, LiveFeed
from .models import Batter, PlayerPickResult, ScoreBreakdown

POINTS: Dict[str, int] = {
    "singles": 10,
    "doubles": 20,
    "triples": 30,
    "hr_solo": 40,
    "hr_2r": 45,
    "hr_3r": 50,
    "hr_gs": 80,
    "walks": 5,
    "hbp": 5,
    "rbi_non_hr": 15,
    "runs_non_hr": 15,
    "strikeouts": -5,
    "gidp": -10,
    "fielders_choice": 2,
}

HR_RBI = {"hr_solo": 1, "hr_2r": 2, "hr_3r": 3, "hr_gs": 4}


@dataclass
class ScoreResult:
    breakdown: ScoreBreakdown
    points: int
    outcomes: List[str]


def calculate_base_points(breakdown: ScoreBreakdown) -> int:
    return sum(getattr(breakdown, name) * weight for name, weight in POINTS.items())


def apply_boost(base_points: int, boost_factor: float) -> int:
    if base_points <= 0:
        return base_points
    # round half up
    return int(math.floor(base_points * boost_factor + 0.5))


def _home_run_class(total_rbi: int, total_hr: int) -> str:
    # One class for every homer: the feed only exposes game totals
    ratio = total_rbi / total_hr
    if ratio >= 3.5:
        return "hr_gs"
    if ratio >= 2.5:
        return "hr_3r"
    if ratio >= 1.5:
        return "hr_2r"
    return "hr_solo"


def build_score_from_stats(stats: BattingLine) -> ScoreResult:
    """Turn one batter's box score line into a breakdown, points and outcomes.

    Runs scored on the batter's own home runs are still counted in
    ``runs_non_hr``.
    """
    breakdown = ScoreBreakdown(
        singles=stats.hits - stats.doubles - stats.triples - stats.home_runs,
        doubles=stats.doubles,
        triples=stats.triples,
        walks=stats.base_on_balls,
        hbp=stats.hit_by_pitch,
        strikeouts=stats.strike_outs,
        gidp=stats.ground_into_double_play,
        runs_non_hr=stats.runs,
    )

    hr_rbi = 0
    if stats.home_runs > 0:
        hr_class = _home_run_class(stats.rbi, stats.home_runs)
        setattr(breakdown, hr_class, stats.home_runs)
        hr_rbi = stats.home_runs * HR_RBI[hr_class]
    breakdown.rbi_non_hr = max(0, stats.rbi - hr_rbi)

    outcomes: List[str] = []
    for code, count in (
        ("1B", breakdown.singles),
        ("2B", breakdown.doubles),
        ("3B", breakdown.triples),
        ("HR", breakdown.home_runs),
        ("BB", breakdown.walks),
        ("K", breakdown.strikeouts),
        ("GIDP", breakdown.gidp),
    ):
        outcomes.extend([code] * max(count, 0))

    return ScoreResult(breakdown=breakdown, points=calculate_base_points(breakdown), outcomes=outcomes)


def score_picks(
    feed: LiveFeed,
    side: str,
    batters: List[Batter],
    picks: List[int],
    boosters: Dict[int, int],
) -> List[PlayerPickResult]:
    team = feed.team(side)
    by_id = {batter.id: batter for batter in batters}
    results = []
    for batter_id in picks:
        batter = by_id.get(batter_id)
        stats = team.batting_for(batter.mlb_id if batter else None)
        scored = build_score_from_stats(stats)
        boost = boosters.get(batter_id, 0)
        results.append(
            PlayerPickResult(
                batter_id=batter_id,
                outcomes=scored.outcomes,
                points=apply_boost(scored.points, boost),
                breakdown=scored.breakdown,
                boost_percent=boost,
                base_points=scored.points,
            )
        )
    return results
