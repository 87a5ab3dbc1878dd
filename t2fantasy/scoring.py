"""Fantasy point scoring for league players and fantasy rosters."""

from typing import Dict, Iterable, List, Optional, Tuple

from .constants import (
    BONUS_ROUND_SWEEP,
    BONUS_STREAK_PERFECT,
    BONUS_STREAK_POSITIVE,
    BONUS_WEEK_POSITIVE,
    STREAK_WEEKS,
    WIN_POINTS,
)
from .models import PlayerWeekScore
from .performance import iter_round_tallies
from .schemas import LeaguePlayer, PerformanceEntry


def find_week(performance: Iterable[PerformanceEntry], week: int) -> Optional[PerformanceEntry]:
    """Entry for a week, or None if the player did not compete (or week < 1)."""
    if week < 1:
        return None
    return next((e for e in performance if e.week == week), None)


def scored_rounds(entry: PerformanceEntry) -> List[Tuple[int, int]]:
    """(wins, losses) of every round with at least one decided game."""
    return [(w, l) for w, l in iter_round_tallies(entry) if w + l > 0]


def is_clean_round(wins: int, losses: int) -> bool:
    """A round won with zero losses."""
    return wins > 0 and losses == 0


def is_week_positive(entry: Optional[PerformanceEntry]) -> bool:
    """At least one scored round, and more wins than losses in every one."""
    if entry is None:
        return False
    rounds = scored_rounds(entry)
    return bool(rounds) and all(w > l for w, l in rounds)


def is_week_perfect(entry: Optional[PerformanceEntry]) -> bool:
    """At least one scored round, and no losses in any of them."""
    if entry is None:
        return False
    rounds = scored_rounds(entry)
    return bool(rounds) and all(l == 0 for _, l in rounds)


def score_performance_week(
    performance: Iterable[PerformanceEntry], week: int
) -> Tuple[int, Dict[str, int]]:
    """
    Score one week of a player's performance.

    Scoring:
        - Wins: WIN_POINTS per game won
        - Round sweep: BONUS_ROUND_SWEEP per clean round
        - Positive week: BONUS_WEEK_POSITIVE if every round was won on balance
        - Positive streak: BONUS_STREAK_POSITIVE if this week and the two
          before it were all positive weeks
        - Perfect streak: BONUS_STREAK_PERFECT if this week and the two
          before it had no lost game in any round

    A missing week scores nothing and breaks any streak that needs it.

    Args:
        performance: The player's performance entries (any order)
        week: Week to score

    Returns:
        Tuple of (points, breakdown)
    """
    performance = list(performance)
    entry = find_week(performance, week)
    points = 0
    breakdown: Dict[str, int] = {}

    if entry is None:
        return points, breakdown

    win_pts = entry.wins * WIN_POINTS
    if win_pts:
        breakdown['wins'] = win_pts
    points += win_pts

    sweeps = sum(1 for w, l in iter_round_tallies(entry) if is_clean_round(w, l))
    sweep_pts = sweeps * BONUS_ROUND_SWEEP
    if sweep_pts:
        breakdown['round_sweeps'] = sweep_pts
    points += sweep_pts

    if is_week_positive(entry):
        breakdown['week_positive'] = BONUS_WEEK_POSITIVE
        points += BONUS_WEEK_POSITIVE

    window = [find_week(performance, week - offset) for offset in range(STREAK_WEEKS)]
    if all(e is not None for e in window):
        if all(is_week_positive(e) for e in window):
            breakdown['streak_positive'] = BONUS_STREAK_POSITIVE
            points += BONUS_STREAK_POSITIVE
        if all(is_week_perfect(e) for e in window):
            breakdown['streak_perfect'] = BONUS_STREAK_PERFECT
            points += BONUS_STREAK_PERFECT

    return points, breakdown


def compute_week_points(player: LeaguePlayer, week: int) -> int:
    """Points a league player earned in a week."""
    points, _ = score_performance_week(player.performance, week)
    return points


def score_player_week(player: LeaguePlayer, week: int) -> PlayerWeekScore:
    """Score a league player for a week, keeping the breakdown."""
    points, breakdown = score_performance_week(player.performance, week)
    return PlayerWeekScore(
        player_id=player.id,
        name=player.name,
        week=week,
        total_points=points,
        breakdown=breakdown,
        played=find_week(player.performance, week) is not None,
    )


def score_roster_week(
    players: Iterable[LeaguePlayer], week: int
) -> Tuple[int, List[PlayerWeekScore]]:
    """
    Sum the week's points over a roster.

    The roster passed in is whoever is on the team *now*; past weeks are
    not scored against the roster held at the time.

    Returns:
        Tuple of (roster total, per-player scores)
    """
    scores = [score_player_week(p, week) for p in players]
    return sum(s.total_points for s in scores), scores


def season_total(weekly_points: Iterable[Optional[int]]) -> int:
    """Season-to-date total from stored weekly points. Gaps count as zero."""
    return sum(p or 0 for p in weekly_points)


def player_season_points(player: LeaguePlayer) -> int:
    """A league player's points over every week they have a record for."""
    return sum(compute_week_points(player, e.week) for e in player.performance)
