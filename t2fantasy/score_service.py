"""Store weekly fantasy points on rosters and answer score queries."""

import logging
from typing import Optional

from .models import LeaderboardRow, ScoreReport
from .schemas import FantasyPlayer
from .scoring import score_roster_week, season_total
from .store import LeagueStore

logger = logging.getLogger('t2fantasy.score_service')

DEFAULT_LEADERBOARD_LIMIT = 10
MAX_LEADERBOARD_LIMIT = 25


def set_week_points(fantasy_player: FantasyPlayer, week: int, points: int) -> None:
    """Write one week's points (padding earlier weeks with 0) and refresh the total."""
    if week < 1:
        raise ValueError(f'Week must be >= 1, got {week}')
    idx = week - 1
    weekly = list(fantasy_player.weekly_points)
    while len(weekly) <= idx:
        weekly.append(0)
    weekly[idx] = points
    fantasy_player.weekly_points = weekly
    fantasy_player.total_points = season_total(weekly)


def calculate_roster_week(
    store: LeagueStore, season_id: str, discord_id: str, week: int, attempts: int = 3
) -> bool:
    """
    Recompute and store one roster's points for a week.

    Uses the roster as it is now. Nothing is written when the stored week
    already holds the same total. Retries on a concurrent roster write.

    Returns:
        True if the roster's points were written; False if they were
        already current, the roster vanished, or every attempt hit a
        conflict
    """
    for _ in range(max(1, attempts)):
        fantasy_player = store.get_fantasy_player(season_id, discord_id)
        if fantasy_player is None:
            return False
        members = store.get_league_players(fantasy_player.team)
        total, _ = score_roster_week(members, week)

        weekly = fantasy_player.weekly_points
        if (
            week - 1 < len(weekly)
            and weekly[week - 1] == total
            and fantasy_player.total_points == season_total(weekly)
        ):
            return False

        expected = fantasy_player.revision
        set_week_points(fantasy_player, week, total)
        if store.compare_and_swap_fantasy_player(fantasy_player, expected):
            return True
        logger.debug(f'Retrying week {week} score for {discord_id} after conflict')

    logger.warning(f'Gave up scoring week {week} for {discord_id}: roster kept changing')
    return False


def calculate_scores_for_week(store: LeagueStore, season_id: str, week: int) -> int:
    """
    Recompute week ``week`` for every roster in the season.

    Each roster is written independently, so the run can be interrupted
    and repeated safely.

    Returns:
        Number of rosters whose points changed
    """
    if week < 1:
        raise ValueError(f'Week must be >= 1, got {week}')
    updated = 0
    for fantasy_player in store.list_fantasy_players(season_id):
        if calculate_roster_week(store, season_id, fantasy_player.discord_id, week):
            updated += 1
    logger.info(f'Calculated week {week} scores, {updated} fantasy players changed')
    return updated


def last_scored_week(store: LeagueStore, season_id: str) -> int:
    """Highest week with performance data or stored points (at least 1)."""
    max_perf = max(
        (e.week for p in store.list_league_players(season_id) for e in p.performance), default=0
    )
    max_stored = max(
        (len(f.weekly_points) for f in store.list_fantasy_players(season_id)), default=0
    )
    return max(1, max_perf, max_stored)


def recalculate_all_weeks(store: LeagueStore, season_id: str, to_week: Optional[int] = None) -> dict[int, int]:
    """
    Recompute every week from 1 to ``to_week`` (default: last week with data).

    Returns:
        Dict of week -> rosters updated
    """
    to_week = to_week or last_scored_week(store, season_id)
    results = {}
    for week in range(1, to_week + 1):
        results[week] = calculate_scores_for_week(store, season_id, week)
    return results


def get_score(
    store: LeagueStore, season_id: str, discord_id: str, week: Optional[int] = None
) -> Optional[ScoreReport]:
    """Stored points for a fantasy player; nothing is recomputed."""
    fantasy_player = store.get_fantasy_player(season_id, discord_id)
    if fantasy_player is None:
        return None

    report = ScoreReport(
        discord_id=fantasy_player.discord_id,
        username=fantasy_player.username,
        weekly_points=list(fantasy_player.weekly_points),
        total_points=fantasy_player.total_points,
    )
    if week is not None:
        report.week = week
        idx = week - 1
        report.week_points = (
            fantasy_player.weekly_points[idx] if 0 <= idx < len(fantasy_player.weekly_points) else 0
        )
    return report


def get_leaderboard(
    store: LeagueStore,
    season_id: str,
    week: Optional[int] = None,
    limit: int = DEFAULT_LEADERBOARD_LIMIT,
) -> list[LeaderboardRow]:
    """
    Rank fantasy players by total points, or by one week's points.

    Ties are broken by season total (week view) and then by name.
    """
    rows = []
    for fp in store.list_fantasy_players(season_id):
        name = fp.username or f'User {fp.discord_id}'
        score = fp.total_points
        if week is not None:
            idx = week - 1
            score = fp.weekly_points[idx] if 0 <= idx < len(fp.weekly_points) else 0
        rows.append((fp.discord_id, name, score, fp.total_points))

    if week is not None:
        rows.sort(key=lambda r: (-r[2], -r[3], r[1]))
    else:
        rows.sort(key=lambda r: (-r[2], r[1]))

    limit = max(1, min(limit, MAX_LEADERBOARD_LIMIT))
    return [
        LeaderboardRow(rank=i, discord_id=d, name=n, score=s, total=t)
        for i, (d, n, s, t) in enumerate(rows[:limit], 1)
    ]
