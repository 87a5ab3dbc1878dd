"""The weekly import-then-score run."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .importer import import_stats_from_url
from .models import ImportSummary
from .score_service import calculate_scores_for_week, recalculate_all_weeks
from .store import LeagueStore
from .transfer_guard import get_or_create_config

logger = logging.getLogger('t2fantasy.weekly_job')


@dataclass
class WeeklyRunResult:
    """What a weekly run did."""
    season_id: str
    week: int
    import_summary: ImportSummary
    weeks_scored: dict[int, int] = field(default_factory=dict)
    next_week: Optional[int] = None


def run_weekly_import_once(
    store: LeagueStore,
    season_id: str,
    stats_url: str,
    full_recalc: bool = False,
    advance_pointer: bool = False,
    timeout: float = 30.0,
) -> WeeklyRunResult:
    """
    Import the stats export, then score.

    Without ``full_recalc`` only the config's current week is scored;
    with it every week up to the last one holding data is. Scoring runs
    after the import as its own step, whatever the import counters say.

    Args:
        store: League store
        season_id: Season to import into (the caller picks the active one)
        stats_url: Stats export URL
        full_recalc: Recompute all weeks instead of the current week
        advance_pointer: Move the config's current week forward by one
        timeout: HTTP timeout in seconds
    """
    cfg = get_or_create_config(store, season_id)
    week = cfg.current_week
    logger.info(f'Weekly run: season={season_id} week={week} full_recalc={full_recalc}')

    summary = import_stats_from_url(store, season_id, stats_url, timeout=timeout)

    if full_recalc:
        weeks_scored = recalculate_all_weeks(store, season_id)
    else:
        weeks_scored = {week: calculate_scores_for_week(store, season_id, week)}

    result = WeeklyRunResult(
        season_id=season_id, week=week, import_summary=summary, weeks_scored=weeks_scored
    )

    if advance_pointer:
        cfg = get_or_create_config(store, season_id)
        cfg.current_week = week + 1
        store.save_fantasy_config(cfg)
        result.next_week = cfg.current_week
        logger.info(f'Advanced current week to {cfg.current_week}')

    return result
