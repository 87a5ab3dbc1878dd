from .constants import MutationStatus, Phase, TransferReason
from .models import (
    ImportSummary,
    LeaderboardRow,
    MutationResult,
    PhaseChange,
    PickCount,
    PlayerLeaderboardRow,
    PlayerWeekScore,
    RosterView,
    ScoreReport,
    TeamStats,
    TransferDecision,
)
from .store import DuplicateKeyError, LeagueStore, NotFoundError
from .performance import build_performance_entry, build_performance_entries
from .scoring import (
    compute_week_points,
    score_performance_week,
    score_player_week,
    score_roster_week,
    season_total,
)
from .transfer_guard import can_modify_team, set_phase, set_playoff_swap_limit
from .roster import add_player, remove_player, pick_player, drop_player
from .importer import ImportValidationError, import_stats_array, import_stats_from_url
from .matches import add_match, build_matches_from_stats
from .score_service import (
    calculate_scores_for_week,
    recalculate_all_weeks,
    get_score,
    get_leaderboard,
)
from .league import (
    create_season,
    activate_season,
    delete_season,
    join_league,
    set_wallet,
    delete_league_player,
    create_team,
    add_league_player,
    substitute_league_player,
)
from .stats import (
    get_player_leaderboard,
    most_picked_players,
    player_pick_stats,
    team_stats,
    view_roster,
)
from .weekly_job import run_weekly_import_once

__all__ = [
    # Enums
    'MutationStatus',
    'Phase',
    'TransferReason',
    # Results
    'ImportSummary',
    'LeaderboardRow',
    'MutationResult',
    'PhaseChange',
    'PickCount',
    'PlayerLeaderboardRow',
    'PlayerWeekScore',
    'RosterView',
    'ScoreReport',
    'TeamStats',
    'TransferDecision',
    # Storage
    'DuplicateKeyError',
    'LeagueStore',
    'NotFoundError',
    # Performance records
    'build_performance_entry',
    'build_performance_entries',
    # Scoring
    'compute_week_points',
    'score_performance_week',
    'score_player_week',
    'score_roster_week',
    'season_total',
    # Transfers
    'can_modify_team',
    'set_phase',
    'set_playoff_swap_limit',
    'add_player',
    'remove_player',
    'pick_player',
    'drop_player',
    # Import
    'ImportValidationError',
    'import_stats_array',
    'import_stats_from_url',
    'build_matches_from_stats',
    'add_match',
    # Scores
    'calculate_scores_for_week',
    'recalculate_all_weeks',
    'get_score',
    'get_leaderboard',
    # League admin
    'create_season',
    'activate_season',
    'delete_season',
    'join_league',
    'set_wallet',
    'delete_league_player',
    'create_team',
    'add_league_player',
    'substitute_league_player',
    # Stats
    'get_player_leaderboard',
    'most_picked_players',
    'player_pick_stats',
    'team_stats',
    'view_roster',
    'run_weekly_import_once',
]
