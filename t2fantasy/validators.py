"""Integrity checks for league players, performance records and rosters."""

from .performance import round_winner, set_winner
from .schemas import FantasyPlayer, LeaguePlayer, PerformanceEntry
from .scoring import season_total
from .store import LeagueStore


def validate_performance_entry(player_name: str, entry: PerformanceEntry) -> list[str]:
    """
    Check that a week's recorded winners agree with its games.

    Checks:
    - every round winner is the majority of its games
    - every set winner is the majority of its rounds

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    for set_result in entry.sets:
        for round_result in set_result.rounds:
            expected = round_winner(round_result.games)
            if round_result.winner != expected:
                errors.append(
                    f'{player_name} week {entry.week} set {set_result.set_number} '
                    f'round {round_result.round_number} winner is {round_result.winner}, '
                    f'expected {expected}'
                )
        expected = set_winner(set_result.rounds)
        if set_result.winner != expected:
            errors.append(
                f'{player_name} week {entry.week} set {set_result.set_number} '
                f'winner is {set_result.winner}, expected {expected}'
            )

    return errors


def validate_league_player(player: LeaguePlayer) -> list[str]:
    """Check a league player's cost and performance list."""
    errors = []

    if player.cost < 0:
        errors.append(f'{player.name} has negative cost {player.cost}')

    weeks = [e.week for e in player.performance]
    duplicates = sorted({w for w in weeks if weeks.count(w) > 1})
    if duplicates:
        errors.append(f'{player.name} has duplicate performance weeks: {duplicates}')

    for entry in player.performance:
        errors.extend(validate_performance_entry(player.name, entry))

    return errors


def validate_fantasy_player(
    fantasy_player: FantasyPlayer,
    known_player_ids: set[str],
    max_team_size: int,
) -> list[str]:
    """
    Check a fantasy roster against league rules.

    Checks:
    - roster size within the cap
    - no duplicate players
    - no references to deleted league players (roster and snapshots)
    - stored total equals the sum of weekly points
    """
    errors = []
    label = fantasy_player.username or fantasy_player.discord_id

    if len(fantasy_player.team) > max_team_size:
        errors.append(f'{label} has {len(fantasy_player.team)} players (max {max_team_size})')

    seen = set()
    duplicates = set()
    for pid in fantasy_player.team:
        if pid in seen:
            duplicates.add(pid)
        seen.add(pid)
    if duplicates:
        errors.append(f'{label} has duplicate players: {", ".join(sorted(duplicates))}')

    for field_name in ('team', 'swiss_lock_snapshot', 'playoff_snapshot'):
        dangling = [pid for pid in getattr(fantasy_player, field_name) if pid not in known_player_ids]
        if dangling:
            errors.append(f'{label} {field_name} references missing players: {", ".join(dangling)}')

    expected_total = season_total(fantasy_player.weekly_points)
    if fantasy_player.total_points != expected_total:
        errors.append(
            f'{label} total {fantasy_player.total_points} != sum of weekly points {expected_total}'
        )

    return errors


def validate_season(store: LeagueStore, season_id: str, max_team_size: int) -> list[str]:
    """Run every check over a season."""
    errors: list[str] = []
    players = store.list_league_players(season_id)
    known = {p.id for p in players}

    for player in players:
        errors.extend(validate_league_player(player))
    for fantasy_player in store.list_fantasy_players(season_id):
        errors.extend(validate_fantasy_player(fantasy_player, known, max_team_size))

    return errors
