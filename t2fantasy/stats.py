"""Read-only league statistics: player leaderboard, pick counts, team and roster views."""

import logging
from typing import Optional

from .constants import MutationStatus
from .models import (
    PickCount,
    PlayerLeaderboardRow,
    PlayerRecord,
    RosterEntry,
    RosterView,
    TeamStats,
)
from .roster import get_max_team_size, resolve_league_player
from .scoring import compute_week_points, player_season_points
from .store import LeagueStore, NotFoundError

logger = logging.getLogger('t2fantasy.stats')

DEFAULT_STATS_LIMIT = 10
MAX_STATS_LIMIT = 25

UNKNOWN_TEAM = 'Unknown Team'


def _clamp_limit(limit: int) -> int:
    return max(1, min(limit, MAX_STATS_LIMIT))


def _team_names(store: LeagueStore, season_id: str) -> dict[str, str]:
    return {t.id: t.name for t in store.list_teams(season_id)}


def get_player_leaderboard(
    store: LeagueStore,
    season_id: str,
    week: Optional[int] = None,
    limit: int = DEFAULT_STATS_LIMIT,
) -> list[PlayerLeaderboardRow]:
    """
    Rank league players by the fantasy points they earned.

    With ``week`` the row shows that week's record and points, otherwise
    season totals. Ties are broken by fewer losses, then by name.
    """
    teams = _team_names(store, season_id)
    rows = []
    for player in store.list_league_players(season_id):
        if week is not None:
            entry = player.get_week(week)
            wins = entry.wins if entry else 0
            losses = entry.losses if entry else 0
            points = compute_week_points(player, week) if entry else 0
        else:
            wins = sum(e.wins for e in player.performance)
            losses = sum(e.losses for e in player.performance)
            points = player_season_points(player)
        rows.append((player, teams.get(player.team_id, UNKNOWN_TEAM), wins, losses, points))

    rows.sort(key=lambda r: (-r[4], r[3], r[0].name.casefold()))
    return [
        PlayerLeaderboardRow(
            rank=i, player_id=p.id, name=p.name, team=team, wins=won, losses=lost, points=pts
        )
        for i, (p, team, won, lost, pts) in enumerate(rows[:_clamp_limit(limit)], 1)
    ]


def _pick_counts(store: LeagueStore, season_id: str) -> list[PickCount]:
    picks: dict[str, int] = {}
    for fp in store.list_fantasy_players(season_id):
        for pid in set(fp.team):
            picks[pid] = picks.get(pid, 0) + 1

    teams = _team_names(store, season_id)
    players = sorted(
        store.list_league_players(season_id),
        key=lambda p: (-picks.get(p.id, 0), p.name.casefold()),
    )
    return [
        PickCount(
            rank=i,
            player_id=p.id,
            name=p.name,
            team=teams.get(p.team_id, UNKNOWN_TEAM),
            picks=picks.get(p.id, 0),
        )
        for i, p in enumerate(players, 1)
    ]


def most_picked_players(
    store: LeagueStore, season_id: str, limit: int = DEFAULT_STATS_LIMIT
) -> list[PickCount]:
    """League players ordered by how many fantasy rosters hold them."""
    return _pick_counts(store, season_id)[:_clamp_limit(limit)]


def player_pick_stats(
    store: LeagueStore, season_id: str, name: str, team_name: Optional[str] = None
) -> PickCount:
    """
    Pick count and pick rank of one league player.

    Raises:
        NotFoundError: If the team or player does not exist
        ValueError: If the name matches players on several teams
    """
    player, failure = resolve_league_player(store, season_id, name, team_name)
    if failure is not None:
        if failure.status == MutationStatus.AMBIGUOUS_PLAYER:
            raise ValueError(failure.message)
        raise NotFoundError(failure.message)
    return next(row for row in _pick_counts(store, season_id) if row.player_id == player.id)


def team_stats(
    store: LeagueStore, season_id: str, team_name: str, week: Optional[int] = None
) -> TeamStats:
    """
    A team's players with their wins and losses, summed into team totals.

    Raises:
        NotFoundError: If the team does not exist
    """
    team = store.find_team(season_id, team_name)
    if team is None:
        raise NotFoundError(f'Team {team_name!r} not found')

    stats = TeamStats(team_id=team.id, name=team.name, shortcode=team.shortcode, week=week)
    for player in sorted(store.get_league_players(team.players), key=lambda p: p.name.casefold()):
        if week is not None:
            entry = player.get_week(week)
            record = PlayerRecord(
                name=player.name,
                wins=entry.wins if entry else 0,
                losses=entry.losses if entry else 0,
            )
        else:
            record = PlayerRecord(
                name=player.name,
                wins=sum(e.wins for e in player.performance),
                losses=sum(e.losses for e in player.performance),
            )
        stats.players.append(record)
        stats.wins += record.wins
        stats.losses += record.losses
    return stats


def view_roster(store: LeagueStore, season_id: str, discord_id: str) -> Optional[RosterView]:
    """A fantasy user's roster, or None if they have not joined the season."""
    fantasy_player = store.get_fantasy_player(season_id, discord_id)
    if fantasy_player is None:
        return None

    teams = _team_names(store, season_id)
    members = store.get_league_players(fantasy_player.team)
    if len(members) != len(fantasy_player.team):
        logger.warning(f'Roster of {discord_id} references missing league players')

    return RosterView(
        discord_id=fantasy_player.discord_id,
        username=fantasy_player.username,
        players=[
            RosterEntry(
                player_id=p.id, name=p.name, team=teams.get(p.team_id, UNKNOWN_TEAM), cost=p.cost
            )
            for p in members
        ],
        max_team_size=get_max_team_size(store, season_id),
        wallet=fantasy_player.wallet,
        total_points=fantasy_player.total_points,
    )
