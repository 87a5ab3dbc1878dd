"""Add and remove league players on fantasy rosters.

Every change is checked against the transfer guard using the roster as it
would look after the change, then written with compare-and-swap on the
roster's revision. A concurrent write to the same roster makes the
attempt fail with CONFLICT instead of overwriting it.
"""

import logging
from typing import Optional

from .constants import DEFAULT_MAX_TEAM_SIZE, MutationStatus
from .models import MutationResult
from .schemas import LeaguePlayer
from .store import LeagueStore
from .transfer_guard import can_modify_team, describe_decision

logger = logging.getLogger('t2fantasy.roster')


def get_max_team_size(store: LeagueStore, season_id: str, default: int = DEFAULT_MAX_TEAM_SIZE) -> int:
    """Season's roster cap, falling back to ``default``."""
    season = store.get_season(season_id)
    if season and season.max_team_size:
        return season.max_team_size
    return default


def resolve_league_player(
    store: LeagueStore,
    season_id: str,
    name: str,
    team_name: Optional[str] = None,
    among: Optional[list[str]] = None,
) -> tuple[Optional[LeaguePlayer], Optional[MutationResult]]:
    """
    Look a league player up by name, optionally disambiguated by team.

    Args:
        store: League store
        season_id: Season to search
        name: Player name (case-insensitive)
        team_name: Optional team name to pick between same-named players
        among: Optional ids to prefer when the name is ambiguous (e.g. the
            caller's own roster when removing)

    Returns:
        Tuple of (player, None) on success or (None, failure result)
    """
    team_id = None
    if team_name:
        team = store.find_team(season_id, team_name)
        if team is None:
            return None, MutationResult(
                status=MutationStatus.TEAM_NOT_FOUND, message=f'Team "{team_name}" not found.'
            )
        team_id = team.id

    matches = store.find_league_players(season_id, name, team_id)
    if len(matches) > 1 and among is not None:
        narrowed = [p for p in matches if p.id in among]
        if narrowed:
            matches = narrowed

    if not matches:
        where = f' in team {team_name}' if team_name else ''
        return None, MutationResult(
            status=MutationStatus.PLAYER_NOT_FOUND, message=f'No league player found named {name}{where}.'
        )
    if len(matches) > 1:
        return None, MutationResult(
            status=MutationStatus.AMBIGUOUS_PLAYER,
            message=f'More than one player is named {name}; specify the team.',
        )
    return matches[0], None


def add_player(
    store: LeagueStore,
    season_id: str,
    discord_id: str,
    player_id: str,
    max_team_size: Optional[int] = None,
    attempts: int = 1,
) -> MutationResult:
    """
    Draft a league player onto a fantasy roster and charge its cost.

    Args:
        store: League store
        season_id: Season the roster belongs to
        discord_id: Roster owner
        player_id: League player to add
        max_team_size: Roster cap (defaults to the season's)
        attempts: How many times to re-read and retry after a conflict

    Returns:
        MutationResult; status OK when the roster was written
    """
    if max_team_size is None:
        max_team_size = get_max_team_size(store, season_id)

    for attempt in range(1, max(1, attempts) + 1):
        fantasy_player = store.get_fantasy_player(season_id, discord_id)
        if fantasy_player is None:
            return MutationResult(
                status=MutationStatus.NOT_REGISTERED,
                message='You must join the league before picking players.',
            )

        player = store.get_league_player(player_id)
        if player is None or player.season_id != season_id:
            return MutationResult(
                status=MutationStatus.PLAYER_NOT_FOUND, message='League player not found.'
            )

        if player.id in fantasy_player.team:
            return MutationResult(
                status=MutationStatus.ALREADY_ON_TEAM,
                message=f'You already have {player.name} on your team.',
                player_id=player.id,
            )

        if len(fantasy_player.team) >= max_team_size:
            return MutationResult(
                status=MutationStatus.TEAM_FULL,
                message=f'You cannot have more than {max_team_size} players.',
                player_id=player.id,
            )

        if fantasy_player.wallet < player.cost:
            return MutationResult(
                status=MutationStatus.INSUFFICIENT_FUNDS,
                message=(
                    f'Not enough budget. {player.name} costs {player.cost}, '
                    f'you have {fantasy_player.wallet}.'
                ),
                player_id=player.id,
                wallet=fantasy_player.wallet,
            )

        proposed = [*fantasy_player.team, player.id]
        decision = can_modify_team(store.get_fantasy_config(season_id), fantasy_player, proposed)
        if not decision.allowed:
            return MutationResult(
                status=MutationStatus.DENIED,
                message=describe_decision(decision),
                player_id=player.id,
                decision=decision,
            )

        expected = fantasy_player.revision
        fantasy_player.team = proposed
        fantasy_player.wallet -= player.cost
        if store.compare_and_swap_fantasy_player(fantasy_player, expected):
            logger.info(f'{discord_id} added {player.name} for {player.cost}')
            return MutationResult(
                status=MutationStatus.OK,
                message=f'Added {player.name} to your fantasy team.',
                player_id=player.id,
                wallet=fantasy_player.wallet,
                decision=decision,
            )

        logger.warning(f'Roster of {discord_id} changed during add (attempt {attempt})')

    return MutationResult(
        status=MutationStatus.CONFLICT,
        message='Your team changed while this was processed, try again.',
        player_id=player_id,
    )


def remove_player(
    store: LeagueStore,
    season_id: str,
    discord_id: str,
    player_id: str,
    attempts: int = 1,
) -> MutationResult:
    """
    Drop a league player from a fantasy roster and refund its cost.

    Args:
        store: League store
        season_id: Season the roster belongs to
        discord_id: Roster owner
        player_id: League player to remove
        attempts: How many times to re-read and retry after a conflict

    Returns:
        MutationResult; status OK when the roster was written
    """
    for attempt in range(1, max(1, attempts) + 1):
        fantasy_player = store.get_fantasy_player(season_id, discord_id)
        if fantasy_player is None:
            return MutationResult(
                status=MutationStatus.NOT_REGISTERED,
                message='You must join the league before using this command.',
            )

        if player_id not in fantasy_player.team:
            return MutationResult(
                status=MutationStatus.NOT_ON_TEAM,
                message='That player is not in your fantasy team.',
                player_id=player_id,
            )

        player = store.get_league_player(player_id)
        refund = player.cost if player else 0
        name = player.name if player else player_id

        proposed = [pid for pid in fantasy_player.team if pid != player_id]
        decision = can_modify_team(store.get_fantasy_config(season_id), fantasy_player, proposed)
        if not decision.allowed:
            return MutationResult(
                status=MutationStatus.DENIED,
                message=describe_decision(decision),
                player_id=player_id,
                decision=decision,
            )

        expected = fantasy_player.revision
        fantasy_player.team = proposed
        fantasy_player.wallet += refund
        if store.compare_and_swap_fantasy_player(fantasy_player, expected):
            logger.info(f'{discord_id} removed {name}, refunded {refund}')
            return MutationResult(
                status=MutationStatus.OK,
                message=f'Removed {name} from your fantasy team.',
                player_id=player_id,
                wallet=fantasy_player.wallet,
                decision=decision,
            )

        logger.warning(f'Roster of {discord_id} changed during remove (attempt {attempt})')

    return MutationResult(
        status=MutationStatus.CONFLICT,
        message='Your team changed while this was processed, try again.',
        player_id=player_id,
    )


def pick_player(
    store: LeagueStore,
    season_id: str,
    discord_id: str,
    name: str,
    team_name: Optional[str] = None,
    max_team_size: Optional[int] = None,
    attempts: int = 1,
) -> MutationResult:
    """Add a player identified by name (and optional team name)."""
    player, failure = resolve_league_player(store, season_id, name, team_name)
    if failure:
        return failure
    return add_player(store, season_id, discord_id, player.id, max_team_size, attempts)


def drop_player(
    store: LeagueStore,
    season_id: str,
    discord_id: str,
    name: str,
    team_name: Optional[str] = None,
    attempts: int = 1,
) -> MutationResult:
    """Remove a player identified by name (and optional team name)."""
    fantasy_player = store.get_fantasy_player(season_id, discord_id)
    if fantasy_player is None:
        return MutationResult(
            status=MutationStatus.NOT_REGISTERED,
            message='You must join the league before using this command.',
        )
    player, failure = resolve_league_player(
        store, season_id, name, team_name, among=fantasy_player.team
    )
    if failure:
        return failure
    return remove_player(store, season_id, discord_id, player.id, attempts)
