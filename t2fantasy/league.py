"""Season lifecycle and league administration."""

import logging
from typing import Optional

from .config import get_config
from .schemas import FantasyConfig, FantasyPlayer, LeaguePlayer, Season, Team
from .store import DuplicateKeyError, LeagueStore, NotFoundError

logger = logging.getLogger('t2fantasy.league')


def create_season(
    store: LeagueStore,
    name: str,
    max_team_size: Optional[int] = None,
    carry_over_users: bool = True,
) -> tuple[Season, int]:
    """
    Create a new season, make it the active one and give it a config.

    Fantasy users of the previously active season are re-registered in the
    new one with empty rosters, no points and a fresh wallet.

    Raises:
        DuplicateKeyError: If a season with that name exists

    Returns:
        Tuple of (season, number of users carried over)
    """
    config = get_config()
    previous = store.get_active_season()

    season = store.add_season(Season(name=name, is_active=True, max_team_size=max_team_size))
    store.save_fantasy_config(
        FantasyConfig(
            season_id=season.id,
            season_name=season.name,
            playoff_swap_limit=config.default_playoff_swap_limit,
        )
    )

    carried = 0
    if carry_over_users and previous is not None:
        for old in store.list_fantasy_players(previous.id):
            store.add_fantasy_player(
                FantasyPlayer(
                    season_id=season.id,
                    discord_id=old.discord_id,
                    username=old.username,
                    wallet=config.default_wallet,
                )
            )
            carried += 1

    logger.info(f'Created season {season.name}; carried over {carried} fantasy users')
    return season, carried


def activate_season(store: LeagueStore, name: str) -> tuple[Season, FantasyConfig]:
    """
    Make an existing season the active one, creating its config if missing.

    Raises:
        NotFoundError: If no season has that name
    """
    season = store.find_season(name)
    if season is None:
        raise NotFoundError(f'Season {name!r} does not exist')
    season = store.set_active_season(season.id)

    cfg = store.get_fantasy_config(season.id)
    if cfg is None:
        cfg = store.save_fantasy_config(
            FantasyConfig(
                season_id=season.id,
                season_name=season.name,
                playoff_swap_limit=get_config().default_playoff_swap_limit,
            )
        )
    logger.info(f'Activated season {season.name} (phase {cfg.phase.value})')
    return season, cfg


def delete_season(store: LeagueStore, name: str) -> dict[str, int]:
    """Delete a season by name together with everything scoped to it."""
    season = store.find_season(name)
    if season is None:
        raise NotFoundError(f'Season {name!r} does not exist')
    return store.delete_season(season.id)


def join_league(
    store: LeagueStore,
    season_id: str,
    discord_id: str,
    username: Optional[str] = None,
) -> Optional[FantasyPlayer]:
    """
    Register a user in a season.

    Returns:
        The new FantasyPlayer, or None if the user is already registered
    """
    if store.get_season(season_id) is None:
        raise NotFoundError(f'Season {season_id} not found')
    if store.get_fantasy_player(season_id, discord_id):
        return None
    player = FantasyPlayer(
        season_id=season_id,
        discord_id=discord_id,
        username=username,
        wallet=get_config().default_wallet,
    )
    return store.add_fantasy_player(player)


def set_wallet(
    store: LeagueStore, season_id: str, amount: int, discord_id: Optional[str] = None
) -> int:
    """
    Set the wallet of one user, or of every user in the season.

    Returns:
        Number of fantasy players updated
    """
    if amount < 0:
        raise ValueError(f'Wallet amount must be non-negative, got {amount}')

    if discord_id is not None:
        targets = [store.get_fantasy_player(season_id, discord_id)]
        if targets[0] is None:
            return 0
    else:
        targets = store.list_fantasy_players(season_id)

    for fp in targets:
        fp.wallet = amount
        store.save_fantasy_player(fp)
    return len(targets)


def delete_league_player(store: LeagueStore, season_id: str, name: str, team_name: str) -> int:
    """
    Delete a league player identified by name and team.

    Returns:
        Number of fantasy rosters the player was pulled from

    Raises:
        NotFoundError: If the team or player does not exist
    """
    team = store.find_team(season_id, team_name)
    if team is None:
        raise NotFoundError(f'Team {team_name!r} not found')
    players = store.find_league_players(season_id, name, team.id)
    if not players:
        raise NotFoundError(f'Player {name!r} not found in team {team.name!r}')
    return store.delete_league_player(players[0].id)


def create_team(
    store: LeagueStore, season_id: str, name: str, shortcode: Optional[str] = None
) -> Team:
    """
    Create a team by hand.

    Raises:
        NotFoundError: If the season does not exist
        DuplicateKeyError: If the season already has a team with that name
    """
    if store.get_season(season_id) is None:
        raise NotFoundError(f'Season {season_id} not found')
    team = store.add_team(Team(season_id=season_id, name=name, shortcode=shortcode))
    logger.info(f'Created team {team.name} ({team.shortcode or "no shortcode"})')
    return team


def _next_external_id(store: LeagueStore, season_id: str) -> int:
    ids = [p.external_id for p in store.list_league_players(season_id) if p.external_id is not None]
    return max(ids, default=0) + 1


def add_league_player(
    store: LeagueStore, season_id: str, name: str, team_name: str, cost: int
) -> LeaguePlayer:
    """
    Add a league player by hand.

    The player gets the next free stats-site id in the season, so a later
    import can still match it by id.

    Raises:
        ValueError: If the cost is negative
        NotFoundError: If the team does not exist
        DuplicateKeyError: If the team already has a player with that name
    """
    if cost < 0:
        raise ValueError(f'Cost must be non-negative, got {cost}')
    team = store.find_team(season_id, team_name)
    if team is None:
        raise NotFoundError(f'Team {team_name!r} not found')
    player = store.add_league_player(
        LeaguePlayer(
            season_id=season_id,
            team_id=team.id,
            name=name.strip(),
            cost=cost,
            external_id=_next_external_id(store, season_id),
        )
    )
    logger.info(f'Added league player {player.name} to {team.name} for {cost}')
    return player


def substitute_league_player(
    store: LeagueStore,
    season_id: str,
    name: str,
    team_name: str,
    cost: int,
    new_name: Optional[str] = None,
) -> tuple[LeaguePlayer, str]:
    """
    Correct exactly one of a league player's name, team or cost.

    The other two values identify the player:
    - name and team match: the cost is changed
    - name and cost match: the player moves to ``team_name``
    - name, team and cost all match: the player is renamed to ``new_name``

    Returns:
        Tuple of (updated player, name of the field that changed)

    Raises:
        ValueError: If the cost is negative, or a rename lacks ``new_name``
        NotFoundError: If the team is unknown or no player differs in
            exactly one field
        DuplicateKeyError: If the new name is taken on the team
    """
    if cost < 0:
        raise ValueError(f'Cost must be non-negative, got {cost}')
    team = store.find_team(season_id, team_name)
    if team is None:
        raise NotFoundError(f'Team {team_name!r} not found')

    named = store.find_league_players(season_id, name)

    same_team = [p for p in named if p.team_id == team.id]
    if same_team and same_team[0].cost != cost:
        player = same_team[0]
        old = player.cost
        player.cost = cost
        store.save_league_player(player)
        logger.info(f'{player.name}: cost {old} -> {cost}')
        return player, 'cost'

    same_cost = [p for p in named if p.cost == cost and p.team_id != team.id]
    if not same_team and len(same_cost) == 1:
        player = same_cost[0]
        player.team_id = team.id
        store.save_league_player(player)
        logger.info(f'{player.name}: moved to {team.name}')
        return player, 'team'

    exact = [p for p in same_team if p.cost == cost]
    if not exact:
        raise NotFoundError('No player found where exactly one of name, team, or cost differs')
    if not new_name or not new_name.strip():
        raise ValueError(f'{exact[0].name} already has that team and cost; give a new name to rename')

    player = exact[0]
    old = player.name
    player.name = new_name.strip()
    clash = [p for p in store.find_league_players(season_id, player.name, team.id) if p.id != player.id]
    if clash:
        raise DuplicateKeyError(f'Player {player.name!r} already exists on team {team.name!r}')
    store.save_league_player(player)
    logger.info(f'{old}: renamed to {player.name}')
    return player, 'name'
