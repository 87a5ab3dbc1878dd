"""Build team-level match records from a stats website export.

Every game appears twice in the export, once in each player's record.
Games are oriented so that side A is always the team with the smaller id,
which also makes (season, week, team pair) a stable match key.

Matches without a game log can be entered by hand with ``add_match``.
"""

import logging
from collections import defaultdict
from typing import Any, Optional

from pydantic import ValidationError

from .constants import SIDE_A, SIDE_B, SIDE_NONE
from .importer import ImportValidationError, parse_records
from .models import MatchBuildSummary
from .performance import game_winner, majority_winner, round_winner, set_winner, upsert_performance
from .schemas import (
    GameResult,
    ImportGame,
    ImportPlayerRecord,
    LeaguePlayer,
    ManualResult,
    Match,
    PerformanceEntry,
    PlayerResult,
    RoundResult,
    SetResult,
)
from .store import DuplicateKeyError, LeagueStore, NotFoundError

logger = logging.getLogger('t2fantasy.matches')

_FLIP = {SIDE_A: SIDE_B, SIDE_B: SIDE_A, SIDE_NONE: SIDE_NONE}


def canonical_teams(team_x: str, team_y: str) -> tuple[str, str]:
    """Order a team pair the way matches are keyed."""
    return (team_x, team_y) if team_x <= team_y else (team_y, team_x)


def _resolve(store: LeagueStore, season_id: str, record: ImportPlayerRecord) -> Optional[LeaguePlayer]:
    if record.id is not None:
        player = store.find_league_player_by_external_id(season_id, record.id)
        if player:
            return player
    team_id = None
    if record.team_name:
        team = store.find_team(season_id, record.team_name)
        if team is None:
            return None
        team_id = team.id
    matches = store.find_league_players(season_id, record.name, team_id)
    return matches[0] if len(matches) == 1 else None


def _week_games(record: ImportPlayerRecord, week: int) -> list[ImportGame]:
    return [g for w in record.weeks if w.week_number == week for g in w.games]


def _build_match(
    season_id: str,
    week: int,
    team_a: str,
    team_b: str,
    games_by_round: dict[tuple[int, int], list[tuple[str, str, str]]],
) -> Match:
    rounds_by_set: dict[int, list[RoundResult]] = defaultdict(list)
    results: dict[str, PlayerResult] = {}

    for (set_number, round_number), games in sorted(games_by_round.items()):
        game_results = []
        for i, (player_a, player_b, winner) in enumerate(games, 1):
            game_results.append(
                GameResult(game_number=i, player_a=player_a, player_b=player_b, winner=winner)
            )
            res_a = results.setdefault(player_a, PlayerResult(player=player_a))
            res_b = results.setdefault(player_b, PlayerResult(player=player_b))
            if winner == SIDE_A:
                res_a.wins += 1
                res_b.losses += 1
            elif winner == SIDE_B:
                res_b.wins += 1
                res_a.losses += 1
        rounds_by_set[set_number].append(
            RoundResult(
                round_number=round_number, games=game_results, winner=round_winner(game_results)
            )
        )

    sets = [
        SetResult(set_number=n, rounds=rounds, winner=set_winner(rounds))
        for n, rounds in sorted(rounds_by_set.items())
    ]
    a_sets = sum(1 for s in sets if s.winner == SIDE_A)
    b_sets = sum(1 for s in sets if s.winner == SIDE_B)

    return Match(
        season_id=season_id,
        week=week,
        team_a=team_a,
        team_b=team_b,
        sets=sets,
        winner=majority_winner(a_sets, b_sets),
        players_results=sorted(results.values(), key=lambda r: r.player),
    )


def build_matches_from_stats(
    store: LeagueStore, season_id: str, week: int, payload: Any
) -> MatchBuildSummary:
    """
    Create or replace the week's matches from a stats export.

    Only players already known to the season are used; anyone else is
    listed in ``unresolved_players`` and their games are left out.

    Raises:
        ImportValidationError: If the payload root is not an array
    """
    summary = MatchBuildSummary()
    resolved: dict[int, tuple[LeaguePlayer, list[ImportGame]]] = {}

    for raw in parse_records(payload):
        try:
            record = ImportPlayerRecord.model_validate(raw)
        except ValidationError:
            summary.unresolved_players.append(str(raw.get('name')) if isinstance(raw, dict) else '?')
            continue
        games = _week_games(record, week)
        if not games:
            continue
        player = _resolve(store, season_id, record)
        if player is None or record.id is None:
            summary.unresolved_players.append(record.name or '?')
            continue
        resolved[record.id] = (player, games)

    # (team pair, set, round, player_a, player_b) -> perspective player id -> oriented games
    buckets: dict[tuple, dict[str, list[tuple[str, str, str]]]] = defaultdict(lambda: defaultdict(list))
    for external_id, (player, games) in resolved.items():
        for game in games:
            opponent = resolved.get(game.opponent_id) if game.opponent_id is not None else None
            if opponent is None:
                continue
            opponent_player = opponent[0]
            if opponent_player.team_id == player.team_id:
                continue

            winner = game_winner(external_id, game.opponent_id, game.winner_id)
            team_a, team_b = canonical_teams(player.team_id, opponent_player.team_id)
            if player.team_id == team_a:
                oriented = (player.id, opponent_player.id, winner)
            else:
                oriented = (opponent_player.id, player.id, _FLIP[winner])

            key = ((team_a, team_b), game.set, game.round, oriented[0], oriented[1])
            buckets[key][player.id].append(oriented)

    by_pair: dict[tuple[str, str], dict[tuple[int, int], list[tuple[str, str, str]]]] = defaultdict(
        lambda: defaultdict(list)
    )
    for (pair, set_number, round_number, player_a, player_b), perspectives in sorted(buckets.items()):
        # Each game is reported by both players; trust side A's record when present
        games = perspectives.get(player_a) or perspectives.get(player_b) or []
        by_pair[pair][(set_number, round_number)].extend(games)

    for (team_a, team_b), games_by_round in sorted(by_pair.items()):
        match = _build_match(season_id, week, team_a, team_b, games_by_round)
        if store.upsert_match(match):
            summary.created += 1
        else:
            summary.updated += 1
        logger.info(f'Week {week}: match {team_a} vs {team_b} winner {match.winner}')

    return summary


def manual_performance_entry(player: LeaguePlayer, week: int, wins: int, losses: int) -> PerformanceEntry:
    """A one-round week holding ``wins`` won and ``losses`` lost games."""
    games = [
        GameResult(game_number=i, player_a=player.external_id, winner=winner)
        for i, winner in enumerate([SIDE_A] * wins + [SIDE_B] * losses, 1)
    ]
    rounds = [RoundResult(round_number=1, games=games, winner=round_winner(games))] if games else []
    sets = [SetResult(set_number=1, rounds=rounds, winner=set_winner(rounds))] if rounds else []
    return PerformanceEntry(week=week, sets=sets)


def add_match(
    store: LeagueStore,
    season_id: str,
    week: int,
    team_a_name: str,
    team_b_name: str,
    results: Any,
) -> Match:
    """
    Record a match and its per-player results by hand.

    ``results`` is a list of ``{"player": name, "wins": n, "losses": n}``
    rows. Every row is checked before anything is written. Each listed
    player's performance for the week is replaced by a single round with
    that many won and lost games.

    Raises:
        ImportValidationError: If ``results`` is not a list or a row is invalid
        NotFoundError: If a team is unknown or a player is on neither team
        DuplicateKeyError: If the two teams already have a match that week
    """
    if week < 1:
        raise ValueError(f'Week must be >= 1, got {week}')
    if not isinstance(results, list):
        raise ImportValidationError(
            f'Expected a JSON array of {{player, wins, losses}} rows, got {type(results).__name__}'
        )

    team_x = store.find_team(season_id, team_a_name)
    team_y = store.find_team(season_id, team_b_name)
    if team_x is None or team_y is None:
        raise NotFoundError(f'Unknown team(s): A={team_a_name!r} B={team_b_name!r}')
    if team_x.id == team_y.id:
        raise ValueError(f'A team cannot play itself: {team_x.name}')
    if store.find_match(season_id, week, team_x.id, team_y.id):
        raise DuplicateKeyError(
            f'Match for week {week} between {team_x.name} and {team_y.name} already exists'
        )

    rows: list[tuple[LeaguePlayer, ManualResult]] = []
    for raw in results:
        try:
            row = ManualResult.model_validate(raw)
        except ValidationError as e:
            raise ImportValidationError(f'Invalid result row {raw!r}: {e.errors()[0]["msg"]}') from e
        candidates = store.find_league_players(season_id, row.player, team_x.id) or store.find_league_players(
            season_id, row.player, team_y.id
        )
        if not candidates:
            raise NotFoundError(f'Player {row.player!r} not found on {team_x.name} or {team_y.name}')
        if any(p.id == candidates[0].id for p, _ in rows):
            raise ImportValidationError(f'Player {row.player!r} is listed more than once')
        rows.append((candidates[0], row))

    team_a, team_b = canonical_teams(team_x.id, team_y.id)
    match = Match(
        season_id=season_id,
        week=week,
        team_a=team_a,
        team_b=team_b,
        players_results=[
            PlayerResult(player=player.id, wins=row.wins, losses=row.losses) for player, row in rows
        ],
    )
    store.upsert_match(match)

    for player, row in rows:
        entry = manual_performance_entry(player, week, row.wins, row.losses)
        player.performance, changed = upsert_performance(player.performance, entry)
        if changed:
            store.save_league_player(player)

    logger.info(f'Week {week}: recorded {team_x.name} vs {team_y.name} with {len(rows)} player results')
    return match
