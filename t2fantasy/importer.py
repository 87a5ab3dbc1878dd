"""Import player stats exported by the T2 Trials stats website.

The export is a JSON array of player records::

    [{"id": 17, "name": "Ana", "team_name": "Gimlet", "fantasy_points": 12,
      "weeks": [{"week_number": 1,
                 "games": [{"set": 1, "round": 1, "opponent_id": 22, "winner_id": 17}]}]}]

Each record creates or updates a league player in the given season: team
membership, cost, external id and one performance entry per week. A week
that was imported before is replaced wholesale. Problems with a single
record are counted and reported, never raised.
"""

import json
import logging
from typing import Any

import requests
from pydantic import ValidationError

from .models import ImportSummary
from .performance import build_performance_entries, upsert_performance
from .schemas import ImportPlayerRecord, LeaguePlayer, Team
from .store import DuplicateKeyError, LeagueStore, NotFoundError

logger = logging.getLogger('t2fantasy.importer')


class ImportValidationError(ValueError):
    """The payload as a whole cannot be imported."""


def parse_records(payload: Any) -> list[Any]:
    """Check the payload root; a non-array root rejects the whole import."""
    if not isinstance(payload, list):
        raise ImportValidationError(
            f'Expected a JSON array of player records, got {type(payload).__name__}'
        )
    return payload


def _find_existing(
    store: LeagueStore, season_id: str, record: ImportPlayerRecord, team: Team
) -> LeaguePlayer | None:
    # Prefer the stats website id, fall back to (name, team)
    if record.id is not None:
        player = store.find_league_player_by_external_id(season_id, record.id)
        if player:
            return player
    matches = store.find_league_players(season_id, record.name, team.id)
    return matches[0] if matches else None


def import_record(
    store: LeagueStore,
    season_id: str,
    record: ImportPlayerRecord,
    summary: ImportSummary,
    create_missing: bool = True,
) -> None:
    """Create or update one league player from an import record."""
    entries = build_performance_entries(record)
    if not record.name or not entries:
        summary.skipped += 1
        return
    if not record.team_name:
        summary.not_found += 1
        summary.errors.append(f'{record.name}: missing team_name')
        return

    team = store.find_team(season_id, record.team_name)
    if team is None:
        if not create_missing:
            summary.not_found += 1
            summary.errors.append(f'{record.name}: team {record.team_name!r} not found')
            return
        team = store.add_team(Team(season_id=season_id, name=record.team_name))
        summary.teams_created += 1
        logger.info(f'Created team {team.name}')

    player = _find_existing(store, season_id, record, team)

    if player is None:
        if not create_missing:
            summary.not_found += 1
            summary.errors.append(f'{record.name}: no matching league player')
            return
        player = LeaguePlayer(
            season_id=season_id,
            team_id=team.id,
            name=record.name,
            external_id=record.id,
            cost=record.fantasy_points,
            performance=list(entries.values()),
        )
        store.add_league_player(player)
        summary.created += 1
        logger.debug(f'Created player {player.name} ({team.name})')
        return

    changed = False
    if player.team_id != team.id:
        logger.info(f'Moving {player.name} to team {team.name}')
        player.team_id = team.id
        changed = True

    for entry in entries.values():
        player.performance, entry_changed = upsert_performance(player.performance, entry)
        changed = changed or entry_changed

    if player.cost != record.fantasy_points:
        player.cost = record.fantasy_points
        changed = True

    if record.id is not None and player.external_id is None:
        player.external_id = record.id
        changed = True

    if changed:
        store.save_league_player(player)
        summary.updated += 1
    else:
        summary.skipped += 1


def import_stats_array(
    store: LeagueStore,
    season_id: str,
    payload: Any,
    create_missing: bool = True,
) -> ImportSummary:
    """
    Import a stats website export into a season.

    Args:
        store: League store
        season_id: Season receiving the data
        payload: Decoded JSON (must be a list)
        create_missing: Create teams/players seen for the first time; when
            False they are reported as not found instead

    Returns:
        ImportSummary with created/updated/skipped/not-found counts

    Raises:
        ImportValidationError: If the payload root is not an array
        NotFoundError: If the season does not exist
    """
    records = parse_records(payload)
    if store.get_season(season_id) is None:
        raise NotFoundError(f'Season {season_id} not found')

    summary = ImportSummary()
    for index, raw in enumerate(records):
        try:
            record = ImportPlayerRecord.model_validate(raw)
        except ValidationError as e:
            summary.skipped += 1
            label = raw.get('name', f'#{index}') if isinstance(raw, dict) else f'#{index}'
            summary.errors.append(f'{label}: invalid record ({e.error_count()} errors)')
            logger.warning(f'Skipping invalid record {label}: {e}')
            continue

        try:
            import_record(store, season_id, record, summary, create_missing)
        except (DuplicateKeyError, NotFoundError) as e:
            summary.skipped += 1
            summary.errors.append(f'{record.name}: {e}')
            logger.warning(f'Could not import {record.name}: {e}')

    logger.info(
        f'Import finished: {summary.created} created, {summary.updated} updated, '
        f'{summary.teams_created} teams created, {summary.skipped} skipped, '
        f'{summary.not_found} not found'
    )
    return summary


def fetch_stats(url: str, timeout: float = 30.0) -> Any:
    """
    Download the stats export.

    Raises:
        requests.HTTPError: On a non-2xx response
        ImportValidationError: If the body is not valid JSON
    """
    logger.info(f'Fetching stats from {url}')
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    try:
        return response.json()
    except (json.JSONDecodeError, ValueError) as e:
        raise ImportValidationError(f'Stats export at {url} is not valid JSON: {e}') from e


def import_stats_from_url(
    store: LeagueStore,
    season_id: str,
    url: str,
    timeout: float = 30.0,
) -> ImportSummary:
    """Fetch the stats export from ``url`` and import it."""
    return import_stats_array(store, season_id, fetch_stats(url, timeout))
