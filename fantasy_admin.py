#!/usr/bin/env python3
"""
T2 Trials Fantasy League admin CLI

Runs league operations against the JSON league store (data/league.json by
default). Commands act on the active season unless --season is given.

Usage:
    python fantasy_admin.py new-season S2 --max-team-size 5
    python fantasy_admin.py import stats.json
    python fantasy_admin.py calculate --week 3
    python fantasy_admin.py set-phase PLAYOFFS_OPEN
    python fantasy_admin.py pick 123456789 "Ana" --team Gimlet
    python fantasy_admin.py leaderboard --week 3
    python fantasy_admin.py add-match --week 2 Gimlet Hex '[{"player": "Ana", "wins": 2, "losses": 1}]'
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import requests

from t2fantasy import (
    DuplicateKeyError,
    ImportValidationError,
    LeagueStore,
    NotFoundError,
    Phase,
    activate_season,
    add_league_player,
    add_match,
    build_matches_from_stats,
    calculate_scores_for_week,
    create_season,
    create_team,
    delete_league_player,
    delete_season,
    drop_player,
    get_leaderboard,
    get_player_leaderboard,
    get_score,
    import_stats_array,
    join_league,
    most_picked_players,
    pick_player,
    player_pick_stats,
    recalculate_all_weeks,
    run_weekly_import_once,
    set_phase,
    set_playoff_swap_limit,
    set_wallet,
    substitute_league_player,
    team_stats,
    view_roster,
)
from t2fantasy.config import get_config
from t2fantasy.importer import import_stats_from_url
from t2fantasy.logging_config import setup_logging
from t2fantasy.roster import get_max_team_size
from t2fantasy.schemas import Season
from t2fantasy.utils import load_json
from t2fantasy.validators import validate_season

logger = logging.getLogger('t2fantasy.cli')


def resolve_season(store: LeagueStore, name: Optional[str]) -> Season:
    """Season named on the command line, or the active one."""
    season = store.find_season(name) if name else store.get_active_season()
    if season is None:
        raise NotFoundError(f'Season {name!r} does not exist' if name else 'No active season set')
    return season


def cmd_seasons(store, args):
    seasons = store.list_seasons()
    if not seasons:
        print('No seasons yet.')
    for season in seasons:
        cfg = store.get_fantasy_config(season.id)
        phase = cfg.phase.value if cfg else '-'
        marker = '*' if season.is_active else ' '
        print(f' {marker} {season.name}  phase={phase}  week={cfg.current_week if cfg else "-"}')
    return 0


def cmd_new_season(store, args):
    season, carried = create_season(store, args.name, max_team_size=args.max_team_size)
    print(f'✅ Created season {season.name} (PRESEASON, week 1); carried over {carried} users')
    return 0


def cmd_activate(store, args):
    season, cfg = activate_season(store, args.name)
    print(f'✅ Activated season {season.name} - phase {cfg.phase.value}, week {cfg.current_week}')
    return 0


def cmd_delete_season(store, args):
    counts = delete_season(store, args.name)
    details = ', '.join(f'{v} {k}' for k, v in counts.items())
    print(f'✅ Deleted season {args.name} ({details})')
    return 0


def cmd_import(store, args):
    season = resolve_season(store, args.season)
    payload = load_json(args.file)
    summary = import_stats_array(store, season.id, payload, create_missing=not args.no_create)
    print(
        f'✅ Import into {season.name}: {summary.created} created, {summary.updated} updated, '
        f'{summary.teams_created} teams created, {summary.skipped} skipped, '
        f'{summary.not_found} not found'
    )
    for error in summary.errors:
        print(f'   ⚠️  {error}')
    return 0


def cmd_import_url(store, args):
    season = resolve_season(store, args.season)
    url = args.url or get_config().stats_url
    if not url:
        print('❌ No stats URL given and none configured (STATS_URL)')
        return 1
    summary = import_stats_from_url(store, season.id, url, timeout=get_config().request_timeout)
    print(
        f'✅ Import into {season.name}: {summary.created} created, {summary.updated} updated, '
        f'{summary.skipped} skipped, {summary.not_found} not found'
    )
    return 0


def cmd_build_matches(store, args):
    season = resolve_season(store, args.season)
    summary = build_matches_from_stats(store, season.id, args.week, load_json(args.file))
    print(f'✅ Week {args.week}: {summary.created} matches created, {summary.updated} updated')
    if summary.unresolved_players:
        print(f'   ⚠️  Unresolved players: {", ".join(summary.unresolved_players)}')
    return 0


def cmd_calculate(store, args):
    season = resolve_season(store, args.season)
    if args.all:
        results = recalculate_all_weeks(store, season.id)
        print(f'✅ Recalculated weeks 1-{max(results)} for {season.name}')
    else:
        updated = calculate_scores_for_week(store, season.id, args.week)
        print(f'✅ Calculated scores for week {args.week}. Updated {updated} fantasy players.')
    return 0


def cmd_set_phase(store, args):
    season = resolve_season(store, args.season)
    change = set_phase(store, season.id, args.phase)
    suffix = ' (snapshots updated)' if change.snapshot_field else ''
    print(f'✅ Phase changed: {change.previous.value} → {change.current.value}{suffix}')
    return 0


def cmd_swap_limit(store, args):
    season = resolve_season(store, args.season)
    cfg = set_playoff_swap_limit(store, season.id, args.limit)
    print(f'✅ Playoff swap limit for {season.name} is now {cfg.playoff_swap_limit}')
    return 0


def cmd_join(store, args):
    season = resolve_season(store, args.season)
    player = join_league(store, season.id, args.discord_id, args.username)
    if player is None:
        print(f'ℹ️  {args.discord_id} is already registered in {season.name}')
        return 0
    print(f'✅ Registered {args.username or args.discord_id} with a wallet of {player.wallet}')
    return 0


def _print_mutation(result):
    icon = '✅' if result.ok else '⛔'
    print(f'{icon} {result.message}')
    if result.ok and result.wallet is not None:
        print(f'   Wallet: {result.wallet}')
    return 0 if result.ok else 2


def cmd_pick(store, args):
    season = resolve_season(store, args.season)
    result = pick_player(
        store,
        season.id,
        args.discord_id,
        args.player,
        args.team,
        max_team_size=get_max_team_size(store, season.id, get_config().default_max_team_size),
    )
    return _print_mutation(result)


def cmd_remove(store, args):
    season = resolve_season(store, args.season)
    return _print_mutation(drop_player(store, season.id, args.discord_id, args.player, args.team))


def cmd_score(store, args):
    season = resolve_season(store, args.season)
    report = get_score(store, season.id, args.discord_id, args.week)
    if report is None:
        print(f'❌ {args.discord_id} is not registered in {season.name}')
        return 1
    name = report.username or report.discord_id
    if args.week:
        print(f'{name} - Week {args.week}: {report.week_points} pts (total {report.total_points})')
        return 0
    if not report.weekly_points:
        print(f'{name} - no weekly scores yet (total {report.total_points})')
        return 0
    for week, points in enumerate(report.weekly_points, 1):
        print(f'  Week {week} - {points} pts')
    print(f'  Total: {report.total_points} pts')
    return 0


def cmd_leaderboard(store, args):
    season = resolve_season(store, args.season)
    rows = get_leaderboard(store, season.id, args.week, args.limit)
    print(f'Week {args.week} Leaderboard' if args.week else 'Overall Leaderboard')
    if not rows:
        print('  No results.')
    for row in rows:
        right = f'{row.score} pts (total {row.total})' if args.week else f'{row.score} pts'
        print(f'  #{row.rank} {row.name} - {right}')
    return 0


def cmd_set_wallet(store, args):
    season = resolve_season(store, args.season)
    updated = set_wallet(store, season.id, args.amount, args.user)
    if args.user and not updated:
        print(f'❌ {args.user} is not registered in {season.name}')
        return 1
    print(f'✅ Set wallet to {args.amount} for {updated} fantasy players')
    return 0


def cmd_delete_player(store, args):
    season = resolve_season(store, args.season)
    touched = delete_league_player(store, season.id, args.name, args.team)
    print(f'✅ Deleted {args.name} from {args.team}; {touched} fantasy rosters updated')
    return 0


def cmd_create_team(store, args):
    season = resolve_season(store, args.season)
    team = create_team(store, season.id, args.name, args.shortcode)
    code = f' [{team.shortcode}]' if team.shortcode else ''
    print(f'✅ Created team {team.name}{code} in {season.name}')
    return 0


def cmd_add_player(store, args):
    season = resolve_season(store, args.season)
    player = add_league_player(store, season.id, args.name, args.team, args.cost)
    print(f'✅ Added {player.name} (id {player.external_id}) to {args.team} for {player.cost}')
    return 0


def cmd_substitute_player(store, args):
    season = resolve_season(store, args.season)
    player, changed = substitute_league_player(
        store, season.id, args.name, args.team, args.cost, new_name=args.new_name
    )
    print(f'✅ Changed {changed} for {player.name} (team {args.team}, cost {player.cost})')
    return 0


def _read_results(value: str):
    """Results given as inline JSON or as a JSON file path."""
    if value.lstrip().startswith(('[', '{')):
        return json.loads(value)
    return load_json(value)


def cmd_add_match(store, args):
    season = resolve_season(store, args.season)
    match = add_match(store, season.id, args.week, args.team_a, args.team_b, _read_results(args.results))
    print(
        f'✅ Match recorded: {args.team_a} vs {args.team_b} (week {args.week}) '
        f'with {len(match.players_results)} player results'
    )
    return 0


def cmd_player_leaderboard(store, args):
    season = resolve_season(store, args.season)
    rows = get_player_leaderboard(store, season.id, args.week, args.limit)
    print(f'{season.name} Week {args.week} Player Leaderboard' if args.week else f'Overall {season.name} Player Leaderboard')
    if not rows:
        print('  No results.')
    for row in rows:
        print(f'  #{row.rank} {row.name} ({row.team}) - {row.points} pts | {row.wins}W/{row.losses}L')
    return 0


def cmd_most_picked(store, args):
    season = resolve_season(store, args.season)
    rows = most_picked_players(store, season.id, args.limit)
    print(f'Most-Picked Players ({season.name})')
    if not rows:
        print('  No results.')
    for row in rows:
        print(f'  #{row.rank} {row.name} ({row.team}) - {row.picks} picks')
    return 0


def cmd_pick_stats(store, args):
    season = resolve_season(store, args.season)
    row = player_pick_stats(store, season.id, args.name, args.team)
    print(f'{row.name} ({row.team}): picked in {row.picks} fantasy teams (#{row.rank} in {season.name})')
    return 0


def cmd_team_stats(store, args):
    season = resolve_season(store, args.season)
    stats = team_stats(store, season.id, args.team, args.week)
    scope = f'Week {args.week}' if args.week else 'Season'
    print(f'{stats.name} - {scope}: {stats.wins}W/{stats.losses}L')
    if not stats.players:
        print('  No players.')
    for record in stats.players:
        print(f'  {record.name} - {record.wins}W/{record.losses}L')
    return 0


def cmd_view_team(store, args):
    season = resolve_season(store, args.season)
    view = view_roster(store, season.id, args.discord_id)
    if view is None:
        print(f'❌ {args.discord_id} is not registered in {season.name}')
        return 1
    name = view.username or view.discord_id
    print(f'{name} - {len(view.players)}/{view.max_team_size} players, wallet {view.wallet}, {view.total_points} pts')
    if not view.players:
        print('  No players picked yet.')
    for entry in view.players:
        print(f'  {entry.name} ({entry.team}) - cost {entry.cost}')
    return 0


def cmd_weekly(store, args):
    season = resolve_season(store, args.season)
    config = get_config()
    if not config.stats_url:
        print('❌ STATS_URL not set')
        return 1
    result = run_weekly_import_once(
        store,
        season.id,
        config.stats_url,
        full_recalc=args.full_recalc,
        advance_pointer=args.advance,
        timeout=config.request_timeout,
    )
    summary = result.import_summary
    print(
        f'✅ Imported ({summary.created} created, {summary.updated} updated); '
        f'scored weeks {", ".join(str(w) for w in result.weeks_scored)}'
    )
    if result.next_week:
        print(f'   Current week is now {result.next_week}')
    return 0


def cmd_validate(store, args):
    season = resolve_season(store, args.season)
    max_team_size = get_max_team_size(store, season.id, get_config().default_max_team_size)
    errors = validate_season(store, season.id, max_team_size)
    if not errors:
        print(f'✅ {season.name}: no problems found')
        return 0
    for error in errors:
        print(f'❌ {error}')
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='T2 Trials Fantasy League admin tool')
    parser.add_argument('--data-file', '-d', default=None, help='League store JSON file')
    parser.add_argument('--season', '-s', default=None, help='Season name (default: active season)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    parser.add_argument('--no-log-file', action='store_true', help='Log to console only')

    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('seasons', help='List seasons')
    p.set_defaults(func=cmd_seasons)

    p = sub.add_parser('new-season', help='Create and activate a season')
    p.add_argument('name')
    p.add_argument('--max-team-size', type=int, default=None)
    p.set_defaults(func=cmd_new_season)

    p = sub.add_parser('activate', help='Make a season the active one')
    p.add_argument('name')
    p.set_defaults(func=cmd_activate)

    p = sub.add_parser('delete-season', help='Delete a season and all its data')
    p.add_argument('name')
    p.set_defaults(func=cmd_delete_season)

    p = sub.add_parser('import', help='Import a stats website JSON file')
    p.add_argument('file', type=Path)
    p.add_argument('--no-create', action='store_true', help='Report unknown players instead of creating them')
    p.set_defaults(func=cmd_import)

    p = sub.add_parser('import-url', help='Import the stats export from a URL')
    p.add_argument('url', nargs='?', default=None)
    p.set_defaults(func=cmd_import_url)

    p = sub.add_parser('build-matches', help='Build team matches for a week from a stats file')
    p.add_argument('file', type=Path)
    p.add_argument('--week', '-w', type=int, required=True)
    p.set_defaults(func=cmd_build_matches)

    p = sub.add_parser('calculate', help='Calculate fantasy scores')
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument('--week', '-w', type=int)
    group.add_argument('--all', action='store_true', help='Recalculate every week')
    p.set_defaults(func=cmd_calculate)

    p = sub.add_parser('set-phase', help='Set the season phase (takes snapshots)')
    p.add_argument('phase', choices=[ph.value for ph in Phase])
    p.set_defaults(func=cmd_set_phase)

    p = sub.add_parser('swap-limit', help='Set the playoff swap limit')
    p.add_argument('limit', type=int)
    p.set_defaults(func=cmd_swap_limit)

    p = sub.add_parser('join', help='Register a user in the season')
    p.add_argument('discord_id')
    p.add_argument('--username', default=None)
    p.set_defaults(func=cmd_join)

    p = sub.add_parser('pick', help='Add a league player to a user roster')
    p.add_argument('discord_id')
    p.add_argument('player')
    p.add_argument('--team', default=None, help='Team name to disambiguate')
    p.set_defaults(func=cmd_pick)

    p = sub.add_parser('remove', help='Remove a league player from a user roster')
    p.add_argument('discord_id')
    p.add_argument('player')
    p.add_argument('--team', default=None, help='Team name to disambiguate')
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser('score', help='Show stored points for a user')
    p.add_argument('discord_id')
    p.add_argument('--week', '-w', type=int, default=None)
    p.set_defaults(func=cmd_score)

    p = sub.add_parser('leaderboard', help='Show the leaderboard')
    p.add_argument('--week', '-w', type=int, default=None)
    p.add_argument('--limit', '-n', type=int, default=10)
    p.set_defaults(func=cmd_leaderboard)

    p = sub.add_parser('set-wallet', help='Set wallet for one user or everyone')
    p.add_argument('amount', type=int)
    p.add_argument('--user', default=None, help='Discord id (default: all users)')
    p.set_defaults(func=cmd_set_wallet)

    p = sub.add_parser('delete-player', help='Delete a league player')
    p.add_argument('name')
    p.add_argument('team')
    p.set_defaults(func=cmd_delete_player)

    p = sub.add_parser('create-team', help='Create a team by hand')
    p.add_argument('name')
    p.add_argument('--shortcode', default=None)
    p.set_defaults(func=cmd_create_team)

    p = sub.add_parser('add-player', help='Add a league player to a team')
    p.add_argument('name')
    p.add_argument('team')
    p.add_argument('cost', type=int)
    p.set_defaults(func=cmd_add_player)

    p = sub.add_parser('substitute-player', help="Correct one of a league player's name, team or cost")
    p.add_argument('name')
    p.add_argument('team')
    p.add_argument('cost', type=int)
    p.add_argument('--new-name', default=None, help='New name when renaming')
    p.set_defaults(func=cmd_substitute_player)

    p = sub.add_parser('add-match', help='Record a match and per-player results by hand')
    p.add_argument('team_a')
    p.add_argument('team_b')
    p.add_argument('results', help='JSON file or inline JSON: [{"player": ..., "wins": n, "losses": n}]')
    p.add_argument('--week', '-w', type=int, required=True)
    p.set_defaults(func=cmd_add_match)

    p = sub.add_parser('player-leaderboard', help='Rank league players by fantasy points')
    p.add_argument('--week', '-w', type=int, default=None)
    p.add_argument('--limit', '-n', type=int, default=10)
    p.set_defaults(func=cmd_player_leaderboard)

    p = sub.add_parser('most-picked', help='League players in the most fantasy rosters')
    p.add_argument('--limit', '-n', type=int, default=10)
    p.set_defaults(func=cmd_most_picked)

    p = sub.add_parser('pick-stats', help='How many rosters hold a league player')
    p.add_argument('name')
    p.add_argument('--team', default=None, help='Team name to disambiguate')
    p.set_defaults(func=cmd_pick_stats)

    p = sub.add_parser('team-stats', help='Team roster with win/loss totals')
    p.add_argument('team')
    p.add_argument('--week', '-w', type=int, default=None)
    p.set_defaults(func=cmd_team_stats)

    p = sub.add_parser('view-team', help="Show a user's fantasy roster")
    p.add_argument('discord_id')
    p.set_defaults(func=cmd_view_team)

    p = sub.add_parser('weekly', help='Import from STATS_URL and score')
    p.add_argument('--full-recalc', action='store_true')
    p.add_argument('--advance', action='store_true', help='Advance the current week pointer')
    p.set_defaults(func=cmd_weekly)

    p = sub.add_parser('validate', help='Check season data integrity')
    p.set_defaults(func=cmd_validate)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = get_config()

    setup_logging(
        log_dir=Path(config.log_dir),
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_to_file=not args.no_log_file,
    )

    try:
        store = LeagueStore(args.data_file or config.data_file)
        return args.func(store, args)
    # JSONDecodeError is a ValueError, so it must be caught first
    except (FileNotFoundError, json.JSONDecodeError) as e:
        print(f'❌ Could not read input: {e}')
        return 1
    except (NotFoundError, DuplicateKeyError, ImportValidationError, ValueError) as e:
        print(f'❌ {e}')
        return 1
    except requests.RequestException as e:
        logger.error(f'Stats download failed: {e}')
        print(f'❌ Stats download failed: {e}')
        return 1


if __name__ == '__main__':
    sys.exit(main())
