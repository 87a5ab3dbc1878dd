"""Season-scoped document store backed by a single JSON file.

Every public method is atomic with respect to the file: it holds an
exclusive lock on a sibling ``.lock`` file, reloads the league document if
another store wrote it since, and persists the whole document before
returning. Several stores (or processes) may share one file.
Documents handed out are deep copies, so callers must write changes back
explicitly. Fantasy rosters are written with compare-and-swap on their
``revision`` marker.
"""

import fcntl
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from .schemas import (
    FantasyConfig,
    FantasyPlayer,
    LeagueData,
    LeaguePlayer,
    Match,
    Season,
    Team,
)
from .utils import load_json, save_json, utc_now_iso

logger = logging.getLogger('t2fantasy.store')


class DuplicateKeyError(ValueError):
    """A document would violate a uniqueness rule."""


class NotFoundError(LookupError):
    """A referenced document does not exist."""


def _same_name(a: str, b: str) -> bool:
    return a.strip().casefold() == b.strip().casefold()


def _file_signature(path: Path) -> Optional[tuple[int, int, int]]:
    try:
        st = os.stat(path)
    except FileNotFoundError:
        return None
    return st.st_ino, st.st_mtime_ns, st.st_size


class LeagueStore:
    """
    JSON document store for seasons, teams, players, matches and rosters.

    Args:
        path: league.json location. ``None`` keeps everything in memory.
    """

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path else None
        self._data = LeagueData()
        self._signature = None
        self._lock_depth = 0
        with self._locked():
            pass

    @contextmanager
    def _locked(self):
        """
        Hold the league file lock for the duration of one operation.

        Re-entrant: store methods that call other store methods only take
        the lock and refresh the document once, at the outermost level.
        """
        if self.path is None or self._lock_depth:
            self._lock_depth += 1
            try:
                yield
            finally:
                self._lock_depth -= 1
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        lock_path = self.path.with_name(self.path.name + '.lock')
        with open(lock_path, 'a', encoding='utf-8') as lock_file:
            fcntl.flock(lock_file, fcntl.LOCK_EX)
            self._lock_depth += 1
            try:
                self._reload_if_changed()
                yield
            finally:
                self._lock_depth -= 1
                fcntl.flock(lock_file, fcntl.LOCK_UN)

    def _reload_if_changed(self) -> None:
        signature = _file_signature(self.path)
        if signature is None or signature == self._signature:
            return
        self._data = load_json(self.path, schema=LeagueData)
        self._signature = signature
        logger.debug(f'Loaded league data from {self.path}')

    def _commit(self) -> None:
        if self.path:
            save_json(self.path, self._data)
            self._signature = _file_signature(self.path)

    # Seasons

    def list_seasons(self) -> list[Season]:
        with self._locked():
            return [s.model_copy(deep=True) for s in self._data.seasons]

    def get_season(self, season_id: str) -> Optional[Season]:
        with self._locked():
            season = next((s for s in self._data.seasons if s.id == season_id), None)
            return season.model_copy(deep=True) if season else None

    def find_season(self, name: str) -> Optional[Season]:
        with self._locked():
            season = next((s for s in self._data.seasons if s.name == name.strip()), None)
            return season.model_copy(deep=True) if season else None

    def get_active_season(self) -> Optional[Season]:
        with self._locked():
            season = next((s for s in self._data.seasons if s.is_active), None)
            return season.model_copy(deep=True) if season else None

    def add_season(self, season: Season) -> Season:
        with self._locked():
            if any(s.name == season.name for s in self._data.seasons):
                raise DuplicateKeyError(f'Season {season.name!r} already exists')
            if season.is_active:
                for other in self._data.seasons:
                    other.is_active = False
            self._data.seasons.append(season.model_copy(deep=True))
            self._commit()
            return season

    def set_active_season(self, season_id: str) -> Season:
        """Activate one season and deactivate every other."""
        with self._locked():
            target = next((s for s in self._data.seasons if s.id == season_id), None)
            if target is None:
                raise NotFoundError(f'Season {season_id} not found')
            for season in self._data.seasons:
                season.is_active = season.id == season_id
            self._commit()
            return target.model_copy(deep=True)

    def delete_season(self, season_id: str) -> dict[str, int]:
        """Delete a season and every document scoped to it."""
        with self._locked():
            if not any(s.id == season_id for s in self._data.seasons):
                raise NotFoundError(f'Season {season_id} not found')

            data = self._data
            counts = {
                'teams': sum(1 for t in data.teams if t.season_id == season_id),
                'league_players': sum(1 for p in data.league_players if p.season_id == season_id),
                'matches': sum(1 for m in data.matches if m.season_id == season_id),
                'fantasy_players': sum(1 for f in data.fantasy_players if f.season_id == season_id),
                'configs': sum(1 for c in data.configs if c.season_id == season_id),
            }
            data.teams = [t for t in data.teams if t.season_id != season_id]
            data.league_players = [p for p in data.league_players if p.season_id != season_id]
            data.matches = [m for m in data.matches if m.season_id != season_id]
            data.fantasy_players = [f for f in data.fantasy_players if f.season_id != season_id]
            data.configs = [c for c in data.configs if c.season_id != season_id]
            data.seasons = [s for s in data.seasons if s.id != season_id]
            self._commit()
        logger.info(f'Deleted season {season_id}: {counts}')
        return counts

    # Fantasy config

    def get_fantasy_config(self, season_id: str) -> Optional[FantasyConfig]:
        with self._locked():
            cfg = next((c for c in self._data.configs if c.season_id == season_id), None)
            return cfg.model_copy(deep=True) if cfg else None

    def save_fantasy_config(self, config: FantasyConfig) -> FantasyConfig:
        with self._locked():
            self._data.configs = [c for c in self._data.configs if c.season_id != config.season_id]
            self._data.configs.append(config.model_copy(deep=True))
            self._commit()
            return config

    # Teams

    def list_teams(self, season_id: str) -> list[Team]:
        with self._locked():
            return [t.model_copy(deep=True) for t in self._data.teams if t.season_id == season_id]

    def get_team(self, team_id: str) -> Optional[Team]:
        with self._locked():
            team = next((t for t in self._data.teams if t.id == team_id), None)
            return team.model_copy(deep=True) if team else None

    def find_team(self, season_id: str, name: str) -> Optional[Team]:
        with self._locked():
            team = next(
                (t for t in self._data.teams if t.season_id == season_id and _same_name(t.name, name)),
                None,
            )
            return team.model_copy(deep=True) if team else None

    def add_team(self, team: Team) -> Team:
        with self._locked():
            if self.find_team(team.season_id, team.name):
                raise DuplicateKeyError(f'Team {team.name!r} already exists in season {team.season_id}')
            self._data.teams.append(team.model_copy(deep=True))
            self._commit()
            return team

    # League players

    def list_league_players(self, season_id: str) -> list[LeaguePlayer]:
        with self._locked():
            return [
                p.model_copy(deep=True) for p in self._data.league_players if p.season_id == season_id
            ]

    def get_league_player(self, player_id: str) -> Optional[LeaguePlayer]:
        with self._locked():
            player = next((p for p in self._data.league_players if p.id == player_id), None)
            return player.model_copy(deep=True) if player else None

    def get_league_players(self, player_ids: list[str]) -> list[LeaguePlayer]:
        """Fetch players by id, in the given order, skipping dangling ids."""
        with self._locked():
            by_id = {p.id: p for p in self._data.league_players}
            return [by_id[pid].model_copy(deep=True) for pid in player_ids if pid in by_id]

    def find_league_player_by_external_id(
        self, season_id: str, external_id: int
    ) -> Optional[LeaguePlayer]:
        with self._locked():
            player = next(
                (
                    p
                    for p in self._data.league_players
                    if p.season_id == season_id and p.external_id == external_id
                ),
                None,
            )
            return player.model_copy(deep=True) if player else None

    def find_league_players(
        self, season_id: str, name: str, team_id: Optional[str] = None
    ) -> list[LeaguePlayer]:
        """Case-insensitive exact name lookup, optionally within one team."""
        with self._locked():
            return [
                p.model_copy(deep=True)
                for p in self._data.league_players
                if p.season_id == season_id
                and _same_name(p.name, name)
                and (team_id is None or p.team_id == team_id)
            ]

    def add_league_player(self, player: LeaguePlayer) -> LeaguePlayer:
        """Insert a player and attach it to its team's member list."""
        with self._locked():
            team = next((t for t in self._data.teams if t.id == player.team_id), None)
            if team is None:
                raise NotFoundError(f'Team {player.team_id} not found')
            if self.find_league_players(player.season_id, player.name, player.team_id):
                raise DuplicateKeyError(f'Player {player.name!r} already exists on team {team.name!r}')
            self._data.league_players.append(player.model_copy(deep=True))
            if player.id not in team.players:
                team.players.append(player.id)
            self._commit()
            return player

    def save_league_player(self, player: LeaguePlayer) -> LeaguePlayer:
        """Replace a player document, moving it between teams if needed."""
        with self._locked():
            idx = next(
                (i for i, p in enumerate(self._data.league_players) if p.id == player.id), None
            )
            if idx is None:
                raise NotFoundError(f'League player {player.id} not found')
            new_team = next((t for t in self._data.teams if t.id == player.team_id), None)
            if new_team is None:
                raise NotFoundError(f'Team {player.team_id} not found')

            old_team_id = self._data.league_players[idx].team_id
            if old_team_id != player.team_id:
                for team in self._data.teams:
                    if team.id == old_team_id:
                        team.players = [pid for pid in team.players if pid != player.id]
            if player.id not in new_team.players:
                new_team.players.append(player.id)

            self._data.league_players[idx] = player.model_copy(deep=True)
            self._commit()
            return player

    def delete_league_player(self, player_id: str) -> int:
        """
        Delete a league player and pull every reference to it.

        The player is removed from its team, from every fantasy roster and
        from both roster snapshots. Rosters that currently hold the player
        are refunded its cost.

        Returns:
            Number of fantasy players whose documents changed
        """
        with self._locked():
            player = next((p for p in self._data.league_players if p.id == player_id), None)
            if player is None:
                raise NotFoundError(f'League player {player_id} not found')

            for team in self._data.teams:
                team.players = [pid for pid in team.players if pid != player_id]

            touched = 0
            for fp in self._data.fantasy_players:
                if fp.season_id != player.season_id:
                    continue
                refs = (fp.team, fp.swiss_lock_snapshot, fp.playoff_snapshot)
                if not any(player_id in ref for ref in refs):
                    continue
                if player_id in fp.team:
                    fp.wallet += player.cost
                fp.team = [pid for pid in fp.team if pid != player_id]
                fp.swiss_lock_snapshot = [pid for pid in fp.swiss_lock_snapshot if pid != player_id]
                fp.playoff_snapshot = [pid for pid in fp.playoff_snapshot if pid != player_id]
                fp.revision += 1
                fp.updated_at = utc_now_iso()
                touched += 1

            self._data.league_players = [p for p in self._data.league_players if p.id != player_id]
            self._commit()
        logger.info(f'Deleted league player {player.name} ({player_id}); {touched} rosters updated')
        return touched

    # Matches

    def list_matches(self, season_id: str, week: Optional[int] = None) -> list[Match]:
        with self._locked():
            return [
                m.model_copy(deep=True)
                for m in self._data.matches
                if m.season_id == season_id and (week is None or m.week == week)
            ]

    def find_match(self, season_id: str, week: int, team_x: str, team_y: str) -> Optional[Match]:
        """Find a match regardless of which side each team was recorded on."""
        key = tuple(sorted((team_x, team_y)))
        with self._locked():
            match = next(
                (
                    m
                    for m in self._data.matches
                    if m.season_id == season_id
                    and m.week == week
                    and tuple(sorted((m.team_a, m.team_b))) == key
                ),
                None,
            )
            return match.model_copy(deep=True) if match else None

    def upsert_match(self, match: Match) -> bool:
        """
        Insert a match, or replace the one with the same (season, week, teams).

        Returns:
            True if a new match was created
        """
        with self._locked():
            existing = self.find_match(match.season_id, match.week, match.team_a, match.team_b)
            stored = match.model_copy(deep=True)
            if existing:
                stored.id = existing.id
                self._data.matches = [m for m in self._data.matches if m.id != existing.id]
            self._data.matches.append(stored)
            self._commit()
            return existing is None

    # Fantasy players

    def list_fantasy_players(self, season_id: str) -> list[FantasyPlayer]:
        with self._locked():
            return [
                f.model_copy(deep=True) for f in self._data.fantasy_players if f.season_id == season_id
            ]

    def get_fantasy_player(self, season_id: str, discord_id: str) -> Optional[FantasyPlayer]:
        with self._locked():
            fp = next(
                (
                    f
                    for f in self._data.fantasy_players
                    if f.season_id == season_id and f.discord_id == discord_id
                ),
                None,
            )
            return fp.model_copy(deep=True) if fp else None

    def add_fantasy_player(self, player: FantasyPlayer) -> FantasyPlayer:
        with self._locked():
            if self.get_fantasy_player(player.season_id, player.discord_id):
                raise DuplicateKeyError(
                    f'Fantasy player {player.discord_id} already registered in season {player.season_id}'
                )
            player.updated_at = utc_now_iso()
            self._data.fantasy_players.append(player.model_copy(deep=True))
            self._commit()
            return player

    def compare_and_swap_fantasy_player(self, player: FantasyPlayer, expected_revision: int) -> bool:
        """
        Write a fantasy player only if nobody else wrote it since it was read.

        The check runs against the document as persisted, so writes made by
        other stores on the same file are seen. On success the stored
        revision is bumped and ``player`` is updated in place with the new
        revision and timestamp.

        Returns:
            False if the stored revision no longer matches ``expected_revision``
        """
        with self._locked():
            idx = next(
                (i for i, f in enumerate(self._data.fantasy_players) if f.id == player.id), None
            )
            if idx is None:
                raise NotFoundError(f'Fantasy player {player.discord_id} not found')

            current = self._data.fantasy_players[idx]
            if current.revision != expected_revision:
                logger.debug(
                    f'Revision mismatch for {player.discord_id}: '
                    f'expected {expected_revision}, found {current.revision}'
                )
                return False

            player.revision = expected_revision + 1
            player.updated_at = utc_now_iso()
            self._data.fantasy_players[idx] = player.model_copy(deep=True)
            self._commit()
            return True

    def save_fantasy_player(self, player: FantasyPlayer) -> FantasyPlayer:
        """Unconditional write (admin overrides). Still bumps the revision."""
        with self._locked():
            idx = next(
                (i for i, f in enumerate(self._data.fantasy_players) if f.id == player.id), None
            )
            if idx is None:
                raise NotFoundError(f'Fantasy player {player.discord_id} not found')
            player.revision = self._data.fantasy_players[idx].revision + 1
            player.updated_at = utc_now_iso()
            self._data.fantasy_players[idx] = player.model_copy(deep=True)
            self._commit()
            return player

    def snapshot_rosters(self, season_id: str, field: str) -> int:
        """Copy every roster of a season into a snapshot field."""
        if field not in ('swiss_lock_snapshot', 'playoff_snapshot'):
            raise ValueError(f'Unknown snapshot field: {field}')
        with self._locked():
            count = 0
            now = utc_now_iso()
            for fp in self._data.fantasy_players:
                if fp.season_id != season_id:
                    continue
                setattr(fp, field, list(fp.team))
                fp.revision += 1
                fp.updated_at = now
                count += 1
            self._commit()
            return count
