"""Pydantic schemas for league documents and import payloads."""

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

from .constants import (
    DEFAULT_MAX_TEAM_SIZE,
    DEFAULT_PLAYOFF_SWAP_LIMIT,
    DEFAULT_WALLET,
    SIDE_A,
    SIDE_B,
    Phase,
)
from .utils import new_id

Side = Literal['A', 'B', 'None']
# External (stats website) id for performance records, LeaguePlayer id for matches
PlayerRef = Union[int, str, None]


class GameResult(BaseModel):
    """A single duel between two players."""

    game_number: int = Field(..., ge=1)
    player_a: PlayerRef = None
    player_b: PlayerRef = None
    winner: Side = 'None'

    class Config:
        extra = 'forbid'


class RoundResult(BaseModel):
    """A group of games played in the same round of a set."""

    round_number: int = Field(..., ge=1)
    games: list[GameResult] = Field(default_factory=list)
    winner: Side = 'None'

    class Config:
        extra = 'forbid'


class SetResult(BaseModel):
    """A group of rounds."""

    set_number: int = Field(..., ge=1)
    rounds: list[RoundResult] = Field(default_factory=list)
    winner: Side = 'None'

    class Config:
        extra = 'forbid'


def tally_round(round_result: RoundResult) -> tuple[int, int]:
    """Count games won and lost by side A in one round. Void games count for neither."""
    wins = sum(1 for g in round_result.games if g.winner == SIDE_A)
    losses = sum(1 for g in round_result.games if g.winner == SIDE_B)
    return wins, losses


def tally_games(sets: list[SetResult]) -> tuple[int, int]:
    """
    Count games won and lost by side A across a set hierarchy.

    This is the only place wins/losses aggregates are computed.

    Returns:
        Tuple of (wins, losses)
    """
    wins = 0
    losses = 0
    for set_result in sets:
        for round_result in set_result.rounds:
            round_wins, round_losses = tally_round(round_result)
            wins += round_wins
            losses += round_losses
    return wins, losses


class PerformanceEntry(BaseModel):
    """One week of results for a league player.

    ``wins`` and ``losses`` are read-only and always derived from ``sets``.
    They are written out with the document; on load any stored value is
    discarded.
    """

    week: int = Field(..., ge=1)
    sets: list[SetResult] = Field(default_factory=list)

    @model_validator(mode='before')
    @classmethod
    def drop_stored_totals(cls, data):
        if isinstance(data, dict):
            data = {k: v for k, v in data.items() if k not in ('wins', 'losses')}
        return data

    @computed_field
    @property
    def wins(self) -> int:
        return tally_games(self.sets)[0]

    @computed_field
    @property
    def losses(self) -> int:
        return tally_games(self.sets)[1]

    class Config:
        extra = 'forbid'


class Season(BaseModel):
    """Top-level scope for all league and fantasy data."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    is_active: bool = False
    max_team_size: Optional[int] = Field(default=None, ge=1)
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @field_validator('name')
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Season name cannot be blank')
        return v

    class Config:
        extra = 'forbid'


class Team(BaseModel):
    """A real-world T2 Trials team."""

    id: str = Field(default_factory=new_id)
    season_id: str
    name: str = Field(..., min_length=1)
    shortcode: Optional[str] = None
    players: list[str] = Field(default_factory=list)

    @field_validator('name')
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Team name cannot be blank')
        return v

    @field_validator('shortcode')
    @classmethod
    def normalize_shortcode(cls, v):
        if v is None:
            return None
        return v.strip().upper() or None

    class Config:
        extra = 'forbid'


class LeaguePlayer(BaseModel):
    """A draftable league player."""

    id: str = Field(default_factory=new_id)
    season_id: str
    team_id: str
    name: str = Field(..., min_length=1)
    external_id: Optional[int] = None
    cost: int = Field(..., ge=0)
    performance: list[PerformanceEntry] = Field(default_factory=list)

    def get_week(self, week: int) -> Optional[PerformanceEntry]:
        """Return the performance entry for a week, or None."""
        if week < 1:
            return None
        return next((e for e in self.performance if e.week == week), None)

    class Config:
        extra = 'forbid'


class PlayerResult(BaseModel):
    """Per-player win/loss summary inside a match."""

    player: str
    wins: int = Field(default=0, ge=0)
    losses: int = Field(default=0, ge=0)

    class Config:
        extra = 'forbid'


class Match(BaseModel):
    """Team-level result of one week's fixture between two teams."""

    id: str = Field(default_factory=new_id)
    season_id: str
    week: int = Field(..., ge=1)
    team_a: str
    team_b: str
    sets: list[SetResult] = Field(default_factory=list)
    winner: Side = 'None'
    players_results: list[PlayerResult] = Field(default_factory=list)

    class Config:
        extra = 'forbid'


class FantasyPlayer(BaseModel):
    """A human participant's fantasy roster and score sheet."""

    id: str = Field(default_factory=new_id)
    season_id: str
    discord_id: str = Field(..., min_length=1)
    username: Optional[str] = None
    team: list[str] = Field(default_factory=list)
    wallet: int = Field(default=DEFAULT_WALLET, ge=0)
    weekly_points: list[int] = Field(default_factory=list)
    total_points: int = Field(default=0, ge=0)
    swiss_lock_snapshot: list[str] = Field(default_factory=list)
    playoff_snapshot: list[str] = Field(default_factory=list)
    # Last-modified marker used for compare-and-swap writes
    revision: int = Field(default=0, ge=0)
    updated_at: Optional[str] = None

    class Config:
        extra = 'forbid'


class FantasyConfig(BaseModel):
    """Per-season game settings and phase."""

    season_id: str
    season_name: Optional[str] = None
    phase: Phase = Phase.PRESEASON
    playoff_swap_limit: int = Field(default=DEFAULT_PLAYOFF_SWAP_LIMIT, ge=0)
    current_week: int = Field(default=1, ge=1)

    class Config:
        extra = 'forbid'


class LeagueData(BaseModel):
    """Complete league.json file structure."""

    seasons: list[Season] = Field(default_factory=list)
    teams: list[Team] = Field(default_factory=list)
    league_players: list[LeaguePlayer] = Field(default_factory=list)
    matches: list[Match] = Field(default_factory=list)
    fantasy_players: list[FantasyPlayer] = Field(default_factory=list)
    configs: list[FantasyConfig] = Field(default_factory=list)

    class Config:
        extra = 'forbid'


# Import payload (stats website export)


class ImportGame(BaseModel):
    """One game as exported by the stats website."""

    set: int = Field(default=1, ge=1)
    round: int = Field(..., ge=1)
    opponent_id: Optional[int] = None
    winner_id: Optional[int] = None

    class Config:
        extra = 'ignore'


class ImportWeek(BaseModel):
    """One week of games for a player."""

    week_number: int = Field(..., ge=1)
    games: list[ImportGame] = Field(default_factory=list)

    class Config:
        extra = 'ignore'


class ImportPlayerRecord(BaseModel):
    """A player record from the stats website export."""

    id: Optional[int] = None
    name: str = ''
    team_name: Optional[str] = None
    fantasy_points: int = Field(default=0, ge=0)
    weeks: list[ImportWeek] = Field(default_factory=list)

    @field_validator('name')
    @classmethod
    def strip_name(cls, v):
        return v.strip()

    @field_validator('team_name')
    @classmethod
    def strip_team_name(cls, v):
        if v is None:
            return None
        return v.strip() or None

    class Config:
        extra = 'ignore'


class AppConfig(BaseModel):
    """Application configuration settings."""

    data_file: str = 'data/league.json'
    stats_url: Optional[str] = None
    default_wallet: int = Field(default=DEFAULT_WALLET, ge=0)
    default_max_team_size: int = Field(default=DEFAULT_MAX_TEAM_SIZE, ge=1)
    default_playoff_swap_limit: int = Field(default=DEFAULT_PLAYOFF_SWAP_LIMIT, ge=0)
    log_dir: str = 'logs'
    request_timeout: float = Field(default=30.0, gt=0)

    class Config:
        extra = 'forbid'


class ManualResult(BaseModel):
    """One row of a hand-entered match result."""

    player: str = Field(..., min_length=1)
    wins: int = Field(default=0, ge=0)
    losses: int = Field(default=0, ge=0)

    @field_validator('player', mode='before')
    @classmethod
    def strip_player(cls, v):
        return v.strip() if isinstance(v, str) else v

    class Config:
        extra = 'ignore'
