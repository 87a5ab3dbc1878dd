"""Result containers returned by the league engine."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .constants import MutationStatus, Phase, TransferReason


@dataclass
class TransferDecision:
    """Outcome of a transfer guard check."""
    allowed: bool
    reason: TransferReason
    swaps_used: Optional[int] = None
    limit: Optional[int] = None


@dataclass
class MutationResult:
    """Outcome of a roster add/remove request."""
    status: MutationStatus
    message: str = ''
    player_id: Optional[str] = None
    wallet: Optional[int] = None
    decision: Optional[TransferDecision] = None

    @property
    def ok(self) -> bool:
        return self.status == MutationStatus.OK

    @property
    def retryable(self) -> bool:
        return self.status == MutationStatus.CONFLICT


@dataclass
class PhaseChange:
    """Result of an admin phase change."""
    previous: Phase
    current: Phase
    snapshot_field: Optional[str] = None
    snapshots_taken: int = 0


@dataclass
class ImportSummary:
    """Counters for a stats import. Per-record problems land in ``errors``."""
    created: int = 0
    updated: int = 0
    teams_created: int = 0
    skipped: int = 0
    not_found: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class MatchBuildSummary:
    """Counters for building team matches from a stats import."""
    created: int = 0
    updated: int = 0
    unresolved_players: List[str] = field(default_factory=list)


@dataclass
class PlayerWeekScore:
    """Container for a league player's score breakdown for one week."""
    player_id: str
    name: str
    week: int
    total_points: int = 0
    breakdown: Dict[str, int] = field(default_factory=dict)
    played: bool = False


@dataclass
class ScoreReport:
    """Stored points for a fantasy player (never recomputed on read)."""
    discord_id: str
    username: Optional[str]
    weekly_points: List[int]
    total_points: int
    week: Optional[int] = None
    week_points: Optional[int] = None


@dataclass
class LeaderboardRow:
    """A single leaderboard line."""
    rank: int
    discord_id: str
    name: str
    score: int
    total: int


@dataclass
class PlayerLeaderboardRow:
    """A league player ranked by fantasy points earned."""
    rank: int
    player_id: str
    name: str
    team: str
    wins: int
    losses: int
    points: int


@dataclass
class PickCount:
    """How many fantasy rosters hold a league player."""
    rank: int
    player_id: str
    name: str
    team: str
    picks: int


@dataclass
class PlayerRecord:
    name: str
    wins: int = 0
    losses: int = 0


@dataclass
class TeamStats:
    """A team's roster with win/loss totals, overall or for one week."""
    team_id: str
    name: str
    shortcode: Optional[str] = None
    week: Optional[int] = None
    wins: int = 0
    losses: int = 0
    players: List[PlayerRecord] = field(default_factory=list)


@dataclass
class RosterEntry:
    player_id: str
    name: str
    team: str
    cost: int


@dataclass
class RosterView:
    """A fantasy user's current roster."""
    discord_id: str
    username: Optional[str]
    players: List[RosterEntry]
    max_team_size: int
    wallet: int
    total_points: int
