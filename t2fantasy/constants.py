"""Constants and enumerations for the T2 Trials fantasy league."""

from enum import Enum

# Scoring rules (points)
WIN_POINTS = 10
BONUS_ROUND_SWEEP = 15
BONUS_WEEK_POSITIVE = 5
BONUS_STREAK_POSITIVE = 40
BONUS_STREAK_PERFECT = 100

# Number of consecutive weeks (target week included) a streak bonus looks at
STREAK_WEEKS = 3

# Defaults applied when a season or config does not say otherwise
DEFAULT_WALLET = 85
DEFAULT_MAX_TEAM_SIZE = 5
DEFAULT_PLAYOFF_SWAP_LIMIT = 2

# Side of a game/round/set from the point of view of the record holder
SIDE_A = 'A'
SIDE_B = 'B'
SIDE_NONE = 'None'


class Phase(str, Enum):
    """League phases, in the order an admin normally walks through them."""

    PRESEASON = 'PRESEASON'
    SWISS = 'SWISS'
    PLAYOFFS_OPEN = 'PLAYOFFS_OPEN'
    PLAYOFFS_LOCKED = 'PLAYOFFS_LOCKED'
    SEASON_ENDED = 'SEASON_ENDED'


# Snapshot field written on entry to a phase
PHASE_SNAPSHOT_FIELDS = {
    Phase.SWISS: 'swiss_lock_snapshot',
    Phase.PLAYOFFS_OPEN: 'playoff_snapshot',
}


class TransferReason(str, Enum):
    """Reason attached to every transfer guard decision."""

    PRESEASON = 'PRESEASON'
    SWISS_LOCKED = 'SWISS_LOCKED'
    PLAYOFFS_LOCKED = 'PLAYOFFS_LOCKED'
    PLAYOFFS_OK = 'PLAYOFFS_OK'
    PLAYOFFS_LIMIT = 'PLAYOFFS_LIMIT'


class MutationStatus(str, Enum):
    """Outcome of a roster add/remove request."""

    OK = 'OK'
    NOT_REGISTERED = 'NOT_REGISTERED'
    PLAYER_NOT_FOUND = 'PLAYER_NOT_FOUND'
    TEAM_NOT_FOUND = 'TEAM_NOT_FOUND'
    AMBIGUOUS_PLAYER = 'AMBIGUOUS_PLAYER'
    ALREADY_ON_TEAM = 'ALREADY_ON_TEAM'
    NOT_ON_TEAM = 'NOT_ON_TEAM'
    TEAM_FULL = 'TEAM_FULL'
    INSUFFICIENT_FUNDS = 'INSUFFICIENT_FUNDS'
    DENIED = 'DENIED'
    CONFLICT = 'CONFLICT'
