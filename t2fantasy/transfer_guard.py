"""Phase state machine and roster change eligibility.

Phases are moved by an admin only. Any target phase is accepted, so
sequencing them is the admin's job. Entering SWISS freezes every roster
into ``swiss_lock_snapshot``; entering PLAYOFFS_OPEN freezes them into
``playoff_snapshot``, the baseline for counting playoff swaps.
"""

import logging
from typing import Iterable, Optional

from .constants import PHASE_SNAPSHOT_FIELDS, Phase, TransferReason
from .models import PhaseChange, TransferDecision
from .schemas import FantasyConfig, FantasyPlayer
from .store import LeagueStore, NotFoundError

logger = logging.getLogger('t2fantasy.transfer_guard')


def count_swaps(snapshot: Iterable[str], proposed: Iterable[str]) -> int:
    """Number of snapshot players missing from the proposed roster."""
    proposed_ids = {str(pid) for pid in proposed}
    return sum(1 for pid in snapshot if str(pid) not in proposed_ids)


def can_modify_team(
    config: Optional[FantasyConfig],
    fantasy_player: Optional[FantasyPlayer],
    proposed_roster: Iterable[str],
) -> TransferDecision:
    """
    Decide whether a roster may be changed into ``proposed_roster``.

    Only the single proposed end state is compared with the playoff
    snapshot; swaps made earlier in the window are not accumulated.

    Args:
        config: The season's FantasyConfig (None behaves as PRESEASON)
        fantasy_player: Roster owner (supplies the playoff snapshot)
        proposed_roster: Roster ids after the change being considered

    Returns:
        TransferDecision with reason, plus swaps_used/limit during playoffs
    """
    phase = config.phase if config else Phase.PRESEASON

    if phase == Phase.PRESEASON:
        return TransferDecision(allowed=True, reason=TransferReason.PRESEASON)
    if phase == Phase.SWISS:
        return TransferDecision(allowed=False, reason=TransferReason.SWISS_LOCKED)
    if phase in (Phase.PLAYOFFS_LOCKED, Phase.SEASON_ENDED):
        return TransferDecision(allowed=False, reason=TransferReason.PLAYOFFS_LOCKED)

    limit = config.playoff_swap_limit
    snapshot = fantasy_player.playoff_snapshot if fantasy_player else []
    swaps = count_swaps(snapshot, proposed_roster)

    if swaps <= limit:
        return TransferDecision(
            allowed=True, reason=TransferReason.PLAYOFFS_OK, swaps_used=swaps, limit=limit
        )
    return TransferDecision(
        allowed=False, reason=TransferReason.PLAYOFFS_LIMIT, swaps_used=swaps, limit=limit
    )


def describe_decision(decision: TransferDecision) -> str:
    """User-facing text for a denied decision."""
    if decision.allowed:
        return 'Team changes are allowed.'
    if decision.reason == TransferReason.SWISS_LOCKED:
        return 'Team changes are locked during the swiss period.'
    if decision.reason == TransferReason.PLAYOFFS_LIMIT:
        return (
            f'Playoff swap limit reached. You have used '
            f'{decision.swaps_used}/{decision.limit} allowed swaps.'
        )
    return 'Team changes are currently locked for playoffs.'


def get_or_create_config(store: LeagueStore, season_id: str) -> FantasyConfig:
    """The season's config, created with defaults on first use."""
    config = store.get_fantasy_config(season_id)
    if config is None:
        season = store.get_season(season_id)
        if season is None:
            raise NotFoundError(f'Season {season_id} not found')
        config = store.save_fantasy_config(
            FantasyConfig(season_id=season_id, season_name=season.name)
        )
    return config


def set_phase(store: LeagueStore, season_id: str, phase: Phase | str) -> PhaseChange:
    """
    Move a season to ``phase`` and take the snapshots that phase requires.

    Raises:
        ValueError: If ``phase`` is not a known phase
        NotFoundError: If the season does not exist
    """
    target = Phase(phase)
    config = get_or_create_config(store, season_id)
    previous = config.phase

    config.phase = target
    store.save_fantasy_config(config)

    change = PhaseChange(previous=previous, current=target)
    snapshot_field = PHASE_SNAPSHOT_FIELDS.get(target)
    if snapshot_field:
        change.snapshot_field = snapshot_field
        change.snapshots_taken = store.snapshot_rosters(season_id, snapshot_field)

    logger.info(
        f'Season {season_id} phase {previous.value} -> {target.value}'
        + (f' ({change.snapshots_taken} rosters snapshotted)' if snapshot_field else '')
    )
    return change


def set_playoff_swap_limit(store: LeagueStore, season_id: str, limit: int) -> FantasyConfig:
    """Change how many playoff swaps each roster may make."""
    if limit < 0:
        raise ValueError(f'Swap limit must be non-negative, got {limit}')
    config = get_or_create_config(store, season_id)
    config.playoff_swap_limit = limit
    return store.save_fantasy_config(config)
