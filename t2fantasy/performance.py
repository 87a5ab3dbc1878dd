"""Build per-week performance records from imported game lists."""

from collections import defaultdict
from typing import Optional

from .constants import SIDE_A, SIDE_B, SIDE_NONE
from .schemas import (
    GameResult,
    ImportGame,
    ImportPlayerRecord,
    PerformanceEntry,
    RoundResult,
    SetResult,
    tally_round,
)


def game_winner(subject_id: Optional[int], opponent_id: Optional[int], winner_id: Optional[int]) -> str:
    """
    Resolve which side won a game.

    Returns 'A' when the subject player won, 'B' when the opponent won,
    and 'None' for anything else (missing or unknown winner id).
    """
    if winner_id is None:
        return SIDE_NONE
    if subject_id is not None and winner_id == subject_id:
        return SIDE_A
    if opponent_id is not None and winner_id == opponent_id:
        return SIDE_B
    return SIDE_NONE


def majority_winner(a_count: int, b_count: int) -> str:
    """Side with the strict majority, 'None' on a tie."""
    if a_count > b_count:
        return SIDE_A
    if b_count > a_count:
        return SIDE_B
    return SIDE_NONE


def round_winner(games: list[GameResult]) -> str:
    wins, losses = tally_round(RoundResult(round_number=1, games=games))
    return majority_winner(wins, losses)


def set_winner(rounds: list[RoundResult]) -> str:
    a_rounds = sum(1 for r in rounds if r.winner == SIDE_A)
    b_rounds = sum(1 for r in rounds if r.winner == SIDE_B)
    return majority_winner(a_rounds, b_rounds)


def build_sets(subject_id: Optional[int], games: list[ImportGame]) -> list[SetResult]:
    """
    Group a player's games into sets and rounds, deriving every winner.

    Games keep their import order inside a round and are numbered from 1.
    """
    grouped: dict[tuple[int, int], list[ImportGame]] = defaultdict(list)
    for game in games:
        grouped[(game.set, game.round)].append(game)

    rounds_by_set: dict[int, list[RoundResult]] = defaultdict(list)
    for (set_number, round_number), round_games in sorted(grouped.items()):
        results = [
            GameResult(
                game_number=i,
                player_a=subject_id,
                player_b=g.opponent_id,
                winner=game_winner(subject_id, g.opponent_id, g.winner_id),
            )
            for i, g in enumerate(round_games, 1)
        ]
        rounds_by_set[set_number].append(
            RoundResult(round_number=round_number, games=results, winner=round_winner(results))
        )

    return [
        SetResult(set_number=set_number, rounds=rounds, winner=set_winner(rounds))
        for set_number, rounds in sorted(rounds_by_set.items())
    ]


def build_performance_entry(
    subject_id: Optional[int], week: int, games: list[ImportGame]
) -> PerformanceEntry:
    """Build one week's record; wins/losses are derived by the entry itself."""
    return PerformanceEntry(week=week, sets=build_sets(subject_id, games))


def build_performance_entries(record: ImportPlayerRecord) -> dict[int, PerformanceEntry]:
    """
    Build every week of an imported player record.

    Weeks without games are skipped. If a week number appears more than
    once, its games are combined.
    """
    games_by_week: dict[int, list[ImportGame]] = defaultdict(list)
    for week in record.weeks:
        games_by_week[week.week_number].extend(week.games)

    return {
        week: build_performance_entry(record.id, week, games)
        for week, games in sorted(games_by_week.items())
        if games
    }


def upsert_performance(
    performance: list[PerformanceEntry], entry: PerformanceEntry
) -> tuple[list[PerformanceEntry], bool]:
    """
    Replace (never merge) the entry for ``entry.week``, or add it.

    Returns:
        Tuple of (performance sorted by week, whether anything changed)
    """
    existing = next((e for e in performance if e.week == entry.week), None)
    if existing is not None and existing == entry:
        return sorted(performance, key=lambda e: e.week), False

    updated = [e for e in performance if e.week != entry.week]
    updated.append(entry)
    return sorted(updated, key=lambda e: e.week), True


def iter_round_tallies(entry: PerformanceEntry) -> list[tuple[int, int]]:
    """(wins, losses) of every round in a week, in set/round order."""
    return [tally_round(r) for s in entry.sets for r in s.rounds]
