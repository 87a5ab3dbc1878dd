"""Tests for storing weekly points and reading scores back."""

import pytest

from t2fantasy.performance import build_performance_entry
from t2fantasy.schemas import FantasyPlayer, ImportGame, LeaguePlayer, Season, Team
from t2fantasy.score_service import (
    calculate_roster_week,
    calculate_scores_for_week,
    get_leaderboard,
    get_score,
    last_scored_week,
    recalculate_all_weeks,
    set_week_points,
)
from t2fantasy.store import LeagueStore


def week(week_number, outcomes, external_id):
    """One round of games for a week ('W' won, 'L' lost)."""
    games = [
        ImportGame(round=1, opponent_id=999, winner_id=external_id if o == 'W' else 999)
        for o in outcomes
    ]
    return build_performance_entry(external_id, week_number, games)


@pytest.fixture
def store():
    """
    Season with three league players:
        ana: week 1 3-0 (50 pts), week 2 1-2 (10 pts)
        bo:  week 1 2-1 (25 pts)
        cy:  week 2 1-0 (30 pts)
    """
    store = LeagueStore()
    store.add_season(Season(id='s1', name='S1', is_active=True))
    team = store.add_team(Team(season_id='s1', name='Gimlet'))
    store.add_league_player(
        LeaguePlayer(
            id='ana', season_id='s1', team_id=team.id, name='Ana', external_id=1, cost=10,
            performance=[week(1, 'WWW', 1), week(2, 'WLL', 1)],
        )
    )
    store.add_league_player(
        LeaguePlayer(
            id='bo', season_id='s1', team_id=team.id, name='Bo', external_id=2, cost=10,
            performance=[week(1, 'WWL', 2)],
        )
    )
    store.add_league_player(
        LeaguePlayer(
            id='cy', season_id='s1', team_id=team.id, name='Cy', external_id=3, cost=10,
            performance=[week(2, 'W', 3)],
        )
    )
    store.add_fantasy_player(FantasyPlayer(season_id='s1', discord_id='u1', username='ana fan', team=['ana', 'bo']))
    store.add_fantasy_player(FantasyPlayer(season_id='s1', discord_id='u2', username='bo fan', team=['bo']))
    store.add_fantasy_player(FantasyPlayer(season_id='s1', discord_id='u3', team=[]))
    return store


class TestSetWeekPoints:
    """Tests for writing one week into weekly_points."""

    def test_pads_earlier_weeks(self):
        fp = FantasyPlayer(season_id='s1', discord_id='u1')
        set_week_points(fp, 3, 12)
        assert fp.weekly_points == [0, 0, 12]
        assert fp.total_points == 12

    def test_overwrites_week(self):
        fp = FantasyPlayer(season_id='s1', discord_id='u1', weekly_points=[5, 7], total_points=12)
        set_week_points(fp, 1, 1)
        assert fp.weekly_points == [1, 7]
        assert fp.total_points == 8

    def test_week_below_one(self):
        with pytest.raises(ValueError):
            set_week_points(FantasyPlayer(season_id='s1', discord_id='u1'), 0, 1)


class TestCalculateScores:
    """Tests for scoring every roster for a week."""

    def test_week_one(self, store):
        assert calculate_scores_for_week(store, 's1', 1) == 3

        assert store.get_fantasy_player('s1', 'u1').weekly_points == [75]
        assert store.get_fantasy_player('s1', 'u2').weekly_points == [25]
        assert store.get_fantasy_player('s1', 'u3').weekly_points == [0]

    def test_idempotent(self, store):
        """A repeated run writes nothing and counts no rosters."""
        calculate_scores_for_week(store, 's1', 1)
        first = store.get_fantasy_player('s1', 'u1')

        assert calculate_scores_for_week(store, 's1', 1) == 0
        second = store.get_fantasy_player('s1', 'u1')

        assert second.weekly_points == first.weekly_points
        assert second.total_points == first.total_points == 75
        assert second.revision == first.revision
        assert second.updated_at == first.updated_at

    def test_counts_only_changed_rosters(self, store):
        calculate_scores_for_week(store, 's1', 1)
        fp = store.get_fantasy_player('s1', 'u2')
        fp.team = ['ana']
        store.save_fantasy_player(fp)

        assert calculate_scores_for_week(store, 's1', 1) == 1

    def test_week_below_one(self, store):
        with pytest.raises(ValueError):
            calculate_scores_for_week(store, 's1', 0)

    def test_weeks_in_any_order(self, store):
        calculate_scores_for_week(store, 's1', 2)
        calculate_scores_for_week(store, 's1', 1)

        fp = store.get_fantasy_player('s1', 'u1')
        assert fp.weekly_points == [75, 10]
        assert fp.total_points == 85

    def test_uses_current_roster(self, store):
        """A past week is rescored with whoever is on the roster now."""
        calculate_scores_for_week(store, 's1', 1)
        fp = store.get_fantasy_player('s1', 'u2')
        fp.team = ['ana']
        store.save_fantasy_player(fp)

        calculate_scores_for_week(store, 's1', 1)

        assert store.get_fantasy_player('s1', 'u2').weekly_points == [50]

    def test_deleted_player_scores_nothing(self, store):
        store.delete_league_player('bo')
        calculate_scores_for_week(store, 's1', 1)
        assert store.get_fantasy_player('s1', 'u1').weekly_points == [50]

    def test_single_roster(self, store):
        assert calculate_roster_week(store, 's1', 'u1', 2) is True
        assert store.get_fantasy_player('s1', 'u1').weekly_points == [0, 10]
        assert calculate_roster_week(store, 's1', 'u1', 2) is False
        assert calculate_roster_week(store, 's1', 'ghost', 2) is False

    def test_stale_total_is_rewritten(self, store):
        """A matching week with a wrong stored total still gets written."""
        calculate_scores_for_week(store, 's1', 1)
        fp = store.get_fantasy_player('s1', 'u1')
        fp.total_points = 3
        store.save_fantasy_player(fp)

        assert calculate_roster_week(store, 's1', 'u1', 1) is True
        assert store.get_fantasy_player('s1', 'u1').total_points == 75


class TestRecalculateAll:
    """Tests for full recalculation."""

    def test_last_scored_week(self, store):
        assert last_scored_week(store, 's1') == 2

    def test_last_scored_week_counts_stored_points(self, store):
        fp = store.get_fantasy_player('s1', 'u3')
        fp.weekly_points = [0, 0, 0, 4]
        store.save_fantasy_player(fp)
        assert last_scored_week(store, 's1') == 4

    def test_empty_season_still_scores_week_one(self):
        store = LeagueStore()
        store.add_season(Season(id='s1', name='S1'))
        assert last_scored_week(store, 's1') == 1

    def test_recalculate(self, store):
        results = recalculate_all_weeks(store, 's1')

        assert results == {1: 3, 2: 3}
        fp = store.get_fantasy_player('s1', 'u1')
        assert fp.weekly_points == [75, 10]
        assert fp.total_points == 85

    def test_stale_weeks_are_zeroed(self, store):
        """Weeks stored earlier with no data behind them are recomputed to 0."""
        fp = store.get_fantasy_player('s1', 'u2')
        fp.weekly_points = [0, 0, 99]
        fp.total_points = 99
        store.save_fantasy_player(fp)

        recalculate_all_weeks(store, 's1')

        fp = store.get_fantasy_player('s1', 'u2')
        assert fp.weekly_points == [25, 0, 0]
        assert fp.total_points == 25


class TestScoreQueries:
    """Tests for reading stored scores."""

    @pytest.fixture
    def scored(self, store):
        recalculate_all_weeks(store, 's1')
        return store

    def test_get_score(self, scored):
        report = get_score(scored, 's1', 'u1')
        assert report.weekly_points == [75, 10]
        assert report.total_points == 85
        assert report.week is None

    def test_get_score_for_week(self, scored):
        report = get_score(scored, 's1', 'u1', week=2)
        assert report.week_points == 10

    def test_unscored_week_is_zero(self, scored):
        assert get_score(scored, 's1', 'u1', week=9).week_points == 0

    def test_read_does_not_recompute(self, scored):
        player = scored.get_league_player('bo')
        player.performance = []
        scored.save_league_player(player)
        assert get_score(scored, 's1', 'u2').total_points == 25

    def test_unknown_user(self, scored):
        assert get_score(scored, 's1', 'ghost') is None

    def test_overall_leaderboard(self, scored):
        rows = get_leaderboard(scored, 's1')

        assert [r.discord_id for r in rows] == ['u1', 'u2', 'u3']
        assert [r.rank for r in rows] == [1, 2, 3]
        assert rows[0].name == 'ana fan'
        assert rows[2].name == 'User u3'
        assert rows[0].score == 85

    def test_week_leaderboard_breaks_ties_on_total(self, scored):
        rows = get_leaderboard(scored, 's1', week=2)

        assert [(r.discord_id, r.score) for r in rows] == [('u1', 10), ('u2', 0), ('u3', 0)]
        assert rows[1].total == 25

    def test_limit(self, scored):
        assert len(get_leaderboard(scored, 's1', limit=1)) == 1
        assert len(get_leaderboard(scored, 's1', limit=0)) == 1
        assert len(get_leaderboard(scored, 's1', limit=100)) == 3
