"""Tests for league data validators."""

import pytest

from t2fantasy.performance import build_performance_entry
from t2fantasy.schemas import FantasyPlayer, ImportGame, LeaguePlayer, Season, Team
from t2fantasy.store import LeagueStore
from t2fantasy.validators import (
    validate_fantasy_player,
    validate_league_player,
    validate_performance_entry,
    validate_season,
)


def entry(week=1, winners=(17, 17, 22)):
    games = [ImportGame(round=1, opponent_id=22, winner_id=w) for w in winners]
    return build_performance_entry(17, week, games)


class TestValidatePerformanceEntry:
    """Tests for per-week aggregate checks."""

    def test_valid_entry(self):
        assert validate_performance_entry('Ana', entry()) == []

    def test_totals_cannot_be_edited(self):
        """wins/losses have no setter, so they cannot drift from the games."""
        bad = entry()
        with pytest.raises(AttributeError):
            bad.wins = 5
        assert validate_performance_entry('Ana', bad) == []

    def test_wrong_round_winner(self):
        bad = entry()
        bad.sets[0].rounds[0].winner = 'B'
        errors = validate_performance_entry('Ana', bad)
        assert any('round 1 winner is B, expected A' in e for e in errors)

    def test_wrong_set_winner(self):
        bad = entry()
        bad.sets[0].winner = 'None'
        errors = validate_performance_entry('Ana', bad)
        assert any('set 1 winner is None, expected A' in e for e in errors)


class TestValidateLeaguePlayer:
    """Tests for league player checks."""

    def test_valid_player(self):
        player = LeaguePlayer(season_id='s1', team_id='t1', name='Ana', cost=5, performance=[entry(1), entry(2)])
        assert validate_league_player(player) == []

    def test_duplicate_weeks(self):
        player = LeaguePlayer(season_id='s1', team_id='t1', name='Ana', cost=5, performance=[entry(1), entry(1)])
        errors = validate_league_player(player)
        assert errors == ['Ana has duplicate performance weeks: [1]']


class TestValidateFantasyPlayer:
    """Tests for roster checks."""

    def test_valid_roster(self):
        fp = FantasyPlayer(season_id='s1', discord_id='u1', team=['a', 'b'], weekly_points=[5, 5], total_points=10)
        assert validate_fantasy_player(fp, {'a', 'b'}, 5) == []

    def test_over_cap(self):
        fp = FantasyPlayer(season_id='s1', discord_id='u1', team=['a', 'b', 'c'])
        errors = validate_fantasy_player(fp, {'a', 'b', 'c'}, 2)
        assert errors == ['u1 has 3 players (max 2)']

    def test_duplicates(self):
        fp = FantasyPlayer(season_id='s1', discord_id='u1', username='ana', team=['a', 'a'])
        errors = validate_fantasy_player(fp, {'a'}, 5)
        assert errors == ['ana has duplicate players: a']

    def test_dangling_references(self):
        fp = FantasyPlayer(
            season_id='s1', discord_id='u1', team=['a'], playoff_snapshot=['gone']
        )
        errors = validate_fantasy_player(fp, {'a'}, 5)
        assert errors == ['u1 playoff_snapshot references missing players: gone']

    def test_total_mismatch(self):
        fp = FantasyPlayer(season_id='s1', discord_id='u1', weekly_points=[5, 5], total_points=12)
        errors = validate_fantasy_player(fp, set(), 5)
        assert errors == ['u1 total 12 != sum of weekly points 10']


class TestValidateSeason:
    """Tests for whole-season checks."""

    @pytest.fixture
    def store(self):
        store = LeagueStore()
        store.add_season(Season(id='s1', name='S1'))
        team = store.add_team(Team(season_id='s1', name='Gimlet'))
        store.add_league_player(
            LeaguePlayer(id='ana', season_id='s1', team_id=team.id, name='Ana', cost=5, performance=[entry()])
        )
        store.add_fantasy_player(FantasyPlayer(season_id='s1', discord_id='u1', team=['ana']))
        return store

    def test_clean_season(self, store):
        assert validate_season(store, 's1', 5) == []

    def test_deleted_player_leaves_no_dangling_refs(self, store):
        store.delete_league_player('ana')
        assert validate_season(store, 's1', 5) == []

    def test_reports_roster_problems(self, store):
        fp = store.get_fantasy_player('s1', 'u1')
        fp.team = ['ana', 'ghost']
        store.save_fantasy_player(fp)
        errors = validate_season(store, 's1', 1)
        assert errors == [
            'u1 has 2 players (max 1)',
            'u1 team references missing players: ghost',
        ]
