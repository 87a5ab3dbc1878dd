"""Tests for the weekly import-then-score run."""

from unittest.mock import Mock, patch

import pytest

from t2fantasy.schemas import FantasyConfig, FantasyPlayer, Season
from t2fantasy.store import LeagueStore
from t2fantasy.weekly_job import run_weekly_import_once

STATS_URL = 'https://stats.example/export.json'


def export():
    """Ana plays a 2-0 round in weeks 1 and 2."""
    games = [
        {'set': 1, 'round': 1, 'opponent_id': 22, 'winner_id': 17},
        {'set': 1, 'round': 1, 'opponent_id': 22, 'winner_id': 17},
    ]
    return [
        {
            'id': 17,
            'name': 'Ana',
            'team_name': 'Gimlet',
            'fantasy_points': 10,
            'weeks': [
                {'week_number': 1, 'games': games},
                {'week_number': 2, 'games': games},
            ],
        }
    ]


@pytest.fixture
def store():
    store = LeagueStore()
    store.add_season(Season(id='s1', name='S1', is_active=True))
    store.save_fantasy_config(FantasyConfig(season_id='s1', current_week=2))
    store.add_fantasy_player(FantasyPlayer(season_id='s1', discord_id='u1'))
    return store


@pytest.fixture
def mock_get():
    with patch('t2fantasy.importer.requests.get') as mock_get:
        response = Mock()
        response.json.return_value = export()
        mock_get.return_value = response
        yield mock_get


def draft_ana(store):
    fp = store.get_fantasy_player('s1', 'u1')
    fp.team = [store.find_league_players('s1', 'Ana')[0].id]
    store.save_fantasy_player(fp)


class TestWeeklyRun:
    """Tests for run_weekly_import_once."""

    def test_scores_current_week_only(self, store, mock_get):
        result = run_weekly_import_once(store, 's1', STATS_URL, timeout=3)

        mock_get.assert_called_once_with(STATS_URL, timeout=3)
        assert result.week == 2
        assert result.import_summary.created == 1
        assert result.weeks_scored == {2: 1}
        assert result.next_week is None
        assert store.get_fantasy_player('s1', 'u1').weekly_points == [0, 0]

    def test_full_recalc_scores_every_week(self, store, mock_get):
        run_weekly_import_once(store, 's1', STATS_URL)
        draft_ana(store)

        result = run_weekly_import_once(store, 's1', STATS_URL, full_recalc=True)

        assert result.import_summary.skipped == 1
        assert result.weeks_scored == {1: 1, 2: 1}
        fp = store.get_fantasy_player('s1', 'u1')
        assert fp.weekly_points == [40, 40]
        assert fp.total_points == 80

    def test_scoring_runs_when_nothing_changed(self, store, mock_get):
        """Scoring does not depend on the import reporting updates."""
        run_weekly_import_once(store, 's1', STATS_URL)
        draft_ana(store)

        result = run_weekly_import_once(store, 's1', STATS_URL)

        assert result.import_summary.updated == 0
        assert store.get_fantasy_player('s1', 'u1').weekly_points == [0, 40]

    def test_advance_pointer(self, store, mock_get):
        result = run_weekly_import_once(store, 's1', STATS_URL, advance_pointer=True)

        assert result.next_week == 3
        assert store.get_fantasy_config('s1').current_week == 3
