"""Tests for the JSON document store."""

import json

import pytest

from t2fantasy.roster import add_player
from t2fantasy.schemas import FantasyConfig, FantasyPlayer, LeaguePlayer, Match, Season, Team
from t2fantasy.score_service import calculate_scores_for_week
from t2fantasy.store import DuplicateKeyError, LeagueStore, NotFoundError


@pytest.fixture
def league_file(tmp_path):
    return tmp_path / 'data' / 'league.json'


@pytest.fixture
def store(league_file):
    """File-backed store with two seasons, S2 active."""
    store = LeagueStore(league_file)
    store.add_season(Season(id='s1', name='S1'))
    store.add_season(Season(id='s2', name='S2', is_active=True))
    for season_id in ('s1', 's2'):
        team = store.add_team(Team(id=f'{season_id}-gim', season_id=season_id, name='Gimlet'))
        store.add_league_player(
            LeaguePlayer(id=f'{season_id}-ana', season_id=season_id, team_id=team.id, name='Ana', cost=30)
        )
        store.add_fantasy_player(
            FantasyPlayer(season_id=season_id, discord_id='u1', team=[f'{season_id}-ana'], wallet=55)
        )
        store.save_fantasy_config(FantasyConfig(season_id=season_id))
        store.upsert_match(Match(season_id=season_id, week=1, team_a='a', team_b='b'))
    return store


class TestPersistence:
    """Tests for loading and saving the league file."""

    def test_changes_are_written_to_disk(self, store, league_file):
        assert league_file.exists()
        reloaded = LeagueStore(league_file)

        assert [s.name for s in reloaded.list_seasons()] == ['S1', 'S2']
        assert reloaded.get_active_season().id == 's2'
        assert reloaded.get_fantasy_player('s1', 'u1').team == ['s1-ana']

    def test_file_is_plain_json(self, store, league_file):
        data = json.loads(league_file.read_text(encoding='utf-8'))
        assert set(data) == {
            'seasons', 'teams', 'league_players', 'matches', 'fantasy_players', 'configs'
        }

    def test_in_memory_store_writes_nothing(self, tmp_path):
        store = LeagueStore()
        store.add_season(Season(name='S1'))
        assert list(tmp_path.iterdir()) == []

    def test_invalid_file_raises(self, tmp_path):
        path = tmp_path / 'league.json'
        path.write_text(json.dumps({'seasons': [{'name': ''}]}), encoding='utf-8')
        with pytest.raises(ValueError):
            LeagueStore(path)

    def test_returned_documents_are_copies(self, store):
        fp = store.get_fantasy_player('s1', 'u1')
        fp.wallet = 0
        assert store.get_fantasy_player('s1', 'u1').wallet == 55


class TestSeasons:
    """Tests for season documents."""

    def test_only_one_active_season(self, store):
        store.add_season(Season(name='S3', is_active=True))
        active = [s.name for s in store.list_seasons() if s.is_active]
        assert active == ['S3']

    def test_set_active_season(self, store):
        store.set_active_season('s1')
        assert store.get_active_season().id == 's1'
        assert store.get_season('s2').is_active is False

    def test_duplicate_name(self, store):
        with pytest.raises(DuplicateKeyError):
            store.add_season(Season(name='S1'))

    def test_delete_cascades(self, store):
        counts = store.delete_season('s1')

        assert counts == {
            'teams': 1,
            'league_players': 1,
            'matches': 1,
            'fantasy_players': 1,
            'configs': 1,
        }
        assert store.get_season('s1') is None
        assert store.list_teams('s1') == []
        assert store.list_league_players('s1') == []
        assert store.list_matches('s1') == []
        assert store.list_fantasy_players('s1') == []
        assert store.get_fantasy_config('s1') is None

    def test_delete_leaves_other_seasons(self, store):
        store.delete_season('s1')
        assert len(store.list_league_players('s2')) == 1
        assert store.get_fantasy_player('s2', 'u1') is not None

    def test_delete_unknown(self, store):
        with pytest.raises(NotFoundError):
            store.delete_season('nope')


class TestTeamsAndPlayers:
    """Tests for teams and league players."""

    def test_team_name_unique_per_season(self, store):
        with pytest.raises(DuplicateKeyError):
            store.add_team(Team(season_id='s1', name='gimlet'))

    def test_add_player_joins_team(self, store):
        assert store.get_team('s1-gim').players == ['s1-ana']

    def test_add_player_to_unknown_team(self, store):
        with pytest.raises(NotFoundError):
            store.add_league_player(LeaguePlayer(season_id='s1', team_id='nope', name='X', cost=1))

    def test_duplicate_player_on_team(self, store):
        with pytest.raises(DuplicateKeyError):
            store.add_league_player(LeaguePlayer(season_id='s1', team_id='s1-gim', name='ANA', cost=1))

    def test_save_moves_player_between_teams(self, store):
        store.add_team(Team(id='s1-hex', season_id='s1', name='Hex'))
        player = store.get_league_player('s1-ana')
        player.team_id = 's1-hex'
        store.save_league_player(player)

        assert store.get_team('s1-gim').players == []
        assert store.get_team('s1-hex').players == ['s1-ana']

    def test_get_league_players_skips_dangling(self, store):
        players = store.get_league_players(['gone', 's1-ana'])
        assert [p.id for p in players] == ['s1-ana']

    def test_find_by_external_id(self, store):
        player = store.get_league_player('s1-ana')
        player.external_id = 17
        store.save_league_player(player)

        assert store.find_league_player_by_external_id('s1', 17).id == 's1-ana'
        assert store.find_league_player_by_external_id('s2', 17) is None


class TestDeleteLeaguePlayer:
    """Tests for deleting a league player and its references."""

    def test_pulls_references_and_refunds(self, store):
        fp = store.get_fantasy_player('s1', 'u1')
        fp.swiss_lock_snapshot = ['s1-ana']
        fp.playoff_snapshot = ['s1-ana']
        store.save_fantasy_player(fp)
        revision = store.get_fantasy_player('s1', 'u1').revision

        touched = store.delete_league_player('s1-ana')

        assert touched == 1
        fp = store.get_fantasy_player('s1', 'u1')
        assert fp.team == []
        assert fp.swiss_lock_snapshot == []
        assert fp.playoff_snapshot == []
        assert fp.wallet == 85
        assert fp.revision == revision + 1
        assert store.get_team('s1-gim').players == []
        assert store.get_league_player('s1-ana') is None

    def test_snapshot_only_reference_is_not_refunded(self, store):
        """Only rosters currently holding the player get the cost back."""
        fp = store.get_fantasy_player('s1', 'u1')
        fp.team = []
        fp.playoff_snapshot = ['s1-ana']
        store.save_fantasy_player(fp)

        assert store.delete_league_player('s1-ana') == 1
        fp = store.get_fantasy_player('s1', 'u1')
        assert fp.wallet == 55
        assert fp.playoff_snapshot == []

    def test_other_season_untouched(self, store):
        store.delete_league_player('s1-ana')
        assert store.get_fantasy_player('s2', 'u1').team == ['s2-ana']

    def test_unknown_player(self, store):
        with pytest.raises(NotFoundError):
            store.delete_league_player('nope')


class TestMatches:
    """Tests for match uniqueness."""

    def test_find_match_ignores_side_order(self, store):
        assert store.find_match('s1', 1, 'b', 'a') is not None

    def test_upsert_replaces_reversed_pair(self, store):
        original = store.find_match('s1', 1, 'a', 'b')
        created = store.upsert_match(Match(season_id='s1', week=1, team_a='b', team_b='a', winner='A'))

        assert created is False
        matches = store.list_matches('s1', week=1)
        assert len(matches) == 1
        assert matches[0].id == original.id
        assert matches[0].winner == 'A'

    def test_other_week_is_a_new_match(self, store):
        assert store.upsert_match(Match(season_id='s1', week=2, team_a='a', team_b='b')) is True
        assert len(store.list_matches('s1')) == 2


class TestFantasyPlayers:
    """Tests for roster writes."""

    def test_discord_id_unique_per_season(self, store):
        with pytest.raises(DuplicateKeyError):
            store.add_fantasy_player(FantasyPlayer(season_id='s1', discord_id='u1'))

    def test_compare_and_swap_succeeds_on_matching_revision(self, store):
        fp = store.get_fantasy_player('s1', 'u1')
        expected = fp.revision
        fp.wallet = 10

        assert store.compare_and_swap_fantasy_player(fp, expected) is True
        assert fp.revision == expected + 1
        assert store.get_fantasy_player('s1', 'u1').wallet == 10

    def test_compare_and_swap_rejects_stale_copy(self, store):
        stale = store.get_fantasy_player('s1', 'u1')
        fresh = store.get_fantasy_player('s1', 'u1')
        fresh.username = 'first'
        store.compare_and_swap_fantasy_player(fresh, fresh.revision)

        stale.wallet = 0
        assert store.compare_and_swap_fantasy_player(stale, stale.revision) is False
        stored = store.get_fantasy_player('s1', 'u1')
        assert stored.wallet == 55
        assert stored.username == 'first'

    def test_snapshot_rosters_rejects_unknown_field(self, store):
        with pytest.raises(ValueError):
            store.snapshot_rosters('s1', 'team')


class TestSharedFile:
    """Two stores opened on the same league file."""

    @pytest.fixture
    def stores(self, league_file):
        setup = LeagueStore(league_file)
        setup.add_season(Season(id='s1', name='S1', is_active=True))
        team = setup.add_team(Team(id='gim', season_id='s1', name='Gimlet'))
        setup.add_league_player(LeaguePlayer(id='ana', season_id='s1', team_id=team.id, name='Ana', cost=30))
        setup.add_fantasy_player(FantasyPlayer(season_id='s1', discord_id='u1', wallet=85))
        return LeagueStore(league_file), LeagueStore(league_file)

    def test_write_through_one_store_survives_the_other(self, stores, league_file):
        first, second = stores

        assert add_player(first, 's1', 'u1', 'ana').ok
        calculate_scores_for_week(second, 's1', 1)

        stored = LeagueStore(league_file).get_fantasy_player('s1', 'u1')
        assert stored.team == ['ana']
        assert stored.wallet == 55
        assert stored.weekly_points == [0]

    def test_reads_see_the_other_store(self, stores):
        first, second = stores
        first.add_team(Team(season_id='s1', name='Hex'))
        assert second.find_team('s1', 'Hex') is not None

    def test_compare_and_swap_checks_the_file(self, stores):
        first, second = stores
        stale = first.get_fantasy_player('s1', 'u1')

        fresh = second.get_fantasy_player('s1', 'u1')
        fresh.username = 'second'
        assert second.compare_and_swap_fantasy_player(fresh, fresh.revision) is True

        stale.wallet = 0
        assert first.compare_and_swap_fantasy_player(stale, stale.revision) is False
        stored = first.get_fantasy_player('s1', 'u1')
        assert stored.username == 'second'
        assert stored.wallet == 85

    def test_lock_file_sits_beside_the_data(self, stores, league_file):
        assert league_file.with_name('league.json.lock').exists()
