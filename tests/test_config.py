"""Tests for configuration loading and logging setup."""

import json
import logging

import pytest

from t2fantasy.config import clear_config_cache, get_config, get_data_file, get_stats_url
from t2fantasy.logging_config import get_logger, setup_logging


@pytest.fixture(autouse=True)
def fresh_cache(monkeypatch):
    monkeypatch.delenv('STATS_URL', raising=False)
    clear_config_cache()
    yield
    clear_config_cache()
    setup_logging(log_to_file=False, log_to_console=False)


class TestGetConfig:
    """Tests for data/league_config.json loading."""

    def test_loads_file(self, tmp_path):
        path = tmp_path / 'league_config.json'
        path.write_text(json.dumps({'default_wallet': 120, 'data_file': 'x/league.json'}), encoding='utf-8')

        config = get_config(str(path))

        assert config.default_wallet == 120
        assert config.default_max_team_size == 5
        assert config.data_file == 'x/league.json'

    def test_missing_file_gives_defaults(self, tmp_path):
        config = get_config(str(tmp_path / 'nope.json'))
        assert config.default_wallet == 85
        assert config.default_playoff_swap_limit == 2
        assert config.stats_url is None

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / 'league_config.json'
        path.write_text(json.dumps({'wallet': 1}), encoding='utf-8')
        with pytest.raises(ValueError):
            get_config(str(path))

    def test_env_overrides_stats_url(self, tmp_path, monkeypatch):
        monkeypatch.setenv('STATS_URL', 'https://stats.example/export.json')
        config = get_config(str(tmp_path / 'nope.json'))
        assert config.stats_url == 'https://stats.example/export.json'

    def test_cached_until_cleared(self, monkeypatch):
        first = get_config()
        assert get_config() is first

        monkeypatch.setenv('STATS_URL', 'https://other.example/')
        assert get_stats_url() == first.stats_url
        clear_config_cache()
        assert get_stats_url() == 'https://other.example/'

    def test_repository_config(self):
        """The shipped data/league_config.json is valid."""
        assert get_data_file().name == 'league.json'


class TestLogging:
    """Tests for logger setup."""

    def test_console_only(self, tmp_path):
        logger = setup_logging(log_dir=tmp_path, log_to_file=False)
        assert logger.name == 't2fantasy'
        assert len(logger.handlers) == 1
        assert list(tmp_path.iterdir()) == []

    def test_file_handler(self, tmp_path):
        logger = setup_logging(log_dir=tmp_path / 'logs', level=logging.DEBUG, log_to_console=False)
        logger.debug('hello')
        for handler in logger.handlers:
            handler.flush()

        files = list((tmp_path / 'logs').glob('t2fantasy_*.log'))
        assert len(files) == 1
        assert 'hello' in files[0].read_text(encoding='utf-8')

    def test_repeated_setup_does_not_stack_handlers(self, tmp_path):
        setup_logging(log_dir=tmp_path, log_to_file=False)
        logger = setup_logging(log_dir=tmp_path, log_to_file=False)
        assert len(logger.handlers) == 1

    def test_get_logger_namespacing(self):
        assert get_logger('store').name == 't2fantasy.store'
        assert get_logger('t2fantasy.roster').name == 't2fantasy.roster'
        assert get_logger().name == 't2fantasy'
