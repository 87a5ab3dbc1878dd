"""Application configuration management."""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from .schemas import AppConfig
from .utils import load_json

logger = logging.getLogger('t2fantasy.config')

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / 'data' / 'league_config.json'


@lru_cache(maxsize=1)
def get_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load application configuration from data/league_config.json.

    Configuration is cached after first load. A missing file yields the
    built-in defaults. The ``STATS_URL`` environment variable, when set,
    overrides ``stats_url`` from the file.

    Args:
        config_path: Optional path to an alternative config file

    Returns:
        AppConfig object with validated settings

    Raises:
        ValueError: If the config file has an invalid structure

    Example:
        from t2fantasy.config import get_config
        config = get_config()
        print(f"Starting wallet: {config.default_wallet}")
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if path.exists():
        config = load_json(path, schema=AppConfig)
    else:
        logger.warning(f'Config file not found at {path}, using defaults')
        config = AppConfig()

    stats_url = os.environ.get('STATS_URL')
    if stats_url:
        config = config.model_copy(update={'stats_url': stats_url})

    return config


def get_data_file() -> Path:
    """Path of the league document store."""
    return Path(get_config().data_file)


def get_stats_url() -> Optional[str]:
    """URL of the stats website export, if configured."""
    return get_config().stats_url


def clear_config_cache() -> None:
    """
    Clear the configuration cache.

    Use this if the config file or environment changes during runtime.
    """
    get_config.cache_clear()
