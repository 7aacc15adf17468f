"""Configuration loading and parsing."""

import copy
import logging
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

from platformdirs import user_config_dir

from animewatcher.config.keybindings import Keybindings

logger = logging.getLogger(__name__)

APP_NAME = "animewatcher"


class ConfigError(Exception):
    """Configuration-related errors."""
    pass


DEFAULT_COLORS: Dict[str, str] = {
    'border_focused': 'cyan',
    'border_unfocused': 'bright_black',
    'highlight': 'yellow',
    'selection_bg': 'grey30',
    'text': 'white',
    'text_dim': 'bright_black',
    'error': 'red',
    'status': 'yellow',
    'mode_indicator': 'magenta',
    'streaming': 'green',
    'download': 'red',
}

DEFAULT_CONFIG: Dict[str, Any] = {
    'mode': 'sub',
    'quality': 'best',
    'download_dir': '.',
    'player': None,
    'player_args': [],
    'history_limit': 10,
    'ui': {
        'manual_quality': False,
    },
    'api': {
        'request_timeout': 30,
        'max_retries': 3,
        'retry_backoff_seconds': 0.5,
    },
    'logging': {
        'level': 'WARNING',
        'file': None,
    },
    'keybindings': {
        name: list(getattr(Keybindings(), name)) for name in Keybindings.names()
    },
    'colors': dict(DEFAULT_COLORS),
}


def default_config_path() -> Path:
    """Platform config location, e.g. ~/.config/animewatcher/config.yaml."""
    return Path(user_config_dir(APP_NAME)) / "config.yaml"


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load and parse configuration file.

    A missing file is not an error: the built-in defaults are used.

    Args:
        config_path: Path to config.yaml file. If None, uses the platform
            config directory.

    Returns:
        Parsed configuration dictionary merged over DEFAULT_CONFIG

    Raises:
        ConfigError: If config file cannot be read or parsed
    """
    if config_path is None:
        config_path = default_config_path()
    else:
        config_path = Path(config_path).expanduser()

    if not config_path.exists():
        logger.debug(f"No config file at {config_path}, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            user_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {e}")

    if user_config is None:
        user_config = {}
    if not isinstance(user_config, dict):
        raise ConfigError("Configuration file must contain a YAML dictionary")

    return merge_config(DEFAULT_CONFIG, user_config)


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep-merge ``override`` onto a copy of ``base``.

    Nested dictionaries merge key by key; any other value replaces the
    base value outright.
    """
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = merge_config(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def get_config_value(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., 'api.request_timeout')
        default: Default value if path not found

    Returns:
        Configuration value or default

    Example:
        >>> get_config_value(config, 'ui.manual_quality')
        False
    """
    keys = path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value
