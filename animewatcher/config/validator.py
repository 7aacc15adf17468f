"""Configuration validation."""

import logging
from typing import Dict, Any, List

from rich.color import Color, ColorParseError

from animewatcher.config.keybindings import Keybindings, parse_binding

logger = logging.getLogger(__name__)

VALID_MODES = ('sub', 'dub')
VALID_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class ValidationError(Exception):
    """Configuration validation errors."""
    pass


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary from loader

    Raises:
        ValidationError: If configuration is invalid
    """
    errors = []

    errors.extend(_validate_playback(config))
    errors.extend(_validate_api(config.get('api', {})))
    errors.extend(_validate_logging(config.get('logging', {})))
    errors.extend(_validate_keybindings(config.get('keybindings', {})))
    errors.extend(_validate_colors(config.get('colors', {})))

    if errors:
        raise ValidationError(
            "Configuration validation failed:\n  - " + "\n  - ".join(errors)
        )


def is_valid_mode(mode: Any) -> bool:
    return mode in VALID_MODES


def _validate_playback(config: Dict[str, Any]) -> List[str]:
    """Validate top-level playback and download options."""
    errors = []

    if not is_valid_mode(config.get('mode')):
        errors.append(f"mode must be one of: {', '.join(VALID_MODES)}")

    quality = config.get('quality')
    if not isinstance(quality, (str, int)):
        errors.append("quality must be 'best', 'worst' or a number")
    else:
        token = str(quality).strip().lower()
        if token not in ('best', 'worst') and not token.isdigit():
            # The selector falls back to the first source, so this is not fatal
            logger.warning(f"Unrecognized quality token '{quality}', first source will be used")

    if not isinstance(config.get('download_dir'), str):
        errors.append("download_dir must be a path string")

    player = config.get('player')
    if player is not None and (not isinstance(player, str) or not player.strip()):
        errors.append("player must be a non-empty string")

    player_args = config.get('player_args', [])
    if not isinstance(player_args, list) or any(not isinstance(a, str) for a in player_args):
        errors.append("player_args must be a list of strings")

    limit = config.get('history_limit')
    if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
        errors.append("history_limit must be a positive integer")

    manual = config.get('ui', {}).get('manual_quality', False)
    if not isinstance(manual, bool):
        errors.append("ui.manual_quality must be a boolean")

    return errors


def _validate_api(section: Dict[str, Any]) -> List[str]:
    """Validate api section."""
    errors = []

    timeout = section.get('request_timeout')
    if not isinstance(timeout, (int, float)) or timeout <= 0:
        errors.append("api.request_timeout must be a positive number")

    retries = section.get('max_retries')
    if not isinstance(retries, int) or retries < 0 or retries > 10:
        errors.append("api.max_retries must be an integer between 0 and 10")

    backoff = section.get('retry_backoff_seconds')
    if not isinstance(backoff, (int, float)) or backoff < 0:
        errors.append("api.retry_backoff_seconds must be a non-negative number")

    return errors


def _validate_logging(section: Dict[str, Any]) -> List[str]:
    """Validate logging section."""
    errors = []

    level = section.get('level', 'WARNING')
    if not isinstance(level, str) or level.upper() not in VALID_LOG_LEVELS:
        errors.append(f"logging.level must be one of: {', '.join(VALID_LOG_LEVELS)}")

    log_file = section.get('file')
    if log_file is not None and not isinstance(log_file, str):
        errors.append("logging.file must be a path string")

    return errors


def _validate_keybindings(section: Dict[str, Any]) -> List[str]:
    """Validate keybindings section."""
    errors = []

    if not isinstance(section, dict):
        return ["keybindings must be a mapping"]

    known = set(Keybindings.names())
    for name, bindings in section.items():
        if name not in known:
            errors.append(f"keybindings.{name} is not a known action")
            continue
        if not isinstance(bindings, list) or not bindings:
            errors.append(f"keybindings.{name} must be a non-empty list")
            continue
        for binding in bindings:
            if not isinstance(binding, str) or parse_binding(binding) is None:
                errors.append(f"keybindings.{name}: cannot parse binding {binding!r}")

    return errors


def _validate_colors(section: Dict[str, Any]) -> List[str]:
    """Validate colors section."""
    errors = []

    if not isinstance(section, dict):
        return ["colors must be a mapping"]

    for name, value in section.items():
        if not isinstance(value, str):
            errors.append(f"colors.{name} must be a color string")
            continue
        try:
            Color.parse(value)
        except ColorParseError:
            errors.append(f"colors.{name}: unknown color {value!r}")

    return errors
