"""Command-line interface for animewatcher."""

import sys
import logging
import argparse
import asyncio
import httpx
from pathlib import Path
from typing import Optional

from platformdirs import user_log_dir

logger = logging.getLogger(__name__)

from animewatcher import __version__
from animewatcher.config.loader import load_config, get_config_value, ConfigError, APP_NAME
from animewatcher.config.validator import validate_config, ValidationError, is_valid_mode
from animewatcher.config.keybindings import Keybindings
from animewatcher.api.client import CatalogClient
from animewatcher.media.downloader import YTDLP_EXECUTABLE
from animewatcher.media.player import PlayerError, resolve_player, find_executable
from animewatcher.session.state import SessionState
from animewatcher.ui.console_ui import ConsoleUI
from animewatcher.ui.keyboard_listener import KeyboardListener
from animewatcher.workflow.history import WatchHistory
from animewatcher.workflow.orchestrator import SessionOrchestrator

# -l/--log value -> logging level
LOG_LEVELS = {
    0: logging.ERROR,
    1: logging.WARNING,
    2: logging.INFO,
    3: logging.DEBUG,
    4: logging.DEBUG,
}

# At this -l/--log value httpx and httpcore debug output is kept
HTTP_DEBUG_VERBOSITY = 4


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog='animewatcher',
        description='Browse, stream and download anime from the terminal',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start browsing with settings from config.yaml
  animewatcher

  # Watch dubbed episodes at 720p
  animewatcher --mode dub --quality 720

  # Download episodes instead of streaming them
  animewatcher --download --download-dir ~/Videos/anime

  # Use a custom config file and verbose logging
  animewatcher --config /path/to/config.yaml -l 3
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=Path,
        metavar='PATH',
        help='Path to config.yaml (default: user config directory)'
    )

    parser.add_argument(
        '-m', '--mode',
        metavar='MODE',
        help="Translation mode: 'sub' or 'dub'. Overrides config."
    )

    parser.add_argument(
        '-q', '--quality',
        metavar='QUALITY',
        help="Stream quality: 'best', 'worst' or a resolution like 720. Overrides config."
    )

    parser.add_argument(
        '-d', '--download-dir',
        metavar='DIR',
        help='Directory for downloaded episodes. Overrides config.'
    )

    parser.add_argument(
        '-D', '--download',
        action='store_true',
        default=None,
        help='Download episodes instead of streaming them'
    )

    parser.add_argument(
        '-p', '--player',
        metavar='PLAYER',
        help='Media player executable (default: mpv, or iina on macOS). Overrides config.'
    )

    parser.add_argument(
        '-l', '--log',
        type=int,
        choices=sorted(LOG_LEVELS),
        metavar='LEVEL',
        help='Log verbosity 0-4 (0=errors only, 3=debug, 4=debug including HTTP). Overrides config.'
    )

    return parser


def default_log_path() -> Path:
    return Path(user_log_dir(APP_NAME)) / f"{APP_NAME}.log"


def _setup_logging(config: dict, verbosity: Optional[int] = None) -> None:
    """
    Setup logging configuration.

    Logs go to a file only, since the terminal belongs to the UI.

    Args:
        config: Configuration dictionary
        verbosity: -l/--log value, overriding the configured level
    """
    logging_config = config.get('logging', {})

    if verbosity is not None:
        level = LOG_LEVELS[verbosity]
    else:
        level_str = logging_config.get('level', 'WARNING').upper()
        level = getattr(logging, level_str, logging.WARNING)

    handlers = []

    log_file = Path(logging_config.get('file') or default_log_path()).expanduser()
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(level)
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
    except OSError as e:
        print(f"Warning: Could not create log file '{log_file}': {e}", file=sys.stderr)
        handlers.append(logging.NullHandler())

    # Configure root logger
    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    # httpx logs every request at DEBUG; only keep it at the highest verbosity
    if verbosity != HTTP_DEBUG_VERBOSITY:
        logging.getLogger('httpx').setLevel(logging.WARNING)
        logging.getLogger('httpcore').setLevel(logging.WARNING)


def apply_overrides(config: dict, args: argparse.Namespace) -> None:
    """Apply command-line flags that were given on top of the config."""
    if args.mode is not None:
        config['mode'] = args.mode

    if args.quality is not None:
        config['quality'] = args.quality

    if args.download_dir is not None:
        config['download_dir'] = args.download_dir

    if args.player is not None:
        config['player'] = args.player

    config['download_mode'] = bool(args.download)


def check_environment(config: dict) -> Optional[str]:
    """
    Pre-session checks; returns an error message, or None when ready.

    Resolves the player into ``config['player']``.
    """
    if not is_valid_mode(config.get('mode')):
        return f"Invalid mode '{config.get('mode')}'. Use 'sub' or 'dub'."

    if config.get('download_mode'):
        download_dir = Path(config['download_dir']).expanduser()
        if not download_dir.is_dir():
            return f"Download directory does not exist: {download_dir}"

    if find_executable(YTDLP_EXECUTABLE) is None:
        return f"{YTDLP_EXECUTABLE} not found in PATH. It is required for streaming and downloads."

    try:
        player = resolve_player(None, config.get('player'))
    except PlayerError as e:
        return str(e)

    if find_executable(player) is None:
        return f"Player '{player}' not found in PATH"

    config['player'] = player
    return None


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for animewatcher CLI.

    Args:
        argv: Command-line arguments (default: sys.argv)

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    apply_overrides(config, args)

    error = check_environment(config)
    if error:
        print(f"Error: {error}", file=sys.stderr)
        return 1

    try:
        validate_config(config)
    except ValidationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    _setup_logging(config, args.log)

    try:
        return asyncio.run(run_session(config))
    except KeyboardInterrupt:
        print("\nInterrupted by user.", file=sys.stderr)
        return 130
    except Exception as e:
        logger.exception("Fatal error")
        print(f"\nFatal error: {e}", file=sys.stderr)
        return 1


async def run_session(config: dict) -> int:
    """
    Run the interactive session until the user quits.

    Args:
        config: Validated configuration with CLI overrides applied

    Returns:
        Exit code
    """
    keyboard = KeyboardListener()
    if not keyboard.start():
        print("Error: animewatcher needs an interactive terminal", file=sys.stderr)
        return 1

    state = SessionState(
        mode=config['mode'],
        quality=str(config['quality']),
        download_mode=config.get('download_mode', False),
        keybindings=Keybindings.from_config(config.get('keybindings')),
        colors=config.get('colors')
    )
    history = WatchHistory.load()
    ui = ConsoleUI(config)

    logger.info(
        f"animewatcher v{__version__} starting: mode={state.mode} quality={state.quality} "
        f"download={state.download_mode} player={config['player']}"
    )

    try:
        async with httpx.AsyncClient(follow_redirects=True) as http_client:
            orchestrator = SessionOrchestrator(
                state=state,
                client=CatalogClient(config, http_client),
                history=history,
                ui=ui,
                keyboard=keyboard,
                player=config['player'],
                player_args=config.get('player_args', []),
                download_dir=Path(config['download_dir']).expanduser(),
                history_limit=config['history_limit'],
                manual_quality=get_config_value(config, 'ui.manual_quality', False)
            )
            ui.start()
            await orchestrator.run()
    finally:
        ui.stop()
        keyboard.stop()

    return 0
