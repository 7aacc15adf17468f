"""Media player resolution and launch."""

import logging
import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)

PLATFORM_PLAYERS = {
    'linux': 'mpv',
    'win32': 'mpv.exe',
    'darwin': 'iina',
}


class PlayerError(Exception):
    """Player could not be resolved or started."""
    pass


@dataclass
class PlayerCommand:
    argv: List[str]


def default_player(platform: Optional[str] = None) -> str:
    """
    Default player executable for a platform.

    Raises:
        PlayerError: If the platform has no known default player
    """
    platform = platform or sys.platform
    for prefix, player in PLATFORM_PLAYERS.items():
        if platform.startswith(prefix):
            return player
    raise PlayerError(f"No default player for platform '{platform}', use --player")


def resolve_player(cli_player: Optional[str], config_player: Optional[str]) -> str:
    """Player from the CLI, then config, then the platform default."""
    return cli_player or config_player or default_player()


def find_executable(name: str) -> Optional[str]:
    return shutil.which(name)


def build_player_command(executable: str, extra_args: List[str], url: str) -> PlayerCommand:
    return PlayerCommand(argv=[executable, *extra_args, url])


def launch_player(executable: str, extra_args: List[str], url: str) -> subprocess.Popen:
    """
    Start the player detached from the terminal.

    The player runs in its own session with all stdio discarded so it
    cannot draw over the interface. It is not supervised after spawning.

    Raises:
        PlayerError: If the process cannot be started
    """
    cmd = build_player_command(executable, extra_args, url)
    logger.debug(f"Playing: {url}")
    try:
        return subprocess.Popen(
            cmd.argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        raise PlayerError(f"Failed to start {executable}: {e}") from e
