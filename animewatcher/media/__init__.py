"""
Media package for animewatcher.

Handles stream quality selection, episode downloads and player launch.
"""

from .quality_selector import select_stream
from .downloader import EpisodeDownloader, generate_filename, get_output_path
from .player import PlayerError, launch_player, resolve_player, default_player

__all__ = [
    "select_stream",
    "EpisodeDownloader",
    "generate_filename",
    "get_output_path",
    "PlayerError",
    "launch_player",
    "resolve_player",
    "default_player",
]
