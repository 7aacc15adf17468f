"""
Episode downloader.

Downloads episodes with yt-dlp, which handles both direct files and HLS
playlists and merges the result into a single mp4.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

YTDLP_EXECUTABLE = "yt-dlp"

# Characters that are not allowed in file names on common filesystems
UNSAFE_FILENAME_CHARS = '/\\:*?"<>|'

STDERR_TAIL_LINES = 3


def generate_filename(show_name: str, episode_number: int, mode: str) -> str:
    """
    Build the output file name for an episode.

    Example:
        >>> generate_filename('Re:Zero', 3, 'sub')
        'Re_Zero - Episode 3 [sub].mp4'
    """
    safe_name = ''.join('_' if c in UNSAFE_FILENAME_CHARS else c for c in show_name)
    return f"{safe_name} - Episode {episode_number} [{mode}].mp4"


def get_output_path(download_dir: Path, show_name: str, episode_number: int, mode: str) -> Path:
    return Path(download_dir) / generate_filename(show_name, episode_number, mode)


class EpisodeDownloader:
    """
    Downloads episode streams to disk.

    Runs one yt-dlp process per download and waits for it to finish.
    """

    def __init__(self, executable: str = YTDLP_EXECUTABLE):
        """
        Initialize episode downloader.

        Args:
            executable: yt-dlp executable name or path
        """
        self.executable = executable

    def build_command(self, url: str, output_path: Path) -> List[str]:
        return [
            self.executable,
            "--no-warnings",
            "--no-check-certificate",
            "-o", str(output_path),
            "--merge-output-format", "mp4",
            url,
        ]

    async def download(self, url: str, output_path: Path) -> Tuple[bool, Optional[str]]:
        """
        Download a stream URL to output path.

        Args:
            url: Stream URL (direct file or HLS playlist)
            output_path: Destination file path

        Returns:
            Tuple of (success: bool, error_message: str or None)

        Example:
            success, error = await downloader.download(
                source.url,
                Path('downloads/Show - Episode 1 [sub].mp4')
            )
            if not success:
                print(f"Download failed: {error}")
        """
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot create {output_path.parent}: {e}")
            return False, f"Cannot create {output_path.parent}: {e}"

        command = self.build_command(url, output_path)
        logger.debug(f"Running: {' '.join(command)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE
            )
        except FileNotFoundError:
            return False, f"{self.executable} not found in PATH"
        except OSError as e:
            return False, f"Failed to start {self.executable}: {e}"

        _, stderr = await process.communicate()

        if process.returncode != 0:
            tail = _stderr_tail(stderr)
            message = f"{self.executable} exited with status {process.returncode}"
            if tail:
                message = f"{message}: {tail}"
            logger.warning(f"Download of {output_path.name} failed: {message}")
            return False, message

        logger.info(f"Downloaded {output_path.name}")
        return True, None


def _stderr_tail(stderr: Optional[bytes]) -> str:
    if not stderr:
        return ""
    lines = stderr.decode('utf-8', errors='replace').strip().splitlines()
    return ' | '.join(lines[-STDERR_TAIL_LINES:])
