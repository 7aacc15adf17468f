"""
Batch download execution.

Downloads the episodes targeted by a confirmed batch action one at a
time. A failed episode is reported and skipped; the batch always runs to
the end.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List

from animewatcher.api.catalog_types import Show, Episode
from animewatcher.api.error_handler import CatalogError
from animewatcher.media.downloader import EpisodeDownloader, get_output_path
from animewatcher.media.quality_selector import select_stream
from animewatcher.session.actions import Action
from animewatcher.session.batch_plan import resolve_batch_targets
from animewatcher.session.state import SessionState, Screen

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Outcome of one batch run, by episode number."""
    downloaded: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)


class BatchRunner:
    """
    Runs batch downloads against the session state.

    The download modal on the state is kept current throughout and
    ``render`` is called after every visible change, since the input
    loop is not running while a batch is in progress.
    """

    def __init__(
        self,
        client,
        downloader: EpisodeDownloader,
        download_dir: Path,
        on_downloaded: Callable[[Show, Episode], None],
        render: Callable[[], None],
        error_pause: float = 1.0,
    ):
        """
        Initialize batch runner.

        Args:
            client: Catalog client used to fetch stream sources
            downloader: Episode downloader
            download_dir: Directory episodes are saved to
            on_downloaded: Called after each successful download, used to
                record watch history immediately
            render: Redraws the interface
            error_pause: Seconds a per-episode error stays on screen
        """
        self.client = client
        self.downloader = downloader
        self.download_dir = Path(download_dir)
        self.on_downloaded = on_downloaded
        self.render = render
        self.error_pause = error_pause

    async def run(self, state: SessionState, action: Action) -> BatchResult:
        """
        Download every episode targeted by ``action``.

        Args:
            state: Session state; provides the show, episodes, mode and quality
            action: BatchAll, BatchRange or BatchSingle

        Returns:
            BatchResult listing downloaded, skipped and failed episodes
        """
        result = BatchResult()
        show = state.selected_show
        if show is None:
            state.set_error("No show selected")
            return result

        targets = resolve_batch_targets(action, state.episodes, state.current_episode)
        total = len(targets)
        logger.info(f"Batch download of {total} episodes of {show.name} ({state.mode})")

        state.download.start(total)
        self.render()

        for position, episode in enumerate(targets, start=1):
            output_path = get_output_path(self.download_dir, show.name, episode.number, state.mode)

            if output_path.exists():
                state.set_status(f"[{position}/{total}] Skipping {output_path} (exists)")
                state.download.update(position, f"Skipping Episode {episode.number} (exists)")
                state.download.add_log(f"- Ep {episode.number} skipped (exists)")
                result.skipped.append(episode.number)
                self.render()
                continue

            state.download.update(position, f"Downloading Episode {episode.number}...")
            self.render()

            error = await self._download_episode(state, show, episode, output_path)
            if error is None:
                state.download.add_log(f"✓ Ep {episode.number} complete")
                result.downloaded.append(episode.number)
                self.on_downloaded(show, episode)
                self.render()
                continue

            logger.warning(f"Episode {episode.number}: {error}")
            state.download.add_log(f"✗ Ep {episode.number} failed")
            result.failed.append(episode.number)
            state.set_error(error)
            self.render()
            await asyncio.sleep(self.error_pause)
            state.clear_error()

        state.download.close()
        state.set_status("Download complete!")
        state.screen = Screen.EPISODE_LIST
        logger.info(
            f"Batch finished: {len(result.downloaded)} downloaded, "
            f"{len(result.skipped)} skipped, {len(result.failed)} failed"
        )
        return result

    async def _download_episode(
        self,
        state: SessionState,
        show: Show,
        episode: Episode,
        output_path: Path,
    ):
        """Fetch, select and download one episode; returns an error message or None."""
        try:
            sources = await self.client.fetch_stream_sources(show.id, state.mode, episode.number)
        except CatalogError as e:
            return f"Episode {episode.number}: {e}"

        if not sources:
            return f"No sources for episode {episode.number}"

        source = select_stream(sources, state.quality)
        success, error = await self.downloader.download(source.url, output_path)
        if not success:
            return f"Download failed: {error}"
        return None
