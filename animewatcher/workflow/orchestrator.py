"""
Session orchestrator for animewatcher.

Runs the interactive loop:
1. Render the session state
2. Poll for one key press
3. Route it to an action
4. Execute the action's effect (catalog lookups, playback, downloads)
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, List, Optional

from ..api.catalog_types import Show, Episode, StreamSource
from ..api.error_handler import CatalogError, NotFoundError
from ..config.keybindings import KeyEvent
from ..media.downloader import EpisodeDownloader
from ..media.player import PlayerError, launch_player
from ..media.quality_selector import select_stream
from ..session.actions import (
    Action,
    Quit,
    Search,
    SelectShow,
    SelectEpisode,
    SelectQuality,
    Next,
    Previous,
    Replay,
    BackToEpisodes,
    ContinueFromHistory,
    NewSearch,
    BATCH_ACTIONS,
    EPISODE_STEP_ACTIONS,
)
from ..session.router import route
from ..session.state import SessionState, Screen, HistoryEntry
from .batch import BatchRunner
from .history import WatchHistory

logger = logging.getLogger(__name__)

POLL_TIMEOUT = 0.1


def resume_index(episodes: List[Episode], last_watched: int) -> int:
    """
    Index of the episode to continue from.

    The episode after ``last_watched`` if it exists, else ``last_watched``
    itself, else the first episode.
    """
    for target in (last_watched + 1, last_watched):
        for i, episode in enumerate(episodes):
            if episode.number == target:
                return i
    return 0


class SessionOrchestrator:
    """
    Drives the session: render, poll, route, execute.

    Effects run to completion before the next key is read. Keys pressed
    meanwhile stay queued in the terminal. Catalog and player errors are
    shown on the session state; anything else propagates.
    """

    def __init__(
        self,
        state: SessionState,
        client,
        history: WatchHistory,
        ui,
        keyboard,
        player: str,
        player_args: Optional[List[str]] = None,
        download_dir: Path = Path('.'),
        downloader: Optional[EpisodeDownloader] = None,
        history_limit: int = 10,
        manual_quality: bool = False,
        error_pause: float = 1.0,
        launcher: Callable[[str, List[str], str], Any] = launch_player,
    ):
        """
        Initialize session orchestrator.

        Args:
            state: Session state shared with the renderer
            client: Catalog client (search_shows, fetch_episodes, fetch_stream_sources)
            history: Loaded watch history
            ui: Renderer with a ``render(state)`` method
            keyboard: Key source with a ``poll(timeout)`` method
            player: Player executable
            player_args: Extra player arguments placed before the URL
            download_dir: Directory for batch downloads
            downloader: Episode downloader (defaults to yt-dlp)
            history_limit: Number of history records shown in the sidebar
            manual_quality: Let the user pick among multiple sources
            error_pause: Seconds a per-episode batch error stays on screen
            launcher: Starts the player; raises PlayerError on failure
        """
        self.state = state
        self.client = client
        self.history = history
        self.ui = ui
        self.keyboard = keyboard
        self.player = player
        self.player_args = list(player_args or [])
        self.history_limit = history_limit
        self.manual_quality = manual_quality
        self.launcher = launcher
        self.batch_runner = BatchRunner(
            client=client,
            downloader=downloader or EpisodeDownloader(),
            download_dir=download_dir,
            on_downloaded=self.record_history,
            render=self.render,
            error_pause=error_pause
        )

    def render(self) -> None:
        self.ui.render(self.state)

    def refresh_history(self) -> None:
        """Reload the sidebar rows from the watch history."""
        self.state.set_history([
            HistoryEntry(r.show_id, r.show_name, r.episode, r.mode)
            for r in self.history.get_recent(self.history_limit)
        ])

    def record_history(self, show: Show, episode: Episode) -> None:
        """Record a watched or downloaded episode and save immediately."""
        self.history.update(show.id, show.name, episode.number, self.state.mode)
        try:
            self.history.save()
        except OSError as e:
            logger.warning(f"Failed to save watch history: {e}")
        self.refresh_history()

    async def run(self) -> None:
        """Run until a quit action is routed."""
        self.refresh_history()
        logger.info("Session started")

        while not self.state.should_quit:
            self.render()
            event = self.keyboard.poll(POLL_TIMEOUT)
            if event is None:
                await asyncio.sleep(0)
                continue
            await self.handle_key(event)

        logger.info("Session ended")

    async def handle_key(self, event: KeyEvent) -> Optional[Action]:
        """Route one key press and execute the resulting action."""
        action = route(self.state, event)
        if action is not None:
            self.state.clear_messages()
            await self.execute(action)
        return action

    async def execute(self, action: Action) -> None:
        """Perform the effect of an action and fold the result into the state."""
        logger.debug(f"Executing {action}")

        if isinstance(action, Quit):
            return
        if isinstance(action, Search):
            await self._search(action.query)
        elif isinstance(action, SelectShow):
            await self._select_show(action.index)
        elif isinstance(action, SelectEpisode):
            await self._select_episode(action.index)
        elif isinstance(action, SelectQuality):
            self._select_quality(action.index)
        elif isinstance(action, EPISODE_STEP_ACTIONS):
            await self._step_episode(action)
        elif isinstance(action, BackToEpisodes):
            self.state.screen = Screen.EPISODE_LIST
        elif isinstance(action, ContinueFromHistory):
            await self._continue_from_history(action.index)
        elif isinstance(action, NewSearch):
            self.state.open_search()
        elif isinstance(action, BATCH_ACTIONS):
            await self.batch_runner.run(self.state, action)

    async def _search(self, query: str) -> None:
        state = self.state
        state.set_loading(f"Searching for '{query}'...")
        self.render()

        try:
            shows = await self.client.search_shows(query, state.mode)
            if not shows:
                raise NotFoundError("No results found")
        except CatalogError as e:
            logger.error(f"Search for '{query}' failed: {e}")
            state.set_error(str(e))
            state.open_search()
            return

        state.set_shows(shows)

    async def _select_show(self, index: int) -> None:
        state = self.state
        if not 0 <= index < len(state.shows):
            return

        show = state.shows[index]
        state.selected_show = show
        state.set_loading(f"Loading episodes for {show.name}...")
        self.render()

        try:
            episodes = await self.client.fetch_episodes(show.id, state.mode)
            if not episodes:
                raise NotFoundError(f"No episodes found for {show.name}")
        except CatalogError as e:
            logger.error(f"Fetching episodes for {show.name} failed: {e}")
            state.set_error(str(e))
            state.screen = Screen.SHOW_LIST
            return

        state.set_episodes(sorted(episodes, key=lambda e: e.number))

    async def _select_episode(self, index: int) -> None:
        state = self.state
        if not 0 <= index < len(state.episodes):
            return

        episode = state.episodes[index]
        if state.download_mode:
            state.current_episode = episode
            state.show_batch_menu()
            return

        await self._play_episode(episode, Screen.EPISODE_LIST)

    async def _play_episode(self, episode: Episode, fallback: Screen) -> None:
        """Fetch sources for an episode and start playback, or return to ``fallback``."""
        state = self.state
        show = state.selected_show
        if show is None:
            state.set_error("No show selected")
            state.screen = fallback
            return

        state.set_loading("Fetching stream sources...")
        self.render()

        try:
            sources = await self.client.fetch_stream_sources(show.id, state.mode, episode.number)
            if not sources:
                raise NotFoundError("No sources found")
        except CatalogError as e:
            logger.error(f"Fetching sources for episode {episode.number} failed: {e}")
            state.set_error(str(e))
            state.screen = fallback
            return

        if self.manual_quality and len(sources) > 1:
            # The quality screen plays whichever episode is current
            state.current_episode = episode
            state.set_sources(sources)
            return

        self._start_playback(show, episode, select_stream(sources, state.quality), fallback)

    def _select_quality(self, index: int) -> None:
        state = self.state
        if not 0 <= index < len(state.sources):
            return
        if state.selected_show is None or state.current_episode is None:
            return
        self._start_playback(
            state.selected_show, state.current_episode, state.sources[index], Screen.EPISODE_LIST
        )

    def _start_playback(self, show: Show, episode: Episode, source: StreamSource,
                        fallback: Screen) -> None:
        """Launch the player; the episode only becomes current once it is playing."""
        state = self.state
        try:
            self.launcher(self.player, self.player_args, source.url)
        except PlayerError as e:
            logger.error(str(e))
            state.set_error(str(e))
            state.screen = fallback
            return

        logger.info(f"Playing {show.name} episode {episode.number} ({source.to_display()})")
        state.current_episode = episode
        state.selected_source = source
        self.record_history(show, episode)
        state.show_playback_menu()

    async def _step_episode(self, action: Action) -> None:
        state = self.state
        current = state.current_episode
        if current is None:
            return

        index = state.index_of_episode(current.number)
        target = None
        if isinstance(action, Replay):
            target = current
        elif index is not None and isinstance(action, Next):
            if index + 1 < len(state.episodes):
                target = state.episodes[index + 1]
        elif index is not None and isinstance(action, Previous):
            if index > 0:
                target = state.episodes[index - 1]

        if target is None:
            direction = "next" if isinstance(action, Next) else "previous"
            state.set_status(f"No {direction} episode")
            return

        await self._play_episode(target, Screen.PLAYBACK)

    async def _continue_from_history(self, index: int) -> None:
        state = self.state
        if not 0 <= index < len(state.history_records):
            return

        entry = state.history_records[index]
        state.set_loading(f"Loading {entry.show_name}...")
        self.render()

        try:
            episodes = await self.client.fetch_episodes(entry.show_id, entry.mode)
            if not episodes:
                raise NotFoundError(f"No episodes found for {entry.show_name}")
        except CatalogError as e:
            logger.error(f"Fetching episodes for {entry.show_name} failed: {e}")
            state.set_error(str(e))
            state.screen = Screen.STARTUP
            return

        episodes = sorted(episodes, key=lambda e: e.number)
        state.mode = entry.mode
        state.selected_show = Show(
            id=entry.show_id,
            name=entry.show_name,
            available_episodes=len(episodes)
        )
        state.set_episodes(episodes)
        state.episode_cursor.select(resume_index(episodes, entry.episode))
