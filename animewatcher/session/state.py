"""
Session state container.

SessionState is the single mutable object shared by the input router,
the orchestrator and the renderer. The router and orchestrator mutate
it; the renderer only reads it.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

from animewatcher.api.catalog_types import Show, Episode, StreamSource
from animewatcher.config.keybindings import Keybindings
from animewatcher.session.actions import Action
from animewatcher.session.episode_filter import filter_episodes

logger = logging.getLogger(__name__)

DOWNLOAD_LOG_SIZE = 10


class Screen(Enum):
    """Screens of the main panel."""
    STARTUP = "startup"
    SEARCH = "search"
    SHOW_LIST = "show_list"
    EPISODE_LIST = "episode_list"
    QUALITY_SELECT = "quality_select"
    PLAYBACK = "playback"
    BATCH_SELECT = "batch_select"
    LOADING = "loading"


class Focus(Enum):
    """Which panel receives navigation keys."""
    SIDEBAR = "sidebar"
    MAIN = "main"


class InputMode(Enum):
    """
    Modal text/confirmation input that captures keys ahead of navigation.

    Exactly one mode is active at a time. The help overlay is tracked
    separately since it suppresses every mode while open.
    """
    NORMAL = "normal"
    SEARCH_ENTRY = "search_entry"     # Typing into the search bar
    FILTER_ENTRY = "filter_entry"     # Typing an episode filter
    RANGE_ENTRY = "range_entry"       # Typing a batch range like 1-12
    BATCH_CONFIRM = "batch_confirm"   # Waiting for y/n on a staged batch


class HistoryEntry(NamedTuple):
    """Sidebar row for a watch history record."""
    show_id: str
    show_name: str
    episode: int
    mode: str


@dataclass
class ListCursor:
    """Selected row of a list, clamped to its bounds without wraparound."""
    selected: Optional[int] = None

    def select(self, index: Optional[int]) -> None:
        self.selected = index

    def move_up(self) -> None:
        current = self.selected or 0
        self.selected = max(current - 1, 0)

    def move_down(self, length: int) -> None:
        current = self.selected or 0
        self.selected = min(current + 1, max(length - 1, 0))


@dataclass
class DownloadProgress:
    """Progress shown by the download modal during a batch."""
    visible: bool = False
    current: int = 0
    total: int = 0
    message: str = ""
    log: List[str] = field(default_factory=list)

    def start(self, total: int) -> None:
        self.visible = True
        self.current = 0
        self.total = total
        self.message = ""
        self.log.clear()

    def update(self, current: int, message: str) -> None:
        self.current = current
        self.message = message

    def add_log(self, entry: str) -> None:
        """Append to the activity log, keeping only the most recent entries."""
        self.log.append(entry)
        if len(self.log) > DOWNLOAD_LOG_SIZE:
            del self.log[:len(self.log) - DOWNLOAD_LOG_SIZE]

    def close(self) -> None:
        self.visible = False


class SessionState:
    """
    Everything the interactive session knows.

    Created once at startup with the CLI-resolved mode, quality and
    download mode, then seeded with watch history.
    """

    def __init__(
        self,
        mode: str = "sub",
        quality: str = "best",
        download_mode: bool = False,
        keybindings: Optional[Keybindings] = None,
        colors: Optional[Dict[str, str]] = None,
    ):
        self.screen = Screen.STARTUP
        self.focus = Focus.MAIN
        self._input_mode = InputMode.NORMAL
        self.help_open = False
        self.should_quit = False

        # Text buffers
        self.search_input = ""
        self.range_input = ""
        self.episode_filter = ""

        # Catalog data
        self.shows: List[Show] = []
        self.episodes: List[Episode] = []
        self.sources: List[StreamSource] = []
        self.selected_show: Optional[Show] = None
        self.current_episode: Optional[Episode] = None
        self.selected_source: Optional[StreamSource] = None
        self.history_records: List[HistoryEntry] = []

        # List cursors
        self.show_cursor = ListCursor()
        self.episode_cursor = ListCursor()
        self.quality_cursor = ListCursor()
        self.playback_cursor = ListCursor()
        self.history_cursor = ListCursor()
        self.startup_cursor = ListCursor(selected=0)
        self.batch_cursor = ListCursor()

        self.loading_message = ""
        self.error_message: Optional[str] = None
        self.status_message: Optional[str] = None
        self._pending_batch_action: Optional[Action] = None

        self.mode = mode
        self.quality = quality
        self.download_mode = download_mode
        self.keybindings = keybindings or Keybindings()
        self.colors: Dict[str, Any] = colors or {}
        self.download = DownloadProgress()

    # Input mode

    @property
    def input_mode(self) -> InputMode:
        return self._input_mode

    @input_mode.setter
    def input_mode(self, mode: InputMode) -> None:
        # A staged batch only lives while its confirmation is pending
        if mode is not InputMode.BATCH_CONFIRM:
            self._pending_batch_action = None
        self._input_mode = mode

    @property
    def search_focused(self) -> bool:
        return self._input_mode is InputMode.SEARCH_ENTRY

    @property
    def episode_filter_active(self) -> bool:
        return self._input_mode is InputMode.FILTER_ENTRY

    @property
    def range_input_mode(self) -> bool:
        return self._input_mode is InputMode.RANGE_ENTRY

    @property
    def batch_confirm_mode(self) -> bool:
        return self._input_mode is InputMode.BATCH_CONFIRM

    @property
    def pending_batch_action(self) -> Optional[Action]:
        return self._pending_batch_action

    def stage_batch(self, action: Action) -> None:
        """Stage a batch action and ask for confirmation."""
        self._input_mode = InputMode.BATCH_CONFIRM
        self._pending_batch_action = action

    def take_pending_batch(self) -> Optional[Action]:
        """Consume the staged batch action and leave confirmation mode."""
        action = self._pending_batch_action
        self.input_mode = InputMode.NORMAL
        return action

    # Screen transitions

    def set_loading(self, message: str) -> None:
        self.screen = Screen.LOADING
        self.loading_message = message

    def set_shows(self, shows: List[Show]) -> None:
        self.shows = shows
        self.show_cursor.select(0)
        self.screen = Screen.SHOW_LIST

    def set_episodes(self, episodes: List[Episode]) -> None:
        """Replace the episode list; any filter from the previous list is dropped."""
        self.episodes = episodes
        self.episode_filter = ""
        self.episode_cursor.select(0)
        self.screen = Screen.EPISODE_LIST

    def set_sources(self, sources: List[StreamSource]) -> None:
        self.sources = sources
        self.quality_cursor.select(0)
        self.screen = Screen.QUALITY_SELECT

    def set_history(self, records: List[HistoryEntry]) -> None:
        self.history_records = list(records)
        if self.history_records:
            self.history_cursor.select(
                min(self.history_cursor.selected or 0, len(self.history_records) - 1)
            )
        else:
            self.history_cursor.select(None)

    def show_playback_menu(self) -> None:
        self.playback_cursor.select(0)
        self.screen = Screen.PLAYBACK

    def show_batch_menu(self) -> None:
        self.batch_cursor.select(0)
        self.screen = Screen.BATCH_SELECT

    def open_search(self) -> None:
        """Switch to the search screen with the search bar capturing input."""
        self.screen = Screen.SEARCH
        self.input_mode = InputMode.SEARCH_ENTRY

    # Messages

    def set_error(self, message: str) -> None:
        logger.debug(f"Session error: {message}")
        self.error_message = message

    def clear_error(self) -> None:
        self.error_message = None

    def set_status(self, message: str) -> None:
        self.status_message = message

    def clear_messages(self) -> None:
        self.error_message = None
        self.status_message = None

    # Derived views

    def filtered_episodes(self) -> List[Episode]:
        return filter_episodes(self.episodes, self.episode_filter)

    def index_of_episode(self, number: int) -> Optional[int]:
        """Index of an episode number in the canonical list, or None."""
        for i, episode in enumerate(self.episodes):
            if episode.number == number:
                return i
        return None
