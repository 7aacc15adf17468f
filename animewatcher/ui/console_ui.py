"""
Rich console UI for animewatcher

Draws the session state as a full-screen split layout: header, search
bar, history sidebar, main panel and footer. Modal overlays (help, range
entry, batch confirmation, download progress) take over the main panel.
"""

import logging
from typing import Dict, List, Optional

from animewatcher import __version__
from animewatcher.config.loader import DEFAULT_COLORS
from animewatcher.session.batch_plan import pending_batch_count
from animewatcher.session.menus import BATCH_MENU, STARTUP_MENU, playback_options
from animewatcher.session.state import SessionState, Screen, Focus
from rich import box
from rich.align import Align
from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

logger = logging.getLogger(__name__)

SIDEBAR_WIDTH = 30

# Rows taken by header, search bar, footer and panel borders
CHROME_HEIGHT = 12

FOOTER_HINTS: Dict[Screen, str] = {
    Screen.STARTUP: "[/] search  [Tab] switch  [↑↓] navigate  [Enter] select  [?] help  [q] quit",
    Screen.SEARCH: "[/] search  [Tab] switch  [?] help  [q] quit",
    Screen.SHOW_LIST: "[/] search  [Tab] switch  [↑↓] navigate  [Enter] select  [?] help  [q] quit",
    Screen.EPISODE_LIST: "[/] search  [Tab] switch  [↑↓] navigate  [f] filter  [Enter] select  [?] help  [q] quit",
    Screen.QUALITY_SELECT: "[↑↓] navigate  [Enter] select  [Bksp] back  [?] help  [q] quit",
    Screen.PLAYBACK: "[/] search  [Tab] switch  [n] next  [p] prev  [r] replay  [e] episodes  [?] help  [q] quit",
    Screen.BATCH_SELECT: "[↑↓] navigate  [Enter] select  [Bksp] back  [?] help  [q] quit",
    Screen.LOADING: "[?] help  [q] quit",
}

HELP_GLOBAL = """\
Global
  Ctrl+C / Ctrl+Q   Quit immediately
  ?                 Toggle this help
  Tab               Switch sidebar / main panel
  s or /            Focus the search bar
"""

HELP_NAVIGATION = """\
Navigation
  j / ↓             Move down
  k / ↑             Move up
  Enter             Select
  Backspace / Esc   Go back
"""

HELP_SIDEBAR = """\
History sidebar
  Enter             Continue watching the selected show
"""

HELP_SEARCH = """\
Search
  (type)            Edit the query
  Enter             Search
  Esc               Cancel
"""

HELP_FILTER = """\
Episode filter
  f                 Start filtering
  (type)            Filter by episode number or title
  Enter / Esc       Finish filtering
  Backspace         Clear the filter (when not typing)
"""

HELP_PLAYBACK = """\
Playback
  n                 Next episode
  p                 Previous episode
  r                 Replay current episode
  e                 Back to the episode list
"""

HELP_BATCH = """\
Batch download
  All               Download every episode
  Range             Download a range such as 1-12
  Single            Download the selected episode only
"""

HELP_SECTIONS: Dict[Screen, List[str]] = {
    Screen.STARTUP: [HELP_GLOBAL, HELP_SIDEBAR, HELP_SEARCH],
    Screen.SEARCH: [HELP_GLOBAL, HELP_SEARCH],
    Screen.SHOW_LIST: [HELP_GLOBAL, HELP_NAVIGATION, HELP_SIDEBAR, HELP_SEARCH],
    Screen.EPISODE_LIST: [HELP_GLOBAL, HELP_NAVIGATION, HELP_FILTER, HELP_SIDEBAR, HELP_SEARCH],
    Screen.QUALITY_SELECT: [HELP_GLOBAL, HELP_NAVIGATION],
    Screen.PLAYBACK: [HELP_GLOBAL, HELP_PLAYBACK, HELP_SIDEBAR, HELP_SEARCH],
    Screen.BATCH_SELECT: [HELP_GLOBAL, HELP_NAVIGATION, HELP_BATCH],
    Screen.LOADING: [HELP_GLOBAL],
}

SCREEN_TITLES: Dict[Screen, str] = {
    Screen.STARTUP: "Welcome",
    Screen.SEARCH: "Search",
    Screen.SHOW_LIST: "Results",
    Screen.EPISODE_LIST: "Episodes",
    Screen.QUALITY_SELECT: "Select quality",
    Screen.PLAYBACK: "Playback",
    Screen.BATCH_SELECT: "Batch download",
    Screen.LOADING: "Loading",
}


def help_text(screen: Screen) -> str:
    """Help overlay content for a screen."""
    return "\n".join(HELP_SECTIONS.get(screen, [HELP_GLOBAL])) + "\nPress ? to close"


class ConsoleUI:
    """
    Rich-based full-screen interface

    Layout:
        Header: program name, mode, quality, download indicator
        Search bar
        Body: history sidebar | main panel
        Footer: error/status line and key hints

    The UI never changes the session state; ``render`` draws whatever the
    state currently holds.

    Example:
        ui = ConsoleUI(config)
        ui.start()
        ui.render(state)
        ui.stop()
    """

    def __init__(self, config: dict, console: Optional[Console] = None):
        """
        Initialize console UI

        Args:
            config: Configuration dictionary (reads the ``colors`` section)
            console: Console to draw on (defaults to a new terminal console)
        """
        self.console = console or Console()
        self.colors: Dict[str, str] = {**DEFAULT_COLORS, **(config.get('colors') or {})}
        self.layout = self._create_layout()
        self.live: Optional[Live] = None

    def _create_layout(self) -> Layout:
        """Create split panel layout"""
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="search", size=3),
            Layout(name="body", ratio=1),
            Layout(name="footer", size=4)
        )
        layout["body"].split_row(
            Layout(name="sidebar", size=SIDEBAR_WIDTH),
            Layout(name="main", ratio=1)
        )
        return layout

    def start(self) -> None:
        """Take over the terminal with the live display"""
        if self.live is None:
            self.live = Live(
                self.layout,
                console=self.console,
                auto_refresh=False,
                screen=True
            )
            self.live.start()
            logger.debug("Console UI started")

    def stop(self) -> None:
        """Stop the live display and give the terminal back"""
        if self.live:
            self.live.stop()
            self.live = None
            logger.debug("Console UI stopped")

    def render(self, state: SessionState) -> None:
        """Redraw every panel from the session state"""
        self.layout["header"].update(self._render_header(state))
        self.layout["search"].update(self._render_search_bar(state))
        self.layout["sidebar"].update(self._render_sidebar(state))
        self.layout["main"].update(self._render_main(state))
        self.layout["footer"].update(self._render_footer(state))

        if self.live:
            self.live.refresh()

    # Panels

    def _border(self, focused: bool) -> str:
        return self.colors['border_focused'] if focused else self.colors['border_unfocused']

    def _render_header(self, state: SessionState) -> Panel:
        header_text = Text()
        header_text.append(f"animewatcher v{__version__}", style=f"bold {self.colors['mode_indicator']}")
        header_text.append("  ")
        header_text.append(f"[{state.mode}]", style=self.colors['highlight'])
        header_text.append("  ")
        header_text.append(f"[{state.quality}]", style=self.colors['streaming'])
        if state.download_mode:
            header_text.append("  [download]", style=f"bold {self.colors['download']}")
        return Panel(header_text, box=box.ROUNDED, border_style=self.colors['border_unfocused'])

    def _render_search_bar(self, state: SessionState) -> Panel:
        if state.search_focused:
            content = Text(state.search_input, style=self.colors['text'])
            content.append("█", style=self.colors['highlight'])
        elif state.search_input:
            content = Text(state.search_input, style=self.colors['text_dim'])
        else:
            content = Text("Press / to search", style=self.colors['text_dim'])
        return Panel(
            content,
            title="Search",
            title_align="left",
            box=box.ROUNDED,
            border_style=self._border(state.search_focused)
        )

    def _render_sidebar(self, state: SessionState) -> Panel:
        focused = state.focus is Focus.SIDEBAR
        if state.history_records:
            items = [
                f"{entry.show_name} (ep {entry.episode}, {entry.mode})"
                for entry in state.history_records
            ]
            content = self._list_text(items, state.history_cursor.selected, highlight=focused)
        else:
            content = Text("No history yet", style=self.colors['text_dim'])
        return Panel(
            content,
            title="Recent",
            title_align="left",
            box=box.ROUNDED,
            border_style=self._border(focused)
        )

    def _render_main(self, state: SessionState) -> Panel:
        focused = state.focus is Focus.MAIN and not state.search_focused

        overlay = self._render_overlay(state)
        if overlay is not None:
            return overlay

        renderers = {
            Screen.STARTUP: self._startup_view,
            Screen.SEARCH: self._search_view,
            Screen.SHOW_LIST: self._show_list_view,
            Screen.EPISODE_LIST: self._episode_list_view,
            Screen.QUALITY_SELECT: self._quality_view,
            Screen.PLAYBACK: self._playback_view,
            Screen.BATCH_SELECT: self._batch_view,
            Screen.LOADING: self._loading_view,
        }
        content = renderers[state.screen](state)
        return Panel(
            content,
            title=self._main_title(state),
            title_align="left",
            box=box.ROUNDED,
            border_style=self._border(focused)
        )

    def _main_title(self, state: SessionState) -> str:
        title = SCREEN_TITLES[state.screen]
        if state.screen is Screen.EPISODE_LIST and state.selected_show is not None:
            title = f"{state.selected_show.name} - {title}"
        return title

    def _render_footer(self, state: SessionState) -> Panel:
        message = Text()
        if state.error_message:
            message.append(f"✗ {state.error_message}", style=f"bold {self.colors['error']}")
        elif state.status_message:
            message.append(state.status_message, style=self.colors['status'])

        if state.search_focused:
            hints = "[Enter] search  [Esc] cancel  [?] help"
        else:
            hints = FOOTER_HINTS[state.screen]

        return Panel(
            Group(message, Text(hints, style=self.colors['text_dim'])),
            box=box.ROUNDED,
            border_style=self.colors['border_unfocused']
        )

    # Overlays

    def _render_overlay(self, state: SessionState) -> Optional[Panel]:
        if state.help_open:
            return self._popup(Text(help_text(state.screen)), f"Help - {SCREEN_TITLES[state.screen]}")

        if state.download.visible:
            return self._popup(self._download_view(state), "Downloading")

        if state.range_input_mode:
            content = Text("Enter episode range (e.g. 1-12):\n\n", style=self.colors['text'])
            content.append(state.range_input, style=f"bold {self.colors['highlight']}")
            content.append("█", style=self.colors['highlight'])
            if state.error_message:
                content.append(f"\n\n{state.error_message}", style=self.colors['error'])
            content.append("\n\n[Enter] confirm  [Esc] cancel", style=self.colors['text_dim'])
            return self._popup(content, "Download range")

        if state.batch_confirm_mode:
            count = pending_batch_count(state.pending_batch_action, state.episodes)
            content = Text(f"Download {count} episode(s)?\n\n", style=self.colors['text'])
            content.append("[y/Enter] yes  [n/Esc] no", style=self.colors['text_dim'])
            return self._popup(content, "Confirm download")

        return None

    def _popup(self, content, title: str) -> Panel:
        return Panel(
            Align.center(
                Panel(content, title=title, box=box.DOUBLE, border_style=self.colors['highlight']),
                vertical="middle"
            ),
            box=box.ROUNDED,
            border_style=self.colors['border_focused']
        )

    def _download_view(self, state: SessionState) -> Text:
        progress = state.download
        content = Text()
        content.append(f"[{progress.current}/{progress.total}] ", style=f"bold {self.colors['highlight']}")
        content.append(progress.message or "Starting...", style=self.colors['text'])
        if progress.log:
            content.append("\n\n")
            content.append("\n".join(progress.log), style=self.colors['text_dim'])
        return content

    # Screens

    def _startup_view(self, state: SessionState) -> Text:
        content = Text("Welcome to animewatcher!\n\n", style=f"bold {self.colors['text']}")
        if state.history_records:
            content.append(
                "Press Enter to continue the highlighted show, or / to search.\n",
                style=self.colors['text']
            )
            selected = state.history_cursor.selected
            if selected is not None and selected < len(state.history_records):
                entry = state.history_records[selected]
                content.append(
                    f"\nNext up: {entry.show_name} after episode {entry.episode}",
                    style=self.colors['highlight']
                )
            return content

        content.append("Press / to search for a show.\n\n", style=self.colors['text'])
        content.append_text(self._list_text(STARTUP_MENU, state.startup_cursor.selected))
        return content

    def _search_view(self, state: SessionState) -> Text:
        return Text(
            "Type your search query and press Enter\n\nPress Esc to cancel",
            style=self.colors['text']
        )

    def _show_list_view(self, state: SessionState) -> Text:
        items = [show.to_display() for show in state.shows]
        return self._list_text(items, state.show_cursor.selected)

    def _episode_list_view(self, state: SessionState) -> Text:
        filtered = state.filtered_episodes()
        content = Text()
        if state.episode_filter_active or state.episode_filter:
            content.append("Filter: ", style=self.colors['text_dim'])
            content.append(state.episode_filter, style=f"bold {self.colors['highlight']}")
            if state.episode_filter_active:
                content.append("█", style=self.colors['highlight'])
            content.append(f"  ({len(filtered)}/{len(state.episodes)})\n", style=self.colors['text_dim'])

        if not filtered:
            content.append("No matching episodes", style=self.colors['text_dim'])
            return content

        items = [episode.to_display() for episode in filtered]
        content.append_text(self._list_text(items, state.episode_cursor.selected))
        return content

    def _quality_view(self, state: SessionState) -> Text:
        items = [source.to_display() for source in state.sources]
        return self._list_text(items, state.quality_cursor.selected)

    def _playback_view(self, state: SessionState) -> Text:
        content = Text()
        if state.selected_show is not None and state.current_episode is not None:
            content.append(f"Now playing: {state.selected_show.name}\n", style=f"bold {self.colors['text']}")
            content.append(f"{state.current_episode.to_display()}", style=self.colors['highlight'])
            if state.selected_source is not None:
                content.append(f"  [{state.selected_source.to_display()}]", style=self.colors['text_dim'])
            content.append("\n\n")

        labels = [option.label for option in playback_options(state.episodes, state.current_episode)]
        content.append_text(self._list_text(labels, state.playback_cursor.selected))
        return content

    def _batch_view(self, state: SessionState) -> Text:
        content = Text()
        if state.current_episode is not None:
            content.append(f"Selected: {state.current_episode.to_display()}\n\n", style=self.colors['text'])
        labels = [choice.value for choice in BATCH_MENU]
        content.append_text(self._list_text(labels, state.batch_cursor.selected))
        return content

    def _loading_view(self, state: SessionState) -> Text:
        return Text(state.loading_message, style=self.colors['status'])

    def _list_text(self, items: List[str], selected: Optional[int], highlight: bool = True) -> Text:
        """
        Render a list with the selected row highlighted

        Only a window of rows around the selection is shown so the
        selection stays visible in long lists.
        """
        height = max(self.console.size.height - CHROME_HEIGHT, 5)
        start = 0
        if selected is not None and selected >= height:
            start = selected - height + 1

        text = Text()
        for i, item in enumerate(items[start:start + height], start=start):
            if i > start:
                text.append("\n")
            if i == selected and highlight:
                text.append(f"▶ {item}", style=f"bold {self.colors['highlight']} on {self.colors['selection_bg']}")
            elif i == selected:
                text.append(f"▶ {item}", style=self.colors['text'])
            else:
                text.append(f"  {item}", style=self.colors['text'])
        return text
