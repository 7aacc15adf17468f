"""
Keyboard input routing.

``route`` gives every key press exactly one interpretation. Modal input
is checked before navigation, in this order:

1. force-quit chords (ctrl+c / ctrl+q)
2. help overlay open: only close keys are honoured
3. help toggle
4. range entry
5. batch confirmation
6. search bar entry
7. episode filter entry
8. global navigation (focus toggle, search bar; from Startup and the
   show list the search key opens the Search screen)
9. sidebar, when focused
10. the current screen's handler

Handlers mutate navigation state directly and return an Action for
anything that needs the orchestrator, or None.
"""

import logging
from typing import Callable, Dict, Optional

from animewatcher.config.keybindings import KeyEvent, is_force_quit
from animewatcher.session.actions import (
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
    BatchAll,
    BatchRange,
    BatchSingle,
)
from animewatcher.session.batch_plan import RangeValidationError, parse_range
from animewatcher.session.menus import BATCH_MENU, STARTUP_MENU, BatchChoice, playback_options
from animewatcher.session.state import SessionState, Screen, Focus, InputMode

logger = logging.getLogger(__name__)

Handler = Callable[[SessionState, KeyEvent], Optional[Action]]

SEARCH_SCREEN_ENTRY = (Screen.STARTUP, Screen.SHOW_LIST)


def route(state: SessionState, event: KeyEvent) -> Optional[Action]:
    """
    Route a key press and return the resulting action.

    Args:
        state: Session state, mutated in place
        event: Decoded key press

    Returns:
        Action for the orchestrator, or None
    """
    action = _route(state, event)
    if isinstance(action, Quit):
        state.should_quit = True
    if action is not None:
        logger.debug(f"Key {event} -> {action}")
    return action


def _route(state: SessionState, event: KeyEvent) -> Optional[Action]:
    kb = state.keybindings

    if is_force_quit(event):
        return Quit()

    if state.help_open:
        if event.key == 'esc' or kb.matches(kb.help, event) or kb.matches(kb.quit, event):
            state.help_open = False
        return None

    if kb.matches(kb.help, event):
        state.help_open = True
        return None

    mode_handler = MODE_HANDLERS.get(state.input_mode)
    if mode_handler is not None:
        return mode_handler(state, event)

    if kb.matches(kb.toggle_focus, event):
        if state.focus is Focus.SIDEBAR:
            state.focus = Focus.MAIN
        else:
            state.focus = Focus.SIDEBAR
            if state.history_cursor.selected is None and state.history_records:
                state.history_cursor.select(0)
        return None

    if kb.matches(kb.search, event):
        if state.screen in SEARCH_SCREEN_ENTRY:
            state.open_search()
        else:
            state.input_mode = InputMode.SEARCH_ENTRY
        return None

    if state.focus is Focus.SIDEBAR:
        return _handle_sidebar(state, event)

    return SCREEN_HANDLERS[state.screen](state, event)


# Modal input

def _handle_range_entry(state: SessionState, event: KeyEvent) -> Optional[Action]:
    if event.key == 'enter':
        try:
            start, end = parse_range(state.range_input, state.episodes)
        except RangeValidationError as e:
            state.set_error(str(e))
            return None
        state.clear_error()
        state.stage_batch(BatchRange(start, end))
        return None

    if event.key == 'esc':
        state.input_mode = InputMode.NORMAL
        state.range_input = ""
        return None

    if event.key == 'backspace':
        state.range_input = state.range_input[:-1]
        state.clear_error()
        return None

    if event.char is not None and (event.char.isdigit() or event.char == '-'):
        state.range_input += event.char
        state.clear_error()

    return None


def _handle_batch_confirm(state: SessionState, event: KeyEvent) -> Optional[Action]:
    if event.key == 'enter' or event.char in ('y', 'Y'):
        return state.take_pending_batch()
    if event.key == 'esc' or event.char in ('n', 'N'):
        state.input_mode = InputMode.NORMAL
    return None


def _handle_search_entry(state: SessionState, event: KeyEvent) -> Optional[Action]:
    if event.key == 'enter':
        state.input_mode = InputMode.NORMAL
        if not state.search_input:
            return None
        query = state.search_input
        state.search_input = ""
        state.focus = Focus.MAIN
        return Search(query)

    if event.key == 'esc':
        state.search_input = ""
        state.input_mode = InputMode.NORMAL
        if state.screen is Screen.SEARCH:
            _leave_search_screen(state)
        return None

    if event.key == 'backspace':
        state.search_input = state.search_input[:-1]
    elif event.char is not None:
        state.search_input += event.char
    return None


def _handle_filter_entry(state: SessionState, event: KeyEvent) -> Optional[Action]:
    if event.key in ('enter', 'esc'):
        state.input_mode = InputMode.NORMAL
        if state.filtered_episodes():
            state.episode_cursor.select(0)
        return None

    if event.key == 'backspace':
        state.episode_filter = state.episode_filter[:-1]
        state.episode_cursor.select(0)
    elif event.char is not None:
        state.episode_filter += event.char
        state.episode_cursor.select(0)
    return None


MODE_HANDLERS: Dict[InputMode, Handler] = {
    InputMode.RANGE_ENTRY: _handle_range_entry,
    InputMode.BATCH_CONFIRM: _handle_batch_confirm,
    InputMode.SEARCH_ENTRY: _handle_search_entry,
    InputMode.FILTER_ENTRY: _handle_filter_entry,
}


# Sidebar

def _handle_sidebar(state: SessionState, event: KeyEvent) -> Optional[Action]:
    kb = state.keybindings
    cursor = state.history_cursor

    if kb.matches(kb.up, event):
        cursor.move_up()
    elif kb.matches(kb.down, event):
        cursor.move_down(len(state.history_records))
    elif kb.matches(kb.select, event):
        if cursor.selected is not None and cursor.selected < len(state.history_records):
            state.focus = Focus.MAIN
            return ContinueFromHistory(cursor.selected)
    elif kb.matches(kb.quit, event):
        return Quit()
    return None


# Screens

def _handle_startup(state: SessionState, event: KeyEvent) -> Optional[Action]:
    kb = state.keybindings
    has_history = bool(state.history_records)
    cursor = state.history_cursor if has_history else state.startup_cursor
    length = len(state.history_records) if has_history else len(STARTUP_MENU)

    if kb.matches(kb.up, event):
        cursor.move_up()
    elif kb.matches(kb.down, event):
        cursor.move_down(length)
    elif kb.matches(kb.select, event):
        if has_history and cursor.selected is not None:
            return ContinueFromHistory(cursor.selected)
        return NewSearch()
    elif kb.matches(kb.new_search, event):
        state.open_search()
    elif kb.matches(kb.quit, event):
        return Quit()
    return None


def _leave_search_screen(state: SessionState) -> None:
    state.screen = Screen.SHOW_LIST if state.shows else Screen.STARTUP


def _handle_search(state: SessionState, event: KeyEvent) -> Optional[Action]:
    if event.key == 'enter':
        if not state.search_input:
            return None
        query = state.search_input
        state.search_input = ""
        return Search(query)

    if event.key == 'esc':
        state.search_input = ""
        _leave_search_screen(state)
    elif event.key == 'backspace':
        state.search_input = state.search_input[:-1]
    elif event.char is not None:
        state.search_input += event.char
    return None


def _handle_show_list(state: SessionState, event: KeyEvent) -> Optional[Action]:
    kb = state.keybindings

    if kb.matches(kb.up, event):
        state.show_cursor.move_up()
    elif kb.matches(kb.down, event):
        state.show_cursor.move_down(len(state.shows))
    elif kb.matches(kb.select, event):
        if state.show_cursor.selected is not None and state.shows:
            return SelectShow(state.show_cursor.selected)
    elif kb.matches(kb.quit, event):
        return Quit()
    return None


def _handle_episode_list(state: SessionState, event: KeyEvent) -> Optional[Action]:
    kb = state.keybindings
    cursor = state.episode_cursor

    if kb.matches(kb.up, event):
        cursor.move_up()
    elif kb.matches(kb.down, event):
        cursor.move_down(len(state.filtered_episodes()))
    elif kb.matches(kb.select, event):
        # The cursor indexes the filtered view; actions index the full list
        filtered = state.filtered_episodes()
        if cursor.selected is not None and cursor.selected < len(filtered):
            index = state.index_of_episode(filtered[cursor.selected].number)
            if index is not None:
                return SelectEpisode(index)
    elif kb.matches(kb.filter, event):
        state.input_mode = InputMode.FILTER_ENTRY
    elif kb.matches(kb.back, event):
        if state.episode_filter:
            state.episode_filter = ""
            cursor.select(0)
        else:
            state.screen = Screen.SHOW_LIST
    elif kb.matches(kb.quit, event):
        return Quit()
    return None


def _handle_quality_select(state: SessionState, event: KeyEvent) -> Optional[Action]:
    kb = state.keybindings

    if kb.matches(kb.up, event):
        state.quality_cursor.move_up()
    elif kb.matches(kb.down, event):
        state.quality_cursor.move_down(len(state.sources))
    elif kb.matches(kb.select, event):
        if state.quality_cursor.selected is not None and state.sources:
            return SelectQuality(state.quality_cursor.selected)
    elif kb.matches(kb.back, event):
        state.screen = Screen.EPISODE_LIST
    elif kb.matches(kb.quit, event):
        return Quit()
    return None


def _handle_playback(state: SessionState, event: KeyEvent) -> Optional[Action]:
    kb = state.keybindings
    options = playback_options(state.episodes, state.current_episode)

    if kb.matches(kb.up, event):
        state.playback_cursor.move_up()
    elif kb.matches(kb.down, event):
        state.playback_cursor.move_down(len(options))
    elif kb.matches(kb.select, event):
        selected = state.playback_cursor.selected
        if selected is not None and selected < len(options):
            return options[selected].action
    elif kb.matches(kb.next, event):
        return Next()
    elif kb.matches(kb.previous, event):
        return Previous()
    elif kb.matches(kb.replay, event):
        return Replay()
    elif kb.matches(kb.episodes, event):
        return BackToEpisodes()
    elif kb.matches(kb.quit, event):
        return Quit()
    return None


def _handle_batch_select(state: SessionState, event: KeyEvent) -> Optional[Action]:
    kb = state.keybindings

    if kb.matches(kb.up, event):
        state.batch_cursor.move_up()
    elif kb.matches(kb.down, event):
        state.batch_cursor.move_down(len(BATCH_MENU))
    elif kb.matches(kb.select, event):
        selected = state.batch_cursor.selected
        if selected is None or selected >= len(BATCH_MENU):
            return None
        choice = BATCH_MENU[selected]
        if choice is BatchChoice.ALL:
            state.stage_batch(BatchAll())
        elif choice is BatchChoice.RANGE:
            state.range_input = ""
            state.input_mode = InputMode.RANGE_ENTRY
        else:
            return BatchSingle()
    elif kb.matches(kb.back, event):
        state.screen = Screen.EPISODE_LIST
    elif kb.matches(kb.quit, event):
        return Quit()
    return None


def _handle_loading(state: SessionState, event: KeyEvent) -> Optional[Action]:
    kb = state.keybindings
    if kb.matches(kb.quit, event):
        return Quit()
    return None


SCREEN_HANDLERS: Dict[Screen, Handler] = {
    Screen.STARTUP: _handle_startup,
    Screen.SEARCH: _handle_search,
    Screen.SHOW_LIST: _handle_show_list,
    Screen.EPISODE_LIST: _handle_episode_list,
    Screen.QUALITY_SELECT: _handle_quality_select,
    Screen.PLAYBACK: _handle_playback,
    Screen.BATCH_SELECT: _handle_batch_select,
    Screen.LOADING: _handle_loading,
}
