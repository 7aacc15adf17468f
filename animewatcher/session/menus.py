"""
Menu definitions for the playback, batch and startup screens.

The renderer and the router both read these lists, so an option's
position on screen is always the position the router maps to an action.
"""

from enum import Enum
from typing import List, NamedTuple, Optional

from animewatcher.api.catalog_types import Episode
from animewatcher.session.actions import (
    Action,
    Next,
    Previous,
    Replay,
    BackToEpisodes,
    Quit,
)


class MenuOption(NamedTuple):
    label: str
    action: Action


def playback_options(
    episodes: List[Episode],
    current_episode: Optional[Episode],
) -> List[MenuOption]:
    """
    Build the playback menu for the current episode.

    Next and Previous are offered only when the current episode has a
    neighbour in the ordered list.
    """
    options = []

    if current_episode is not None:
        index = next(
            (i for i, e in enumerate(episodes) if e.number == current_episode.number),
            None
        )
        if index is not None and index + 1 < len(episodes):
            options.append(MenuOption("Next episode", Next()))
        options.append(MenuOption("Replay", Replay()))
        if index is not None and index > 0:
            options.append(MenuOption("Previous episode", Previous()))

    options.append(MenuOption("Select episode", BackToEpisodes()))
    options.append(MenuOption("Quit", Quit()))
    return options


class BatchChoice(Enum):
    """Batch download menu entries, in display order."""
    ALL = "Download all episodes"
    RANGE = "Download a range (e.g. 1-12)"
    SINGLE = "Download this episode only"


BATCH_MENU: List[BatchChoice] = list(BatchChoice)

# Shown on the startup screen when there is no history to continue from
STARTUP_MENU: List[str] = ["Search for anime"]
