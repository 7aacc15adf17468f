"""
Session actions.

An action is the only thing the input router hands to the orchestrator.
Actions are plain values; executing them is the orchestrator's job. The
router returns ``None`` when a key press produced no action.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Action:
    """Base class for all session actions."""
    pass


@dataclass(frozen=True)
class Quit(Action):
    pass


@dataclass(frozen=True)
class Search(Action):
    query: str


@dataclass(frozen=True)
class SelectShow(Action):
    index: int


@dataclass(frozen=True)
class SelectEpisode(Action):
    """Select an episode by its index in the unfiltered episode list."""
    index: int


@dataclass(frozen=True)
class SelectQuality(Action):
    index: int


@dataclass(frozen=True)
class Next(Action):
    pass


@dataclass(frozen=True)
class Previous(Action):
    pass


@dataclass(frozen=True)
class Replay(Action):
    pass


@dataclass(frozen=True)
class BackToEpisodes(Action):
    pass


@dataclass(frozen=True)
class ContinueFromHistory(Action):
    index: int


@dataclass(frozen=True)
class NewSearch(Action):
    pass


@dataclass(frozen=True)
class BatchAll(Action):
    pass


@dataclass(frozen=True)
class BatchRange(Action):
    """Download every loaded episode numbered ``start`` through ``end`` inclusive."""
    start: int
    end: int


@dataclass(frozen=True)
class BatchSingle(Action):
    pass


# Actions that step through the episode list from the playback menu
EPISODE_STEP_ACTIONS = (Next, Previous, Replay)

BATCH_ACTIONS = (BatchAll, BatchRange, BatchSingle)
