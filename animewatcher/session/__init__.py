"""Interactive session state machine: state, actions and input routing."""

from .actions import Action
from .state import SessionState, Screen, Focus, InputMode, HistoryEntry
from .router import route

__all__ = [
    "Action",
    "SessionState",
    "Screen",
    "Focus",
    "InputMode",
    "HistoryEntry",
    "route",
]
