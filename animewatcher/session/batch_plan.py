"""
Batch download planning.

Turns the batch menu choices into validated actions and resolves the
episodes an action targets. Execution lives in
``animewatcher.workflow.batch``.
"""

from typing import List, Optional, Tuple

from animewatcher.api.catalog_types import Episode
from animewatcher.session.actions import Action, BatchAll, BatchRange, BatchSingle

RANGE_SEPARATOR = '-'


class RangeValidationError(Exception):
    """Batch range text that cannot be used."""
    pass


def parse_range(text: str, episodes: List[Episode]) -> Tuple[int, int]:
    """
    Parse and validate ``start-end`` range text against the loaded episodes.

    Checks run in order and the first failure wins, so each problem
    gets its own message.

    Args:
        text: Range text as typed, e.g. ``"1-12"``
        episodes: Currently loaded episode list

    Returns:
        Tuple of (start, end)

    Raises:
        RangeValidationError: If the text is malformed or out of bounds
    """
    parts = text.split(RANGE_SEPARATOR)
    try:
        if len(parts) != 2:
            raise ValueError(text)
        start, end = int(parts[0].strip()), int(parts[1].strip())
    except ValueError:
        raise RangeValidationError("Invalid range format. Use: start-end (e.g., 1-12)")

    if start > end:
        raise RangeValidationError("Invalid range: start must be <= end")
    if start < 1:
        raise RangeValidationError("Invalid range: start must be >= 1")

    numbers = [e.number for e in episodes]
    max_episode = max(numbers, default=0)
    min_episode = min(numbers, default=1)

    if start > max_episode or end > max_episode:
        raise RangeValidationError(f"Invalid range: episodes only go up to {max_episode}")
    if start < min_episode:
        raise RangeValidationError(f"Invalid range: episodes start at {min_episode}")

    return start, end


def resolve_batch_targets(
    action: Action,
    episodes: List[Episode],
    current_episode: Optional[Episode],
) -> List[Episode]:
    """
    Episodes a batch action downloads, in list order.

    BatchSingle targets the current episode; with no current episode it
    targets nothing.
    """
    if isinstance(action, BatchAll):
        return list(episodes)
    if isinstance(action, BatchRange):
        return [e for e in episodes if action.start <= e.number <= action.end]
    if isinstance(action, BatchSingle):
        return [current_episode] if current_episode is not None else []
    return []


def pending_batch_count(action: Optional[Action], episodes: List[Episode]) -> int:
    """Number of episodes a staged batch would download, for the confirmation prompt."""
    if isinstance(action, (BatchAll, BatchRange)):
        return len(resolve_batch_targets(action, episodes, None))
    return 0
