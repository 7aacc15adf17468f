"""Episode list filtering."""

from typing import List

from animewatcher.api.catalog_types import Episode


def episode_matches(episode: Episode, text: str) -> bool:
    """
    Check if an episode matches filter text.

    The episode number is matched as a substring of its decimal form;
    the title, when present, is matched case-insensitively.
    """
    if not text:
        return True
    if text in str(episode.number):
        return True
    return episode.title is not None and text.lower() in episode.title.lower()


def filter_episodes(episodes: List[Episode], text: str) -> List[Episode]:
    """
    Return the filtered view of an episode list.

    Args:
        episodes: Canonical episode list
        text: Filter text; empty matches everything

    Returns:
        Matching episodes in their original order
    """
    if not text:
        return list(episodes)
    return [e for e in episodes if episode_matches(e, text)]
