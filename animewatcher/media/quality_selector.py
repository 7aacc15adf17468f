"""
Stream quality selection.

Picks one stream source for a quality token such as ``best``, ``worst``
or ``720``. Selection never fails: an unrecognized token falls back to
the first source so playback always has a candidate.
"""

import logging
from typing import List, Optional

from animewatcher.api.catalog_types import StreamSource

logger = logging.getLogger(__name__)


def select_stream(sources: List[StreamSource], quality: str) -> StreamSource:
    """
    Select a stream source for a quality token.

    Sources with quality 0 are of unknown resolution and are only used
    when no source has a known resolution.

    Args:
        sources: Non-empty source list, in provider preference order
        quality: ``best``, ``worst`` or a resolution like ``1080``

    Returns:
        One element of ``sources``

    Raises:
        ValueError: If ``sources`` is empty

    Example:
        >>> select_stream(sources, '800')  # sources at 480, 720, 1080
        StreamSource(quality=720, ...)
    """
    if not sources:
        raise ValueError("No stream sources to select from")

    if len(sources) == 1:
        return sources[0]

    known = sorted(
        (s for s in sources if s.quality > 0),
        key=lambda s: s.quality,
        reverse=True
    )
    unknown = [s for s in sources if s.quality == 0]
    token = str(quality).strip().lower()

    if token == 'best':
        return _first(known) or _first(unknown) or sources[0]

    if token == 'worst':
        lowest = known[-1] if known else None
        return lowest or _first(unknown) or sources[0]

    try:
        target = int(token)
    except ValueError:
        logger.debug(f"Unrecognized quality '{quality}', using first source")
        return sources[0]

    for source in known:
        if source.quality == target:
            return source

    if known:
        # min() keeps the first of equal distances, i.e. the higher quality
        return min(known, key=lambda s: abs(s.quality - target))

    return sources[0]


def _first(sources: List[StreamSource]) -> Optional[StreamSource]:
    return sources[0] if sources else None
