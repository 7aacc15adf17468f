"""Catalog API response parsing and validation."""

import json
import re
from typing import Dict, Any, Optional, List

from animewatcher.api.catalog_types import Show, Episode, StreamSource
from animewatcher.api.error_handler import ParseError


def validate_response(response_content: bytes) -> Dict[str, Any]:
    """
    Validate and parse a GraphQL response body.

    Args:
        response_content: Raw response bytes

    Returns:
        The ``data`` object of the response

    Raises:
        ParseError: If the body is empty, not JSON, carries GraphQL
            errors or has no ``data`` object
    """
    if not response_content:
        raise ParseError("Empty response body received")

    try:
        payload = json.loads(response_content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(f"Malformed JSON: {e}")

    if not isinstance(payload, dict):
        raise ParseError("Response is not a JSON object")

    errors = payload.get('errors')
    if errors:
        raise ParseError(f"Catalog returned errors: {extract_error_message(errors)}")

    data = payload.get('data')
    if not isinstance(data, dict):
        raise ParseError("Response has no 'data' object")

    return data


def extract_error_message(errors: Any) -> str:
    """Join GraphQL error messages into a single line."""
    if isinstance(errors, list):
        messages = [
            e.get('message', str(e)) if isinstance(e, dict) else str(e)
            for e in errors
        ]
        return "; ".join(messages)
    return str(errors)


def parse_search_results(data: Dict[str, Any], mode: str) -> List[Show]:
    """
    Parse the ``shows`` search payload.

    Args:
        data: ``data`` object from validate_response
        mode: Translation mode used to pick the episode count

    Returns:
        Shows in the order the catalog returned them
    """
    try:
        edges = data['shows']['edges']
    except (KeyError, TypeError):
        raise ParseError("Search response missing shows.edges")

    shows = []
    for raw in edges or []:
        if not isinstance(raw, dict) or '_id' not in raw:
            continue
        counts = raw.get('availableEpisodes') or {}
        count = counts.get(mode, 0) if isinstance(counts, dict) else 0
        shows.append(Show(
            id=str(raw['_id']),
            name=str(raw.get('name', '')),
            available_episodes=_to_int(count)
        ))
    return shows


def parse_episode_list(data: Dict[str, Any], mode: str) -> List[Episode]:
    """
    Parse the ``show.availableEpisodesDetail`` payload.

    Non-numeric episode strings (e.g. recaps like ``"12.5"``) are dropped.
    The result is sorted by episode number.
    """
    try:
        show = data['show']
        show_id = show['_id']
        detail = show.get('availableEpisodesDetail') or {}
    except (KeyError, TypeError, AttributeError):
        raise ParseError("Episode response missing show details")

    numbers = []
    for value in detail.get(mode, []) or []:
        try:
            numbers.append(int(str(value)))
        except ValueError:
            continue

    return [
        Episode(id=f"{show_id}-{number}", number=number)
        for number in sorted(set(numbers))
    ]


def parse_source_urls(data: Dict[str, Any]) -> List[Dict[str, str]]:
    """
    Parse the ``episode.sourceUrls`` payload into raw source entries.

    Returns:
        List of dicts with ``url`` and ``provider`` keys
    """
    try:
        entries = data['episode']['sourceUrls']
    except (KeyError, TypeError):
        raise ParseError("Source response missing episode.sourceUrls")

    sources = []
    for entry in entries or []:
        if not isinstance(entry, dict):
            continue
        url = entry.get('sourceUrl')
        if not url:
            continue
        sources.append({'url': url, 'provider': entry.get('sourceName', '')})
    return sources


def parse_clock_links(payload: Dict[str, Any]) -> List[StreamSource]:
    """
    Parse a ``clock.json`` payload into stream sources.

    Each link contributes a source with its resolution; an ``hls`` link
    contributes an extra quality-0 source.
    """
    if not isinstance(payload, dict) or not payload.get('success'):
        return []

    sources = []
    for link in payload.get('links') or []:
        if not isinstance(link, dict):
            continue
        url = link.get('link')
        if url:
            sources.append(StreamSource(
                quality=_parse_resolution(link.get('resolutionStr')),
                url=url
            ))
        hls = link.get('hls')
        if isinstance(hls, str) and hls:
            sources.append(StreamSource(quality=0, url=hls))
    return sources


def _parse_resolution(value: Optional[str]) -> int:
    """Parse resolution strings like ``1080`` or ``1080p``; 0 when unknown."""
    if value is None:
        return 0
    match = re.match(r'\s*(\d+)', str(value))
    return int(match.group(1)) if match else 0


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
