"""AllAnime catalog API client implementation."""

import json
import logging
import re
from enum import Enum
from typing import Dict, Any, List, Optional

import httpx

from animewatcher.api.catalog_types import Show, Episode, StreamSource
from animewatcher.api.error_handler import (
    handle_http_status,
    retry_with_backoff,
    NetworkError,
)
from animewatcher.api.response_parser import (
    validate_response,
    parse_search_results,
    parse_episode_list,
    parse_source_urls,
    parse_clock_links,
)

logger = logging.getLogger(__name__)

SEARCH_QUERY = """query ($search: SearchInput, $limit: Int, $page: Int, $translationType: VaildTranslationTypeEnumType, $countryOrigin: VaildCountryOriginEnumType) {
    shows(search: $search, limit: $limit, page: $page, translationType: $translationType, countryOrigin: $countryOrigin) {
        edges { _id name availableEpisodes __typename }
    }
}"""

EPISODES_QUERY = """query ($showId: String!) {
    show(_id: $showId) {
        _id
        availableEpisodesDetail
    }
}"""

SOURCES_QUERY = """query ($showId: String!, $translationType: VaildTranslationTypeEnumType!, $episodeString: String!) {
    episode(showId: $showId, translationType: $translationType, episodeString: $episodeString) {
        episodeString
        sourceUrls
    }
}"""


class Provider(Enum):
    """Stream providers, declared in preference order."""
    MP4 = "Mp4"
    SW = "Sw"
    OK = "Ok"
    VG = "Vg"
    FM_HLS = "Fm-Hls"
    SS_HLS = "Ss-Hls"
    DEFAULT = "Default"
    LUF_MP4 = "Luf-mp4"
    S_MP4 = "S-mp4"
    KIR = "Kir"
    SAK = "Sak"


PROVIDER_PRIORITY: Dict[str, int] = {p.value: i for i, p in enumerate(Provider)}
UNKNOWN_PROVIDER_PRIORITY = 999


def provider_priority(name: str) -> int:
    """Priority of a provider name; lower is preferred, unknown names sort last."""
    return PROVIDER_PRIORITY.get(name, UNKNOWN_PROVIDER_PRIORITY)


def decode_source_url(encoded: str) -> str:
    """
    Decode the catalog's hex-encoded source URLs.

    Each character is stored as a two-digit hex value; values below 33
    were shifted down by 51 when encoding. A leading ``--`` marker is
    ignored, as is a trailing odd nibble.

    Example:
        >>> decode_source_url("--48656c6c6f")
        'Hello'
    """
    cleaned = encoded.lstrip('-')
    chars = []
    for i in range(0, len(cleaned) - 1, 2):
        try:
            value = int(cleaned[i:i + 2], 16)
        except ValueError:
            continue
        if value < 33:
            value += 51
        chars.append(chr(value))
    return ''.join(chars)


def extract_clock_id(raw: str) -> Optional[str]:
    """Decode an encoded source URL and pull out its ``id`` query parameter."""
    match = re.search(r'id=([^&]+)', decode_source_url(raw))
    return match.group(1) if match else None


class CatalogClient:
    """
    Client for the AllAnime GraphQL catalog.

    Handles request building, retries and response parsing. The
    underlying httpx.AsyncClient is owned by the caller.
    """

    API_URL = "https://api.allanime.day/api"
    CLOCK_URL = "https://allanime.day/apivtwo/clock.json"
    REFERER = "https://allmanga.to"
    USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    )
    SEARCH_LIMIT = 40

    def __init__(self, config: Dict[str, Any], client: httpx.AsyncClient):
        """
        Initialize catalog client.

        Args:
            config: Configuration dictionary (reads the ``api`` section)
            client: httpx.AsyncClient used for every request
        """
        api_config = config.get('api', {})
        self.request_timeout = api_config.get('request_timeout', 30)
        self.max_retries = api_config.get('max_retries', 3)
        self.retry_backoff = api_config.get('retry_backoff_seconds', 0.5)
        self.client = client

    async def _query(self, query: str, variables: Dict[str, Any], context: str) -> Dict[str, Any]:
        """Run one GraphQL GET request with retries and return its ``data`` object."""
        params = {
            'variables': json.dumps(variables),
            'query': query,
        }
        headers = {'Referer': self.REFERER, 'User-Agent': self.USER_AGENT}

        async def make_request() -> bytes:
            response = await self.client.get(
                self.API_URL,
                params=params,
                headers=headers,
                timeout=self.request_timeout
            )
            handle_http_status(response.status_code, context)
            return response.content

        content = await retry_with_backoff(
            make_request,
            max_attempts=self.max_retries + 1,
            initial_delay=self.retry_backoff,
            backoff_factor=2.0,
            context=context
        )
        return validate_response(content)

    async def search_shows(self, query: str, mode: str) -> List[Show]:
        """
        Search the catalog.

        Args:
            query: Search term
            mode: Translation mode ('sub' or 'dub')

        Returns:
            Matching shows, possibly empty
        """
        logger.debug(f"Searching for '{query}' in {mode} mode")
        variables = {
            'search': {
                'allowAdult': True,
                'allowUnknown': False,
                'query': query,
            },
            'limit': self.SEARCH_LIMIT,
            'page': 1,
            'translationType': mode,
            'countryOrigin': 'ALL',
        }
        data = await self._query(SEARCH_QUERY, variables, f"Search for '{query}'")
        shows = parse_search_results(data, mode)
        logger.debug(f"Found {len(shows)} shows for query '{query}'")
        return shows

    async def fetch_episodes(self, show_id: str, mode: str) -> List[Episode]:
        """Fetch the episode list of a show, sorted by episode number."""
        logger.debug(f"Fetching episodes for show {show_id} in {mode} mode")
        data = await self._query(EPISODES_QUERY, {'showId': show_id}, "Fetch episodes")
        episodes = parse_episode_list(data, mode)
        logger.debug(f"Found {len(episodes)} episodes for show {show_id}")
        return episodes

    async def fetch_stream_sources(
        self,
        show_id: str,
        mode: str,
        episode_number: int
    ) -> List[StreamSource]:
        """
        Fetch playable sources for an episode.

        Raw sources are walked in provider priority order. Plain and
        decoded direct URLs are kept as quality-0 sources; encoded
        sources are resolved through ``clock.json``, stopping at the
        first provider that yields links.

        Returns:
            Sources in provider preference order, possibly empty
        """
        logger.debug(f"Fetching stream sources for episode {episode_number} of show {show_id}")
        variables = {
            'showId': show_id,
            'translationType': mode,
            'episodeString': str(episode_number),
        }
        data = await self._query(
            SOURCES_QUERY, variables, f"Fetch sources for episode {episode_number}"
        )
        raw_sources = sorted(
            parse_source_urls(data),
            key=lambda s: provider_priority(s['provider'])
        )

        result: List[StreamSource] = []
        for source in raw_sources:
            url = source['url']

            if url.startswith('http') or url.startswith('//'):
                result.append(StreamSource(
                    quality=0,
                    url=f"https:{url}" if url.startswith('//') else url
                ))
                continue

            if not url.startswith('--'):
                continue

            decoded = decode_source_url(url)
            if decoded.startswith('http'):
                result.append(StreamSource(quality=0, url=decoded))
                continue

            clock_id = extract_clock_id(url)
            if clock_id is None:
                continue

            links = await self._fetch_clock_links(clock_id)
            if links:
                result.extend(links)
                break

        logger.debug(f"Found {len(result)} stream sources for episode {episode_number}")
        return result

    async def _fetch_clock_links(self, clock_id: str) -> List[StreamSource]:
        """Resolve an encoded source through clock.json; failures yield no links."""
        try:
            response = await self.client.get(
                self.CLOCK_URL,
                params={'id': clock_id},
                headers={'Referer': 'https://allanime.day', 'User-Agent': self.USER_AGENT},
                timeout=self.request_timeout
            )
            handle_http_status(response.status_code, "clock.json")
            payload = response.json()
        except (httpx.HTTPError, NetworkError, ValueError) as e:
            logger.warning(f"clock.json lookup failed for {clock_id}: {e}")
            return []
        return parse_clock_links(payload)
