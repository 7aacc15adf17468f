"""
Tests for the catalog API client.

HTTP traffic is mocked with respx; every test runs against a real
httpx.AsyncClient.
"""

import json

import httpx
import pytest
import pytest_asyncio

from animewatcher.api.catalog_types import Show, StreamSource
from animewatcher.api.client import (
    CatalogClient,
    decode_source_url,
    extract_clock_id,
    provider_priority,
    UNKNOWN_PROVIDER_PRIORITY,
)
from animewatcher.api.error_handler import NetworkError, ParseError


TEST_CONFIG = {
    'api': {
        'request_timeout': 5,
        'max_retries': 2,
        'retry_backoff_seconds': 0
    }
}

# Hex-encoded "/apivtwo/clock?id=abc"
ENCODED_CLOCK_SOURCE = "--2f6170697674776f2f636c6f636b3f69643d616263"
# Hex-encoded "https://x.example/a.mp4"
ENCODED_DIRECT_SOURCE = "--68747470733a2f2f782e6578616d706c652f612e6d7034"


@pytest_asyncio.fixture
async def catalog():
    async with httpx.AsyncClient() as client:
        yield CatalogClient(TEST_CONFIG, client)


def api_route(respx_mock):
    return respx_mock.get(url__startswith=CatalogClient.API_URL)


def clock_route(respx_mock):
    return respx_mock.get(url__startswith=CatalogClient.CLOCK_URL)


def sent_variables(route):
    return json.loads(route.calls.last.request.url.params['variables'])


class TestSourceDecoding:
    """Test hex source URL decoding."""

    def test_decode_plain_hex(self):
        assert decode_source_url("--48656c6c6f") == "Hello"

    def test_decode_shifted_values(self):
        # 0x05 + 51 == ord('8')
        assert decode_source_url("05") == "8"

    def test_decode_ignores_trailing_nibble_and_bad_pairs(self):
        assert decode_source_url("4869zz4") == "Hi"

    def test_extract_clock_id(self):
        assert extract_clock_id(ENCODED_CLOCK_SOURCE) == "abc"
        assert extract_clock_id("--48656c6c6f") is None

    def test_provider_priority(self):
        assert provider_priority("Mp4") < provider_priority("Default")
        assert provider_priority("Nope") == UNKNOWN_PROVIDER_PRIORITY


@pytest.mark.asyncio
class TestSearchShows:
    """Test catalog search."""

    async def test_search_parses_counts_for_mode(self, catalog, respx_mock):
        route = api_route(respx_mock).mock(return_value=httpx.Response(200, json={
            'data': {'shows': {'edges': [
                {'_id': 'abc', 'name': 'Frieren', 'availableEpisodes': {'sub': 28, 'dub': 20}},
                {'_id': 'def', 'name': 'Dungeon Meshi', 'availableEpisodes': {'sub': 24}},
            ]}}
        }))

        shows = await catalog.search_shows("fri", "dub")

        assert shows == [Show('abc', 'Frieren', 20), Show('def', 'Dungeon Meshi', 0)]
        variables = sent_variables(route)
        assert variables['search']['query'] == "fri"
        assert variables['translationType'] == "dub"
        request = route.calls.last.request
        assert request.headers['Referer'] == CatalogClient.REFERER

    async def test_search_without_results(self, catalog, respx_mock):
        api_route(respx_mock).mock(return_value=httpx.Response(200, json={
            'data': {'shows': {'edges': []}}
        }))

        assert await catalog.search_shows("zzz", "sub") == []

    async def test_server_error_is_retried(self, catalog, respx_mock):
        route = api_route(respx_mock)
        route.side_effect = [
            httpx.Response(503),
            httpx.Response(200, json={'data': {'shows': {'edges': []}}}),
        ]

        assert await catalog.search_shows("x", "sub") == []
        assert route.call_count == 2

    async def test_client_error_is_not_retried(self, catalog, respx_mock):
        route = api_route(respx_mock).mock(return_value=httpx.Response(403))

        with pytest.raises(NetworkError, match="Access denied"):
            await catalog.search_shows("x", "sub")
        assert route.call_count == 1

    async def test_timeouts_exhaust_retries(self, catalog, respx_mock):
        route = api_route(respx_mock).mock(side_effect=httpx.ConnectTimeout("timed out"))

        with pytest.raises(NetworkError):
            await catalog.search_shows("x", "sub")
        assert route.call_count == 3

    async def test_graphql_errors(self, catalog, respx_mock):
        api_route(respx_mock).mock(return_value=httpx.Response(200, json={
            'errors': [{'message': 'bad query'}]
        }))

        with pytest.raises(ParseError, match="bad query"):
            await catalog.search_shows("x", "sub")


@pytest.mark.asyncio
class TestFetchEpisodes:
    """Test episode list lookups."""

    async def test_episodes_sorted_and_numeric(self, catalog, respx_mock):
        route = api_route(respx_mock).mock(return_value=httpx.Response(200, json={
            'data': {'show': {'_id': 'abc', 'availableEpisodesDetail': {
                'sub': ['3', '1', '12.5', '2'],
                'dub': ['1'],
            }}}
        }))

        episodes = await catalog.fetch_episodes('abc', 'sub')

        assert [e.number for e in episodes] == [1, 2, 3]
        assert episodes[0].id == 'abc-1'
        assert sent_variables(route) == {'showId': 'abc'}


@pytest.mark.asyncio
class TestFetchStreamSources:
    """Test stream source resolution."""

    async def test_direct_and_clock_sources(self, catalog, respx_mock):
        route = api_route(respx_mock).mock(return_value=httpx.Response(200, json={
            'data': {'episode': {'episodeString': '1', 'sourceUrls': [
                {'sourceUrl': ENCODED_CLOCK_SOURCE, 'sourceName': 'Default'},
                {'sourceUrl': 'https://direct.example/ep.mp4', 'sourceName': 'Mp4'},
            ]}}
        }))
        clock = clock_route(respx_mock).mock(return_value=httpx.Response(200, json={
            'success': True,
            'links': [
                {'link': 'https://cdn.example/1080.mp4', 'resolutionStr': '1080p'},
                {'link': 'https://cdn.example/720.mp4', 'resolutionStr': '720p',
                 'hls': 'https://cdn.example/master.m3u8'},
            ]
        }))

        sources = await catalog.fetch_stream_sources('abc', 'sub', 1)

        assert sources == [
            StreamSource(0, 'https://direct.example/ep.mp4'),
            StreamSource(1080, 'https://cdn.example/1080.mp4'),
            StreamSource(720, 'https://cdn.example/720.mp4'),
            StreamSource(0, 'https://cdn.example/master.m3u8'),
        ]
        assert sent_variables(route)['episodeString'] == '1'
        assert clock.calls.last.request.url.params['id'] == 'abc'

    async def test_decoded_and_protocol_relative_sources(self, catalog, respx_mock):
        api_route(respx_mock).mock(return_value=httpx.Response(200, json={
            'data': {'episode': {'sourceUrls': [
                {'sourceUrl': '//cdn.example/rel.mp4', 'sourceName': 'Sw'},
                {'sourceUrl': ENCODED_DIRECT_SOURCE, 'sourceName': 'Ok'},
                {'sourceUrl': 'garbage', 'sourceName': 'Vg'},
            ]}}
        }))

        sources = await catalog.fetch_stream_sources('abc', 'sub', 2)

        assert [s.url for s in sources] == [
            'https://cdn.example/rel.mp4',
            'https://x.example/a.mp4',
        ]

    async def test_failed_clock_lookup_yields_nothing(self, catalog, respx_mock):
        api_route(respx_mock).mock(return_value=httpx.Response(200, json={
            'data': {'episode': {'sourceUrls': [
                {'sourceUrl': ENCODED_CLOCK_SOURCE, 'sourceName': 'Default'},
            ]}}
        }))
        clock_route(respx_mock).mock(return_value=httpx.Response(500))

        assert await catalog.fetch_stream_sources('abc', 'sub', 1) == []
