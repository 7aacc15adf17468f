import pytest

from animewatcher.api.catalog_types import Show, StreamSource
from animewatcher.api.error_handler import ParseError
from animewatcher.api.response_parser import (
    validate_response,
    parse_search_results,
    parse_episode_list,
    parse_source_urls,
    parse_clock_links,
)


@pytest.mark.unit
@pytest.mark.parametrize("content,message", [
    (b"", "Empty response"),
    (b"{not json", "Malformed JSON"),
    (b"[]", "not a JSON object"),
    (b'{"errors": [{"message": "a"}, {"message": "b"}]}', "a; b"),
    (b'{"data": null}', "no 'data' object"),
])
def test_validate_response_rejects(content, message):
    with pytest.raises(ParseError, match=message):
        validate_response(content)


@pytest.mark.unit
def test_validate_response_returns_data():
    assert validate_response(b'{"data": {"x": 1}}') == {"x": 1}


@pytest.mark.unit
def test_search_results_skip_entries_without_id():
    data = {'shows': {'edges': [
        {'name': 'No id'},
        {'_id': 1, 'name': 'One', 'availableEpisodes': {'sub': '12'}},
        {'_id': 'two', 'name': 'Two', 'availableEpisodes': None},
    ]}}

    assert parse_search_results(data, 'sub') == [Show('1', 'One', 12), Show('two', 'Two', 0)]


@pytest.mark.unit
def test_search_results_missing_edges():
    with pytest.raises(ParseError):
        parse_search_results({'shows': None}, 'sub')


@pytest.mark.unit
def test_episode_list_dedups_and_sorts():
    data = {'show': {'_id': 'abc', 'availableEpisodesDetail': {'dub': ['2', '1', '2', 'SP', 3]}}}

    assert [e.number for e in parse_episode_list(data, 'dub')] == [1, 2, 3]
    assert parse_episode_list(data, 'sub') == []


@pytest.mark.unit
def test_episode_list_missing_show():
    with pytest.raises(ParseError):
        parse_episode_list({}, 'sub')


@pytest.mark.unit
def test_source_urls_skip_blank_entries():
    data = {'episode': {'sourceUrls': [
        {'sourceUrl': '', 'sourceName': 'Mp4'},
        'junk',
        {'sourceUrl': '--abcd', 'sourceName': 'Default'},
        {'sourceUrl': 'https://x'},
    ]}}

    assert parse_source_urls(data) == [
        {'url': '--abcd', 'provider': 'Default'},
        {'url': 'https://x', 'provider': ''},
    ]


@pytest.mark.unit
def test_clock_links():
    payload = {'success': True, 'links': [
        {'link': 'https://a', 'resolutionStr': '1080p'},
        {'link': 'https://b', 'resolutionStr': 'Hls', 'hls': 'https://b.m3u8'},
        {'resolutionStr': '720'},
    ]}

    assert parse_clock_links(payload) == [
        StreamSource(1080, 'https://a'),
        StreamSource(0, 'https://b'),
        StreamSource(0, 'https://b.m3u8'),
    ]


@pytest.mark.unit
def test_unsuccessful_clock_payload():
    assert parse_clock_links({'success': False, 'links': [{'link': 'x'}]}) == []
