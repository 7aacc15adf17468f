import pytest

from animewatcher.api.catalog_types import StreamSource
from animewatcher.media.quality_selector import select_stream


@pytest.mark.unit
@pytest.mark.parametrize("token,expected", [
    ("best", 1080),
    ("worst", 480),
    ("800", 720),
    ("720", 720),
    ("1080", 1080),
    ("100", 480),
    (" BEST ", 1080),
])
def test_select_by_token(sources, token, expected):
    assert select_stream(sources, token).quality == expected


@pytest.mark.unit
def test_equal_distance_prefers_higher_quality(sources):
    # 600 is 120 from both 480 and 720
    assert select_stream(sources, "600").quality == 720


@pytest.mark.unit
def test_single_source_is_returned_for_any_token():
    only = StreamSource(quality=360, url="https://cdn.example/360.mp4")

    assert select_stream([only], "garbage") is only
    assert select_stream([only], "1080") is only


@pytest.mark.unit
def test_unrecognized_token_returns_first_source(sources):
    assert select_stream(sources, "ultra") is sources[0]


@pytest.mark.unit
def test_unknown_quality_sources_used_only_as_fallback():
    unknown = [
        StreamSource(quality=0, url="a"),
        StreamSource(quality=0, url="b"),
    ]

    assert select_stream(unknown, "best").url == "a"
    assert select_stream(unknown, "worst").url == "a"
    assert select_stream(unknown, "720").url == "a"


@pytest.mark.unit
def test_result_is_one_of_the_inputs(sources):
    for token in ["best", "worst", "1", "5000", "nonsense"]:
        assert select_stream(sources, token) in sources


@pytest.mark.unit
def test_empty_sources_raise():
    with pytest.raises(ValueError):
        select_stream([], "best")
