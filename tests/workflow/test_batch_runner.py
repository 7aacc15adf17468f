from unittest.mock import AsyncMock, Mock

import pytest

from animewatcher.api.catalog_types import StreamSource
from animewatcher.api.error_handler import NetworkError
from animewatcher.media.downloader import get_output_path
from animewatcher.session.actions import BatchAll, BatchRange, BatchSingle
from animewatcher.session.state import Screen
from animewatcher.workflow.batch import BatchRunner


class FakeDownloader:
    """Writes a file for every URL not listed in ``failing``."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    async def download(self, url, output_path):
        self.calls.append((url, output_path))
        if url in self.failing:
            return False, "yt-dlp exited with status 1"
        output_path.write_text("video")
        return True, None


def sources_for(show_id, mode, episode_number):
    return [
        StreamSource(quality=480, url=f"https://cdn.example/{episode_number}/480.mp4"),
        StreamSource(quality=1080, url=f"https://cdn.example/{episode_number}/1080.mp4"),
    ]


@pytest.fixture
def client():
    client = Mock()
    client.fetch_stream_sources = AsyncMock(side_effect=sources_for)
    return client


@pytest.fixture
def batch_state(state, show, episodes):
    state.selected_show = show
    state.episodes = episodes
    state.current_episode = episodes[2]
    state.show_batch_menu()
    return state


def make_runner(client, downloader, tmp_path, on_downloaded=None, render=None):
    return BatchRunner(
        client=client,
        downloader=downloader,
        download_dir=tmp_path,
        on_downloaded=on_downloaded or Mock(),
        render=render or Mock(),
        error_pause=0,
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_range_downloads_best_quality_and_records_each(client, batch_state, tmp_path):
    downloader = FakeDownloader()
    on_downloaded = Mock()
    runner = make_runner(client, downloader, tmp_path, on_downloaded=on_downloaded)

    result = await runner.run(batch_state, BatchRange(2, 4))

    assert result.downloaded == [2, 3, 4]
    assert [url for url, _ in downloader.calls] == [
        f"https://cdn.example/{n}/1080.mp4" for n in (2, 3, 4)
    ]
    assert [c.args[1].number for c in on_downloaded.call_args_list] == [2, 3, 4]
    assert batch_state.status_message == "Download complete!"
    assert batch_state.screen is Screen.EPISODE_LIST
    assert batch_state.download.visible is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_existing_files_are_skipped(client, batch_state, show, tmp_path):
    existing = get_output_path(tmp_path, show.name, 1, "sub")
    existing.write_text("already here")
    downloader = FakeDownloader()
    runner = make_runner(client, downloader, tmp_path)

    result = await runner.run(batch_state, BatchRange(1, 2))

    assert result.skipped == [1]
    assert result.downloaded == [2]
    assert len(downloader.calls) == 1
    assert existing.read_text() == "already here"
    assert "- Ep 1 skipped (exists)" in batch_state.download.log


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failures_do_not_stop_the_batch(client, batch_state, tmp_path):
    downloader = FakeDownloader(failing={"https://cdn.example/2/1080.mp4"})
    client.fetch_stream_sources.side_effect = [
        NetworkError("Catalog unavailable"),
        sources_for("show-1", "sub", 2),
        [],
        sources_for("show-1", "sub", 4),
    ]
    on_downloaded = Mock()
    runner = make_runner(client, downloader, tmp_path, on_downloaded=on_downloaded)

    result = await runner.run(batch_state, BatchRange(1, 4))

    assert result.failed == [1, 2, 3]
    assert result.downloaded == [4]
    assert on_downloaded.call_count == 1
    assert batch_state.download.log == [
        "✗ Ep 1 failed",
        "✗ Ep 2 failed",
        "✗ Ep 3 failed",
        "✓ Ep 4 complete",
    ]
    assert batch_state.error_message is None
    assert batch_state.status_message == "Download complete!"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_error_is_rendered_before_it_clears(client, batch_state, tmp_path):
    client.fetch_stream_sources.side_effect = [[]]
    seen_errors = []
    runner = make_runner(
        client, FakeDownloader(), tmp_path,
        render=lambda: seen_errors.append(batch_state.error_message),
    )

    await runner.run(batch_state, BatchSingle())

    assert "No sources for episode 3" in seen_errors
    assert batch_state.error_message is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_single_downloads_current_episode(client, batch_state, tmp_path):
    runner = make_runner(client, FakeDownloader(), tmp_path)

    result = await runner.run(batch_state, BatchSingle())

    assert result.downloaded == [3]
    assert (tmp_path / "Frieren - Episode 3 [sub].mp4").exists()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_progress_counts_every_target(client, batch_state, tmp_path):
    progress = []
    runner = make_runner(
        client, FakeDownloader(), tmp_path,
        render=lambda: progress.append((batch_state.download.current, batch_state.download.total)),
    )

    await runner.run(batch_state, BatchAll())

    assert progress[0] == (0, 24)
    assert (24, 24) in progress


@pytest.mark.unit
@pytest.mark.asyncio
async def test_no_show_selected(client, state, tmp_path):
    runner = make_runner(client, FakeDownloader(), tmp_path)

    result = await runner.run(state, BatchAll())

    assert state.error_message == "No show selected"
    assert result.downloaded == []
    client.fetch_stream_sources.assert_not_called()
