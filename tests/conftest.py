"""
Shared pytest fixtures and utilities for the animewatcher test suite.
"""

from pathlib import Path
from typing import Dict, Any, Callable, List

import pytest
import yaml

from animewatcher.api.catalog_types import Show, Episode, StreamSource
from animewatcher.config.keybindings import KeyEvent
from animewatcher.session.state import SessionState


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[[Dict[str, Any]], Path]:
    """
    Create a config.yaml in a temp directory.

    Usage:
        path = make_config({"mode": "dub"})
    """

    def _builder(overrides: Dict[str, Any] | None = None) -> Path:
        cfg_path = tmp_path / "config.yaml"
        cfg_path.write_text(yaml.safe_dump(overrides or {}))
        return cfg_path

    return _builder


@pytest.fixture
def show() -> Show:
    return Show(id="show-1", name="Frieren", available_episodes=24)


@pytest.fixture
def episodes() -> List[Episode]:
    """Episodes 1..24 without titles."""
    return [Episode(id=f"show-1-{n}", number=n) for n in range(1, 25)]


@pytest.fixture
def sources() -> List[StreamSource]:
    """Sources at 0 (unknown), 480, 720 and 1080."""
    return [
        StreamSource(quality=0, url="https://cdn.example/unknown.m3u8"),
        StreamSource(quality=480, url="https://cdn.example/480.mp4"),
        StreamSource(quality=720, url="https://cdn.example/720.mp4"),
        StreamSource(quality=1080, url="https://cdn.example/1080.mp4"),
    ]


@pytest.fixture
def state() -> SessionState:
    return SessionState(mode="sub", quality="best")


@pytest.fixture
def route_keys():
    """Route a sequence of keys and return the non-None actions produced."""
    from animewatcher.session.router import route

    def _route(session: SessionState, events: List[KeyEvent]):
        actions = []
        for event in events:
            action = route(session, event)
            if action is not None:
                actions.append(action)
        return actions

    return _route
