"""
Watch history persistence.

Remembers the last watched episode of every show so a session can
continue where it left off.

History file: <user data dir>/animewatcher/history.json
"""

import json
import logging
import time
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, List, Optional

from platformdirs import user_data_dir

logger = logging.getLogger(__name__)

APP_NAME = "animewatcher"


def default_history_path() -> Path:
    return Path(user_data_dir(APP_NAME)) / "history.json"


@dataclass
class WatchRecord:
    """Last watched episode of a show."""
    show_id: str
    show_name: str
    episode: int
    mode: str                       # Translation mode: 'sub' or 'dub'
    timestamp: int                  # Unix time of the last update


class WatchHistory:
    """
    Watch history keyed by show id.

    The file is read once at startup and rewritten after every update.
    Writes replace the whole file atomically; the last writer wins.

    Example:
        history = WatchHistory.load()
        history.update('abc123', 'Some Show', 4, 'sub')
        history.save()
        recent = history.get_recent(10)
    """

    def __init__(self, path: Optional[Path] = None, records: Optional[Dict[str, WatchRecord]] = None):
        """
        Initialize watch history

        Args:
            path: History file location (defaults to the user data dir)
            records: Initial records keyed by show id
        """
        self.path = Path(path) if path is not None else default_history_path()
        self.records: Dict[str, WatchRecord] = records or {}

    @classmethod
    def load(cls, path: Optional[Path] = None) -> 'WatchHistory':
        """
        Load history from disk.

        A missing file gives an empty history. So does an unreadable or
        corrupt file, after logging a warning.
        """
        history = cls(path)
        if not history.path.exists():
            logger.debug(f"No history file found: {history.path}")
            return history

        try:
            with open(history.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            for show_id, raw in data.get('records', {}).items():
                history.records[show_id] = WatchRecord(
                    show_id=str(raw['show_id']),
                    show_name=str(raw['show_name']),
                    episode=int(raw['episode']),
                    mode=str(raw['mode']),
                    timestamp=int(raw['timestamp'])
                )
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable history file {history.path}: {e}")
            history.records = {}

        logger.debug(f"Loaded {len(history.records)} history records")
        return history

    def save(self) -> None:
        """
        Write history to disk.

        Raises:
            OSError: If the file cannot be written
        """
        payload = {
            'records': {show_id: asdict(r) for show_id, r in self.records.items()}
        }

        # Atomic write: write to temp file, then rename
        temp_file = self.path.with_suffix('.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2)
            temp_file.replace(self.path)
        except OSError:
            if temp_file.exists():
                temp_file.unlink()
            raise

        logger.debug(f"History saved: {len(self.records)} records")

    def update(self, show_id: str, show_name: str, episode: int, mode: str) -> WatchRecord:
        record = WatchRecord(
            show_id=show_id,
            show_name=show_name,
            episode=episode,
            mode=mode,
            timestamp=int(time.time())
        )
        self.records[show_id] = record
        return record

    def get_record(self, show_id: str) -> Optional[WatchRecord]:
        return self.records.get(show_id)

    def get_recent(self, limit: int) -> List[WatchRecord]:
        """Most recently watched records first, at most ``limit`` of them."""
        ordered = sorted(self.records.values(), key=lambda r: r.timestamp, reverse=True)
        return ordered[:limit]

    def is_empty(self) -> bool:
        return not self.records
