"""Catalog type definitions and data structures."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Show:
    """
    A show returned by a catalog search.

    The episode count is already resolved for the translation mode the
    search was made with.
    """
    id: str
    name: str
    available_episodes: int = 0

    def to_display(self) -> str:
        """Format the show for list display, e.g. ``My Anime (24 eps)``."""
        return f"{self.name} ({self.available_episodes} eps)"


@dataclass
class Episode:
    """An episode of a show. Numbers are not necessarily contiguous."""
    id: str
    number: int
    title: Optional[str] = None

    def to_display(self) -> str:
        if self.title is not None:
            return f"Ep {self.number} - {self.title}"
        return f"Ep {self.number}"


@dataclass
class StreamSource:
    """A playable stream. ``quality`` is the vertical resolution, 0 if unknown."""
    quality: int
    url: str

    def to_display(self) -> str:
        if self.quality == 0:
            return "Unknown quality"
        return f"{self.quality}p"
