"""
animewatcher - terminal anime browser, streamer and batch downloader

Search a streaming catalog, pick episodes from a keyboard-driven terminal
interface, hand streams to an external player or download whole ranges
of episodes with yt-dlp.
"""

__version__ = "0.4.0"
