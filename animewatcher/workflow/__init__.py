"""Workflow coordination package."""

from .orchestrator import SessionOrchestrator, resume_index
from .batch import BatchRunner, BatchResult
from .history import WatchHistory, WatchRecord

__all__ = [
    "SessionOrchestrator",
    "resume_index",
    "BatchRunner",
    "BatchResult",
    "WatchHistory",
    "WatchRecord",
]
