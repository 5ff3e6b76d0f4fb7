"""
Workers Module - Async Thread Management
========================================
Contains QThread workers for non-blocking watermark removal.

All heavy computations run in separate threads to keep the UI responsive.

Components:
- RemoveWorker: Single image removal, failure reported immediately
- BatchRemoveWorker: Queue-based removal with progress and cancellation
"""

from .output import save_removal_result
from .remove_worker import BatchRemoveWorker, RemoveConfig, RemoveOutcome, RemoveWorker

__all__ = [
    "RemoveWorker",
    "BatchRemoveWorker",
    "RemoveConfig",
    "RemoveOutcome",
    "save_removal_result",
]
