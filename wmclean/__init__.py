"""
wmclean - Corner Watermark Remover
==================================
Removes the bottom-right corner watermark from images with a neural
inpainting model and blends the result back at full resolution.

Modules:
    - core: Pure algorithm logic (no UI dependencies)
    - workers: QThread workers for async processing

Usage:
    from wmclean.core import WatermarkRemover, OnnxInpaintEngine, BatchQueue
    from wmclean.workers import RemoveWorker, BatchRemoveWorker
"""

__version__ = "1.0.0"
__app_name__ = "wmclean"

from .config import AppConfig, DEFAULT_CONFIG
from .core import (
    BatchQueue, BatchItemStatus, OnnxInpaintEngine, RemovalResult, WatermarkRemover
)

__all__ = [
    # Version info
    "__version__",
    "__app_name__",

    # Config
    "AppConfig",
    "DEFAULT_CONFIG",

    # Core
    "WatermarkRemover",
    "RemovalResult",
    "OnnxInpaintEngine",
    "BatchQueue",
    "BatchItemStatus",
]
