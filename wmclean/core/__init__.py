"""
Core Module - Pure Algorithm Logic
==================================
This module contains no UI dependencies.
Region geometry, tensor conversion, composition and the batch queue
are implemented here.
"""

from .batch import BatchItem, BatchItemStatus, BatchObserver, BatchProgress, BatchQueue
from .compositor import compose_final_image, create_comparison_image, feather_alpha
from .engine import InpaintEngine, OnnxInpaintEngine
from .errors import GeometryError, InferenceError, ValidationError, WatermarkRemovalError
from .imaging import (
    ValidationResult, load_image, output_filename, resize_to_square,
    save_image, validate_image_file
)
from .pipeline import RemovalResult, WatermarkRemover
from .region import Region, calculate_watermark_region, expand_region
from .tensors import postprocess_output, preprocess_image

__all__ = [
    # Geometry
    "Region",
    "calculate_watermark_region",
    "expand_region",
    # Tensors
    "preprocess_image",
    "postprocess_output",
    # Composition
    "compose_final_image",
    "create_comparison_image",
    "feather_alpha",
    # Collaborators
    "InpaintEngine",
    "OnnxInpaintEngine",
    "ValidationResult",
    "validate_image_file",
    "load_image",
    "resize_to_square",
    "save_image",
    "output_filename",
    # Pipeline
    "WatermarkRemover",
    "RemovalResult",
    # Batch
    "BatchQueue",
    "BatchItem",
    "BatchItemStatus",
    "BatchObserver",
    "BatchProgress",
    # Errors
    "WatermarkRemovalError",
    "ValidationError",
    "InferenceError",
    "GeometryError",
]
