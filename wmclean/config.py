"""
Configuration - Startup Constants
=================================
All tunable settings for the watermark remover live here.

The values are plain dataclass defaults; callers that need different
values build their own config objects and pass them down explicitly.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple


@dataclass(frozen=True)
class ModelConfig:
    """Inference model settings."""
    input_size: int = 512
    model_path: Path = field(default_factory=lambda: Path("assets") / "lama_fp32.onnx")
    image_input_name: str = "image"
    mask_input_name: str = "mask"
    output_name: Optional[str] = None  # None = first network output


@dataclass(frozen=True)
class WatermarkConfig:
    """Watermark region and blending settings."""
    # Inference mask region (ratio of image dimensions, bottom-right anchored)
    mask_ratio: float = 0.15

    # Extended region for better blending (used in final composition)
    extended_ratio: float = 0.16

    # Edge feathering in pixels at original resolution (0 = hard edge)
    feather_size: int = 20


@dataclass(frozen=True)
class ImageConfig:
    """Input validation and output settings."""
    max_file_size: int = 50 * 1024 * 1024  # 50 MB
    allowed_types: Tuple[str, ...] = (
        "image/png", "image/jpeg", "image/jpg", "image/webp"
    )
    output_format: str = "png"
    output_suffix: str = "-clean"
    comparison_suffix: str = "-compare"


@dataclass(frozen=True)
class ErrorMessages:
    """User-facing error texts."""
    invalid_file_type: str = "Please select a valid image file (PNG, JPEG, WebP)"
    file_too_large: str = "File size exceeds 50 MB limit"
    model_load_failed: str = "Failed to load AI model"
    processing_failed: str = "Image processing failed"
    no_results: str = "No images were processed successfully"


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    model: ModelConfig = field(default_factory=ModelConfig)
    watermark: WatermarkConfig = field(default_factory=WatermarkConfig)
    image: ImageConfig = field(default_factory=ImageConfig)
    errors: ErrorMessages = field(default_factory=ErrorMessages)


DEFAULT_CONFIG = AppConfig()
