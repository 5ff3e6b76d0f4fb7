"""
Tensor Codec
============
Converts between Pillow rasters and the float32 tensors consumed and
produced by the inpainting model.

Technical Notes:
- Image tensors are channel-planar (CHW) with a leading batch axis: (1, 3, H, W)
- Mask tensors are (1, 1, H, W) with 1.0 marking pixels to inpaint
- Model output scale is not fixed across model variants, so decoding
  auto-detects whether values are in [0, 1] or [0, 255]
"""

from typing import Tuple

import numpy as np
from PIL import Image

from .errors import GeometryError, InferenceError
from .region import calculate_watermark_region

# Number of leading scalars inspected to detect the output value range
RANGE_SAMPLE_SIZE = 1000

# Sampled maxima at or below this are treated as normalized [0, 1] output
NORMALIZED_MAX = 2.0


def preprocess_image(
        image: Image.Image,
        model_size: int,
        mask_ratio: float
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the model input tensors from an already resized image.

    Args:
        image: Raster of exactly model_size x model_size pixels.
        model_size: Model input edge length.
        mask_ratio: Ratio used to place the inpainting mask.

    Returns:
        Tuple of (image_tensor, mask_tensor).

    Raises:
        GeometryError: If the image was not resized to the model size.
    """
    if image.size != (model_size, model_size):
        raise GeometryError(
            f"Expected a {model_size}x{model_size} image, got "
            f"{image.size[0]}x{image.size[1]}"
        )

    rgb = np.asarray(image.convert("RGB"), dtype=np.float32) / 255.0
    # HWC -> CHW, then add the batch axis
    image_tensor = np.ascontiguousarray(rgb.transpose(2, 0, 1))[np.newaxis, ...]

    region = calculate_watermark_region(model_size, model_size, mask_ratio)
    mask = np.zeros((model_size, model_size), dtype=np.float32)
    # Everything from the region's top-left corner to the image's bottom-right corner
    mask[region.y:, region.x:] = 1.0
    mask_tensor = mask[np.newaxis, np.newaxis, ...]

    return image_tensor.astype(np.float32), mask_tensor


def is_normalized_output(data: np.ndarray, width: int, height: int) -> bool:
    """
    Guess whether a model output holds values in [0, 1] rather than [0, 255].

    Only the first RANGE_SAMPLE_SIZE scalars of the first channel plane are
    inspected. An all-zero sample counts as normalized.
    """
    flat = np.asarray(data).reshape(-1)
    sample_size = min(RANGE_SAMPLE_SIZE, flat.size // 3, width * height)
    if sample_size <= 0:
        return True
    max_val = float(np.max(np.abs(flat[:sample_size])))
    return max_val <= NORMALIZED_MAX


def postprocess_output(output: np.ndarray, width: int, height: int) -> Image.Image:
    """
    Convert a model output tensor back into an RGBA raster.

    Args:
        output: Channel-planar tensor holding at least 3 x height x width values.
        width: Output width.
        height: Output height.

    Returns:
        RGBA PIL Image with a fully opaque alpha channel.

    Raises:
        InferenceError: If the tensor cannot hold an RGB image of that size.
    """
    flat = np.asarray(output, dtype=np.float32).reshape(-1)
    plane = width * height
    if flat.size < 3 * plane:
        raise InferenceError(
            f"Model output has {flat.size} values, expected at least {3 * plane}"
        )

    planes = flat[:3 * plane].reshape(3, height, width)
    if is_normalized_output(flat, width, height):
        planes = planes * 255.0

    # Round half up, then clamp
    rgb = np.clip(np.floor(planes + 0.5), 0, 255).astype(np.uint8)
    rgba = np.empty((height, width, 4), dtype=np.uint8)
    rgba[..., :3] = rgb.transpose(1, 2, 0)
    rgba[..., 3] = 255

    return Image.fromarray(rgba)
