"""
Compositor - Full Resolution Reassembly
=======================================
Blends the model's fixed-size output back into the original image.

Technical Notes:
- Only the feather-expanded watermark region is touched; every other
  pixel is a verbatim copy of the original
- The feather distance is measured in original pixels and scaled per
  axis when cutting the matching region out of the model output
- Only the top and left sides of the region are feathered, since the
  bottom and right sides lie on the image edges
- Smoothstep (3t^2 - 2t^3) gives a blend with no visible seam
"""

import math
from typing import Optional

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .errors import GeometryError
from .region import Region, calculate_watermark_region, expand_region


def feather_alpha(dist: np.ndarray, feather_size: int) -> np.ndarray:
    """
    Blend weight of the processed image for a distance from the core region.

    Args:
        dist: Distance(s) in pixels from the core region (0 inside it).
        feather_size: Width of the feather band in pixels.

    Returns:
        Weights in [0, 1]: 1 inside the core, 0 at or beyond the feather band.
    """
    dist = np.asarray(dist, dtype=np.float64)
    alpha = np.zeros_like(dist)
    alpha[dist <= 0] = 1.0

    if feather_size > 0:
        band = (dist > 0) & (dist < feather_size)
        t = dist[band] / feather_size
        alpha[band] = 1.0 - (t * t * (3.0 - 2.0 * t))

    return alpha


def create_feathered_blend(
        original: np.ndarray,
        processed: np.ndarray,
        feather_size: int,
        core_offset_x: int,
        core_offset_y: int
) -> np.ndarray:
    """
    Blend two equally sized RGBA patches with a feathered top/left edge.

    Args:
        original: (H, W, 4) uint8 patch from the original image.
        processed: (H, W, 4) uint8 patch resampled from the model output.
        feather_size: Feather band width in pixels.
        core_offset_x: Core region's left edge inside the patch.
        core_offset_y: Core region's top edge inside the patch.

    Returns:
        (H, W, 4) uint8 blended patch with opaque alpha.
    """
    height, width = original.shape[:2]
    xs = np.arange(width, dtype=np.float64)
    ys = np.arange(height, dtype=np.float64)

    dist_x = np.maximum(0.0, core_offset_x - xs)[np.newaxis, :]
    dist_y = np.maximum(0.0, core_offset_y - ys)[:, np.newaxis]
    dist = np.sqrt(dist_x ** 2 + dist_y ** 2)

    alpha = feather_alpha(dist, feather_size)[..., np.newaxis]

    orig_rgb = original[..., :3].astype(np.float64)
    proc_rgb = processed[..., :3].astype(np.float64)
    blended = orig_rgb * (1.0 - alpha) + proc_rgb * alpha

    result = np.empty((height, width, 4), dtype=np.uint8)
    result[..., :3] = np.clip(np.floor(blended + 0.5), 0, 255).astype(np.uint8)
    result[..., 3] = 255
    return result


def compose_final_image(
        original: Image.Image,
        processed: Image.Image,
        feather_size: int,
        model_size: int,
        extended_ratio: float
) -> Image.Image:
    """
    Compose the final image at the original resolution.

    Args:
        original: Full resolution source raster.
        processed: Decoded model output of model_size x model_size pixels.
        feather_size: Feather band in original pixels (0 = hard edge).
        model_size: Model input/output edge length.
        extended_ratio: Ratio of the region replaced by the model output.

    Returns:
        New RGBA image the size of the original.

    Raises:
        ValueError: If feather_size is negative.
        GeometryError: If the processed image has the wrong size or a
            computed region escapes its image.
    """
    if feather_size < 0:
        raise ValueError("Feather size cannot be negative")

    if processed.size != (model_size, model_size):
        raise GeometryError(
            f"Expected a {model_size}x{model_size} model output, got "
            f"{processed.size[0]}x{processed.size[1]}"
        )

    if original.mode != "RGBA":
        original = original.convert("RGBA")
    if processed.mode != "RGBA":
        processed = processed.convert("RGBA")

    orig_width, orig_height = original.size
    orig_region = calculate_watermark_region(orig_width, orig_height, extended_ratio)
    expanded = expand_region(
        orig_region, feather_size, feather_size, orig_width, orig_height
    )
    expanded.check_bounds(orig_width, orig_height)

    result = original.copy()
    if expanded.width == 0 or expanded.height == 0:
        return result

    processed_region = calculate_watermark_region(model_size, model_size, extended_ratio)
    proc_expanded = _scaled_expansion(
        processed_region, orig_region, feather_size, model_size
    )
    proc_expanded.check_bounds(model_size, model_size)

    scaled = processed.resize(
        (expanded.width, expanded.height),
        Image.Resampling.BILINEAR,
        box=proc_expanded.box,
    )

    blended = create_feathered_blend(
        np.asarray(original.crop(expanded.box)),
        np.asarray(scaled),
        feather_size,
        orig_region.x - expanded.x,
        orig_region.y - expanded.y,
    )

    result.paste(Image.fromarray(blended), (expanded.x, expanded.y))
    return result


def _scaled_expansion(
        processed_region: Region,
        orig_region: Region,
        feather_size: int,
        model_size: int
) -> Region:
    """Expand the model-space region by the feather scaled into model space."""
    scale_x = processed_region.width / orig_region.width if orig_region.width else 0.0
    scale_y = processed_region.height / orig_region.height if orig_region.height else 0.0
    return expand_region(
        processed_region,
        math.floor(feather_size * scale_x),
        math.floor(feather_size * scale_y),
        model_size,
        model_size,
    )


def _get_label_font(size: int):
    """Pick a readable font, falling back to Pillow's built-in one."""
    for candidate in (
            "arialbd.ttf",
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    ):
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    return ImageFont.load_default()


def create_comparison_image(
        original: Image.Image,
        cleaned: Image.Image,
        gap: int = 20,
        labels: Optional[tuple] = ("Original", "Cleaned")
) -> Image.Image:
    """
    Build a side-by-side before/after image.

    Args:
        original: Source image (left).
        cleaned: Result image (right), same size as the original.
        gap: White gap between the two halves in pixels.
        labels: Captions drawn at the top-left of each half, or None.

    Returns:
        RGB image of width 2 * original.width + gap.
    """
    width, height = original.size
    canvas = Image.new("RGB", (width * 2 + gap, height), (255, 255, 255))
    canvas.paste(original.convert("RGB"), (0, 0))
    canvas.paste(cleaned.convert("RGB"), (width + gap, 0))

    if labels:
        draw = ImageDraw.Draw(canvas)
        font = _get_label_font(20)
        draw.text((10, 10), labels[0], fill=(0, 0, 0), font=font)
        draw.text((width + gap + 10, 10), labels[1], fill=(0, 0, 0), font=font)

    return canvas
