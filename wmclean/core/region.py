"""
Watermark Region Geometry
=========================
Computes the bottom-right watermark rectangle for an image and the
feather-expanded rectangle used during composition.

Regions are always expressed in the pixel space of one specific image
(model space or original space); converting between the two is the
caller's job.
"""

import math
from dataclasses import dataclass

from .errors import GeometryError


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 rounding up."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class Region:
    """Axis-aligned rectangle in pixel coordinates."""
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def box(self) -> tuple:
        """(left, upper, right, lower) box as used by Pillow."""
        return self.x, self.y, self.right, self.bottom

    def check_bounds(self, image_width: int, image_height: int) -> None:
        """
        Verify that the region lies inside an image of the given size.

        Raises:
            GeometryError: If any edge escapes the image.
        """
        if (
                self.x < 0 or self.y < 0
                or self.width < 0 or self.height < 0
                or self.right > image_width
                or self.bottom > image_height
        ):
            raise GeometryError(
                f"Region {self} escapes image bounds {image_width}x{image_height}"
            )


def calculate_watermark_region(width: int, height: int, ratio: float) -> Region:
    """
    Compute the watermark rectangle anchored at the bottom-right corner.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        ratio: Fraction of each dimension covered by the region.

    Returns:
        Region touching the right and bottom edges of the image.
    """
    region_width = min(max(round_half_up(width * ratio), 0), width)
    region_height = min(max(round_half_up(height * ratio), 0), height)
    return Region(
        x=width - region_width,
        y=height - region_height,
        width=region_width,
        height=region_height,
    )


def expand_region(
        region: Region,
        feather_x: int,
        feather_y: int,
        image_width: int,
        image_height: int
) -> Region:
    """
    Grow a region by the feather on its top and left sides.

    The bottom and right sides already touch the image edges, so only the
    leading edges move. The result is clamped to the image.
    """
    x = max(0, region.x - feather_x)
    y = max(0, region.y - feather_y)
    return Region(
        x=x,
        y=y,
        width=min(image_width - x, region.width + feather_x),
        height=min(image_height - y, region.height + feather_y),
    )
