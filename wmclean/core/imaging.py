"""
Image I/O Helpers
=================
Default implementations of the file-facing collaborators: validation,
loading, resizing and saving.

Technical Notes:
- Images are loaded with EXIF orientation applied and converted to RGBA
- The MIME type is derived from the file extension
- Results are always written as PNG to avoid lossy recompression
"""

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from wmclean.config import ImageConfig, ErrorMessages
from .errors import ValidationError

logger = logging.getLogger(__name__)

_EXTENSION_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}


@dataclass
class ValidationResult:
    """Outcome of validating one input file."""
    valid: bool
    error: Optional[str] = None


def guess_mime_type(path: Union[str, Path]) -> Optional[str]:
    """Return the MIME type implied by the file extension, if any."""
    path = Path(path)
    mime = _EXTENSION_TYPES.get(path.suffix.lower())
    if mime is None:
        mime, _ = mimetypes.guess_type(path.name)
    return mime


def validate_image_file(
        path: Union[str, Path],
        config: Optional[ImageConfig] = None,
        messages: Optional[ErrorMessages] = None
) -> ValidationResult:
    """
    Check a file's type against the allow-list and its size against the limit.

    Args:
        path: File to check.
        config: Image settings (allowed types, maximum size).
        messages: Error texts reported for rejected files.

    Returns:
        ValidationResult; never raises for a rejected file.
    """
    config = config or ImageConfig()
    messages = messages or ErrorMessages()
    path = Path(path)

    if guess_mime_type(path) not in config.allowed_types:
        return ValidationResult(False, messages.invalid_file_type)

    try:
        size = path.stat().st_size
    except OSError:
        return ValidationResult(False, f"Image not found: {path}")

    if size > config.max_file_size:
        return ValidationResult(False, messages.file_too_large)

    return ValidationResult(True)


def file_size(path: Union[str, Path]) -> int:
    """Size of a file in bytes, or 0 if it cannot be read."""
    try:
        return Path(path).stat().st_size
    except OSError:
        return 0


def load_image(path: Union[str, Path]) -> Image.Image:
    """
    Decode an image file into an RGBA raster.

    Raises:
        ValidationError: If the file is missing or not a decodable image.
    """
    path = Path(path)
    if not path.exists():
        raise ValidationError(f"Image not found: {path}")

    try:
        with Image.open(path) as img:
            img = ImageOps.exif_transpose(img)
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError(f"Cannot read image: {path.name} ({e})") from e


def resize_to_square(image: Image.Image, size: int) -> Image.Image:
    """Stretch an image to size x size pixels."""
    return image.resize((size, size), Image.Resampling.BILINEAR)


def output_filename(source: Union[str, Path], suffix: str = "-clean", fmt: str = "png") -> str:
    """Name of the result file for a source image, e.g. photo.jpg -> photo-clean.png."""
    return f"{Path(source).stem}{suffix}.{fmt}"


def save_image(image: Image.Image, output_path: Union[str, Path]) -> Path:
    """
    Save an image, creating parent directories as needed.

    JPEG targets get the alpha channel flattened onto white.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    suffix = output_path.suffix.lower()
    if suffix in (".jpg", ".jpeg") and image.mode == "RGBA":
        rgb = Image.new("RGB", image.size, (255, 255, 255))
        rgb.paste(image, mask=image.split()[3])
        rgb.save(output_path, quality=95)
    else:
        image.save(output_path)

    logger.debug("Saved %s", output_path)
    return output_path
