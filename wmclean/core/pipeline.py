"""
Watermark Removal Pipeline
==========================
Runs one image through the full removal sequence.

Workflow:
1. Load the image (EXIF orientation applied, RGBA)
2. Resize to the model input size and build image/mask tensors
3. Run the inpainting engine
4. Decode the output tensor back into a raster
5. Compose the result into the original at full resolution

The async entry point runs the blocking inference call in a worker
thread so a batch loop can await it.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

import numpy as np
from PIL import Image

from wmclean.config import AppConfig, DEFAULT_CONFIG
from .compositor import compose_final_image
from .engine import InpaintEngine
from .errors import InferenceError, WatermarkRemovalError
from .imaging import load_image, resize_to_square
from .tensors import postprocess_output, preprocess_image

logger = logging.getLogger(__name__)


@dataclass
class RemovalResult:
    """Final image plus the original it was derived from."""
    image: Image.Image
    original: Image.Image
    file_name: str = ""
    source_path: Optional[Path] = None
    output_path: Optional[Path] = None  # set once written to disk
    comparison_path: Optional[Path] = None


class WatermarkRemover:
    """
    Removes the bottom-right corner watermark from images.

    The engine, loader and resizer are injected so the pipeline can run
    against a stub model in tests.
    """

    def __init__(
            self,
            engine: InpaintEngine,
            config: AppConfig = DEFAULT_CONFIG,
            loader: Callable[[Union[str, Path]], Image.Image] = load_image,
            resizer: Callable[[Image.Image, int], Image.Image] = resize_to_square
    ):
        self.engine = engine
        self.config = config
        self._loader = loader
        self._resizer = resizer

    @property
    def model_size(self) -> int:
        return self.config.model.input_size

    def _resolve_feather(self, feather_size: Optional[int]) -> int:
        if feather_size is None:
            return self.config.watermark.feather_size
        return int(feather_size)

    def prepare(self, image: Image.Image) -> Tuple[np.ndarray, np.ndarray]:
        """Resize an image and encode it into model input tensors."""
        resized = self._resizer(image, self.model_size)
        return preprocess_image(resized, self.model_size, self.config.watermark.mask_ratio)

    def run_inference(self, image_tensor: np.ndarray, mask_tensor: np.ndarray) -> np.ndarray:
        """
        Call the engine, normalizing its failures to InferenceError.

        The message of the underlying failure is kept as is.
        """
        try:
            output = self.engine.infer(image_tensor, mask_tensor)
        except WatermarkRemovalError:
            raise
        except Exception as e:
            raise InferenceError(str(e) or self.config.errors.processing_failed) from e

        if output is None:
            raise InferenceError("Inference engine returned no output")
        return np.asarray(output)

    def finish(
            self,
            original: Image.Image,
            output: np.ndarray,
            feather_size: Optional[int] = None
    ) -> Image.Image:
        """Decode a model output and compose it into the original."""
        processed = postprocess_output(output, self.model_size, self.model_size)
        return compose_final_image(
            original,
            processed,
            self._resolve_feather(feather_size),
            self.model_size,
            self.config.watermark.extended_ratio,
        )

    def remove_from_image(
            self,
            image: Image.Image,
            feather_size: Optional[int] = None
    ) -> Image.Image:
        """
        Remove the watermark from an in-memory image.

        Args:
            image: Source raster at any resolution.
            feather_size: Blend band in pixels; None uses the configured default.

        Returns:
            New RGBA image at the source resolution.
        """
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        image_tensor, mask_tensor = self.prepare(image)
        output = self.run_inference(image_tensor, mask_tensor)
        return self.finish(image, output, feather_size)

    def remove(
            self,
            image_path: Union[str, Path],
            feather_size: Optional[int] = None
    ) -> RemovalResult:
        """
        Single-image mode: load, process and return the result.

        Any failure propagates to the caller; there is no partial result.
        """
        image_path = Path(image_path)
        original = self._loader(image_path)
        logger.info("Processing: %s (%dx%dpx)", image_path.name, *original.size)

        final = self.remove_from_image(original, feather_size)

        logger.info("Completed: %s", image_path.name)
        return RemovalResult(
            image=final, original=original,
            file_name=image_path.name, source_path=image_path,
        )

    async def process_file(
            self,
            image_path: Union[str, Path],
            feather_size: Optional[int] = None
    ) -> RemovalResult:
        """
        Async variant of remove() for the batch queue.

        Suspends while the engine runs in a worker thread.
        """
        image_path = Path(image_path)
        original = self._loader(image_path)
        logger.info("Processing: %s (%dx%dpx)", image_path.name, *original.size)

        image_tensor, mask_tensor = self.prepare(original)
        output = await asyncio.to_thread(self.run_inference, image_tensor, mask_tensor)
        final = self.finish(original, output, feather_size)

        logger.info("Completed: %s", image_path.name)
        return RemovalResult(
            image=final, original=original,
            file_name=image_path.name, source_path=image_path,
        )
