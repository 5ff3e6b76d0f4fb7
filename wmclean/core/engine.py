"""
Inpainting Engine (Adapter)
===========================
Interface to the neural inpainting model, plus a default implementation
that runs a LaMa-style ONNX model through OpenCV's DNN module.

Technical Notes:
- The engine takes an image tensor (1, 3, H, W) and a mask tensor
  (1, 1, H, W) and returns an output tensor of the image's shape
- The model is loaded lazily, once per engine instance
- Engines are not assumed to be safe for concurrent calls
"""

import logging
import threading
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

from wmclean.config import ModelConfig
from .errors import InferenceError

logger = logging.getLogger(__name__)


class InpaintEngine:
    """
    Base class for inference engines.

    Subclasses implement infer(). Engines with a heavy setup step override
    initialize() so batch workers can load them before the first item.
    """

    def initialize(self) -> None:
        """Prepare the engine before the first call. No-op by default."""

    def infer(self, image_tensor: np.ndarray, mask_tensor: np.ndarray) -> np.ndarray:
        """
        Run inpainting on one image.

        Args:
            image_tensor: float32 (1, 3, H, W) image in [0, 1].
            mask_tensor: float32 (1, 1, H, W) binary mask.

        Returns:
            float32 output tensor, channel-planar.

        Raises:
            InferenceError: If the engine fails.
        """
        raise NotImplementedError


class OnnxInpaintEngine(InpaintEngine):
    """
    Runs an ONNX inpainting model with cv2.dnn.

    Important:
    - The model file is read on first use (or on initialize())
    - Calls are serialized with a lock; the network holds per-call state
    """

    def __init__(self, config: Optional[ModelConfig] = None,
                 model_path: Optional[Union[str, Path]] = None):
        self.config = config or ModelConfig()
        self.model_path = Path(model_path) if model_path else Path(self.config.model_path)
        self._net = None
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._net is not None

    def initialize(self) -> None:
        """
        Load the model. Heavy; runs once per engine.

        Raises:
            InferenceError: If the model file is missing or cannot be parsed.
        """
        with self._lock:
            self._load()

    def _load(self) -> None:
        # Caller holds self._lock
        if self._net is not None:
            return

        if not self.model_path.exists():
            raise InferenceError(f"Model not found: {self.model_path}")

        logger.info("Loading inpainting model from %s", self.model_path)
        try:
            self._net = cv2.dnn.readNetFromONNX(str(self.model_path))
        except cv2.error as e:
            raise InferenceError(f"Failed to load AI model: {e}") from e
        logger.info("Inpainting model ready")

    def infer(self, image_tensor: np.ndarray, mask_tensor: np.ndarray) -> np.ndarray:
        with self._lock:
            self._load()
            try:
                self._net.setInput(
                    np.ascontiguousarray(image_tensor, dtype=np.float32),
                    self.config.image_input_name,
                )
                self._net.setInput(
                    np.ascontiguousarray(mask_tensor, dtype=np.float32),
                    self.config.mask_input_name,
                )
                if self.config.output_name:
                    output = self._net.forward(self.config.output_name)
                else:
                    output = self._net.forward()
            except cv2.error as e:
                raise InferenceError(f"Inference failed: {e}") from e

        return np.asarray(output, dtype=np.float32)
