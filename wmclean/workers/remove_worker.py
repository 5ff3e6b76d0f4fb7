"""
Remove Worker - Async Watermark Removal
=======================================
QThread workers that run the removal pipeline off the GUI thread.

Workflow (batch):
1. Pre-load the inpainting model once
2. Admit every file to a BatchQueue (rejected files become ERROR items)
3. Run the queue on an asyncio loop inside the thread
4. Forward item/progress updates as Qt signals
5. Emit finished signal with the successful results

Workflow (single image):
1. Load, process and save one image
2. Emit result signal; any failure is reported, no partial result
"""

import asyncio
import logging
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import List, Optional

from PyQt6.QtCore import QThread, pyqtSignal

from wmclean.config import AppConfig, DEFAULT_CONFIG
from wmclean.core.batch import BatchItemStatus, BatchObserver, BatchQueue
from wmclean.core.errors import InferenceError, ValidationError, WatermarkRemovalError
from wmclean.core.imaging import validate_image_file
from wmclean.core.pipeline import RemovalResult, WatermarkRemover
from .output import save_removal_result

logger = logging.getLogger(__name__)


@dataclass
class RemoveConfig:
    """Configuration for a removal run."""
    image_paths: List[Path] = field(default_factory=list)
    output_dir: Optional[Path] = None  # None = keep results in memory only
    feather_size: Optional[int] = None  # None = configured default
    save_comparison: bool = False
    app: AppConfig = DEFAULT_CONFIG


@dataclass
class RemoveOutcome:
    """Result of removing the watermark from a single image."""
    source_path: Path
    result: Optional[RemovalResult] = None
    success: bool = False
    error_message: str = ""


class _SignalObserver(BatchObserver):
    """Forwards queue notifications to a worker's signals."""

    def __init__(self, worker: "BatchRemoveWorker"):
        self._worker = worker

    def on_item_update(self, item_id, status, data):
        self._worker.item_updated.emit(item_id, BatchItemStatus(status).value, data)

    def on_progress(self, completed, total):
        self._worker.progress.emit(completed, total)


class BatchRemoveWorker(QThread):
    """
    Worker thread for removing watermarks from many images.

    Signals:
        item_updated(str, str, object): (item_id, status, data)
        progress(int, int): (completed, total)
        finished_all(list[RemovalResult]): Emitted when the batch ends
        error(str): Emitted on critical errors or when nothing succeeded
    """

    # Signals
    item_updated = pyqtSignal(str, str, object)  # id, status, data
    progress = pyqtSignal(int, int)  # completed, total
    finished_all = pyqtSignal(list)  # List[RemovalResult]
    error = pyqtSignal(str)  # Error message

    def __init__(self, config: RemoveConfig, remover: WatermarkRemover, parent=None):
        """
        Initialize the batch worker.

        Args:
            config: RemoveConfig with the files and output settings.
            remover: Pipeline used for every image.
            parent: Optional parent QObject.
        """
        super().__init__(parent)
        self.config = config
        self.remover = remover
        self._is_cancelled = False
        self.queue = BatchQueue(
            self._process_path,
            validator=partial(
                validate_image_file,
                config=config.app.image,
                messages=config.app.errors,
            ),
            observer=_SignalObserver(self),
        )

    def cancel(self):
        """Request cancellation of the worker."""
        self._is_cancelled = True
        self.queue.cancel()

    async def _process_path(self, image_path: Path) -> RemovalResult:
        result = await self.remover.process_file(image_path, self.config.feather_size)
        if self.config.output_dir is not None:
            save_removal_result(
                result,
                self.config.output_dir,
                self.config.app.image,
                self.config.save_comparison,
            )
        return result

    def run(self):
        """
        Main worker execution.

        Processes all images and emits progress/result signals.
        """
        results: List[RemovalResult] = []
        errors = self.config.app.errors

        if not self.config.image_paths:
            self.error.emit("No images to process")
            self.finished_all.emit(results)
            return

        self.queue.enqueue(self.config.image_paths)
        self.progress.emit(0, len(self.queue))

        try:
            if not self._is_cancelled:
                logger.info("Pre-loading AI model for batch processing...")
                self.remover.engine.initialize()

            if self._is_cancelled:
                self.queue.cancel_queued()
                logger.info("Batch cancelled before processing started")
            else:
                results = asyncio.run(self.queue.run())

        except InferenceError as e:
            logger.error("Model initialization failed: %s", e)
            self.error.emit(f"{errors.model_load_failed}: {e}")

        except Exception as e:
            logger.exception("Batch processing aborted")
            self.error.emit(f"Critical error: {e}")
            results = self.queue.results()

        else:
            if not results and not self._is_cancelled:
                self.error.emit(errors.no_results)

        self.finished_all.emit(results)


class RemoveWorker(QThread):
    """
    Worker thread for removing the watermark from a single image.

    Signals:
        started_processing(str): Emitted when processing starts (filename)
        result_ready(RemoveOutcome): Emitted with the outcome
        error(str): Emitted on errors
    """

    # Signals
    started_processing = pyqtSignal(str)  # filename
    result_ready = pyqtSignal(object)  # RemoveOutcome
    error = pyqtSignal(str)  # Error message

    def __init__(self, config: RemoveConfig, remover: WatermarkRemover, parent=None):
        """
        Initialize the single-image worker.

        Args:
            config: RemoveConfig whose image_paths holds exactly one path.
            remover: Pipeline to run.
            parent: Optional parent QObject.
        """
        super().__init__(parent)
        if len(config.image_paths) != 1:
            raise ValueError("RemoveWorker needs exactly one image path")
        self.config = config
        self.remover = remover

    def run(self):
        """
        Main worker execution.

        Processes the image and emits the outcome.
        """
        image_path = Path(self.config.image_paths[0])
        outcome = RemoveOutcome(source_path=image_path)
        errors = self.config.app.errors

        try:
            validation = validate_image_file(
                image_path, self.config.app.image, errors
            )
            if not validation.valid:
                raise ValidationError(validation.error)

            self.started_processing.emit(image_path.name)

            result = self.remover.remove(image_path, self.config.feather_size)
            if self.config.output_dir is not None:
                save_removal_result(
                    result,
                    self.config.output_dir,
                    self.config.app.image,
                    self.config.save_comparison,
                )

            outcome.result = result
            outcome.success = True

        except ValidationError as e:
            outcome.error_message = str(e)
            self.error.emit(outcome.error_message)

        except (ValueError, WatermarkRemovalError) as e:
            outcome.error_message = f"{errors.processing_failed}: {e}"
            self.error.emit(outcome.error_message)

        except Exception as e:
            outcome.error_message = f"{errors.processing_failed}: {e}"
            self.error.emit(outcome.error_message)
            logger.exception("Processing failed: %s", image_path.name)

        self.result_ready.emit(outcome)
