"""
wmclean - Main Entry Point
==========================
Command-line tool that removes the bottom-right corner watermark from
one or more images.

Usage:
    python main.py photo.png --output-dir cleaned
    python main.py a.png b.jpg c.webp --output-dir cleaned --feather 30 --compare

Architecture:
    - Model: wmclean/core/ (pure algorithms)
    - Workers: wmclean/workers/ (QThread processing)
    - Controller: This file (signal/slot connections, console output)
"""

import argparse
import logging
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from PyQt6.QtCore import QCoreApplication, QTimer

from wmclean import __app_name__, __version__
from wmclean.config import DEFAULT_CONFIG
from wmclean.core import OnnxInpaintEngine, WatermarkRemover
from wmclean.workers import BatchRemoveWorker, RemoveConfig, RemoveOutcome, RemoveWorker

logger = logging.getLogger("wmclean")


class RemovalController:
    """
    Controller class that connects worker signals to console output.

    Responsibilities:
    - Pick single-image or batch mode
    - Create and manage the worker thread
    - Report progress and results
    - Quit the event loop when the worker is done
    """

    def __init__(self, app: QCoreApplication, config: RemoveConfig, remover: WatermarkRemover):
        self.app = app
        self.config = config
        self.remover = remover
        self.succeeded = 0

        # Worker references (to prevent garbage collection)
        self._worker: Optional[RemoveWorker] = None
        self._batch_worker: Optional[BatchRemoveWorker] = None

    @property
    def is_batch(self) -> bool:
        return len(self.config.image_paths) != 1

    def start(self):
        if not self.is_batch:
            self._start_single()
        else:
            self._start_batch()

    # ===== Single image =====

    def _start_single(self):
        self._worker = RemoveWorker(self.config, self.remover)
        self._worker.started_processing.connect(
            lambda name: logger.info("File selected: %s", name)
        )
        self._worker.result_ready.connect(self._on_single_result)
        self._worker.error.connect(lambda message: logger.error(message))
        self._worker.finished.connect(self.app.quit)
        self._worker.start()

    def _on_single_result(self, outcome: RemoveOutcome):
        if outcome.success:
            self.succeeded = 1
            self._report_saved(outcome.result)

    # ===== Batch =====

    def _start_batch(self):
        logger.info("Batch upload: %d files selected", len(self.config.image_paths))
        self._batch_worker = BatchRemoveWorker(self.config, self.remover)
        self._batch_worker.item_updated.connect(self._on_item_updated)
        self._batch_worker.progress.connect(
            lambda done, total: logger.info("Progress: %d/%d", done, total)
        )
        self._batch_worker.finished_all.connect(self._on_batch_finished)
        self._batch_worker.error.connect(lambda message: logger.error(message))
        self._batch_worker.finished.connect(self.app.quit)
        self._batch_worker.start()

    def _on_item_updated(self, item_id: str, status: str, data):
        item = self._batch_worker.queue.get_item(item_id)
        name = item.file_name if item is not None else item_id
        if status == "error" and data:
            logger.warning("%s: %s", name, data.get("error"))
        else:
            logger.debug("%s: %s", name, status)

    def _on_batch_finished(self, results: list):
        self.succeeded = len(results)
        total = len(self._batch_worker.queue)
        logger.info(
            "Batch complete: %d succeeded, %d failed", self.succeeded, total - self.succeeded
        )
        for result in results:
            self._report_saved(result)

    def cancel(self):
        if self._batch_worker is not None:
            self._batch_worker.cancel()
            logger.info("Batch processing cancelled")

    @staticmethod
    def _report_saved(result):
        if result is not None and result.output_path is not None:
            logger.info("Saved: %s", result.output_path)


def install_interrupt_handler(controller: RemovalController):
    """
    Route Ctrl+C for the current mode.

    A batch is cancelled cooperatively so finished images are still
    reported. A single inference cannot be interrupted, so the process
    falls back to the default action and exits.
    """
    if controller.is_batch:
        def handler(signum, frame):
            controller.cancel()
    else:
        handler = signal.SIG_DFL
    signal.signal(signal.SIGINT, handler)
    return handler


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=__app_name__,
        description="Remove the bottom-right corner watermark from images.",
    )
    parser.add_argument("images", nargs="+", type=Path, help="Image files to clean")
    parser.add_argument(
        "-o", "--output-dir", type=Path, default=Path.cwd() / "output",
        help="Directory for cleaned images (default: ./output)",
    )
    parser.add_argument(
        "-f", "--feather", type=int, default=DEFAULT_CONFIG.watermark.feather_size,
        help="Edge blend width in pixels, 0 = hard edge (default: %(default)s)",
    )
    parser.add_argument(
        "-m", "--model", type=Path, default=DEFAULT_CONFIG.model.model_path,
        help="Path to the ONNX inpainting model (default: %(default)s)",
    )
    parser.add_argument(
        "--compare", action="store_true",
        help="Also save a side-by-side before/after image",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.feather < 0:
        logger.error("Feather size cannot be negative")
        return 2

    app_config = replace(
        DEFAULT_CONFIG,
        model=replace(DEFAULT_CONFIG.model, model_path=args.model),
    )

    # Create application (event loop for worker signals)
    app = QCoreApplication(sys.argv[:1])
    app.setApplicationName(__app_name__)
    app.setApplicationVersion(__version__)

    remover = WatermarkRemover(OnnxInpaintEngine(app_config.model), app_config)
    config = RemoveConfig(
        image_paths=list(args.images),
        output_dir=args.output_dir,
        feather_size=args.feather,
        save_comparison=args.compare,
        app=app_config,
    )

    controller = RemovalController(app, config, remover)
    controller.start()

    install_interrupt_handler(controller)

    # Wake the interpreter so a Python SIGINT handler gets to run
    timer = QTimer()
    timer.timeout.connect(lambda: None)
    timer.start(200)

    app.exec()

    return 0 if controller.succeeded > 0 else 1


if __name__ == "__main__":
    sys.exit(main())
