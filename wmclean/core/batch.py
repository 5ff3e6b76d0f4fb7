"""
Batch Queue
===========
Sequential, cancellable processing of many images.

Workflow:
1. enqueue() validates each file; rejected files are kept in ERROR state
2. run() processes QUEUED items one at a time, in submission order,
   awaiting the injected processing coroutine for each
3. A failing item is marked ERROR and the loop moves on
4. cancel() stops the loop at the next item boundary; every item still
   QUEUED at that point becomes CANCELLED

Status changes and progress are published through a BatchObserver so the
loop does not depend on any UI framework.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Union

from .imaging import ValidationResult, file_size, validate_image_file

logger = logging.getLogger(__name__)

PROCESSING_FAILED = "Processing failed"


class BatchItemStatus(str, Enum):
    """Lifecycle of a batch item."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({
    BatchItemStatus.COMPLETE,
    BatchItemStatus.ERROR,
    BatchItemStatus.CANCELLED,
})


@dataclass
class BatchItem:
    """One file admitted to the queue."""
    id: str
    source: Path
    file_name: str
    file_size: int
    status: BatchItemStatus = BatchItemStatus.QUEUED
    result: Any = None
    error: Optional[str] = None


@dataclass
class BatchProgress:
    """Snapshot of overall progress."""
    completed: int
    total: int
    processing: Optional[str] = None  # file name of the in-flight item


class BatchObserver:
    """
    Receives queue notifications. All methods are no-ops by default.

    Callbacks run synchronously on the processing loop and should return
    quickly; a slow callback delays the next item.
    """

    def on_item_update(self, item_id: str, status: BatchItemStatus, data: Optional[dict]) -> None:
        pass

    def on_progress(self, completed: int, total: int) -> None:
        pass

    def on_complete(self, results: list) -> None:
        pass


ProcessFn = Callable[[Path], Awaitable[Any]]
Validator = Callable[[Path], ValidationResult]


def generate_item_id() -> str:
    return f"batch-{uuid.uuid4().hex[:12]}"


class BatchQueue:
    """
    Ordered queue of BatchItems driven by a single processing loop.

    Important:
    - At most one item is processed at a time
    - A second run() while one is active returns immediately
    - Items are never removed, only moved to a terminal state
    """

    def __init__(
            self,
            process: ProcessFn,
            validator: Optional[Validator] = None,
            observer: Optional[BatchObserver] = None
    ):
        """
        Args:
            process: Coroutine function taking a source path and returning
                the result payload. Raising marks the item as ERROR.
            validator: File check run on enqueue; defaults to
                validate_image_file.
            observer: Receiver of status and progress notifications.
        """
        self._process = process
        self._validator = validator or validate_image_file
        self.observer = observer or BatchObserver()

        self._items: List[BatchItem] = []
        self._is_processing = False
        self._is_cancelled = False

    # ===== Queue contents =====

    def enqueue(self, sources: Iterable[Union[str, Path]]) -> List[str]:
        """
        Add files to the queue.

        Files that fail validation are admitted in ERROR state with the
        validator's message.

        Returns:
            Assigned item ids in submission order.
        """
        added_ids = []

        for source in sources:
            source = Path(source)
            validation = self._validator(source)

            item = BatchItem(
                id=generate_item_id(),
                source=source,
                file_name=source.name,
                file_size=file_size(source),
            )
            if not validation.valid:
                item.status = BatchItemStatus.ERROR
                item.error = validation.error or PROCESSING_FAILED
                logger.warning("Rejected %s: %s", item.file_name, item.error)

            self._items.append(item)
            added_ids.append(item.id)

            self.observer.on_item_update(item.id, item.status, {
                "file_name": item.file_name,
                "file_size": item.file_size,
                "error": item.error,
            })

        return added_ids

    @property
    def items(self) -> List[BatchItem]:
        return list(self._items)

    def get_item(self, item_id: str) -> Optional[BatchItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def __len__(self) -> int:
        return len(self._items)

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    @property
    def is_cancelled(self) -> bool:
        return self._is_cancelled

    # ===== Progress and results =====

    def progress(self) -> BatchProgress:
        completed = sum(1 for item in self._items if item.status.is_terminal)
        processing = next(
            (item.file_name for item in self._items
             if item.status is BatchItemStatus.PROCESSING),
            None,
        )
        return BatchProgress(completed, len(self._items), processing)

    def results(self) -> list:
        """Payloads of COMPLETE items, in submission order."""
        return [
            item.result for item in self._items
            if item.status is BatchItemStatus.COMPLETE
        ]

    def has_results(self) -> bool:
        return any(item.status is BatchItemStatus.COMPLETE for item in self._items)

    # ===== Processing =====

    def _notify_progress(self) -> None:
        progress = self.progress()
        self.observer.on_progress(progress.completed, progress.total)

    def _cancel_remaining(self, start: int) -> None:
        for item in self._items[start:]:
            if item.status is BatchItemStatus.QUEUED:
                item.status = BatchItemStatus.CANCELLED
                self.observer.on_item_update(item.id, item.status, None)

    async def _process_item(self, item: BatchItem) -> None:
        try:
            result = await self._process(item.source)
            if isinstance(result, Exception):
                raise result
        except Exception as e:
            item.status = BatchItemStatus.ERROR
            item.error = str(e) or PROCESSING_FAILED
            logger.warning("Failed: %s: %s", item.file_name, item.error)
            self.observer.on_item_update(item.id, item.status, {"error": item.error})
        else:
            item.status = BatchItemStatus.COMPLETE
            item.result = result
            self.observer.on_item_update(item.id, item.status, {"result": result})

    async def run(self) -> list:
        """
        Process every QUEUED item in order.

        Returns:
            The results of all COMPLETE items, or an empty list when another
            run is already active.
        """
        if self._is_processing:
            return []

        self._is_processing = True
        self._is_cancelled = False

        try:
            for index, item in enumerate(self._items):
                if self._is_cancelled:
                    self._cancel_remaining(index)
                    self._notify_progress()
                    logger.info("Batch cancelled")
                    break

                # Skip items rejected on enqueue or handled by an earlier run
                if item.status is not BatchItemStatus.QUEUED:
                    continue

                item.status = BatchItemStatus.PROCESSING
                self.observer.on_item_update(item.id, item.status, None)
                self._notify_progress()

                await self._process_item(item)

                self._notify_progress()
        finally:
            self._is_processing = False

        results = self.results()
        logger.info(
            "Batch complete: %d succeeded, %d failed",
            len(results), len(self._items) - len(results),
        )
        self.observer.on_complete(results)
        return results

    def cancel(self) -> None:
        """
        Request cancellation; the in-flight item is allowed to finish.

        Each run() starts with the request cleared, so a cancelled batch
        can be extended and run again.
        """
        self._is_cancelled = True

    def cancel_queued(self) -> None:
        """Mark every QUEUED item CANCELLED without running anything."""
        if self._is_processing:
            raise RuntimeError("Cannot cancel queued items while the batch is processing")
        self._cancel_remaining(0)
        self._notify_progress()

    def reset(self) -> None:
        """Drop all items."""
        if self._is_processing:
            raise RuntimeError("Cannot reset a batch while it is processing")
        self._items = []
        self._is_cancelled = False
