"""
Tests for the batch queue: ordering, failure isolation, cancellation and
progress reporting.

Run with: python -m pytest tests/test_batch.py -v
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from wmclean.core.batch import BatchItemStatus, BatchObserver, BatchQueue
from wmclean.core.imaging import ValidationResult


def accept_all(path):
    return ValidationResult(True)


def names(count: int):
    return [Path(f"image_{i}.png") for i in range(count)]


class RecordingObserver(BatchObserver):
    """Keeps every notification for later inspection."""

    def __init__(self):
        self.updates = []
        self.progress = []
        self.completed = []

    def on_item_update(self, item_id, status, data):
        self.updates.append((item_id, status, data))

    def on_progress(self, completed, total):
        self.progress.append((completed, total))

    def on_complete(self, results):
        self.completed.append(results)


def make_processor(failing=(), calls=None):
    """Processing coroutine that fails for the given file names."""
    async def process(path):
        if calls is not None:
            calls.append(path.name)
        await asyncio.sleep(0)
        if path.name in failing:
            raise ValueError(f"cannot process {path.name}")
        return path.name
    return process


def test_enqueue_returns_ids_in_order():
    queue = BatchQueue(make_processor(), validator=accept_all)
    ids = queue.enqueue(names(3))

    assert len(ids) == 3
    assert len(set(ids)) == 3
    assert [item.id for item in queue.items] == ids
    assert [item.file_name for item in queue.items] == ["image_0.png", "image_1.png", "image_2.png"]
    assert all(item.status is BatchItemStatus.QUEUED for item in queue.items)
    assert len(queue) == 3


def test_enqueue_admits_invalid_files_as_errors():
    def validator(path):
        if path.suffix == ".txt":
            return ValidationResult(False, "Please select a valid image file (PNG, JPEG, WebP)")
        return ValidationResult(True)

    calls = []
    observer = RecordingObserver()
    queue = BatchQueue(make_processor(calls=calls), validator=validator, observer=observer)
    ids = queue.enqueue([Path("a.png"), Path("notes.txt"), Path("b.png")])

    rejected = queue.get_item(ids[1])
    assert rejected.status is BatchItemStatus.ERROR
    assert rejected.error == "Please select a valid image file (PNG, JPEG, WebP)"
    assert observer.updates[1][1] is BatchItemStatus.ERROR

    results = asyncio.run(queue.run())

    assert results == ["a.png", "b.png"]
    assert calls == ["a.png", "b.png"]
    assert queue.get_item(ids[1]).status is BatchItemStatus.ERROR


def test_failures_do_not_abort_batch():
    failing = {"image_1.png", "image_3.png"}
    queue = BatchQueue(make_processor(failing), validator=accept_all)
    queue.enqueue(names(5))

    results = asyncio.run(queue.run())

    assert results == ["image_0.png", "image_2.png", "image_4.png"]
    assert queue.results() == results

    statuses = [item.status for item in queue.items]
    assert statuses == [
        BatchItemStatus.COMPLETE,
        BatchItemStatus.ERROR,
        BatchItemStatus.COMPLETE,
        BatchItemStatus.ERROR,
        BatchItemStatus.COMPLETE,
    ]
    assert queue.items[1].error == "cannot process image_1.png"
    assert queue.has_results()


def test_all_failures_give_empty_results():
    queue = BatchQueue(make_processor({"image_0.png", "image_1.png"}), validator=accept_all)
    queue.enqueue(names(2))

    assert asyncio.run(queue.run()) == []
    assert not queue.has_results()


def test_returned_exception_counts_as_failure():
    async def process(path):
        return RuntimeError("engine out of memory")

    queue = BatchQueue(process, validator=accept_all)
    queue.enqueue(names(1))
    asyncio.run(queue.run())

    item = queue.items[0]
    assert item.status is BatchItemStatus.ERROR
    assert item.error == "engine out of memory"


def test_empty_error_message_falls_back():
    async def process(path):
        raise RuntimeError()

    queue = BatchQueue(process, validator=accept_all)
    queue.enqueue(names(1))
    asyncio.run(queue.run())

    assert queue.items[0].error == "Processing failed"


def test_progress_reported_before_and_after_each_item():
    observer = RecordingObserver()
    queue = BatchQueue(make_processor({"image_1.png"}), validator=accept_all, observer=observer)
    queue.enqueue(names(2))

    results = asyncio.run(queue.run())

    assert observer.progress == [(0, 2), (1, 2), (1, 2), (2, 2)]
    assert observer.completed == [results]

    statuses = [status for _, status, _ in observer.updates]
    assert statuses == [
        BatchItemStatus.QUEUED,
        BatchItemStatus.QUEUED,
        BatchItemStatus.PROCESSING,
        BatchItemStatus.COMPLETE,
        BatchItemStatus.PROCESSING,
        BatchItemStatus.ERROR,
    ]


def test_progress_snapshot_names_in_flight_item():
    snapshots = []

    async def process(path):
        snapshots.append(queue.progress())
        return path.name

    queue = BatchQueue(process, validator=accept_all)
    queue.enqueue(names(2))
    asyncio.run(queue.run())

    assert snapshots[0].processing == "image_0.png"
    assert (snapshots[1].completed, snapshots[1].total) == (1, 2)
    assert queue.progress().processing is None


def test_items_processed_one_at_a_time():
    in_flight = 0
    max_in_flight = 0

    async def process(path):
        nonlocal in_flight, max_in_flight
        in_flight += 1
        max_in_flight = max(max_in_flight, in_flight)
        await asyncio.sleep(0.001)
        in_flight -= 1
        return path.name

    queue = BatchQueue(process, validator=accept_all)
    queue.enqueue(names(4))
    asyncio.run(queue.run())

    assert max_in_flight == 1


def test_cancel_after_second_item():
    calls = []

    class CancelAfterSecond(RecordingObserver):
        def on_item_update(self, item_id, status, data):
            super().on_item_update(item_id, status, data)
            if status is BatchItemStatus.COMPLETE and queue.items[1].id == item_id:
                queue.cancel()

    observer = CancelAfterSecond()
    queue = BatchQueue(make_processor(calls=calls), validator=accept_all, observer=observer)
    ids = queue.enqueue(names(5))

    results = asyncio.run(queue.run())

    assert results == ["image_0.png", "image_1.png"]
    assert calls == ["image_0.png", "image_1.png"]
    assert [item.status for item in queue.items] == [
        BatchItemStatus.COMPLETE,
        BatchItemStatus.COMPLETE,
        BatchItemStatus.CANCELLED,
        BatchItemStatus.CANCELLED,
        BatchItemStatus.CANCELLED,
    ]

    # Cancelled items never reached PROCESSING
    for item_id in ids[2:]:
        seen = [status for uid, status, _ in observer.updates if uid == item_id]
        assert BatchItemStatus.PROCESSING not in seen
    assert observer.progress[-1] == (5, 5)


def test_cancel_lets_in_flight_item_finish():
    calls = []

    async def process(path):
        calls.append(path.name)
        if path.name == "image_2.png":
            queue.cancel()
        await asyncio.sleep(0)
        return path.name

    queue = BatchQueue(process, validator=accept_all)
    queue.enqueue(names(5))
    results = asyncio.run(queue.run())

    assert results == ["image_0.png", "image_1.png", "image_2.png"]
    assert calls == ["image_0.png", "image_1.png", "image_2.png"]
    assert queue.items[2].status is BatchItemStatus.COMPLETE
    assert queue.items[3].status is BatchItemStatus.CANCELLED
    assert queue.items[4].status is BatchItemStatus.CANCELLED
    assert queue.is_cancelled


def test_cancel_queued_starts_no_work():
    calls = []
    observer = RecordingObserver()
    queue = BatchQueue(make_processor(calls=calls), validator=accept_all, observer=observer)
    queue.enqueue(names(3))
    queue.cancel_queued()

    assert asyncio.run(queue.run()) == []
    assert calls == []
    assert all(item.status is BatchItemStatus.CANCELLED for item in queue.items)
    assert observer.progress[0] == (3, 3)


def test_cancel_request_is_cleared_by_next_run():
    calls = []

    async def process(path):
        calls.append(path.name)
        if path.name == "a.png":
            queue.cancel()
        return path.name

    queue = BatchQueue(process, validator=accept_all)
    queue.enqueue([Path("a.png"), Path("b.png")])
    assert asyncio.run(queue.run()) == ["a.png"]
    assert queue.items[1].status is BatchItemStatus.CANCELLED

    queue.enqueue([Path("late.png")])
    results = asyncio.run(queue.run())

    assert calls == ["a.png", "late.png"]
    assert results == ["a.png", "late.png"]
    assert queue.items[1].status is BatchItemStatus.CANCELLED
    assert queue.items[2].status is BatchItemStatus.COMPLETE
    assert not queue.is_cancelled


def test_cancel_before_run_is_cleared():
    queue = BatchQueue(make_processor(), validator=accept_all)
    queue.enqueue(names(2))
    queue.cancel()

    assert asyncio.run(queue.run()) == ["image_0.png", "image_1.png"]


def test_terminal_items_are_not_reprocessed():
    calls = []
    queue = BatchQueue(make_processor({"image_1.png"}, calls=calls), validator=accept_all)
    queue.enqueue(names(2))
    asyncio.run(queue.run())

    queue.enqueue([Path("late.png")])
    results = asyncio.run(queue.run())

    assert calls == ["image_0.png", "image_1.png", "late.png"]
    assert results == ["image_0.png", "late.png"]
    assert queue.items[1].status is BatchItemStatus.ERROR


def test_concurrent_run_is_a_noop():
    calls = []
    queue = BatchQueue(make_processor(calls=calls), validator=accept_all)
    queue.enqueue(names(3))

    async def run_twice():
        return await asyncio.gather(queue.run(), queue.run())

    first, second = asyncio.run(run_twice())

    assert first == ["image_0.png", "image_1.png", "image_2.png"]
    assert second == []
    assert calls == ["image_0.png", "image_1.png", "image_2.png"]
    assert not queue.is_processing


def test_reset():
    queue = BatchQueue(make_processor(), validator=accept_all)
    queue.enqueue(names(2))
    queue.cancel()

    queue.reset()

    assert len(queue) == 0
    assert not queue.is_cancelled
    queue.enqueue(names(1))
    assert asyncio.run(queue.run()) == ["image_0.png"]


def test_reset_while_processing_raises():
    async def process(path):
        with pytest.raises(RuntimeError):
            queue.reset()
        return path.name

    queue = BatchQueue(process, validator=accept_all)
    queue.enqueue(names(1))
    assert asyncio.run(queue.run()) == ["image_0.png"]
