import asyncio
import os
from typing import Any

import pytest

from imgdedup.collector import (
    CollectorResult,
    ProcessingFailure,
    ProcessingSuccess,
    collect_results,
    spawn_result_collector,
)
from imgdedup.monitoring import NoOpProgressReporter, ProgressReporter
from imgdedup.persistence import (
    HashPersistence,
    MemoryHashPersistence,
    ProcessingMetadata,
)

METADATA = ProcessingMetadata(
    file_size=1024,
    processing_time_ms=100,
    image_dimensions=(512, 512),
    was_resized=False,
)


def _success(path, hash_value, bits=0):
    return ProcessingSuccess(
        file_path=path,
        hash=hash_value,
        algorithm="DCT",
        hash_bits=bits,
        metadata=METADATA,
    )


class RecordingReporter(ProgressReporter):
    def __init__(self):
        self.errors = []
        self.progress = []

    async def report_started(self, total_files):
        pass

    async def report_progress(self, completed, total):
        self.progress.append((completed, total))

    async def report_error(self, file_path, error):
        self.errors.append((os.fspath(file_path), error))

    async def report_completed(self, total_processed, total_errors):
        pass


class RecordingPersistence(HashPersistence):
    def __init__(self, fail=False):
        self.batches = []
        self.fail = fail

    async def store_hash(self, file_path, hash_value, metadata):
        self.batches.append([(file_path, hash_value)])

    async def store_batch(self, records):
        if self.fail:
            raise RuntimeError("storage unavailable")
        self.batches.append([os.fspath(r.file_path) for r in records])

    async def set_scan_info(self, operation, info: Any):
        pass

    async def finalize(self):
        pass


async def _feed(queue, outcomes):
    for outcome in outcomes:
        await queue.put(outcome)
    await queue.put(None)


@pytest.mark.asyncio
async def test_result_collector_processes_success_results():
    queue = asyncio.Queue(maxsize=10)
    persistence = MemoryHashPersistence()
    task = spawn_result_collector(queue, 3, NoOpProgressReporter(), persistence, 2)

    await _feed(queue, [_success(f"/test{i}.jpg", f"hash{i}", i) for i in range(3)])
    result = await task

    assert result == CollectorResult(processed_count=3, error_count=0)
    stored = persistence.get_stored_data()
    assert len(stored) == 3
    assert "/test0.jpg" in stored
    assert "/test1.jpg" in stored
    assert "/test2.jpg" in stored
    assert stored["/test1.jpg"] == ("hash1", METADATA)


@pytest.mark.asyncio
async def test_result_collector_processes_mixed_results():
    queue = asyncio.Queue(maxsize=10)
    persistence = MemoryHashPersistence()
    task = spawn_result_collector(queue, 4, NoOpProgressReporter(), persistence, 10)

    await _feed(
        queue,
        [
            _success("/success1.jpg", "hash1", 1),
            _success("/success2.jpg", "hash2", 2),
            ProcessingFailure(file_path="/error1.jpg", error="load failed"),
            ProcessingFailure(file_path="/error2.jpg", error="invalid format"),
        ],
    )
    result = await task

    assert result.processed_count == 2
    assert result.error_count == 2
    stored = persistence.get_stored_data()
    assert len(stored) == 2
    assert "/success1.jpg" in stored
    assert "/success2.jpg" in stored


@pytest.mark.asyncio
async def test_result_collector_batching():
    queue = asyncio.Queue(maxsize=10)
    persistence = MemoryHashPersistence()
    task = spawn_result_collector(queue, 5, NoOpProgressReporter(), persistence, 2)

    await _feed(queue, [_success(f"/test{i}.jpg", f"hash{i}", i) for i in range(5)])
    result = await task

    assert result.processed_count == 5
    assert result.error_count == 0
    assert persistence.stored_count() == 5


@pytest.mark.asyncio
async def test_batches_split_by_batch_size():
    queue = asyncio.Queue()
    persistence = RecordingPersistence()
    task = spawn_result_collector(queue, 5, NoOpProgressReporter(), persistence, 2)

    await _feed(queue, [_success(f"/test{i}.jpg", f"hash{i}") for i in range(5)])
    await task

    assert [len(batch) for batch in persistence.batches] == [2, 2, 1]
    assert persistence.batches[0] == ["/test0.jpg", "/test1.jpg"]
    assert persistence.batches[2] == ["/test4.jpg"]


@pytest.mark.asyncio
async def test_reporter_receives_errors_and_progress():
    reporter = RecordingReporter()
    persistence = MemoryHashPersistence()
    queue = asyncio.Queue()
    await _feed(
        queue,
        [
            _success("/a.png", "aa"),
            ProcessingFailure(file_path="/b.png", error="broken"),
            _success("/c.png", "cc"),
        ],
    )

    result = await collect_results(queue, 3, reporter, persistence, 10)

    assert result == CollectorResult(processed_count=2, error_count=1)
    assert reporter.errors == [("/b.png", "broken")]
    assert reporter.progress == [(1, 3), (2, 3), (3, 3)]


@pytest.mark.asyncio
async def test_empty_stream_stores_nothing():
    queue = asyncio.Queue()
    await queue.put(None)
    persistence = RecordingPersistence()

    result = await collect_results(queue, 0, NoOpProgressReporter(), persistence, 5)

    assert result == CollectorResult(processed_count=0, error_count=0)
    assert persistence.batches == []


@pytest.mark.asyncio
async def test_persistence_error_propagates():
    queue = asyncio.Queue()
    await _feed(queue, [_success("/x.jpg", "hash")])
    persistence = RecordingPersistence(fail=True)

    with pytest.raises(RuntimeError, match="storage unavailable"):
        await collect_results(queue, 1, NoOpProgressReporter(), persistence, 1)


@pytest.mark.asyncio
async def test_unexpected_outcome_raises_type_error():
    queue = asyncio.Queue()
    await _feed(queue, ["not an outcome"])

    with pytest.raises(TypeError):
        await collect_results(
            queue, 1, NoOpProgressReporter(), MemoryHashPersistence(), 1
        )