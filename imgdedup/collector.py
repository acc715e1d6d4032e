"""Gathering of per-file processing outcomes into batched persistence."""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from typing import Union

from imgdedup.monitoring import ProgressReporter
from imgdedup.persistence import HashPersistence, HashRecord, ProcessingMetadata


@dataclass(frozen=True)
class ProcessingSuccess:
    """A file that was hashed successfully."""

    file_path: str | os.PathLike[str]
    hash: str
    algorithm: str
    hash_bits: int
    metadata: ProcessingMetadata

    def _record(self) -> HashRecord:
        return HashRecord(
            self.file_path, self.hash, self.algorithm, self.hash_bits, self.metadata
        )


@dataclass(frozen=True)
class ProcessingFailure:
    """A file whose processing failed."""

    file_path: str | os.PathLike[str]
    error: str


ProcessingOutcome = Union[ProcessingSuccess, ProcessingFailure]


@dataclass(frozen=True)
class CollectorResult:
    """How many files were stored and how many failed."""

    processed_count: int
    error_count: int


async def _outcomes(
    source: asyncio.Queue[ProcessingOutcome | None] | AsyncIterable[ProcessingOutcome],
) -> AsyncIterator[ProcessingOutcome]:
    if isinstance(source, asyncio.Queue):
        while True:
            item = await source.get()
            source.task_done()
            if item is None:
                return
            yield item
    else:
        async for item in source:
            yield item


async def collect_results(
    result_queue: asyncio.Queue[ProcessingOutcome | None] | AsyncIterable[ProcessingOutcome],
    total_files: int,
    reporter: ProgressReporter,
    persistence: HashPersistence,
    batch_size: int,
) -> CollectorResult:
    """Consume outcomes until the stream ends, storing successes in batches.

    A queue signals its end with ``None``; an async iterable ends when it is
    exhausted. Failures go to ``reporter``, and progress is reported after
    every outcome. Errors raised by ``persistence`` propagate.
    """
    batch: list[HashRecord] = []
    completed = 0
    errors = 0

    async for outcome in _outcomes(result_queue):
        if isinstance(outcome, ProcessingSuccess):
            batch.append(outcome._record())
            completed += 1
            if len(batch) >= batch_size:
                await persistence.store_batch(batch)
                batch = []
        elif isinstance(outcome, ProcessingFailure):
            await reporter.report_error(outcome.file_path, outcome.error)
            errors += 1
        else:
            raise TypeError(f"Unexpected processing outcome: {outcome!r}")

        await reporter.report_progress(completed + errors, total_files)

    if batch:
        await persistence.store_batch(batch)

    return CollectorResult(processed_count=completed, error_count=errors)


def spawn_result_collector(
    result_queue: asyncio.Queue[ProcessingOutcome | None] | AsyncIterable[ProcessingOutcome],
    total_files: int,
    reporter: ProgressReporter,
    persistence: HashPersistence,
    batch_size: int,
) -> asyncio.Task[CollectorResult]:
    """Run :func:`collect_results` as a task on the running event loop."""
    return asyncio.create_task(
        collect_results(result_queue, total_files, reporter, persistence, batch_size)
    )