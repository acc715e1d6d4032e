# imgdedup

Asynchronous building blocks for a duplicate-image finder: listing files in a
storage backend, holding processing settings, reporting progress, writing
computed hashes to memory or JSON, and collecting per-file outcomes into
batched writes.

## Modules

- `imgdedup.storage` — `StorageItem` (id, name, size, is_directory,
  extension), the `StorageBackend` interface and `LocalStorageBackend`.
  `LocalStorageBackend.list_items` / `list_items_recursive` list a directory
  tree, descending into subdirectories; `read_item` returns a file's bytes;
  `exists` checks a path; `delete_item` removes a file and refuses
  directories. `StorageBackend.is_image_file` accepts non-directory items
  whose extension is jpg, jpeg, png, gif, bmp, tiff or webp, in any letter
  case. `path_to_storage_item` describes a single path. Failures raise
  `StorageError`.
- `imgdedup.config` — `DefaultProcessingConfig`, a frozen dataclass with
  `max_concurrent_tasks` (twice the CPU count by default),
  `channel_buffer_size` (100), `batch_size` (50) and
  `enable_progress_reporting` (True). `from_cpu_count` sizes concurrency for a
  given CPU count; the `with_*` methods return changed copies.
- `imgdedup.monitoring` — the `ProgressReporter` interface,
  `ConsoleProgressReporter` (prints start, progress every 100 files and at
  the end, errors to standard error, and completion; `quiet=True` prints
  nothing) and `NoOpProgressReporter`.
- `imgdedup.persistence` — `ProcessingMetadata`, `HashRecord`, `HashEntry`
  and the `HashPersistence` interface, with `MemoryHashPersistence` (a
  dictionary keyed by file path, with `get_stored_data`, `with_stored_data`,
  `is_finalized`, `clear`, `contains_file` and `stored_count`) and
  `JsonHashPersistence` (writes a JSON array of entries; `finalize` closes
  the array, or writes an empty one if nothing was stored). Write failures
  raise `PersistenceError`.
- `imgdedup.streaming` — `ScanInfo`, `ScanResult` and
  `StreamingJsonHashPersistence`, which buffers entries (100 by default) and
  writes a JSON object holding `scan_info` and an `images` array. Scan
  information must be set with `set_scan_info` before entries are written.
  `finalize` writes the remaining entries, closes the document and fills in
  `scan_info.total_files`; calling it again leaves an existing file as it is.
- `imgdedup.collector` — `ProcessingSuccess`, `ProcessingFailure`,
  `CollectorResult`, `collect_results` and `spawn_result_collector`. Outcomes
  are read from an `asyncio.Queue` (ended by putting `None`) or from an async
  iterable; successes are stored in batches of `batch_size`, failures are
  passed to the reporter, progress is reported after every outcome, and the
  counts come back as a `CollectorResult`. `spawn_result_collector` runs the
  same work as an `asyncio.Task`.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
import asyncio

from imgdedup.collector import ProcessingFailure, ProcessingSuccess, collect_results
from imgdedup.monitoring import NoOpProgressReporter
from imgdedup.persistence import ProcessingMetadata
from imgdedup.storage import LocalStorageBackend
from imgdedup.streaming import StreamingJsonHashPersistence


async def main():
    backend = LocalStorageBackend()
    items = await backend.list_items("photos")
    images = [item for item in items if backend.is_image_file(item)]

    persistence = StreamingJsonHashPersistence("hashes.json")
    await persistence.set_scan_info("DCT", {"size": 8})

    queue = asyncio.Queue()
    for item in images:
        metadata = ProcessingMetadata(
            file_size=item.size,
            processing_time_ms=0,
            image_dimensions=(0, 0),
            was_resized=False,
        )
        await queue.put(ProcessingSuccess(item.id, "0000000000000000", "DCT", 0, metadata))
    await queue.put(ProcessingFailure("photos/broken.png", "could not decode"))
    await queue.put(None)

    result = await collect_results(
        queue, len(images) + 1, NoOpProgressReporter(), persistence, batch_size=50
    )
    await persistence.finalize()
    print(result.processed_count, result.error_count)


asyncio.run(main())
```

## What the package does not do

It does not decode images or compute perceptual hashes; the hash strings and
metadata are supplied by the caller. It does not group hashes into
duplicates, move or delete duplicates on its own, or provide a command-line
program.