"""Storage of computed image hashes, in memory or as a JSON array file."""

from __future__ import annotations

import abc
import asyncio
import json
import os
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, NamedTuple, TextIO, TypeVar

T = TypeVar("T")

DEFAULT_ALGORITHM = "DCT"


class PersistenceError(Exception):
    """Raised when hash data cannot be stored."""


@dataclass(frozen=True)
class ProcessingMetadata:
    """Facts gathered while hashing one image."""

    file_size: int
    processing_time_ms: int
    image_dimensions: tuple[int, int]
    was_resized: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_size": self.file_size,
            "processing_time_ms": self.processing_time_ms,
            "image_dimensions": list(self.image_dimensions),
            "was_resized": self.was_resized,
        }


class HashRecord(NamedTuple):
    """One hashed file as handed to :meth:`HashPersistence.store_batch`."""

    file_path: str | os.PathLike[str]
    hash: str
    algorithm: str
    hash_bits: int
    metadata: ProcessingMetadata


@dataclass(frozen=True)
class HashEntry:
    """One image as written to a JSON hash file."""

    file_path: str
    hash: str
    hash_bits: int
    metadata: ProcessingMetadata

    @classmethod
    def _from_record(cls, record: HashRecord) -> HashEntry:
        return cls(
            file_path=os.fspath(record.file_path),
            hash=record.hash,
            hash_bits=record.hash_bits,
            metadata=record.metadata,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "hash": self.hash,
            "hash_bits": self.hash_bits,
            "metadata": self.metadata.to_dict(),
        }


def _as_records(records: Iterable[HashRecord | tuple]) -> list[HashRecord]:
    return [r if isinstance(r, HashRecord) else HashRecord(*r) for r in records]


def _indent_lines(text: str, prefix: str) -> str:
    return "\n".join(prefix + line for line in text.splitlines())


def _pretty_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


class HashPersistence(abc.ABC):
    """Destination for computed hashes."""

    @abc.abstractmethod
    async def store_hash(
        self,
        file_path: str | os.PathLike[str],
        hash_value: str,
        metadata: ProcessingMetadata,
    ) -> None:
        """Store the hash of a single file."""

    @abc.abstractmethod
    async def store_batch(self, records: Iterable[HashRecord]) -> None:
        """Store several hashed files at once."""

    @abc.abstractmethod
    async def set_scan_info(self, operation: str, info: Any) -> None:
        """Record the algorithm and parameters of the scan."""

    @abc.abstractmethod
    async def finalize(self) -> None:
        """Complete the output once all hashes are stored."""


class MemoryHashPersistence(HashPersistence):
    """Keeps hashes in a dictionary keyed by file path."""

    def __init__(self) -> None:
        self._storage: dict[str, tuple[str, str, int, ProcessingMetadata]] = {}
        self._finalized = False
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"MemoryHashPersistence(stored={self.stored_count()}, finalized={self.is_finalized()})"

    async def store_hash(
        self,
        file_path: str | os.PathLike[str],
        hash_value: str,
        metadata: ProcessingMetadata,
    ) -> None:
        with self._lock:
            self._storage[os.fspath(file_path)] = (hash_value, DEFAULT_ALGORITHM, 0, metadata)

    async def store_batch(self, records: Iterable[HashRecord]) -> None:
        batch = _as_records(records)
        with self._lock:
            for record in batch:
                self._storage[os.fspath(record.file_path)] = (
                    record.hash,
                    record.algorithm,
                    record.hash_bits,
                    record.metadata,
                )

    async def set_scan_info(self, operation: str, info: Any) -> None:
        return None

    async def finalize(self) -> None:
        with self._lock:
            self._finalized = True

    def get_stored_data(self) -> dict[str, tuple[str, ProcessingMetadata]]:
        """Return a copy mapping each path to its hash and metadata."""
        with self._lock:
            return {path: (h, meta) for path, (h, _alg, _bits, meta) in self._storage.items()}

    def with_stored_data(
        self,
        func: Callable[[Mapping[str, tuple[str, str, int, ProcessingMetadata]]], T],
    ) -> T:
        """Call ``func`` with a read-only view of everything stored."""
        with self._lock:
            return func(MappingProxyType(self._storage))

    def is_finalized(self) -> bool:
        with self._lock:
            return self._finalized

    def clear(self) -> None:
        """Forget all stored data and the finalized state."""
        with self._lock:
            self._storage.clear()
            self._finalized = False

    def contains_file(self, file_path: str | os.PathLike[str]) -> bool:
        with self._lock:
            return os.fspath(file_path) in self._storage

    def stored_count(self) -> int:
        with self._lock:
            return len(self._storage)


class JsonHashPersistence(HashPersistence):
    """Streams hashes into a file holding one JSON array of entries."""

    def __init__(self, file_path: str | os.PathLike[str]) -> None:
        self.file_path = os.fspath(file_path)
        self._writer: TextIO | None = None
        self._entries_written = 0
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"JsonHashPersistence({self.file_path!r})"

    def _open_writer(self) -> None:
        if self._writer is not None:
            return
        try:
            Path(self.file_path).parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Failed to create directory: {exc}") from exc
        try:
            writer = open(self.file_path, "w", encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Failed to create file: {exc}") from exc
        try:
            writer.write("[\n")
        except OSError as exc:
            writer.close()
            raise PersistenceError(f"Write error: {exc}") from exc
        self._writer = writer

    async def store_hash(
        self,
        file_path: str | os.PathLike[str],
        hash_value: str,
        metadata: ProcessingMetadata,
    ) -> None:
        await self.store_batch(
            [HashRecord(file_path, hash_value, DEFAULT_ALGORITHM, 0, metadata)]
        )

    async def store_batch(self, records: Iterable[HashRecord]) -> None:
        batch = _as_records(records)
        if not batch:
            return
        async with self._lock:
            self._open_writer()
            writer = self._writer
            assert writer is not None
            try:
                for record in batch:
                    text = _indent_lines(_pretty_json(HashEntry._from_record(record).to_dict()), "  ")
                    if self._entries_written > 0:
                        writer.write(",\n")
                    writer.write(text)
                    self._entries_written += 1
                writer.flush()
            except OSError as exc:
                raise PersistenceError(f"Write error: {exc}") from exc

    async def set_scan_info(self, operation: str, info: Any) -> None:
        return None

    async def finalize(self) -> None:
        async with self._lock:
            if self._writer is None:
                # Nothing stored since the last finalize: write an empty array.
                self._open_writer()
            writer, self._writer = self._writer, None
            assert writer is not None
            try:
                writer.write("\n]")
                writer.flush()
            except OSError as exc:
                raise PersistenceError(f"Write error: {exc}") from exc
            finally:
                writer.close()