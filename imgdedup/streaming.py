"""Buffered JSON output of hashes together with information about the scan."""

from __future__ import annotations

import asyncio
import json
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TextIO

from imgdedup.persistence import (
    DEFAULT_ALGORITHM,
    HashEntry,
    HashPersistence,
    HashRecord,
    PersistenceError,
    ProcessingMetadata,
)

DEFAULT_BUFFER_SIZE = 100


@dataclass(frozen=True)
class ScanInfo:
    """The algorithm and parameters a scan was run with."""

    algorithm: str
    parameters: Any
    timestamp: str
    total_files: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "algorithm": self.algorithm,
            "parameters": self.parameters,
            "timestamp": self.timestamp,
            "total_files": self.total_files,
        }


@dataclass(frozen=True)
class ScanResult:
    """The whole document written by :class:`StreamingJsonHashPersistence`."""

    scan_info: ScanInfo
    images: list[HashEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scan_info": self.scan_info.to_dict(),
            "images": [entry.to_dict() for entry in self.images],
        }


def _pretty_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def _indent_continuation(text: str, prefix: str) -> str:
    """Prefix every line except the first."""
    return ("\n" + prefix).join(text.splitlines())


def _indent_all(text: str, prefix: str) -> str:
    return "\n".join(prefix + line for line in text.splitlines())


def _as_records(records: Iterable[HashRecord | tuple]) -> list[HashRecord]:
    return [r if isinstance(r, HashRecord) else HashRecord(*r) for r in records]


class StreamingJsonHashPersistence(HashPersistence):
    """Writes a ``{"scan_info": ..., "images": [...]}`` document in buffered chunks.

    Entries are held in memory until ``buffer_size`` of them have gathered,
    then appended to the file. :meth:`finalize` writes what is left, closes the
    document and records the number of images in ``scan_info.total_files``.
    """

    def __init__(
        self,
        file_path: str | os.PathLike[str],
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        self.file_path = os.fspath(file_path)
        self.buffer_size = buffer_size
        self._writer: TextIO | None = None
        self._entries_written = 0
        self._buffer: list[HashRecord] = []
        self._scan_info: ScanInfo | None = None
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return (
            f"StreamingJsonHashPersistence({self.file_path!r}, "
            f"buffer_size={self.buffer_size})"
        )

    async def set_scan_info(self, operation: str, info: Any) -> None:
        async with self._lock:
            self._scan_info = ScanInfo(
                algorithm=operation,
                parameters=info,
                timestamp=datetime.now(timezone.utc).isoformat(),
                total_files=0,
            )

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
            self._buffer.extend(batch)
            if len(self._buffer) >= self.buffer_size:
                self._flush_buffer()

    async def finalize(self) -> None:
        async with self._lock:
            self._flush_buffer()
            if self._writer is not None:
                writer, self._writer = self._writer, None
                try:
                    writer.write("\n  ]")
                    writer.write("\n}")
                    writer.flush()
                except OSError as exc:
                    raise PersistenceError(f"Write error: {exc}") from exc
                finally:
                    writer.close()
                self._update_total_files(self._entries_written)
            elif not os.path.exists(self.file_path):
                self._write_empty_document()

    def _open_writer(self) -> TextIO:
        if self._writer is not None:
            return self._writer
        try:
            Path(self.file_path).parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Failed to create directory: {exc}") from exc
        try:
            writer = open(self.file_path, "w", encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Failed to create file: {exc}") from exc
        try:
            writer.write("{\n")
        except OSError as exc:
            writer.close()
            raise PersistenceError(f"Write error: {exc}") from exc
        self._writer = writer
        return writer

    def _scan_info_text(self) -> str:
        assert self._scan_info is not None
        return _indent_continuation(_pretty_json(self._scan_info.to_dict()), "  ")

    def _flush_buffer(self) -> None:
        if not self._buffer:
            return
        writer = self._open_writer()
        try:
            if self._entries_written == 0:
                if self._scan_info is None:
                    raise PersistenceError("scan_info has not been set")
                writer.write('  "scan_info": ')
                writer.write(self._scan_info_text())
                writer.write(',\n  "images": [\n')

            pending, self._buffer = self._buffer, []
            for record in pending:
                if self._entries_written > 0:
                    writer.write(",\n")
                entry = HashEntry(
                    file_path=os.fspath(record.file_path),
                    hash=record.hash,
                    hash_bits=record.hash_bits,
                    metadata=record.metadata,
                )
                writer.write(_indent_all(_pretty_json(entry.to_dict()), "    "))
                self._entries_written += 1
            writer.flush()
        except OSError as exc:
            raise PersistenceError(f"Write error: {exc}") from exc

    def _write_empty_document(self) -> None:
        writer = self._open_writer()
        self._writer = None
        try:
            if self._scan_info is not None:
                writer.write('  "scan_info": ')
                writer.write(self._scan_info_text())
                writer.write(',\n  "images": []\n}')
            else:
                writer.write('  "scan_info": null,\n  "images": []\n}')
            writer.flush()
        except OSError as exc:
            raise PersistenceError(f"Write error: {exc}") from exc
        finally:
            writer.close()

    def _update_total_files(self, total: int) -> None:
        path = Path(self.file_path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Failed to read file: {exc}") from exc
        try:
            document = json.loads(content)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Failed to parse JSON: {exc}") from exc

        scan_info = document.get("scan_info") if isinstance(document, dict) else None
        if isinstance(scan_info, dict):
            scan_info["total_files"] = total

        updated = json.dumps(document, indent=2, ensure_ascii=False, sort_keys=True)
        try:
            path.write_text(updated, encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Failed to write file: {exc}") from exc