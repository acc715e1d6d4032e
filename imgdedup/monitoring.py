"""Progress reporting for long-running scans."""

from __future__ import annotations

import abc
import os
import sys
from dataclasses import dataclass


class ProgressReporter(abc.ABC):
    """Receives notifications about the state of a scan."""

    @abc.abstractmethod
    async def report_started(self, total_files: int) -> None:
        """Announce that processing of ``total_files`` files has begun."""

    @abc.abstractmethod
    async def report_progress(self, completed: int, total: int) -> None:
        """Announce that ``completed`` of ``total`` files are done."""

    @abc.abstractmethod
    async def report_error(self, file_path: str | os.PathLike[str], error: str) -> None:
        """Announce that processing ``file_path`` failed."""

    @abc.abstractmethod
    async def report_completed(self, total_processed: int, total_errors: int) -> None:
        """Announce the end of processing."""


@dataclass(frozen=True)
class ConsoleProgressReporter(ProgressReporter):
    """Writes progress to standard output and errors to standard error.

    With ``quiet`` set nothing is written at all.
    """

    quiet: bool = False

    async def report_started(self, total_files: int) -> None:
        if not self.quiet:
            print(f"🚀 Starting processing {total_files} files...")

    async def report_progress(self, completed: int, total: int) -> None:
        if self.quiet:
            return
        if completed % 100 == 0 or completed == total:
            percentage = completed / total * 100.0 if total else float("nan")
            print(f"📊 Progress: {completed}/{total} ({percentage:.1f}%)")

    async def report_error(self, file_path: str | os.PathLike[str], error: str) -> None:
        if not self.quiet:
            print(f"❌ Error processing {os.fspath(file_path)}: {error}", file=sys.stderr)

    async def report_completed(self, total_processed: int, total_errors: int) -> None:
        if not self.quiet:
            print(f"✅ Completed! Processed: {total_processed}, Errors: {total_errors}")


@dataclass(frozen=True)
class NoOpProgressReporter(ProgressReporter):
    """Discards every notification."""

    async def report_started(self, total_files: int) -> None:
        return None

    async def report_progress(self, completed: int, total: int) -> None:
        return None

    async def report_error(self, file_path: str | os.PathLike[str], error: str) -> None:
        return None

    async def report_completed(self, total_processed: int, total_errors: int) -> None:
        return None