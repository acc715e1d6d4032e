"""Settings that govern parallel processing of a scan."""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field


def _default_max_concurrent() -> int:
    return max(os.cpu_count() or 1, 1) * 2


@dataclass(frozen=True)
class DefaultProcessingConfig:
    """Concurrency, buffering and batching settings.

    The ``with_*`` methods return a changed copy and leave the original alone.
    """

    max_concurrent_tasks: int = field(default_factory=_default_max_concurrent)
    channel_buffer_size: int = 100
    batch_size: int = 50
    enable_progress_reporting: bool = True

    @classmethod
    def from_cpu_count(cls, cpu_count: int) -> DefaultProcessingConfig:
        """Build a configuration sized for ``cpu_count`` processors."""
        return cls(max_concurrent_tasks=max(cpu_count, 1) * 2)

    def with_max_concurrent(self, max_concurrent: int) -> DefaultProcessingConfig:
        return dataclasses.replace(self, max_concurrent_tasks=max_concurrent)

    def with_buffer_size(self, buffer_size: int) -> DefaultProcessingConfig:
        return dataclasses.replace(self, channel_buffer_size=buffer_size)

    def with_batch_size(self, batch_size: int) -> DefaultProcessingConfig:
        return dataclasses.replace(self, batch_size=batch_size)

    def with_progress_reporting(self, enable: bool) -> DefaultProcessingConfig:
        return dataclasses.replace(self, enable_progress_reporting=enable)