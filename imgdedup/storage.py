"""Storage backends that enumerate, read and delete stored items."""

from __future__ import annotations

import abc
import asyncio
import os
import stat
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "bmp", "tiff", "webp"})


class StorageError(Exception):
    """Raised when a storage operation fails."""


@dataclass(frozen=True)
class StorageItem:
    """One entry in a storage backend."""

    id: str
    name: str
    size: int
    is_directory: bool
    extension: str | None = None


def _extension_of(name: str) -> str | None:
    head, sep, tail = name.rpartition(".")
    if not sep or not head:
        return None
    return tail


def path_to_storage_item(path: str | os.PathLike[str]) -> StorageItem:
    """Describe the file or directory at ``path`` as a :class:`StorageItem`."""
    path_str = os.fspath(path)
    try:
        info = os.stat(path_str)
    except OSError as exc:
        raise StorageError(f"Failed to get metadata for: {path_str}") from exc

    name = Path(path_str).name
    if not name or name == "..":
        raise StorageError(f"Invalid UTF-8 filename: {path_str}")
    try:
        name.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise StorageError(f"Invalid UTF-8 filename: {path_str}") from exc

    is_directory = stat.S_ISDIR(info.st_mode)
    extension = _extension_of(name) if stat.S_ISREG(info.st_mode) else None

    return StorageItem(
        id=path_str,
        name=name,
        size=info.st_size,
        is_directory=is_directory,
        extension=extension,
    )


class StorageBackend(abc.ABC):
    """Interface for places that hold items to be scanned."""

    @abc.abstractmethod
    async def list_items(self, prefix: str) -> list[StorageItem]:
        """List the items under ``prefix``."""

    @abc.abstractmethod
    async def read_item(self, item_id: str) -> bytes:
        """Return the contents of the item."""

    @abc.abstractmethod
    async def exists(self, item_id: str) -> bool:
        """Tell whether the item exists."""

    @abc.abstractmethod
    async def delete_item(self, item_id: str) -> None:
        """Remove the item."""

    def is_image_file(self, item: StorageItem) -> bool:
        """Tell whether ``item`` is a file with a known image extension."""
        if item.is_directory or item.extension is None:
            return False
        return item.extension.lower() in IMAGE_EXTENSIONS


class LocalStorageBackend(StorageBackend):
    """Storage backend over the local file system."""

    def __repr__(self) -> str:
        return "LocalStorageBackend()"

    async def list_items(self, prefix: str) -> list[StorageItem]:
        return await self.list_items_recursive(prefix)

    async def list_items_recursive(self, prefix: str) -> list[StorageItem]:
        """List every item below ``prefix``, descending into subdirectories."""
        return await asyncio.to_thread(lambda: list(self._walk(os.fspath(prefix))))

    def _walk(self, directory: str) -> Iterator[StorageItem]:
        try:
            with os.scandir(directory) as entries:
                paths = [entry.path for entry in entries]
        except OSError as exc:
            raise StorageError(f"Failed to read directory: {directory}") from exc

        for entry_path in paths:
            try:
                item = path_to_storage_item(entry_path)
            except StorageError:
                continue
            yield item
            if item.is_directory:
                yield from self._walk(entry_path)

    async def read_item(self, item_id: str) -> bytes:
        try:
            return await asyncio.to_thread(Path(item_id).read_bytes)
        except OSError as exc:
            raise StorageError(f"Failed to read file: {item_id}") from exc

    async def exists(self, item_id: str) -> bool:
        return os.path.exists(item_id)

    async def delete_item(self, item_id: str) -> None:
        if not os.path.isfile(item_id):
            raise StorageError("Cannot delete directory using delete_item")
        try:
            await asyncio.to_thread(os.remove, item_id)
        except OSError as exc:
            raise StorageError(f"Failed to delete file: {item_id}") from exc