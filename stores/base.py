from __future__ import annotations

import abc
from typing import List

from models.resource import ResourceInfo


class Resource(abc.ABC):
    """An opened node of a store: a file to read or a directory to list."""

    def __init__(self, path: str):
        self.path = path

    @abc.abstractmethod
    async def read(self) -> bytes:
        """Return the whole content of a file resource."""
        raise NotImplementedError

    @abc.abstractmethod
    async def readdir(self, count: int = 0) -> List[ResourceInfo]:
        """List directory entries.

        ``count <= 0`` returns every remaining entry and never signals the
        end of the listing. ``count > 0`` returns at most ``count`` entries
        and raises ``EOFError`` once nothing is left.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def stat(self) -> ResourceInfo:
        raise NotImplementedError

    def close(self) -> None:
        return None

    def __enter__(self) -> "Resource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ResourceStore(abc.ABC):
    @abc.abstractmethod
    async def open(self, path: str) -> Resource:
        """Open ``path``; raise ``FileNotFoundError`` when it does not exist."""
        raise NotImplementedError


def take_entries(entries: List[ResourceInfo], offset: int, count: int) -> List[ResourceInfo]:
    """Slice the next batch of a listing following the readdir contract."""
    remaining = entries[offset:]
    if count <= 0:
        return remaining
    if not remaining:
        raise EOFError("end of directory listing")
    return remaining[:count]
