"""In-memory resource store built from a ``path -> bytes`` mapping."""

from __future__ import annotations

import errno
import os
import time
from typing import Dict, List, Mapping, Optional, Set

from models.resource import ResourceInfo
from .base import Resource, ResourceStore, take_entries


def _parent(path: str) -> str:
    head = path.rsplit("/", 1)[0]
    return head or "/"


def _basename(path: str) -> str:
    return path.rsplit("/", 1)[-1] or "/"


class MemoryResource(Resource):
    def __init__(self, store: "MemoryStore", path: str):
        super().__init__(path)
        self._store = store
        self._offset = 0

    @property
    def is_dir(self) -> bool:
        return self.path in self._store.dirs

    async def read(self) -> bytes:
        if self.is_dir:
            raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), self.path)
        return self._store.files[self.path]

    async def readdir(self, count: int = 0) -> List[ResourceInfo]:
        if not self.is_dir:
            raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), self.path)
        children = sorted(self._store.children.get(self.path, ()))
        entries = [self._store.info(child) for child in children]
        batch = take_entries(entries, self._offset, count)
        self._offset += len(batch)
        return batch

    def stat(self) -> ResourceInfo:
        return self._store.info(self.path)


class MemoryStore(ResourceStore):
    """Directories are implied by the file paths; ``/`` always exists."""

    def __init__(self, files: Optional[Mapping[str, bytes]] = None):
        self.files: Dict[str, bytes] = {}
        self.dirs: Set[str] = {"/"}
        self.children: Dict[str, Set[str]] = {}
        self.created = time.time()
        for path, data in (files or {}).items():
            self.add(path, data)

    def add(self, path: str, data: bytes) -> None:
        if not path.startswith("/") or path == "/":
            raise ValueError(f"Memory store paths must be absolute file paths: {path!r}")
        self.files[path] = data
        child = path
        while child != "/":
            parent = _parent(child)
            self.children.setdefault(parent, set()).add(child)
            if parent != "/":
                self.dirs.add(parent)
            child = parent

    def info(self, path: str) -> ResourceInfo:
        is_dir = path in self.dirs
        return ResourceInfo(
            name=_basename(path),
            size=0 if is_dir else len(self.files[path]),
            is_dir=is_dir,
            modified=self.created,
        )

    async def open(self, path: str) -> Resource:
        if path != "/" and path.endswith("/"):
            path = path[:-1]
        if path not in self.files and path not in self.dirs:
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)
        return MemoryResource(self, path)
