# filterdir/stores/local.py
# Purpose: Resource store backed by a directory on the local filesystem.
from __future__ import annotations

import errno
import os
from pathlib import Path
from typing import List, Optional

from models.resource import ResourceInfo
from .base import Resource, ResourceStore, take_entries


def _info(path: Path, name: str) -> ResourceInfo:
    try:
        st = path.stat()
    except OSError:
        # Dangling symlink: describe the link itself.
        st = path.lstat()
    is_dir = path.is_dir()
    return ResourceInfo(
        name=name,
        size=0 if is_dir else st.st_size,
        is_dir=is_dir,
        modified=st.st_mtime,
    )


class LocalResource(Resource):
    def __init__(self, path: str, target: Path):
        super().__init__(path)
        self.target = target
        self._entries: Optional[List[ResourceInfo]] = None
        self._offset = 0

    async def read(self) -> bytes:
        if self.target.is_dir():
            raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), self.path)
        return self.target.read_bytes()

    async def readdir(self, count: int = 0) -> List[ResourceInfo]:
        if not self.target.is_dir():
            raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), self.path)
        if self._entries is None:
            children = sorted(self.target.iterdir(), key=lambda p: p.name)
            self._entries = [_info(child, child.name) for child in children]
        batch = take_entries(self._entries, self._offset, count)
        self._offset += len(batch)
        return batch

    def stat(self) -> ResourceInfo:
        name = self.target.name if self.path != "/" else "/"
        return _info(self.target, name)


class LocalDirStore(ResourceStore):
    """Serves the tree rooted at ``root``; paths are absolute from that root."""

    def __init__(self, root: str | Path):
        self.root = Path(root).expanduser().resolve()

    def _resolve(self, path: str) -> Path:
        parts = [p for p in path.split("/") if p not in ("", ".")]
        if "\x00" in path or any(p == ".." for p in parts):
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)
        return self.root.joinpath(*parts)

    async def open(self, path: str) -> Resource:
        target = self._resolve(path)
        if not target.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)
        return LocalResource(path, target)
