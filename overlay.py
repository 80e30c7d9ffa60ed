"""Filtering overlay over a resource store.

Two overlays share the store contract and are picked once by
:func:`build_overlay`:

* :class:`DiscoveryOverlay` passes every open through to the store and
  reports each successfully opened path to an :class:`AccessRecorder`.
* :class:`FilterOverlay` only lets through paths in its inclusion set, the
  include list closed under "every ancestor directory, plus the root".
  Directory listings of included directories are filtered the same way.
"""

from __future__ import annotations

import errno
import logging
import os
import threading
from typing import FrozenSet, Iterable, List, Optional, Sequence

from models.mode import Mode
from models.resource import ResourceInfo
from runtime.recorder import AccessRecorder
from stores.base import Resource, ResourceStore

logger = logging.getLogger(__name__)

ROOT = "/"


def normalize_path(path: str) -> str:
    """Strip a single trailing separator; the root is left alone."""
    if len(path) > 1 and path.endswith("/"):
        return path[:-1]
    return path


def build_inclusion_set(include_list: Iterable[str]) -> FrozenSet[str]:
    """Return ``include_list`` plus every ancestor directory and the root."""
    included = {ROOT}
    for raw in include_list:
        path = normalize_path(raw)
        included.add(path)
        parts = path.split("/")
        for i in range(2, len(parts)):
            included.add("/".join(parts[:i]))
    return frozenset(included)


def child_path(parent: str, name: str) -> str:
    parent = normalize_path(parent)
    if parent == ROOT:
        return ROOT + name
    return f"{parent}/{name}"


class ResourceOverlay(ResourceStore):
    mode: Mode

    def __init__(self, store: ResourceStore):
        self.store = store


class DiscoveryOverlay(ResourceOverlay):
    mode = Mode.DISCOVERY

    def __init__(self, store: ResourceStore, recorder: AccessRecorder):
        super().__init__(store)
        self.recorder = recorder

    async def open(self, path: str) -> Resource:
        resource = await self.store.open(path)
        self.recorder.record(normalize_path(path))
        return resource


class FilterOverlay(ResourceOverlay):
    mode = Mode.FILTER

    def __init__(self, store: ResourceStore, include_list: Sequence[str] = ()):
        super().__init__(store)
        self.include_list: List[str] = list(include_list)
        self._included: Optional[FrozenSet[str]] = None
        self._build_lock = threading.Lock()

    @property
    def inclusion_set(self) -> FrozenSet[str]:
        """The inclusion set, built on first use and reused afterwards."""
        if self._included is None:
            with self._build_lock:
                if self._included is None:
                    self._included = build_inclusion_set(self.include_list)
                    logger.debug(
                        "Built inclusion set: %d paths from %d entries",
                        len(self._included),
                        len(self.include_list),
                    )
        return self._included

    async def open(self, path: str) -> Resource:
        path = normalize_path(path)
        included = self.inclusion_set
        if path not in included:
            logger.debug("Filtered out %s", path)
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)
        resource = await self.store.open(path)
        return FilteredResource(resource, path, included)


class FilteredResource(Resource):
    """Wraps a store resource so its listing only shows included entries."""

    def __init__(self, inner: Resource, path: str, included: FrozenSet[str]):
        super().__init__(normalize_path(path))
        self.inner = inner
        self.included = included

    async def read(self) -> bytes:
        return await self.inner.read()

    async def readdir(self, count: int = 0) -> List[ResourceInfo]:
        # End-of-listing and store errors propagate as raised by the store.
        entries = await self.inner.readdir(count)
        return [e for e in entries if child_path(self.path, e.name) in self.included]

    def stat(self) -> ResourceInfo:
        return self.inner.stat()

    def close(self) -> None:
        self.inner.close()


def build_overlay(
    store: ResourceStore,
    mode: Mode | str,
    *,
    recorder: Optional[AccessRecorder] = None,
    include_list: Sequence[str] = (),
) -> ResourceOverlay:
    mode = Mode(mode)
    if mode is Mode.DISCOVERY:
        if recorder is None:
            raise ValueError("Discovery mode needs an AccessRecorder")
        return DiscoveryOverlay(store, recorder)
    return FilterOverlay(store, include_list)
