# filterdir/stores/__init__.py
# Purpose: Store factory for the resource backends (local directory, in-memory).
from __future__ import annotations
from typing import Any
from .base import Resource, ResourceStore
from .local import LocalDirStore
from .memory import MemoryStore

__all__ = ["LocalDirStore", "MemoryStore", "Resource", "ResourceStore", "get_store"]

def get_store(kind: str, **kwargs: Any) -> ResourceStore:
    kind = (kind or "").lower()
    if kind in ("local", "dir"):
        return LocalDirStore(kwargs["root"])
    if kind == "memory":
        return MemoryStore(kwargs.get("files"))
    raise ValueError(f"Unknown store: {kind}")
