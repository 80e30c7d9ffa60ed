"""Pytest configuration: asyncio tests without external plugins, plus store fixtures."""

from __future__ import annotations

import asyncio
import inspect
from pathlib import Path

import pytest

from stores import LocalDirStore, MemoryStore

SITE_FILES = {
    "/index.html": b"<html>home</html>",
    "/css/app.css": b"body {}",
    "/css/unused.css": b"p {}",
    "/js/app.js": b"console.log(1);",
    "/img/logo.png": b"\x89PNG",
}


@pytest.hookimpl(tryfirst=True)
def pytest_configure(config: pytest.Config) -> None:
    """Register the custom ``asyncio`` marker used throughout the test suite."""

    config.addinivalue_line(
        "markers",
        "asyncio: mark a test as running inside an asyncio event loop",
    )


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute ``async def`` tests by driving them with a fresh event loop."""

    test_function = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_function):
        return None

    argnames = pyfuncitem._fixtureinfo.argnames
    kwargs = {name: pyfuncitem.funcargs[name] for name in argnames}
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        loop.run_until_complete(test_function(**kwargs))
        loop.run_until_complete(loop.shutdown_asyncgens())
    finally:
        asyncio.set_event_loop(None)
        loop.close()
    return True


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore(SITE_FILES)


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    root = tmp_path / "site"
    for rel, data in SITE_FILES.items():
        target = root / rel.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    return root


@pytest.fixture
def local_store(site_dir: Path) -> LocalDirStore:
    return LocalDirStore(site_dir)
