import errno
import os
import socket

import aiohttp
import pytest

from overlay import DiscoveryOverlay, FilterOverlay
from runtime.recorder import AccessRecorder
from server.web import AssetServer
from stores.base import Resource, ResourceStore


def _unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.mark.asyncio
async def test_discovery_server_records_and_exposes_api(local_store):
    recorder = AccessRecorder()
    port = _unused_port()
    server = AssetServer(DiscoveryOverlay(local_store, recorder), recorder=recorder, port=port)
    await server.start()
    base = f"http://127.0.0.1:{port}"

    try:
        async with aiohttp.ClientSession() as session:
            resp = await session.get(f"{base}/css/app.css")
            assert resp.status == 200
            assert resp.content_type == "text/css"
            assert await resp.read() == b"body {}"

            resp = await session.get(f"{base}/")
            assert resp.status == 200
            assert await resp.text() == "<html>home</html>"

            missing = await session.get(f"{base}/nope.js")
            assert missing.status == 404

            data = await (await session.get(f"{base}/_filterdir/api/list")).json()
            assert data["files"] == ["/", "/css/app.css", "/index.html"]

            changed = await (await session.get(f"{base}/_filterdir/api/changed")).json()
            assert changed == {"changed": True}
            changed = await (await session.get(f"{base}/_filterdir/api/changed")).json()
            assert changed == {"changed": False}

            export = await (await session.get(f"{base}/_filterdir/api/export")).json()
            assert export["files"] == data["files"]
            assert export["options"]["variable_name"] == "assets"
            assert export["generator"]["filename"] == "assets_vfsdata.py"

            resp = await session.post(f"{base}/_filterdir/api/clear")
            assert (await resp.json()) == {"status": "ok"}
            data = await (await session.get(f"{base}/_filterdir/api/list")).json()
            assert data["files"] == []
    finally:
        await server.stop()
        await recorder.stop()


@pytest.mark.asyncio
async def test_filter_server_hides_and_lists_only_included(local_store):
    overlay = FilterOverlay(local_store, ["/css/app.css", "/js/app.js"])
    port = _unused_port()
    server = AssetServer(overlay, port=port)
    await server.start()
    base = f"http://127.0.0.1:{port}"

    try:
        async with aiohttp.ClientSession() as session:
            resp = await session.get(f"{base}/js/app.js")
            assert resp.status == 200

            for hidden in ("/img/logo.png", "/css/unused.css", "/index.html"):
                resp = await session.get(f"{base}{hidden}")
                assert resp.status == 404, hidden

            # index.html is filtered out, so the root falls back to a listing.
            listing = await (await session.get(f"{base}/")).json()
            assert listing["path"] == "/"
            assert [e["name"] for e in listing["entries"]] == ["css", "js"]

            listing = await (await session.get(f"{base}/css/")).json()
            assert [e["name"] for e in listing["entries"]] == ["app.css"]

            # No recorder attached: the API prefix is just another hidden path.
            resp = await session.get(f"{base}/_filterdir/api/list")
            assert resp.status == 404
    finally:
        await server.stop()


@pytest.mark.asyncio
async def test_filtered_listing_survives_dangling_symlink(local_store, site_dir):
    (site_dir / "css" / "dangling.css").symlink_to(site_dir / "css" / "gone.css")
    overlay = FilterOverlay(local_store, ["/css/app.css"])
    port = _unused_port()
    server = AssetServer(overlay, port=port)
    await server.start()

    try:
        async with aiohttp.ClientSession() as session:
            resp = await session.get(f"http://127.0.0.1:{port}/css/")
            assert resp.status == 200
            listing = await resp.json()
            assert [e["name"] for e in listing["entries"]] == ["app.css"]
    finally:
        await server.stop()


class LockedStore(ResourceStore):
    """Store whose every open fails with a permission error."""

    def __init__(self):
        self.opened = []

    async def open(self, path: str) -> Resource:
        self.opened.append(path)
        raise PermissionError(errno.EACCES, os.strerror(errno.EACCES), path)


@pytest.mark.asyncio
async def test_store_permission_errors_become_403():
    recorder = AccessRecorder()
    port = _unused_port()
    server = AssetServer(DiscoveryOverlay(LockedStore(), recorder), recorder=recorder, port=port)
    await server.start()
    base = f"http://127.0.0.1:{port}"

    try:
        async with aiohttp.ClientSession() as session:
            resp = await session.get(f"{base}/secret.txt")
            assert resp.status == 403
            data = await (await session.get(f"{base}/_filterdir/api/list")).json()
            assert data["files"] == []
    finally:
        await server.stop()
        await recorder.stop()
