from __future__ import annotations

import json
import logging
import mimetypes
from typing import Any, Optional

from aiohttp import web

from models.options import GeneratorOptions, build_export
from overlay import child_path, normalize_path
from runtime.recorder import AccessRecorder
from stores.base import Resource, ResourceStore

logger = logging.getLogger(__name__)

API_PREFIX = "/_filterdir/api"
INDEX_PAGE = "index.html"


class RecorderApi:
    """JSON endpoints over an attached recorder, mounted under ``API_PREFIX``."""

    def __init__(self, recorder: AccessRecorder, options: GeneratorOptions) -> None:
        self.recorder = recorder
        self.options = options

    def add_routes(self, app: web.Application) -> None:
        app.router.add_get(f"{API_PREFIX}/list", self._list_api)
        app.router.add_get(f"{API_PREFIX}/changed", self._changed_api)
        app.router.add_post(f"{API_PREFIX}/clear", self._clear_api)
        app.router.add_get(f"{API_PREFIX}/export", self._export_api)

    async def _list_api(self, request: web.Request) -> web.Response:
        return web.json_response({"files": await self.recorder.snapshot()})

    async def _changed_api(self, request: web.Request) -> web.Response:
        return web.json_response({"changed": await self.recorder.changed()})

    async def _clear_api(self, request: web.Request) -> web.Response:
        await self.recorder.clear()
        return web.json_response({"status": "ok"})

    async def _export_api(self, request: web.Request) -> web.Response:
        payload = await build_export(self.recorder, self.options)
        return web.json_response(payload.model_dump())


class AssetServer:
    """Serves a store (usually an overlay) over HTTP.

    When a recorder is attached, its snapshot, change flag, clear and export
    operations are exposed under ``/_filterdir/api``.
    """

    def __init__(
        self,
        store: ResourceStore,
        *,
        recorder: Optional[AccessRecorder] = None,
        options: Optional[GeneratorOptions] = None,
        host: str = "127.0.0.1",
        port: int = 8080,
    ) -> None:
        self.store = store
        self.recorder = recorder
        self.options = options or GeneratorOptions()
        self.host = host
        self.port = port
        self._app = web.Application()
        self._runner: web.AppRunner | None = None
        self._site: web.BaseSite | None = None
        self._build_routes()

    # ------------------------------------------------------------------
    # Lifecycle
    async def start(self) -> None:
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        logger.info("Serving %s on http://%s:%s", type(self.store).__name__, self.host, self.port)

    async def stop(self) -> None:
        if self._site:
            await self._site.stop()
            self._site = None
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    # ------------------------------------------------------------------
    def _build_routes(self) -> None:
        if self.recorder is not None:
            RecorderApi(self.recorder, self.options).add_routes(self._app)
        self._app.router.add_get("/{tail:.*}", self._serve)

    # ------------------------------------------------------------------
    async def _serve(self, request: web.Request) -> web.StreamResponse:
        path = normalize_path("/" + request.match_info.get("tail", ""))
        try:
            resource = await self.store.open(path)
        except FileNotFoundError:
            raise web.HTTPNotFound(
                text=json.dumps({"error": "not found", "path": path}),
                content_type="application/json",
            )
        except PermissionError:
            raise web.HTTPForbidden(
                text=json.dumps({"error": "forbidden", "path": path}),
                content_type="application/json",
            )
        with resource:
            if resource.stat().is_dir:
                return await self._serve_dir(path, resource)
            return self._file_response(path, await resource.read())

    async def _serve_dir(self, path: str, resource: Resource) -> web.StreamResponse:
        try:
            index = await self.store.open(child_path(path, INDEX_PAGE))
        except FileNotFoundError:
            index = None
        if index is not None:
            with index:
                if not index.stat().is_dir:
                    return self._file_response(INDEX_PAGE, await index.read())
        entries = await resource.readdir(0)
        payload: dict[str, Any] = {
            "path": path,
            "entries": [entry.model_dump() for entry in entries],
        }
        return web.json_response(payload)

    def _file_response(self, path: str, body: bytes) -> web.Response:
        content_type, _ = mimetypes.guess_type(path)
        return web.Response(body=body, content_type=content_type or "application/octet-stream")
