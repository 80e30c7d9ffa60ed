from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class RecorderOp(str, Enum):
    RECORD = "record"
    SNAPSHOT = "snapshot"
    CHANGED = "changed"
    CLEAR = "clear"


@dataclass(slots=True)
class RecorderRequest:
    op: RecorderOp
    path: str = ""
    reply: Optional[asyncio.Future] = None


class AccessRecorder:
    """Accumulates distinct accessed paths behind a single actor task.

    Every request goes through one FIFO inbox and is applied by one task, so
    each operation is atomic and all operations are totally ordered. Callers
    never hold a lock. ``record`` is fire-and-forget; ``snapshot``,
    ``changed`` and ``clear`` wait for the actor to answer and therefore see
    every record enqueued before them.

    Two flags are kept apart: ``_dirty`` gates re-sorting on snapshot and
    ``_changed`` is what the display poller consults through ``changed()``.
    """

    def __init__(self) -> None:
        self._inbox: asyncio.Queue[RecorderRequest] = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._paths: List[str] = []
        self._seen: Dict[str, bool] = {}
        self._dirty = False
        self._changed = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the actor on the running loop. Safe to call repeatedly."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._task = self._loop.create_task(self._run())

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def record(self, path: str) -> None:
        """Enqueue ``path``; never blocks and never raises to the caller."""
        req = RecorderRequest(op=RecorderOp.RECORD, path=path)
        try:
            current = asyncio.get_running_loop()
        except RuntimeError:
            current = None
        try:
            if self._loop is None or current is self._loop:
                self._inbox.put_nowait(req)
                if current is not None:
                    self.start()
            else:
                # Called from another thread; the queue is loop-bound.
                self._loop.call_soon_threadsafe(self._inbox.put_nowait, req)
        except RuntimeError as exc:
            logger.warning("Dropping access record for %s: %s", path, exc)

    async def snapshot(self) -> List[str]:
        return await self._ask(RecorderOp.SNAPSHOT)

    async def changed(self) -> bool:
        return await self._ask(RecorderOp.CHANGED)

    async def clear(self) -> None:
        await self._ask(RecorderOp.CLEAR)

    async def _ask(self, op: RecorderOp) -> Any:
        self.start()
        fut = asyncio.get_running_loop().create_future()
        self._inbox.put_nowait(RecorderRequest(op=op, reply=fut))
        return await fut

    async def _run(self) -> None:
        while True:
            req = await self._inbox.get()
            try:
                result = self._apply(req)
            except Exception as exc:
                logger.exception("Recorder failed to apply %s", req.op)
                if req.reply is not None and not req.reply.done():
                    req.reply.set_exception(exc)
            else:
                if req.reply is not None and not req.reply.done():
                    req.reply.set_result(result)
            finally:
                self._inbox.task_done()

    def _apply(self, req: RecorderRequest) -> Any:
        if req.op is RecorderOp.RECORD:
            if not self._seen.get(req.path):
                self._seen[req.path] = True
                self._paths.append(req.path)
                self._dirty = True
                self._changed = True
                logger.debug("Recorded access to %s", req.path)
            return None
        if req.op is RecorderOp.SNAPSHOT:
            if self._dirty:
                self._paths.sort()
                self._dirty = False
            return list(self._paths)
        if req.op is RecorderOp.CHANGED:
            changed = self._changed
            self._changed = False
            return changed
        if req.op is RecorderOp.CLEAR:
            self._paths = []
            self._seen = {}
            self._dirty = False
            self._changed = True
            return None
        raise ValueError(f"Unknown recorder op: {req.op}")
