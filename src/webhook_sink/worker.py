"""Periodic in-process background worker.

Usage::

    worker = BackgroundWorker(
        interval_seconds=300.0,
        tasks=[WorkerTask(name="orphan_capture_sweep", fn=sweep)],
    )

    app.on_startup.append(worker.start)
    app.on_cleanup.append(worker.stop)
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Sequence

import structlog
from aiohttp import web

logger = structlog.get_logger(__name__)

# Receives the application and the current UTC time; returns an optional
# summary that is logged when non-empty.
TaskFn = Callable[[web.Application, datetime], Awaitable[str | None]]


@dataclass
class WorkerTask:
    name: str
    fn: TaskFn


_WORKER_TASK_KEY = "__background_worker_task__"


@dataclass
class BackgroundWorker:
    """Runs its tasks every ``interval_seconds`` until the app shuts down.

    Tasks are isolated from each other: a failing task is logged and the
    remaining ones still run in the same sweep.
    """

    interval_seconds: float = 300.0
    tasks: Sequence[WorkerTask] = field(default_factory=list)

    async def start(self, app: web.Application) -> None:
        app[_WORKER_TASK_KEY] = asyncio.create_task(self._loop(app))

    async def stop(self, app: web.Application) -> None:
        task = app.get(_WORKER_TASK_KEY)
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def run_once(self, app: web.Application) -> None:
        now = datetime.now(timezone.utc)
        for task in self.tasks:
            try:
                summary = await task.fn(app, now)
                if summary:
                    logger.info("background_task completed", task=task.name, summary=summary)
            except Exception:
                logger.exception("background_task failed", task=task.name)

    async def _loop(self, app: web.Application) -> None:
        logger.info(
            "background_worker started",
            interval_seconds=self.interval_seconds,
            tasks=[t.name for t in self.tasks],
        )
        while True:
            try:
                await asyncio.sleep(self.interval_seconds)
                await self.run_once(app)
            except asyncio.CancelledError:
                logger.info("background_worker stopped")
                raise
            except Exception:
                logger.exception("background_worker sweep failed")
