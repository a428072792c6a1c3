"""Tests for the periodic background worker and its wiring."""
from __future__ import annotations

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock

import pytest
from aiohttp import web

from webhook_sink.main import create_app
from webhook_sink.worker import BackgroundWorker, WorkerTask
from webhook_sink.workers import build_worker


@pytest.mark.asyncio
async def test_tasks_receive_app_and_aware_utc_time():
    seen: list[tuple[web.Application, datetime]] = []

    async def record(app: web.Application, now: datetime) -> str | None:
        seen.append((app, now))
        return "ok"

    worker = BackgroundWorker(interval_seconds=0.05, tasks=[WorkerTask(name="record", fn=record)])
    app = web.Application()

    await worker.start(app)
    await asyncio.sleep(0.2)
    await worker.stop(app)

    assert len(seen) >= 2
    assert all(target is app for target, _ in seen)
    assert all(now.utcoffset().total_seconds() == 0 for _, now in seen)


@pytest.mark.asyncio
async def test_failing_task_is_isolated():
    healthy = AsyncMock(return_value=None)
    failing = AsyncMock(side_effect=RuntimeError("boom"))
    worker = BackgroundWorker(
        tasks=[WorkerTask(name="failing", fn=failing), WorkerTask(name="healthy", fn=healthy)],
    )
    app = web.Application()

    await worker.run_once(app)
    await worker.run_once(app)

    assert failing.await_count == 2
    assert healthy.await_count == 2


@pytest.mark.asyncio
async def test_no_runs_after_stop():
    fn = AsyncMock(return_value=None)
    worker = BackgroundWorker(interval_seconds=0.05, tasks=[WorkerTask(name="t", fn=fn)])
    app = web.Application()

    await worker.start(app)
    await asyncio.sleep(0.12)
    await worker.stop(app)
    calls_at_stop = fn.await_count
    await asyncio.sleep(0.1)

    assert fn.await_count == calls_at_stop


@pytest.mark.asyncio
async def test_stop_without_start_is_noop():
    await BackgroundWorker(tasks=[]).stop(web.Application())


def test_build_worker_follows_settings(settings):
    assert build_worker(settings).tasks == []

    enabled = settings.model_copy(update={"orphan_sweep_enabled": True, "worker_interval_seconds": 12.5})
    worker = build_worker(enabled)

    assert [task.name for task in worker.tasks] == ["orphan_capture_sweep"]
    assert worker.interval_seconds == 12.5


@pytest.mark.asyncio
async def test_app_starts_and_stops_with_sweeper_enabled(aiohttp_client, settings, store):
    enabled = settings.model_copy(update={"orphan_sweep_enabled": True, "worker_interval_seconds": 3600.0})
    client = await aiohttp_client(create_app(enabled, store))

    response = await client.get("/health")

    assert response.status == 200
