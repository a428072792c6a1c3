"""Background workers for webhook-sink.

Each worker is a standalone module exporting a single async task function
compatible with :class:`webhook_sink.worker.WorkerTask`.
"""
from __future__ import annotations

from webhook_sink.settings import Settings
from webhook_sink.worker import BackgroundWorker, WorkerTask
from webhook_sink.workers.orphan_sweep import orphan_capture_sweep


def build_worker(settings: Settings) -> BackgroundWorker:
    tasks = []
    if settings.orphan_sweep_enabled:
        tasks.append(WorkerTask(name="orphan_capture_sweep", fn=orphan_capture_sweep))
    return BackgroundWorker(interval_seconds=settings.worker_interval_seconds, tasks=tasks)


__all__ = [
    "build_worker",
    "orphan_capture_sweep",
]
