"""Optimistic activity entries for local mutation events."""
from __future__ import annotations

import logging
from typing import Any, Mapping

from dashsync.date_utils import today_display
from dashsync.metrics_store import MetricsStore
from dashsync.models import ActivityEntry
from dashsync.services.refresh_scheduler import RefreshScheduler

logger = logging.getLogger("dashsync.notifier")


def _descriptor_field(descriptor: Any, field: str) -> Any:
    if descriptor is None:
        return None
    if isinstance(descriptor, Mapping):
        return descriptor.get(field)
    return getattr(descriptor, field, None)


class ActivityNotifier:
    def __init__(self, store: MetricsStore, scheduler: RefreshScheduler):
        self._store = store
        self._scheduler = scheduler

    async def on_file_uploaded(self, file_descriptor: Any = None) -> int:
        """Count the upload, show it immediately, then start the refresh cascade."""
        logger.info(f"File uploaded notification: {file_descriptor}")
        new_count = self._store.increment_upload_counter()

        name = _descriptor_field(file_descriptor, "originalName") or "file"
        self._store.prepend_activity(
            ActivityEntry(action=f"Uploaded {name}", time=today_display(), type="upload")
        )

        await self._scheduler.post_mutation_cascade()
        return new_count

    async def on_analysis_created(self, analysis_descriptor: Any = None) -> None:
        """Single forced refresh, then the optimistic entry. No cascade."""
        logger.info(f"Analysis created notification: {analysis_descriptor}")
        await self._scheduler.forced_sync()

        name = _descriptor_field(analysis_descriptor, "name") or ""
        self._store.prepend_activity(
            ActivityEntry(action=f"Created analysis: {name}", time=today_display(), type="analysis")
        )
