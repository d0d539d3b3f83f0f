"""Sync orchestration: initial, periodic, forced, retrying and post-mutation syncs."""
from __future__ import annotations

import asyncio
import itertools
import logging
import time
from typing import Optional

from dashsync import config
from dashsync.errors import TotalSyncFailure
from dashsync.metrics_store import MetricsStore
from dashsync.models import FetchResult
from dashsync.observability import record_sync, start_span
from dashsync.services.aggregate_fetcher import AggregateFetcher

logger = logging.getLogger("dashsync.scheduler")


class RefreshScheduler:
    """Decides when the fetcher runs and writes its results into the store.

    Syncs are not serialized. Results are applied in completion order, so a
    slow sync started earlier can overwrite a faster one started later.
    """

    def __init__(
        self,
        store: MetricsStore,
        fetcher: AggregateFetcher,
        *,
        interval_seconds: float = config.PERIODIC_SYNC_INTERVAL_SECONDS,
        cascade_delays: tuple[float, ...] = config.CASCADE_DELAYS_SECONDS,
        retry_delay_seconds: float = config.RETRY_DELAY_SECONDS,
    ):
        self._store = store
        self._fetcher = fetcher
        self._interval = interval_seconds
        self._cascade_delays = tuple(cascade_delays)
        self._retry_delay = retry_delay_seconds
        self._periodic_task: Optional[asyncio.Task] = None
        self._cascade_tasks: dict[int, set[asyncio.Task]] = {}
        self._cascade_ids = itertools.count(1)

    # ── Core sync ─────────────────────────────────────────────────

    async def sync_now(self, trigger: str = "manual") -> Optional[FetchResult]:
        """Run one fetch; on failure keep the previous snapshot and record the error."""
        started = time.monotonic()
        self._store.begin_sync()
        result_label = "error"
        try:
            with start_span("dashboard.sync", {"trigger": trigger}):
                result = await self._fetcher.fetch_aggregates()
            self._store.apply_snapshot(result.snapshot, result.activities)
            result_label = "success"
            return result
        except TotalSyncFailure as e:
            logger.error(f"Error updating dashboard stats ({trigger}): {e}")
            self._store.set_error(str(e))
            return None
        finally:
            self._store.finish_sync()
            record_sync(trigger, result_label, (time.monotonic() - started) * 1000)

    async def forced_sync(self) -> Optional[FetchResult]:
        return await self.sync_now(trigger="forced")

    async def sync_with_retry(self, max_attempts: int = config.RETRY_MAX_ATTEMPTS) -> Optional[FetchResult]:
        """Sequential attempts until one completes without raising.

        ``sync_now`` records fetch failures instead of raising, so only
        unexpected faults reach the retry branch.
        """
        for attempt in range(1, max_attempts + 1):
            try:
                logger.info(f"Refresh attempt {attempt}/{max_attempts}")
                return await self.sync_now(trigger="retry")
            except Exception as e:
                logger.error(f"Refresh attempt {attempt} failed: {e}")
                if attempt == max_attempts:
                    logger.error("All refresh attempts failed")
                else:
                    await asyncio.sleep(self._retry_delay)
        return None

    # ── Periodic ──────────────────────────────────────────────────

    def start_periodic(self) -> None:
        if self._periodic_task is not None and not self._periodic_task.done():
            logger.warning("Periodic sync already running")
            return
        self._periodic_task = asyncio.create_task(self._periodic_loop())
        logger.info(f"Periodic sync started (every {self._interval}s)")

    async def _periodic_loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval)
                try:
                    await self.sync_now(trigger="periodic")
                except Exception as e:
                    logger.error(f"Periodic sync error: {e}")
        except asyncio.CancelledError:
            logger.info("Periodic sync task cancelled")
            raise

    @property
    def periodic_running(self) -> bool:
        return self._periodic_task is not None and not self._periodic_task.done()

    # ── Post-mutation cascade ─────────────────────────────────────

    async def post_mutation_cascade(self) -> int:
        """Sync now, then again at each cascade delay after the triggering event.

        Returns the cascade id; its delayed syncs are independent tasks that
        are only cancelled by ``stop()``.
        """
        cascade_id = next(self._cascade_ids)
        triggered_at = time.monotonic()
        tasks: set[asyncio.Task] = set()
        self._cascade_tasks[cascade_id] = tasks
        for step, delay in enumerate(self._cascade_delays, start=2):
            task = asyncio.create_task(self._delayed_sync(cascade_id, step, triggered_at + delay))
            tasks.add(task)
            task.add_done_callback(lambda t, cid=cascade_id: self._forget_cascade_task(cid, t))

        await self._cascade_step(cascade_id, 1)
        return cascade_id

    async def _delayed_sync(self, cascade_id: int, step: int, due_at: float) -> None:
        await asyncio.sleep(max(0.0, due_at - time.monotonic()))
        await self._cascade_step(cascade_id, step)

    async def _cascade_step(self, cascade_id: int, step: int) -> None:
        try:
            logger.info(f"Refreshing stats (cascade {cascade_id}, attempt {step})")
            await self.sync_now(trigger="cascade")
        except Exception as e:
            logger.error(f"Error refreshing dashboard stats (cascade {cascade_id}, attempt {step}): {e}")

    def _forget_cascade_task(self, cascade_id: int, task: asyncio.Task) -> None:
        tasks = self._cascade_tasks.get(cascade_id)
        if tasks is None:
            return
        tasks.discard(task)
        if not tasks:
            self._cascade_tasks.pop(cascade_id, None)

    @property
    def pending_cascade_count(self) -> int:
        return sum(len(tasks) for tasks in self._cascade_tasks.values())

    # ── Teardown ──────────────────────────────────────────────────

    async def stop(self) -> None:
        """Cancel the periodic task and every pending cascade sync."""
        pending = [task for tasks in self._cascade_tasks.values() for task in tasks]
        if self._periodic_task is not None:
            pending.append(self._periodic_task)
        for task in pending:
            task.cancel()
        for task in pending:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._cascade_tasks.clear()
        self._periodic_task = None
        logger.info("Refresh scheduler stopped")
