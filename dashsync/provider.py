"""Dashboard provider: owns the store, fetcher, scheduler and notifier."""
from __future__ import annotations

import logging
from typing import Any, Optional

from dashsync import config
from dashsync.formatting import formatted_stats
from dashsync.kv_store import JsonFileKeyValueStore, KeyValueStore
from dashsync.metrics_store import MetricsStore
from dashsync.models import DashboardState, FetchResult, StatCard
from dashsync.services.activity_notifier import ActivityNotifier
from dashsync.services.aggregate_fetcher import AggregateFetcher
from dashsync.services.refresh_scheduler import RefreshScheduler
from dashsync.services.upstream import AnalysisStatsSource, DashboardApiClient, FileSource

logger = logging.getLogger("dashsync")


class DashboardProvider:
    """Outward API consumed by the UI and by upload/analysis flows."""

    def __init__(
        self,
        file_source: FileSource,
        analysis_source: AnalysisStatsSource,
        counter_store: KeyValueStore,
        *,
        interval_seconds: float = config.PERIODIC_SYNC_INTERVAL_SECONDS,
        cascade_delays: tuple[float, ...] = config.CASCADE_DELAYS_SECONDS,
        retry_delay_seconds: float = config.RETRY_DELAY_SECONDS,
    ):
        self._sources = (file_source, analysis_source)
        self.store = MetricsStore(counter_store)
        self.fetcher = AggregateFetcher(file_source, analysis_source)
        self.scheduler = RefreshScheduler(
            self.store,
            self.fetcher,
            interval_seconds=interval_seconds,
            cascade_delays=cascade_delays,
            retry_delay_seconds=retry_delay_seconds,
        )
        self.notifier = ActivityNotifier(self.store, self.scheduler)
        self._started = False

    @classmethod
    def from_config(cls) -> "DashboardProvider":
        client = DashboardApiClient(config.API_BASE_URL, timeout_seconds=config.REQUEST_TIMEOUT_SECONDS)
        return cls(client, client, JsonFileKeyValueStore(config.COUNTER_STORE_PATH))

    async def start(self) -> None:
        """Initial sync, then the periodic timer."""
        if self._started:
            logger.warning("Dashboard provider already started")
            return
        self._started = True
        logger.info("Dashboard provider starting (upload count %s)", self.store.upload_count)
        try:
            await self.scheduler.sync_now(trigger="initial")
        except Exception as e:
            logger.error(f"Initial sync error: {e}")
        finally:
            self.scheduler.start_periodic()

    async def stop(self) -> None:
        await self.scheduler.stop()
        closed: set[int] = set()
        for source in self._sources:
            close = getattr(source, "close", None)
            if close is None or id(source) in closed:
                continue
            closed.add(id(source))
            await close()
        self._started = False
        logger.info("Dashboard provider stopped")

    @property
    def is_running(self) -> bool:
        return self._started

    # ── Outward API ───────────────────────────────────────────────

    def read(self) -> DashboardState:
        return self.store.read()

    def formatted_stats(self) -> list[StatCard]:
        return formatted_stats(self.store.read())

    async def forced_sync(self) -> Optional[FetchResult]:
        logger.info("Force updating dashboard stats")
        return await self.scheduler.forced_sync()

    async def sync_with_retry(self, max_attempts: int = config.RETRY_MAX_ATTEMPTS) -> Optional[FetchResult]:
        return await self.scheduler.sync_with_retry(max_attempts)

    def reset_upload_counter(self) -> None:
        self.store.reset_upload_counter()

    async def notify_file_uploaded(self, file_descriptor: Any = None) -> int:
        return await self.notifier.on_file_uploaded(file_descriptor)

    async def notify_analysis_created(self, analysis_descriptor: Any = None) -> None:
        await self.notifier.on_analysis_created(analysis_descriptor)
