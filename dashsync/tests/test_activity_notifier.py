import asyncio
import time
import unittest

from dashsync.date_utils import today_display
from dashsync.errors import TransientFetchError
from dashsync.kv_store import InMemoryKeyValueStore
from dashsync.provider import DashboardProvider

_FAST_CASCADE = (0.01, 0.02, 0.03, 0.04)


async def _wait_for(predicate, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


class _CountingSources:
    """File + analysis source recording how many syncs reached the upstream."""

    def __init__(self, files=None, fail_all: bool = False) -> None:
        self.files = files or []
        self.fail_all = fail_all
        self.stats_calls = 0
        self.stats_call_times: list[float] = []
        self.closed = 0

    async def get_file_stats(self):
        self.stats_calls += 1
        self.stats_call_times.append(time.monotonic())
        if self.fail_all:
            raise TransientFetchError("file_stats", "down")
        return {"stats": {"totalFiles": 0}}

    async def get_files(self):
        if self.fail_all:
            raise TransientFetchError("files", "down")
        return {"files": self.files}

    async def get_analysis_stats(self):
        return {"stats": {"totalAnalyses": 1}}

    async def close(self):
        self.closed += 1


class _FaultyFirstSources(_CountingSources):
    """Raises an unexpected error on the first stats request only."""

    async def get_file_stats(self):
        if self.stats_calls == 0:
            self.stats_calls += 1
            raise RuntimeError("bug")
        return await super().get_file_stats()


class ActivityNotifierTests(unittest.IsolatedAsyncioTestCase):
    def _provider(self, sources: _CountingSources, counter: InMemoryKeyValueStore | None = None) -> DashboardProvider:
        provider = DashboardProvider(
            sources,
            sources,
            counter or InMemoryKeyValueStore(),
            interval_seconds=60.0,
            cascade_delays=_FAST_CASCADE,
            retry_delay_seconds=0.0,
        )
        self.addAsyncCleanup(provider.stop)
        return provider

    async def test_file_upload_increments_once_and_cascades_five_syncs(self) -> None:
        sources = _CountingSources(fail_all=True)
        counter = InMemoryKeyValueStore({"uploadCount": "2"})
        provider = self._provider(sources, counter)

        uploaded_at = time.monotonic()
        new_count = await provider.notify_file_uploaded({"originalName": "sales.csv"})

        self.assertEqual(new_count, 3)
        self.assertEqual(counter.get("uploadCount"), "3")
        self.assertEqual(sources.stats_calls, 1)
        self.assertEqual(provider.scheduler.pending_cascade_count, 4)

        state = provider.read()
        self.assertEqual(state.recentActivity[0].action, "Uploaded sales.csv")
        self.assertEqual(state.recentActivity[0].time, today_display())
        self.assertEqual(state.recentActivity[0].type, "upload")
        self.assertEqual(len(state.recentActivity), 1)

        await _wait_for(lambda: sources.stats_calls >= 5 and provider.scheduler.pending_cascade_count == 0)
        self.assertEqual(sources.stats_calls, 5)
        offsets = [stamp - uploaded_at for stamp in sources.stats_call_times]
        self.assertEqual(offsets, sorted(offsets))
        for offset, delay in zip(offsets[1:], _FAST_CASCADE):
            self.assertGreaterEqual(offset, delay - 0.005)
        self.assertEqual(provider.read().uploadCount, 3)
        self.assertEqual(provider.read().sync.lastError, "Failed to load dashboard data")

    async def test_file_upload_without_name_uses_placeholder(self) -> None:
        provider = self._provider(_CountingSources(fail_all=True))
        await provider.notify_file_uploaded(None)
        self.assertEqual(provider.read().recentActivity[0].action, "Uploaded file")

    async def test_analysis_created_runs_single_sync_then_prepends(self) -> None:
        sources = _CountingSources(files=[{"originalName": "a.csv", "fileSize": 10, "totalRows": 1}])
        provider = self._provider(sources)

        await provider.notify_analysis_created({"name": "Quarterly trend"})

        self.assertEqual(sources.stats_calls, 1)
        self.assertEqual(provider.scheduler.pending_cascade_count, 0)
        state = provider.read()
        self.assertEqual(state.recentActivity[0].action, "Created analysis: Quarterly trend")
        self.assertEqual(state.recentActivity[0].type, "analysis")
        self.assertEqual(state.recentActivity[1].action, "Uploaded a.csv")
        self.assertEqual(state.uploadCount, 0)

        await asyncio.sleep(0.1)
        self.assertEqual(sources.stats_calls, 1)

    async def test_activity_never_exceeds_four_entries(self) -> None:
        provider = self._provider(_CountingSources(fail_all=True))
        for index in range(6):
            await provider.notify_analysis_created({"name": f"A{index}"})
            self.assertLessEqual(len(provider.read().recentActivity), 4)
        self.assertEqual(provider.read().recentActivity[0].action, "Created analysis: A5")


class DashboardProviderLifecycleTests(unittest.IsolatedAsyncioTestCase):
    async def test_start_runs_initial_sync_and_periodic_timer(self) -> None:
        sources = _CountingSources(files=[{"originalName": "a.csv", "size": 100, "rows": 5}])
        provider = DashboardProvider(sources, sources, InMemoryKeyValueStore(), interval_seconds=0.02)

        await provider.start()
        state = provider.read()
        self.assertEqual(sources.stats_calls, 1)
        self.assertFalse(state.sync.loading)
        self.assertEqual(state.stats.totalFiles, 1)
        self.assertTrue(provider.scheduler.periodic_running)

        await _wait_for(lambda: sources.stats_calls >= 2)
        self.assertGreaterEqual(sources.stats_calls, 2)

        await provider.stop()
        self.assertFalse(provider.scheduler.periodic_running)
        self.assertFalse(provider.is_running)
        self.assertEqual(sources.closed, 1)

    async def test_start_survives_failing_initial_sync(self) -> None:
        sources = _FaultyFirstSources(files=[{"originalName": "a.csv", "size": 100, "rows": 5}])
        provider = DashboardProvider(sources, sources, InMemoryKeyValueStore(), interval_seconds=0.01)
        self.addAsyncCleanup(provider.stop)

        await provider.start()

        self.assertTrue(provider.is_running)
        self.assertTrue(provider.scheduler.periodic_running)
        self.assertFalse(provider.read().sync.loading)

        await _wait_for(lambda: provider.read().stats.totalFiles == 1)
        self.assertEqual(provider.read().stats.totalFiles, 1)

    async def test_stop_cancels_pending_cascade(self) -> None:
        sources = _CountingSources()
        provider = DashboardProvider(sources, sources, InMemoryKeyValueStore(), cascade_delays=(5.0, 5.0, 5.0, 5.0))
        await provider.start()
        await provider.notify_file_uploaded({"originalName": "x.csv"})
        self.assertEqual(provider.scheduler.pending_cascade_count, 4)

        await provider.stop()
        self.assertEqual(provider.scheduler.pending_cascade_count, 0)
        self.assertEqual(sources.stats_calls, 2)

    async def test_formatted_stats_reflect_store(self) -> None:
        sources = _CountingSources(files=[{"fileSize": 100, "totalRows": 5}, {"fileSize": 200, "totalRows": 7}])
        provider = DashboardProvider(sources, sources, InMemoryKeyValueStore({"uploadCount": "4"}))
        self.addAsyncCleanup(provider.stop)
        await provider.forced_sync()

        values = [card.value for card in provider.formatted_stats()]
        self.assertEqual(values, ["4", "1", "12", "0.3 KB"])

    async def test_reset_upload_counter(self) -> None:
        counter = InMemoryKeyValueStore({"uploadCount": "12"})
        provider = DashboardProvider(_CountingSources(), _CountingSources(), counter)
        provider.reset_upload_counter()
        self.assertEqual(provider.read().uploadCount, 0)
        self.assertEqual(counter.get("uploadCount"), "0")


if __name__ == "__main__":
    unittest.main()
