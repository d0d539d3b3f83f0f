"""In-memory dashboard state plus the persisted upload counter."""
from __future__ import annotations

import logging

from dashsync import config
from dashsync.kv_store import KeyValueStore
from dashsync.models import ActivityEntry, AggregateSnapshot, DashboardState, SyncState

logger = logging.getLogger("dashsync.store")


def _parse_counter(raw: str | None) -> int:
    """Persisted counter text -> int; anything malformed or negative reads as 0."""
    if raw is None:
        return 0
    try:
        value = int(str(raw).strip())
    except ValueError:
        logger.warning(f"Ignoring malformed persisted counter value {raw!r}")
        return 0
    return value if value >= 0 else 0


class MetricsStore:
    """Holds the aggregate snapshot, recent activity and sync state.

    All mutation happens on the event loop thread, so no locking is done.
    Overlapping syncs apply their results in completion order: the last one
    to finish wins, even if it was issued first.
    """

    def __init__(
        self,
        counter_store: KeyValueStore,
        *,
        counter_key: str = config.UPLOAD_COUNT_KEY,
        activity_limit: int = config.RECENT_ACTIVITY_LIMIT,
    ):
        self._counter_store = counter_store
        self._counter_key = counter_key
        self._activity_limit = activity_limit
        self._snapshot = AggregateSnapshot()
        self._activity: list[ActivityEntry] = []
        self._sync = SyncState()
        self._upload_count = _parse_counter(counter_store.get(counter_key))

    def read(self) -> DashboardState:
        return DashboardState(
            stats=self._snapshot.model_copy(),
            recentActivity=list(self._activity),
            sync=self._sync.model_copy(),
            uploadCount=self._upload_count,
        )

    @property
    def recent_activity(self) -> list[ActivityEntry]:
        return list(self._activity)

    @property
    def upload_count(self) -> int:
        return self._upload_count

    def apply_snapshot(self, snapshot: AggregateSnapshot, activities: list[ActivityEntry]) -> None:
        self._snapshot = snapshot
        self._activity = list(activities)[: self._activity_limit]

    def prepend_activity(self, entry: ActivityEntry) -> None:
        self._activity = [entry, *self._activity][: self._activity_limit]

    def increment_upload_counter(self) -> int:
        # Not transactional: a crash between get and set can drop one increment.
        new_count = _parse_counter(self._counter_store.get(self._counter_key)) + 1
        self._counter_store.set(self._counter_key, str(new_count))
        self._upload_count = new_count
        return new_count

    def reset_upload_counter(self) -> None:
        self._counter_store.set(self._counter_key, "0")
        self._upload_count = 0
        logger.info("Upload counter reset")

    # ── Sync state ────────────────────────────────────────────────

    def begin_sync(self) -> None:
        self._sync = SyncState(loading=True, lastError=None)

    def set_error(self, message: str) -> None:
        self._sync = SyncState(loading=self._sync.loading, lastError=message)

    def finish_sync(self) -> None:
        self._sync = SyncState(loading=False, lastError=self._sync.lastError)
