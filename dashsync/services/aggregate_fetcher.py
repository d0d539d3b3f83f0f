"""Two-path aggregate reconciliation.

The dedicated stats endpoint is authoritative when it reports files. When it
fails or reports zero files (the backend may not have processed a fresh
upload yet), the totals are recomputed from the file listing. Analysis counts
come from a separate service and degrade independently.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Optional

from dashsync import config
from dashsync.date_utils import format_display_date
from dashsync.errors import DashSyncError, PartialDataError, TotalSyncFailure
from dashsync.models import ActivityEntry, AggregateSnapshot, FetchResult
from dashsync.observability import record_upstream_failure
from dashsync.services.upstream import AnalysisStatsSource, FileSource

logger = logging.getLogger("dashsync.fetcher")

# Field resolution order per attribute; earlier names win.
FILE_SIZE_FIELDS = ("fileSize", "size")
FILE_ROWS_FIELDS = ("totalRows", "rows")
FILE_NAME_FIELDS = ("originalName", "name")
FILE_TIMESTAMP_FIELDS = ("createdAt", "uploadedAt")
STATS_DATA_POINT_FIELDS = ("totalDataPoints", "totalRows")


def _as_count(value: Any) -> Optional[int]:
    """Non-negative int, or None for missing, boolean, non-numeric or non-finite input."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, float):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    # JSON decoding accepts NaN and Infinity, and "1e400" overflows to inf.
    if not math.isfinite(number):
        return None
    return max(0, int(number))


def resolve_count(record: dict[str, Any], fields: Iterable[str]) -> int:
    """First field holding a usable number, else 0."""
    for field in fields:
        count = _as_count(record.get(field))
        if count is not None:
            return count
    return 0


def resolve_value(record: dict[str, Any], fields: Iterable[str]) -> Any:
    for field in fields:
        value = record.get(field)
        if value not in (None, ""):
            return value
    return None


def _file_records(payload: Any) -> list[dict[str, Any]]:
    files = payload.get("files") if isinstance(payload, dict) else None
    if not isinstance(files, list):
        return []
    return [item for item in files if isinstance(item, dict)]


def aggregate_files(files: list[dict[str, Any]]) -> tuple[int, int, int]:
    """Recompute (totalFiles, totalSize, totalDataPoints) from file records."""
    total_size = sum(resolve_count(record, FILE_SIZE_FIELDS) for record in files)
    total_rows = sum(resolve_count(record, FILE_ROWS_FIELDS) for record in files)
    return len(files), total_size, total_rows


def activities_from_files(files: list[dict[str, Any]], limit: int = config.RECENT_ACTIVITY_LIMIT) -> list[ActivityEntry]:
    """Activity entries for the first ``limit`` records, in the order given."""
    activities: list[ActivityEntry] = []
    for record in files[:limit]:
        name = resolve_value(record, FILE_NAME_FIELDS) or "file"
        activities.append(
            ActivityEntry(
                action=f"Uploaded {name}",
                time=format_display_date(resolve_value(record, FILE_TIMESTAMP_FIELDS)),
                type="upload",
            )
        )
    return activities


class AggregateFetcher:
    def __init__(self, file_source: FileSource, analysis_source: AnalysisStatsSource):
        self._files = file_source
        self._analyses = analysis_source

    async def _fetch_stats_endpoint(self) -> Optional[tuple[int, int, int]]:
        try:
            payload = await self._files.get_file_stats()
        except DashSyncError as e:
            record_upstream_failure("file_stats")
            logger.warning(f"Stats endpoint failed, falling back to file listing: {e}")
            return None

        stats = payload.get("stats") if isinstance(payload, dict) else None
        if not isinstance(stats, dict):
            logger.info("Stats endpoint returned no aggregate object")
            return None
        return (
            resolve_count(stats, ("totalFiles",)),
            resolve_count(stats, ("totalSize",)),
            resolve_count(stats, STATS_DATA_POINT_FIELDS),
        )

    async def _fetch_file_list(self) -> list[dict[str, Any]]:
        payload = await self._files.get_files()
        return _file_records(payload)

    async def _fetch_total_analyses(self) -> int:
        try:
            payload = await self._analyses.get_analysis_stats()
            stats = payload.get("stats") if isinstance(payload, dict) else None
            if not isinstance(stats, dict):
                raise PartialDataError("analysis stats missing from response")
            return resolve_count(stats, ("totalAnalyses",))
        except DashSyncError as e:
            record_upstream_failure("analysis_stats")
            logger.warning(f"Failed to fetch analyses stats, defaulting to 0: {e}")
            return 0

    async def fetch_aggregates(self) -> FetchResult:
        """Fetch and reconcile the aggregate snapshot.

        Raises ``TotalSyncFailure`` only when both the stats endpoint and the
        file listing fail; every other upstream error is absorbed.
        """
        total_files = total_size = total_data_points = 0
        stats = await self._fetch_stats_endpoint()
        if stats is not None:
            total_files, total_size, total_data_points = stats

        if total_files == 0:
            logger.info("Calculating stats from individual files")
            try:
                files = await self._fetch_file_list()
            except DashSyncError as e:
                record_upstream_failure("files")
                logger.error(f"File listing failed: {e}")
                raise TotalSyncFailure() from e
            total_files, total_size, total_data_points = aggregate_files(files)
        else:
            try:
                files = await self._fetch_file_list()
            except DashSyncError as e:
                record_upstream_failure("files")
                logger.warning(f"Failed to fetch files for recent activity: {e}")
                files = []

        snapshot = AggregateSnapshot(
            totalFiles=total_files,
            totalAnalyses=await self._fetch_total_analyses(),
            totalDataPoints=total_data_points,
            totalSize=total_size,
        )
        logger.info(f"Dashboard stats: {snapshot.model_dump()}")
        return FetchResult(snapshot=snapshot, activities=activities_from_files(files))
