"""Error taxonomy for dashboard synchronization."""
from __future__ import annotations


class DashSyncError(Exception):
    """Base class for dashboard sync errors."""


class TransientFetchError(DashSyncError):
    """An upstream request failed (network, HTTP status or payload decoding)."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class PartialDataError(DashSyncError):
    """A sub-aggregate could not be loaded and was defaulted."""


class TotalSyncFailure(DashSyncError):
    """Neither the stats endpoint nor the file listing produced file aggregates."""

    default_message = "Failed to load dashboard data"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
