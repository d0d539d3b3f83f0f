"""Display formatting for dashboard stat cards."""
from __future__ import annotations

from dashsync.models import DashboardState, StatCard

_BYTE_UNITS = ("KB", "MB", "GB")
_KIB = 1024


def _trim_decimal(value: float) -> str:
    text = f"{value:.1f}"
    if text.endswith(".0"):
        return text[:-2]
    return text


def format_bytes(num_bytes: int) -> str:
    """Scale a byte count into KB/MB/GB with one decimal place."""
    if num_bytes <= 0:
        return "0 KB"
    scaled = num_bytes / _KIB
    index = 0
    # Compare the rounded value so 1048575 bytes reads "1 MB", not "1024 KB".
    while round(scaled, 1) >= _KIB and index < len(_BYTE_UNITS) - 1:
        scaled /= _KIB
        index += 1
    return f"{_trim_decimal(scaled)} {_BYTE_UNITS[index]}"


def format_number(num: int) -> str:
    if num >= 1000:
        return f"{num / 1000:.1f}K"
    return str(num)


def formatted_stats(state: DashboardState) -> list[StatCard]:
    stats = state.stats
    return [
        StatCard(
            title="Files Uploaded",
            value=str(state.uploadCount),
            icon="file-spreadsheet",
            color="blue",
        ),
        StatCard(
            title="Analyses Created",
            value=str(stats.totalAnalyses),
            icon="bar-chart",
            color="green",
        ),
        StatCard(
            title="Data Points",
            value=format_number(stats.totalDataPoints),
            icon="activity",
            color="purple",
        ),
        StatCard(
            title="Storage Used",
            value=format_bytes(stats.totalSize),
            icon="trending-up",
            color="yellow",
        ),
    ]
