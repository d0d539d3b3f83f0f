"""Pydantic models matching the dashboard frontend's state shapes."""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Literal, Optional

# ── Aggregate / activity models ─────────────────────────────────────

class AggregateSnapshot(BaseModel):
    totalFiles: int = Field(default=0, ge=0)
    totalAnalyses: int = Field(default=0, ge=0)
    totalDataPoints: int = Field(default=0, ge=0)
    totalSize: int = Field(default=0, ge=0)  # bytes


class ActivityEntry(BaseModel):
    action: str
    time: str
    type: Literal["upload", "analysis"] = "upload"


class FetchResult(BaseModel):
    snapshot: AggregateSnapshot
    activities: list[ActivityEntry] = Field(default_factory=list)


# ── Store read model ────────────────────────────────────────────────

class SyncState(BaseModel):
    loading: bool = True
    lastError: Optional[str] = None


class DashboardState(BaseModel):
    stats: AggregateSnapshot = Field(default_factory=AggregateSnapshot)
    recentActivity: list[ActivityEntry] = Field(default_factory=list)
    sync: SyncState = Field(default_factory=SyncState)
    uploadCount: int = 0


class StatCard(BaseModel):
    title: str
    value: str
    change: str = "+0%"
    icon: str
    color: str


# ── Notification payloads ───────────────────────────────────────────

class FileUploadedNotice(BaseModel):
    originalName: Optional[str] = None


class AnalysisCreatedNotice(BaseModel):
    name: str = ""
