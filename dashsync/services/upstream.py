"""aiohttp clients for the file service and the analysis-statistics service.

Both services are read-only JSON sources:

GET {base}/files            -> {"files": [...]}
GET {base}/files/stats      -> {"stats": {"totalFiles": ..., "totalSize": ..., "totalDataPoints"|"totalRows": ...}}
GET {base}/analytics/stats  -> {"stats": {"totalAnalyses": ...}}
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Protocol

import aiohttp

from dashsync import config
from dashsync.errors import TransientFetchError

logger = logging.getLogger("dashsync.upstream")


class FileSource(Protocol):
    async def get_file_stats(self) -> dict[str, Any]: ...

    async def get_files(self) -> dict[str, Any]: ...


class AnalysisStatsSource(Protocol):
    async def get_analysis_stats(self) -> dict[str, Any]: ...


class DashboardApiClient:
    """Shared-session client for the upstream dashboard API.

    Every failure (connection, non-2xx status, undecodable body) is raised as
    ``TransientFetchError`` tagged with the endpoint name.
    """

    def __init__(
        self,
        base_url: str = config.API_BASE_URL,
        *,
        timeout_seconds: float = config.REQUEST_TIMEOUT_SECONDS,
        headers: dict[str, str] | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._headers = dict(headers or {})
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout, headers=self._headers)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _get_json(self, source: str, path: str) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().get(url) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise TransientFetchError(source, f"HTTP {resp.status}: {body[:100]}")
                payload = await resp.json(content_type=None)
        except TransientFetchError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TransientFetchError(source, str(e) or type(e).__name__) from e

        if not isinstance(payload, dict):
            raise TransientFetchError(source, f"expected JSON object, got {type(payload).__name__}")
        return payload

    async def get_file_stats(self) -> dict[str, Any]:
        return await self._get_json("file_stats", "/files/stats")

    async def get_files(self) -> dict[str, Any]:
        return await self._get_json("files", "/files")

    async def get_analysis_stats(self) -> dict[str, Any]:
        return await self._get_json("analysis_stats", "/analytics/stats")
