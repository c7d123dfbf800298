"""
HTTP progress repository: Infrastructure adapter for a remote progress API.

Implements ProgressRepository over JSON:
    GET {base}/progress?mode=...
    GET {base}/progress/due?mode=...&now=...
    PUT {base}/progress/{item_key}
"""

import logging
from datetime import datetime
from urllib.parse import quote

import httpx

from renshu.domain.constants import REQUEST_TIMEOUT
from renshu.domain.models import (
    ItemKey,
    PracticeMode,
    SchedulingRecord,
    SchedulingState,
    SessionScope,
)
from renshu.domain.ports import ProgressRepository

from .serialization import record_from_dict, scheduling_to_dict


class HttpProgressRepository(ProgressRepository):
    """Adapter for a progress service reachable over HTTP."""

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None):
        self.logger = logging.getLogger(__name__)
        self.base_url = base_url.rstrip("/")
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get_records(self, path: str, params: dict[str, str]) -> list[SchedulingRecord]:
        resp = await self.client.get(f"{self.base_url}{path}", params=params)
        resp.raise_for_status()
        payload = resp.json()
        if not isinstance(payload, list):
            raise ValueError(f"Expected a list of records from {path}, got {type(payload).__name__}")

        records: list[SchedulingRecord] = []
        for item in payload:
            try:
                records.append(record_from_dict(item))
            except (ValueError, KeyError, TypeError) as e:
                self.logger.warning(f"Skipping malformed progress record {item!r}: {e}")
        return records

    async def get_records(self, mode: PracticeMode) -> list[SchedulingRecord]:
        return await self._get_records("/progress", {"mode": mode.value})

    async def get_due_records(self, mode: PracticeMode, now: datetime) -> list[SchedulingRecord]:
        return await self._get_records(
            "/progress/due", {"mode": mode.value, "now": now.isoformat()}
        )

    async def persist(
        self,
        key: ItemKey,
        scheduling: SchedulingState,
        scope: SessionScope,
        mode: PracticeMode,
    ) -> None:
        body = {
            "key": str(key),
            "mode": mode.value,
            "scope": scope.value,
            "scheduling": scheduling_to_dict(scheduling),
        }
        resp = await self.client.put(
            f"{self.base_url}/progress/{quote(str(key), safe='')}", json=body
        )
        resp.raise_for_status()
        self.logger.debug(f"Saved progress for {key} via {self.base_url}")
