from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from ..insights.moods import MoodRecord
from ..metrics import REPLAYED_ITEMS
from ..utils.retry import retry_async
from .queue import OfflineQueue, QueueCollection

logger = logging.getLogger(__name__)


class RecordStoreClient:
    """HTTP client for the MoodSync record endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        retries: int = 3,
        retry_delay: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._retries = retries
        self._retry_delay = retry_delay
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> RecordStoreClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        async def _send() -> httpx.Response:
            response = await self._client.request(method, url, **kwargs)
            if response.status_code >= 500:
                response.raise_for_status()
            return response

        return await retry_async(
            _send,
            self._retries,
            self._retry_delay,
            retry_on=(httpx.TransportError, httpx.HTTPStatusError),
        )

    async def post(self, collection: QueueCollection, payload: dict[str, Any]) -> httpx.Response:
        return await self._request("POST", collection.endpoint, json=payload)

    async def fetch_mood_entries(self, limit: int | None = None) -> list[dict[str, Any]]:
        params = {"limit": limit} if limit is not None else None
        response = await self._request("GET", "/api/mood-entries", params=params)
        response.raise_for_status()
        return response.json()

    async def fetch_mood_entries_in_range(
        self,
        start: datetime,
        end: datetime,
    ) -> list[dict[str, Any]]:
        response = await self._request(
            "GET",
            "/api/mood-entries/range",
            params={"startDate": start.isoformat(), "endDate": end.isoformat()},
        )
        response.raise_for_status()
        return response.json()


def records_from_payload(items: list[dict[str, Any]]) -> list[MoodRecord]:
    """Turn API mood entries into records the analytics functions accept."""

    return [
        MoodRecord(
            emotion=item["emotion"],
            intensity=int(item["intensity"]),
            timestamp=datetime.fromisoformat(str(item["timestamp"]).replace("Z", "+00:00")),
            triggers=item.get("emotionTriggers") or None,
        )
        for item in items
    ]


@dataclass
class CollectionReport:
    sent: int = 0
    rejected: int = 0
    remaining: int = 0
    error: str | None = None


@dataclass
class ReplayReport:
    collections: dict[QueueCollection, CollectionReport] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return all(item.error is None for item in self.collections.values())


async def replay_offline_queue(queue: OfflineQueue, client: RecordStoreClient) -> ReplayReport:
    """Post queued writes oldest first.

    Accepted and schema-rejected items leave the queue. A network failure,
    server error or unexpected status stops that collection and keeps the
    remaining items for the next run.
    """

    report = ReplayReport()
    for collection in QueueCollection:
        summary = CollectionReport()
        report.collections[collection] = summary
        for item in await queue.pending(collection):
            try:
                response = await client.post(collection, item.payload)
            except httpx.HTTPError as exc:
                summary.error = str(exc) or exc.__class__.__name__
                logger.warning(
                    "offline replay interrupted",
                    extra={"collection": collection.value},
                    exc_info=True,
                )
                break

            if response.is_success:
                await queue.remove(collection, [item.id])
                summary.sent += 1
                REPLAYED_ITEMS.labels(collection=collection.value, result="sent").inc()
            elif response.status_code == httpx.codes.BAD_REQUEST:
                await queue.remove(collection, [item.id])
                summary.rejected += 1
                REPLAYED_ITEMS.labels(collection=collection.value, result="rejected").inc()
                logger.warning(
                    "offline item rejected by API",
                    extra={
                        "collection": collection.value,
                        "extra_fields": {"queued_id": item.id, "body": response.text[:500]},
                    },
                )
            else:
                summary.error = f"unexpected status {response.status_code}"
                break
        summary.remaining = await queue.count(collection)
    return report


__all__ = [
    "CollectionReport",
    "RecordStoreClient",
    "ReplayReport",
    "records_from_payload",
    "replay_offline_queue",
]
