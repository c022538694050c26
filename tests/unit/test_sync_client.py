from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import httpx
import pytest

from backend.app.sync import cli
from backend.app.sync.client import RecordStoreClient, records_from_payload, replay_offline_queue
from backend.app.sync.queue import OfflineQueue, QueueCollection


@pytest.fixture()
async def queue(tmp_path: Path):
    offline = await OfflineQueue.open(f"sqlite+aiosqlite:///{tmp_path / 'offline.db'}")
    try:
        yield offline
    finally:
        await offline.close()


def _client(handler) -> RecordStoreClient:
    return RecordStoreClient(
        "http://moodsync.test",
        retries=2,
        retry_delay=0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.anyio
async def test_replay_removes_accepted_and_rejected(queue: OfflineQueue) -> None:
    await queue.add(QueueCollection.MOOD_ENTRIES, {"emotion": "happy", "intensity": 7})
    await queue.add(QueueCollection.MOOD_ENTRIES, {"emotion": "happy", "intensity": 11})
    await queue.add(QueueCollection.BREATHING_SESSIONS, {"pattern": "4-7-8", "duration": 5})
    seen: list[tuple[str, dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append((request.url.path, body))
        if body.get("intensity") == 11:
            return httpx.Response(400, json={"detail": "intensity: too large"})
        return httpx.Response(201, json={"id": len(seen), **body})

    async with _client(handler) as client:
        report = await replay_offline_queue(queue, client)

    moods = report.collections[QueueCollection.MOOD_ENTRIES]
    breathing = report.collections[QueueCollection.BREATHING_SESSIONS]
    assert (moods.sent, moods.rejected, moods.remaining) == (1, 1, 0)
    assert (breathing.sent, breathing.remaining) == (1, 0)
    assert report.complete is True
    assert [path for path, _ in seen] == [
        "/api/mood-entries",
        "/api/mood-entries",
        "/api/breathing-sessions",
    ]


@pytest.mark.anyio
async def test_replay_stops_on_network_failure(queue: OfflineQueue) -> None:
    await queue.add(QueueCollection.HEALTH_DATA, {"heartRate": 70})
    await queue.add(QueueCollection.HEALTH_DATA, {"heartRate": 72})
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        raise httpx.ConnectError("offline", request=request)

    async with _client(handler) as client:
        report = await replay_offline_queue(queue, client)

    health = report.collections[QueueCollection.HEALTH_DATA]
    assert health.sent == 0
    assert health.remaining == 2
    assert health.error
    assert report.complete is False
    # two attempts for the first item, then the collection is abandoned
    assert calls["count"] == 2


@pytest.mark.anyio
async def test_replay_retries_server_errors(queue: OfflineQueue) -> None:
    await queue.add(QueueCollection.MOOD_ENTRIES, {"emotion": "calm", "intensity": 5})
    responses = iter([httpx.Response(503), httpx.Response(201, json={"id": 1})])

    async with _client(lambda request: next(responses)) as client:
        report = await replay_offline_queue(queue, client)

    assert report.collections[QueueCollection.MOOD_ENTRIES].sent == 1
    assert await queue.count(QueueCollection.MOOD_ENTRIES) == 0


@pytest.mark.anyio
async def test_replay_keeps_items_on_unexpected_status(queue: OfflineQueue) -> None:
    await queue.add(QueueCollection.MOOD_ENTRIES, {"emotion": "calm", "intensity": 5})

    async with _client(lambda request: httpx.Response(409)) as client:
        report = await replay_offline_queue(queue, client)

    moods = report.collections[QueueCollection.MOOD_ENTRIES]
    assert moods.remaining == 1
    assert moods.error == "unexpected status 409"


@pytest.mark.anyio
async def test_fetch_mood_entries_in_range_sends_camel_case_params() -> None:
    captured: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured.update(request.url.params)
        return httpx.Response(200, json=[])

    start = datetime(2024, 3, 1, tzinfo=UTC)
    end = datetime(2024, 3, 8, tzinfo=UTC)
    async with _client(handler) as client:
        assert await client.fetch_mood_entries_in_range(start, end) == []

    assert captured == {"startDate": start.isoformat(), "endDate": end.isoformat()}


def test_records_from_payload() -> None:
    records = records_from_payload(
        [
            {
                "id": 1,
                "emotion": "happy",
                "intensity": 7,
                "emotionTriggers": ["sleep"],
                "timestamp": "2024-03-04T09:00:00Z",
            },
            {"id": 2, "emotion": "sad", "intensity": 3, "timestamp": "2024-03-04T10:00:00+00:00"},
        ]
    )

    assert records[0].timestamp == datetime(2024, 3, 4, 9, tzinfo=UTC)
    assert records[0].triggers == ["sleep"]
    assert records[1].triggers is None


def test_cli_enqueue_and_status(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"

    assert cli.main(["--queue-url", url, "enqueue", "mood_entries", '{"emotion": "love", "intensity": 9}']) == 0
    capsys.readouterr()
    assert cli.main(["--queue-url", url, "status"]) == 0

    counts = json.loads(capsys.readouterr().out)
    assert counts == {"mood_entries": 1, "health_data": 0, "breathing_sessions": 0}
