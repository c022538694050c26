from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Sequence
from dataclasses import asdict
from typing import Any

from ..core.config import get_settings
from ..core.logging import configure_logging
from ..insights import analyze_patterns, calculate_streak
from .client import RecordStoreClient, records_from_payload, replay_offline_queue
from .queue import OfflineQueue, QueueCollection


def _client_from_args(args: argparse.Namespace) -> RecordStoreClient:
    settings = get_settings()
    return RecordStoreClient(
        args.api_url or settings.api_base_url,
        timeout=settings.request_timeout_seconds,
        retries=settings.retry_attempts,
        retry_delay=settings.retry_delay_seconds,
    )


async def _enqueue(args: argparse.Namespace) -> dict[str, Any]:
    queue = await OfflineQueue.open(args.queue_url or get_settings().offline_queue_url)
    try:
        item_id = await queue.add(QueueCollection(args.collection), json.loads(args.payload))
    finally:
        await queue.close()
    return {"collection": args.collection, "id": item_id}


async def _status(args: argparse.Namespace) -> dict[str, Any]:
    queue = await OfflineQueue.open(args.queue_url or get_settings().offline_queue_url)
    try:
        return {collection.value: await queue.count(collection) for collection in QueueCollection}
    finally:
        await queue.close()


async def _replay(args: argparse.Namespace) -> dict[str, Any]:
    queue = await OfflineQueue.open(args.queue_url or get_settings().offline_queue_url)
    try:
        async with _client_from_args(args) as client:
            report = await replay_offline_queue(queue, client)
    finally:
        await queue.close()
    return {
        collection.value: asdict(summary) for collection, summary in report.collections.items()
    }


async def _streak(args: argparse.Namespace) -> dict[str, Any]:
    settings = get_settings()
    async with _client_from_args(args) as client:
        items = await client.fetch_mood_entries(limit=args.limit)
    records = records_from_payload(items)
    streak = calculate_streak(records, tz=settings.tzinfo)
    patterns = analyze_patterns(records, tz=settings.tzinfo, average=settings.transition_average)
    return {"streak": asdict(streak), "patterns": asdict(patterns)}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="moodsync-sync",
        description="Manage the MoodSync offline queue",
    )
    parser.add_argument("--queue-url", default=None, help="Offline queue database URL")
    parser.add_argument("--api-url", default=None, help="MoodSync API base URL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    enqueue = subparsers.add_parser("enqueue", help="Stage a write for later replay")
    enqueue.add_argument("collection", choices=[item.value for item in QueueCollection])
    enqueue.add_argument("payload", help="JSON body accepted by the matching POST endpoint")
    enqueue.set_defaults(handler=_enqueue)

    status = subparsers.add_parser("status", help="Show queued item counts")
    status.set_defaults(handler=_status)

    replay = subparsers.add_parser("replay", help="Post queued writes to the API")
    replay.set_defaults(handler=_replay)

    streak = subparsers.add_parser("streak", help="Fetch entries and print streak and patterns")
    streak.add_argument("--limit", type=int, default=500, help="Entries to fetch")
    streak.set_defaults(handler=_streak)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    result = asyncio.run(args.handler(args))
    print(json.dumps(result, ensure_ascii=False, indent=2, default=str))
    if args.command == "replay" and any(item["error"] for item in result.values()):
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
