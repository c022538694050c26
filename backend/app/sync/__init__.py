"""Offline write queue and its replay client."""

from .client import RecordStoreClient, ReplayReport, records_from_payload, replay_offline_queue
from .queue import OfflineQueue, QueueCollection

__all__ = [
    "OfflineQueue",
    "QueueCollection",
    "RecordStoreClient",
    "ReplayReport",
    "records_from_payload",
    "replay_offline_queue",
]
