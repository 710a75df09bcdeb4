"""Sync module for offline media storage and remote reconciliation."""

from cropdoc.sync.record import MediaKind, PendingMediaRecord, new_record_id
from cropdoc.sync.remote import HttpRemoteProcessor, RemoteProcessor, SimulatedRemoteProcessor
from cropdoc.sync.service import OfflineQueueService, SyncOutcome, schedule_startup_sync
from cropdoc.sync.store import KeyValueStore, MemoryKeyValueStore, SqliteKeyValueStore

__all__ = [
    "HttpRemoteProcessor",
    "KeyValueStore",
    "MediaKind",
    "MemoryKeyValueStore",
    "OfflineQueueService",
    "PendingMediaRecord",
    "RemoteProcessor",
    "SimulatedRemoteProcessor",
    "SqliteKeyValueStore",
    "SyncOutcome",
    "new_record_id",
    "schedule_startup_sync",
]
