"""Offline media queue service with a single-pass sync guard."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass

from cropdoc.errors import MalformedRecordError
from cropdoc.logging import (
    log_record_enqueued,
    log_record_skipped,
    log_sync_finished,
    log_sync_item_failed,
    queue_logger,
    sync_logger,
)
from cropdoc.sync.record import PendingMediaRecord
from cropdoc.sync.remote import RemoteProcessor
from cropdoc.sync.store import KeyValueStore

DEFAULT_STORAGE_KEY = "pending_media_items"

MSG_IN_PROGRESS = "Sync already in progress"
MSG_NOTHING = "Nothing to sync"


@dataclass(frozen=True)
class SyncOutcome:
    """Result of one sync pass."""

    success: int
    failed: int
    message: str


class OfflineQueueService:
    """Durable queue of captures waiting for remote analysis.

    Records are saved when the immediate analysis call fails and are
    reconciled later by sync_all(). The whole queue lives under one key
    of a KeyValueStore as a list of JSON strings, so every mutation is a
    read-modify-write of that list. Mutations are serialized by an
    internal lock; only one sync pass runs at a time.

    Only one service instance should own a given store.

    Example:
        service = OfflineQueueService(SqliteKeyValueStore(path), processor)
        await service.enqueue(PendingMediaRecord.create("image", "/tmp/leaf.jpg"))
        outcome = await service.sync_all()
    """

    def __init__(
        self,
        store: KeyValueStore,
        processor: RemoteProcessor,
        *,
        storage_key: str = DEFAULT_STORAGE_KEY,
        item_timeout: float = 30.0,
    ) -> None:
        """Initialize the service.

        Args:
            store: Persistent key-value store holding the queue
            processor: Remote analysis client used by sync_all()
            storage_key: Key under which the queue list is stored
            item_timeout: Seconds allowed for each record's remote call
        """
        self._store = store
        self._processor = processor
        self.storage_key = storage_key
        self.item_timeout = item_timeout

        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._is_syncing = False

        self._log = queue_logger()
        self._sync_log = sync_logger()

    @property
    def processor(self) -> RemoteProcessor:
        """Remote analysis client used by sync_all()."""
        return self._processor

    @property
    def is_syncing(self) -> bool:
        """True while a sync pass is running."""
        return self._is_syncing

    async def init(self) -> None:
        """Open the underlying store. Safe to call repeatedly and concurrently."""
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            await self._store.open()
            self._initialized = True
            self._log.debug("Offline queue opened, key=%s", self.storage_key)

    async def close(self) -> None:
        """Close the underlying store."""
        async with self._init_lock:
            if not self._initialized:
                return
            await self._store.close()
            self._initialized = False

    async def _read_raw(self) -> list[str]:
        await self.init()
        return await self._store.get_string_list(self.storage_key) or []

    async def _write_raw(self, entries: list[str]) -> None:
        await self._store.set_string_list(self.storage_key, entries)

    def _decode(self, entries: list[str]) -> list[PendingMediaRecord]:
        records = []
        for position, raw in enumerate(entries):
            try:
                records.append(PendingMediaRecord.from_json(raw))
            except MalformedRecordError as e:
                log_record_skipped(self._log, position, str(e))
        return records

    @staticmethod
    def _id_of(raw: str) -> str | None:
        try:
            return PendingMediaRecord.from_json(raw).id
        except MalformedRecordError:
            return None

    async def list_all(self) -> list[PendingMediaRecord]:
        """Return every decodable record, newest first.

        Malformed entries are skipped and logged.
        """
        records = self._decode(await self._read_raw())
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    async def get(self, record_id: str) -> PendingMediaRecord | None:
        """Return the record with the given id, or None."""
        for record in self._decode(await self._read_raw()):
            if record.id == record_id:
                return record
        return None

    async def count(self) -> int:
        """Number of records list_all() would return."""
        return len(self._decode(await self._read_raw()))

    async def unsynced_count(self) -> int:
        """Number of records not yet synced."""
        return sum(1 for r in self._decode(await self._read_raw()) if not r.is_synced)

    async def stats(self) -> dict[str, int]:
        """Get queue statistics.

        Returns:
            Dictionary with total, synced and unsynced counts
        """
        records = self._decode(await self._read_raw())
        synced = sum(1 for r in records if r.is_synced)
        return {
            "total": len(records),
            "synced": synced,
            "unsynced": len(records) - synced,
        }

    async def enqueue(self, record: PendingMediaRecord) -> None:
        """Append a record to the queue. Duplicate ids are not checked."""
        async with self._write_lock:
            entries = await self._read_raw()
            entries.append(record.to_json())
            await self._write_raw(entries)
        log_record_enqueued(
            self._log, record.id, record.media_kind.value, record.content_source
        )

    async def mark_synced(self, record_id: str) -> None:
        """Mark a record as synced in place. No-op if the id is unknown."""
        async with self._write_lock:
            entries = await self._read_raw()
            changed = False
            for index, raw in enumerate(entries):
                try:
                    record = PendingMediaRecord.from_json(raw)
                except MalformedRecordError:
                    continue
                if record.id == record_id and not record.is_synced:
                    entries[index] = record.with_synced().to_json()
                    changed = True
            if changed:
                await self._write_raw(entries)

    async def delete(self, record_id: str) -> None:
        """Remove a record. No-op if the id is unknown."""
        async with self._write_lock:
            entries = await self._read_raw()
            kept = [raw for raw in entries if self._id_of(raw) != record_id]
            if len(kept) != len(entries):
                await self._write_raw(kept)
                self._log.info("Deleted pending media: record_id=%s", record_id)

    async def clear(self) -> None:
        """Remove every record."""
        async with self._write_lock:
            await self.init()
            await self._store.remove(self.storage_key)
        self._log.info("Cleared offline queue")

    async def sync_all(self) -> SyncOutcome:
        """Send every unsynced record for remote processing.

        Records are processed one at a time. A record that fails or times
        out is counted and the pass continues. If a pass is already
        running, returns immediately without doing anything.

        Returns:
            SyncOutcome with success and failure counts

        Raises:
            StorageUnavailableError: If the store cannot be read or written.
        """
        # Flag is checked and set before the first await
        if self._is_syncing:
            return SyncOutcome(success=0, failed=0, message=MSG_IN_PROGRESS)
        self._is_syncing = True

        started = time.monotonic()
        success = 0
        failed = 0
        try:
            unsynced = [r for r in await self.list_all() if not r.is_synced]
            if not unsynced:
                return SyncOutcome(success=0, failed=0, message=MSG_NOTHING)

            self._sync_log.info("Sync pass started: unsynced=%d", len(unsynced))
            for record in unsynced:
                try:
                    await asyncio.wait_for(
                        self._processor.process(record), timeout=self.item_timeout
                    )
                except asyncio.TimeoutError:
                    failed += 1
                    log_sync_item_failed(
                        self._sync_log, record.id, f"Timed out after {self.item_timeout}s"
                    )
                    continue
                except Exception as e:
                    # Any remote failure counts against this record only
                    failed += 1
                    log_sync_item_failed(self._sync_log, record.id, str(e))
                    continue

                await self.mark_synced(record.id)
                success += 1

            message = f"Synced {success} items"
            if failed:
                message += f", {failed} failed"
            return SyncOutcome(success=success, failed=failed, message=message)
        finally:
            self._is_syncing = False
            log_sync_finished(
                self._sync_log, success, failed, (time.monotonic() - started) * 1000
            )


def schedule_startup_sync(service: OfflineQueueService) -> asyncio.Task[SyncOutcome]:
    """Start a sync pass in the background without blocking app startup.

    The outcome is logged when the pass finishes. Callers may await the
    returned task to show the outcome message to the user.
    """
    log = sync_logger()

    def _report(task: asyncio.Task[SyncOutcome]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log.error("Startup sync failed: %s", error)
        elif task.result().success > 0:
            log.info("Startup sync: %s", task.result().message)

    task = asyncio.create_task(service.sync_all())
    task.add_done_callback(_report)
    return task
