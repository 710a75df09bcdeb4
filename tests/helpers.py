"""Test helpers for building records and fake collaborators."""

import asyncio

from cropdoc.errors import RemoteProcessingError
from cropdoc.sync import MediaKind, PendingMediaRecord


def make_record(
    record_id: str,
    created_at: int = 1700000000000,
    media_kind: MediaKind = MediaKind.IMAGE,
    **overrides,
) -> PendingMediaRecord:
    """Build a record with sensible defaults for tests."""
    fields = {
        "id": record_id,
        "file_path": f"/captures/{record_id}.jpg",
        "media_kind": media_kind,
        "created_at": created_at,
    }
    fields.update(overrides)
    return PendingMediaRecord(**fields)


class StubProcessor:
    """Remote processor that records calls and fails for chosen ids."""

    def __init__(self, fail_ids=(), delay: float = 0.0) -> None:
        self.fail_ids = set(fail_ids)
        self.delay = delay
        self.calls: list[str] = []
        self.closed = False

    async def process(self, record: PendingMediaRecord) -> None:
        self.calls.append(record.id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if record.id in self.fail_ids:
            raise RemoteProcessingError("analysis backend rejected upload", record_id=record.id)

    async def close(self) -> None:
        self.closed = True
