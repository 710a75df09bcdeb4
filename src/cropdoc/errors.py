"""Error types raised by the offline media queue."""


class QueueError(Exception):
    """Base class for offline queue errors."""


class MalformedRecordError(QueueError):
    """A stored entry cannot be decoded into a PendingMediaRecord."""


class StorageUnavailableError(QueueError):
    """The persistent store cannot be opened, read or written."""


class RemoteProcessingError(QueueError):
    """The remote analysis endpoint rejected or failed to process a record."""

    def __init__(self, message: str, record_id: str | None = None) -> None:
        super().__init__(message)
        self.record_id = record_id
