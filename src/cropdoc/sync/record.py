"""Pending media record stored in the offline queue."""

from __future__ import annotations

import base64
import binascii
import json
import time
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any

from cropdoc.errors import MalformedRecordError, RemoteProcessingError


class MediaKind(str, Enum):
    """Kind of captured media."""

    IMAGE = "image"
    VIDEO = "video"


def _now_millis() -> int:
    return int(time.time() * 1000)


def new_record_id(created_at: int | None = None) -> str:
    """Generate a record id from the capture timestamp.

    The timestamp prefix keeps ids readable; the random suffix keeps two
    captures in the same millisecond from colliding.

    Args:
        created_at: Epoch milliseconds (defaults to now)

    Returns:
        Id of the form "<millis>-<8 hex chars>"
    """
    millis = created_at if created_at is not None else _now_millis()
    return f"{millis}-{uuid.uuid4().hex[:8]}"


def _require(data: dict, key: str, kind: type) -> Any:
    if key not in data:
        raise MalformedRecordError(f"Missing required field: {key}")
    value = data[key]
    # bool is a subclass of int
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise MalformedRecordError(
            f"Field {key} must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def _optional(data: dict, key: str, kind: type, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise MalformedRecordError(
            f"Field {key} must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


@dataclass(frozen=True)
class PendingMediaRecord:
    """One captured image or video waiting for remote analysis.

    Attributes:
        id: Caller-assigned identifier, unique within the queue.
        file_path: Device-local path to the media file. May be empty when
            inline_content carries the payload.
        media_kind: Image or video.
        voice_note: Optional transcription recorded with the capture.
        duration_seconds: Video length; 0 for images.
        created_at: Epoch milliseconds when the capture was taken.
        inline_content: Optional base64 payload used where no durable file
            path exists. Takes precedence over file_path.
        is_synced: True once the record has been processed remotely.
    """

    id: str
    file_path: str
    media_kind: MediaKind
    created_at: int
    voice_note: str | None = None
    duration_seconds: int = 0
    inline_content: str | None = None
    is_synced: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.media_kind, MediaKind):
            object.__setattr__(self, "media_kind", MediaKind(self.media_kind))
        if self.duration_seconds < 0:
            raise ValueError("duration_seconds must be >= 0")

    @classmethod
    def create(
        cls,
        media_kind: MediaKind | str,
        file_path: str = "",
        *,
        inline_content: str | None = None,
        voice_note: str | None = None,
        duration_seconds: int = 0,
        created_at: int | None = None,
        record_id: str | None = None,
    ) -> PendingMediaRecord:
        """Build a new unsynced record, filling id and timestamp from the clock."""
        created = created_at if created_at is not None else _now_millis()
        return cls(
            id=record_id or new_record_id(created),
            file_path=file_path,
            media_kind=MediaKind(media_kind),
            created_at=created,
            voice_note=voice_note,
            duration_seconds=duration_seconds,
            inline_content=inline_content,
        )

    @property
    def content_source(self) -> str | None:
        """Return "inline", "file" or None depending on which payload is usable."""
        if self.inline_content:
            return "inline"
        if self.file_path:
            return "file"
        return None

    def with_synced(self, value: bool = True) -> PendingMediaRecord:
        """Return a copy marked as synced.

        Raises:
            ValueError: If asked to set is_synced back to False.
        """
        if not value:
            raise ValueError("is_synced can only transition from False to True")
        return replace(self, is_synced=True)

    def read_content(self) -> bytes:
        """Return the raw media bytes, preferring the inline payload.

        Raises:
            RemoteProcessingError: If there is no usable content.
        """
        if self.inline_content:
            try:
                return base64.b64decode(self.inline_content, validate=True)
            except (binascii.Error, ValueError) as e:
                raise RemoteProcessingError(
                    f"Invalid inline content: {e}", record_id=self.id
                ) from e

        if self.file_path:
            try:
                return Path(self.file_path).read_bytes()
            except OSError as e:
                raise RemoteProcessingError(
                    f"Cannot read {self.file_path}: {e}", record_id=self.id
                ) from e

        raise RemoteProcessingError("Record has no content", record_id=self.id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored JSON shape. Absent optionals are explicit None."""
        return {
            "id": self.id,
            "filePath": self.file_path,
            "fileType": self.media_kind.value,
            "voiceTranscription": self.voice_note,
            "durationSeconds": self.duration_seconds,
            "createdAt": self.created_at,
            "isSynced": self.is_synced,
            "base64Content": self.inline_content,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PendingMediaRecord:
        """Inverse of to_dict.

        Raises:
            MalformedRecordError: If a required field is missing or any
                field has the wrong type.
        """
        if not isinstance(data, dict):
            raise MalformedRecordError(f"Expected an object, got {type(data).__name__}")

        file_type = _require(data, "fileType", str)
        try:
            media_kind = MediaKind(file_type)
        except ValueError as e:
            raise MalformedRecordError(f"Unknown fileType: {file_type!r}") from e

        duration = _optional(data, "durationSeconds", int, 0)
        if duration < 0:
            raise MalformedRecordError(f"durationSeconds must be >= 0, got {duration}")

        return cls(
            id=_require(data, "id", str),
            file_path=_require(data, "filePath", str),
            media_kind=media_kind,
            created_at=_require(data, "createdAt", int),
            voice_note=_optional(data, "voiceTranscription", str, None),
            duration_seconds=duration,
            inline_content=_optional(data, "base64Content", str, None),
            is_synced=_optional(data, "isSynced", bool, False),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, raw: str) -> PendingMediaRecord:
        """Decode one stored queue entry."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise MalformedRecordError(f"Invalid JSON: {e}") from e
        return cls.from_dict(data)
