"""Unit tests for PendingMediaRecord serialization and state rules."""

import base64
import json

import pytest

from cropdoc.errors import MalformedRecordError, RemoteProcessingError
from cropdoc.sync import MediaKind, PendingMediaRecord, new_record_id
from tests.helpers import make_record


class TestSerialization:
    """to_dict / from_dict behaviour."""

    def test_round_trip_with_all_fields(self):
        """A fully populated record survives to_dict and from_dict."""
        record = make_record(
            "full",
            media_kind=MediaKind.VIDEO,
            voice_note="Leaves turning yellow near the stem",
            duration_seconds=15,
            inline_content=base64.b64encode(b"video-bytes").decode("ascii"),
            is_synced=True,
        )

        assert PendingMediaRecord.from_dict(record.to_dict()) == record

    def test_round_trip_with_defaults(self):
        """A minimal record survives to_json and from_json."""
        record = make_record("minimal")

        assert PendingMediaRecord.from_json(record.to_json()) == record

    def test_optional_fields_serialize_as_explicit_null(self):
        """Absent optional fields are present in the output as None."""
        data = make_record("nulls").to_dict()

        assert data["voiceTranscription"] is None
        assert data["base64Content"] is None
        assert set(data) == {
            "id",
            "filePath",
            "fileType",
            "voiceTranscription",
            "durationSeconds",
            "createdAt",
            "isSynced",
            "base64Content",
        }

    def test_uses_wire_keys(self):
        """Stored JSON uses the documented key names and values."""
        data = json.loads(make_record("wire", created_at=1700000000123).to_json())

        assert data["fileType"] == "image"
        assert data["createdAt"] == 1700000000123
        assert data["isSynced"] is False
        assert data["durationSeconds"] == 0

    def test_missing_optional_fields_default(self):
        """durationSeconds and isSynced default when absent."""
        record = PendingMediaRecord.from_dict(
            {"id": "a", "filePath": "/a.jpg", "fileType": "image", "createdAt": 1}
        )

        assert record.duration_seconds == 0
        assert record.is_synced is False
        assert record.voice_note is None
        assert record.inline_content is None

    @pytest.mark.parametrize("missing", ["id", "filePath", "fileType", "createdAt"])
    def test_missing_required_field_is_malformed(self, missing):
        """Each required field must be present."""
        data = make_record("req").to_dict()
        del data[missing]

        with pytest.raises(MalformedRecordError):
            PendingMediaRecord.from_dict(data)

    @pytest.mark.parametrize(
        "key, value",
        [
            ("id", 42),
            ("filePath", None),
            ("createdAt", "1700000000"),
            ("createdAt", True),
            ("fileType", "audio"),
            ("durationSeconds", "15"),
            ("durationSeconds", -1),
            ("isSynced", "yes"),
        ],
    )
    def test_wrong_type_is_malformed(self, key, value):
        """Mistyped fields are rejected rather than coerced."""
        data = make_record("typed").to_dict()
        data[key] = value

        with pytest.raises(MalformedRecordError):
            PendingMediaRecord.from_dict(data)

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", "null", '"text"'])
    def test_from_json_rejects_non_objects(self, raw):
        with pytest.raises(MalformedRecordError):
            PendingMediaRecord.from_json(raw)


class TestSyncFlag:
    """is_synced transitions."""

    def test_with_synced_returns_synced_copy(self):
        """with_synced leaves the original untouched."""
        record = make_record("s1")

        synced = record.with_synced()

        assert synced.is_synced is True
        assert record.is_synced is False
        assert synced.id == record.id
        assert synced.created_at == record.created_at

    def test_with_synced_twice_stays_synced(self):
        record = make_record("s2").with_synced().with_synced(True)

        assert record.is_synced is True

    def test_cannot_unsync(self):
        """Setting is_synced back to False is rejected."""
        with pytest.raises(ValueError):
            make_record("s3").with_synced(False)

    def test_record_is_immutable(self):
        """created_at cannot be reassigned."""
        record = make_record("s4")

        with pytest.raises(AttributeError):
            record.created_at = 5  # type: ignore[misc]


class TestContent:
    """Content source selection and reading."""

    def test_inline_content_takes_precedence(self, tmp_path):
        """Inline payload is used even when a file path exists."""
        path = tmp_path / "leaf.jpg"
        path.write_bytes(b"from-file")
        record = make_record(
            "c1",
            file_path=str(path),
            inline_content=base64.b64encode(b"from-inline").decode("ascii"),
        )

        assert record.content_source == "inline"
        assert record.read_content() == b"from-inline"

    def test_reads_file_when_no_inline_content(self, tmp_path):
        path = tmp_path / "leaf.jpg"
        path.write_bytes(b"from-file")
        record = make_record("c2", file_path=str(path))

        assert record.content_source == "file"
        assert record.read_content() == b"from-file"

    def test_missing_file_raises_remote_error(self, tmp_path):
        record = make_record("c3", file_path=str(tmp_path / "gone.jpg"))

        with pytest.raises(RemoteProcessingError):
            record.read_content()

    def test_no_content_raises_remote_error(self):
        record = make_record("c4", file_path="")

        assert record.content_source is None
        with pytest.raises(RemoteProcessingError):
            record.read_content()

    def test_invalid_base64_raises_remote_error(self):
        record = make_record("c5", inline_content="***not base64***")

        with pytest.raises(RemoteProcessingError):
            record.read_content()


class TestCreate:
    """Record construction helpers."""

    def test_new_record_id_uses_timestamp_prefix(self):
        record_id = new_record_id(1700000000000)

        assert record_id.startswith("1700000000000-")

    def test_new_record_ids_do_not_collide_within_same_millisecond(self):
        """Ids generated for the same timestamp are still unique."""
        ids = {new_record_id(1700000000000) for _ in range(500)}

        assert len(ids) == 500

    def test_create_fills_id_and_timestamp(self):
        record = PendingMediaRecord.create("video", "/v.mp4", duration_seconds=15)

        assert record.media_kind == MediaKind.VIDEO
        assert record.created_at > 0
        assert record.id.startswith(f"{record.created_at}-")
        assert record.is_synced is False

    def test_negative_duration_rejected(self):
        with pytest.raises(ValueError):
            make_record("neg", duration_seconds=-3)

    def test_direct_construction_accepts_kind_string(self):
        """A plain string kind is converted just like create() does."""
        record = make_record("str-kind", media_kind="video")

        assert record.media_kind is MediaKind.VIDEO
        assert record.to_dict()["fileType"] == "video"

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            make_record("odd", media_kind="audio")
