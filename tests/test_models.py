"""Tests for the Note model and its wire format."""

from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone

import pytest

from mind_dump.errors import ValidationError
from mind_dump.models import (
    Note,
    NoteColor,
    NoteType,
    as_utc,
    note_from_dict,
    note_to_dict,
    parse_timestamp,
)

WHEN = datetime(2026, 1, 15, 10, 30, 30, tzinfo=timezone.utc)


class TestNoteDefaults:
    def test_defaults(self):
        n = Note()
        assert n.id is None
        assert n.title == ""
        assert n.content == ""
        assert n.color is NoteColor.BLUE
        assert n.note_type is NoteType.BASIC
        assert n.is_pinned is False
        assert n.tags == []
        assert n.sketch_payload is None

    def test_tag_lists_not_shared(self):
        a, b = Note(), Note()
        a.tags.append("x")
        assert b.tags == []

    def test_is_empty(self):
        assert Note().is_empty
        assert not Note(title="t").is_empty
        assert not Note(content="c").is_empty
        assert not Note(note_type=NoteType.SKETCH, sketch_payload=b"\x00").is_empty

    def test_copy_is_independent(self):
        n = Note(tags=["a"])
        c = n.copy()
        c.tags.append("b")
        c.title = "changed"
        assert n.tags == ["a"]
        assert n.title == ""

    def test_content_preview(self):
        assert Note(content="short").content_preview() == "short"
        long = Note(content="x" * 150)
        assert long.content_preview() == "x" * 100 + "..."
        assert long.content_preview(10) == "x" * 10 + "..."


class TestInvariants:
    def test_payload_on_non_sketch_rejected(self):
        with pytest.raises(ValidationError, match="sketch"):
            Note(sketch_payload=b"abc").check_invariants()

    def test_payload_on_sketch_ok(self):
        Note(note_type=NoteType.SKETCH, sketch_payload=b"abc").check_invariants()

    def test_duplicate_tags_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate"):
            Note(tags=["a", "a"]).check_invariants()

    def test_unnormalized_tag_rejected(self):
        with pytest.raises(ValidationError, match="normalized"):
            Note(tags=["Work"]).check_invariants()

    def test_edited_before_created_rejected(self):
        later = WHEN.replace(hour=11)
        with pytest.raises(ValidationError):
            Note(created_date=later, last_edited_date=WHEN).check_invariants()


class TestEnums:
    def test_type_parse_case_insensitive(self):
        assert NoteType.parse("Sketch") is NoteType.SKETCH
        assert NoteType.parse("markdown") is NoteType.MARKDOWN

    def test_type_parse_unknown(self):
        with pytest.raises(ValidationError):
            NoteType.parse("video")

    def test_color_parse_by_name_and_hex(self):
        assert NoteColor.parse("Purple") is NoteColor.PURPLE
        assert NoteColor.parse("#1da1f2") is NoteColor.LIGHT_BLUE
        assert NoteColor.parse("lightBlue") is NoteColor.LIGHT_BLUE

    def test_color_hex(self):
        assert NoteColor.RED.hex == "#FF0000"

    def test_color_parse_unknown(self):
        with pytest.raises(ValidationError):
            NoteColor.parse("mauve")


class TestWireFormat:
    def _sketch(self) -> Note:
        return Note(
            id="5d6f0c1e-2a44-4b1c-9a4e-3f5b8f0a9d11",
            title="Floor plan",
            content="kitchen",
            color=NoteColor.GREEN,
            note_type=NoteType.SKETCH,
            is_pinned=True,
            tags=["home"],
            sketch_payload=b"\x00\x01\xffdrawing",
            created_date=WHEN,
            last_edited_date=WHEN,
        )

    def test_field_names(self):
        record = note_to_dict(self._sketch())
        assert set(record) == {
            "id",
            "title",
            "content",
            "color",
            "type",
            "isPinned",
            "tags",
            "sketchPayload",
            "createdDate",
            "lastEditedDate",
        }
        assert record["type"] == "sketch"
        assert record["color"] == "green"
        assert record["isPinned"] is True
        assert base64.b64decode(record["sketchPayload"]) == b"\x00\x01\xffdrawing"
        assert record["createdDate"] == "2026-01-15T10:30:30+00:00"

    def test_payload_null_for_basic(self):
        record = note_to_dict(Note(id="x", title="t"))
        assert record["sketchPayload"] is None

    def test_from_dict_restores_fields(self):
        original = self._sketch()
        assert note_from_dict(note_to_dict(original)) == original

    def test_missing_optional_fields_default(self):
        note = note_from_dict({"id": "abc", "title": "Only a title"})
        assert note.content == ""
        assert note.note_type is NoteType.BASIC
        assert note.tags == []
        assert note.created_date is None

    def test_original_app_spelling_accepted(self):
        note = note_from_dict(
            {"id": "abc", "title": "t", "type": "Bullets", "color": "#6a0dad"}
        )
        assert note.note_type is NoteType.BULLETS
        assert note.color is NoteColor.PURPLE

    def test_missing_created_takes_edited(self):
        note = note_from_dict({"id": "a", "lastEditedDate": "2026-01-15T10:30:30Z"})
        assert note.created_date == note.last_edited_date == WHEN

    def test_tags_are_normalized(self):
        note = note_from_dict({"id": "a", "tags": ["Work"]})
        assert note.tags == ["work"]

    @pytest.mark.parametrize(
        "record",
        [
            "not a dict",
            {"id": 5},
            {"title": 3},
            {"isPinned": "yes"},
            {"tags": "work"},
            {"tags": [1, 2]},
            {"type": "video"},
            {"color": "mauve"},
            {"type": "basic", "sketchPayload": "AAEC"},
            {"type": "sketch", "sketchPayload": "not base64!!"},
            {"createdDate": "yesterday"},
        ],
    )
    def test_bad_records_rejected(self, record):
        with pytest.raises(ValidationError):
            note_from_dict(record)


class TestParseTimestamp:
    def test_naive_taken_as_utc(self):
        assert parse_timestamp("2026-01-15T10:30:30") == WHEN

    def test_zulu_suffix(self):
        assert parse_timestamp("2026-01-15T10:30:30Z") == WHEN

    def test_none(self):
        assert parse_timestamp(None) is None


class TestAsUtc:
    def test_naive_gets_utc(self):
        assert as_utc(datetime(2026, 1, 15, 10, 30, 30)) == WHEN

    def test_aware_unchanged(self):
        other = datetime(2026, 1, 15, 10, 30, 30, tzinfo=timezone(timedelta(hours=2)))
        assert as_utc(other) is other

    def test_none(self):
        assert as_utc(None) is None
