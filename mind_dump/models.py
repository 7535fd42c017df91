"""Note data model and its wire (JSON) representation.

Python attributes are snake_case; the persisted and backup documents use
the camelCase field names below::

    {
        "id": "8f1c...",              # uuid4 string
        "title": "Morning Reflection",
        "content": "...",
        "color": "blue",
        "type": "bullets",
        "isPinned": true,
        "tags": ["reflection", "goals"],
        "sketchPayload": null,         # base64 string, sketch notes only
        "createdDate": "2026-01-15T10:30:30+00:00",
        "lastEditedDate": "2026-01-15T10:31:02+00:00"
    }
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .constants import PREVIEW_LENGTH
from .errors import ValidationError
from .tags import normalize_tag


class NoteType(str, Enum):
    """Formatting style of a note."""

    BASIC = "basic"
    BULLETS = "bullets"
    MARKDOWN = "markdown"
    SKETCH = "sketch"

    @classmethod
    def parse(cls, value: str) -> NoteType:
        """Case-insensitive lookup (older exports wrote ``"Basic"``)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValidationError(f"Unknown note type: {value!r}")


class NoteColor(str, Enum):
    """Fixed palette of note colors, serialized by name."""

    BLUE = "blue"
    PURPLE = "purple"
    LIGHT_BLUE = "light_blue"
    ORANGE = "orange"
    GREEN = "green"
    RED = "red"

    @property
    def hex(self) -> str:
        return _COLOR_HEX[self]

    @classmethod
    def parse(cls, value: str) -> NoteColor:
        """Accept a color name (any case) or its hex value."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for color, hex_value in _COLOR_HEX.items():
                if key in (color.value, hex_value.lower()):
                    return color
            if key == "lightblue":
                return cls.LIGHT_BLUE
        raise ValidationError(f"Unknown note color: {value!r}")


_COLOR_HEX: dict[NoteColor, str] = {
    NoteColor.BLUE: "#3b5998",
    NoteColor.PURPLE: "#6a0dad",
    NoteColor.LIGHT_BLUE: "#1DA1F2",
    NoteColor.ORANGE: "#FF5700",
    NoteColor.GREEN: "#25D366",
    NoteColor.RED: "#FF0000",
}


@dataclass
class Note:
    """A single note.

    ``id``, ``created_date`` and ``last_edited_date`` are ``None`` for a
    draft that has never been saved; the store fills them in on first save.
    """

    title: str = ""
    content: str = ""
    color: NoteColor = NoteColor.BLUE
    note_type: NoteType = NoteType.BASIC
    is_pinned: bool = False
    tags: list[str] = field(default_factory=list)
    sketch_payload: bytes | None = None
    id: str | None = None
    created_date: datetime | None = None
    last_edited_date: datetime | None = None

    @property
    def is_sketch(self) -> bool:
        return self.note_type is NoteType.SKETCH

    @property
    def is_empty(self) -> bool:
        """True when there is nothing worth saving (no text, no drawing)."""
        return not self.title and not self.content and not self.sketch_payload

    def content_preview(self, max_length: int = PREVIEW_LENGTH) -> str:
        """Return the first *max_length* characters of the content."""
        if len(self.content) <= max_length:
            return self.content
        return self.content[:max_length] + "..."

    def copy(self) -> Note:
        """Return an independent copy (the tag list is not shared)."""
        return replace(self, tags=list(self.tags))

    def check_invariants(self) -> None:
        """Raise ``ValidationError`` if the note breaks a model invariant."""
        if self.sketch_payload is not None and not self.is_sketch:
            raise ValidationError(
                f"Only sketch notes can carry a sketch payload "
                f"(note type is {self.note_type.value})"
            )
        if self.sketch_payload is not None and not isinstance(
            self.sketch_payload, (bytes, bytearray)
        ):
            raise ValidationError("Sketch payload must be bytes")
        if len(set(self.tags)) != len(self.tags):
            raise ValidationError("Duplicate tags on note")
        for tag in self.tags:
            if normalize_tag(tag) != tag:
                raise ValidationError(f"Tag is not normalized: {tag!r}")
        if (
            self.created_date is not None
            and self.last_edited_date is not None
            and self.last_edited_date < self.created_date
        ):
            raise ValidationError("lastEditedDate is earlier than createdDate")


# -- wire format --------------------------------------------------------------


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return as_utc(value).isoformat()


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to a naive datetime; aware values pass through."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"Timestamp must be a string, not {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError(f"Invalid timestamp: {value!r}") from exc
    return as_utc(parsed)


def encode_payload(payload: bytes | None) -> str | None:
    if payload is None:
        return None
    return base64.b64encode(bytes(payload)).decode("ascii")


def decode_payload(value: Any) -> bytes | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("sketchPayload must be a base64 string")
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValidationError("sketchPayload is not valid base64") from exc


def note_to_dict(note: Note) -> dict[str, Any]:
    """Serialize *note* to its JSON-compatible record."""
    return {
        "id": note.id,
        "title": note.title,
        "content": note.content,
        "color": note.color.value,
        "type": note.note_type.value,
        "isPinned": note.is_pinned,
        "tags": list(note.tags),
        "sketchPayload": encode_payload(note.sketch_payload),
        "createdDate": format_timestamp(note.created_date),
        "lastEditedDate": format_timestamp(note.last_edited_date),
    }


def _field(data: dict, key: str, kind: type, default: Any) -> Any:
    value = data.get(key, default)
    if value is None and default is None:
        return None
    if not isinstance(value, kind):
        raise ValidationError(
            f"Field {key!r} must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def note_from_dict(data: Any) -> Note:
    """Build a ``Note`` from a record produced by :func:`note_to_dict`.

    Raises ``ValidationError`` for any schema problem.  Tags are only
    checked for normalization and uniqueness here; vocabulary rules such as
    length limits belong to ``TagRules``.
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Note record must be an object, not {type(data).__name__}")

    note_id = _field(data, "id", str, None)
    tags = _field(data, "tags", list, [])
    if not all(isinstance(t, str) for t in tags):
        raise ValidationError("Field 'tags' must be a list of strings")

    note = Note(
        id=note_id,
        title=_field(data, "title", str, ""),
        content=_field(data, "content", str, ""),
        color=NoteColor.parse(data.get("color", NoteColor.BLUE.value)),
        note_type=NoteType.parse(data.get("type", NoteType.BASIC.value)),
        is_pinned=_field(data, "isPinned", bool, False),
        tags=[normalize_tag(t) for t in tags],
        sketch_payload=decode_payload(data.get("sketchPayload")),
        created_date=parse_timestamp(data.get("createdDate")),
        last_edited_date=parse_timestamp(data.get("lastEditedDate")),
    )
    if note.last_edited_date is None:
        note.last_edited_date = note.created_date
    elif note.created_date is None:
        note.created_date = note.last_edited_date
    note.check_invariants()
    return note
