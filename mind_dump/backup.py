"""Whole-collection export and import.

The backup document is UTF-8 JSON::

    {"notes": [<note record>, ...]}

with the same note records as the persisted document (sketch payloads
base64-encoded).  Importing appends every entry as a new note with a fresh
id; any problem rejects the whole document and nothing is added.
"""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from pathlib import Path

from .constants import EXPORT_FILENAME_PREFIX, EXPORT_FILENAME_SUFFIX
from .errors import BackupExportError, BackupImportError, ValidationError
from .log import logger
from .models import Note, note_from_dict, note_to_dict
from .persistence import BackupHistoryStore
from .store import NoteStore


def default_export_filename(today: date | None = None) -> str:
    """``mind_dump_notes_YYYY-MM-DD.json`` for *today* (default: now)."""
    today = today or datetime.now().date()
    return f"{EXPORT_FILENAME_PREFIX}{today.strftime('%Y-%m-%d')}{EXPORT_FILENAME_SUFFIX}"


def encode_notes(notes: list[Note]) -> bytes:
    """Serialize *notes* as a backup document."""
    try:
        document = {"notes": [note_to_dict(n) for n in notes]}
        return json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise BackupExportError(str(exc)) from exc


def decode_notes(data: bytes | str) -> list[Note]:
    """Parse a backup document into notes (ids are kept as found).

    Accepts ``{"notes": [...]}`` and a bare top-level array.  Raises
    ``BackupImportError`` on any problem.
    """
    try:
        text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
        document = json.loads(text)
    except UnicodeDecodeError as exc:
        raise BackupImportError("file is not UTF-8 text") from exc
    except json.JSONDecodeError as exc:
        raise BackupImportError(f"not a JSON document ({exc.msg} at line {exc.lineno})") from exc

    if isinstance(document, dict):
        if "notes" not in document:
            raise BackupImportError("missing 'notes' list")
        records = document["notes"]
    else:
        records = document
    if not isinstance(records, list):
        raise BackupImportError("'notes' must be a list")

    notes: list[Note] = []
    for position, record in enumerate(records):
        try:
            notes.append(note_from_dict(record))
        except ValidationError as exc:
            raise BackupImportError(f"note #{position + 1}: {exc}") from exc
    return notes


class BackupCodec:
    """Exports the store to a backup document and imports one back."""

    def __init__(self, store: NoteStore, history: BackupHistoryStore | None = None) -> None:
        self.store = store
        self.history = history

    # -- export ---------------------------------------------------------------

    def export_bytes(self) -> bytes:
        return encode_notes(self.store.notes)

    def export_to(self, directory: Path, today: date | None = None) -> Path:
        """Write a backup into *directory* under the default filename."""
        data = self.export_bytes()
        path = Path(directory) / default_export_filename(today)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise BackupExportError(f"cannot write {path}: {exc}") from exc
        if self.history is not None:
            self.history.record_export(datetime.now(timezone.utc))
        logger.info("exported %d notes to %s", len(self.store), path)
        return path

    # -- import ---------------------------------------------------------------

    def import_bytes(self, data: bytes | str) -> list[Note]:
        """Append every note in *data* under a fresh id; return the new notes."""
        notes = decode_notes(data)
        for note in notes:
            note.id = None
        try:
            added = self.store.add_notes(notes, keep_dates=True)
        except ValidationError as exc:
            raise BackupImportError(str(exc)) from exc
        if self.history is not None:
            self.history.record_import(len(added), datetime.now(timezone.utc))
        logger.info("imported %d notes", len(added))
        return added

    def import_from(self, path: Path) -> list[Note]:
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise BackupImportError(f"cannot read {path}: {exc.strerror or exc}") from exc
        return self.import_bytes(data)
