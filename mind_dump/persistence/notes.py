"""Persisted note document (``notes.json``)."""

from __future__ import annotations

import json
import shutil
from pathlib import Path

from ..errors import PersistenceError, ValidationError
from ..log import logger
from ..models import Note, note_from_dict, note_to_dict
from ._base import JsonStore


class NoteDocumentStore(JsonStore):
    """The whole note collection as a JSON array of note records.

    Before every write the previous document is copied to *snapshot_path*;
    when the main document is unreadable at startup the snapshot is used
    instead.  Empty notes (no title, content or drawing) are never written.
    """

    def __init__(self, path: Path, snapshot_path: Path | None = None) -> None:
        super().__init__(path)
        self.snapshot_path = Path(snapshot_path) if snapshot_path else None

    def _default(self) -> list:
        return []

    def load(self) -> list[Note]:
        """Load every note, falling back to the snapshot on a corrupt file."""
        if not self.path.exists():
            return []
        try:
            notes = self._read(self.path)
            logger.debug("loaded %d notes from %s", len(notes), self.path)
            return notes
        except (OSError, ValueError) as exc:
            logger.warning("failed to load notes from %s: %s", self.path, exc)

        if self.snapshot_path is not None and self.snapshot_path.exists():
            try:
                notes = self._read(self.snapshot_path)
                logger.warning(
                    "recovered %d notes from snapshot %s", len(notes), self.snapshot_path
                )
                return notes
            except (OSError, ValueError) as exc:
                logger.warning("snapshot restore failed: %s", exc)
        return []

    def save(self, notes: list[Note]) -> None:
        """Persist *notes*, skipping empty ones."""
        if self.snapshot_path is not None and self._is_readable(self.path):
            try:
                shutil.copyfile(self.path, self.snapshot_path)
            except OSError as exc:
                raise PersistenceError(
                    f"cannot snapshot {self.path}: {exc}", self.snapshot_path
                ) from exc
        records = [note_to_dict(n) for n in notes if not n.is_empty]
        self.save_raw(records)

    @classmethod
    def _is_readable(cls, path: Path) -> bool:
        """True if *path* holds a valid document (a corrupt one is never snapshotted)."""
        if not path.exists():
            return False
        try:
            cls._read(path)
        except (OSError, ValueError):
            return False
        return True

    @staticmethod
    def _read(path: Path) -> list[Note]:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ValidationError(f"{path.name} must contain a JSON array")
        notes = [note_from_dict(record) for record in raw]
        seen: set[str] = set()
        for note in notes:
            if note.id is None:
                raise ValidationError("persisted note without an id")
            if note.id in seen:
                raise ValidationError(f"duplicate note id {note.id}")
            seen.add(note.id)
        return notes
