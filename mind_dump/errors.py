"""Exception hierarchy for the note store."""

from __future__ import annotations


class MindDumpError(Exception):
    """Base class for every error raised by ``mind_dump``."""


class ValidationError(MindDumpError, ValueError):
    """Input rejected before any state changed (bad tag, bad note fields)."""


class PersistenceError(MindDumpError):
    """The durable write (or read) of a store file failed."""

    def __init__(self, message: str, path: object = None) -> None:
        super().__init__(message)
        self.path = path


class NotFoundError(MindDumpError, LookupError):
    """A mutation referenced a note id that is not in the collection."""

    def __init__(self, note_id: str | None) -> None:
        super().__init__(f"Note not found: {note_id}")
        self.note_id = note_id


class BackupImportError(MindDumpError):
    """A backup document is malformed, unreadable, or fails schema checks.

    Nothing is added to the collection when this is raised.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(f"Import failed: {reason}")
        self.reason = reason


class BackupExportError(MindDumpError):
    """The collection could not be serialized or written as a backup."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Export failed: {reason}")
        self.reason = reason
