"""mind_dump: a small embedded note store with tags, autosave and backups."""

from .autosave import AutosaveCoordinator
from .backup import BackupCodec, default_export_filename
from .errors import (
    BackupExportError,
    BackupImportError,
    MindDumpError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from .models import Note, NoteColor, NoteType
from .store import NoteStore, SortOrder, sorted_notes
from .tags import TagRules, normalize_tag

__version__ = "0.1.0"

__all__ = [
    "AutosaveCoordinator",
    "BackupCodec",
    "BackupExportError",
    "BackupImportError",
    "MindDumpError",
    "Note",
    "NoteColor",
    "NoteStore",
    "NoteType",
    "NotFoundError",
    "PersistenceError",
    "SortOrder",
    "TagRules",
    "ValidationError",
    "default_export_filename",
    "normalize_tag",
    "sorted_notes",
]
