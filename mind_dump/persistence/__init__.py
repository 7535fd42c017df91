"""Persistence layer: each store owns its file path, data format, and I/O."""

from .backup_history import BackupHistoryStore
from .notes import NoteDocumentStore
from .sketches import SketchAttachmentStore

__all__ = [
    "BackupHistoryStore",
    "NoteDocumentStore",
    "SketchAttachmentStore",
]
