"""Module-level constants for mind_dump."""

from __future__ import annotations

from pathlib import Path

# Default data directory (overridden by preferences ``storage.data_dir``)
DATA_DIR = Path.home() / ".mind_dump"

# File names inside the data directory
NOTES_FILE = "notes.json"
NOTES_SNAPSHOT_FILE = "notes.backup.json"
SKETCH_STAGING_FILE = "sketch_drafts.json"
BACKUP_HISTORY_FILE = "backup_history.json"
PREFERENCES_FILE = "preferences.yaml"

# Tags
TAG_MAX_LENGTH = 20

# Autosave quiescence windows, in seconds
AUTOSAVE_WINDOW = 1.0
SKETCH_AUTOSAVE_WINDOW = 2.0

# Backup documents
EXPORT_FILENAME_PREFIX = "mind_dump_notes_"
EXPORT_FILENAME_SUFFIX = ".json"

PREVIEW_LENGTH = 100
