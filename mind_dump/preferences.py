"""User preferences for mind_dump.

Loads settings from ~/.mind_dump/preferences.yaml.
Falls back to sensible defaults if the file doesn't exist or is invalid.
Creates a default file on first run so users can discover and edit it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .constants import (
    AUTOSAVE_WINDOW,
    DATA_DIR,
    PREFERENCES_FILE,
    SKETCH_AUTOSAVE_WINDOW,
    TAG_MAX_LENGTH,
)
from .log import logger
from .models import NoteType

PREFS_PATH = DATA_DIR / PREFERENCES_FILE

_DEFAULT_YAML = f"""\
# mind_dump preferences
# Delete this file to reset to defaults.

storage:
  data_dir: ""                   # where notes live (empty = ~/.mind_dump)

autosave:
  window_seconds: {AUTOSAVE_WINDOW}            # idle time before an edit is saved
  sketch_window_seconds: {SKETCH_AUTOSAVE_WINDOW}     # idle time for sketch notes

tags:
  max_length: {TAG_MAX_LENGTH}                 # longest tag accepted

logging:
  level: "WARNING"               # DEBUG, INFO, WARNING, ERROR
"""


@dataclass
class StoragePreferences:
    data_dir: Path = DATA_DIR


@dataclass
class AutosavePreferences:
    """Quiescence windows for editor autosave, in seconds."""

    window_seconds: float = AUTOSAVE_WINDOW
    sketch_window_seconds: float = SKETCH_AUTOSAVE_WINDOW

    def window_for(self, note_type: NoteType | str) -> float:
        if NoteType.parse(note_type) is NoteType.SKETCH:
            return self.sketch_window_seconds
        return self.window_seconds


@dataclass
class TagPreferences:
    max_length: int = TAG_MAX_LENGTH


@dataclass
class Preferences:
    """Top-level preferences."""

    storage: StoragePreferences = field(default_factory=StoragePreferences)
    autosave: AutosavePreferences = field(default_factory=AutosavePreferences)
    tags: TagPreferences = field(default_factory=TagPreferences)
    log_level: str = "WARNING"


def _positive_float(value: object, default: float) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _positive_int(value: object, default: int) -> int:
    try:
        number = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def load_preferences(path: Path | None = None) -> Preferences:
    """Load preferences from YAML file.

    Falls back to sensible defaults if the file doesn't exist or is invalid.
    Creates a default preferences file on first run.
    """
    path = path or PREFS_PATH
    prefs = Preferences()

    if path.exists():
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except (OSError, yaml.YAMLError):
            logger.warning("invalid preferences file %s, using defaults", path, exc_info=True)
            return prefs
        if not isinstance(data, dict):
            return prefs
        if isinstance(data.get("storage"), dict):
            data_dir = data["storage"].get("data_dir")
            if data_dir:
                prefs.storage.data_dir = Path(str(data_dir)).expanduser()
        if isinstance(data.get("autosave"), dict):
            adata = data["autosave"]
            prefs.autosave.window_seconds = _positive_float(
                adata.get("window_seconds"), prefs.autosave.window_seconds
            )
            prefs.autosave.sketch_window_seconds = _positive_float(
                adata.get("sketch_window_seconds"), prefs.autosave.sketch_window_seconds
            )
        if isinstance(data.get("tags"), dict):
            prefs.tags.max_length = _positive_int(
                data["tags"].get("max_length"), prefs.tags.max_length
            )
        if isinstance(data.get("logging"), dict):
            level = data["logging"].get("level")
            if isinstance(level, str) and level.strip():
                prefs.log_level = level.strip().upper()
    else:
        # Create default file for user to customize
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(_DEFAULT_YAML)
        except OSError:
            logger.debug("could not write default preferences to %s", path, exc_info=True)

    return prefs


def save_autosave_window(seconds: float, path: Path | None = None) -> None:
    """Persist the autosave window to the preferences file.

    Surgically updates only the window_seconds value, preserving the rest of
    the file (including user comments) as-is.
    """
    if seconds <= 0:
        raise ValueError(f"autosave window must be positive, got {seconds}")
    path = path or PREFS_PATH
    try:
        if path.exists():
            text = path.read_text()
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            text = _DEFAULT_YAML

        value = f"{float(seconds)}"
        if re.search(r"^\s+window_seconds:", text, re.MULTILINE):
            text = re.sub(
                r"^(\s+window_seconds:)[^#\n]*",
                f"\\1 {value}   ",
                text,
                count=1,
                flags=re.MULTILINE,
            )
        elif re.search(r"^autosave:", text, re.MULTILINE):
            # autosave section exists but no window_seconds key
            text = re.sub(
                r"^(autosave:.*)$",
                f"\\1\n  window_seconds: {value}",
                text,
                count=1,
                flags=re.MULTILINE,
            )
        else:
            # No autosave section at all, append it
            text = text.rstrip() + f"\n\nautosave:\n  window_seconds: {value}\n"

        path.write_text(text)
    except OSError:
        logger.debug("could not save autosave window to %s", path, exc_info=True)
