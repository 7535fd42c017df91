"""Debounced autosave for one editing session.

Every edit replaces the pending commit task with a new one scheduled
``window`` seconds out.  When the window passes with no further edit, one
commit reaches the store.  ``flush()`` (called on teardown or before the
process goes to the background) cancels the pending task and commits
right away, so edits are never dropped.

The scheduler is anything with ``call_later(delay, callback)`` returning a
handle with ``cancel()``; the running asyncio event loop is the default.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol

from .errors import MindDumpError, ValidationError
from .log import logger
from .models import Note, NoteColor, NoteType
from .preferences import AutosavePreferences
from .store import NoteStore


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Schedules a callback on the store's single logical thread."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle: ...


_EDITABLE = frozenset({"title", "content", "color", "note_type", "is_pinned", "tags"})


class AutosaveCoordinator:
    """Coalesces a burst of edits into at most one store write per window.

    Pass an existing *note* to edit it, or leave it out to start a new
    draft of *note_type*.  A draft gets its own draft id, under which a
    drawing is staged until the first commit assigns the real note id.

    Without an explicit *window*, the quiescence window comes from
    *preferences* (defaults when omitted): the sketch window for sketch
    notes, the text window otherwise.
    """

    def __init__(
        self,
        store: NoteStore,
        note: Note | None = None,
        *,
        note_type: NoteType | str = NoteType.BASIC,
        window: float | None = None,
        preferences: AutosavePreferences | None = None,
        scheduler: Scheduler | None = None,
        on_commit: Callable[[Note], Any] | None = None,
    ) -> None:
        self._store = store
        self._scheduler = scheduler if scheduler is not None else asyncio.get_running_loop()
        self._on_commit = on_commit

        if note is None:
            self._working = store.create_new_note(note_type)
            self._draft_id: str | None = store.sketches.new_draft_id()
        else:
            self._working = note.copy()
            self._draft_id = None

        if window is None:
            window = (preferences or AutosavePreferences()).window_for(
                self._working.note_type
            )
        if window <= 0:
            raise ValueError(f"autosave window must be positive, got {window}")
        self._window = window
        self._base_edited: datetime | None = self._working.last_edited_date
        self._has_staged = False

        self._handle: TimerHandle | None = None
        self._pending = False
        self._closed = False
        self.commit_count = 0
        self.last_error: MindDumpError | None = None

    # -- state ----------------------------------------------------------------

    @property
    def note(self) -> Note:
        """A copy of the session's working note."""
        return self._working.copy()

    @property
    def draft_id(self) -> str | None:
        """Staging key while the note is unsaved; ``None`` once it has an id."""
        return self._draft_id

    @property
    def window(self) -> float:
        return self._window

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def closed(self) -> bool:
        return self._closed

    # -- edit events ----------------------------------------------------------

    def edit(self, **changes: Any) -> None:
        """Apply field changes to the working note and restart the timer.

        Every value is checked before any is applied; a rejected edit raises
        and leaves the working note and the timer as they were.
        """
        self._ensure_open()
        unknown = set(changes) - _EDITABLE
        if unknown:
            raise TypeError(f"cannot edit field(s): {', '.join(sorted(unknown))}")

        coerced: dict[str, Any] = {}
        for name, value in changes.items():
            if name == "color":
                value = NoteColor.parse(value)
            elif name == "note_type":
                value = NoteType.parse(value)
            elif name == "tags":
                value = self._store.tag_rules.normalize_all(value)
            coerced[name] = value

        if coerced.get("note_type", NoteType.SKETCH) is not NoteType.SKETCH:
            self._drop_sketch()
        for name, value in coerced.items():
            setattr(self._working, name, value)
        self._touch()

    def set_sketch(self, payload: bytes | None) -> None:
        """Record the latest drawing payload (``None`` clears it)."""
        self._ensure_open()
        if not self._working.is_sketch:
            raise ValidationError("Only sketch notes accept drawings")
        if self._working.id is None:
            if payload is None:
                self._store.sketches.discard(self._draft_id)
                self._has_staged = False
            else:
                self._store.sketches.stage(self._draft_id, payload)
                self._has_staged = True
        else:
            self._store.sketches.attach(self._working, payload)
        self._touch()

    # -- lifecycle ------------------------------------------------------------

    def flush(self) -> bool:
        """Cancel the pending timer and commit now. Return whether a commit ran."""
        self._cancel()
        if not self._pending:
            return False
        return self._commit()

    def close(self) -> None:
        """Flush pending edits and end the session."""
        if self._closed:
            return
        try:
            self.flush()
        finally:
            self._closed = True

    def __enter__(self) -> AutosaveCoordinator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- internals ------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("editing session is closed")

    def _drop_sketch(self) -> None:
        self._working.sketch_payload = None
        if self._has_staged and self._draft_id is not None:
            self._store.sketches.discard(self._draft_id)
            self._has_staged = False

    def _touch(self) -> None:
        self._pending = True
        self._cancel()
        self._handle = self._scheduler.call_later(self._window, self._on_timer)

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _on_timer(self) -> None:
        self._handle = None
        if not self._pending:
            return
        try:
            self._commit()
        except MindDumpError as exc:
            self.last_error = exc
            logger.error("autosave failed for note %s: %s", self._working.id, exc)

    def _is_empty(self) -> bool:
        return self._working.is_empty and not self._has_staged

    def _commit(self) -> bool:
        if self._is_empty():
            # An untitled, blank note is discarded rather than saved
            self._pending = False
            logger.debug("discarding empty note %s", self._working.id)
            return False

        if self._working.id is None:
            saved = self._store.add_note(self._working, draft_id=self._draft_id)
            self._draft_id = None
            self._has_staged = False
        else:
            current = self._store.find(self._working.id)
            if (
                current is not None
                and self._base_edited is not None
                and current.last_edited_date is not None
                and current.last_edited_date > self._base_edited
            ):
                logger.warning(
                    "note %s was changed elsewhere; overwriting with this session's edits",
                    self._working.id,
                )
            saved = self._store.update_note(self._working)

        self._working = saved
        self._base_edited = saved.last_edited_date
        self._pending = False
        self.last_error = None
        self.commit_count += 1
        if self._on_commit is not None:
            self._on_commit(saved.copy())
        return True
