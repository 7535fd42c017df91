"""In-memory note collection backed by a JSON document.

``NoteStore`` is the single owner of the note list.  Every mutation goes
through one of its methods, writes the whole collection to disk before
returning, and leaves memory untouched when that write fails.  Reads hand
out copies, so callers can never change the collection behind the store's
back.
"""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from .constants import (
    DATA_DIR,
    NOTES_FILE,
    NOTES_SNAPSHOT_FILE,
    SKETCH_STAGING_FILE,
)
from .errors import NotFoundError, ValidationError
from .log import logger
from .models import Note, NoteType, as_utc
from .persistence import NoteDocumentStore, SketchAttachmentStore
from .tags import TagRules, normalize_tag

Clock = Callable[[], datetime]

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SortOrder(str, Enum):
    LAST_EDITED = "last-edited"
    TITLE = "title"
    CREATED = "created"


def sorted_notes(
    notes: Iterable[Note], by: SortOrder | str = SortOrder.LAST_EDITED
) -> list[Note]:
    """Sort *notes*: newest edit first, title A-Z, or newest created first."""
    by = SortOrder(by)
    if by is SortOrder.TITLE:
        return sorted(notes, key=lambda n: n.title.lower())
    if by is SortOrder.CREATED:
        return sorted(notes, key=lambda n: n.created_date or _EPOCH, reverse=True)
    return sorted(notes, key=lambda n: n.last_edited_date or _EPOCH, reverse=True)


class NoteStore:
    """Authoritative note collection with synchronous persistence."""

    def __init__(
        self,
        documents: NoteDocumentStore,
        sketches: SketchAttachmentStore,
        *,
        tag_rules: TagRules | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._documents = documents
        self.sketches = sketches
        self.tag_rules = tag_rules or TagRules()
        self._clock = clock or _utcnow
        self._notes: list[Note] = documents.load()
        stamps = [n.last_edited_date for n in self._notes if n.last_edited_date]
        self._last_stamp: datetime | None = max(stamps) if stamps else None

    @classmethod
    def open(
        cls,
        data_dir: Path | None = None,
        *,
        tag_rules: TagRules | None = None,
        clock: Clock | None = None,
    ) -> NoteStore:
        """Open (or create) the store files inside *data_dir*."""
        data_dir = Path(data_dir or DATA_DIR).expanduser()
        documents = NoteDocumentStore(
            data_dir / NOTES_FILE, data_dir / NOTES_SNAPSHOT_FILE
        )
        sketches = SketchAttachmentStore(data_dir / SKETCH_STAGING_FILE)
        return cls(documents, sketches, tag_rules=tag_rules, clock=clock)

    # -- internals ------------------------------------------------------------

    def _now(self, floor: datetime | None = None) -> datetime:
        """Current time, never earlier than any timestamp handed out before."""
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        for bound in (self._last_stamp, floor):
            if bound is not None and now < bound:
                now = bound
        self._last_stamp = now
        return now

    def _commit(self, notes: list[Note]) -> None:
        """Write *notes* and make them the collection (memory unchanged on error)."""
        self._documents.save(notes)
        self._notes = notes

    def _index(self, note: Note | str | None) -> int:
        note_id = note.id if isinstance(note, Note) else note
        if note_id is not None:
            for i, existing in enumerate(self._notes):
                if existing.id == note_id:
                    return i
        raise NotFoundError(note_id)

    def _prepare(self, note: Note) -> Note:
        prepared = note.copy()
        for name in ("created_date", "last_edited_date"):
            value = getattr(prepared, name)
            if value is not None and not isinstance(value, datetime):
                raise ValidationError(f"{name} must be a datetime, not {value!r}")
            setattr(prepared, name, as_utc(value))
        prepared.tags = self.tag_rules.normalize_all(prepared.tags)
        prepared.check_invariants()
        return prepared

    def _mutate(self, note: Note | str, change: Callable[[Note], bool]) -> tuple[Note, bool]:
        """Apply *change* to a copy of the stored note; persist if it reports a change."""
        index = self._index(note)
        current = self._notes[index]
        updated = current.copy()
        if not change(updated):
            return updated, False
        updated.last_edited_date = self._now(floor=current.last_edited_date)
        notes = list(self._notes)
        notes[index] = updated
        self._commit(notes)
        return updated.copy(), True

    # -- mutations ------------------------------------------------------------

    def add_note(self, note: Note, *, draft_id: str | None = None) -> Note:
        """Append *note* and persist it; return the stored copy.

        The id is assigned when absent.  With *draft_id*, a sketch payload
        staged for that draft session is moved onto the note.
        """
        new = note.copy()
        new.last_edited_date = None
        new = self._prepare(new)
        if new.id is None:
            new.id = str(uuid.uuid4())
        elif any(n.id == new.id for n in self._notes):
            raise ValidationError(f"A note with id {new.id} already exists")

        now = self._now(floor=new.created_date)
        if new.created_date is None:
            new.created_date = now
        new.last_edited_date = now

        def commit(prepared: Note) -> None:
            self._commit([*self._notes, prepared])

        if draft_id is not None:
            self.sketches.promote(draft_id, new, commit=commit)
        else:
            commit(new)
        logger.debug("added note %s (%s)", new.id, new.note_type.value)
        return new.copy()

    def add_notes(self, notes: Iterable[Note], *, keep_dates: bool = False) -> list[Note]:
        """Append several notes with a single write (all or nothing).

        With *keep_dates*, timestamps carried by the incoming notes are kept
        (import); otherwise they are stamped with the current time.
        """
        existing = {n.id for n in self._notes}
        added: list[Note] = []
        for note in notes:
            new = self._prepare(note)
            if new.id is None:
                new.id = str(uuid.uuid4())
            if new.id in existing:
                raise ValidationError(f"A note with id {new.id} already exists")
            existing.add(new.id)
            if keep_dates and new.created_date is not None:
                if new.last_edited_date is None or new.last_edited_date < new.created_date:
                    new.last_edited_date = new.created_date
            else:
                now = self._now()
                new.created_date = now
                new.last_edited_date = now
            added.append(new)

        if added:
            self._commit([*self._notes, *added])
            logger.debug("added %d notes", len(added))
        return [n.copy() for n in added]

    def update_note(self, note: Note) -> Note:
        """Replace the stored note that has ``note.id``.

        Raises ``NotFoundError`` when no such note exists.  The stored
        creation date is kept and the edit date is always advanced, even
        when the new fields equal the stored ones.
        """
        index = self._index(note)
        current = self._notes[index]
        updated = note.copy()
        updated.created_date = current.created_date
        updated.last_edited_date = self._now(floor=current.last_edited_date)
        updated = self._prepare(updated)
        notes = list(self._notes)
        notes[index] = updated
        self._commit(notes)
        return updated.copy()

    def delete_note(self, note: Note | str) -> None:
        """Remove a note and release its sketch payload."""
        index = self._index(note)
        notes = list(self._notes)
        removed = notes.pop(index)
        self._commit(notes)
        self.sketches.release(removed)
        logger.debug("deleted note %s", removed.id)

    def delete_all_notes(self) -> int:
        """Remove every note and every staged sketch. Return the note count."""
        removed = self._notes
        self._commit([])
        for note in removed:
            self.sketches.release(note)
        self.sketches.release_all()
        logger.info("deleted all %d notes", len(removed))
        return len(removed)

    def toggle_pinned(self, note: Note | str) -> Note:
        def change(n: Note) -> bool:
            n.is_pinned = not n.is_pinned
            return True

        updated, _ = self._mutate(note, change)
        return updated

    def add_tag(self, tag: str, note: Note | str) -> bool:
        """Add *tag* to a note. Return ``False`` if it was already there."""
        tag = self.tag_rules.validate(tag)

        def change(n: Note) -> bool:
            if tag in n.tags:
                return False
            n.tags.append(tag)
            return True

        _, changed = self._mutate(note, change)
        return changed

    def remove_tag(self, tag: str, note: Note | str) -> bool:
        """Remove *tag* from a note. Return ``False`` if it was not there."""
        tag = normalize_tag(tag)

        def change(n: Note) -> bool:
            if tag not in n.tags:
                return False
            n.tags.remove(tag)
            return True

        _, changed = self._mutate(note, change)
        return changed

    def rename_tag(self, old: str, new: str) -> int:
        """Rename *old* to *new* on every note; merge where *new* exists.

        Returns the number of notes changed.
        """
        old = normalize_tag(old)
        new = self.tag_rules.validate(new)
        if old == new:
            return 0

        def change(tags: list[str]) -> list[str]:
            renamed: list[str] = []
            for tag in tags:
                tag = new if tag == old else tag
                if tag not in renamed:
                    renamed.append(tag)
            return renamed

        return self._retag(old, change)

    def delete_tag(self, tag: str) -> int:
        """Remove *tag* from every note. Return the number of notes changed."""
        tag = normalize_tag(tag)
        return self._retag(tag, lambda tags: [t for t in tags if t != tag])

    def _retag(self, tag: str, change: Callable[[list[str]], list[str]]) -> int:
        notes = list(self._notes)
        count = 0
        for i, note in enumerate(notes):
            if tag not in note.tags:
                continue
            updated = note.copy()
            updated.tags = change(updated.tags)
            updated.last_edited_date = self._now(floor=note.last_edited_date)
            notes[i] = updated
            count += 1
        if count:
            self._commit(notes)
            logger.debug("retagged %r on %d notes", tag, count)
        return count

    @staticmethod
    def create_new_note(note_type: NoteType | str = NoteType.BASIC) -> Note:
        """Return an unsaved note with default fields."""
        return Note(note_type=NoteType.parse(note_type))

    # -- reads ----------------------------------------------------------------

    @property
    def notes(self) -> list[Note]:
        """Every note, in insertion order."""
        return [n.copy() for n in self._notes]

    def __len__(self) -> int:
        return len(self._notes)

    def __contains__(self, note: object) -> bool:
        note_id = note.id if isinstance(note, Note) else note
        return any(n.id == note_id for n in self._notes)

    def find(self, note_id: str) -> Note | None:
        for note in self._notes:
            if note.id == note_id:
                return note.copy()
        return None

    def get(self, note_id: str) -> Note:
        """Return the note with *note_id* or raise ``NotFoundError``."""
        return self._notes[self._index(note_id)].copy()

    def all_tags(self) -> list[str]:
        """Sorted union of every note's tags."""
        return sorted({tag for note in self._notes for tag in note.tags})

    def tag_counts(self) -> dict[str, int]:
        """Return ``{tag: count}`` across all notes, sorted by count desc."""
        counter: Counter[str] = Counter()
        for note in self._notes:
            counter.update(note.tags)
        return dict(counter.most_common())

    def notes_by_tag(self, tag: str) -> list[Note]:
        tag = normalize_tag(tag)
        return sorted_notes(n.copy() for n in self._notes if tag in n.tags)

    def pinned_notes(self) -> list[Note]:
        return sorted_notes(n.copy() for n in self._notes if n.is_pinned)

    def unpinned_notes(self) -> list[Note]:
        return sorted_notes(n.copy() for n in self._notes if not n.is_pinned)

    def search(self, text: str) -> list[Note]:
        """Case-insensitive substring match over title, content and tags."""
        term = text.lower()
        if not term:
            return sorted_notes(self.notes)
        return sorted_notes(
            n.copy()
            for n in self._notes
            if term in n.title.lower()
            or term in n.content.lower()
            or any(term in tag for tag in n.tags)
        )

    def sorted_notes(self, by: SortOrder | str = SortOrder.LAST_EDITED) -> list[Note]:
        return sorted_notes(self.notes, by)
