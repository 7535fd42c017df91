"""Sketch payload attachment and per-draft staging."""

from __future__ import annotations

import uuid
from collections.abc import Callable
from pathlib import Path

from ..errors import ValidationError
from ..log import logger
from ..models import Note, decode_payload, encode_payload
from ._base import JsonStore


class SketchAttachmentStore(JsonStore):
    """Opaque drawing payloads for sketch notes.

    A saved note carries its payload on the record itself.  A draft that
    has no id yet stages its payload here under a locally generated draft
    id (``{draft_id: base64}`` on disk) until the first save promotes it
    onto the note.
    """

    def __init__(self, path: Path) -> None:
        super().__init__(path)

    def load(self) -> dict[str, str]:
        raw = self.load_raw()
        if not isinstance(raw, dict):
            return {}
        return raw

    # -- drafts ---------------------------------------------------------------

    @staticmethod
    def new_draft_id() -> str:
        return f"draft-{uuid.uuid4().hex}"

    def draft_ids(self) -> list[str]:
        return sorted(self.load())

    def stage(self, draft_id: str, payload: bytes) -> None:
        """Hold *payload* for the draft session *draft_id*."""
        if not draft_id:
            raise ValidationError("draft id is required to stage a sketch")
        data = self.load()
        data[draft_id] = encode_payload(bytes(payload))
        self.save_raw(data, sort_keys=True)

    def staged(self, draft_id: str) -> bytes | None:
        """Return the payload staged for *draft_id* (``None`` if none)."""
        value = self.load().get(draft_id)
        if value is None:
            return None
        try:
            return decode_payload(value)
        except ValidationError:
            logger.warning("discarding unreadable staged sketch %s", draft_id)
            return None

    def discard(self, draft_id: str) -> bool:
        """Drop the staged payload for *draft_id*. Return ``False`` if none."""
        data = self.load()
        if draft_id not in data:
            return False
        del data[draft_id]
        self.save_raw(data, sort_keys=True)
        return True

    def promote(
        self,
        draft_id: str,
        note: Note,
        commit: Callable[[Note], None] | None = None,
    ) -> Note:
        """Move the staged payload onto *note* and clear the staging slot.

        *commit* runs after the payload is attached and before the slot is
        cleared, so a failed save leaves the drawing staged.  Leaves *note*
        untouched when nothing is staged.
        """
        payload = self.staged(draft_id)
        if payload is not None:
            self.attach(note, payload)
        if commit is not None:
            commit(note)
        if payload is not None:
            self.discard(draft_id)
            logger.debug("promoted staged sketch %s onto note %s", draft_id, note.id)
        return note

    # -- saved notes ----------------------------------------------------------

    @staticmethod
    def attach(note: Note, payload: bytes | None) -> Note:
        """Set *payload* on a sketch note (``None`` clears it)."""
        if payload is not None and not note.is_sketch:
            raise ValidationError("Sketch payloads can only be attached to sketch notes")
        note.sketch_payload = bytes(payload) if payload is not None else None
        return note

    @staticmethod
    def release(note: Note) -> Note:
        """Drop the payload held by *note*.

        A saved note keeps its drawing on its own record, so removing the
        record from the document is what frees the payload.  This only clears
        the in-memory reference; there is no separate blob to delete.
        """
        note.sketch_payload = None
        return note

    def release_all(self) -> int:
        """Clear every staged draft payload. Return how many were dropped."""
        data = self.load()
        if not data:
            return 0
        self.save_raw({})
        return len(data)
