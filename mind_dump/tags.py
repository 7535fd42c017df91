"""Tag normalization and validation.

A single rule applies to every editing surface: tags are trimmed,
lowercased and stripped of a leading ``#``; whitespace inside a tag is
rejected (never rewritten to ``_``).
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from .constants import TAG_MAX_LENGTH
from .errors import ValidationError

_ALLOWED = re.compile(r"^[\w-]+$")
_WHITESPACE = re.compile(r"\s")


def normalize_tag(text: str) -> str:
    """Strip whitespace, leading ``#``, and lowercase."""
    return text.strip().lstrip("#").strip().lower()


class TagRules:
    """Validates tag text against the store's tag vocabulary rules."""

    def __init__(self, max_length: int = TAG_MAX_LENGTH) -> None:
        self.max_length = max_length

    def validate(self, text: str, existing: Iterable[str] = ()) -> str:
        """Return the normalized form of *text* or raise ``ValidationError``.

        *existing* is the tag list the new tag is about to join; a tag
        already in it is reported as a duplicate.
        """
        if not isinstance(text, str):
            raise ValidationError(f"Tag must be a string, not {type(text).__name__}")
        tag = normalize_tag(text)
        if not tag:
            raise ValidationError("Tag cannot be empty")
        if _WHITESPACE.search(tag):
            raise ValidationError("Tags cannot contain spaces")
        if not _ALLOWED.match(tag):
            raise ValidationError(
                "Tags may only contain letters, digits, '_' and '-'"
            )
        if len(tag) > self.max_length:
            raise ValidationError(
                f"Tag is too long ({self.max_length} characters max)"
            )
        if tag in existing:
            raise ValidationError("This tag already exists")
        return tag

    def is_valid(self, text: str) -> bool:
        try:
            self.validate(text)
        except ValidationError:
            return False
        return True

    def normalize_all(self, tags: Iterable[str]) -> list[str]:
        """Validate every tag in *tags*, dropping duplicates (order kept)."""
        result: list[str] = []
        for text in tags:
            tag = self.validate(text)
            if tag not in result:
                result.append(tag)
        return result
