"""Backup history store (last export / import times)."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from ..errors import ValidationError
from ..models import format_timestamp, parse_timestamp
from ._base import JsonStore


class BackupHistoryStore(JsonStore):
    """``{"lastExport": iso, "lastImport": iso, "lastImportCount": n}``."""

    def __init__(self, path: Path) -> None:
        super().__init__(path)

    def load(self) -> dict:
        raw = self.load_raw()
        if not isinstance(raw, dict):
            return {}
        return raw

    def _get_time(self, key: str) -> datetime | None:
        try:
            return parse_timestamp(self.load().get(key))
        except ValidationError:
            return None

    def _set(self, **values: object) -> None:
        data = self.load()
        data.update(values)
        self.save_raw(data, sort_keys=True)

    def last_export(self) -> datetime | None:
        return self._get_time("lastExport")

    def record_export(self, when: datetime | None = None) -> None:
        when = when or datetime.now(timezone.utc)
        self._set(lastExport=format_timestamp(when))

    def last_import(self) -> datetime | None:
        return self._get_time("lastImport")

    def record_import(self, count: int, when: datetime | None = None) -> None:
        when = when or datetime.now(timezone.utc)
        self._set(lastImport=format_timestamp(when), lastImportCount=count)
