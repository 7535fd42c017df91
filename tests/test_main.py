"""Tests for the __main__ entry point."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from mind_dump.__main__ import main
from mind_dump.log import logger
from mind_dump.preferences import load_preferences


@pytest.fixture(autouse=True)
def _reset_logger():
    """main() attaches a stderr handler; drop it so later tests stay quiet."""
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


def run(data_dir: Path, *args: str) -> int:
    return main(["--data-dir", str(data_dir), *args])


def add(data_dir: Path, capsys, *args: str) -> str:
    assert run(data_dir, "add", *args) == 0
    return capsys.readouterr().out.strip()


class TestAdd:
    def test_prints_new_id_and_persists(self, tmp_path: Path, capsys):
        note_id = add(tmp_path, capsys, "--title", "Groceries", "--tag", "home")
        assert len(note_id) == 36
        records = json.loads((tmp_path / "notes.json").read_text())
        assert records[0]["id"] == note_id
        assert records[0]["tags"] == ["home"]

    def test_empty_note_rejected(self, tmp_path: Path, capsys):
        assert run(tmp_path, "add") == 1
        assert "A note needs a title or content" in capsys.readouterr().err
        assert not (tmp_path / "notes.json").exists()

    def test_invalid_tag_reports_error(self, tmp_path: Path, capsys):
        assert run(tmp_path, "add", "--title", "x", "--tag", "has space") == 1
        assert "Tags cannot contain spaces" in capsys.readouterr().err

    def test_creates_preferences_file(self, tmp_path: Path, capsys):
        add(tmp_path, capsys, "--title", "x")
        assert (tmp_path / "preferences.yaml").exists()


class TestReads:
    def test_list_shows_titles(self, tmp_path: Path, capsys):
        add(tmp_path, capsys, "--title", "Groceries")
        add(tmp_path, capsys, "--title", "Taxes")
        assert run(tmp_path, "list") == 0
        out = capsys.readouterr().out
        assert "Groceries" in out
        assert "Taxes" in out
        assert "2 notes" in out

    def test_list_by_tag(self, tmp_path: Path, capsys):
        add(tmp_path, capsys, "--title", "Groceries", "--tag", "home")
        add(tmp_path, capsys, "--title", "Taxes", "--tag", "work")
        assert run(tmp_path, "list", "--tag", "#Home") == 0
        out = capsys.readouterr().out
        assert "Groceries" in out
        assert "Taxes" not in out

    def test_search(self, tmp_path: Path, capsys):
        add(tmp_path, capsys, "--title", "Groceries", "--content", "buy milk")
        add(tmp_path, capsys, "--title", "Taxes")
        assert run(tmp_path, "search", "MILK") == 0
        out = capsys.readouterr().out
        assert "1 matches" in out
        assert "Groceries" in out

    def test_show_by_prefix(self, tmp_path: Path, capsys):
        note_id = add(tmp_path, capsys, "--title", "Groceries", "--content", "eggs")
        assert run(tmp_path, "show", note_id[:8]) == 0
        out = capsys.readouterr().out
        assert note_id in out
        assert "eggs" in out

    def test_show_missing(self, tmp_path: Path, capsys):
        assert run(tmp_path, "show", "nope") == 1
        assert "Note not found: nope" in capsys.readouterr().err

    def test_tags_table(self, tmp_path: Path, capsys):
        add(tmp_path, capsys, "--title", "a", "--tag", "work")
        add(tmp_path, capsys, "--title", "b", "--tag", "work", "--tag", "urgent")
        assert run(tmp_path, "tags") == 0
        out = capsys.readouterr().out
        assert "work" in out
        assert "urgent" in out


class TestMutations:
    def test_pin_toggles(self, tmp_path: Path, capsys):
        note_id = add(tmp_path, capsys, "--title", "x")
        run(tmp_path, "pin", note_id)
        assert capsys.readouterr().out.strip() == "pinned"
        run(tmp_path, "pin", note_id)
        assert capsys.readouterr().out.strip() == "unpinned"

    def test_tag_and_untag(self, tmp_path: Path, capsys):
        note_id = add(tmp_path, capsys, "--title", "x")
        assert run(tmp_path, "tag", note_id, "idea") == 0
        run(tmp_path, "tag", note_id, "idea")
        assert "tag already present" in capsys.readouterr().out
        assert run(tmp_path, "untag", note_id, "idea") == 0
        run(tmp_path, "untag", note_id, "idea")
        assert "tag not present" in capsys.readouterr().out

    def test_rename_and_delete_tag(self, tmp_path: Path, capsys):
        add(tmp_path, capsys, "--title", "a", "--tag", "wrk")
        add(tmp_path, capsys, "--title", "b", "--tag", "wrk")
        run(tmp_path, "rename-tag", "wrk", "work")
        assert "renamed on 2 notes" in capsys.readouterr().out
        run(tmp_path, "delete-tag", "work")
        assert "removed from 2 notes" in capsys.readouterr().out

    def test_delete(self, tmp_path: Path, capsys):
        note_id = add(tmp_path, capsys, "--title", "x")
        assert run(tmp_path, "delete", note_id) == 0
        assert json.loads((tmp_path / "notes.json").read_text()) == []

    def test_delete_all_requires_confirmation(self, tmp_path: Path, capsys):
        add(tmp_path, capsys, "--title", "x")
        assert run(tmp_path, "delete-all") == 1
        assert "--yes" in capsys.readouterr().err
        assert run(tmp_path, "delete-all", "--yes") == 0
        assert "deleted 1 notes" in capsys.readouterr().out


class TestEdit:
    def test_edit_saves_changes(self, tmp_path: Path, capsys):
        note_id = add(tmp_path, capsys, "--title", "Groceries", "--content", "eggs")
        assert run(tmp_path, "edit", note_id[:8], "--content", "milk", "--tag", "home") == 0
        assert capsys.readouterr().out.strip() == "saved"
        records = json.loads((tmp_path / "notes.json").read_text())
        assert records[0]["content"] == "milk"
        assert records[0]["tags"] == ["home"]
        assert records[0]["title"] == "Groceries"

    def test_edit_rejects_bad_tag(self, tmp_path: Path, capsys):
        note_id = add(tmp_path, capsys, "--title", "Groceries")
        assert run(tmp_path, "edit", note_id, "--tag", "two words", "--title", "new") == 1
        assert "Tags cannot contain spaces" in capsys.readouterr().err
        records = json.loads((tmp_path / "notes.json").read_text())
        assert records[0]["title"] == "Groceries"

    def test_edit_needs_a_change(self, tmp_path: Path, capsys):
        note_id = add(tmp_path, capsys, "--title", "x")
        assert run(tmp_path, "edit", note_id) == 1
        assert "Nothing to change" in capsys.readouterr().err

    def test_edit_missing_note(self, tmp_path: Path, capsys):
        assert run(tmp_path, "edit", "nope", "--title", "x") == 1
        assert "Note not found" in capsys.readouterr().err


class TestConfig:
    def test_shows_settings(self, tmp_path: Path, capsys):
        assert run(tmp_path, "config") == 0
        out = capsys.readouterr().out
        assert "autosave.window_seconds" in out
        assert "tags.max_length" in out

    def test_sets_autosave_window(self, tmp_path: Path, capsys):
        assert run(tmp_path, "config", "--autosave-window", "0.5") == 0
        assert "autosave window set to 0.5s" in capsys.readouterr().out
        prefs = load_preferences(tmp_path / "preferences.yaml")
        assert prefs.autosave.window_seconds == 0.5

    @pytest.mark.parametrize("value", ["0", "-2", "soon"])
    def test_rejects_bad_window(self, tmp_path: Path, capsys, value: str):
        with pytest.raises(SystemExit) as exc_info:
            run(tmp_path, "config", "--autosave-window", value)
        assert exc_info.value.code == 2


class TestBackup:
    def test_export_then_import_elsewhere(self, tmp_path: Path, capsys):
        source = tmp_path / "source"
        target = tmp_path / "target"
        add(source, capsys, "--title", "Groceries", "--tag", "home")
        assert run(source, "export", str(tmp_path / "out")) == 0
        assert "exported 1 notes" in capsys.readouterr().out
        (backup,) = (tmp_path / "out").glob("mind_dump_notes_*.json")

        assert run(target, "import", str(backup)) == 0
        assert "imported 1 notes" in capsys.readouterr().out
        records = json.loads((target / "notes.json").read_text())
        assert records[0]["title"] == "Groceries"
        history = json.loads((target / "backup_history.json").read_text())
        assert history["lastImportCount"] == 1

    def test_import_bad_file(self, tmp_path: Path, capsys):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        assert run(tmp_path / "data", "import", str(bad)) == 1
        assert "Import failed" in capsys.readouterr().err


class TestArguments:
    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert "mind-dump 0.1.0" in capsys.readouterr().out

    def test_command_required(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2
