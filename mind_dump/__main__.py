"""Entry point for the mind_dump CLI."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .autosave import AutosaveCoordinator
from .backup import BackupCodec
from .constants import BACKUP_HISTORY_FILE, DATA_DIR, PREFERENCES_FILE
from .errors import MindDumpError
from .log import configure_logging, logger
from .models import Note, NoteColor, NoteType
from .persistence import BackupHistoryStore
from .preferences import Preferences, load_preferences, save_autosave_window
from .store import NoteStore, SortOrder, sorted_notes
from .tags import TagRules


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mind-dump", description="mind_dump notes")
    parser.add_argument(
        "--version",
        "-V",
        action="version",
        version=f"mind-dump {__version__}",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding the note files (default: ~/.mind_dump)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log debug output to stderr",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="List notes")
    p.add_argument("--tag", help="Only notes with this tag")
    p.add_argument("--pinned", action="store_true", help="Only pinned notes")
    p.add_argument(
        "--sort",
        choices=[s.value for s in SortOrder],
        default=SortOrder.LAST_EDITED.value,
    )

    p = sub.add_parser("search", help="Search titles, content and tags")
    p.add_argument("text")

    p = sub.add_parser("show", help="Show one note")
    p.add_argument("note_id")

    p = sub.add_parser("add", help="Add a note")
    p.add_argument("--title", default="")
    p.add_argument("--content", default="")
    p.add_argument("--type", dest="note_type", choices=[t.value for t in NoteType],
                   default=NoteType.BASIC.value)
    p.add_argument("--color", choices=[c.value for c in NoteColor],
                   default=NoteColor.BLUE.value)
    p.add_argument("--tag", dest="tags", action="append", default=[])
    p.add_argument("--pin", action="store_true")

    p = sub.add_parser("edit", help="Change a note's fields")
    p.add_argument("note_id")
    p.add_argument("--title")
    p.add_argument("--content")
    p.add_argument("--type", dest="note_type", choices=[t.value for t in NoteType])
    p.add_argument("--color", choices=[c.value for c in NoteColor])
    p.add_argument("--tag", dest="tags", action="append",
                   help="Replace the note's tags (repeatable)")

    p = sub.add_parser("pin", help="Toggle a note's pinned state")
    p.add_argument("note_id")

    p = sub.add_parser("tag", help="Add a tag to a note")
    p.add_argument("note_id")
    p.add_argument("tag")

    p = sub.add_parser("untag", help="Remove a tag from a note")
    p.add_argument("note_id")
    p.add_argument("tag")

    p = sub.add_parser("rename-tag", help="Rename a tag on every note")
    p.add_argument("old")
    p.add_argument("new")

    p = sub.add_parser("delete-tag", help="Remove a tag from every note")
    p.add_argument("tag")

    sub.add_parser("tags", help="List tags with note counts")

    p = sub.add_parser("delete", help="Delete a note")
    p.add_argument("note_id")

    p = sub.add_parser("delete-all", help="Delete every note")
    p.add_argument("--yes", action="store_true", help="Confirm deletion")

    p = sub.add_parser("export", help="Write a backup file")
    p.add_argument("directory", nargs="?", type=Path, default=Path("."))

    p = sub.add_parser("import", help="Append the notes from a backup file")
    p.add_argument("path", type=Path)

    p = sub.add_parser("config", help="Show or change preferences")
    p.add_argument("--autosave-window", type=_positive_seconds, metavar="SECONDS",
                   help="Idle time before an edit is saved")

    return parser


def _positive_seconds(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")
    return value


def _notes_table(notes: list[Note], title: str) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("ID", no_wrap=True, style="dim")
    table.add_column("Title")
    table.add_column("Type")
    table.add_column("Tags")
    table.add_column("Edited", no_wrap=True)
    for note in notes:
        pin = "* " if note.is_pinned else ""
        edited = note.last_edited_date.strftime("%Y-%m-%d %H:%M") if note.last_edited_date else ""
        table.add_row(
            (note.id or "")[:8],
            escape(pin + (note.title or note.content_preview(30) or "(untitled)")),
            note.note_type.value,
            escape(", ".join(note.tags)),
            edited,
        )
    return table


def _resolve_id(store: NoteStore, prefix: str) -> str:
    """Accept a full note id or an unambiguous prefix of one."""
    if prefix in store:
        return prefix
    matches = [n.id for n in store.notes if n.id and n.id.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise MindDumpError(f"Ambiguous note id prefix: {prefix}")
    return prefix


async def _edit_session(
    store: NoteStore, note: Note, changes: dict, prefs: Preferences
) -> Note | None:
    """Apply *changes* through an autosave session and flush it on exit."""
    saved: list[Note] = []
    with AutosaveCoordinator(
        store, note, preferences=prefs.autosave, on_commit=saved.append
    ) as session:
        session.edit(**changes)
    return saved[-1] if saved else None


def _run(
    args: argparse.Namespace,
    store: NoteStore,
    codec: BackupCodec,
    out: Console,
    prefs: Preferences,
    prefs_path: Path,
) -> int:
    cmd = args.command

    if cmd == "list":
        if args.tag:
            notes = store.notes_by_tag(args.tag)
        elif args.pinned:
            notes = store.pinned_notes()
        else:
            notes = store.notes
        out.print(_notes_table(sorted_notes(notes, args.sort), f"{len(notes)} notes"))
    elif cmd == "search":
        notes = store.search(args.text)
        out.print(_notes_table(notes, f"{len(notes)} matches"))
    elif cmd == "show":
        note = store.get(_resolve_id(store, args.note_id))
        out.print(f"[bold]{escape(note.title or '(untitled)')}[/bold]")
        out.print(f"id: {note.id}", soft_wrap=True)
        out.print(f"type: {note.note_type.value}  color: {note.color.value}"
                  f"  pinned: {'yes' if note.is_pinned else 'no'}")
        out.print(f"tags: {escape(', '.join(note.tags))}", soft_wrap=True)
        if note.sketch_payload is not None:
            out.print(f"sketch: {len(note.sketch_payload)} bytes")
        out.print()
        out.print(escape(note.content), soft_wrap=True)
    elif cmd == "add":
        note = Note(
            title=args.title,
            content=args.content,
            note_type=NoteType(args.note_type),
            color=NoteColor(args.color),
            tags=list(args.tags),
            is_pinned=args.pin,
        )
        if note.is_empty:
            raise MindDumpError("A note needs a title or content")
        added = store.add_note(note)
        out.print(added.id, soft_wrap=True)
    elif cmd == "edit":
        note = store.get(_resolve_id(store, args.note_id))
        changes = {
            name: value
            for name, value in (
                ("title", args.title),
                ("content", args.content),
                ("note_type", args.note_type),
                ("color", args.color),
                ("tags", args.tags),
            )
            if value is not None
        }
        if not changes:
            raise MindDumpError("Nothing to change")
        saved = asyncio.run(_edit_session(store, note, changes, prefs))
        out.print("saved" if saved is not None else "not saved (note would be empty)")
    elif cmd == "pin":
        note = store.toggle_pinned(_resolve_id(store, args.note_id))
        out.print("pinned" if note.is_pinned else "unpinned")
    elif cmd == "tag":
        if not store.add_tag(args.tag, _resolve_id(store, args.note_id)):
            out.print("tag already present")
    elif cmd == "untag":
        if not store.remove_tag(args.tag, _resolve_id(store, args.note_id)):
            out.print("tag not present")
    elif cmd == "rename-tag":
        count = store.rename_tag(args.old, args.new)
        out.print(f"renamed on {count} notes")
    elif cmd == "delete-tag":
        count = store.delete_tag(args.tag)
        out.print(f"removed from {count} notes")
    elif cmd == "tags":
        table = Table(title="Tags")
        table.add_column("Tag")
        table.add_column("Notes", justify="right")
        for tag, count in store.tag_counts().items():
            table.add_row(escape(tag), str(count))
        out.print(table)
    elif cmd == "delete":
        store.delete_note(_resolve_id(store, args.note_id))
    elif cmd == "delete-all":
        if not args.yes:
            raise MindDumpError("Refusing to delete every note without --yes")
        count = store.delete_all_notes()
        out.print(f"deleted {count} notes")
    elif cmd == "export":
        path = codec.export_to(args.directory)
        out.print(f"exported {len(store)} notes to {path}", soft_wrap=True)
    elif cmd == "import":
        added = codec.import_from(args.path)
        out.print(f"imported {len(added)} notes")
    elif cmd == "config":
        if args.autosave_window is not None:
            save_autosave_window(args.autosave_window, prefs_path)
            out.print(f"autosave window set to {args.autosave_window:g}s")
        else:
            table = Table(title=escape(str(prefs_path)))
            table.add_column("Setting")
            table.add_column("Value")
            table.add_row("storage.data_dir", escape(str(prefs.storage.data_dir)))
            table.add_row("autosave.window_seconds", f"{prefs.autosave.window_seconds:g}")
            table.add_row(
                "autosave.sketch_window_seconds", f"{prefs.autosave.sketch_window_seconds:g}"
            )
            table.add_row("tags.max_length", str(prefs.tags.max_length))
            table.add_row("logging.level", prefs.log_level)
            out.print(table)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the mind_dump CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    base_dir = (args.data_dir or DATA_DIR).expanduser()
    prefs_path = base_dir / PREFERENCES_FILE
    prefs = load_preferences(prefs_path)
    configure_logging("DEBUG" if args.verbose else prefs.log_level)
    data_dir = args.data_dir.expanduser() if args.data_dir else prefs.storage.data_dir

    out = Console()
    err = Console(stderr=True)
    try:
        store = NoteStore.open(data_dir, tag_rules=TagRules(prefs.tags.max_length))
        codec = BackupCodec(store, BackupHistoryStore(data_dir / BACKUP_HISTORY_FILE))
        return _run(args, store, codec, out, prefs, prefs_path)
    except MindDumpError as exc:
        logger.debug("command %s failed", args.command, exc_info=True)
        err.print(f"[red]Error:[/red] {escape(str(exc))}", soft_wrap=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
