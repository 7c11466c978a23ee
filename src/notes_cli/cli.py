"""Command line entry point for notes-cli."""
import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from notes_cli import __version__
from notes_cli.config import NotesConfig, load_config
from notes_cli.display import render_table
from notes_cli.exceptions import InvalidNoteIdError, NotesError, ValidationError
from notes_cli.models.schema import NoteWithId
from notes_cli.observability import configure_logging
from notes_cli.services.note_service import NoteService
from notes_cli.services.note_sources import note_from_editor, note_from_file, resolve_editor
from notes_cli.storage import open_repository

logger = logging.getLogger(__name__)

COMMANDS = ("new", "get", "edit", "delete")
# Global options that consume the following argument
_VALUE_OPTIONS = ("--path", "--backend", "--log-level", "--config")

NO_NOTES = "There are no notes."
NO_NOTE_FOUND = "No note found."


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="notes-cli",
        description="Store short notes.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--path",
        help="Path to the notes file, or the database with --backend sqlite",
    )
    parser.add_argument(
        "--backend",
        choices=["file", "sqlite"],
        help="Storage backend (default: from configuration)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Logging level (default: from configuration)",
    )
    parser.add_argument("--config", help="Path to a YAML configuration file")

    subparsers = parser.add_subparsers(dest="command")

    new = subparsers.add_parser("new", help="create a new note")
    new.add_argument("content", nargs="*", help="content of the note")
    new.add_argument("-f", "--file", help="file to create a new note from")
    new.add_argument(
        "-e",
        "--editor",
        nargs="?",
        const="",
        metavar="PROGRAM",
        help="create a new note in an editor",
    )
    new.add_argument("--tags", nargs="+", help="tags to attach to the note")
    new.add_argument("-d", "--desc", default="", help="description of the note")

    get = subparsers.add_parser("get", help="get one or more notes")
    get.add_argument("id", nargs="?", type=int, help="get the note with the given id")
    get.add_argument("-a", "--all", action="store_true", help="get all notes")
    get.add_argument("-t", "--tags", nargs="+", help="get notes with all of the given tags")
    get.add_argument("-s", "--search", help="get notes containing the given text")
    get.add_argument("-d", "--desc", action="store_true", help="print note descriptions")

    edit = subparsers.add_parser("edit", help="edit a note")
    edit.add_argument("id", type=int, help="edit the note with the given id")
    edit.add_argument("-c", "--content", help="change the note content")
    edit.add_argument("-t", "--tags", nargs="+", help="change the note tags")
    edit.add_argument("-d", "--desc", help="change the note description")

    delete = subparsers.add_parser("delete", help="delete a note")
    delete.add_argument("id", type=int, help="delete the note with the given id")
    delete.add_argument("-y", "--yes", action="store_true", help="do not ask for confirmation")

    return parser


def normalize_argv(argv: Sequence[str]) -> List[str]:
    """Treat bare words after the global options as ``new`` content."""
    args = list(argv)
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--":
            break
        if arg in _VALUE_OPTIONS:
            i += 2
            continue
        if arg.startswith("-"):
            i += 1
            continue
        if arg not in COMMANDS:
            args.insert(i, "new")
        break
    return args


def update_config(config: NotesConfig, args: argparse.Namespace) -> None:
    """Apply command line overrides to the configuration."""
    if args.backend:
        config.backend = args.backend
    if args.path:
        if config.backend == "sqlite":
            config.database_path = Path(args.path).expanduser()
        else:
            config.notes_file = Path(args.path).expanduser()
    if args.log_level:
        config.log_level = args.log_level


def setup_logging(config: NotesConfig) -> None:
    """Configure logging; fall back to stderr if the log file is unusable."""
    level = getattr(logging, config.log_level, logging.WARNING)
    try:
        log_file = configure_logging(config.get_log_dir(), level=level)
    except OSError as e:
        logging.basicConfig(level=level)
        logger.warning(f"Failed to configure file logging: {e}")
        return
    logger.debug(f"Persistent logging enabled: {log_file}")


def print_notes(records: List[NoteWithId], empty_message: str, show_description: bool) -> None:
    if not records:
        print(empty_message)
        return
    print(render_table(records, show_description=show_description))


def run_new(service: NoteService, args: argparse.Namespace, config: NotesConfig) -> None:
    sources = [bool(args.content), args.file is not None, args.editor is not None]
    if sum(sources) > 1:
        raise ValidationError("Give note content, --file or --editor, not several")

    if args.file is not None:
        note = note_from_file(args.file, tags=args.tags, description=args.desc)
    elif args.editor is not None:
        editor = resolve_editor(args.editor, config)
        note = note_from_editor(editor, tags=args.tags, description=args.desc)
    else:
        content = " ".join(args.content)
        if not content.strip():
            raise ValidationError("Note content cannot be empty", field="content")
        record = service.create_note(content=content, tags=args.tags, description=args.desc)
        print(f"Note with ID {record.id} created.")
        return

    record = service.add_note(note)
    print(f"Note with ID {record.id} created.")


def run_get(service: NoteService, args: argparse.Namespace, config: NotesConfig) -> None:
    if args.id is not None and not args.all:
        try:
            record = service.get_note(args.id)
        except InvalidNoteIdError:
            print(NO_NOTE_FOUND)
            return
        print_notes([record], NO_NOTE_FOUND, args.desc)
        return

    records = service.list_notes(tags=args.tags, search=args.search)
    print_notes(records, NO_NOTES, args.desc)


def run_edit(service: NoteService, args: argparse.Namespace, config: NotesConfig) -> None:
    record = service.edit_note(
        args.id, content=args.content, tags=args.tags, description=args.desc
    )
    print(f"Note {record.id} edited: {record.content}")


def confirm(prompt: str) -> bool:
    """Ask a yes/no question on the terminal; anything but yes is no."""
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def run_delete(service: NoteService, args: argparse.Namespace, config: NotesConfig) -> None:
    try:
        record = service.get_note(args.id)
    except InvalidNoteIdError:
        print(NO_NOTE_FOUND)
        return

    prompt = f"Are you sure that you want to delete `{record.id}: {record.content}`"
    if not args.yes and not confirm(prompt):
        logger.info(f"Deletion of note {record.id} cancelled")
        return

    service.delete_note(record.id)
    print(f"Note `{record.id}: {record.content}` deleted.")


def run_list(service: NoteService, args: argparse.Namespace, config: NotesConfig) -> None:
    print_notes(service.list_notes(), NO_NOTES, False)


HANDLERS: dict = {
    "new": run_new,
    "get": run_get,
    "edit": run_edit,
    "delete": run_delete,
    None: run_list,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run notes-cli and return the exit status."""
    parser = build_parser()
    args = parser.parse_args(normalize_argv(sys.argv[1:] if argv is None else argv))

    try:
        config = load_config(args.config)
        update_config(config, args)
    except NotesError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    setup_logging(config)
    handler: Callable[..., None] = HANDLERS[args.command]
    logger.debug(f"Running command {args.command or 'list'} with backend {config.backend}")

    try:
        with open_repository(config) as repository:
            handler(NoteService(repository), args, config)
    except NotesError as e:
        logger.error(
            f"Command {args.command or 'list'} failed: {e}", extra={"error": e.to_dict()}
        )
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
