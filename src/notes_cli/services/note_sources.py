"""Build notes from files and from an external editor."""

import datetime
import logging
import os
import shlex
import subprocess
import tempfile
from pathlib import Path
from typing import Iterable, Optional, Union

from notes_cli.config import NotesConfig
from notes_cli.exceptions import ErrorCode, NoteSourceError
from notes_cli.models.schema import Note, TagLike, build_note

logger = logging.getLogger(__name__)

EDITOR_NOT_FOUND = "Editor not found."
FILE_NOT_SAVED = "File not saved."


def note_from_file(
    path: Union[str, Path],
    tags: Optional[Iterable[TagLike]] = None,
    description: str = "",
) -> Note:
    """Make a note from the text of a file.

    The content is the file text with surrounding whitespace removed; the
    creation time is the file's modification time.

    Raises:
        NoteSourceError: If the path is a directory or cannot be read.
    """
    path = Path(path)
    if path.is_dir():
        raise NoteSourceError(
            f"Cannot make new note from file; `{path}` is a directory.",
            source=str(path),
            code=ErrorCode.NOTE_SOURCE_IS_DIRECTORY,
        )
    try:
        text = path.read_text(encoding="utf-8")
        mtime = path.stat().st_mtime
    except (OSError, UnicodeDecodeError) as e:
        raise NoteSourceError(
            f"Cannot make new note from file `{path}`: {e}",
            source=str(path),
        ) from e

    created = datetime.datetime.fromtimestamp(mtime).astimezone()
    logger.debug(f"Read {len(text)} characters from {path}")
    return build_note(
        created=created,
        content=text.strip(),
        tags=list(tags or []),
        description=description,
    )


def resolve_editor(explicit: Optional[str], config: NotesConfig) -> str:
    """Pick the editor command: an explicit one wins over the configured one."""
    if explicit and explicit.strip():
        return explicit
    return config.editor


def note_from_editor(
    editor: str,
    tags: Optional[Iterable[TagLike]] = None,
    description: str = "",
) -> Note:
    """Open ``editor`` on an empty temporary file and make a note of the result.

    ``editor`` is split like a shell command line, so it may carry arguments.

    Raises:
        NoteSourceError: If the editor cannot be run or exits with an error,
            or if nothing was written.
    """
    fd, tmp_name = tempfile.mkstemp(prefix="note-", suffix=".txt")
    os.close(fd)
    try:
        command = shlex.split(editor) + [tmp_name]
        logger.debug(f"Running editor: {command}")
        try:
            result = subprocess.run(command, check=False)
        except (FileNotFoundError, PermissionError) as e:
            raise NoteSourceError(
                f"Unable to make note from editor: {EDITOR_NOT_FOUND}",
                source=editor,
                code=ErrorCode.NOTE_EDITOR_FAILED,
            ) from e
        if result.returncode != 0:
            logger.warning(f"Editor {editor!r} exited with status {result.returncode}")
            raise NoteSourceError(
                f"Unable to make note from editor: {EDITOR_NOT_FOUND}",
                source=editor,
                code=ErrorCode.NOTE_EDITOR_FAILED,
            )

        with open(tmp_name, "r", encoding="utf-8") as f:
            content = f.read().strip()
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)

    if not content:
        raise NoteSourceError(
            f"Unable to make note from editor: {FILE_NOT_SAVED}",
            source=editor,
            code=ErrorCode.NOTE_NOT_SAVED,
        )
    return build_note(content=content, tags=list(tags or []), description=description)
