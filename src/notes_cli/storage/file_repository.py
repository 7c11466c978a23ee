"""Flat-file note storage.

The whole collection lives in one JSON document that is read completely at
startup and rewritten completely on close. Writes go to a temporary file in
the same directory which then atomically replaces the original.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from notes_cli.collection import Notes
from notes_cli.exceptions import DeserializationError, ErrorCode, StorageError
from notes_cli.models.schema import Note, NoteId, NoteWithId, TagLike
from notes_cli.storage.base import Repository

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class NotesDocument(BaseModel):
    """On-disk shape of the notes file."""

    version: int = Field(default=FORMAT_VERSION, description="File format version")
    notes: List[Note] = Field(default_factory=list, description="Notes in id order")

    model_config = {"extra": "forbid"}


class FileNoteRepository(Repository):
    """Repository backed by a single JSON file.

    Ids are positions in the loaded collection. They are only valid for the
    session that loaded them: deleting a note renumbers every later note.
    Changes are kept in memory until ``close()``.
    """

    def __init__(self, path: Union[str, Path]):
        """Open the notes file, creating an empty one if it does not exist.

        Raises:
            StorageError: If the file cannot be created or read.
            DeserializationError: If the file is not a valid notes document.
        """
        self.path = Path(path)
        self._init_file()
        self._notes = self.load()
        self._dirty = False
        logger.info(f"FileNoteRepository opened: path={self.path}, notes={len(self._notes)}")

    @property
    def notes(self) -> Notes:
        """The collection loaded for this session."""
        return self._notes

    def _init_file(self) -> None:
        if self.path.is_dir():
            raise StorageError(
                "Notes path is a directory",
                operation="init",
                path=str(self.path),
            )
        if not self.path.exists():
            logger.info(f"Initializing empty notes file at {self.path}")
            self.save(Notes())

    def load(self) -> Notes:
        """Read the notes file into a collection."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(
                "Unable to read notes file.",
                operation="load",
                path=str(self.path),
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            ) from e

        try:
            document = NotesDocument.model_validate_json(raw)
        except PydanticValidationError as e:
            raise DeserializationError(path=str(self.path), original_error=e) from e

        if document.version != FORMAT_VERSION:
            raise DeserializationError(
                f"Unsupported notes file version: {document.version}",
                path=str(self.path),
            )
        return Notes(document.notes)

    def save(self, notes: Notes) -> None:
        """Atomically replace the notes file with ``notes``."""
        document = NotesDocument(notes=notes.to_list())
        payload = document.model_dump_json(indent=2)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise StorageError(
                "Unable to write notes file.",
                operation="save",
                path=str(self.path),
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e

        self._notes = notes
        self._dirty = False
        logger.debug(f"Saved {len(notes)} notes to {self.path}")

    def get(self, note_id: NoteId) -> Optional[NoteWithId]:
        return self._notes.get_with_id(note_id)

    def get_all(self) -> List[NoteWithId]:
        return self._notes.get_all_with_id()

    def find_by_tags(self, tags: Iterable[TagLike]) -> List[NoteWithId]:
        return self._notes.get_all_with_tags(tags)

    def search(self, text: str) -> List[NoteWithId]:
        return self._notes.search(text)

    def create(self, note: Note) -> NoteId:
        note_id = self._notes.push(note)
        self._dirty = True
        return note_id

    def update(
        self,
        note_id: NoteId,
        content: Optional[str] = None,
        tags: Optional[Iterable[TagLike]] = None,
        description: Optional[str] = None,
    ) -> NoteWithId:
        note = self._notes.edit(note_id, content=content, tags=tags, description=description)
        self._dirty = True
        return NoteWithId(note_id, note)

    def delete(self, note_id: NoteId) -> Note:
        note = self._notes.delete(note_id)
        self._dirty = True
        return note

    def close(self) -> None:
        """Write the collection back if it was modified."""
        if self._dirty:
            self.save(self._notes)

    def discard(self) -> None:
        if self._dirty:
            logger.warning(f"Discarding unsaved changes to {self.path}")
        self._dirty = False
