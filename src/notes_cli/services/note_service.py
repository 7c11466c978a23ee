"""Service layer for note operations."""

import datetime
import logging
from typing import Iterable, List, Optional

from notes_cli.exceptions import InvalidNoteIdError, ValidationError
from notes_cli.models.schema import Note, NoteId, NoteWithId, TagLike, build_note, tag_names
from notes_cli.observability import timed_operation, traced
from notes_cli.storage.base import Repository

logger = logging.getLogger(__name__)


class NoteService:
    """Service for creating, listing, editing and deleting notes.

    The service does not own the repository; callers open and close it.
    """

    def __init__(self, repository: Repository):
        self.repository = repository

    @traced("create_note")
    def create_note(
        self,
        content: str = "",
        tags: Optional[Iterable[TagLike]] = None,
        description: str = "",
        created: Optional[datetime.datetime] = None,
    ) -> NoteWithId:
        """Create a new note and return it with its id."""
        fields = {"content": content, "tags": list(tags or []), "description": description}
        if created is not None:
            fields["created"] = created
        note = build_note(**fields)
        return self.add_note(note)

    def add_note(self, note: Note) -> NoteWithId:
        """Store an already built note, e.g. one read from a file."""
        note_id = self.repository.create(note)
        logger.info(f"Note {note_id} created with {len(note.tags)} tags")
        return NoteWithId(note_id, note)

    @traced("get_note")
    def get_note(self, note_id: NoteId) -> NoteWithId:
        """Get a note by id.

        Raises:
            InvalidNoteIdError: If no note has this id.
        """
        record = self.repository.get(note_id)
        if record is None:
            raise InvalidNoteIdError(note_id)
        return record

    def list_notes(
        self,
        tags: Optional[Iterable[TagLike]] = None,
        search: Optional[str] = None,
    ) -> List[NoteWithId]:
        """List notes in id order.

        Args:
            tags: Only notes carrying all of these tags.
            search: Only notes whose content or description contains this
                text.
        """
        wanted = tag_names(tags or [])
        with timed_operation("list_notes", tags=wanted, search=search) as op:
            if wanted:
                records = self.repository.find_by_tags(wanted)
            elif search:
                records = self.repository.search(search)
            else:
                records = self.repository.get_all()

            if wanted and search:
                matching = {record.id for record in self.repository.search(search)}
                records = [record for record in records if record.id in matching]

            op["result_count"] = len(records)
        return records

    @traced("edit_note")
    def edit_note(
        self,
        note_id: NoteId,
        content: Optional[str] = None,
        tags: Optional[Iterable[TagLike]] = None,
        description: Optional[str] = None,
    ) -> NoteWithId:
        """Replace the given fields of a note.

        Raises:
            ValidationError: If no field is given.
            InvalidNoteIdError: If no note has this id.
        """
        if content is None and tags is None and description is None:
            raise ValidationError("Nothing to edit; give content, tags or a description")
        record = self.repository.update(
            note_id, content=content, tags=tags, description=description
        )
        logger.info(f"Note {note_id} edited")
        return record

    @traced("delete_note")
    def delete_note(self, note_id: NoteId) -> Note:
        """Delete a note and return it.

        Raises:
            InvalidNoteIdError: If no note has this id.
        """
        note = self.repository.delete(note_id)
        logger.info(f"Note {note_id} deleted")
        return note
