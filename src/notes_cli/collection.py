"""The in-memory note collection."""

import logging
from typing import Iterable, Iterator, List, Optional

from notes_cli.exceptions import InvalidNoteIdError
from notes_cli.models.schema import Note, NoteWithId, TagLike, build_note, normalize_tags

logger = logging.getLogger(__name__)


class Notes:
    """An ordered collection of notes addressed by position.

    A note's id is its 0-based index. Deleting a note shifts every later
    note down by one, so an id is only meaningful until the next deletion.
    The collection is owned by the single invocation that loaded it and is
    not safe for concurrent mutation.
    """

    def __init__(self, notes: Iterable[Note] = ()):
        self._notes: List[Note] = list(notes)

    def __len__(self) -> int:
        return len(self._notes)

    def __iter__(self) -> Iterator[Note]:
        return iter(self._notes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Notes):
            return NotImplemented
        return self._notes == other._notes

    def __repr__(self) -> str:
        return f"Notes({len(self._notes)} notes)"

    def len(self) -> int:
        """Return the number of notes."""
        return len(self._notes)

    def _in_bounds(self, index: int) -> bool:
        return 0 <= index < len(self._notes)

    def get(self, index: int) -> Optional[Note]:
        """Get the note at ``index``, or None when it is out of bounds."""
        if not self._in_bounds(index):
            return None
        return self._notes[index]

    def get_with_id(self, index: int) -> Optional[NoteWithId]:
        """Get the note at ``index`` paired with its id."""
        note = self.get(index)
        if note is None:
            return None
        return NoteWithId(index, note)

    def get_all(self) -> List[Note]:
        """Return all notes; the list is empty when there are none."""
        return list(self._notes)

    def get_all_with_id(self) -> List[NoteWithId]:
        """Return all notes paired with their ids."""
        return [NoteWithId(i, note) for i, note in enumerate(self._notes)]

    def get_all_with_tag(self, tag: TagLike) -> List[NoteWithId]:
        """Return the notes that carry ``tag``."""
        return self.get_all_with_tags([tag])

    def get_all_with_tags(self, tags: Iterable[TagLike]) -> List[NoteWithId]:
        """Return the notes that carry every one of ``tags``."""
        wanted = normalize_tags(tags)
        return [
            NoteWithId(i, note)
            for i, note in enumerate(self._notes)
            if note.has_tags(wanted)
        ]

    def search(self, text: str) -> List[NoteWithId]:
        """Return the notes whose content or description contains ``text``.

        Matching is case-insensitive.
        """
        needle = text.casefold()
        return [
            NoteWithId(i, note)
            for i, note in enumerate(self._notes)
            if needle in note.content.casefold() or needle in note.description.casefold()
        ]

    def push(self, note: Note) -> int:
        """Append a note and return its id."""
        self._notes.append(note)
        return len(self._notes) - 1

    def delete(self, index: int) -> Note:
        """Remove and return the note at ``index``.

        Raises:
            InvalidNoteIdError: If ``index`` is out of bounds. The collection
                is left unchanged.
        """
        if not self._in_bounds(index):
            raise InvalidNoteIdError(index)
        note = self._notes.pop(index)
        logger.debug(f"Deleted note {index}; {len(self._notes) - index} notes shifted down")
        return note

    def edit(
        self,
        index: int,
        content: Optional[str] = None,
        tags: Optional[Iterable[TagLike]] = None,
        description: Optional[str] = None,
    ) -> Note:
        """Replace the given fields of the note at ``index``.

        Fields left as None are kept; the creation time never changes. The
        edited note is validated as a whole before it replaces the old one,
        so a failed edit leaves the note untouched.

        Raises:
            InvalidNoteIdError: If ``index`` is out of bounds.
            ValidationError: If a new value is invalid.
        """
        if not self._in_bounds(index):
            raise InvalidNoteIdError(index)

        note = self._notes[index]
        fields = {
            "created": note.created,
            "content": note.content if content is None else content,
            "tags": note.tags if tags is None else normalize_tags(tags),
            "description": note.description if description is None else description,
        }
        edited = build_note(**fields)
        self._notes[index] = edited
        return edited

    def to_list(self) -> List[Note]:
        """Return a shallow copy of the underlying list."""
        return list(self._notes)
