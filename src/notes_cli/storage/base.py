"""Base repository contract shared by the storage backends."""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from notes_cli.collection import Notes
from notes_cli.models.schema import Note, NoteId, NoteWithId, TagLike


class Repository(ABC):
    """Persistence backend for notes.

    Every backend can load the whole collection and save it back. The
    per-note operations address notes by a ``NoteId`` whose stability
    depends on the backend; see the concrete classes.
    """

    @abstractmethod
    def load(self) -> Notes:
        """Read every stored note into a collection."""

    @abstractmethod
    def save(self, notes: Notes) -> None:
        """Replace the stored notes with ``notes``."""

    @abstractmethod
    def get(self, note_id: NoteId) -> Optional[NoteWithId]:
        """Get a note by id, or None when there is none."""

    @abstractmethod
    def get_all(self) -> List[NoteWithId]:
        """Get every note in id order."""

    @abstractmethod
    def find_by_tags(self, tags: Iterable[TagLike]) -> List[NoteWithId]:
        """Get the notes that carry all of ``tags``."""

    @abstractmethod
    def search(self, text: str) -> List[NoteWithId]:
        """Get the notes whose content or description contains ``text``."""

    @abstractmethod
    def create(self, note: Note) -> NoteId:
        """Store a new note and return its id."""

    @abstractmethod
    def update(
        self,
        note_id: NoteId,
        content: Optional[str] = None,
        tags: Optional[Iterable[TagLike]] = None,
        description: Optional[str] = None,
    ) -> NoteWithId:
        """Replace the given fields of a note and return it."""

    @abstractmethod
    def delete(self, note_id: NoteId) -> Note:
        """Delete a note and return it."""

    def close(self) -> None:
        """Flush pending changes and release resources."""

    def __enter__(self) -> "Repository":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        # Changes from a failed command are not persisted
        if exc_type is None:
            self.close()
        else:
            self.discard()

    def discard(self) -> None:
        """Release resources without flushing pending changes."""
