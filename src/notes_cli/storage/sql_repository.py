"""SQLite note storage.

Notes are rows of the ``notes`` table and are addressed by their
autoincrement primary key, which stays stable across deletions. Reads and
writes go through ``Query`` values compiled to parameterized statements.
Every multi-statement operation runs in one transaction that is rolled back
on any failure.
"""

import datetime
import json
import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from notes_cli.collection import Notes
from notes_cli.exceptions import (
    DeserializationError,
    ErrorCode,
    InvalidNoteIdError,
    StorageError,
    ValidationError,
)
from notes_cli.models.db_models import NOTES_TABLE, Base, DBNote, get_session_factory, init_db
from notes_cli.models.schema import Note, NoteId, NoteWithId, TagLike, tag_names
from notes_cli.query import Ascending, Equal, Int, Like, Query, QueryKind
from notes_cli.storage.base import Repository
from notes_cli.utils import LIKE_ESCAPE, contains_pattern, escape_like_pattern

logger = logging.getLogger(__name__)


def encode_tags(tags: Iterable[TagLike]) -> Optional[str]:
    """Encode tags for the ``tags`` column; NULL when there are none."""
    names = tag_names(tags)
    return json.dumps(names) if names else None


def decode_tags(value: Optional[str]) -> List[str]:
    """Decode the ``tags`` column."""
    if not value:
        return []
    names = json.loads(value)
    if not isinstance(names, list):
        raise ValueError("tags column must hold a JSON array")
    return names


def row_to_note(row: Mapping[str, Any]) -> NoteWithId:
    """Convert a full ``notes`` row to a note with its primary key.

    Raises:
        ValidationError: If the row lacks the id, created or content column.
        DeserializationError: If a stored value cannot be decoded.
    """
    try:
        note_id = row["id"]
        created = row["created"]
        content = row["content"]
    except KeyError as e:
        raise ValidationError(
            "Fetched rows must include the id, created and content columns",
            field=str(e),
        ) from e

    try:
        note = Note(
            created=datetime.datetime.fromisoformat(created),
            content=content or "",
            tags=decode_tags(row.get("tags")),
            description=row.get("description") or "",
        )
    except (ValueError, TypeError, PydanticValidationError) as e:
        raise DeserializationError(
            f"Unable to decode note {note_id}", original_error=e
        ) from e
    return NoteWithId(note_id, note)


class SqlNoteRepository(Repository):
    """Repository backed by the ``notes`` table of an SQLite database."""

    def __init__(self, engine: Optional[Engine] = None, db_url: Optional[str] = None):
        """Initialize the repository.

        Args:
            engine: Pre-configured SQLAlchemy engine. The schema is created on
                it if missing. The caller keeps ownership of the engine.
            db_url: Database URL used to create a private engine when no
                engine is given. Defaults to the configured database file.
        """
        self._owns_engine = engine is None
        try:
            if engine is None:
                self.engine = init_db(db_url)
            else:
                self.engine = engine
                self.init_schema()
        except SQLAlchemyError as e:
            raise StorageError(
                "Could not open database",
                operation="init",
                code=ErrorCode.STORAGE_CONNECTION_FAILED,
                original_error=e,
            ) from e
        self.session_factory = get_session_factory(self.engine)
        logger.info(f"SqlNoteRepository initialized: url={self.engine.url}")

    def init_schema(self) -> None:
        """Create the notes table if it does not exist."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Session]:
        """Run a unit of work in one transaction, committing on success."""
        try:
            with self.session_factory.begin() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Database {operation} failed: {e}")
            if operation in ("fetch", "load"):
                code = ErrorCode.STORAGE_READ_FAILED
            elif operation == "delete":
                code = ErrorCode.STORAGE_DELETE_FAILED
            else:
                code = ErrorCode.STORAGE_WRITE_FAILED
            raise StorageError(
                f"Database {operation} failed",
                operation=operation,
                code=code,
                original_error=e,
            ) from e

    # ------------------------------------------------------------------
    # Query execution
    # ------------------------------------------------------------------

    def execute(self, query: Query, session: Optional[Session] = None) -> int:
        """Run an Update or Delete query and return the affected row count."""
        if query.kind == QueryKind.GET:
            raise ValidationError("Use fetch() for Get queries", field="kind")
        compiled = query.compile()
        logger.debug(f"execute: {compiled.sql!r} {compiled.params}")
        if session is not None:
            return session.execute(text(compiled.sql), compiled.params).rowcount
        with self._transaction("execute") as own_session:
            return own_session.execute(text(compiled.sql), compiled.params).rowcount

    def fetch(self, query: Query, session: Optional[Session] = None) -> List[NoteWithId]:
        """Run a Get query and return the matching notes."""
        if query.kind != QueryKind.GET:
            raise ValidationError("fetch() only runs Get queries", field="kind")
        compiled = query.compile()
        logger.debug(f"fetch: {compiled.sql!r} {compiled.params}")
        if session is not None:
            rows = session.execute(text(compiled.sql), compiled.params).mappings().all()
        else:
            with self._transaction("fetch") as own_session:
                rows = own_session.execute(text(compiled.sql), compiled.params).mappings().all()
        return [row_to_note(row) for row in rows]

    def _select_all(self) -> Query:
        return Query.new_get(NOTES_TABLE, ["*"]).add_order(Ascending("id"))

    def _fetch_one(self, session: Session, note_id: NoteId) -> Optional[NoteWithId]:
        rows = self.fetch(
            Query.new_get(NOTES_TABLE, ["*"]).add_where(Equal("id", Int(note_id))),
            session=session,
        )
        return rows[0] if rows else None

    # ------------------------------------------------------------------
    # Repository contract
    # ------------------------------------------------------------------

    def insert(self, note: Note, session: Optional[Session] = None) -> NoteId:
        """Insert a note and return the primary key assigned to it."""
        db_note = DBNote(
            created=note.created.isoformat(),
            content=note.content,
            tags=encode_tags(note.tags),
            description=note.description or None,
        )
        if session is not None:
            session.add(db_note)
            session.flush()
            return db_note.id
        with self._transaction("insert") as own_session:
            own_session.add(db_note)
            own_session.flush()
            return db_note.id

    def create(self, note: Note) -> NoteId:
        note_id = self.insert(note)
        logger.info(f"Created note {note_id}")
        return note_id

    def get(self, note_id: NoteId) -> Optional[NoteWithId]:
        with self._transaction("fetch") as session:
            return self._fetch_one(session, note_id)

    def get_all(self) -> List[NoteWithId]:
        return self.fetch(self._select_all())

    def find_by_tags(self, tags: Iterable[TagLike]) -> List[NoteWithId]:
        """Get the notes that carry all of ``tags``.

        Each tag narrows the rows with a LIKE over the encoded JSON array;
        the exact membership check happens on the decoded notes.
        """
        names = tag_names(tags)
        query = self._select_all()
        for name in names:
            pattern = f"%{escape_like_pattern(json.dumps(name))}%"
            query = query.add_where(Like("tags", pattern, escape=LIKE_ESCAPE))
        return [record for record in self.fetch(query) if record.note.has_tags(names)]

    def search(self, text: str) -> List[NoteWithId]:
        pattern = contains_pattern(text)
        found = {}
        with self._transaction("fetch") as session:
            for column in ("content", "description"):
                query = self._select_all().add_where(
                    Like(column, pattern, escape=LIKE_ESCAPE)
                )
                for record in self.fetch(query, session=session):
                    found[record.id] = record
        return [found[note_id] for note_id in sorted(found)]

    def update(
        self,
        note_id: NoteId,
        content: Optional[str] = None,
        tags: Optional[Iterable[TagLike]] = None,
        description: Optional[str] = None,
    ) -> NoteWithId:
        """Replace the given fields of a note; the creation time is kept.

        The read, the update and the re-read share one transaction.

        Raises:
            InvalidNoteIdError: If no note has this id.
        """
        assignments = []
        if content is not None:
            assignments.append(("content", content))
        if tags is not None:
            assignments.append(("tags", encode_tags(tags)))
        if description is not None:
            assignments.append(("description", description or None))

        with self._transaction("update") as session:
            existing = self._fetch_one(session, note_id)
            if existing is None:
                raise InvalidNoteIdError(note_id)
            if not assignments:
                return existing
            self.execute(
                Query.new_update(NOTES_TABLE, assignments).add_where(Equal("id", Int(note_id))),
                session=session,
            )
            updated = self._fetch_one(session, note_id)

        logger.info(f"Updated note {note_id}: {[column for column, _ in assignments]}")
        return updated

    def delete(self, note_id: NoteId) -> Note:
        """Delete a note and return it.

        Raises:
            InvalidNoteIdError: If no note has this id.
        """
        with self._transaction("delete") as session:
            existing = self._fetch_one(session, note_id)
            if existing is None:
                raise InvalidNoteIdError(note_id)
            self.execute(
                Query.new_delete(NOTES_TABLE).add_where(Equal("id", Int(note_id))),
                session=session,
            )

        logger.info(f"Deleted note {note_id}")
        return existing.note

    def load(self) -> Notes:
        """Read every row, in id order, into a collection."""
        with self._transaction("load") as session:
            records = self.fetch(self._select_all(), session=session)
        return Notes(record.note for record in records)

    def save(self, notes: Notes) -> None:
        """Replace the table contents with ``notes`` in one transaction.

        The collection carries no ids, so every row is inserted afresh and
        gets a new primary key in collection order. Ids stay stable across
        the per-note operations; callers of ``save`` must re-read them.
        """
        with self._transaction("save") as session:
            removed = self.execute(Query.new_delete(NOTES_TABLE), session=session)
            for note in notes:
                self.insert(note, session=session)
        logger.info(f"Saved {len(notes)} notes (replaced {removed} rows)")

    def close(self) -> None:
        if self._owns_engine:
            self.engine.dispose()

    def discard(self) -> None:
        self.close()
