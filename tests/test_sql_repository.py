"""Tests for the SQLite repository and query execution."""
import datetime

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError

from notes_cli.collection import Notes
from notes_cli.exceptions import (
    DeserializationError,
    ErrorCode,
    InvalidNoteIdError,
    StorageError,
    ValidationError,
)
from notes_cli.models.schema import Note
from notes_cli.query import Ascending, Equal, Int, Like, Limit, Query, Str
from notes_cli.storage.sql_repository import SqlNoteRepository, decode_tags, encode_tags


class TestTagColumn:
    def test_encode(self):
        assert encode_tags(["a", "b", "a"]) == '["a", "b"]'
        assert encode_tags([]) is None

    def test_decode(self):
        assert decode_tags('["a", "b"]') == ["a", "b"]
        assert decode_tags(None) == []
        with pytest.raises(ValueError):
            decode_tags('{"a": 1}')


class TestSchema:
    def test_pragmas_applied(self, sql_repository):
        with sql_repository.engine.connect() as conn:
            assert conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"

    def test_external_engine(self):
        engine = create_engine("sqlite://")
        repository = SqlNoteRepository(engine=engine)
        note_id = repository.create(Note(content="in memory"))
        assert repository.get(note_id).content == "in memory"
        repository.close()
        engine.dispose()


class TestExecuteFetch:
    """Tests for running built queries."""

    @pytest.fixture
    def populated(self, sql_repository):
        for content in ("alpha", "beta", "gamma"):
            sql_repository.create(Note(content=content))
        return sql_repository

    def test_fetch(self, populated):
        query = (
            Query.new_get("notes", ["*"])
            .add_where(Like("content", Str("%a")))
            .add_order(Ascending("id"))
            .add_limit(Limit(2))
        )
        assert [r.content for r in populated.fetch(query)] == ["alpha", "beta"]

    def test_fetch_binds_quotes_safely(self, populated):
        populated.create(Note(content="it's; DROP TABLE notes"))
        query = Query.new_get("notes", ["*"]).add_where(Equal("content", "it's; DROP TABLE notes"))
        assert len(populated.fetch(query)) == 1
        assert len(populated.get_all()) == 4

    def test_execute_update_returns_rowcount(self, populated):
        query = Query.new_update("notes", {"content": "changed"}).add_where(Equal("id", Int(1)))
        assert populated.execute(query) == 1
        assert populated.get(1).content == "changed"

    def test_execute_delete(self, populated):
        assert populated.execute(Query.new_delete("notes")) == 3
        assert populated.get_all() == []

    def test_wrong_kind_rejected(self, populated):
        with pytest.raises(ValidationError):
            populated.execute(Query.new_get("notes", ["*"]))
        with pytest.raises(ValidationError):
            populated.fetch(Query.new_delete("notes"))

    def test_missing_columns_rejected(self, populated):
        with pytest.raises(ValidationError):
            populated.fetch(Query.new_get("notes", ["id"]))

    def test_unknown_column_is_storage_error(self, populated):
        query = Query.new_update("notes", {"nope": 1})
        with pytest.raises(StorageError):
            populated.execute(query)

    def test_undecodable_row(self, populated):
        with populated.engine.begin() as conn:
            conn.execute(text("UPDATE notes SET created = 'yesterday' WHERE id = 1"))
        with pytest.raises(DeserializationError):
            populated.get_all()


class TestRepositoryContract:
    """Tests for identity and transactional updates."""

    def test_ids_are_stable(self, sql_repository):
        ids = [sql_repository.create(Note(content=c)) for c in ("a", "b", "c")]
        sql_repository.delete(ids[0])
        assert [(r.id, r.content) for r in sql_repository.get_all()] == [(ids[1], "b"), (ids[2], "c")]

    def test_update_keeps_created(self, sql_repository):
        created = datetime.datetime(2019, 9, 9, 9, 9, 9).astimezone()
        note_id = sql_repository.create(Note(created=created, content="old", tags=["x"]))
        record = sql_repository.update(note_id, content="new")
        assert record.content == "new"
        assert record.note.tag_names() == ["x"]
        assert record.note.created == created

    def test_update_clears_tags_and_description(self, sql_repository):
        note_id = sql_repository.create(Note(content="c", tags=["x"], description="d"))
        record = sql_repository.update(note_id, tags=[], description="")
        assert record.note.tags == []
        assert record.description == ""

    def test_update_unknown(self, sql_repository):
        with pytest.raises(InvalidNoteIdError):
            sql_repository.update(99, content="x")

    def test_delete_unknown(self, sql_repository):
        with pytest.raises(InvalidNoteIdError):
            sql_repository.delete(99)

    def test_find_by_tags_is_exact(self, sql_repository):
        sql_repository.create(Note(content="1", tags=["work", "urgent"]))
        sql_repository.create(Note(content="2", tags=["workshop"]))
        sql_repository.create(Note(content="3", tags=["100%_done"]))
        assert [r.content for r in sql_repository.find_by_tags(["work"])] == ["1"]
        assert [r.content for r in sql_repository.find_by_tags(["work", "urgent"])] == ["1"]
        assert [r.content for r in sql_repository.find_by_tags(["100%_done"])] == ["3"]
        assert sql_repository.find_by_tags(["100%"]) == []

    def test_search_content_and_description(self, sql_repository):
        sql_repository.create(Note(content="Buy milk"))
        sql_repository.create(Note(content="x", description="milk run"))
        sql_repository.create(Note(content="50% off"))
        assert [r.content for r in sql_repository.search("MILK")] == ["Buy milk", "x"]
        assert [r.content for r in sql_repository.search("50%")] == ["50% off"]
        assert sql_repository.search("5_%") == []

    def test_load_save_round_trip(self, sql_repository):
        created = datetime.datetime(2021, 6, 7, 8, 9, 10).astimezone()
        notes = Notes(
            [
                Note(created=created, content="one", tags=["a"]),
                Note(created=created, content="two", description="d"),
            ]
        )
        sql_repository.save(notes)
        assert sql_repository.load() == notes
        sql_repository.save(Notes([Note(created=created, content="only")]))
        assert [n.content for n in sql_repository.load()] == ["only"]

    def test_save_assigns_fresh_ids(self, sql_repository):
        """Saving a collection re-inserts every row under a new key."""
        old_ids = [sql_repository.create(Note(content=c)) for c in ("a", "b")]
        sql_repository.save(sql_repository.load())
        records = sql_repository.get_all()
        assert [r.content for r in records] == ["a", "b"]
        assert not set(r.id for r in records) & set(old_ids)


def failing_after(method):
    """Wrap a repository method so it runs and then fails like a dead disk."""

    def wrapper(*args, **kwargs):
        method(*args, **kwargs)
        raise OperationalError("statement", {}, Exception("disk full"))

    return wrapper


class TestRollback:
    """A failure mid-transaction leaves the table as it was."""

    def test_update_rolled_back(self, sql_repository, monkeypatch):
        note_id = sql_repository.create(Note(content="old", tags=["t"]))
        monkeypatch.setattr(sql_repository, "execute", failing_after(sql_repository.execute))
        with pytest.raises(StorageError) as exc_info:
            sql_repository.update(note_id, content="new", tags=["u"])
        assert exc_info.value.code == ErrorCode.STORAGE_WRITE_FAILED
        record = sql_repository.get(note_id)
        assert record.content == "old"
        assert record.note.tag_names() == ["t"]

    def test_delete_rolled_back(self, sql_repository, monkeypatch):
        note_id = sql_repository.create(Note(content="stay"))
        monkeypatch.setattr(sql_repository, "execute", failing_after(sql_repository.execute))
        with pytest.raises(StorageError) as exc_info:
            sql_repository.delete(note_id)
        assert exc_info.value.code == ErrorCode.STORAGE_DELETE_FAILED
        assert sql_repository.get(note_id).content == "stay"

    def test_save_rolled_back(self, sql_repository, monkeypatch):
        sql_repository.create(Note(content="kept"))
        monkeypatch.setattr(sql_repository, "insert", failing_after(sql_repository.insert))
        with pytest.raises(StorageError):
            sql_repository.save(Notes([Note(content="one"), Note(content="two")]))
        assert [r.content for r in sql_repository.get_all()] == ["kept"]
