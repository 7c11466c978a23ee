# tests/test_models.py
"""Tests for the data models used by notes-cli."""
import datetime

import pytest
from pydantic import ValidationError

from notes_cli.exceptions import ValidationError as NoteValidationError
from notes_cli.models.schema import (
    TIME_FORMAT,
    Note,
    NoteWithId,
    Tag,
    build_note,
    normalize_tags,
    tag_names,
)


class TestTagModel:
    """Tests for the Tag model."""

    def test_tag_creation(self):
        """Test creating a tag."""
        tag = Tag(name="work")
        assert tag.name == "work"
        assert str(tag) == "work"

    def test_tag_name_is_stripped(self):
        """Surrounding whitespace is not part of the name."""
        assert Tag(name="  work ").name == "work"

    def test_tag_validation(self):
        """Empty and blank names are rejected."""
        with pytest.raises(ValidationError):
            Tag(name="")
        with pytest.raises(ValidationError):
            Tag(name="   ")

    def test_tag_is_immutable(self):
        """Tags are frozen."""
        tag = Tag(name="work")
        with pytest.raises(ValidationError):
            tag.name = "home"

    def test_tags_are_hashable(self):
        """Equal tags collapse in a set."""
        assert len({Tag(name="a"), Tag(name="a"), Tag(name="b")}) == 2


class TestTagNormalization:
    """Tests for tag de-duplication."""

    def test_first_occurrence_wins_and_order_is_kept(self):
        tags = normalize_tags(["b", "a", Tag(name="b"), "c", "a"])
        assert [t.name for t in tags] == ["b", "a", "c"]

    def test_tag_names(self):
        assert tag_names(["x", " x ", "y"]) == ["x", "y"]

    def test_empty(self):
        assert normalize_tags([]) == []

    def test_blank_tag_rejected(self):
        """Blank tags surface as the application's validation error."""
        with pytest.raises(NoteValidationError) as exc_info:
            normalize_tags(["ok", " "])
        assert exc_info.value.message == "Tag name cannot be empty"
        assert exc_info.value.details["field"] == "tags"
        with pytest.raises(NoteValidationError):
            Note(content="x", tags=[""])

    def test_build_note_wraps_model_errors(self):
        with pytest.raises(NoteValidationError) as exc_info:
            build_note(content="x", colour="red")
        assert exc_info.value.details["field"] == "colour"
        assert build_note(content="x", tags=["a"]).tag_names() == ["a"]


class TestNoteModel:
    """Tests for the Note model."""

    def test_note_creation(self):
        """Test creating a note with valid values."""
        note = Note(content="Buy milk", tags=[Tag(name="shopping")], description="Today")
        assert note.content == "Buy milk"
        assert note.tag_names() == ["shopping"]
        assert note.description == "Today"
        assert isinstance(note.created, datetime.datetime)
        assert note.created.tzinfo is not None

    def test_defaults(self):
        """A note may be empty; emptiness is up to the caller."""
        note = Note()
        assert note.content == ""
        assert note.tags == []
        assert note.description == ""

    def test_tags_accept_strings(self):
        """Plain strings are coerced to tags and de-duplicated."""
        note = Note(content="x", tags=["a", "b", "a"])
        assert note.tag_names() == ["a", "b"]
        assert all(isinstance(t, Tag) for t in note.tags)

    def test_tags_accept_single_value_and_none(self):
        assert Note(tags="solo").tag_names() == ["solo"]
        assert Note(tags=None).tags == []

    def test_tags_deduplicated_on_assignment(self):
        note = Note(content="x")
        note.tags = ["a", "a", "b"]
        assert note.tag_names() == ["a", "b"]

    def test_naive_created_becomes_local(self):
        """Naive timestamps are interpreted as local time."""
        naive = datetime.datetime(2021, 3, 4, 5, 6, 7)
        note = Note(created=naive)
        assert note.created.tzinfo is not None
        assert note.created_string() == "2021-03-04 05:06:07"

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            Note(content="x", title="nope")

    def test_has_tag(self):
        note = Note(content="x", tags=["a", "b", "c"])
        assert note.has_tag("a")
        assert note.has_tag(Tag(name="b"))
        assert not note.has_tag("d")

    def test_has_tags_is_containment(self):
        """All of the given tags must be present."""
        note = Note(content="x", tags=["a", "b", "c"])
        assert note.has_tags(["a", "b"])
        assert not note.has_tags(["a", "d"])
        assert note.has_tags([])

    def test_created_string_format(self):
        created = datetime.datetime(2020, 12, 31, 23, 59, 1).astimezone()
        note = Note(created=created)
        assert note.created_string() == created.strftime(TIME_FORMAT)

    def test_json_round_trip(self):
        """Serialized notes read back identically."""
        note = Note(content="x", tags=["a"], description="d")
        restored = Note.model_validate_json(note.model_dump_json())
        assert restored == note


class TestNoteWithId:
    """Tests for the display pairing of id and note."""

    def test_properties(self):
        created = datetime.datetime(2022, 1, 2, 3, 4, 5).astimezone()
        record = NoteWithId(3, Note(created=created, content="c", tags=["a", "b"], description="d"))
        assert record.id == 3
        assert record.created == "2022-01-02 03:04:05"
        assert record.content == "c"
        assert record.tags == "a,b"
        assert record.description == "d"

    def test_no_tags_is_empty_string(self):
        assert NoteWithId(0, Note(content="c")).tags == ""
