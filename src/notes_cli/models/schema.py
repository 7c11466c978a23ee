"""Data models for notes-cli."""

import datetime
from dataclasses import dataclass
from typing import Any, Iterable, List, Union

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from notes_cli.exceptions import ValidationError

# Display format for creation timestamps
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Positional index (file backend) or primary key (SQLite backend)
NoteId = int


def local_now() -> datetime.datetime:
    """Get the current local time as a timezone-aware datetime."""
    return datetime.datetime.now().astimezone()


def ensure_local(dt_value: datetime.datetime) -> datetime.datetime:
    """Ensure a datetime is timezone-aware, treating naive datetimes as local time."""
    if dt_value.tzinfo is None:
        return dt_value.astimezone()
    return dt_value


def format_time(dt_value: datetime.datetime) -> str:
    """Format a timestamp the way it is shown in tables."""
    return dt_value.strftime(TIME_FORMAT)


class Tag(BaseModel):
    """A tag for categorizing notes."""

    name: str = Field(..., description="Tag name")

    model_config = {"validate_assignment": True, "frozen": True}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Strip surrounding whitespace and reject empty names."""
        v = v.strip()
        if not v:
            raise ValueError("Tag name cannot be empty")
        return v

    def __str__(self) -> str:
        """Return string representation of tag."""
        return self.name


TagLike = Union[str, Tag]


def normalize_tags(tags: Iterable[TagLike]) -> List[Tag]:
    """Coerce tags to ``Tag`` and drop duplicates.

    The first occurrence of a name wins and the original order is kept.

    Raises:
        ValidationError: If a tag name is blank or not text.
    """
    result: List[Tag] = []
    seen = set()
    for tag in tags:
        if not isinstance(tag, Tag):
            try:
                tag = Tag(name=tag)
            except PydanticValidationError as e:
                message = "Tag name cannot be empty" if isinstance(tag, str) else "Tag name must be text"
                raise ValidationError(message, field="tags", value=tag) from e
        if tag.name not in seen:
            seen.add(tag.name)
            result.append(tag)
    return result


def tag_names(tags: Iterable[TagLike]) -> List[str]:
    """Return the de-duplicated names of the given tags."""
    return [tag.name for tag in normalize_tags(tags)]


class Note(BaseModel):
    """A short text note.

    Empty content is allowed here; whether it is acceptable is up to the
    caller.
    """

    created: datetime.datetime = Field(
        default_factory=local_now, description="When the note was created (local time)"
    )
    content: str = Field(default="", description="Content of the note")
    tags: List[Tag] = Field(default_factory=list, description="Tags for categorization")
    description: str = Field(default="", description="Optional longer description")

    model_config = {"validate_assignment": True, "extra": "forbid"}

    @field_validator("created")
    @classmethod
    def validate_created(cls, v: datetime.datetime) -> datetime.datetime:
        """Attach the local timezone to naive timestamps."""
        return ensure_local(v)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> Any:
        """De-duplicate tags, accepting plain strings."""
        if v is None:
            return []
        if isinstance(v, (str, Tag)):
            v = [v]
        return normalize_tags(t if isinstance(t, (str, Tag)) else Tag.model_validate(t) for t in v)

    def has_tag(self, tag: TagLike) -> bool:
        """Check if this note has a given tag."""
        name = tag.name if isinstance(tag, Tag) else normalize_tags([tag])[0].name
        return any(t.name == name for t in self.tags)

    def has_tags(self, tags: Iterable[TagLike]) -> bool:
        """Check if this note has all of the given tags."""
        return all(self.has_tag(tag) for tag in tags)

    def tag_names(self) -> List[str]:
        """Return the names of this note's tags in order."""
        return [tag.name for tag in self.tags]

    def created_string(self) -> str:
        """Return a formatted string of the creation time."""
        return format_time(self.created)


@dataclass(frozen=True)
class NoteWithId:
    """A note paired with the id it is addressed by.

    For the file backend the id is the note's position and is only valid
    until the next deletion; for the SQLite backend it is the primary key.
    """

    id: NoteId
    note: Note

    @property
    def created(self) -> str:
        return self.note.created_string()

    @property
    def content(self) -> str:
        return self.note.content

    @property
    def tags(self) -> str:
        return ",".join(self.note.tag_names())

    @property
    def description(self) -> str:
        return self.note.description


def build_note(**fields: Any) -> Note:
    """Construct a ``Note``, reporting bad input as a ``ValidationError``."""
    try:
        return Note(**fields)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(loc) for loc in first.get("loc", ())) or None
        raise ValidationError(
            f"Invalid note: {first.get('msg', 'invalid value')}", field=field
        ) from e
