"""A small statement builder for the notes table.

Queries are immutable values. ``Query.new_get``, ``Query.new_update`` and
``Query.new_delete`` fix the statement kind; ``add_where``, ``add_order`` and
``add_limit`` return updated copies. Predicates accumulate and are joined
with ``AND``; order and limit replace any previous value.

A query can be turned into text two ways:

- ``render()`` inlines every value as an escaped SQL literal. It is meant for
  display, logging and tests.
- ``compile()`` replaces every value with a named placeholder and returns the
  values separately. Storage executes the compiled form.

Example:
    >>> q = (Query.new_get("notes", ["*"])
    ...      .add_where(Equal("title", Str("Day 12")))
    ...      .add_order(Ascending("id"))
    ...      .add_limit(Limit(10)))
    >>> print(q.render())
    SELECT * FROM notes
    WHERE title = 'Day 12'
    ORDER BY id ASC
    LIMIT 10
"""

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Mapping,
    NamedTuple,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from notes_cli.exceptions import ErrorCode, ValidationError

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Tab, newline and carriage return are legitimate inside note text
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def validate_identifier(name: str, field_name: str = "column") -> str:
    """Validate a table or column name before it is placed in statement text.

    Raises:
        ValidationError: If the name is empty or not a plain SQL identifier.
    """
    if not isinstance(name, str) or not name:
        raise ValidationError(
            f"{field_name} name cannot be empty",
            field=field_name,
            code=ErrorCode.INVALID_IDENTIFIER,
        )
    if not IDENTIFIER_PATTERN.match(name):
        raise ValidationError(
            f"{field_name} name is not a valid identifier",
            field=field_name,
            value=name,
            code=ErrorCode.INVALID_IDENTIFIER,
        )
    return name


# ---------------------------------------------------------------------------
# Fields
# ---------------------------------------------------------------------------


class Field:
    """A typed scalar value used inside a statement."""

    value: Any

    def render(self) -> str:
        """Render the value as an SQL literal."""
        raise NotImplementedError

    @staticmethod
    def of(value: Any) -> "Field":
        """Coerce a plain Python value to a field.

        ``str`` becomes ``Str``, ``int`` becomes ``Int`` and ``None`` becomes
        ``Null``. Fields are returned unchanged.
        """
        if isinstance(value, Field):
            return value
        if value is None:
            return Null()
        if isinstance(value, bool):
            raise ValidationError("Booleans are not valid field values", value=value)
        if isinstance(value, int):
            return Int(value)
        if isinstance(value, str):
            return Str(value)
        raise ValidationError(
            f"Unsupported field type: {type(value).__name__}", value=value
        )


@dataclass(frozen=True)
class Str(Field):
    """A text value, rendered single-quoted with embedded quotes doubled."""

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str):
            raise ValidationError("Str fields hold text", value=self.value)

    def render(self) -> str:
        if _CONTROL_CHARS.search(self.value):
            raise ValidationError(
                "Text contains control characters", value=repr(self.value)
            )
        return "'" + self.value.replace("'", "''") + "'"


@dataclass(frozen=True)
class Int(Field):
    """An integer value, rendered bare."""

    value: int

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValidationError("Int fields hold integers", value=self.value)

    def render(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Null(Field):
    """SQL NULL, used to clear nullable columns."""

    value: None = None

    def render(self) -> str:
        return "NULL"


FieldLike = Union[Field, str, int, None]

# Turns a field into the text that stands for it in a statement
_FieldFormatter = Callable[[Field], str]


def _render_literal(field: Field) -> str:
    return field.render()


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


class Where:
    """A predicate over one column."""

    column: str

    def render(self) -> str:
        """Render the predicate with inlined literals."""
        return self._render(_render_literal)

    def _render(self, fmt: _FieldFormatter) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class Equal(Where):
    """``column = value``"""

    column: str
    value: FieldLike

    def __post_init__(self):
        validate_identifier(self.column)
        object.__setattr__(self, "value", Field.of(self.value))

    def _render(self, fmt: _FieldFormatter) -> str:
        return f"{self.column} = {fmt(self.value)}"


@dataclass(frozen=True)
class Like(Where):
    """``column LIKE pattern``, optionally with an ``ESCAPE`` character."""

    column: str
    value: FieldLike
    escape: Optional[str] = None

    def __post_init__(self):
        validate_identifier(self.column)
        object.__setattr__(self, "value", Field.of(self.value))
        if self.escape is not None and (len(self.escape) != 1 or self.escape == "'"):
            raise ValidationError(
                "LIKE escape must be a single character other than a quote",
                field="escape",
                value=self.escape,
            )

    def _render(self, fmt: _FieldFormatter) -> str:
        text = f"{self.column} LIKE {fmt(self.value)}"
        if self.escape is not None:
            text += f" ESCAPE '{self.escape}'"
        return text


@dataclass(frozen=True)
class In(Where):
    """``column IN (v1, v2, ...)``; accepts one value or a non-empty sequence."""

    column: str
    value: Union[FieldLike, Sequence[FieldLike]]

    def __post_init__(self):
        validate_identifier(self.column)
        if isinstance(self.value, (set, frozenset)):
            raise ValidationError(
                "IN values must be ordered; pass a list or tuple", field=self.column
            )
        if isinstance(self.value, (Field, str)) or not hasattr(self.value, "__iter__"):
            values = (Field.of(self.value),)
        else:
            # Lists, tuples and generators keep their order
            values = tuple(Field.of(v) for v in self.value)
        if not values:
            raise ValidationError("IN requires at least one value", field=self.column)
        object.__setattr__(self, "value", values)

    def _render(self, fmt: _FieldFormatter) -> str:
        return f"{self.column} IN ({', '.join(fmt(v) for v in self.value)})"


@dataclass(frozen=True)
class Between(Where):
    """``column BETWEEN low AND high``"""

    column: str
    low: FieldLike
    high: FieldLike

    def __post_init__(self):
        validate_identifier(self.column)
        object.__setattr__(self, "low", Field.of(self.low))
        object.__setattr__(self, "high", Field.of(self.high))

    def _render(self, fmt: _FieldFormatter) -> str:
        return f"{self.column} BETWEEN {fmt(self.low)} AND {fmt(self.high)}"


# ---------------------------------------------------------------------------
# Ordering and limits
# ---------------------------------------------------------------------------


class Order:
    """Sort direction over one column."""

    column: str
    direction = ""

    def render(self) -> str:
        return f"{self.column} {self.direction}"


@dataclass(frozen=True)
class Ascending(Order):
    column: str
    direction = "ASC"

    def __post_init__(self):
        validate_identifier(self.column)


@dataclass(frozen=True)
class Descending(Order):
    column: str
    direction = "DESC"

    def __post_init__(self):
        validate_identifier(self.column)


@dataclass(frozen=True)
class Limit:
    """Row count and offset. The offset is rendered only when non-zero."""

    count: int
    offset: int = 0

    def __post_init__(self):
        for name in ("count", "offset"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError(
                    f"Limit {name} must be a non-negative integer",
                    field=name,
                    value=value,
                )

    def render(self) -> str:
        if self.offset:
            return f"LIMIT {self.count} OFFSET {self.offset}"
        return f"LIMIT {self.count}"


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class QueryKind(str, Enum):
    """Statement kinds a query can be built for."""

    GET = "get"
    UPDATE = "update"
    DELETE = "delete"


class CompiledQuery(NamedTuple):
    """Statement text with named placeholders and the values bound to them."""

    sql: str
    params: Dict[str, Any]


class _ParamBinder:
    """Collects field values and hands out ``:p0``, ``:p1``, ... placeholders."""

    def __init__(self):
        self.params: Dict[str, Any] = {}

    def __call__(self, field: Field) -> str:
        name = f"p{len(self.params)}"
        self.params[name] = field.value
        return f":{name}"


Assignments = Union[Mapping[str, FieldLike], Iterable[Tuple[str, FieldLike]]]


@dataclass(frozen=True)
class Query:
    """An immutable Get, Update or Delete statement over one table."""

    kind: QueryKind
    table: str
    columns: Tuple[str, ...] = ()
    assignments: Tuple[Tuple[str, Field], ...] = ()
    wheres: Tuple[Where, ...] = ()
    order: Optional[Order] = None
    limit: Optional[Limit] = None

    @classmethod
    def new_get(cls, table: str, columns: Iterable[str]) -> "Query":
        """Build a Get query selecting ``columns`` (``["*"]`` for all)."""
        if isinstance(columns, str):
            raise ValidationError(
                "Columns must be a list of names, not a string",
                field="columns",
                value=columns,
                code=ErrorCode.QUERY_INVALID,
            )
        return cls(kind=QueryKind.GET, table=table, columns=tuple(columns))

    @classmethod
    def new_update(cls, table: str, assignments: Assignments) -> "Query":
        """Build an Update query from ``(column, value)`` pairs or a mapping.

        Assignments keep their insertion order in the SET list.
        """
        if isinstance(assignments, str):
            raise ValidationError(
                "Assignments must be a mapping or (column, value) pairs",
                field="assignments",
                code=ErrorCode.QUERY_INVALID,
            )
        pairs = assignments.items() if isinstance(assignments, Mapping) else assignments
        return cls(
            kind=QueryKind.UPDATE,
            table=table,
            assignments=tuple((column, Field.of(value)) for column, value in pairs),
        )

    @classmethod
    def new_delete(cls, table: str) -> "Query":
        """Build a Delete query."""
        return cls(kind=QueryKind.DELETE, table=table)

    def add_where(self, where: Where) -> "Query":
        """Return a copy with ``where`` AND-ed to the existing predicates."""
        if not isinstance(where, Where):
            raise ValidationError("add_where expects a Where predicate", value=where)
        return replace(self, wheres=self.wheres + (where,))

    def add_order(self, order: Order) -> "Query":
        """Return a copy ordered by ``order``, replacing any previous order."""
        if not isinstance(order, Order):
            raise ValidationError("add_order expects an Order", value=order)
        return replace(self, order=order)

    def add_limit(self, limit: Union[Limit, int]) -> "Query":
        """Return a copy limited by ``limit``, replacing any previous limit."""
        if not isinstance(limit, Limit):
            limit = Limit(limit)
        return replace(self, limit=limit)

    def validate(self) -> None:
        """Check that the query renders to a well-formed statement.

        Raises:
            ValidationError: On an empty table name, an empty column list for
                Get, an empty assignment list for Update, or a name that is
                not a plain identifier.
        """
        validate_identifier(self.table, "table")
        if self.kind == QueryKind.GET:
            if not self.columns:
                raise ValidationError(
                    "Get query must select at least one column",
                    field="columns",
                    code=ErrorCode.QUERY_INVALID,
                )
            for column in self.columns:
                if column != "*":
                    validate_identifier(column)
        elif self.kind == QueryKind.UPDATE:
            if not self.assignments:
                raise ValidationError(
                    "Update query must assign at least one column",
                    field="assignments",
                    code=ErrorCode.QUERY_INVALID,
                )
            for column, _ in self.assignments:
                validate_identifier(column)

    def _render(self, fmt: _FieldFormatter) -> str:
        self.validate()

        if self.kind == QueryKind.GET:
            head = f"SELECT {', '.join(self.columns)} FROM {self.table}"
        elif self.kind == QueryKind.UPDATE:
            sets = ", ".join(f"{column} = {fmt(value)}" for column, value in self.assignments)
            head = f"UPDATE {self.table} SET {sets}"
        else:
            head = f"DELETE FROM {self.table}"

        lines = [head]
        if self.wheres:
            lines.append("WHERE " + " AND ".join(w._render(fmt) for w in self.wheres))
        if self.order is not None:
            lines.append(f"ORDER BY {self.order.render()}")
        if self.limit is not None:
            lines.append(self.limit.render())
        return "\n".join(lines)

    def render(self) -> str:
        """Render statement text with every value inlined as a literal."""
        return self._render(_render_literal)

    def compile(self) -> CompiledQuery:
        """Render statement text with named placeholders for every value."""
        binder = _ParamBinder()
        sql = self._render(binder)
        return CompiledQuery(sql, binder.params)

    def __str__(self) -> str:
        return self.render()
