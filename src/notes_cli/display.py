"""Plain-text table output for notes."""

from typing import List, Sequence

from notes_cli.models.schema import NoteWithId
from notes_cli.utils import single_line

COLUMNS = ["ID", "Created", "Tags", "Content"]
DESCRIPTION_COLUMN = "Description"
COLUMN_SEPARATOR = "  "


def note_row(record: NoteWithId, show_description: bool = False) -> List[str]:
    """Cell values of one note in column order."""
    row = [
        str(record.id),
        record.created,
        record.tags,
        single_line(record.content),
    ]
    if show_description:
        row.append(single_line(record.description))
    return row


def render_table(records: Sequence[NoteWithId], show_description: bool = False) -> str:
    """Render notes as an aligned table with a header and an underline.

    Each column is as wide as its widest cell, header included. The last
    column is not padded.
    """
    header = list(COLUMNS)
    if show_description:
        header.append(DESCRIPTION_COLUMN)
    rows = [note_row(record, show_description) for record in records]

    widths = [len(title) for title in header]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def format_row(cells: Sequence[str]) -> str:
        padded = [cell.ljust(widths[i]) for i, cell in enumerate(cells[:-1])]
        return COLUMN_SEPARATOR.join(padded + [cells[-1]]).rstrip()

    lines = [
        format_row(header),
        format_row(["-" * width for width in widths]),
    ]
    lines.extend(format_row(row) for row in rows)
    return "\n".join(lines)
