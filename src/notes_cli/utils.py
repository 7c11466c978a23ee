"""Utility functions for notes-cli."""

LIKE_ESCAPE = "\\"


def escape_like_pattern(value: str) -> str:
    """Escape SQL LIKE wildcards to treat them as literals.

    Use together with ``ESCAPE '\\'`` so that user input containing '%' or
    '_' only matches itself.

    Example:
        >>> escape_like_pattern("100% complete")
        '100\\\\% complete'
        >>> escape_like_pattern("file_name")
        'file\\\\_name'
    """
    escape_table = str.maketrans(
        {
            "\\": "\\\\",  # Escape backslash first
            "%": "\\%",
            "_": "\\_",
        }
    )
    return value.translate(escape_table)


def contains_pattern(value: str) -> str:
    """Build a LIKE pattern matching any text that contains ``value``."""
    return f"%{escape_like_pattern(value)}%"


def single_line(text: str) -> str:
    """Collapse line breaks so multi-line text fits in one table cell."""
    return " ".join(text.split("\n")).replace("\r", "")
