"""
notes-cli - a small command-line utility for personal notes.

Notes are kept in an ordered collection that is loaded once per invocation,
edited in memory and written back, either as a single JSON document or as
rows of an SQLite table queried through a tiny statement builder.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("notes-cli")
except PackageNotFoundError:
    __version__ = "0.3.0"
