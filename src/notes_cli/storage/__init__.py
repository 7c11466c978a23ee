"""Storage layer for notes-cli."""

import logging
from typing import Optional

from notes_cli.config import NotesConfig, load_config
from notes_cli.storage.base import Repository
from notes_cli.storage.file_repository import FileNoteRepository
from notes_cli.storage.sql_repository import SqlNoteRepository

logger = logging.getLogger(__name__)


def open_repository(config: Optional[NotesConfig] = None) -> Repository:
    """Open the repository selected by ``config.backend``.

    Without a config, the environment and the default config file are used.
    """
    if config is None:
        config = load_config()

    if config.backend == "sqlite":
        logger.debug(f"Opening SQLite backend: {config.get_db_url()}")
        return SqlNoteRepository(db_url=config.get_db_url())
    logger.debug(f"Opening file backend: {config.get_notes_path()}")
    return FileNoteRepository(config.get_notes_path())


__all__ = [
    "Repository",
    "FileNoteRepository",
    "SqlNoteRepository",
    "open_repository",
]
