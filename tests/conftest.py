"""Common test fixtures for notes-cli."""

import logging
import tempfile
from pathlib import Path

import pytest

from notes_cli import observability
from notes_cli.config import NotesConfig
from notes_cli.services.note_service import NoteService
from notes_cli.storage.file_repository import FileNoteRepository
from notes_cli.storage.sql_repository import SqlNoteRepository


@pytest.fixture
def temp_dirs():
    """Create temporary directories for data and configuration."""
    with tempfile.TemporaryDirectory() as data_dir:
        with tempfile.TemporaryDirectory() as config_dir:
            yield Path(data_dir), Path(config_dir)


@pytest.fixture(autouse=True)
def isolated_environment(temp_dirs, monkeypatch):
    """Keep tests away from the user's real configuration and data."""
    data_dir, config_dir = temp_dirs
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.setenv("XDG_DATA_HOME", str(data_dir))
    monkeypatch.setenv("NOTES_DATA_DIR", str(data_dir))
    for name in (
        "NOTES_FILE",
        "NOTES_DATABASE_PATH",
        "NOTES_BACKEND",
        "NOTES_EDITOR",
        "NOTES_LOG_DIR",
        "NOTES_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo handlers and levels that configure_logging attaches."""
    root_logger = logging.getLogger(observability.ROOT_LOGGER_NAME)
    handlers = list(root_logger.handlers)
    level = root_logger.level
    configured = observability._logging_configured
    yield
    for handler in root_logger.handlers:
        if handler not in handlers:
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)
    observability._logging_configured = configured


@pytest.fixture
def test_config(temp_dirs):
    """Configuration pointing at the test data directory."""
    data_dir, _ = temp_dirs
    yield NotesConfig(
        data_dir=data_dir,
        notes_file=Path("test_notes.json"),
        database_path=Path("test_notes.db"),
        backend="file",
    )


@pytest.fixture
def file_repository(test_config):
    """Create a file repository in the test data directory."""
    repository = FileNoteRepository(test_config.get_notes_path())
    yield repository


@pytest.fixture
def sql_repository(test_config):
    """Create an SQLite repository backed by a file in the test data directory."""
    repository = SqlNoteRepository(db_url=test_config.get_db_url())
    yield repository
    repository.close()


@pytest.fixture(params=["file", "sqlite"])
def repository(request, file_repository, test_config):
    """Each backend in turn, for behaviour both must share."""
    if request.param == "file":
        yield file_repository
    else:
        repository = SqlNoteRepository(db_url=test_config.get_db_url())
        yield repository
        repository.close()


@pytest.fixture
def note_service(repository):
    """Create a NoteService over each backend."""
    yield NoteService(repository)
