"""Custom exceptions for notes-cli.

Provides a structured exception hierarchy with error codes and
machine-readable error information. Every error raised by the core is a
``NotesError`` so the command layer can report it and exit non-zero.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    INVALID_NOTE_ID = 1001
    NOTE_SOURCE_IS_DIRECTORY = 1002
    NOTE_SOURCE_UNREADABLE = 1003
    NOTE_EDITOR_FAILED = 1004
    NOTE_NOT_SAVED = 1005

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_DELETE_FAILED = 4003
    STORAGE_CONNECTION_FAILED = 4004
    DESERIALIZATION_FAILED = 4005

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001
    CONFIG_MISSING = 6002

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001
    QUERY_INVALID = 7002
    INVALID_IDENTIFIER = 7003


class NotesError(Exception):
    """Base exception for all notes-cli errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class InvalidNoteIdError(NotesError):
    """Raised when a note id does not refer to a note.

    For the file backend this means the positional index is out of bounds;
    for the SQLite backend no row carries that primary key.
    """

    def __init__(self, note_id: int, message: Optional[str] = None):
        super().__init__(
            message or f"Note ID `{note_id}` is invalid.",
            code=ErrorCode.INVALID_NOTE_ID,
            details={"note_id": note_id}
        )
        self.note_id = note_id


class ValidationError(NotesError):
    """Raised for malformed queries and invalid input."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value


class StorageError(NotesError):
    """Raised for storage/persistence errors."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if path:
            # Don't expose full paths in error messages
            details["path_hint"] = path.split("/")[-1] if "/" in path else path
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.path = path
        self.original_error = original_error


class DeserializationError(StorageError):
    """Raised when stored data does not parse into the expected shape."""

    def __init__(
        self,
        message: str = "Unable to read notes file.",
        path: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message,
            operation="deserialize",
            path=path,
            code=ErrorCode.DESERIALIZATION_FAILED,
            original_error=original_error
        )


class NoteSourceError(NotesError):
    """Raised when a note cannot be built from a file or an editor session."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOTE_SOURCE_UNREADABLE
    ):
        details = {}
        if source:
            details["source"] = source

        super().__init__(message, code=code, details=details)
        self.source = source


class ConfigurationError(NotesError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key
