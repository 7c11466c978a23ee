"""SQLAlchemy database models for notes-cli."""
from typing import Optional

from sqlalchemy import Column, Integer, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from notes_cli.config import load_config

NOTES_TABLE = "notes"

# Create base class for SQLAlchemy models
Base = declarative_base()


class DBNote(Base):
    """Database model for a note.

    ``created`` holds an ISO 8601 timestamp with offset and ``tags`` a JSON
    array of tag names (NULL when the note has no tags).
    """
    __tablename__ = NOTES_TABLE
    # AUTOINCREMENT so ids of deleted notes are never handed out again
    __table_args__ = {"sqlite_autoincrement": True}
    id = Column(Integer, primary_key=True, autoincrement=True)
    created = Column(Text, nullable=False)
    content = Column(Text, nullable=False, default="")
    tags = Column(Text, nullable=True)
    description = Column(Text, nullable=True)

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(id={self.id}, created='{self.created}')>"


def init_db(db_url: Optional[str] = None) -> Engine:
    """Create an engine and the notes schema.

    Applies SQLite settings for crash resilience:
    - WAL (Write-Ahead Logging) mode for atomic writes
    - NORMAL synchronous mode (good balance of safety vs speed)
    - Pool pre-ping to detect stale connections

    Args:
        db_url: SQLAlchemy URL. Defaults to the configured database file.
    """
    url = db_url or load_config().get_db_url()
    if ":memory:" in url or url == "sqlite://":
        # One shared connection, otherwise every checkout sees an empty database
        engine = create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=1,           # single invocation, single writer
            max_overflow=2,
            pool_timeout=30,
            pool_pre_ping=True,
        )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Optional[Engine] = None):
    """Get a session factory for the database."""
    if engine is None:
        engine = init_db()
    return sessionmaker(bind=engine)
