"""SQLite connection and schema shared by the figure and search stores."""

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

logger = structlog.get_logger()

_SCHEMA = """
CREATE TABLE IF NOT EXISTS figures (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    owner_id TEXT NOT NULL,
    data TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS figures_owner_seq ON figures (owner_id, seq);

CREATE TABLE IF NOT EXISTS search_documents (
    doc_id INTEGER PRIMARY KEY AUTOINCREMENT,
    entity_kind TEXT NOT NULL,
    entity_id TEXT NOT NULL,
    owner_id TEXT,
    scale TEXT NOT NULL DEFAULT '',
    popularity INTEGER NOT NULL DEFAULT 0,
    data TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (entity_kind, entity_id)
);
CREATE INDEX IF NOT EXISTS search_documents_owner
    ON search_documents (owner_id, entity_kind);
"""

# rowid of every FTS row is search_documents.doc_id
_FTS_SCHEMA = """
CREATE VIRTUAL TABLE IF NOT EXISTS search_fts USING fts5(
    search_text,
    name_searchable,
    tokenize='unicode61 remove_diacritics 2'
);
CREATE VIRTUAL TABLE IF NOT EXISTS search_fts_vocab USING fts5vocab(search_fts, 'row');
"""

_TRIGRAM_SCHEMA = """
CREATE VIRTUAL TABLE IF NOT EXISTS search_trigram USING fts5(
    search_text,
    tokenize='trigram'
);
"""


class Database:
    """Single SQLite connection guarded by a lock.

    The connection uses check_same_thread=False because store methods
    run inside ``asyncio.to_thread`` workers.

    Attributes:
        fts_available: FTS5 tables were created successfully.
        trigram_available: The trigram tokenizer table exists.
    """

    def __init__(self, path: str = ":memory:") -> None:
        """Initialize database wrapper (call initialize() before use).

        Args:
            path: SQLite file path, or ":memory:".
        """
        self._path = path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()
        self.fts_available = False
        self.trigram_available = False

    @property
    def path(self) -> str:
        return self._path

    def initialize(self) -> None:
        """Open the connection and create tables that do not exist yet."""
        self._conn = sqlite3.connect(self._path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)

        try:
            self._conn.executescript(_FTS_SCHEMA)
            self.fts_available = True
        except sqlite3.OperationalError as e:
            logger.warning("fts5_unavailable", error=str(e))

        if self.fts_available:
            try:
                self._conn.executescript(_TRIGRAM_SCHEMA)
                self.trigram_available = True
            except sqlite3.OperationalError as e:
                logger.warning("fts5_trigram_unavailable", error=str(e))

        self._conn.commit()
        logger.info(
            "database_initialized",
            path=self._path,
            fts=self.fts_available,
            trigram=self.trigram_available,
        )

    @contextmanager
    def session(self) -> Iterator[sqlite3.Connection]:
        """Hold the lock for a unit of work and commit it on success.

        Yields:
            The open connection.
        """
        with self._lock:
            if self._conn is None:
                raise sqlite3.ProgrammingError("database is not open")
            try:
                yield self._conn
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise

    def ping(self) -> None:
        """Run a trivial query, raising sqlite3.Error if the database is unusable."""
        with self.session() as conn:
            conn.execute("SELECT 1")

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None
                logger.info("database_closed", path=self._path)
