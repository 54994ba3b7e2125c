import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from config import CONFIG_DIR
from .schema import SCHEMA_SQL, INDEXES_SQL, SCHEMA_VERSION

logger = logging.getLogger(__name__)

DB_PATH = CONFIG_DIR / "curio.db"

def configure(db_path) -> None:
    """Point the module at a different database file (from config or DB_PATH env)."""
    global DB_PATH
    DB_PATH = Path(db_path).expanduser()

def init_db():
    """Initialize the database by creating tables and indexes if they don't exist."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    with get_conn() as conn:
        enable_wal(conn)
        conn.executescript(SCHEMA_SQL)
        conn.executescript(INDEXES_SQL)
        ensure_library_extra_columns(conn)
        ensure_schema_version(conn)
        conn.commit()
    logger.info("Database ready at %s (schema v%s)", DB_PATH, SCHEMA_VERSION)

def enable_wal(conn: sqlite3.Connection) -> None:
    """Switch to WAL journaling; some filesystems refuse it, which is fine."""
    try:
        conn.execute("PRAGMA journal_mode = WAL")
    except sqlite3.DatabaseError as exc:
        logger.warning("Could not enable WAL journal mode: %s", exc)

def ensure_library_extra_columns(conn: sqlite3.Connection) -> None:
    """Ensure library table has the related-questions and tags columns for existing installs."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA table_info(library)")
    columns = {row[1] for row in cursor.fetchall()}
    if "related_json" not in columns:
        cursor.execute("ALTER TABLE library ADD COLUMN related_json TEXT")
    if "tags_json" not in columns:
        cursor.execute("ALTER TABLE library ADD COLUMN tags_json TEXT")

def get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the SQLite schema version from PRAGMA user_version."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA user_version")
    row = cursor.fetchone()
    return int(row[0]) if row else 0

def set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    """Set the SQLite schema version via PRAGMA user_version."""
    conn.execute(f"PRAGMA user_version = {int(version)}")

def ensure_schema_version(conn: sqlite3.Connection) -> None:
    """Ensure the current schema version is written to the database."""
    current = get_schema_version(conn)
    if current != SCHEMA_VERSION:
        set_schema_version(conn, SCHEMA_VERSION)

@contextmanager
def get_conn():
    """Context manager for SQLite connection, using row_factory for dict-like rows."""
    conn = sqlite3.connect(DB_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()

def get_db():
    """FastAPI dependency that yields a DB connection and closes it afterwards."""
    with get_conn() as conn:
        yield conn
