import logging
import sqlite3
import threading
from pathlib import Path

from bucketview import constants

logger = logging.getLogger("bucketview.db")

# Ordered schema migrations: (version, script). Append only.
MIGRATIONS: list[tuple[int, str]] = [
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS preferences (
            key   TEXT PRIMARY KEY,
            value TEXT
        );
        """,
    ),
]


class Database:
    """Thread-safe SQLite database with WAL mode and migration support."""

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = str(db_path or constants.DB_PATH)
        self._local = threading.local()
        self._write_lock = threading.Lock()

        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        conn = self._get_conn()
        conn.execute("PRAGMA journal_mode=WAL")
        self._run_migrations()
        logger.info("Database initialized at %s", self._db_path)

    @property
    def path(self) -> str:
        return self._db_path

    def _get_conn(self) -> sqlite3.Connection:
        """Get a thread-local connection."""
        if getattr(self._local, "conn", None) is None:
            self._local.conn = sqlite3.connect(self._db_path)
            self._local.conn.row_factory = sqlite3.Row
        return self._local.conn

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute a SQL statement with write serialization."""
        conn = self._get_conn()
        if sql.lstrip().upper().startswith("SELECT"):
            return conn.execute(sql, params)
        with self._write_lock:
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor

    def fetchone(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        """Execute a SELECT and return one row."""
        return self._get_conn().execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        """Execute a SELECT and return all rows."""
        return self._get_conn().execute(sql, params).fetchall()

    def _run_migrations(self) -> None:
        """Apply pending migrations in order."""
        conn = self._get_conn()

        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version "
            "(version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL DEFAULT (datetime('now')))"
        )
        conn.commit()

        current = self.schema_version()
        for version, script in MIGRATIONS:
            if version <= current:
                continue
            logger.info("Applying migration %03d", version)
            with self._write_lock:
                conn.executescript(script)
                conn.execute(
                    "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                    (version,),
                )
                conn.commit()

    def schema_version(self) -> int:
        """Get the current schema version."""
        row = self._get_conn().execute("SELECT MAX(version) as v FROM schema_version").fetchone()
        return row["v"] if row and row["v"] is not None else 0

    def close(self) -> None:
        """Close the thread-local connection."""
        if getattr(self._local, "conn", None) is not None:
            self._local.conn.close()
            self._local.conn = None


# Preferences helpers

def get_pref(db: Database, key: str, default: str | None = None) -> str | None:
    """Get a preference value by key."""
    row = db.fetchone("SELECT value FROM preferences WHERE key = ?", (key,))
    return row["value"] if row else default


def set_pref(db: Database, key: str, value: str) -> None:
    """Set a preference value."""
    db.execute(
        "INSERT OR REPLACE INTO preferences (key, value) VALUES (?, ?)",
        (key, value),
    )


def get_bool_pref(db: Database, key: str, default: bool = False) -> bool:
    """Get a boolean preference."""
    val = get_pref(db, key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes")


def get_int_pref(db: Database, key: str, default: int = 0) -> int:
    """Get an integer preference."""
    val = get_pref(db, key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default
