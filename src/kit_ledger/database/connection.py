"""SQLite connection management for the local ledger mirror."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path


class DatabaseConnection:
    """Opens short-lived SQLite connections against one ledger file.

    Every ``get_connection`` block is a single transaction: it commits on a
    clean exit and rolls back if the block raises, so a multi-table write
    (asset + case + maintenance ticket) lands whole or not at all.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def get_connection(self):
        """Yield a connection that auto-commits or rolls back."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def execute(self, sql: str, params: tuple = ()):
        """Run a single statement and return all rows."""
        with self.get_connection() as conn:
            return conn.execute(sql, params).fetchall()
