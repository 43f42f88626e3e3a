"""Database base class - connection management, schema init."""

import sqlite3
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from mr_dashboard.config import get_db_path

logger = logging.getLogger(__name__)


class Database:
    """SQLite database manager for the MR dashboard."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or get_db_path()
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def connection(self):
        """Yield a connection that commits on success and always closes."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        """Initialize database schema."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            # Create merge_requests table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS merge_requests (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    mr_id TEXT NOT NULL,
                    title TEXT,
                    description TEXT,
                    jira_link TEXT,
                    web_url TEXT,
                    priority TEXT NOT NULL DEFAULT 'Medium'
                        CHECK(priority IN ('High', 'Medium', 'Low')),
                    squads TEXT,
                    status TEXT NOT NULL DEFAULT 'Open',
                    reviewer TEXT,
                    author TEXT,
                    action TEXT,
                    date TEXT,
                    target_branch TEXT,
                    source_branch TEXT,
                    labels TEXT,
                    merged_at DATETIME,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_merge_requests_mr_id
                ON merge_requests(mr_id)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_merge_requests_status
                ON merge_requests(status)
            """)

            # Create user_settings table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS user_settings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    key TEXT NOT NULL UNIQUE,
                    value TEXT,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.commit()
            logger.info(f"Database initialized at {self.db_path}")
        finally:
            conn.close()
