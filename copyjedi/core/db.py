"""
SQLite storage for the leaderboard service.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator
from .config import get_db_path, ensure_db_directory


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection."""
    ensure_db_directory()
    conn = sqlite3.connect(get_db_path())
    try:
        yield conn
    finally:
        conn.close()


def init_db():
    """Initialize the database with required tables."""
    with get_db() as conn:
        cursor = conn.cursor()

        # One row per user, totals are cumulative values reported by the client
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS paste_stats (
                user_id TEXT PRIMARY KEY,
                total_pastes INTEGER NOT NULL DEFAULT 0,
                total_lines_pasted INTEGER NOT NULL DEFAULT 0,
                last_active TIMESTAMP NOT NULL,
                username TEXT DEFAULT NULL,
                os TEXT,
                vs_code_version TEXT
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS daily_stats (
                user_id TEXT NOT NULL,
                date TEXT,
                pastes INTEGER NOT NULL DEFAULT 0,
                lines INTEGER NOT NULL DEFAULT 0,
                seq INTEGER NOT NULL
            )
        ''')

        # Clients may omit the date; dao matches it with IS so a null date has one row too
        cursor.execute('CREATE UNIQUE INDEX IF NOT EXISTS idx_daily_stats_user_date ON daily_stats(user_id, date)')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_paste_stats_pastes ON paste_stats(total_pastes DESC)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_paste_stats_lines ON paste_stats(total_lines_pasted DESC)')

        conn.commit()


def health_check():
    """Check database health."""
    try:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            tables = cursor.fetchall()

            table_names = [table[0] for table in tables]
            required_tables = ['paste_stats', 'daily_stats']

            return all(table in table_names for table in required_tables)
    except Exception:
        return False
