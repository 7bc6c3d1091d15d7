import os
import sqlite3
import threading
from contextlib import contextmanager


class Database:
    # Serializes multi-row writes (pilot exclusivity, cleanup) across threads
    _lock = threading.RLock()

    @staticmethod
    def connect(path):
        conn = sqlite3.connect(path, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def ensure_dir(path):
        """Create the parent directory of a database file if needed"""
        db_dir = os.path.dirname(path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    @classmethod
    @contextmanager
    def read(cls, path):
        """Connection for read-only queries, closed on exit."""
        conn = cls.connect(path)
        try:
            yield conn
        finally:
            conn.close()

    @classmethod
    @contextmanager
    def transaction(cls, path):
        """
        Run a block of statements as one atomic write.

        Takes the process-wide write lock and opens the sqlite transaction
        with BEGIN IMMEDIATE so no other writer can interleave. Commits on
        success, rolls back and re-raises on any exception.
        """
        with cls._lock:
            conn = cls.connect(path)
            conn.isolation_level = None
            try:
                conn.execute('BEGIN IMMEDIATE')
                yield conn
                conn.execute('COMMIT')
            except Exception:
                if conn.in_transaction:
                    conn.execute('ROLLBACK')
                raise
            finally:
                conn.close()
