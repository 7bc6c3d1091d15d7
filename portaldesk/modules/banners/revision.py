"""
Store Revision
==============

A single counter bumped by sqlite triggers on every insert, update or
delete in ``banners`` and ``banner_queue``. Readers compare it against the
revision their cached snapshot was built from, which catches writes from
other worker processes and from anything that bypasses the change hub.
"""

from portaldesk.core.database import Database

TRACKED_TABLES = ('banners', 'banner_queue')


def init_revision_table(db_path):
    """Create the counter row and its triggers. The tracked tables must exist."""
    Database.ensure_dir(db_path)
    with Database.transaction(db_path) as conn:
        conn.execute('''
            CREATE TABLE IF NOT EXISTS banner_revision (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                revision INTEGER NOT NULL DEFAULT 0
            )
        ''')
        conn.execute('INSERT OR IGNORE INTO banner_revision (id, revision) VALUES (1, 0)')
        for table in TRACKED_TABLES:
            for op in ('INSERT', 'UPDATE', 'DELETE'):
                conn.execute(f'''
                    CREATE TRIGGER IF NOT EXISTS trg_{table}_{op.lower()}_revision
                    AFTER {op} ON {table}
                    BEGIN
                        UPDATE banner_revision SET revision = revision + 1 WHERE id = 1;
                    END
                ''')


def read_revision(db_path):
    """Current store revision, or None when tracking is not set up"""
    with Database.read(db_path) as conn:
        if not _has_revision_table(conn):
            return None
        row = conn.execute('SELECT revision FROM banner_revision WHERE id = 1').fetchone()
    return row['revision'] if row else None


def _has_revision_table(conn):
    return conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'banner_revision'"
    ).fetchone() is not None
