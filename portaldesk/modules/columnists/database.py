"""
Columnist profile storage (USER_DB).
"""

import logging

from portaldesk.core.database import Database

logger = logging.getLogger(__name__)


def init_columnists_db(db_path):
    """Initialize columnists table"""
    Database.ensure_dir(db_path)
    with Database.transaction(db_path) as conn:
        conn.execute('''
            CREATE TABLE IF NOT EXISTS columnists (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')


def _row_to_dict(row):
    return {
        'id': row['id'],
        'name': row['name'],
        'is_active': bool(row['is_active']),
        'created_at': row['created_at'],
        'updated_at': row['updated_at'],
    }


def get_all_columnists(db_path, active_only=False):
    """Columnists ordered by name"""
    with Database.read(db_path) as conn:
        if active_only:
            rows = conn.execute(
                'SELECT * FROM columnists WHERE is_active = 1 ORDER BY name ASC, id ASC'
            ).fetchall()
        else:
            rows = conn.execute('SELECT * FROM columnists ORDER BY name ASC, id ASC').fetchall()
    return [_row_to_dict(row) for row in rows]


def get_columnist(db_path, columnist_id):
    with Database.read(db_path) as conn:
        row = conn.execute('SELECT * FROM columnists WHERE id = ?', (columnist_id,)).fetchone()
    return _row_to_dict(row) if row else None


def upsert_columnist(db_path, columnist_id, name, is_active=True):
    """Create or update a columnist profile"""
    try:
        with Database.transaction(db_path) as conn:
            conn.execute('''
                INSERT INTO columnists (id, name, is_active)
                VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    is_active = excluded.is_active,
                    updated_at = CURRENT_TIMESTAMP
            ''', (columnist_id, name, int(bool(is_active))))
    except Exception as e:
        logger.error(f"Error saving columnist {columnist_id}: {e}")
        raise
    return get_columnist(db_path, columnist_id)


def toggle_columnist_db(db_path, columnist_id):
    """Flip is_active. Returns the new state, or None if the columnist is unknown."""
    with Database.transaction(db_path) as conn:
        row = conn.execute('SELECT is_active FROM columnists WHERE id = ?', (columnist_id,)).fetchone()
        if not row:
            return None
        new_status = 0 if row['is_active'] else 1
        conn.execute('''
            UPDATE columnists SET is_active = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
        ''', (new_status, columnist_id))
    return bool(new_status)
