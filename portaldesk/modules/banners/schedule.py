"""
Banner Queue
============

Per-slot assignments of banners over time. An entry is (slot, banner,
priority, optional start, optional end). Entries do not check that their
banner exists: selection treats a dangling reference as ineligible.
"""

import logging
import uuid

from portaldesk.core.database import Database
from .models import (
    NotFoundError, ScheduleEntry, ValidationError, format_timestamp, parse_timestamp,
    utcnow, validate_priority, validate_slot_key, validate_window,
)

logger = logging.getLogger(__name__)

_UNSET = object()


def init_queue_table(db_path):
    """Create the banner_queue table if missing"""
    Database.ensure_dir(db_path)
    with Database.transaction(db_path) as conn:
        conn.execute('''
            CREATE TABLE IF NOT EXISTS banner_queue (
                id TEXT PRIMARY KEY,
                slot_key TEXT NOT NULL,
                banner_id TEXT NOT NULL,
                priority INTEGER NOT NULL DEFAULT 0,
                starts_at TEXT,
                ends_at TEXT,
                created_at TEXT NOT NULL
            )
        ''')
        conn.execute('CREATE INDEX IF NOT EXISTS idx_banner_queue_slot ON banner_queue(slot_key)')
        conn.execute('CREATE INDEX IF NOT EXISTS idx_banner_queue_ends ON banner_queue(ends_at)')


class ScheduleStore:
    """sqlite-backed banner queue"""

    def __init__(self, db_path):
        self.db_path = db_path

    def init_db(self):
        init_queue_table(self.db_path)

    def add_to_queue(self, slot_key, banner_id, priority=0, starts_at=None, ends_at=None):
        """Schedule a banner in a slot. Returns the new entry."""
        slot_key = validate_slot_key(slot_key)
        if not isinstance(banner_id, str) or not banner_id.strip():
            raise ValidationError("Banner id is required")
        priority = validate_priority(priority)
        starts_at, ends_at = validate_window(starts_at, ends_at)

        entry = ScheduleEntry(
            id=uuid.uuid4().hex,
            slot_key=slot_key,
            banner_id=banner_id.strip(),
            priority=priority,
            starts_at=starts_at,
            ends_at=ends_at,
            created_at=utcnow(),
        )

        try:
            with Database.transaction(self.db_path) as conn:
                conn.execute('''
                    INSERT INTO banner_queue (id, slot_key, banner_id, priority, starts_at, ends_at, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                ''', (
                    entry.id, entry.slot_key, entry.banner_id, entry.priority,
                    format_timestamp(entry.starts_at), format_timestamp(entry.ends_at),
                    format_timestamp(entry.created_at),
                ))
        except Exception as e:
            logger.error(f"Error adding banner {banner_id} to slot {slot_key}: {e}")
            raise

        logger.info(f"Queued banner {entry.banner_id} in {slot_key} (priority {priority})")
        return entry

    def update_entry(self, entry_id, priority=_UNSET, starts_at=_UNSET, ends_at=_UNSET):
        """
        Edit priority and/or window of an entry. Pass None for starts_at or
        ends_at to clear that bound.
        """
        current = self.get(entry_id)
        if current is None:
            raise NotFoundError(f"Queue entry {entry_id} not found")

        changes = {}
        if priority is not _UNSET:
            changes['priority'] = validate_priority(priority)
        if starts_at is not _UNSET:
            changes['starts_at'] = parse_timestamp(starts_at, 'starts_at')
        if ends_at is not _UNSET:
            changes['ends_at'] = parse_timestamp(ends_at, 'ends_at')
        if not changes:
            return current

        updated = current.with_changes(**changes)
        validate_window(updated.starts_at, updated.ends_at)

        try:
            with Database.transaction(self.db_path) as conn:
                conn.execute('''
                    UPDATE banner_queue SET priority = ?, starts_at = ?, ends_at = ?
                    WHERE id = ?
                ''', (updated.priority, format_timestamp(updated.starts_at),
                      format_timestamp(updated.ends_at), entry_id))
        except Exception as e:
            logger.error(f"Error updating queue entry {entry_id}: {e}")
            raise
        return updated

    def remove(self, entry_id):
        """Delete an entry. Returns False if it did not exist."""
        try:
            with Database.transaction(self.db_path) as conn:
                cursor = conn.execute('DELETE FROM banner_queue WHERE id = ?', (entry_id,))
                return cursor.rowcount > 0
        except Exception as e:
            logger.error(f"Error removing queue entry {entry_id}: {e}")
            raise

    def get(self, entry_id):
        with Database.read(self.db_path) as conn:
            row = conn.execute('SELECT * FROM banner_queue WHERE id = ?', (entry_id,)).fetchone()
        return ScheduleEntry.from_row(row) if row else None

    def list_entries(self, slot_key=None):
        """Entries, optionally for one slot: priority desc, then oldest first"""
        with Database.read(self.db_path) as conn:
            if slot_key:
                rows = conn.execute('''
                    SELECT * FROM banner_queue WHERE slot_key = ?
                    ORDER BY priority DESC, created_at ASC, id ASC
                ''', (slot_key,)).fetchall()
            else:
                rows = conn.execute('''
                    SELECT * FROM banner_queue
                    ORDER BY slot_key ASC, priority DESC, created_at ASC, id ASC
                ''').fetchall()
        return [ScheduleEntry.from_row(row) for row in rows]

    def delete_expired(self, now):
        """
        Remove entries whose ends_at is strictly before ``now``.
        Entries without an end are permanent and never touched.
        Returns the number of rows removed.
        """
        cutoff = format_timestamp(parse_timestamp(now, 'now'))
        if cutoff is None:
            raise ValidationError("now is required")

        try:
            with Database.transaction(self.db_path) as conn:
                cursor = conn.execute('''
                    DELETE FROM banner_queue
                    WHERE ends_at IS NOT NULL AND ends_at < ?
                ''', (cutoff,))
                return cursor.rowcount
        except Exception as e:
            logger.error(f"Error deleting expired queue entries: {e}")
            raise
