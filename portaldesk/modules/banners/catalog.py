"""
Banner Catalog
==============

Creative records (image, click URL, flags) independent of where or when
they run. The catalog never deletes: queue entries may still point at a
banner, and a banner an admin wants gone is switched to inactive.
"""

import json
import logging
import uuid

from portaldesk.core.database import Database
from .models import (
    Banner, NotFoundError, ValidationError, format_timestamp, normalize_payload,
    utcnow, validate_click_url, validate_name,
)
from .pilot import apply_pilot

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('name', 'creative_payload', 'click_url', 'active', 'is_pilot')


def init_banners_table(db_path):
    """Create the banners table if missing"""
    Database.ensure_dir(db_path)
    with Database.transaction(db_path) as conn:
        conn.execute('''
            CREATE TABLE IF NOT EXISTS banners (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                payload_json TEXT NOT NULL DEFAULT '{}',
                click_url TEXT,
                active INTEGER NOT NULL DEFAULT 1,
                is_pilot INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        ''')
        conn.execute('CREATE INDEX IF NOT EXISTS idx_banners_pilot ON banners(is_pilot)')


class BannerCatalog:
    """sqlite-backed banner records"""

    def __init__(self, db_path):
        self.db_path = db_path

    def init_db(self):
        init_banners_table(self.db_path)

    def create(self, name, creative_payload, click_url=None, active=True, is_pilot=False):
        """Insert a banner and return it. New banners are active and not pilot by default."""
        name = validate_name(name)
        payload = normalize_payload(creative_payload)
        click_url = validate_click_url(click_url)
        if not isinstance(active, bool) or not isinstance(is_pilot, bool):
            raise ValidationError("active and is_pilot must be true or false")

        banner_id = uuid.uuid4().hex
        now = format_timestamp(utcnow())

        try:
            with Database.transaction(self.db_path) as conn:
                conn.execute('''
                    INSERT INTO banners (id, name, payload_json, click_url, active, is_pilot,
                                         created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, 0, ?, ?)
                ''', (banner_id, name, json.dumps(payload), click_url, int(active), now, now))
                if is_pilot:
                    apply_pilot(conn, banner_id, True, now)
        except Exception as e:
            logger.error(f"Error creating banner {name!r}: {e}")
            raise

        logger.info(f"Created banner {banner_id}: {name}")
        return self.get(banner_id)

    def update(self, banner_id, **fields):
        """
        Partial update. Unknown fields are rejected; is_pilot is routed
        through the exclusive pilot write.
        """
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update banner fields: {', '.join(sorted(unknown))}")

        current = self.get(banner_id)
        if current is None:
            raise NotFoundError(f"Banner {banner_id} not found")

        set_clauses = []
        values = []
        if 'name' in fields:
            set_clauses.append('name = ?')
            values.append(validate_name(fields['name']))
        if 'creative_payload' in fields:
            set_clauses.append('payload_json = ?')
            values.append(json.dumps(normalize_payload(fields['creative_payload'])))
        if 'click_url' in fields:
            set_clauses.append('click_url = ?')
            values.append(validate_click_url(fields['click_url']))
        if 'active' in fields:
            if not isinstance(fields['active'], bool):
                raise ValidationError("active must be true or false")
            set_clauses.append('active = ?')
            values.append(int(fields['active']))

        is_pilot = fields.get('is_pilot')
        if is_pilot is not None and not isinstance(is_pilot, bool):
            raise ValidationError("is_pilot must be true or false")

        now = format_timestamp(utcnow())
        try:
            with Database.transaction(self.db_path) as conn:
                if set_clauses:
                    set_clauses.append('updated_at = ?')
                    values.extend([now, banner_id])
                    conn.execute(f"UPDATE banners SET {', '.join(set_clauses)} WHERE id = ?", values)
                if is_pilot is not None and is_pilot != current.is_pilot:
                    apply_pilot(conn, banner_id, is_pilot, now)
        except Exception as e:
            logger.error(f"Error updating banner {banner_id}: {e}")
            raise

        return self.get(banner_id)

    def get(self, banner_id):
        with Database.read(self.db_path) as conn:
            row = conn.execute('SELECT * FROM banners WHERE id = ?', (banner_id,)).fetchone()
        return Banner.from_row(row) if row else None

    def list_all(self):
        """Every banner, active or not, newest first"""
        with Database.read(self.db_path) as conn:
            rows = conn.execute('SELECT * FROM banners ORDER BY created_at DESC, id ASC').fetchall()
        return [Banner.from_row(row) for row in rows]
