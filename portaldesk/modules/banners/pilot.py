"""
Pilot / Fallback Banner
=======================

The pilot is the single active banner shown in any slot whose queue has
nothing live. ``get_pilot`` is a pure read over a banner list; ``set_pilot``
is the one cross-row write in the banner engine and runs as a single
statement inside a serialized transaction.
"""

import logging

from portaldesk.core.database import Database
from .models import NotFoundError, ValidationError, format_timestamp, utcnow

logger = logging.getLogger(__name__)


def get_pilot(banners):
    """
    Return the active banner flagged as pilot, or None.

    Accepts any iterable of Banner (or a dict of id -> Banner). If more than
    one active banner carries the flag, the smallest id is returned.
    """
    if isinstance(banners, dict):
        banners = banners.values()
    candidates = [b for b in banners if b.is_pilot and b.active]
    if not candidates:
        return None
    return min(candidates, key=lambda b: b.id)


def apply_pilot(conn, banner_id, is_pilot, now=None):
    """
    Pilot write on an open transaction, so callers can combine it with
    their own insert or update. Raises NotFoundError if the banner does not
    exist.
    """
    if not isinstance(is_pilot, bool):
        raise ValidationError("is_pilot must be true or false")
    if not banner_id:
        raise ValidationError("Banner id is required")

    now = now or format_timestamp(utcnow())
    exists = conn.execute('SELECT 1 FROM banners WHERE id = ?', (banner_id,)).fetchone()
    if not exists:
        raise NotFoundError(f"Banner {banner_id} not found")

    if is_pilot:
        conn.execute('''
            UPDATE banners
            SET is_pilot = CASE WHEN id = ? THEN 1 ELSE 0 END,
                updated_at = ?
            WHERE is_pilot = 1 OR id = ?
        ''', (banner_id, now, banner_id))
    else:
        conn.execute('''
            UPDATE banners SET is_pilot = 0, updated_at = ?
            WHERE id = ?
        ''', (now, banner_id))


def set_pilot(db_path, banner_id, is_pilot):
    """
    Flag or unflag a banner as pilot.

    Setting True demotes every other pilot in the same UPDATE, so there is
    never a moment with two pilots. Setting False only clears this banner
    and may leave the catalog with no pilot.

    Raises NotFoundError if the banner does not exist.
    """
    with Database.transaction(db_path) as conn:
        apply_pilot(conn, banner_id, is_pilot)

    logger.info(f"Banner {banner_id} pilot flag set to {is_pilot}")
