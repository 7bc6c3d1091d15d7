"""
Banner Service
==============

Facade the routes talk to. Reads go through an immutable snapshot of the
catalog and queue. The snapshot is dropped when the change hub reports a
write to banners, banner_queue or columnists, and rebuilt when the store
revision moved (a write from another process); the next read refetches.
Writes go straight to the store, leave an audit entry and publish a change
event.
"""

import logging
import threading
from dataclasses import dataclass
from types import MappingProxyType

from portaldesk.core.logging_service import LoggingService
from portaldesk.core.realtime import ChangeHub
from .catalog import BannerCatalog
from .cleanup import cleanup_expired
from .models import NotFoundError, utcnow
from .pilot import get_pilot, set_pilot
from .revision import init_revision_table, read_revision
from .schedule import ScheduleStore
from .selection import resolve_placement
from .slots import SlotRegistry

logger = logging.getLogger(__name__)

BANNERS_TABLE = 'banners'
QUEUE_TABLE = 'banner_queue'
COLUMNISTS_TABLE = 'columnists'


@dataclass(frozen=True)
class Snapshot:
    banners: MappingProxyType
    entries: tuple
    revision: int = None

    @property
    def pilot(self):
        return get_pilot(self.banners)


class BannerService:

    def __init__(self, db_path, columnist_source=None, hub=None):
        self.db_path = db_path
        self.catalog = BannerCatalog(db_path)
        self.queue = ScheduleStore(db_path)
        self.hub = hub or ChangeHub()
        self.slots = SlotRegistry(columnist_source or (lambda: []))

        self._snapshot = None
        self._snapshot_lock = threading.Lock()
        self._unsubscribers = [
            self.hub.subscribe(table, self._on_change)
            for table in (BANNERS_TABLE, QUEUE_TABLE, COLUMNISTS_TABLE)
        ]

    def init_db(self):
        self.catalog.init_db()
        self.queue.init_db()
        init_revision_table(self.db_path)

    def close(self):
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    # ===== Snapshot =====

    def _on_change(self, event):
        self.invalidate()

    def invalidate(self):
        with self._snapshot_lock:
            self._snapshot = None

    def snapshot(self):
        """Current catalog + queue, fetched once per change"""
        revision = read_revision(self.db_path)
        with self._snapshot_lock:
            stale = self._snapshot is None or (
                revision is not None and revision != self._snapshot.revision
            )
            if stale:
                # a write landing mid-fetch bumps the revision past this one
                banners = {banner.id: banner for banner in self.catalog.list_all()}
                self._snapshot = Snapshot(
                    banners=MappingProxyType(banners),
                    entries=tuple(self.queue.list_entries()),
                    revision=revision,
                )
            return self._snapshot

    # ===== Reads =====

    def current_placement(self, slot_key, now=None):
        snap = self.snapshot()
        return resolve_placement(slot_key, now or utcnow(), snap.entries, snap.banners)

    def current_banner(self, slot_key, now=None):
        placement = self.current_placement(slot_key, now)
        return placement.banner if placement else None

    def list_banners(self):
        return self.catalog.list_all()

    def get_pilot(self):
        return self.snapshot().pilot

    def get_queue(self, slot_key=None):
        return self.queue.list_entries(slot_key)

    def list_slots(self):
        return self.slots.list_slots()

    # ===== Writes =====

    def _audit(self, action, entity_id, details=None):
        LoggingService.log_admin_action('banners', action, entity_id, details)

    def create_banner(self, name, creative_payload, click_url=None, active=True, is_pilot=False):
        banner = self.catalog.create(name, creative_payload, click_url=click_url,
                                     active=active, is_pilot=is_pilot)
        self._audit('banner_created', banner.id, {'name': banner.name, 'is_pilot': banner.is_pilot})
        self.hub.publish(BANNERS_TABLE, 'insert', banner.id)
        return banner

    def update_banner(self, banner_id, **fields):
        banner = self.catalog.update(banner_id, **fields)
        self._audit('banner_updated', banner_id, {'fields': sorted(fields)})
        self.hub.publish(BANNERS_TABLE, 'update', banner_id)
        return banner

    def set_pilot(self, banner_id, is_pilot):
        set_pilot(self.db_path, banner_id, is_pilot)
        self._audit('banner_pilot_updated', banner_id, {'is_pilot': is_pilot})
        self.hub.publish(BANNERS_TABLE, 'update', banner_id)
        return self.catalog.get(banner_id)

    def add_to_queue(self, slot_key, banner_id, priority=0, starts_at=None, ends_at=None):
        entry = self.queue.add_to_queue(slot_key, banner_id, priority, starts_at, ends_at)
        if not self.slots.is_known_slot(entry.slot_key):
            logger.warning(f"Banner queued in unregistered slot {entry.slot_key!r}")
        self._audit('banner_added_to_queue', entry.id, entry.to_dict())
        self.hub.publish(QUEUE_TABLE, 'insert', entry.id)
        return entry

    def update_queue(self, entry_id, **changes):
        entry = self.queue.update_entry(entry_id, **changes)
        self._audit('banner_queue_updated', entry_id, entry.to_dict())
        self.hub.publish(QUEUE_TABLE, 'update', entry_id)
        return entry

    def remove_from_queue(self, entry_id):
        if not self.queue.remove(entry_id):
            raise NotFoundError(f"Queue entry {entry_id} not found")
        self._audit('banner_removed_from_queue', entry_id)
        self.hub.publish(QUEUE_TABLE, 'delete', entry_id)
        return True

    def cleanup_expired(self, now=None):
        removed = cleanup_expired(self.queue, now)
        self._audit('banner_cleanup', 'system', {'removed': removed})
        if removed:
            self.hub.publish(QUEUE_TABLE, 'delete')
        return removed
