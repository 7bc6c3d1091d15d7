"""
Banner Slots
============

Placement keys a banner can be queued in. Static slots are fixed; every
active columnist adds a ``columnist-<id>`` slot. The list is re-derived on
each call so toggling a columnist shows up immediately.
"""

from .models import Slot

SYSTEM = 'System'
CATEGORIES = 'Categories'
COLUMNISTS = 'Columnists'

CONTENT_CATEGORIES = [
    ('politics', 'Politics'),
    ('economy', 'Economy'),
    ('sports', 'Sports'),
    ('entertainment', 'Entertainment'),
    ('technology', 'Technology'),
    ('health', 'Health'),
    ('international', 'International'),
    ('police', 'Police'),
]

STATIC_SLOTS = (
    [Slot('hero', 'Main Banner (Hero)', SYSTEM)]
    + [Slot(f'category-{slug}', f'Category - {label}', CATEGORIES) for slug, label in CONTENT_CATEGORIES]
    + [Slot('sidebar', 'Sidebar', SYSTEM), Slot('footer', 'Footer', SYSTEM)]
)

COLUMNIST_PREFIX = 'columnist-'


def columnist_slot_key(columnist_id):
    return f'{COLUMNIST_PREFIX}{columnist_id}'


def _field(columnist, name):
    if isinstance(columnist, dict):
        return columnist.get(name)
    return getattr(columnist, name, None)


def derive_slots(columnists):
    """
    Static slots followed by one slot per active columnist, in input order.

    A columnist counts as active only when its is_active flag is exactly
    True; profiles with the flag missing get no slot.
    """
    slots = list(STATIC_SLOTS)
    for columnist in columnists or []:
        if _field(columnist, 'is_active') is not True:
            continue
        columnist_id = _field(columnist, 'id')
        name = _field(columnist, 'name') or str(columnist_id)
        slots.append(Slot(columnist_slot_key(columnist_id), f'Columnist - {name}', COLUMNISTS))
    return slots


class SlotRegistry:
    """Slot list backed by a callable returning the current columnists"""

    def __init__(self, columnist_source):
        self._columnist_source = columnist_source

    def list_slots(self):
        return derive_slots(self._columnist_source())

    def is_known_slot(self, slot_key):
        return any(slot.key == slot_key for slot in self.list_slots())

    def grouped(self):
        """Slots grouped by category, preserving order (for admin pickers)"""
        groups = {}
        for slot in self.list_slots():
            groups.setdefault(slot.category, []).append(slot)
        return groups
