"""
Banner Selection
================

Pure functions answering "which banner goes in this slot right now?".
They read only their arguments: no database, no clock, no logging. Callers
pass a snapshot of banners and queue entries plus an explicit ``now``.

Order of preference for a slot:
1. live queue entries whose banner exists and is active,
   highest priority first, ties broken by entry id ascending
2. the active pilot banner
3. nothing
"""

from .models import Placement, ValidationError, parse_timestamp, validate_slot_key
from .pilot import get_pilot


def _index_banners(banners):
    if isinstance(banners, dict):
        return banners
    return {banner.id: banner for banner in banners}


def _selection_order(entry):
    return (-entry.priority, entry.id)


def eligible_entries(slot_key, now, entries, banners):
    """
    Live entries for the slot, best first.

    Entries pointing at a missing or inactive banner are skipped silently.
    """
    now = parse_timestamp(now, 'now')
    if now is None:
        raise ValidationError("now is required")
    banners_by_id = _index_banners(banners)
    live = []
    for entry in entries:
        if entry.slot_key != slot_key:
            continue
        banner = banners_by_id.get(entry.banner_id)
        if banner is None or not banner.active:
            continue
        if entry.is_live(now):
            live.append(entry)
    live.sort(key=_selection_order)
    return live


def resolve_placement(slot_key, now, entries, banners):
    """
    Choose the banner for ``slot_key`` at ``now`` and report why.

    Returns a Placement with source 'schedule' (plus the winning entry) or
    'pilot', or None when the slot should render nothing.

    Raises ValidationError for an empty slot key or a ``now`` that is not a
    timestamp.
    """
    slot_key = validate_slot_key(slot_key)
    now = parse_timestamp(now, 'now')
    if now is None:
        raise ValidationError("now is required")

    banners_by_id = _index_banners(banners)
    live = eligible_entries(slot_key, now, entries, banners_by_id)
    if live:
        winner = live[0]
        return Placement(slot_key=slot_key, banner=banners_by_id[winner.banner_id],
                         source='schedule', entry=winner)

    pilot = get_pilot(banners_by_id)
    if pilot is not None:
        return Placement(slot_key=slot_key, banner=pilot, source='pilot')
    return None


def select_banner(slot_key, now, entries, banners):
    """The Banner to display for ``slot_key`` at ``now``, or None."""
    placement = resolve_placement(slot_key, now, entries, banners)
    return placement.banner if placement else None
