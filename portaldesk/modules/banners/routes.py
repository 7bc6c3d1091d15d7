"""
Banner Routes
=============

Public (no auth, CORS enabled by the extension):
- GET /api/banners/slots                     - Slot list
- GET /api/banners/slots/<slot_key>/current  - Banner to render now (?at=ISO to preview)

Admin (require admin session):
- GET/POST   /admin/banners/api/banners             - List / create banners
- PUT        /admin/banners/api/banners/<id>        - Update banner fields
- POST       /admin/banners/api/banners/<id>/pilot  - Set or clear the pilot flag
- GET        /admin/banners/api/pilot               - Current pilot
- GET        /admin/banners/api/slots               - Slots grouped by category
- GET/POST   /admin/banners/api/queue               - List (?slot_key=) / add entries
- PUT/DELETE /admin/banners/api/queue/<id>          - Edit / remove an entry
- POST       /admin/banners/api/queue/cleanup       - Purge expired entries
- GET        /admin/banners/api/audit               - Recent banner audit log
"""

from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from portaldesk.core.auth import admin_required
from portaldesk.core.logging_service import LoggingService
from . import banners_admin_bp, banners_bp
from .catalog import EDITABLE_FIELDS
from .models import NotFoundError, ValidationError


def _service():
    return current_app.extensions['portaldesk'].banner_service


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('JSON object body required')
    return data


def _coerce_priority(value):
    """Forms send numbers as strings"""
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return int(value.strip())
    return value


# ===== Error handling =====

def _validation_error(e):
    return jsonify({'success': False, 'error': str(e)}), 400


def _not_found(e):
    return jsonify({'success': False, 'error': str(e)}), 404


def _server_error(e):
    if isinstance(e, HTTPException):
        return e
    LoggingService.log_error_with_traceback('banners', e, {'path': request.path})
    return jsonify({'success': False, 'error': str(e)}), 500


for _bp in (banners_bp, banners_admin_bp):
    _bp.register_error_handler(ValidationError, _validation_error)
    _bp.register_error_handler(NotFoundError, _not_found)
    _bp.register_error_handler(Exception, _server_error)


# ===== Public Routes =====

@banners_bp.route('/slots', methods=['GET'])
def public_slots():
    """All slot keys currently valid"""
    return jsonify([slot.to_dict() for slot in _service().list_slots()])


@banners_bp.route('/slots/<slot_key>/current', methods=['GET'])
def current_banner(slot_key):
    """Banner for a slot right now; banner is null when nothing should render"""
    at = request.args.get('at')
    placement = _service().current_placement(slot_key, at)
    return jsonify({'success': True, 'banner': placement.to_dict() if placement else None})


# ===== Admin Routes: catalog =====

@banners_admin_bp.route('/api/banners', methods=['GET'])
@admin_required
def list_banners():
    """Get all banners, active or not"""
    return jsonify([banner.to_dict() for banner in _service().list_banners()])


@banners_admin_bp.route('/api/banners', methods=['POST'])
@admin_required
def create_banner():
    """Create new banner"""
    data = _json_body()
    banner = _service().create_banner(
        name=data.get('name'),
        creative_payload=data.get('creative_payload', {}),
        click_url=data.get('click_url'),
        active=data.get('active', True),
        is_pilot=data.get('is_pilot', False),
    )
    return jsonify({'success': True, 'banner': banner.to_dict()}), 201


@banners_admin_bp.route('/api/banners/<banner_id>', methods=['PUT'])
@admin_required
def update_banner(banner_id):
    """Update banner fields"""
    data = _json_body()
    unknown = sorted(set(data) - set(EDITABLE_FIELDS))
    if unknown:
        raise ValidationError(f"Cannot update banner fields: {', '.join(unknown)}")
    banner = _service().update_banner(banner_id, **data)
    return jsonify({'success': True, 'banner': banner.to_dict()})


@banners_admin_bp.route('/api/banners/<banner_id>/pilot', methods=['POST'])
@admin_required
def set_pilot(banner_id):
    """Make a banner the pilot (demoting any other) or clear its flag"""
    data = _json_body()
    if 'is_pilot' not in data:
        raise ValidationError('is_pilot is required')
    banner = _service().set_pilot(banner_id, data['is_pilot'])
    return jsonify({'success': True, 'banner': banner.to_dict()})


@banners_admin_bp.route('/api/pilot', methods=['GET'])
@admin_required
def get_pilot():
    """Current pilot banner, or null"""
    pilot = _service().get_pilot()
    return jsonify({'success': True, 'pilot': pilot.to_dict() if pilot else None})


@banners_admin_bp.route('/api/slots', methods=['GET'])
@admin_required
def admin_slots():
    """Slots grouped by category for the queue form"""
    groups = _service().slots.grouped()
    return jsonify({category: [slot.to_dict() for slot in slots] for category, slots in groups.items()})


# ===== Admin Routes: queue =====

@banners_admin_bp.route('/api/queue', methods=['GET'])
@admin_required
def get_queue():
    """Queue entries, optionally for one slot"""
    slot_key = request.args.get('slot_key') or None
    return jsonify([entry.to_dict() for entry in _service().get_queue(slot_key)])


@banners_admin_bp.route('/api/queue', methods=['POST'])
@admin_required
def add_to_queue():
    """Schedule a banner in a slot"""
    data = _json_body()
    entry = _service().add_to_queue(
        slot_key=data.get('slot_key'),
        banner_id=data.get('banner_id'),
        priority=_coerce_priority(data.get('priority', 0)),
        starts_at=data.get('starts_at'),
        ends_at=data.get('ends_at'),
    )
    return jsonify({'success': True, 'entry': entry.to_dict()}), 201


@banners_admin_bp.route('/api/queue/<entry_id>', methods=['PUT'])
@admin_required
def update_queue(entry_id):
    """Edit priority or window of a queue entry"""
    data = _json_body()
    changes = {key: data[key] for key in ('priority', 'starts_at', 'ends_at') if key in data}
    if 'priority' in changes:
        changes['priority'] = _coerce_priority(changes['priority'])
    entry = _service().update_queue(entry_id, **changes)
    return jsonify({'success': True, 'entry': entry.to_dict()})


@banners_admin_bp.route('/api/queue/<entry_id>', methods=['DELETE'])
@admin_required
def remove_from_queue(entry_id):
    """Remove a queue entry"""
    _service().remove_from_queue(entry_id)
    return jsonify({'success': True})


@banners_admin_bp.route('/api/queue/cleanup', methods=['POST'])
@admin_required
def cleanup_queue():
    """Delete every entry whose end time has passed"""
    removed = _service().cleanup_expired()
    return jsonify({'success': True, 'removed': removed})


@banners_admin_bp.route('/api/audit', methods=['GET'])
@admin_required
def audit_log():
    """Recent banner admin actions"""
    limit = request.args.get('limit', 50, type=int)
    return jsonify(LoggingService.get_recent_logs(source='banners', limit=min(max(limit, 1), 500)))
