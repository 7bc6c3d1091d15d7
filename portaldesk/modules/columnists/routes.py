"""
Columnists Admin Routes
=======================

JSON endpoints for listing, saving and toggling columnist profiles.
Every write publishes a ``columnists`` change so banner slots re-derive.
"""

from flask import current_app, jsonify, request

from portaldesk.core.auth import admin_required
from portaldesk.core.config import get_config_value
from portaldesk.core.logging_service import db_log
from . import columnists_admin_bp
from .database import get_all_columnists, toggle_columnist_db, upsert_columnist


def _db_path():
    return get_config_value('USER_DB')


def _publish(action, columnist_id):
    ext = current_app.extensions.get('portaldesk')
    if ext is not None:
        ext.hub.publish('columnists', action, columnist_id)


@columnists_admin_bp.route('/api/columnists', methods=['GET'])
@admin_required
def list_columnists():
    """Get all columnists"""
    try:
        return jsonify(get_all_columnists(_db_path()))
    except Exception as e:
        db_log('error', 'columnists', 'Failed to list columnists', {'error': str(e)})
        return jsonify({'error': str(e)}), 500


@columnists_admin_bp.route('/api/columnists', methods=['POST'])
@admin_required
def save_columnist():
    """Create or update a columnist"""
    data = request.get_json(silent=True) or {}
    columnist_id = str(data.get('id', '')).strip()
    name = str(data.get('name', '')).strip()
    is_active = data.get('is_active', True)

    if not columnist_id or not name:
        return jsonify({'error': 'Columnist id and name are required'}), 400
    if not isinstance(is_active, bool):
        return jsonify({'error': 'is_active must be true or false'}), 400

    try:
        columnist = upsert_columnist(_db_path(), columnist_id, name, is_active)
        _publish('upsert', columnist_id)
        return jsonify({'success': True, 'columnist': columnist})
    except Exception as e:
        db_log('error', 'columnists', f'Failed to save columnist {columnist_id}', {'error': str(e)})
        return jsonify({'error': str(e)}), 500


@columnists_admin_bp.route('/api/columnists/<columnist_id>/toggle', methods=['POST'])
@admin_required
def toggle_columnist(columnist_id):
    """Toggle columnist active status"""
    try:
        new_status = toggle_columnist_db(_db_path(), columnist_id)
        if new_status is None:
            return jsonify({'error': 'Columnist not found'}), 404
        _publish('update', columnist_id)
        return jsonify({'success': True, 'is_active': new_status})
    except Exception as e:
        db_log('error', 'columnists', f'Failed to toggle columnist {columnist_id}', {'error': str(e)})
        return jsonify({'error': str(e)}), 500
