"""
Banners Module
==============

Slot-based banner rotation:
- Catalog of creatives (image, click URL, active flag)
- Per-slot queue with priority and optional start/end window
- Pilot banner shown wherever a slot has nothing live
- Expired queue cleanup, on demand or on a timer

Two blueprints: the admin JSON API and the public "current banner" API.

Usage:
    from portaldesk.modules.banners import banners_bp, banners_admin_bp

    app.register_blueprint(banners_bp)        # Registers at /api/banners
    app.register_blueprint(banners_admin_bp)  # Registers at /admin/banners
"""

from flask import Blueprint

# Admin interface for managing banners and the queue
banners_admin_bp = Blueprint(
    'banners_admin',
    __name__,
    url_prefix='/admin/banners'
)

# Public endpoints hit on every page render
banners_bp = Blueprint(
    'banners',
    __name__,
    url_prefix='/api/banners'
)

from . import routes

__all__ = ['banners_bp', 'banners_admin_bp']
