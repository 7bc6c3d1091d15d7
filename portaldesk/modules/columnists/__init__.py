"""
Columnists Module
=================

Columnist profiles as seen by the banner engine: id, display name and
whether the profile is active. Every active columnist gets its own banner
slot (``columnist-<id>``).
"""

from flask import Blueprint

columnists_admin_bp = Blueprint(
    'columnists_admin',
    __name__,
    url_prefix='/admin/columnists'
)

from . import routes

__all__ = ['columnists_admin_bp']
